"""
GPX codec.

Reads GPX 1.0 and 1.1 documents and writes GPX 1.1.

Notes:
- Waypoints (<wpt>) become a single Waypoints route, each <rte> a Route and each
  <trk> a Track (all <trkseg> concatenated).
- A well-formed GPX without any of these decodes to zero routes; that is not an
  error.
- GPX holds any number of routes per file and is the default container when
  routes of different formats have to be kept together.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple
from xml.sax.saxutils import escape
import xml.etree.ElementTree as ET

from waypost.core.context import ParseContext
from waypost.core.normalization import format_iso8601, normalize_name, parse_iso8601
from waypost.core.stream import RewindableStream
from waypost.io.base import FormatCodec, WriteTarget, valid_coordinates, write_text
from waypost.model import Position, Route, RouteCharacteristics

logger = logging.getLogger(__name__)

_GPX_11_NS = "http://www.topografix.com/GPX/1/1"
_CREATOR = "Waypost"


def _namespace_of(root: ET.Element) -> Dict[str, str]:
    if root.tag.startswith("{"):
        return {"gpx": root.tag[1:].split("}", 1)[0]}
    return {}


def _find_text(elem: ET.Element, local_name: str, ns: Dict[str, str]) -> str:
    child = elem.find(f"gpx:{local_name}" if ns else local_name, ns)
    if child is not None and child.text:
        return child.text
    return ""


def _read_position(pt: ET.Element, ns: Dict[str, str]) -> Optional[Position]:
    try:
        lat = float(pt.attrib.get("lat"))
        lon = float(pt.attrib.get("lon"))
    except (ValueError, TypeError):
        logger.warning(f"Skipping <{pt.tag.split('}')[-1]}> with invalid coordinates: {dict(pt.attrib)}")
        return None
    if not valid_coordinates(lon, lat):
        logger.warning(f"Skipping position out of valid range: lat={lat} lon={lon}")
        return None

    ele_text = _find_text(pt, "ele", ns)
    try:
        ele = float(ele_text) if ele_text else None
    except ValueError:
        ele = None

    name = normalize_name(_find_text(pt, "name", ns)) or normalize_name(_find_text(pt, "desc", ns))
    return Position(
        longitude=lon,
        latitude=lat,
        elevation=ele,
        time=parse_iso8601(_find_text(pt, "time", ns)),
        description=name or None,
    )


def _fmt(value: float) -> str:
    return repr(float(value))


def _position_lines(tag: str, position: Position, indent: str) -> List[str]:
    lines = [f'{indent}<{tag} lat="{_fmt(position.latitude)}" lon="{_fmt(position.longitude)}">']
    if position.elevation is not None:
        lines.append(f"{indent}  <ele>{_fmt(position.elevation)}</ele>")
    if position.time is not None:
        lines.append(f"{indent}  <time>{format_iso8601(position.time)}</time>")
    if position.description:
        lines.append(f"{indent}  <name>{escape(position.description)}</name>")
    lines.append(f"{indent}</{tag}>")
    return lines


def _route_block(route: Route, start_index: int, end_index: int) -> List[str]:
    positions = route.positions[start_index:end_index]
    if route.characteristics == RouteCharacteristics.Waypoints:
        block: List[str] = []
        for position in positions:
            block.extend(_position_lines("wpt", position, "  "))
        return block

    container, point_tag = ("trk", "trkpt") if route.characteristics == RouteCharacteristics.Track else ("rte", "rtept")
    block = [f"  <{container}>"]
    if route.name:
        block.append(f"    <name>{escape(route.name)}</name>")
    if route.description:
        block.append(f"    <desc>{escape(chr(10).join(route.description))}</desc>")
    if container == "trk":
        block.append("    <trkseg>")
        for position in positions:
            block.extend(_position_lines(point_tag, position, "      "))
        block.append("    </trkseg>")
    else:
        for position in positions:
            block.extend(_position_lines(point_tag, position, "    "))
    block.append(f"  </{container}>")
    return block


class Gpx11Format(FormatCodec):
    name = "GPX 1.1"
    extensions = ("gpx",)
    supports_multiple_routes = True

    def read(self, stream: RewindableStream, context: ParseContext) -> None:
        data = stream.read()
        if not data.strip():
            raise ValueError("GPX stream is empty")
        try:
            root = ET.fromstring(data)
        except ET.ParseError as e:
            raise ValueError(f"Invalid GPX (XML parse error): {e}")
        if root.tag.split("}")[-1] != "gpx":
            raise ValueError(f"Does not appear to be GPX (root element: {root.tag})")

        ns = _namespace_of(root)
        q = (lambda local: f"gpx:{local}") if ns else (lambda local: local)

        metadata = root.find(q("metadata"), ns)
        if metadata is not None:
            doc_name = normalize_name(_find_text(metadata, "name", ns))
        else:
            doc_name = normalize_name(_find_text(root, "name", ns))

        waypoints = [p for p in (_read_position(w, ns) for w in root.findall(q("wpt"), ns)) if p is not None]
        if waypoints:
            context.append_route(self.create_route(RouteCharacteristics.Waypoints, doc_name or None, waypoints))

        for rte in root.findall(q("rte"), ns):
            positions = [p for p in (_read_position(pt, ns) for pt in rte.findall(q("rtept"), ns)) if p is not None]
            route = self.create_route(
                RouteCharacteristics.Route, normalize_name(_find_text(rte, "name", ns)) or None, positions
            )
            desc = normalize_name(_find_text(rte, "desc", ns))
            if desc:
                route.description = desc.splitlines()
            context.append_route(route)

        for trk in root.findall(q("trk"), ns):
            positions = []
            for seg in trk.findall(q("trkseg"), ns):
                for pt in seg.findall(q("trkpt"), ns):
                    position = _read_position(pt, ns)
                    if position is not None:
                        positions.append(position)
            route = self.create_route(
                RouteCharacteristics.Track, normalize_name(_find_text(trk, "name", ns)) or None, positions
            )
            desc = normalize_name(_find_text(trk, "desc", ns))
            if desc:
                route.description = desc.splitlines()
            context.append_route(route)

    def _render(self, slices: Sequence[Tuple[Route, int, int]], name: Optional[str]) -> str:
        lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            f'<gpx xmlns="{_GPX_11_NS}" version="1.1" creator="{_CREATOR}">',
        ]
        if name:
            lines.extend(["  <metadata>", f"    <name>{escape(name)}</name>", "  </metadata>"])
        # GPX 1.1 requires wpt before rte before trk
        order = {RouteCharacteristics.Waypoints: 0, RouteCharacteristics.Route: 1, RouteCharacteristics.Track: 2}
        for route, start_index, end_index in sorted(slices, key=lambda s: order[s[0].characteristics]):
            lines.extend(_route_block(route, start_index, end_index))
        lines.append("</gpx>")
        return "\n".join(lines) + "\n"

    def write(self, route: Route, target: WriteTarget, start_index: int, end_index: int) -> None:
        write_text(target, self._render([(route, start_index, end_index)], route.name))

    def write_routes(self, routes: Sequence[Route], target: WriteTarget) -> None:
        name = routes[0].name if len(routes) == 1 else None
        write_text(target, self._render([(r, 0, r.position_count) for r in routes], name))
