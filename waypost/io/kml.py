"""
KML 2.2 codec.

Notes:
- Point placemarks are collected into one Waypoints route.
- Each LineString placemark is one route; its characteristics are kept in
  <ExtendedData> (`characteristics`) and default to Track when absent.
- Timestamps are not stored; elevation travels as the third coordinate.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple
from xml.sax.saxutils import escape
import xml.etree.ElementTree as ET

from waypost.core.context import ParseContext
from waypost.core.normalization import normalize_name
from waypost.core.stream import RewindableStream
from waypost.io.base import FormatCodec, WriteTarget, valid_coordinates, write_text
from waypost.model import Position, Route, RouteCharacteristics

logger = logging.getLogger(__name__)

_KML_NS = "http://www.opengis.net/kml/2.2"


def _text(elem: Optional[ET.Element]) -> str:
    if elem is None or elem.text is None:
        return ""
    return elem.text


def _parse_extended_data(pm: ET.Element, ns: Dict[str, str]) -> Dict[str, str]:
    kv: Dict[str, str] = {}
    for d in pm.findall(".//kml:ExtendedData//kml:Data", ns):
        key = d.attrib.get("name")
        if not key:
            continue
        kv[key.strip().lower()] = _text(d.find("kml:value", ns)).strip()
    return kv


def _parse_kml_coords_list(text: str) -> List[Tuple[float, float, Optional[float]]]:
    """
    Parse KML coordinate lists: lon,lat[,alt] separated by whitespace/newlines.
    Skips invalid coordinates and continues processing.
    """
    text = (text or "").strip()
    if not text:
        return []
    pts: List[Tuple[float, float, Optional[float]]] = []
    for token in text.split():
        parts = token.split(",")
        if len(parts) < 2:
            continue
        try:
            lon = float(parts[0])
            lat = float(parts[1])
            if not valid_coordinates(lon, lat):
                continue
            alt = float(parts[2]) if len(parts) >= 3 and parts[2] != "" else None
            pts.append((lon, lat, alt))
        except (ValueError, TypeError):
            logger.warning(f"Skipping malformed KML coordinate {token!r}")
            continue
    return pts


def _coord(position: Position) -> str:
    parts = [repr(float(position.longitude)), repr(float(position.latitude))]
    if position.elevation is not None:
        parts.append(repr(float(position.elevation)))
    return ",".join(parts)


class Kml22Format(FormatCodec):
    name = "Google Earth (KML 2.2)"
    extensions = ("kml",)
    supports_multiple_routes = True

    def read(self, stream: RewindableStream, context: ParseContext) -> None:
        data = stream.read()
        if not data.strip():
            raise ValueError("KML stream is empty")
        try:
            root = ET.fromstring(data)
        except ET.ParseError as e:
            raise ValueError(f"Invalid KML (XML parse error): {e}")
        if root.tag != f"{{{_KML_NS}}}kml":
            raise ValueError(f"Does not appear to be KML 2.2 (root element: {root.tag})")

        ns = {"kml": _KML_NS}
        document = root.find("kml:Document", ns)
        doc_name = normalize_name(_text(document.find("kml:name", ns))) if document is not None else ""

        waypoints: List[Position] = []
        routes: List[Route] = []
        for pm in root.iter(f"{{{_KML_NS}}}Placemark"):
            name = normalize_name(_text(pm.find("kml:name", ns)))
            point = pm.find(".//kml:Point/kml:coordinates", ns)
            if point is not None:
                pts = _parse_kml_coords_list(_text(point))
                if pts:
                    lon, lat, alt = pts[0]
                    waypoints.append(Position(longitude=lon, latitude=lat, elevation=alt, description=name or None))
                continue

            line = pm.find(".//kml:LineString/kml:coordinates", ns)
            if line is None:
                continue
            kv = _parse_extended_data(pm, ns)
            try:
                characteristics = RouteCharacteristics(kv.get("characteristics", "Track"))
            except ValueError:
                characteristics = RouteCharacteristics.Track
            positions = [
                Position(longitude=lon, latitude=lat, elevation=alt)
                for lon, lat, alt in _parse_kml_coords_list(_text(line))
            ]
            routes.append(self.create_route(characteristics, name or None, positions))

        if waypoints:
            context.append_route(self.create_route(RouteCharacteristics.Waypoints, doc_name or None, waypoints))
        context.append_routes(routes)

    def _placemarks(self, route: Route, start_index: int, end_index: int) -> List[str]:
        positions = route.positions[start_index:end_index]
        if route.characteristics == RouteCharacteristics.Waypoints:
            lines: List[str] = []
            for position in positions:
                lines.extend(
                    [
                        "    <Placemark>",
                        f"      <name>{escape(position.description or '')}</name>",
                        f"      <Point><coordinates>{_coord(position)}</coordinates></Point>",
                        "    </Placemark>",
                    ]
                )
            return lines
        return [
            "    <Placemark>",
            f"      <name>{escape(route.name or '')}</name>",
            "      <ExtendedData>",
            f'        <Data name="characteristics"><value>{route.characteristics.value}</value></Data>',
            "      </ExtendedData>",
            "      <LineString>",
            "        <tessellate>1</tessellate>",
            f"        <coordinates>{' '.join(_coord(p) for p in positions)}</coordinates>",
            "      </LineString>",
            "    </Placemark>",
        ]

    def _render(self, slices: Sequence[Tuple[Route, int, int]], name: Optional[str]) -> str:
        lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            f'<kml xmlns="{_KML_NS}">',
            "  <Document>",
            f"    <name>{escape(name or '')}</name>",
        ]
        for route, start_index, end_index in slices:
            lines.extend(self._placemarks(route, start_index, end_index))
        lines.extend(["  </Document>", "</kml>"])
        return "\n".join(lines) + "\n"

    def write(self, route: Route, target: WriteTarget, start_index: int, end_index: int) -> None:
        write_text(target, self._render([(route, start_index, end_index)], route.name))

    def write_routes(self, routes: Sequence[Route], target: WriteTarget) -> None:
        name = routes[0].name if len(routes) == 1 else None
        write_text(target, self._render([(r, 0, r.position_count) for r in routes], name))
