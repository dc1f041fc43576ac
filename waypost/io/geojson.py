"""
GeoJSON codec.

Reads and writes a FeatureCollection:
- Point features are collected into one Waypoints route; `title` or `name`
  becomes the position description.
- Each LineString feature is one route. Coordinates are `[lon, lat]` or
  `[lon, lat, ele]`; timestamps travel in the `coordTimes` property (ISO8601,
  one per coordinate, null where unknown) and characteristics in
  `characteristics`.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from waypost.core.context import ParseContext
from waypost.core.normalization import format_iso8601, normalize_name, parse_iso8601
from waypost.core.stream import RewindableStream
from waypost.io.base import FormatCodec, WriteTarget, read_text, valid_coordinates, write_text
from waypost.model import Position, Route, RouteCharacteristics

logger = logging.getLogger(__name__)


def _parse_position(coords: Any, time_text: Optional[str] = None) -> Optional[Position]:
    if not isinstance(coords, (list, tuple)) or len(coords) < 2:
        return None
    try:
        lon, lat = float(coords[0]), float(coords[1])
    except (TypeError, ValueError):
        return None
    if not valid_coordinates(lon, lat):
        logger.warning(f"Skipping coordinate out of valid range: {coords}")
        return None
    ele: Optional[float] = None
    if len(coords) >= 3 and coords[2] is not None:
        try:
            ele = float(coords[2])
        except (TypeError, ValueError):
            ele = None
    return Position(longitude=lon, latitude=lat, elevation=ele, time=parse_iso8601(time_text))


def _time_text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _coords(position: Position) -> List[float]:
    result = [position.longitude, position.latitude]
    if position.elevation is not None:
        result.append(position.elevation)
    return result


class GeoJsonFormat(FormatCodec):
    name = "GeoJSON"
    extensions = ("geojson", "json")
    supports_multiple_routes = True

    def read(self, stream: RewindableStream, context: ParseContext) -> None:
        try:
            data = json.loads(read_text(stream))
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid GeoJSON (JSON parse error): {e}")
        if not isinstance(data, dict) or data.get("type") != "FeatureCollection":
            raise ValueError("Does not appear to be a GeoJSON FeatureCollection")

        doc_name = normalize_name(data.get("name") or "")
        waypoints: List[Position] = []
        routes: List[Route] = []
        for feature in data.get("features") or []:
            geometry = (feature or {}).get("geometry") or {}
            properties = (feature or {}).get("properties") or {}
            title = normalize_name(properties.get("title") or properties.get("name") or "")

            if geometry.get("type") == "Point":
                position = _parse_position(geometry.get("coordinates"), _time_text(properties.get("time")))
                if position is not None:
                    position.description = title or None
                    waypoints.append(position)
            elif geometry.get("type") == "LineString":
                coordinates = geometry.get("coordinates") or []
                times = properties.get("coordTimes")
                if not isinstance(times, list):
                    times = []
                positions = []
                for i, coords in enumerate(coordinates):
                    position = _parse_position(coords, _time_text(times[i]) if i < len(times) else None)
                    if position is not None:
                        positions.append(position)
                try:
                    characteristics = RouteCharacteristics(properties.get("characteristics") or "Track")
                except ValueError:
                    characteristics = RouteCharacteristics.Track
                route = self.create_route(characteristics, title or None, positions)
                description = properties.get("description")
                if description:
                    route.description = str(description).splitlines()
                routes.append(route)

        if waypoints:
            context.append_route(self.create_route(RouteCharacteristics.Waypoints, doc_name or None, waypoints))
        context.append_routes(routes)

    def _features(self, route: Route, start_index: int, end_index: int) -> List[Dict[str, Any]]:
        positions = route.positions[start_index:end_index]
        if route.characteristics == RouteCharacteristics.Waypoints:
            features = []
            for position in positions:
                properties: Dict[str, Any] = {"title": position.description or ""}
                if position.time is not None:
                    properties["time"] = format_iso8601(position.time)
                features.append(
                    {
                        "type": "Feature",
                        "geometry": {"type": "Point", "coordinates": _coords(position)},
                        "properties": properties,
                    }
                )
            return features

        properties = {
            "title": route.name or "",
            "characteristics": route.characteristics.value,
        }
        if route.description:
            properties["description"] = "\n".join(route.description)
        if any(p.time is not None for p in positions):
            properties["coordTimes"] = [format_iso8601(p.time) if p.time else None for p in positions]
        return [
            {
                "type": "Feature",
                "geometry": {"type": "LineString", "coordinates": [_coords(p) for p in positions]},
                "properties": properties,
            }
        ]

    def _render(self, slices: Sequence[Tuple[Route, int, int]], name: Optional[str]) -> str:
        fc: Dict[str, Any] = {"type": "FeatureCollection", "features": []}
        if name:
            fc["name"] = name
        for route, start_index, end_index in slices:
            fc["features"].extend(self._features(route, start_index, end_index))
        return json.dumps(fc, ensure_ascii=False, indent=2) + "\n"

    def write(self, route: Route, target: WriteTarget, start_index: int, end_index: int) -> None:
        write_text(target, self._render([(route, start_index, end_index)], route.name))

    def write_routes(self, routes: Sequence[Route], target: WriteTarget) -> None:
        name = routes[0].name if len(routes) == 1 else None
        write_text(target, self._render([(r, 0, r.position_count) for r in routes], name))
