"""
Google Maps directions link codec (read only).

Two link shapes are understood:

- `https://www.google.com/maps/dir/?api=1&origin=LAT,LON&destination=LAT,LON&waypoints=LAT,LON|LAT,LON`
- `https://www.google.com/maps/dir/LAT,LON/LAT,LON/@viewport`

Path segments or parameters that are not plain coordinates (place names, the
`@` viewport, `data=` blobs) are skipped.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional
from urllib.parse import parse_qs, unquote, urlparse

from waypost.core.context import ParseContext
from waypost.core.stream import RewindableStream
from waypost.io.base import FormatCodec, read_text, valid_coordinates
from waypost.model import Position, RouteCharacteristics

logger = logging.getLogger(__name__)

_URL_RE = re.compile(r"https?://(?:www\.|maps\.)?google\.[a-z.]+/maps/dir/[^\s\"'<>]*", re.IGNORECASE)
_COORDINATE_RE = re.compile(r"^\s*(-?\d+(?:\.\d+)?)\s*,\s*(-?\d+(?:\.\d+)?)\s*$")


def _coordinates_of(url: str) -> List[str]:
    parsed = urlparse(url)
    query = parse_qs(parsed.query)
    if "origin" in query or "destination" in query:
        values = query.get("origin", [])[:1]
        for waypoints in query.get("waypoints", [])[:1]:
            values.extend(waypoints.split("|"))
        values.extend(query.get("destination", [])[:1])
        return values
    # path form: /maps/dir/<segment>/<segment>/...
    segments = parsed.path.split("/")[3:]
    return [unquote(segment) for segment in segments if segment]


class GoogleMapsUrlFormat(FormatCodec):
    name = "Google Maps URL"
    extensions = ()
    supports_writing = False
    parses_urls = True
    supported_characteristics = (RouteCharacteristics.Route,)

    def find_url(self, text: str) -> Optional[str]:
        m = _URL_RE.search(text)
        return m.group(0) if m else None

    def read(self, stream: RewindableStream, context: ParseContext) -> None:
        text = read_text(stream, ("utf-8-sig", "cp1252"))
        url = self.find_url(text)
        if url is None:
            raise ValueError("No Google Maps directions link found")
        positions = []
        for value in _coordinates_of(url):
            m = _COORDINATE_RE.match(value)
            if m is None:
                logger.debug(f"Skipping non-coordinate link segment {value[:40]!r}")
                continue
            lat, lon = float(m.group(1)), float(m.group(2))
            if not valid_coordinates(lon, lat):
                logger.warning(f"Skipping link coordinate out of valid range: lat={lat} lon={lon}")
                continue
            positions.append(Position(longitude=lon, latitude=lat))
        if positions:
            context.append_route(self.create_route(RouteCharacteristics.Route, None, positions))
