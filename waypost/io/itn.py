"""
TomTom itinerary (.itn) codec.

One line per position: `lon*100000|lat*100000|name|flag|` where the flag is 4
for the departure, 2 for the destination and 0 for waypoints in between.
TomTom devices accept at most 48 positions per itinerary, reject consecutive
duplicates, and treat the first position as the current location, which is why
callers may ask for it to be duplicated.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Optional

from waypost.core.context import ParseContext
from waypost.core.stream import RewindableStream
from waypost.io.base import FormatCodec, WriteTarget, read_text, valid_coordinates
from waypost.model import Position, Route, RouteCharacteristics

logger = logging.getLogger(__name__)

ITN_FACTOR = 100000.0
TT_DEPARTURE = 4
TT_WAYPOINT = 0
TT_DESTINATION = 2

_LINE_RE = re.compile(r"^\s*(-?\d+)\|(-?\d+)\|([^|]*)\|(\d+)\|\s*$")


class TomTomRouteFormat(FormatCodec):
    name = "TomTom Route (ITN)"
    extensions = ("itn",)
    maximum_position_count = 48
    forbids_duplicate_positions = True
    names_fragments = True
    supported_characteristics = (RouteCharacteristics.Route,)

    def read(self, stream: RewindableStream, context: ParseContext) -> None:
        text = read_text(stream, ("utf-8-sig", "cp1252"))
        positions = []
        for line_number, line in enumerate(text.splitlines(), 1):
            if not line.strip():
                continue
            m = _LINE_RE.match(line)
            if m is None:
                raise ValueError(f"Line {line_number} is not an ITN position: {line[:80]!r}")
            lon = int(m.group(1)) / ITN_FACTOR
            lat = int(m.group(2)) / ITN_FACTOR
            if not valid_coordinates(lon, lat):
                logger.warning(f"Skipping ITN line {line_number} out of valid range: lat={lat} lon={lon}")
                continue
            positions.append(Position(longitude=lon, latitude=lat, description=m.group(3).strip() or None))
        if positions:
            context.append_route(self.create_route(RouteCharacteristics.Route, None, positions))

    def duplicate_first_position(self, route: Route) -> Optional[Position]:
        if not route.positions:
            return None
        first = route.positions[0].copy()
        first.description = f"Start: {first.description or ''}".strip()
        return first

    def write(self, route: Route, target: WriteTarget, start_index: int, end_index: int) -> None:
        lines = []
        last = end_index - 1
        for index in range(start_index, end_index):
            position = route.positions[index]
            if index == start_index:
                flag = TT_DEPARTURE
            elif index == last:
                flag = TT_DESTINATION
            else:
                flag = TT_WAYPOINT
            lon = int(math.floor(position.longitude * ITN_FACTOR + 0.5))
            lat = int(math.floor(position.latitude * ITN_FACTOR + 0.5))
            name = (position.description or "").replace("|", " ")
            lines.append(f"{lon}|{lat}|{name}|{flag}|\r\n")
        target.write("".join(lines).encode("cp1252", errors="replace"))
        target.flush()
