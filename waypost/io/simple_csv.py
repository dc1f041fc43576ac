"""
Simple comma separated values codec.

The first row is a header naming the columns; `Latitude` and `Longitude` are
required, `Altitude`, `Time` and `Name` are optional and may come in any order.
A time holding only `HH:MM:SS` is placed on the date of the read's start time
hint, or left empty when there is none.
"""

from __future__ import annotations

import csv
import io
import logging
import re
from datetime import datetime, time, timezone
from typing import Dict, List, Optional

from waypost.core.context import ParseContext
from waypost.core.normalization import format_iso8601, parse_iso8601
from waypost.core.stream import RewindableStream
from waypost.io.base import FormatCodec, WriteTarget, read_text, valid_coordinates, write_text
from waypost.model import Position, Route, RouteCharacteristics

logger = logging.getLogger(__name__)

HEADER = ["Latitude", "Longitude", "Altitude", "Time", "Name"]

_TIME_OF_DAY_RE = re.compile(r"^(\d{1,2}):(\d{2}):(\d{2})$")


def _column_index(header: List[str]) -> Dict[str, int]:
    return {name.strip().lower(): i for i, name in enumerate(header)}


def _cell(row: List[str], index: Optional[int]) -> str:
    if index is None or index >= len(row):
        return ""
    return row[index].strip()


def _parse_time(value: str, start_time: Optional[datetime]) -> Optional[datetime]:
    if not value:
        return None
    m = _TIME_OF_DAY_RE.match(value)
    if m is None:
        return parse_iso8601(value)
    if start_time is None:
        return None
    tz = start_time.tzinfo or timezone.utc
    return datetime.combine(start_time.date(), time(int(m.group(1)), int(m.group(2)), int(m.group(3))), tzinfo=tz)


class SimpleCsvFormat(FormatCodec):
    name = "Comma Separated Values (CSV)"
    extensions = ("csv",)
    names_fragments = True

    def read(self, stream: RewindableStream, context: ParseContext) -> None:
        rows = [row for row in csv.reader(io.StringIO(read_text(stream))) if any(cell.strip() for cell in row)]
        if not rows:
            raise ValueError("CSV stream has no rows")
        columns = _column_index(rows[0])
        if "latitude" not in columns or "longitude" not in columns:
            raise ValueError(f"CSV header lacks Latitude/Longitude columns: {rows[0]}")

        positions: List[Position] = []
        for line_number, row in enumerate(rows[1:], 2):
            try:
                lat = float(_cell(row, columns["latitude"]))
                lon = float(_cell(row, columns["longitude"]))
            except ValueError:
                raise ValueError(f"Row {line_number} has invalid coordinates: {row}")
            if not valid_coordinates(lon, lat):
                logger.warning(f"Skipping CSV row {line_number} out of valid range: lat={lat} lon={lon}")
                continue
            altitude = _cell(row, columns.get("altitude"))
            positions.append(
                Position(
                    longitude=lon,
                    latitude=lat,
                    elevation=float(altitude) if altitude else None,
                    time=_parse_time(_cell(row, columns.get("time")), context.start_time),
                    description=_cell(row, columns.get("name")) or None,
                )
            )
        if positions:
            context.append_route(self.create_route(RouteCharacteristics.Waypoints, None, positions))

    def write(self, route: Route, target: WriteTarget, start_index: int, end_index: int) -> None:
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\r\n")
        writer.writerow(HEADER)
        for position in route.positions[start_index:end_index]:
            writer.writerow(
                [
                    repr(float(position.latitude)),
                    repr(float(position.longitude)),
                    repr(float(position.elevation)) if position.elevation is not None else "",
                    format_iso8601(position.time) if position.time is not None else "",
                    position.description or "",
                ]
            )
        write_text(target, buffer.getvalue())
