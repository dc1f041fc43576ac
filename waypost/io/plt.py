"""
OziExplorer track (.plt) codec.

Six header lines, then one point per line:
`lat,lon,break,altitude_feet,days,date,time` where `days` counts days since
1899-12-30 (fraction = time of day) and altitude -777 means unknown.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from waypost.core.context import ParseContext
from waypost.core.stream import RewindableStream
from waypost.io.base import FormatCodec, WriteTarget, read_text, valid_coordinates
from waypost.model import Position, Route, RouteCharacteristics

logger = logging.getLogger(__name__)

_FIRST_LINE = "OziExplorer Track Point File"
_EPOCH = datetime(1899, 12, 30, tzinfo=timezone.utc)
_FEET = 0.3048
_NO_ALTITUDE = -777.0


def _days_to_time(days: float) -> Optional[datetime]:
    if days <= 0:
        return None
    return _EPOCH + timedelta(days=days)


def _time_to_days(value: datetime) -> float:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - _EPOCH).total_seconds() / 86400.0


class OziExplorerTrackFormat(FormatCodec):
    name = "OziExplorer Track (PLT)"
    extensions = ("plt",)
    maximum_position_count = 9999
    requires_increasing_time = True
    supported_characteristics = (RouteCharacteristics.Track,)

    def read(self, stream: RewindableStream, context: ParseContext) -> None:
        lines = read_text(stream, ("utf-8-sig", "latin-1")).splitlines()
        if not lines or not lines[0].startswith(_FIRST_LINE):
            raise ValueError("Does not appear to be an OziExplorer track file")
        if len(lines) < 6:
            raise ValueError(f"OziExplorer track header is truncated ({len(lines)} lines)")

        header_fields = lines[4].split(",")
        name = header_fields[3].strip() if len(header_fields) > 3 else ""

        positions: List[Position] = []
        for line_number, line in enumerate(lines[6:], 7):
            fields = [f.strip() for f in line.split(",")]
            if len(fields) < 2 or not fields[0]:
                continue
            try:
                lat = float(fields[0])
                lon = float(fields[1])
                altitude = float(fields[3]) if len(fields) > 3 and fields[3] else _NO_ALTITUDE
                days = float(fields[4]) if len(fields) > 4 and fields[4] else 0.0
            except ValueError:
                raise ValueError(f"Line {line_number} is not an OziExplorer track point: {line[:80]!r}")
            if not valid_coordinates(lon, lat):
                logger.warning(f"Skipping PLT line {line_number} out of valid range: lat={lat} lon={lon}")
                continue
            positions.append(
                Position(
                    longitude=lon,
                    latitude=lat,
                    elevation=None if altitude == _NO_ALTITUDE else altitude * _FEET,
                    time=_days_to_time(days),
                )
            )
        if positions:
            context.append_route(self.create_route(RouteCharacteristics.Track, name or None, positions))

    def write(self, route: Route, target: WriteTarget, start_index: int, end_index: int) -> None:
        positions = route.positions[start_index:end_index]
        name = (route.name or "").replace(",", " ")
        lines = [
            f"{_FIRST_LINE} Version 2.1",
            "WGS 84",
            "Altitude is in Feet",
            "Reserved 3",
            f"0,2,255,{name},0,0,2,8421376",
            str(len(positions)),
        ]
        for i, position in enumerate(positions):
            altitude = _NO_ALTITUDE if position.elevation is None else position.elevation / _FEET
            days = _time_to_days(position.time) if position.time is not None else 0.0
            date_text, time_text = "", ""
            if position.time is not None:
                utc = position.time.astimezone(timezone.utc)
                date_text, time_text = utc.strftime("%d-%b-%y"), utc.strftime("%H:%M:%S")
            lines.append(
                f"{position.latitude:.7f},{position.longitude:.7f},{1 if i == 0 else 0},"
                f"{altitude:.6f},{days:.7f},{date_text},{time_text}"
            )
        target.write(("\r\n".join(lines) + "\r\n").encode("latin-1", errors="replace"))
        target.flush()
