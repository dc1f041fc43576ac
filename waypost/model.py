"""
Canonical in-memory route model for Waypost.

Every format codec decodes into and encodes from these types. A `Route` always
knows which codec it currently conforms to; converting a route to another
format produces a new `Route` whose `format` is the target codec.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

if TYPE_CHECKING:
    from waypost.io.base import FormatCodec


class RouteCharacteristics(str, Enum):
    Route = "Route"
    Track = "Track"
    Waypoints = "Waypoints"


@dataclass
class Position:
    longitude: float
    latitude: float
    elevation: Optional[float] = None
    time: Optional[datetime] = None
    description: Optional[str] = None

    def same_location(self, other: "Position") -> bool:
        return self.longitude == other.longitude and self.latitude == other.latitude

    def copy(self) -> "Position":
        return Position(
            longitude=self.longitude,
            latitude=self.latitude,
            elevation=self.elevation,
            time=self.time,
            description=self.description,
        )


@dataclass
class Route:
    """
    An ordered sequence of positions conforming to one format.

    - `characteristics` tells whether this is a planned route, a recorded track
      or a plain waypoint list.
    - `description` holds free-form lines some formats carry in their header.
    """

    format: "FormatCodec"
    characteristics: RouteCharacteristics = RouteCharacteristics.Route
    name: Optional[str] = None
    positions: List[Position] = field(default_factory=list)
    description: List[str] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def position_count(self) -> int:
        return len(self.positions)

    def add(self, index: int, position: Position) -> None:
        self.positions.insert(index, position)

    def remove(self, index: int) -> Position:
        return self.positions.pop(index)

    def remove_duplicates(self) -> int:
        """Drop positions located exactly where their predecessor is. Returns the number removed."""
        if not self.positions:
            return 0
        kept: List[Position] = [self.positions[0]]
        for position in self.positions[1:]:
            if not position.same_location(kept[-1]):
                kept.append(position)
        removed = len(self.positions) - len(kept)
        self.positions[:] = kept
        return removed

    def ensure_increasing_time(self) -> None:
        """
        Make timestamps strictly increasing.

        A timestamp that is not after the previous known timestamp is moved to one
        second after it. Positions without time are left alone.
        """
        previous: Optional[datetime] = None
        for position in self.positions:
            if position.time is None:
                continue
            if previous is not None and position.time <= previous:
                position.time = previous + timedelta(seconds=1)
            previous = position.time

    def copy(self) -> "Route":
        return Route(
            format=self.format,
            characteristics=self.characteristics,
            name=self.name,
            positions=[p.copy() for p in self.positions],
            description=list(self.description),
            extra=dict(self.extra),
        )

    def __repr__(self) -> str:
        fmt = getattr(self.format, "name", self.format)
        return (
            f"Route(format={fmt!r}, characteristics={self.characteristics.value}, "
            f"name={self.name!r}, positions={self.position_count})"
        )
