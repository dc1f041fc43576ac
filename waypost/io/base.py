"""
Format codec interface.

A codec decodes a byte stream into routes and encodes routes back into bytes for
one file format. The engine (trial reader, resolver, chunked writer) talks to
codecs only through this interface; format-specific behaviour the engine needs
to know about is expressed as capability attributes rather than type checks.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO, Iterable, List, Optional, Sequence, Tuple, Union

from waypost.core.context import ParseContext
from waypost.core.errors import FormatCapabilityError
from waypost.core.stream import RewindableStream
from waypost.model import Position, Route, RouteCharacteristics

UNLIMITED_MAXIMUM_POSITION_COUNT = 2**31 - 1

WriteTarget = Union[BinaryIO, Path]


class FormatCodec(ABC):
    name: str = ""
    extensions: Tuple[str, ...] = ()

    maximum_position_count: int = UNLIMITED_MAXIMUM_POSITION_COUNT
    supports_reading: bool = True
    supports_writing: bool = True
    supports_multiple_routes: bool = False
    # read through an external converter, yet represented by a single-route container
    is_single_route_via_external_converter: bool = False
    forbids_duplicate_positions: bool = False
    requires_increasing_time: bool = False
    # split fragments get a name derived from their own positions
    names_fragments: bool = False
    # embeds output data in the target resource itself, so gets a Path, never a fresh stream
    writes_in_place: bool = False
    # decodes routes from a URL's own text, like a map service link
    parses_urls: bool = False
    supported_characteristics: Tuple[RouteCharacteristics, ...] = tuple(RouteCharacteristics)

    @property
    def extension(self) -> str:
        return self.extensions[0] if self.extensions else ""

    @abstractmethod
    def read(self, stream: RewindableStream, context: ParseContext) -> None:
        """Decode `stream`, appending every route found to `context`. Raise on malformed input."""

    def write(self, route: Route, target: WriteTarget, start_index: int, end_index: int) -> None:
        raise FormatCapabilityError(f"{self.name} does not support writing", format_name=self.name)

    def write_routes(self, routes: Sequence[Route], target: WriteTarget) -> None:
        raise FormatCapabilityError(
            f"{self.name} cannot store more than one route per file", format_name=self.name
        )

    def duplicate_first_position(self, route: Route) -> Optional[Position]:
        """Position to insert in front of the route when asked to; None if the format has no such rule."""
        return None

    def find_url(self, text: str) -> Optional[str]:
        """A route URL of this format found in `text`, or None. Formats that decode URLs set `parses_urls`."""
        return None

    def create_route(
        self,
        characteristics: RouteCharacteristics,
        name: Optional[str],
        positions: Iterable[Position],
    ) -> Route:
        return Route(format=self, characteristics=characteristics, name=name, positions=list(positions))

    def convert_route(self, route: Route) -> Route:
        """Return a new route conforming to this format; the given route is left untouched."""
        characteristics = route.characteristics
        if characteristics not in self.supported_characteristics:
            characteristics = self.supported_characteristics[0]
        result = self.create_route(characteristics, route.name, [p.copy() for p in route.positions])
        result.description = list(route.description)
        return result

    def convert_routes(self, routes: Iterable[Route]) -> List[Route]:
        return [self.convert_route(route) for route in routes]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FormatCodec):
            return NotImplemented
        return type(self) is type(other) and self.name == other.name

    def __hash__(self) -> int:
        return hash((type(self), self.name))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"

    def __str__(self) -> str:
        return self.name


def read_text(stream: RewindableStream, encodings: Sequence[str] = ("utf-8-sig",)) -> str:
    """Read the remaining stream and decode it with the first encoding that works."""
    data = stream.read()
    if not data:
        raise ValueError("Stream is empty")
    last_error: Optional[UnicodeDecodeError] = None
    for encoding in encodings:
        try:
            return data.decode(encoding)
        except UnicodeDecodeError as e:
            last_error = e
    raise ValueError(f"Cannot decode text as {', '.join(encodings)}: {last_error}")


def write_text(target: BinaryIO, text: str, encoding: str = "utf-8") -> None:
    target.write(text.encode(encoding))
    target.flush()


def valid_coordinates(longitude: float, latitude: float) -> bool:
    return -180 <= longitude <= 180 and -90 <= latitude <= 90
