"""Per-read accumulation of decoded routes and the formats that produced them."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO, List, Optional

from waypost.model import Route

if TYPE_CHECKING:
    from waypost.core.parser import NavigationFormatParser
    from waypost.io.base import FormatCodec


class ParseContext:
    def __init__(
        self,
        source: Optional[Path] = None,
        start_time: Optional[datetime] = None,
        *,
        parser: Optional["NavigationFormatParser"] = None,
    ):
        self.source = source
        self.start_time = start_time
        self._parser = parser
        self._routes: List[Route] = []
        self._formats: List["FormatCodec"] = []

    @property
    def routes(self) -> List[Route]:
        return self._routes

    @property
    def formats(self) -> List["FormatCodec"]:
        return self._formats

    def append_route(self, route: Route) -> None:
        self._routes.append(route)

    def append_routes(self, routes: List[Route]) -> None:
        self._routes.extend(routes)

    def add_format(self, codec: "FormatCodec") -> None:
        self._formats.append(codec)

    def _bound_parser(self) -> "NavigationFormatParser":
        if self._parser is None:
            raise ValueError("ParseContext is not bound to a parser, nested reads are unavailable")
        return self._parser

    def parse(
        self,
        stream: BinaryIO,
        start_time: Optional[datetime] = None,
        preferred_extension: Optional[str] = None,
    ) -> None:
        """
        Decode data embedded in another format into this context.

        All read formats are tried on `stream`, those claiming `preferred_extension`
        first. `start_time` replaces the time hint of this context. Routes and
        formats found are appended here; the stream stays open.
        """
        self.start_time = start_time
        self._bound_parser().parse_into(self, stream, preferred_extension=preferred_extension)

    def parse_url(self, url: str) -> None:
        """Fetch `url` and decode it into this context."""
        self._bound_parser().parse_url_into(self, url)

    def __repr__(self) -> str:
        return (
            f"ParseContext(source={self.source!s}, routes={len(self._routes)}, "
            f"formats={[getattr(f, 'name', f) for f in self._formats]})"
        )
