"""
Read and write navigation files through the registered format codecs.

`NavigationFormatParser` wires the trial reader, the resolver and the chunked
writer together. Reads return a `ParserResult`; an unrecognised input gives an
unsuccessful (empty) result rather than an exception.
"""

from __future__ import annotations

import io
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, BinaryIO, Callable, List, Optional, Protocol, Sequence
from urllib.parse import unquote, urlparse
from urllib.request import url2pathname

import requests

from waypost.core.context import ParseContext
from waypost.core.registry import FormatRegistry
from waypost.core.resolver import RouteModelResolver
from waypost.core.stream import CHUNK_BUFFER_SIZE, RewindableStream
from waypost.core.trial import FormatTrialReader
from waypost.core.writer import ChunkedWriter, Target, WriteCallback
from waypost.io.base import FormatCodec
from waypost.model import Route

logger = logging.getLogger(__name__)

TOTAL_BUFFER_SIZE = 1024 * 1024

StreamOpener = Callable[[str], BinaryIO]


class ParserListener(Protocol):
    def on_attempting_format(self, codec: FormatCodec) -> None:
        """Called before each candidate format tries to decode."""
        ...


@dataclass
class ParserResult:
    format: Optional[FormatCodec] = None
    routes: List[Route] = field(default_factory=list)

    @property
    def successful(self) -> bool:
        return self.format is not None

    @property
    def the_route(self) -> Optional[Route]:
        return self.routes[0] if self.routes else None


def default_stream_opener(url: str) -> BinaryIO:
    response = requests.get(url, stream=True, timeout=30)
    response.raise_for_status()
    response.raw.decode_content = True
    return response.raw


def _file_from_url(url: str) -> Optional[Path]:
    parsed = urlparse(url)
    if parsed.scheme != "file":
        return None
    return Path(url2pathname(unquote(parsed.path)))


def _start_time_of(path: Path) -> datetime:
    return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)


class NavigationFormatParser:
    def __init__(
        self,
        registry: Optional[FormatRegistry] = None,
        *,
        stream_opener: StreamOpener = default_stream_opener,
        trace: Any = None,
    ):
        self._registry = registry or FormatRegistry()
        self._stream_opener = stream_opener
        self._trace = trace
        self._listeners: List[ParserListener] = []
        self._listeners_lock = threading.Lock()

    @property
    def registry(self) -> FormatRegistry:
        return self._registry

    def add_listener(self, listener: ParserListener) -> None:
        with self._listeners_lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: ParserListener) -> None:
        with self._listeners_lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _notify_attempting(self, codec: FormatCodec) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener.on_attempting_format(codec)

    # Reading

    def _create_result(self, context: ParseContext) -> ParserResult:
        resolver = RouteModelResolver(self._registry.default_multiple_routes_format(), trace=self._trace)
        resolved = resolver.resolve(context.routes, context.formats)
        if resolved is None:
            return ParserResult()
        target, routes = resolved
        return ParserResult(format=target, routes=routes)

    def _read(
        self,
        source: BinaryIO,
        formats: Sequence[FormatCodec],
        *,
        size_hint: int,
        start_time: Optional[datetime],
        path: Optional[Path],
    ) -> ParserResult:
        logger.debug(f"Reading '{path or source}' with a buffer of {size_hint} bytes by {len(formats)} formats")
        buffer = RewindableStream(source)
        try:
            # make sure not to read a byte after the limit
            buffer.mark(size_hint + CHUNK_BUFFER_SIZE * 2)
            context = ParseContext(source=path, start_time=start_time, parser=self)
            FormatTrialReader(on_attempt=self._notify_attempting, trace=self._trace).read(buffer, formats, context)
            return self._create_result(context)
        finally:
            buffer.close_underlying()

    def read_stream(
        self,
        source: BinaryIO,
        formats: Optional[Sequence[FormatCodec]] = None,
        *,
        size_hint: int = TOTAL_BUFFER_SIZE,
        start_time: Optional[datetime] = None,
        path: Optional[Path] = None,
    ) -> ParserResult:
        """Read from an open binary stream. The stream is closed afterwards."""
        if formats is None:
            formats = self._registry.read_formats()
        return self._read(source, formats, size_hint=size_hint, start_time=start_time, path=path)

    def read_bytes(self, data: bytes, formats: Optional[Sequence[FormatCodec]] = None) -> ParserResult:
        return self.read_stream(io.BytesIO(data), formats, size_hint=len(data))

    def read_text(self, text: str, formats: Optional[Sequence[FormatCodec]] = None) -> ParserResult:
        return self.read_bytes(text.encode("utf-8"), formats)

    def read_file(self, path: str | Path, formats: Optional[Sequence[FormatCodec]] = None) -> ParserResult:
        path = Path(path)
        if formats is None:
            formats = self._registry.read_formats_preferred_by_extension(path.suffix)
        logger.info(f"Reading '{path.resolve()}' by {len(formats)} formats")
        size_hint = path.stat().st_size
        start_time = _start_time_of(path)
        return self._read(open(path, "rb"), formats, size_hint=size_hint, start_time=start_time, path=path)

    def _url_parsing_format(self, url: str) -> Optional[FormatCodec]:
        for codec in self._registry.url_parsing_formats():
            if codec.find_url(url) is not None:
                return codec
        return None

    def read_url(self, url: str, formats: Optional[Sequence[FormatCodec]] = None) -> ParserResult:
        """
        Read the resource behind `url`.

        A URL that itself describes a route (see `FormatCodec.find_url`) is decoded
        from its own text, with the matching format tried first. `file:` URLs are
        read as local files; anything else is fetched through the stream opener.
        """
        url_format = self._url_parsing_format(url)
        if url_format is not None:
            candidates = list(formats) if formats is not None else self._registry.read_formats()
            candidates = [url_format] + [f for f in candidates if f != url_format]
            logger.info(f"Reading '{url}' as route URL of {url_format.name}")
            data = url.encode("utf-8")
            return self._read(io.BytesIO(data), candidates, size_hint=len(data), start_time=None, path=None)

        local = _file_from_url(url)
        if local is not None:
            return self.read_file(local, formats)
        if formats is None:
            formats = self._registry.read_formats_preferred_by_extension(Path(urlparse(url).path).suffix)
        logger.info(f"Reading '{url}' with a buffer of {TOTAL_BUFFER_SIZE} bytes")
        return self._read(
            self._stream_opener(url),
            formats,
            size_hint=TOTAL_BUFFER_SIZE,
            start_time=None,
            path=None,
        )

    # Nested reads, used by codecs through ParseContext

    def parse_into(
        self,
        context: ParseContext,
        source: BinaryIO,
        *,
        preferred_extension: Optional[str] = None,
    ) -> None:
        """Run the trial loop on `source` and collect into an existing context. `source` stays open."""
        formats = self._registry.read_formats_preferred_by_extension(preferred_extension)
        logger.debug(f"Reading embedded data by {len(formats)} formats")
        buffer = RewindableStream(source)
        buffer.mark(TOTAL_BUFFER_SIZE + CHUNK_BUFFER_SIZE * 2)
        FormatTrialReader(on_attempt=self._notify_attempting, trace=self._trace).read(buffer, formats, context)

    def parse_url_into(self, context: ParseContext, url: str) -> None:
        local = _file_from_url(url)
        if local is not None:
            context.start_time = _start_time_of(local)
            source: BinaryIO = open(local, "rb")
        else:
            context.start_time = None
            source = self._stream_opener(url)
        logger.debug(f"Reading referenced '{url}' into {context!r}")
        buffer = RewindableStream(source)
        try:
            buffer.mark(TOTAL_BUFFER_SIZE + CHUNK_BUFFER_SIZE * 2)
            FormatTrialReader(on_attempt=self._notify_attempting, trace=self._trace).read(
                buffer, self._registry.read_formats(), context
            )
        finally:
            buffer.close_underlying()

    # Writing

    def write(
        self,
        route: Route,
        codec: FormatCodec,
        *targets: Target,
        duplicate_first_position: bool = False,
        ignore_maximum_position_count: bool = False,
        callback: Optional[WriteCallback] = None,
    ) -> None:
        ChunkedWriter(trace=self._trace).write(
            route,
            codec,
            targets,
            duplicate_first_position=duplicate_first_position,
            ignore_maximum_position_count=ignore_maximum_position_count,
            callback=callback,
        )

    def write_routes(self, routes: Sequence[Route], codec: FormatCodec, target: Target) -> None:
        ChunkedWriter(trace=self._trace).write_routes(routes, codec, target)
