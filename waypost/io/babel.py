"""
Formats handled by the external `gpsbabel` converter.

Input is piped through `gpsbabel -i <format> -f - -o gpx -F -` and the resulting
GPX decoded; writing goes the other way. Such a format holds one route per file
but its routes are represented by GPX, so routes read through it may be kept
together under it.
"""

from __future__ import annotations

import io
import logging
import shutil
import subprocess
from typing import List, Optional, Sequence, Tuple

from waypost.core.context import ParseContext
from waypost.core.stream import RewindableStream
from waypost.io.base import FormatCodec, WriteTarget
from waypost.io.gpx import Gpx11Format
from waypost.model import Route

logger = logging.getLogger(__name__)

GPSBABEL = "gpsbabel"

# (gpsbabel format, display name, extensions, writable)
DEFAULT_BABEL_FORMATS: Tuple[Tuple[str, str, Tuple[str, ...], bool], ...] = (
    ("gdb", "Garmin MapSource (gdb)", ("gdb",), True),
    ("garmin_fit", "Garmin FIT", ("fit",), False),
)


class BabelFormat(FormatCodec):
    is_single_route_via_external_converter = True

    def __init__(
        self,
        babel_format: str,
        name: str,
        extensions: Sequence[str] = (),
        *,
        writable: bool = True,
        executable: Optional[str] = None,
    ):
        self.babel_format = babel_format
        self.name = name
        self.extensions = tuple(extensions)
        self.supports_writing = writable
        self._executable = executable or GPSBABEL
        self._gpx = Gpx11Format()

    @staticmethod
    def is_available(executable: str = GPSBABEL) -> bool:
        return shutil.which(executable) is not None

    def _run(self, args: List[str], data: bytes) -> bytes:
        command = [self._executable, *args]
        logger.debug(f"Running {' '.join(command)}")
        completed = subprocess.run(command, input=data, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
        if completed.returncode != 0:
            message = completed.stderr.decode("utf-8", errors="replace").strip()
            raise ValueError(f"gpsbabel failed converting {self.babel_format} (exit {completed.returncode}): {message}")
        return completed.stdout

    def read(self, stream: RewindableStream, context: ParseContext) -> None:
        data = stream.read()
        if not data:
            raise ValueError(f"{self.name} stream is empty")
        gpx = self._run(["-i", self.babel_format, "-f", "-", "-o", "gpx", "-F", "-"], data)

        converted = ParseContext(source=context.source, start_time=context.start_time)
        gpx_stream = RewindableStream(io.BytesIO(gpx))
        try:
            self._gpx.read(gpx_stream, converted)
        finally:
            gpx_stream.close_underlying()
        for route in converted.routes:
            context.append_route(self.create_route(route.characteristics, route.name, route.positions))

    def write(self, route: Route, target: WriteTarget, start_index: int, end_index: int) -> None:
        gpx = io.BytesIO()
        self._gpx.write(route, gpx, start_index, end_index)
        target.write(self._run(["-i", "gpx", "-f", "-", "-o", self.babel_format, "-F", "-"], gpx.getvalue()))
        target.flush()


def default_babel_formats() -> List[BabelFormat]:
    return [
        BabelFormat(babel_format, name, extensions, writable=writable)
        for babel_format, name, extensions, writable in DEFAULT_BABEL_FORMATS
    ]
