"""
Format autodetection by trial.

Candidate codecs are tried in priority order against one rewindable stream. The
first candidate that adds at least one route to the context wins. A candidate
that raises is logged and skipped; one that decodes cleanly but finds nothing
is remembered as fallback, so a well-formed but empty file still has a format.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Sequence

from waypost.core.context import ParseContext
from waypost.core.errors import DecodeMismatch, StreamNotRewindable
from waypost.core.stream import RewindableStream
from waypost.io.base import FormatCodec

logger = logging.getLogger(__name__)

AttemptHook = Callable[[FormatCodec], None]


class FormatTrialReader:
    def __init__(self, *, on_attempt: Optional[AttemptHook] = None, trace: Any = None):
        self._on_attempt = on_attempt
        self._trace = trace

    def _emit(self, event: dict) -> None:
        if self._trace is not None:
            self._trace.emit(event)

    def read(
        self,
        stream: RewindableStream,
        candidates: Sequence[FormatCodec],
        context: ParseContext,
    ) -> Optional[FormatCodec]:
        """
        Try `candidates` in order against `stream`, which must already be marked.

        Returns the codec recorded as contributing format, or None when nothing
        matched. The stream wrapper is closed on return.
        """
        route_count_before = len(context.routes)
        first_successful: Optional[FormatCodec] = None
        winner: Optional[FormatCodec] = None

        try:
            for index, codec in enumerate(candidates):
                if self._on_attempt is not None:
                    self._on_attempt(codec)

                logger.debug(f"Trying to read with {codec.name}")
                self._emit({"event": "read.attempt", "idx": index, "format": codec.name})
                try:
                    codec.read(stream, context)
                    if first_successful is None:
                        first_successful = codec
                except Exception as e:
                    mismatch = DecodeMismatch(f"Error reading with {codec.name}: {e}", format_name=codec.name)
                    logger.error(str(mismatch))
                    self._emit({"event": "read.error", "idx": index, "format": codec.name, "error": str(e)})

                if len(context.routes) > route_count_before:
                    winner = codec
                    context.add_format(codec)
                    self._emit(
                        {
                            "event": "read.match",
                            "idx": index,
                            "format": codec.name,
                            "route_count": len(context.routes) - route_count_before,
                        }
                    )
                    break

                try:
                    stream.reset()
                except StreamNotRewindable as e:
                    logger.error(f"Cannot reset() stream to mark(): {e}")
                    self._emit({"event": "read.rewind_failed", "idx": index, "format": codec.name, "error": str(e)})
                    break
        finally:
            stream.close()

        if not context.routes and not context.formats and first_successful is not None:
            logger.debug(f"No routes found, falling back to first clean decode by {first_successful.name}")
            context.add_format(first_successful)
            self._emit({"event": "read.fallback", "format": first_successful.name})
            return first_successful

        return winner
