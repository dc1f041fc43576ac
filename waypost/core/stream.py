"""
Rewindable byte stream with an explicit rewind budget.

The trial loop hands the same stream to one candidate codec after another. A
mark is set once; every candidate may consume up to `budget` bytes past it and
the stream can still go back. Reading further than that drops the mark, and a
later `reset()` fails with `StreamNotRewindable` instead of silently replaying
truncated data.
"""

from __future__ import annotations

import logging
from typing import BinaryIO, Optional

from waypost.core.errors import StreamNotRewindable

logger = logging.getLogger(__name__)

CHUNK_BUFFER_SIZE = 8 * 1024


class RewindableStream:
    def __init__(self, source: BinaryIO, *, chunk_size: int = CHUNK_BUFFER_SIZE):
        self._source = source
        self._chunk_size = chunk_size
        # bytes read from the source since the mark; empty when no mark is set
        self._buffer = bytearray()
        self._cursor = 0
        self._budget: Optional[int] = None
        self._mark_invalid = False
        self._eof = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def mark(self, budget: int) -> None:
        """Remember the current position. Up to `budget` bytes may be read before `reset()` stops working."""
        if budget < 0:
            raise ValueError(f"Rewind budget must not be negative: {budget}")
        del self._buffer[: self._cursor]
        self._cursor = 0
        self._budget = budget
        self._mark_invalid = False

    def reset(self) -> None:
        if self._budget is None:
            raise StreamNotRewindable("Cannot reset() stream: no mark set")
        if self._mark_invalid:
            raise StreamNotRewindable(
                f"Cannot reset() stream to mark(): read past the rewind budget of {self._budget} bytes"
            )
        self._cursor = 0

    def tell(self) -> int:
        return self._cursor

    def _fill(self, wanted: int) -> None:
        """Make sure `wanted` bytes past the cursor are buffered, or the source is exhausted."""
        while not self._eof and len(self._buffer) - self._cursor < wanted:
            chunk = self._source.read(max(self._chunk_size, wanted))
            if not chunk:
                self._eof = True
                break
            self._buffer.extend(chunk)

    def _consume(self, count: int) -> bytes:
        data = bytes(self._buffer[self._cursor : self._cursor + count])
        self._cursor += len(data)
        if self._budget is not None and not self._mark_invalid and self._cursor > self._budget:
            logger.debug(f"Read {self._cursor} bytes past mark, exceeding budget of {self._budget}")
            self._mark_invalid = True
        if self._budget is None or self._mark_invalid:
            # nothing to rewind to, so nothing needs to stay buffered
            del self._buffer[: self._cursor]
            self._cursor = 0
        return data

    def read(self, size: int = -1) -> bytes:
        self._check_open()
        if size is None or size < 0:
            while not self._eof:
                self._fill(len(self._buffer) - self._cursor + self._chunk_size)
            return self._consume(len(self._buffer) - self._cursor)
        self._fill(size)
        return self._consume(min(size, len(self._buffer) - self._cursor))

    def readline(self) -> bytes:
        self._check_open()
        while True:
            newline = self._buffer.find(b"\n", self._cursor)
            if newline >= 0:
                return self._consume(newline + 1 - self._cursor)
            if self._eof:
                return self._consume(len(self._buffer) - self._cursor)
            self._fill(len(self._buffer) - self._cursor + self._chunk_size)

    def readable(self) -> bool:
        return True

    def _check_open(self) -> None:
        if self._closed:
            raise ValueError("I/O operation on closed stream")

    def close(self) -> None:
        """Release buffered data. The underlying source stays open, see `close_underlying()`."""
        self._closed = True
        self._buffer = bytearray()
        self._cursor = 0

    def close_underlying(self) -> None:
        self.close()
        try:
            self._source.close()
        except OSError as e:
            logger.warning(f"Could not close underlying stream: {e}")

    def __enter__(self) -> "RewindableStream":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close_underlying()
