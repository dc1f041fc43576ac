"""
Typed failures raised by the read/convert/write engine.

Per-candidate decode failures never leave the trial loop; everything else
propagates to the caller carrying the name of the format involved.
"""

from __future__ import annotations

from typing import Optional


class WaypostError(Exception):
    """Base class for all engine failures."""

    def __init__(self, message: str, *, format_name: Optional[str] = None):
        super().__init__(message)
        self.format_name = format_name


class DecodeMismatch(WaypostError):
    """A candidate format could not decode the stream. Logged, never raised to callers."""


class StreamNotRewindable(WaypostError):
    """The stream cannot go back to its mark (no mark set, or read past the budget)."""


class CapacityOverflow(WaypostError):
    def __init__(self, format_name: str, *, required: int, available: int, per_output: int):
        super().__init__(
            f"Found {required} positions, {format_name} format may only contain "
            f"{per_output} positions in one position list "
            f"({available} available in the given outputs, {required - available} too many)",
            format_name=format_name,
        )
        self.required = required
        self.available = available
        self.per_output = per_output

    @property
    def overflow(self) -> int:
        return self.required - self.available


class EncodeFailure(WaypostError):
    def __init__(self, format_name: str, *, chunk_index: int, cause: BaseException):
        super().__init__(
            f"Failed to write chunk {chunk_index + 1} as {format_name}: {cause}",
            format_name=format_name,
        )
        self.chunk_index = chunk_index


class FormatCapabilityError(WaypostError):
    """A codec was asked for something it cannot do (e.g. several routes in one file)."""
