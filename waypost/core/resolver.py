"""
Pick one target format for the routes of a read and convert them all to it.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence, Tuple

from waypost.core.comments import comment_routes
from waypost.io.base import FormatCodec
from waypost.model import Route, RouteCharacteristics

logger = logging.getLogger(__name__)


class RouteModelResolver:
    def __init__(self, default_multiple_routes_format: FormatCodec, *, trace: Any = None):
        self._default = default_multiple_routes_format
        self._trace = trace

    def determine_format(self, routes: Sequence[Route], preferred: FormatCodec) -> FormatCodec:
        result = preferred
        for route in routes:
            # same format as the routes read so far
            if result == route.format:
                continue
            # can store several routes in one file
            if result.supports_multiple_routes:
                continue
            # single route read via an external converter, represented by a container format
            if result.is_single_route_via_external_converter:
                continue
            result = self._default
        return result

    def resolve(
        self, routes: Sequence[Route], formats: Sequence[FormatCodec]
    ) -> Optional[Tuple[FormatCodec, List[Route]]]:
        """
        Returns (format, converted routes), or None when no format contributed.

        The returned list always holds at least one route and every route in it
        conforms to the returned format.
        """
        if not formats:
            return None

        target = self.determine_format(routes, formats[0])
        destination: List[Route] = target.convert_routes(routes)
        logger.info(
            f"Detected '{target.name}' with {len(destination)} route(s) and "
            f"{[r.position_count for r in destination]} positions"
        )
        if not destination:
            destination.append(target.create_route(RouteCharacteristics.Route, None, []))
        comment_routes(destination)

        if self._trace is not None:
            self._trace.emit(
                {
                    "event": "resolve.format",
                    "format": target.name,
                    "contributing": [f.name for f in formats],
                    "route_count": len(destination),
                }
            )
        return target, destination
