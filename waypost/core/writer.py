"""
Write one route across one or more physical outputs.

Formats limit how many positions fit into one file. The chunked writer converts
the route to the target format, applies the format's pre-processing, checks the
positions fit into the given outputs and writes one contiguous slice per output.
Output paths for split writes are numbered `<stem>_1<suffix>`, `<stem>_2<suffix>`...
"""

from __future__ import annotations

import logging
import math
from contextlib import contextmanager
from pathlib import Path
from typing import Any, BinaryIO, Callable, Iterator, List, Optional, Sequence, Tuple, Union

from waypost.core.comments import comment_route, create_route_name
from waypost.core.errors import CapacityOverflow, EncodeFailure, FormatCapabilityError
from waypost.io.base import FormatCodec
from waypost.model import Route

logger = logging.getLogger(__name__)

Target = Union[BinaryIO, Path, str]
WriteCallback = Callable[[Route, FormatCodec], None]


def number_of_files_to_write(route: Route, codec: FormatCodec, duplicate_first_position: bool) -> int:
    positions = route.position_count + (1 if duplicate_first_position else 0)
    return max(1, math.ceil(positions / codec.maximum_position_count))


def numbered_output_paths(output_path: Path, count: int) -> List[Path]:
    """`[output_path]` for one file, else `<stem>_1<suffix>` ... `<stem>_<count><suffix>`."""
    output_path = Path(output_path)
    if count <= 1:
        return [output_path]
    return [output_path.with_name(f"{output_path.stem}_{i}{output_path.suffix}") for i in range(1, count + 1)]


@contextmanager
def _open_target(target: Target, codec: FormatCodec) -> Iterator[Any]:
    if codec.writes_in_place:
        if not isinstance(target, (str, Path)):
            raise FormatCapabilityError(
                f"{codec.name} modifies its target in place and needs a file path", format_name=codec.name
            )
        yield Path(target)
    elif isinstance(target, (str, Path)):
        with open(target, "wb") as fh:
            yield fh
    else:
        # caller owns the stream
        yield target


def _describe_target(target: Target) -> str:
    if isinstance(target, (str, Path)):
        return str(Path(target).resolve())
    return getattr(target, "name", None) or type(target).__name__


class ChunkedWriter:
    def __init__(self, *, trace: Any = None):
        self._trace = trace

    def _preprocess(
        self,
        route_to_write: Route,
        codec: FormatCodec,
        duplicate_first_position: bool,
        callback: Optional[WriteCallback],
    ) -> bool:
        """Returns True when a duplicate first position was inserted."""
        inserted = False
        if codec.forbids_duplicate_positions:
            removed = route_to_write.remove_duplicates()
            if removed:
                logger.debug(f"Removed {removed} duplicate position(s) for {codec.name}")
        if duplicate_first_position:
            position = codec.duplicate_first_position(route_to_write)
            if position is not None:
                route_to_write.add(0, position)
                inserted = True
        if codec.requires_increasing_time:
            route_to_write.ensure_increasing_time()
        if callback is not None:
            callback(route_to_write, codec)
        return inserted

    @staticmethod
    def _rename_fragment(
        route: Route,
        route_to_write: Route,
        codec: FormatCodec,
        start_index: int,
        end_index: int,
        fragment_index: int,
        fragment_count: int,
    ) -> None:
        if not (getattr(route.format, "names_fragments", False) or codec.names_fragments):
            return
        name = create_route_name(route_to_write.positions[start_index:end_index])
        if fragment_count > 1:
            name = f"Track{fragment_index + 1}: {name}"
        route_to_write.name = name

    def write(
        self,
        route: Route,
        codec: FormatCodec,
        targets: Sequence[Target],
        *,
        duplicate_first_position: bool = False,
        ignore_maximum_position_count: bool = False,
        callback: Optional[WriteCallback] = None,
    ) -> List[Tuple[int, int]]:
        """
        Write `route` as `codec` across `targets`, one slice per target.

        Paths are opened (and closed) one at a time; streams are written but left
        open. Returns the `(start_index, end_index)` slice written to each target.

        Raises:
          CapacityOverflow: the positions do not fit into the given targets
          EncodeFailure: a chunk failed; earlier chunks stay written
        """
        if not targets:
            raise ValueError("At least one output target is required")
        if not codec.supports_writing:
            raise FormatCapabilityError(f"{codec.name} does not support writing", format_name=codec.name)

        logger.info(
            f"Writing '{codec.name}' position lists with 1 route and {route.position_count} positions"
        )
        route_to_write = codec.convert_route(route)
        comment_route(route_to_write)
        inserted = self._preprocess(route_to_write, codec, duplicate_first_position, callback)

        total = route_to_write.position_count
        capacity = total if ignore_maximum_position_count else codec.maximum_position_count
        if not ignore_maximum_position_count and total > len(targets) * capacity:
            raise CapacityOverflow(
                codec.name,
                required=total,
                available=len(targets) * capacity,
                per_output=capacity,
            )

        slices: List[Tuple[int, int]] = []
        for i, target in enumerate(targets):
            start_index = min(i * capacity, total)
            end_index = min(start_index + capacity, total)
            self._rename_fragment(route, route_to_write, codec, start_index, end_index, i, len(targets))
            try:
                with _open_target(target, codec) as out:
                    codec.write(route_to_write, out, start_index, end_index)
            except FormatCapabilityError:
                raise
            except Exception as e:
                raise EncodeFailure(codec.name, chunk_index=i, cause=e) from e
            logger.info(f"Wrote position list from {start_index} to {end_index} to {_describe_target(target)}")
            if self._trace is not None:
                self._trace.emit(
                    {
                        "event": "write.chunk",
                        "idx": i,
                        "format": codec.name,
                        "start": start_index,
                        "end": end_index,
                        "name": route_to_write.name,
                    }
                )
            slices.append((start_index, end_index))

        if inserted:
            route_to_write.remove(0)
        return slices

    def write_routes(self, routes: Sequence[Route], codec: FormatCodec, target: Target) -> None:
        """Write several routes into one output of a multi-route format."""
        if not codec.supports_multiple_routes:
            raise FormatCapabilityError(
                f"{codec.name} cannot store more than one route per file", format_name=codec.name
            )
        logger.info(
            f"Writing '{codec.name}' with {len(routes)} routes and "
            f"{[r.position_count for r in routes]} positions"
        )
        routes_to_write: List[Route] = []
        for route in routes:
            route_to_write = codec.convert_route(route)
            comment_route(route_to_write)
            self._preprocess(route_to_write, codec, False, None)
            routes_to_write.append(route_to_write)

        try:
            with _open_target(target, codec) as out:
                codec.write_routes(routes_to_write, out)
        except FormatCapabilityError:
            raise
        except Exception as e:
            raise EncodeFailure(codec.name, chunk_index=0, cause=e) from e
        logger.info(f"Wrote '{_describe_target(target)}'")
        if self._trace is not None:
            self._trace.emit({"event": "write.routes", "format": codec.name, "route_count": len(routes_to_write)})
