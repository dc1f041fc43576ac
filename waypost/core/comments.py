"""Generated descriptions for positions and names for routes that carry none."""

from __future__ import annotations

from typing import List, Sequence

from waypost.model import Position, Route


def comment_positions(positions: List[Position]) -> None:
    for index, position in enumerate(positions):
        if not (position.description or "").strip():
            position.description = f"Position {index + 1}"


def create_route_name(positions: Sequence[Position]) -> str:
    if not positions:
        return "Empty route"
    first = (positions[0].description or "").strip() or "Position 1"
    if len(positions) == 1:
        return first
    last = (positions[-1].description or "").strip() or f"Position {len(positions)}"
    return f"{first} to {last}"


def comment_route_name(route: Route) -> None:
    if not (route.name or "").strip():
        route.name = create_route_name(route.positions)


def comment_route(route: Route) -> None:
    comment_positions(route.positions)
    comment_route_name(route)


def comment_routes(routes: Sequence[Route]) -> None:
    for route in routes:
        comment_positions(route.positions)
    for route in routes:
        comment_route_name(route)
