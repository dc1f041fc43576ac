"""Formats command for Waypost CLI."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from waypost.core.registry import FormatRegistry
from waypost.io.base import UNLIMITED_MAXIMUM_POSITION_COUNT

console = Console()


def _yes_no(value: bool) -> str:
    return "[green]yes[/]" if value else "[dim]no[/]"


def formats() -> None:
    """List the registered formats in detection order, with their capabilities."""
    registry = FormatRegistry()

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Format")
    table.add_column("Extensions", style="green")
    table.add_column("Read", justify="center")
    table.add_column("Write", justify="center")
    table.add_column("Max positions", justify="right")
    table.add_column("Routes/file", justify="center")

    for i, codec in enumerate(registry.formats(), 1):
        maximum = codec.maximum_position_count
        table.add_row(
            str(i),
            codec.name,
            ", ".join(f".{e}" for e in codec.extensions),
            _yes_no(codec.supports_reading),
            _yes_no(codec.supports_writing),
            "unlimited" if maximum >= UNLIMITED_MAXIMUM_POSITION_COUNT else str(maximum),
            "many" if codec.supports_multiple_routes else "one",
        )

    console.print(table)
