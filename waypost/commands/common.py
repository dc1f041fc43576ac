"""Helpers shared by the detect and convert commands."""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from waypost.core.config import WaypostConfig, load_config
from waypost.core.parser import NavigationFormatParser, ParserResult
from waypost.core.registry import FormatRegistry
from waypost.core.trace import TraceWriter
from waypost.io.base import FormatCodec

console = Console()


def load_validated_config(config_file: Optional[Path], registry: FormatRegistry) -> WaypostConfig:
    try:
        cfg = load_config(config_file)
        cfg.validate(registry)
    except ValueError as e:
        console.print(f"[bold red]❌ Invalid configuration:[/] {e}")
        raise typer.Exit(1)
    return cfg


def candidate_formats(registry: FormatRegistry, cfg: WaypostConfig, input_file: Path) -> List[FormatCodec]:
    """Formats preferred by the configuration, then by file extension, then the rest."""
    by_extension = registry.read_formats_preferred_by_extension(input_file.suffix)
    if not cfg.preferred_formats:
        return by_extension
    return registry.read_formats_preferred_by_name(cfg.preferred_formats, by_extension)


@contextmanager
def open_trace(trace_file: Optional[Path]) -> Iterator[Optional[TraceWriter]]:
    if trace_file is None:
        yield None
        return
    with TraceWriter(trace_file) as trace:
        yield trace


class AttemptPrinter:
    """Parser listener printing each candidate format as it is tried."""

    def __init__(self, console: Console):
        self._console = console
        self.attempts: List[str] = []

    def on_attempting_format(self, codec: FormatCodec) -> None:
        self.attempts.append(codec.name)
        self._console.print(f"[dim]   trying {codec.name}...[/]")


def require_input_file(input_file: Path) -> None:
    if not input_file.exists():
        console.print(f"\n[bold red]❌ Error:[/] File not found: {input_file}")
        raise typer.Exit(1)


def read_or_exit(parser: NavigationFormatParser, input_file: Path, formats: List[FormatCodec]) -> ParserResult:
    try:
        result = parser.read_file(input_file, formats)
    except OSError as e:
        console.print(f"\n[bold red]❌ Error reading file:[/] {e}")
        raise typer.Exit(1)
    if not result.successful:
        console.print(f"\n[bold red]❌ Error:[/] No format recognised {input_file.name}")
        raise typer.Exit(1)
    return result


def print_routes(result: ParserResult) -> None:
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Positions", justify="right")
    for i, route in enumerate(result.routes, 1):
        table.add_row(str(i), route.name or "", route.characteristics.value, str(route.position_count))
    console.print(table)
