"""Detect command for Waypost CLI."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from waypost.commands.common import (
    AttemptPrinter,
    candidate_formats,
    console,
    load_validated_config,
    open_trace,
    print_routes,
    read_or_exit,
    require_input_file,
)
from waypost.core.parser import NavigationFormatParser
from waypost.core.registry import FormatRegistry


def detect(
    input_file: Path = typer.Argument(..., help="File to inspect"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Configuration file"),
    trace_file: Optional[Path] = typer.Option(None, "--trace", help="Write a JSON Lines trace of the detection"),
) -> None:
    """Detect the format of a file and list the routes it contains."""
    require_input_file(input_file)
    registry = FormatRegistry()
    cfg = load_validated_config(config_file, registry)

    console.print(f"\n[bold cyan]📂[/] Input file: [green]{input_file.name}[/]")
    with open_trace(trace_file or cfg.trace_file) as trace:
        parser = NavigationFormatParser(registry, trace=trace)
        printer = AttemptPrinter(console)
        parser.add_listener(printer)
        result = read_or_exit(parser, input_file, candidate_formats(registry, cfg, input_file))

    console.print(
        f"\n[bold green]✔[/] Detected [cyan]{result.format.name}[/] "
        f"after {len(printer.attempts)} attempt(s) with {len(result.routes)} route(s)"
    )
    print_routes(result)
