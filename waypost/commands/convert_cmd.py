"""Convert command for Waypost CLI."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer
from rich.table import Table

from waypost.commands.common import (
    candidate_formats,
    console,
    load_validated_config,
    open_trace,
    print_routes,
    read_or_exit,
    require_input_file,
)
from waypost.core.errors import WaypostError
from waypost.core.parser import NavigationFormatParser
from waypost.core.registry import FormatRegistry
from waypost.core.writer import number_of_files_to_write, numbered_output_paths
from waypost.utils.utils import ensure_output_dir, format_file_size, sanitize_filename


def _route_base_paths(output: Path, names: List[Optional[str]]) -> List[Path]:
    """One output path per route; several routes get their index and name appended to the stem."""
    if len(names) == 1:
        return [output]
    return [
        output.with_name(f"{output.stem}_{i}_{sanitize_filename(name or 'Route')}{output.suffix}")
        for i, name in enumerate(names, 1)
    ]


def convert(
    input_file: Path = typer.Argument(..., help="Input file in any supported format"),
    to_format: Optional[str] = typer.Option(
        None, "--to", "-t", help="Target format name or extension (default: from config, else gpx)"
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Output file (default: input name with the target extension)"
    ),
    duplicate_first_position: Optional[bool] = typer.Option(
        None,
        "--duplicate-first-position/--no-duplicate-first-position",
        help="Insert a copy of the first position, for formats that define such a rule",
    ),
    ignore_max_positions: Optional[bool] = typer.Option(
        None,
        "--ignore-max-positions/--respect-max-positions",
        help="Write all positions to one file even if the format allows fewer per file",
    ),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Configuration file"),
    trace_file: Optional[Path] = typer.Option(None, "--trace", help="Write a JSON Lines trace of the conversion"),
) -> None:
    """Convert a navigation file to another format, splitting it where the format requires."""
    require_input_file(input_file)
    registry = FormatRegistry()
    cfg = load_validated_config(config_file, registry)

    target_name = to_format or cfg.default_output_format
    codec = registry.format_by_name(target_name)
    if codec is None or not codec.supports_writing:
        console.print(f"[bold red]❌ Error:[/] '{target_name}' is not a writable format")
        console.print("[dim]Run 'waypost formats' to see all formats[/]")
        raise typer.Exit(1)

    duplicate = cfg.duplicate_first_position if duplicate_first_position is None else duplicate_first_position
    ignore = cfg.ignore_maximum_position_count if ignore_max_positions is None else ignore_max_positions

    if output is None:
        output = input_file.with_suffix(f".{codec.extension}")
    if output.resolve() == input_file.resolve():
        console.print("[bold red]❌ Error:[/] Output would overwrite the input file, use --output")
        raise typer.Exit(1)
    ensure_output_dir(output.parent)

    console.print(f"\n[bold cyan]📂[/] Input file: [green]{input_file.name}[/]")
    written: List[Path] = []
    with open_trace(trace_file or cfg.trace_file) as trace:
        parser = NavigationFormatParser(registry, trace=trace)
        result = read_or_exit(parser, input_file, candidate_formats(registry, cfg, input_file))
        console.print(f"[bold green]✔[/] Read [cyan]{result.format.name}[/] with {len(result.routes)} route(s)")
        print_routes(result)

        try:
            if len(result.routes) > 1 and codec.supports_multiple_routes:
                parser.write_routes(result.routes, codec, output)
                written.append(output)
            else:
                base_paths = _route_base_paths(output, [r.name for r in result.routes])
                for route, base_path in zip(result.routes, base_paths):
                    count = 1 if ignore else number_of_files_to_write(route, codec, duplicate)
                    paths = numbered_output_paths(base_path, count)
                    parser.write(
                        route,
                        codec,
                        *paths,
                        duplicate_first_position=duplicate,
                        ignore_maximum_position_count=ignore,
                    )
                    written.extend(paths)
        except WaypostError as e:
            console.print(f"\n[bold red]❌ Error writing {e.format_name or codec.name}:[/] {e}")
            raise typer.Exit(1)

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("File", style="green")
    table.add_column("Size", justify="right")
    for path in written:
        size = path.stat().st_size if path.exists() else 0
        table.add_row(str(path), format_file_size(size))
    console.print(f"\n[bold green]✔[/] Wrote {len(written)} {codec.name} file(s):")
    console.print(table)
