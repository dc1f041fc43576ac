#!/usr/bin/env python3
"""
Waypost - navigation file format converter
Main CLI entry point
"""

from __future__ import annotations

import logging

import typer

from waypost.commands import config_cmd, convert_cmd, detect_cmd, formats_cmd

app = typer.Typer(
    name="waypost",
    help="Detect, read and convert GPS navigation files between formats",
    no_args_is_help=True,
    add_completion=True,
)

app.command(name="formats", help="List supported formats")(formats_cmd.formats)
app.command(name="detect", help="Detect the format of a file")(detect_cmd.detect)
app.command(name="convert", help="Convert a file to another format")(convert_cmd.convert)

app.add_typer(config_cmd.app, name="config", help="Manage configuration settings")


@app.callback()
def callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log format detection and writing details"),
) -> None:
    """
    Waypost - navigation file format converter

    Commands:
      formats  - List formats in detection order with their capabilities
      detect   - Find the format of a file and list its routes
      convert  - Convert a file, splitting it where the target format requires

    Utilities:
      config   - Manage configuration settings
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
