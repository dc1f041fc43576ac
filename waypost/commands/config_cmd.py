"""Config command for Waypost CLI."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from waypost.core.config import WaypostConfig, load_config
from waypost.core.registry import FormatRegistry

app = typer.Typer()
console = Console()


@app.command("show")
def show(config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Configuration file")):
    """Show current configuration."""
    try:
        cfg = load_config(config_file)
    except ValueError as e:
        console.print(f"[bold red]❌ Invalid configuration:[/] {e}")
        raise typer.Exit(1)
    summary = cfg.get_config_summary()

    console.print("\n[bold]Current Configuration:[/]")
    console.print(f"  Loaded from: [cyan]{summary['source'] or 'built-in defaults'}[/]")
    console.print(f"  Preferred formats: [cyan]{', '.join(summary['preferred_formats']) or 'none'}[/]")
    console.print(f"  Default output format: [cyan]{summary['default_output_format']}[/]")
    console.print(
        f"  Duplicate first position: [cyan]{'Enabled' if summary['duplicate_first_position'] else 'Disabled'}[/]"
    )
    console.print(
        f"  Ignore maximum position count: "
        f"[cyan]{'Enabled' if summary['ignore_maximum_position_count'] else 'Disabled'}[/]"
    )
    console.print(f"  Trace file: [cyan]{summary['trace_file'] or 'none'}[/]")
    console.print()


@app.command("export")
def export(
    output_path: Path = typer.Option(Path("waypost_config.yaml"), "--output", "-o", help="Where to write the template"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
):
    """Export configuration template."""
    if output_path.exists() and not force:
        console.print(f"[bold red]❌ Error:[/] {output_path} already exists, use --force to overwrite it")
        raise typer.Exit(1)
    WaypostConfig().export_template(output_path)
    console.print(f"[bold green]✔[/] Configuration template exported to [underline]{output_path}[/]")
    console.print("[dim]Edit this file to customize format preferences[/]")


@app.command("validate")
def validate(config_file: Path = typer.Argument(..., help="Config file to validate")):
    """Validate a configuration file."""
    if not config_file.exists():
        console.print(f"[bold red]❌ Error:[/] File not found: {config_file}")
        raise typer.Exit(1)
    try:
        cfg = load_config(config_file)
        cfg.validate(FormatRegistry())
    except ValueError as e:
        console.print(f"[bold red]❌ Invalid configuration:[/] {e}")
        raise typer.Exit(1)
    console.print(f"[bold green]✔[/] Configuration file is valid: [underline]{config_file}[/]")
    summary = cfg.get_config_summary()
    console.print(f"  Preferred formats: {', '.join(summary['preferred_formats']) or 'none'}")
    console.print(f"  Default output format: {summary['default_output_format']}")
