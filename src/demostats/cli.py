"""
demostats Command Line Interface

Commands:
- analyze: Compute the scoreboard for a demo file and export it
- init-config: Write a default configuration file
"""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn

from demostats import __version__
from demostats.core.config import configure_logging, write_default_config, load_config
from demostats.core.events import EventSourceError

app = typer.Typer(
    name="demostats",
    help="Per-player scoreboards (KDR, ADR, headshot %, flash assists) from CS2 demos",
    add_completion=False,
)
console = Console()
logger = logging.getLogger(__name__)

_state = {"verbose": False}


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"[bold blue]demostats[/bold blue] v{__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-V",
        help="Enable verbose output"
    )
) -> None:
    """demostats - CS2 demo scoreboard builder"""
    _state["verbose"] = verbose


@app.command()
def analyze(
    demo_path: Path = typer.Argument(
        ...,
        help="Path to the .dem file to analyze",
        exists=True,
        dir_okay=False,
        resolve_path=True,
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output file (format from extension: .json, .csv). Defaults to <demo>.json"
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Configuration file (.yaml, .toml, .json)"
    ),
    integer_adr: bool = typer.Option(
        False,
        "--integer-adr",
        help="Floor-divide damage by rounds when computing ADR"
    ),
) -> None:
    """Compute a demo's scoreboard and write it to a file."""
    from demostats.pipeline.orchestrator import analyze_demo

    try:
        config = load_config(config_file)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading config:[/red] {e}")
        raise typer.Exit(1)
    configure_logging(config.logging, verbose=_state["verbose"])
    if integer_adr:
        config.scoreboard.integer_adr = True

    if output is None:
        output = demo_path.with_suffix(f".{config.export.default_format}")

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task(f"Reading {demo_path.name}...", total=None)
        try:
            result = analyze_demo(demo_path, output=output, config=config)
        except (EventSourceError, ImportError, ValueError) as e:
            console.print(f"[red]Error analyzing demo:[/red] {e}")
            raise typer.Exit(1)
        progress.update(task, description="Scoreboard complete")

    console.print(
        f"[green]{result.player_count} players[/green], {result.rounds} rounds, "
        f"{result.incomplete_events} incomplete events skipped"
    )
    console.print(f"Saved to [bold]{result.output_path}[/bold]")


@app.command("init-config")
def init_config(
    path: Path = typer.Argument(
        Path("demostats.yaml"),
        help="Where to write the config (.yaml or .json)"
    ),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
) -> None:
    """Write a default configuration file."""
    if path.exists() and not force:
        console.print(f"[yellow]{path} already exists[/yellow] (use --force to overwrite)")
        raise typer.Exit(1)
    try:
        write_default_config(path)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    console.print(f"Wrote default config to [bold]{path}[/bold]")


if __name__ == "__main__":
    app()
