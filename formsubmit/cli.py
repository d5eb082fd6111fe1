"""CLI for formsubmit submission tooling."""

import json
from pathlib import Path
from typing import Annotated

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from formsubmit import __version__
from formsubmit.config import get_config_path, load_settings, write_default_config
from formsubmit.log import configure_logging
from formsubmit.merge import merge_errors
from formsubmit.trace import load_scenario, run_scenario

app = typer.Typer(
    name="formsubmit",
    help="Form submission orchestration tools.",
    no_args_is_help=True,
)
console = Console()

STATUS_STYLES = {"succeeded": "green", "failed": "yellow", "raised": "red"}


def version_callback(value: bool) -> None:
    if value:
        console.print(f"formsubmit version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", "-v", callback=version_callback, is_eager=True),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", "-l", help="Log level (default: from config)"),
    ] = None,
) -> None:
    """formsubmit: Form submission orchestration tools."""
    try:
        settings = load_settings()
        configure_logging(log_level or settings.log_level)
    except (ValueError, ValidationError) as e:
        console.print(f"[red]Error loading config:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def init(
    force: bool = typer.Option(
        False,
        "--force",
        help="Overwrite an existing config file",
    ),
) -> None:
    """Write a default config file.

    Creates ~/.config/formsubmit/config.yaml (or $FORMSUBMIT_HOME/config.yaml).
    """
    config_path = get_config_path()
    if config_path.exists() and not force:
        console.print(f"[yellow]Warning:[/yellow] Config already exists at {config_path}")
        console.print("Use --force to overwrite")
        raise typer.Exit(1)

    write_default_config(config_path)
    console.print(f"[green]✓[/green] Created config at {config_path}")


@app.command()
def trace(
    scenario_path: Annotated[
        Path,
        typer.Argument(help="Scenario file (JSON or YAML)"),
    ],
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Emit the outcome as JSON"),
    ] = False,
) -> None:
    """Replay a submission scenario and print the mutation trace."""
    if not scenario_path.exists():
        console.print(f"[red]Error:[/red] Scenario file not found: {scenario_path}")
        raise typer.Exit(1)

    try:
        scenario = load_scenario(scenario_path)
    except (ValueError, ValidationError, yaml.YAMLError) as e:
        console.print(f"[red]Invalid scenario:[/red] {e}")
        raise typer.Exit(1)

    outcome = run_scenario(scenario, load_settings())

    if as_json:
        typer.echo(json.dumps(outcome.to_dict(), indent=2))
        return

    table = Table(title=f"Trace: {scenario_path.name}")
    table.add_column("#", justify="right")
    table.add_column("Call", style="bold")
    table.add_column("Arguments")
    for i, call in enumerate(outcome.calls, 1):
        table.add_row(str(i), call.name, escape(", ".join(repr(arg) for arg in call.args)))
    console.print(table)

    style = STATUS_STYLES[outcome.status]
    mode = "deferred" if outcome.deferred else "immediate"
    console.print(f"\n[bold]Outcome:[/bold] [{style}]{outcome.status}[/{style}] ({mode})")
    if outcome.value is not None:
        console.print(f"  Value: {escape(repr(outcome.value))}")
    if outcome.error:
        console.print(f"  Error: {escape(outcome.error)}")


@app.command()
def merge(
    sync_path: Annotated[
        Path,
        typer.Argument(help="JSON file with sync errors"),
    ],
    async_path: Annotated[
        Path,
        typer.Argument(help="JSON file with async errors"),
    ],
) -> None:
    """Print the errors reported when submission is blocked by validation.

    Sync errors take precedence over async errors for the same field.
    """
    loaded = []
    for path in (sync_path, async_path):
        if not path.exists():
            console.print(f"[red]Error:[/red] File not found: {path}")
            raise typer.Exit(1)
        try:
            with open(path) as f:
                loaded.append(json.load(f))
        except json.JSONDecodeError as e:
            console.print(f"[red]Invalid JSON in {path}:[/red] {e}")
            raise typer.Exit(1)

    sync_errors, async_errors = loaded
    try:
        merged = merge_errors(async_errors, sync_errors)
    except TypeError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    typer.echo(json.dumps(merged, indent=2))


if __name__ == "__main__":
    app()
