"""Arbi config command - Configuration management."""

import os
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from arbi_cli.cli.error_handler import handle_errors
from arbi_cli.cli.exit_codes import ExitCode

app = typer.Typer(help="Manage Arbi configuration.")
console = Console()

SECTIONS = ("scheduler", "scan", "backend", "server", "logging")


def _config_path() -> Path:
    from arbi_cli.config import DEFAULT_CONFIG_DIR, DEFAULT_CONFIG_FILE

    config_dir = Path(os.environ.get("ARBI_CONFIG_DIR", DEFAULT_CONFIG_DIR))
    return config_dir / DEFAULT_CONFIG_FILE


@app.command("show")
@handle_errors
def show_config(
    section: Optional[str] = typer.Argument(
        None,
        help=f"Configuration section to show ({', '.join(SECTIONS)}).",
    ),
    format: str = typer.Option(
        "table",
        "--format",
        "-f",
        help="Output format (table, json).",
    ),
) -> None:
    """Show the effective configuration (file plus environment).

    Example:
        arbi config show
        arbi config show scheduler
        arbi config show --format json
    """
    from arbi_cli.config import _config_to_dict, export_config_json, load_config
    from arbi_cli.exceptions import ValidationError

    if section and section not in SECTIONS:
        raise ValidationError(
            f"Unknown configuration section: {section}",
            details={"sections": ", ".join(SECTIONS)},
        )

    config = load_config()

    if format == "json":
        console.print(Syntax(export_config_json(config), "json", theme="monokai"))
        return

    data = _config_to_dict(config)
    sections = [section] if section else list(SECTIONS)

    console.print(f"[bold]Configuration: {section}[/bold]" if section else "[bold]Arbi Configuration[/bold]")
    console.print()
    if not section:
        console.print(f"  [cyan]config_dir[/cyan] : {data['config_dir']}")
        console.print(f"  [cyan]data_dir[/cyan]   : {data['data_dir']}")
        console.print()

    for name in sections:
        table = Table(title=escape(f"[{name}]"), title_justify="left", show_header=False)
        table.add_column("Key", style="cyan")
        table.add_column("Value")
        for key, value in data[name].items():
            table.add_row(key, "" if value is None else str(value))
        console.print(table)


@app.command("path")
def config_path() -> None:
    """Show the configuration file location.

    Example:
        arbi config path
    """
    path = _config_path()
    console.print(f"[bold]Config directory:[/bold] {path.parent}")
    console.print(f"[bold]Config file:[/bold] {path}")
    console.print(f"[bold]Exists:[/bold] {path.exists()}")


@app.command("init")
@handle_errors
def init_config(
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite existing configuration.",
    ),
) -> None:
    """Write a configuration file with default values.

    Example:
        arbi config init
        arbi config init --force
    """
    from arbi_cli.config import ArbiConfig, ensure_directories, save_config

    path = _config_path()
    if path.exists() and not force:
        console.print(f"[yellow]Configuration already exists at {path}[/yellow]")
        console.print("Use --force to overwrite")
        raise typer.Exit(code=ExitCode.CONFIGURATION_ERROR)

    config = ArbiConfig()
    config.config_dir = path.parent
    if env_data_dir := os.environ.get("ARBI_DATA_DIR"):
        config.data_dir = Path(env_data_dir)

    ensure_directories(config)
    written = save_config(config, path)

    console.print(f"[green]✓[/green] Configuration written to {written}")
    console.print(f"  Data directory: {config.data_dir}")


@app.command("validate")
@handle_errors
def validate_config() -> None:
    """Validate the current configuration.

    Exits with a configuration error code if any check fails.

    Example:
        arbi config validate
    """
    from arbi_cli.config import load_config, validate_config as do_validate

    path = _config_path()
    console.print("[bold]Validating configuration...[/bold]")
    console.print()

    if path.exists():
        console.print(f"  [green]✓[/green] Config file found [dim]({path})[/dim]")
    else:
        console.print(f"  [yellow]![/yellow] No config file, using defaults [dim]({path})[/dim]")

    errors = do_validate(load_config())

    all_passed = True
    if errors:
        console.print()
        console.print("[bold yellow]Validation Results:[/bold yellow]")
        for error in errors:
            if error.severity == "error":
                status = "[red]✗[/red]"
                all_passed = False
            else:
                status = "[yellow]![/yellow]"
            console.print(f"  {status} {error}")

    console.print()
    if all_passed:
        console.print("[green]Configuration is valid[/green]")
    else:
        console.print("[red]Configuration has errors[/red]")
        raise typer.Exit(code=ExitCode.CONFIGURATION_ERROR)
