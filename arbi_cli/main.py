"""Main CLI entry point for Arbi."""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from arbi_cli import __app_name__, __version__
from arbi_cli.cli import config, jobs, run
from arbi_cli.cli.exit_codes import ExitCode

app = typer.Typer(
    name=__app_name__,
    help="Arbi - cron-driven arbitrage job scheduler.",
    add_completion=True,
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEBUG_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"

app.add_typer(run.app, name="run")
app.add_typer(jobs.app, name="jobs")
app.add_typer(config.app, name="config")

# Global state for CLI options
_global_state: dict[str, bool] = {
    "verbose": False,
    "debug": False,
    "json": False,
    "quiet": False,
}


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"{__app_name__} v{__version__}")
        raise typer.Exit(code=ExitCode.SUCCESS)


def _log_level(verbose: bool, debug: bool, quiet: bool) -> int:
    if debug:
        return logging.DEBUG
    if verbose:
        return logging.INFO
    if quiet:
        return logging.ERROR
    return logging.WARNING


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-V",
        help="Enable verbose output (INFO level logging).",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug mode (DEBUG level logging).",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in JSON format where applicable.",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress non-error output.",
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        help="Also write logs to this file.",
    ),
) -> None:
    """Arbi - cron-driven arbitrage job scheduler.

    Runs six recurring jobs (opportunity scan, autonomous listing,
    order fulfillment, cleanup, daily reset, payout processing) and
    exposes a management API to control them.

    [bold]Core Commands:[/bold]

    • [cyan]run[/cyan] - Start the scheduler daemon
    • [cyan]jobs[/cyan] - Inspect and control jobs on a running daemon
    • [cyan]config[/cyan] - Manage configuration

    [bold]Examples:[/bold]

        arbi run --daemon
        arbi jobs status
        arbi jobs run opportunity-scan
        arbi --json jobs health
    """
    _global_state["verbose"] = verbose
    _global_state["debug"] = debug
    _global_state["json"] = json_output
    _global_state["quiet"] = quiet

    if quiet and (verbose or debug):
        console.print("[red]Error:[/red] --quiet can not be combined with --verbose or --debug")
        raise typer.Exit(code=ExitCode.INVALID_ARGUMENT)

    run.setup_logging(
        _log_level(verbose, debug, quiet),
        DEBUG_LOG_FORMAT if debug else LOG_FORMAT,
        log_file,
    )

    logger = logging.getLogger(__name__)
    logger.debug(f"Arbi CLI v{__version__} starting")


def is_json() -> bool:
    """Check if JSON output mode is enabled."""
    return _global_state.get("json", False)


def is_quiet() -> bool:
    return _global_state.get("quiet", False)


__all__ = [
    "app",
    "console",
    "is_json",
    "is_quiet",
]


if __name__ == "__main__":
    app()
