"""Arbi run command - Start the scheduler daemon."""

import asyncio
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from arbi_cli.cli.error_handler import handle_errors
from arbi_cli.cli.exit_codes import ExitCode

app = typer.Typer(help="Start the Arbi scheduler daemon and its management API.")
console = Console()


def _log_level(level_name: str, verbose: bool) -> int:
    """Resolve a configured level name; --verbose forces DEBUG."""
    if verbose:
        return logging.DEBUG
    return getattr(logging, level_name.upper(), logging.INFO)


def setup_logging(
    level: int,
    format_str: str,
    log_file: Optional[Path] = None,
    console_output: bool = True,
) -> None:
    """Configure root logging for the CLI and the daemon process.

    Args:
        level: Root log level
        format_str: Log record format
        log_file: Optional log file path
        console_output: Also log to stderr
    """
    handlers: list[logging.Handler] = []
    if console_output:
        handlers.append(logging.StreamHandler(sys.stderr))
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))
    if not handlers:
        handlers.append(logging.NullHandler())

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=handlers,
        force=True,
    )
    # APScheduler logs every trigger at INFO
    logging.getLogger("apscheduler").setLevel(logging.DEBUG if level <= logging.DEBUG else logging.WARNING)


_CONFIG_OPTION = typer.Option(
    None,
    "--config",
    "-c",
    help="Path to configuration file.",
    exists=True,
    file_okay=True,
    dir_okay=False,
    resolve_path=True,
)


@app.callback(invoke_without_command=True)
@handle_errors
def run(
    ctx: typer.Context,
    config_file: Optional[Path] = _CONFIG_OPTION,
    daemon: bool = typer.Option(
        False,
        "--daemon",
        "-d",
        help="Run in background as daemon.",
    ),
    host: Optional[str] = typer.Option(
        None,
        "--host",
        help="Management API bind address.",
    ),
    port: Optional[int] = typer.Option(
        None,
        "--port",
        "-p",
        help="Management API port.",
        min=1,
        max=65535,
    ),
    no_autostart: bool = typer.Option(
        False,
        "--no-autostart",
        help="Register jobs but leave their triggers inactive.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging.",
    ),
) -> None:
    """Start the Arbi daemon.

    The daemon registers the six recurring jobs, starts the enabled
    ones and serves the management API until SIGINT or SIGTERM.

    Example:
        arbi run
        arbi run --daemon --port 8400
        arbi run --no-autostart --verbose
    """
    if ctx.invoked_subcommand is not None:
        return

    from arbi_cli.config import ensure_directories, load_config
    from arbi_cli.daemon.pid import PIDFile
    from arbi_cli.daemon.service import daemonize, run_daemon

    config = load_config(config_file)
    if host:
        config.server.host = host
    if port:
        config.server.port = port
    if no_autostart:
        config.scheduler.autostart = False
    ensure_directories(config)

    pid_file = PIDFile(config.pid_file)
    if pid_file.is_running():
        console.print("[red]Error: Daemon is already running[/red]")
        console.print(f"[yellow]PID: {pid_file.read()}[/yellow]")
        raise typer.Exit(code=ExitCode.SCHEDULER_ERROR)
    pid_file.clear_if_stale()

    console.print("[bold green]Starting Arbi daemon...[/bold green]")
    if verbose:
        console.print(f"Config: {config_file or 'default'}")
        console.print(f"Management API: http://{config.server.host}:{config.server.port}")
        console.print(f"Backend: {config.backend.base_url}")
        console.print(f"Autostart: {config.scheduler.autostart}")
        console.print(f"Daemon mode: {daemon}")

    log_file = config.logging.file
    if daemon and log_file is None:
        log_file = config.data_dir / "daemon.log"
    level = _log_level(config.logging.level, verbose)
    # A daemon's stderr is redirected into log_file
    setup_logging(level, config.logging.format, log_file, console_output=not daemon)

    if daemon:
        if sys.platform == "win32":
            console.print("[yellow]Warning: Daemon mode not supported on Windows, running in foreground[/yellow]")
        else:
            console.print("[dim]Forking to background...[/dim]")
            daemonize(log_file)

    with pid_file:
        try:
            asyncio.run(run_daemon(config, {}))
        except KeyboardInterrupt:
            console.print("\n[yellow]Interrupted by user[/yellow]")


@app.command()
@handle_errors
def status(config_file: Optional[Path] = _CONFIG_OPTION) -> None:
    """Check whether the daemon process is running.

    Example:
        arbi run status
    """
    from arbi_cli.config import load_config
    from arbi_cli.daemon.pid import PIDFile

    config = load_config(config_file)
    pid_file = PIDFile(config.pid_file)

    if pid_file.is_running():
        console.print(f"[green]● Daemon is running[/green] (PID: {pid_file.read()})")
        console.print(f"  Management API: http://{config.server.host}:{config.server.port}")
        console.print(f"  Data directory: {config.data_dir}")
        return

    console.print("[yellow]○ Daemon is not running[/yellow]")
    if pid_file.clear_if_stale():
        console.print("[dim]  (removed stale PID file)[/dim]")


@app.command()
@handle_errors
def stop(
    config_file: Optional[Path] = _CONFIG_OPTION,
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Force kill the daemon (SIGKILL).",
    ),
) -> None:
    """Signal the daemon to shut down.

    Sends SIGTERM for a graceful shutdown, or SIGKILL with --force.

    Example:
        arbi run stop
    """
    from arbi_cli.config import load_config
    from arbi_cli.daemon.pid import PIDFile

    config = load_config(config_file)
    pid_file = PIDFile(config.pid_file)

    pid = pid_file.read()
    if pid is None:
        console.print("[yellow]Daemon is not running (no PID file found)[/yellow]")
        return

    if not pid_file.is_running():
        console.print("[yellow]Daemon is not running (stale PID file)[/yellow]")
        pid_file.remove()
        return

    sig = signal.SIGKILL if force else signal.SIGTERM
    try:
        os.kill(pid, sig)
    except ProcessLookupError:
        console.print("[yellow]Daemon process not found (already stopped)[/yellow]")
        pid_file.remove()
        return
    except PermissionError:
        console.print(f"[red]Permission denied: cannot signal process {pid}[/red]")
        raise typer.Exit(code=ExitCode.GENERAL_ERROR)

    if force:
        console.print(f"[red]Force killed daemon (PID: {pid})[/red]")
        pid_file.remove()
    else:
        console.print(f"[green]Shutdown signal sent to daemon (PID: {pid})[/green]")
