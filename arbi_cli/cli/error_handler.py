"""Global exception handling for Arbi CLI.

This module provides a decorator that ensures consistent error
reporting and exit codes across all CLI commands. The exception
classes themselves live in arbi_cli.exceptions so the scheduler and
the API can raise them without importing Typer.
"""

from functools import wraps
from typing import Callable, TypeVar, Any
import logging

import typer
from rich.console import Console

from arbi_cli.cli.exit_codes import ExitCode
from arbi_cli.exceptions import ArbiError

# Console for error output (stderr)
console = Console(stderr=True)

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def handle_errors(func: F) -> F:
    """Decorator for consistent error handling across CLI commands.

    It handles:

    - ArbiError subclasses: Display error message with appropriate exit code
    - KeyboardInterrupt: Show cancellation message with exit code 130
    - Other exceptions: Show generic error with option for verbose details

    Example:
        @app.command()
        @handle_errors
        def my_command():
            raise JobNotFoundError("opportunity-scan")
    """
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except ArbiError as e:
            logger.error(
                f"ArbiError: {e.message}",
                extra={"exit_code": e.exit_code, "details": e.details},
            )

            console.print(f"[red]Error:[/red] {e.message}")

            if e.details:
                for key, value in e.details.items():
                    console.print(f"  [dim]{key}:[/dim] {value}")

            raise typer.Exit(code=e.exit_code)

        except KeyboardInterrupt:
            console.print("\n[yellow]Operation cancelled by user.[/yellow]")
            logger.info("Operation cancelled by user (KeyboardInterrupt)")
            raise typer.Exit(code=ExitCode.CANCELLED)

        except typer.Exit:
            raise

        except Exception as e:
            logger.exception("Unexpected error occurred")

            console.print(f"[red]Unexpected error:[/red] {e}")
            console.print("[dim]Run with --verbose for more details[/dim]")

            raise typer.Exit(code=ExitCode.GENERAL_ERROR)

    return wrapper  # type: ignore[return-value]
