"""Output formatting utilities for Arbi CLI.

Human-readable tables and key/value listings via Rich, plus JSON
output for ``--json`` mode.
"""

import json
from datetime import datetime
from typing import Any, Dict

from rich.console import Console
from rich.json import JSON as RichJSON

# Default console for output
console = Console()

STATUS_STYLES = {
    "idle": "green",
    "running": "cyan",
    "error": "red",
}


def print_json(data: Any, console_instance: Console | None = None) -> None:
    """Print data as formatted JSON.

    Args:
        data: Data to print (must be JSON-serializable)
        console_instance: Optional custom console instance
    """
    prog_console = console_instance or console
    json_str = json.dumps(data, indent=2, default=str)
    prog_console.print(RichJSON(json_str))


def print_result(
    success: bool,
    message: str,
    details: Dict[str, Any] | None = None,
    console_instance: Console | None = None,
) -> None:
    """Print an operation result with a check or cross."""
    prog_console = console_instance or console

    icon = "[green]✓[/green]" if success else "[red]✗[/red]"
    prog_console.print(f"{icon} {message}")

    if details:
        for key, value in details.items():
            if value is not None:
                prog_console.print(f"  [dim]{key}:[/dim] {value}")


def print_key_value(
    data: Dict[str, Any],
    title: str | None = None,
    key_style: str = "cyan",
    console_instance: Console | None = None,
) -> None:
    """Print a dictionary as aligned key/value pairs."""
    prog_console = console_instance or console

    if title:
        prog_console.print(f"[bold]{title}[/bold]")
        prog_console.print()

    max_key_len = max(len(str(k)) for k in data.keys()) if data else 0

    for key, value in data.items():
        if isinstance(value, bool):
            formatted = "[green]Yes[/green]" if value else "[red]No[/red]"
        elif isinstance(value, (int, float)):
            formatted = f"[yellow]{value}[/yellow]"
        elif isinstance(value, datetime):
            formatted = value.strftime("%Y-%m-%d %H:%M:%S")
        else:
            formatted = str(value) if value is not None else "[dim]N/A[/dim]"

        padded_key = str(key).ljust(max_key_len)
        prog_console.print(f"  [{key_style}]{padded_key}[/{key_style}] : {formatted}")


def format_status(status: str) -> str:
    """Colour a job status for table output."""
    style = STATUS_STYLES.get(status)
    return f"[{style}]{status}[/{style}]" if style else status


def format_timestamp(value: str | None, default: str = "Never") -> str:
    """Render an ISO timestamp as ``YYYY-MM-DD HH:MM``."""
    if not value:
        return default
    try:
        return datetime.fromisoformat(value).strftime("%Y-%m-%d %H:%M")
    except ValueError:
        return value
