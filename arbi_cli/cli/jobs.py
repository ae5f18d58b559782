"""Arbi jobs command - Inspect and control a running scheduler.

Every command except ``schedule`` talks to the daemon's management API
over HTTP; ``schedule`` works offline from the fixed cron table.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
import typer
from croniter import croniter
from rich.console import Console
from rich.table import Table

from arbi_cli.cli.error_handler import handle_errors
from arbi_cli.cli.exit_codes import ExitCode
from arbi_cli.cli.output import (
    format_status,
    format_timestamp,
    print_json,
    print_key_value,
    print_result,
)
from arbi_cli.exceptions import ArbiError, NetworkError, NotFoundError, ValidationError

app = typer.Typer(help="Inspect and control the recurring arbitrage jobs.")
console = Console()

API_PREFIX = "/api/cron"
REQUEST_TIMEOUT = 10.0

_URL_OPTION = typer.Option(
    None,
    "--url",
    "-u",
    envvar="ARBI_API_URL",
    help="Management API URL (default: from configuration).",
)


def _json_mode() -> bool:
    from arbi_cli.main import is_json

    return is_json()


def _quiet_mode() -> bool:
    from arbi_cli.main import is_quiet

    return is_quiet()


def _base_url(url: Optional[str]) -> str:
    if url:
        return url.rstrip("/")

    from arbi_cli.config import load_config

    config = load_config()
    return f"http://{config.server.host}:{config.server.port}"


def _api_request(
    method: str,
    path: str,
    url: Optional[str] = None,
    json: Optional[Dict[str, Any]] = None,
    params: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Call the management API and return the decoded body.

    Raises:
        NetworkError: If the daemon can not be reached
        NotFoundError: On 404
        ValidationError: On 422
        ArbiError: On any other error status
    """
    base_url = _base_url(url)
    try:
        with httpx.Client(base_url=base_url, timeout=REQUEST_TIMEOUT) as client:
            response = client.request(method, f"{API_PREFIX}{path}", json=json, params=params)
    except httpx.HTTPError as e:
        raise NetworkError(
            "Could not reach the Arbi daemon",
            details={"url": base_url, "error": str(e) or e.__class__.__name__},
        ) from e

    try:
        body = response.json()
    except ValueError:
        body = {}

    if response.status_code == 404:
        raise NotFoundError(body.get("error") or f"Not found: {path}")
    if response.status_code == 422:
        raise ValidationError("Invalid request", details={"detail": body.get("detail")})
    if response.is_error:
        raise ArbiError(
            body.get("error") or f"Management API returned {response.status_code}",
            details={"status_code": response.status_code},
        )
    return body


def _report(data: Dict[str, Any], default_message: str, details: Optional[Dict[str, Any]] = None) -> None:
    """Print a command acknowledgement unless --quiet is set."""
    if _json_mode():
        print_json(data)
    elif not _quiet_mode():
        print_result(True, data.get("message", default_message), details)


def _print_jobs_table(jobs: List[Dict[str, Any]], title: str = "Cron Jobs") -> None:
    table = Table(title=title)
    table.add_column("Name", style="cyan")
    table.add_column("Schedule", style="green")
    table.add_column("Enabled")
    table.add_column("Active")
    table.add_column("Status", style="bold")
    table.add_column("Runs", justify="right")
    table.add_column("Last Run")
    table.add_column("Next Run")
    table.add_column("Last Error", style="red")

    for job in jobs:
        table.add_row(
            job["name"],
            job["schedule"],
            "[green]yes[/green]" if job.get("enabled") else "[yellow]no[/yellow]",
            "[green]yes[/green]" if job.get("active") else "[dim]no[/dim]",
            format_status(job.get("status", "")),
            str(job.get("runCount", 0)),
            format_timestamp(job.get("lastRun")),
            format_timestamp(job.get("nextRun"), default="N/A"),
            job.get("lastError") or "",
        )

    console.print(table)


@app.command("status")
@handle_errors
def status(url: Optional[str] = _URL_OPTION) -> None:
    """Show every job's schedule and run state.

    Example:
        arbi jobs status
        arbi --json jobs status
    """
    data = _api_request("GET", "/status", url=url)

    if _json_mode():
        print_json(data)
        return

    if not data.get("isInitialized"):
        console.print("[yellow]Scheduler is not initialized[/yellow]")
    _print_jobs_table(data.get("jobs", []))


@app.command("health")
@handle_errors
def health(url: Optional[str] = _URL_OPTION) -> None:
    """Show aggregate scheduler health.

    Exits with a scheduler error code if any job is in error state.
    """
    data = _api_request("GET", "/health", url=url)

    if _json_mode():
        print_json(data)
    else:
        print_key_value(
            {
                "Status": data.get("status"),
                "Total jobs": data.get("totalJobs"),
                "Enabled": data.get("enabledJobs"),
                "Running": data.get("runningJobs"),
                "Errors": data.get("errorJobs"),
            },
            title="Scheduler Health",
        )

    if data.get("errorJobs"):
        raise typer.Exit(code=ExitCode.SCHEDULER_ERROR)


@app.command("start")
@handle_errors
def start(url: Optional[str] = _URL_OPTION) -> None:
    """Activate the triggers of all enabled jobs."""
    data = _api_request("POST", "/start", url=url)
    _report(data, "Cron jobs started")


@app.command("stop")
@handle_errors
def stop(url: Optional[str] = _URL_OPTION) -> None:
    """Deactivate all job triggers. Running jobs finish normally."""
    data = _api_request("POST", "/stop", url=url)
    _report(data, "Cron jobs stopped")


@app.command("enable")
@handle_errors
def enable(
    name: str = typer.Argument(..., help="Job name, e.g. opportunity-scan."),
    url: Optional[str] = _URL_OPTION,
) -> None:
    """Enable a job and activate its trigger."""
    data = _api_request("POST", f"/jobs/{name}/enable", url=url)
    _report(data, f"Job {name} enabled")


@app.command("disable")
@handle_errors
def disable(
    name: str = typer.Argument(..., help="Job name, e.g. opportunity-scan."),
    url: Optional[str] = _URL_OPTION,
) -> None:
    """Disable a job and deactivate its trigger."""
    data = _api_request("POST", f"/jobs/{name}/disable", url=url)
    _report(data, f"Job {name} disabled")


@app.command("run")
@handle_errors
def run_job(
    name: str = typer.Argument(..., help="Job name, e.g. opportunity-scan."),
    url: Optional[str] = _URL_OPTION,
) -> None:
    """Trigger a job immediately, outside its schedule.

    The daemon runs the job in the background; check the outcome with
    ``arbi jobs status`` or ``arbi jobs history``.
    """
    data = _api_request("POST", f"/jobs/{name}/run", url=url)
    _report(data, f"Job {name} triggered", {"at": data.get("result", {}).get("at")})


@app.command("configure")
@handle_errors
def configure(
    min_score: Optional[float] = typer.Option(None, "--min-score", min=0, help="Minimum opportunity score."),
    min_roi: Optional[float] = typer.Option(None, "--min-roi", min=0, help="Minimum ROI percentage."),
    min_profit: Optional[float] = typer.Option(None, "--min-profit", min=0, help="Minimum net profit."),
    max_price: Optional[float] = typer.Option(None, "--max-price", min=0, help="Maximum supplier price."),
    category: Optional[List[str]] = typer.Option(None, "--category", help="Category ID (repeatable)."),
    auto_buy: Optional[bool] = typer.Option(None, "--auto-buy/--no-auto-buy", help="Toggle auto-buy."),
    auto_buy_score: Optional[float] = typer.Option(None, "--auto-buy-score", min=0, help="Auto-buy score threshold."),
    daily_budget: Optional[float] = typer.Option(None, "--daily-budget", min=0, help="Daily auto-buy budget."),
    url: Optional[str] = _URL_OPTION,
) -> None:
    """Update scan parameters on the running daemon.

    Changes apply from the next job run.

    Example:
        arbi jobs configure --min-score 80 --max-price 150
    """
    changes: Dict[str, Any] = {
        "minScore": min_score,
        "minROI": min_roi,
        "minProfit": min_profit,
        "maxPrice": max_price,
        "categories": category or None,
        "autoBuyEnabled": auto_buy,
        "autoBuyScore": auto_buy_score,
        "dailyBudget": daily_budget,
    }
    changes = {k: v for k, v in changes.items() if v is not None}
    if not changes:
        raise ValidationError("No scan parameters given")

    data = _api_request("PUT", "/config", url=url, json=changes)
    if _json_mode():
        print_json(data)
        return
    print_result(True, data.get("message", "Configuration updated"), {"note": data.get("note")})
    print_key_value(data.get("config", {}), title="Scan Parameters")


@app.command("history")
@handle_errors
def history(
    job: Optional[str] = typer.Option(None, "--job", "-j", help="Only show this job."),
    limit: int = typer.Option(10, "--limit", "-n", min=1, max=1000, help="Number of results."),
    url: Optional[str] = _URL_OPTION,
) -> None:
    """Show recent job results."""
    params: Dict[str, Any] = {"limit": limit}
    if job:
        params["job"] = job
    data = _api_request("GET", "/history", url=url, params=params)

    if _json_mode():
        print_json(data)
        return

    table = Table(title=f"Job History{f' for {job}' if job else ''}")
    table.add_column("Job", style="cyan")
    table.add_column("Started", style="green")
    table.add_column("Result", style="bold")
    table.add_column("Details")

    for entry in data.get("history", []):
        if entry.get("skipped"):
            outcome = "[yellow]skipped[/yellow]"
            details = entry.get("error") or ""
        elif entry.get("success"):
            outcome = "[green]ok[/green]"
            details = str(entry.get("value") or "")
        else:
            outcome = "[red]failed[/red]"
            details = entry.get("error") or ""
        table.add_row(entry["jobName"], format_timestamp(entry.get("startedAt")), outcome, details)

    console.print(table)


@app.command("schedule")
@handle_errors
def schedule(
    count: int = typer.Option(3, "--count", "-n", min=1, max=20, help="Upcoming runs per job."),
) -> None:
    """Show the fixed cron table and upcoming run times (UTC).

    Does not need a running daemon.
    """
    from arbi_cli.scheduler.jobs import CRON_SCHEDULES, JOB_DESCRIPTIONS
    from arbi_cli.scheduler.models import JobKind

    now = datetime.now(timezone.utc)
    rows = []
    for kind in JobKind:
        cron = croniter(CRON_SCHEDULES[kind], now)
        upcoming = [cron.get_next(datetime) for _ in range(count)]
        rows.append({
            "name": kind.value,
            "schedule": CRON_SCHEDULES[kind],
            "description": JOB_DESCRIPTIONS[kind],
            "upcoming": [t.isoformat() for t in upcoming],
        })

    if _json_mode():
        print_json(rows)
        return

    table = Table(title="Cron Schedule (UTC)")
    table.add_column("Name", style="cyan")
    table.add_column("Schedule", style="green")
    table.add_column("Description")
    table.add_column("Upcoming")
    for row in rows:
        table.add_row(
            row["name"],
            row["schedule"],
            row["description"],
            "\n".join(format_timestamp(t) for t in row["upcoming"]),
        )
    console.print(table)
