"""Management routes for the cron scheduler.

All routes live under ``/api/cron``. Unknown job names surface as 404
through the app's NotFoundError handler; every other ArbiError becomes
a 500 with ``{"success": false, "error": ...}``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictStr

from arbi_cli.exceptions import ArbiError, JobNotFoundError
from arbi_cli.scheduler.job_scheduler import CronScheduler
from arbi_cli.scheduler.jobs import SCHEDULE_LABELS
from arbi_cli.scheduler.models import JobStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cron", tags=["cron"])


def get_scheduler(request: Request) -> CronScheduler:
    """Return the scheduler owned by the running app."""
    return request.app.state.scheduler


class ScanConfigUpdate(BaseModel):
    """Partial scan-parameter update. Omitted keys keep their value."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    min_score: Optional[StrictFloat] = Field(None, alias="minScore", ge=0)
    min_roi: Optional[StrictFloat] = Field(None, alias="minROI", ge=0)
    min_profit: Optional[StrictFloat] = Field(None, alias="minProfit", ge=0)
    max_price: Optional[StrictFloat] = Field(None, alias="maxPrice", ge=0)
    categories: Optional[List[StrictStr]] = None
    scan_interval: Optional[StrictFloat] = Field(None, alias="scanInterval", ge=0)
    auto_buy_enabled: Optional[StrictBool] = Field(None, alias="autoBuyEnabled")
    auto_buy_score: Optional[StrictFloat] = Field(None, alias="autoBuyScore", ge=0)
    daily_budget: Optional[StrictFloat] = Field(None, alias="dailyBudget", ge=0)


@router.get("/status")
async def get_status(scheduler: CronScheduler = Depends(get_scheduler)) -> Dict[str, Any]:
    status = scheduler.get_status()
    return {
        "success": True,
        **status.to_dict(),
        "schedules": SCHEDULE_LABELS,
    }


@router.post("/start")
async def start_jobs(scheduler: CronScheduler = Depends(get_scheduler)) -> Dict[str, Any]:
    await scheduler.start()
    return {
        "success": True,
        "message": "Cron jobs started",
        "status": scheduler.get_status().to_dict(),
    }


@router.post("/stop")
async def stop_jobs(scheduler: CronScheduler = Depends(get_scheduler)) -> Dict[str, Any]:
    await scheduler.stop()
    return {
        "success": True,
        "message": "Cron jobs stopped",
        "status": scheduler.get_status().to_dict(),
    }


@router.post("/jobs/{name}/enable")
async def enable_job(
    name: str,
    scheduler: CronScheduler = Depends(get_scheduler),
) -> Dict[str, Any]:
    if not await scheduler.enable_job(name):
        raise JobNotFoundError(name)
    return {
        "success": True,
        "message": f"Job {name} enabled",
        "status": scheduler.get_status().to_dict(),
    }


@router.post("/jobs/{name}/disable")
async def disable_job(
    name: str,
    scheduler: CronScheduler = Depends(get_scheduler),
) -> Dict[str, Any]:
    if not await scheduler.disable_job(name):
        raise JobNotFoundError(name)
    return {
        "success": True,
        "message": f"Job {name} disabled",
        "status": scheduler.get_status().to_dict(),
    }


@router.post("/jobs/{name}/run")
async def run_job(
    name: str,
    scheduler: CronScheduler = Depends(get_scheduler),
) -> Dict[str, Any]:
    trigger = await scheduler.run_job_now(name, wait=False)
    return {
        "success": True,
        "message": f"Job {name} triggered",
        "result": trigger.to_dict(),
    }


@router.put("/config")
async def update_config(
    update: ScanConfigUpdate,
    scheduler: CronScheduler = Depends(get_scheduler),
) -> Dict[str, Any]:
    changes = update.model_dump(exclude_unset=True, exclude_none=True)
    try:
        params = scheduler.update_config(changes)
    except Exception as e:
        logger.exception("Failed to update scan parameters")
        raise ArbiError(f"Failed to update configuration: {e}") from e

    return {
        "success": True,
        "message": "Configuration updated",
        "note": "Changes will apply to next job run",
        "config": params.to_dict(),
    }


@router.get("/history")
async def get_history(
    job: Optional[str] = None,
    limit: int = Query(10, ge=1, le=1000),
    scheduler: CronScheduler = Depends(get_scheduler),
) -> Dict[str, Any]:
    results = scheduler.get_history(job_name=job, limit=limit)
    return {
        "success": True,
        "history": [r.to_dict() for r in results],
    }


@router.get("/health")
async def health(scheduler: CronScheduler = Depends(get_scheduler)) -> Dict[str, Any]:
    status = scheduler.get_status()
    jobs = status.jobs
    return {
        "status": "healthy" if status.is_initialized else "not_initialized",
        "totalJobs": len(jobs),
        "enabledJobs": sum(1 for j in jobs if j.enabled),
        "runningJobs": sum(1 for j in jobs if j.status is JobStatus.RUNNING),
        "errorJobs": sum(1 for j in jobs if j.status is JobStatus.ERROR),
        "jobs": [
            {
                "name": j.name,
                "schedule": j.schedule,
                "enabled": j.enabled,
                "status": j.status.value,
                "lastRun": j.last_run.isoformat() if j.last_run else None,
                "runCount": j.run_count,
            }
            for j in jobs
        ],
    }
