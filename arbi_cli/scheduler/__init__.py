"""Cron scheduler for the recurring arbitrage jobs.

The scheduler binds six fixed jobs (scan, listing, fulfillment,
cleanup, daily reset and payouts) to cron expressions and tracks the
status of every run.
"""

from arbi_cli.scheduler.job_executor import JobExecutor
from arbi_cli.scheduler.job_scheduler import CronScheduler
from arbi_cli.scheduler.jobs import JOB_BODIES, JobContext
from arbi_cli.scheduler.models import (
    JobKind,
    JobResult,
    JobSnapshot,
    JobStatus,
    JobTrigger,
    SchedulerStatus,
)

__all__ = [
    "CronScheduler",
    "JOB_BODIES",
    "JobContext",
    "JobExecutor",
    "JobKind",
    "JobResult",
    "JobSnapshot",
    "JobStatus",
    "JobTrigger",
    "SchedulerStatus",
]
