"""Cron scheduler for the six recurring arbitrage jobs.

The CronScheduler owns the job registry and binds every job to a
fixed cron expression through APScheduler. Jobs are registered once,
paused, by initialize(); start() and stop() resume and pause their
triggers without touching execution history.

Every fire, scheduled or manual, goes through the same path: a fresh
JobContext is built and the job's body runs inside the JobExecutor,
which records status and swallows failures.
"""

import asyncio
import dataclasses
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Set

from apscheduler.events import (
    EVENT_JOB_ERROR,
    EVENT_JOB_EXECUTED,
    EVENT_JOB_MAX_INSTANCES,
    EVENT_JOB_MISSED,
)
from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from arbi_cli.config import SchedulerConfig
from arbi_cli.engine.base import ArbitrageEngine
from arbi_cli.engine.models import ScanParameters
from arbi_cli.exceptions import JobNotFoundError, SchedulerError
from arbi_cli.scheduler.job_executor import JobExecutor
from arbi_cli.scheduler.jobs import (
    CRON_SCHEDULES,
    JOB_BODIES,
    JOB_DESCRIPTIONS,
    JobBody,
    JobContext,
)
from arbi_cli.scheduler.models import (
    JobDescriptor,
    JobKind,
    JobResult,
    JobSnapshot,
    JobStatus,
    JobTrigger,
    RegisteredJob,
    SchedulerStatus,
)
from arbi_cli.services.backend import BackendClient

logger = logging.getLogger(__name__)

# APScheduler instance limit when overlapping runs are allowed
OVERLAP_MAX_INSTANCES = 10


class CronScheduler:
    """Registry and lifecycle manager for the recurring jobs.

    Example:
        scheduler = CronScheduler(engine, backend, config.scheduler)
        scheduler.initialize()
        await scheduler.start()

        await scheduler.run_job_now("opportunity-scan")
        print(scheduler.get_status().to_dict())

        await scheduler.shutdown()
    """

    def __init__(
        self,
        engine: ArbitrageEngine,
        backend: BackendClient,
        config: Optional[SchedulerConfig] = None,
        scan_parameters: Optional[ScanParameters] = None,
        bodies: Optional[Mapping[JobKind, JobBody]] = None,
    ) -> None:
        """Initialize the cron scheduler.

        Args:
            engine: Arbitrage engine the jobs delegate to
            backend: Client for the marketplace backend API
            config: Scheduler configuration
            scan_parameters: Initial scan thresholds
            bodies: Job body per kind (defaults to JOB_BODIES)
        """
        self._engine = engine
        self._backend = backend
        self._config = config or SchedulerConfig()
        self._scan_parameters = scan_parameters or ScanParameters()
        self._bodies: Dict[JobKind, JobBody] = dict(bodies if bodies is not None else JOB_BODIES)

        self._jobs: Dict[str, RegisteredJob] = {}
        self._executor = JobExecutor(max_history=self._config.max_history)
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._initialized = False
        self._background_tasks: Set[asyncio.Task] = set()

    @property
    def engine(self) -> ArbitrageEngine:
        return self._engine

    @property
    def config(self) -> SchedulerConfig:
        return self._config

    @property
    def scan_parameters(self) -> ScanParameters:
        return self._scan_parameters

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def is_running(self) -> bool:
        """Check if the underlying APScheduler is running."""
        return self._scheduler is not None and self._scheduler.running

    @property
    def jobs(self) -> List[RegisteredJob]:
        return list(self._jobs.values())

    def initialize(self) -> None:
        """Register all six jobs, each with its trigger paused.

        Raises:
            SchedulerError: If a job kind has no body
        """
        if self._initialized:
            logger.warning("Cron scheduler already initialized")
            return

        missing = [kind.value for kind in JobKind if kind not in self._bodies]
        if missing:
            raise SchedulerError(
                "No job body registered for every job kind",
                details={"missing": ", ".join(missing)},
            )

        self._scheduler = self._create_scheduler()
        self._setup_listeners()

        for kind in JobKind:
            descriptor = JobDescriptor(
                name=kind.value,
                schedule=CRON_SCHEDULES[kind],
                description=JOB_DESCRIPTIONS[kind],
                enabled=self._config.is_enabled(kind),
            )
            self._jobs[kind.value] = RegisteredJob(kind=kind, descriptor=descriptor)
            self._scheduler.add_job(
                func=self._fire,
                trigger=self._parse_cron_trigger(descriptor.schedule),
                id=kind.value,
                name=descriptor.description,
                args=[kind],
                next_run_time=None,
                replace_existing=True,
            )
            logger.debug(f"Registered job {kind.value} ({descriptor.schedule})")

        self._initialized = True
        logger.info(f"Cron scheduler initialized with {len(self._jobs)} jobs")

    async def start(self) -> None:
        """Activate the trigger of every enabled job.

        Raises:
            SchedulerError: If initialize() has not been called
        """
        if not self._initialized:
            raise SchedulerError("Cron scheduler not initialized, call initialize() first")
        if self._scheduler is None:
            raise SchedulerError("Cron scheduler has been shut down")

        self._ensure_running()

        started = 0
        for job in self._jobs.values():
            if job.descriptor.enabled:
                self._scheduler.resume_job(job.name)
                started += 1
                logger.info(f"Started job: {job.name} ({job.descriptor.schedule})")

        logger.info(f"Cron scheduler started with {started} active jobs")

    async def stop(self) -> None:
        """Pause every job's trigger.

        In-flight job bodies keep running and are not awaited; run
        counts and statuses are left as they are.
        """
        if self._scheduler is None:
            return

        for job in self._jobs.values():
            self._scheduler.pause_job(job.name)
            logger.debug(f"Stopped job: {job.name}")

        logger.info("Cron scheduler stopped")

    async def shutdown(self) -> None:
        """Stop all triggers and shut APScheduler down."""
        await self.stop()
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Cron scheduler shut down")

    async def enable_job(self, name: str) -> bool:
        """Enable a job and activate its trigger.

        APScheduler is brought up if start() has not run yet, so the
        job fires on schedule while every other trigger stays paused.

        Returns:
            False if no job has that name
        """
        job = self._jobs.get(name)
        if job is None:
            return False

        job.descriptor.enabled = True
        if self._scheduler is not None:
            self._ensure_running()
            self._scheduler.resume_job(name)
        logger.info(f"Enabled job: {name}")
        return True

    async def disable_job(self, name: str) -> bool:
        """Disable a job and deactivate its trigger.

        Returns:
            False if no job has that name
        """
        job = self._jobs.get(name)
        if job is None:
            return False

        job.descriptor.enabled = False
        if self._scheduler is not None:
            self._scheduler.pause_job(name)
        logger.info(f"Disabled job: {name}")
        return True

    async def run_job_now(self, name: str, wait: bool = True) -> JobTrigger:
        """Fire a job immediately, outside of its schedule.

        Args:
            name: Job name
            wait: Await the run; otherwise start it in the background

        Raises:
            JobNotFoundError: If no job has that name
        """
        job = self._jobs.get(name)
        if job is None:
            raise JobNotFoundError(name)

        at = datetime.now(timezone.utc)
        logger.info(f"Manually triggering job: {name}")

        if not wait:
            task = asyncio.create_task(self._fire(job.kind))
            self._background_tasks.add(task)
            task.add_done_callback(self._background_tasks.discard)
            return JobTrigger(triggered=name, at=at)

        result = await self._fire(job.kind)
        return JobTrigger(triggered=name, at=at, result=result)

    def get_status(self) -> SchedulerStatus:
        """Return a snapshot of every job's descriptor and run state."""
        return SchedulerStatus(
            jobs=[self._snapshot(job) for job in self._jobs.values()],
            is_initialized=self._initialized,
        )

    def update_config(self, partial: Mapping[str, Any]) -> ScanParameters:
        """Merge new scan thresholds into the current ones.

        The next fire of any job sees the new values; runs already in
        flight keep the parameters they started with.

        Raises:
            TypeError: If a key is not a scan parameter
        """
        self._scan_parameters = dataclasses.replace(self._scan_parameters, **partial)
        logger.info(f"Scan parameters updated: {dict(partial)}")
        return self._scan_parameters

    def get_history(
        self,
        job_name: Optional[str] = None,
        limit: int = 10,
    ) -> List[JobResult]:
        """Get recent job results, oldest first."""
        return self._executor.get_history(job_name=job_name, limit=limit)

    async def _fire(self, kind: JobKind) -> JobResult:
        """Run one invocation of a job through the executor."""
        job = self._jobs[kind.value]

        if not self._config.allow_overlap and job.state.status is JobStatus.RUNNING:
            return self._record_skip(job.name)

        ctx = JobContext(
            engine=self._engine,
            backend=self._backend,
            scan_parameters=self._scan_parameters,
        )
        body = self._bodies[kind]
        return await self._executor.execute(job.name, job.state, lambda: body(ctx))

    def _record_skip(self, name: str) -> JobResult:
        logger.warning(f"Job '{name}' is still running, skipping this run")
        now = datetime.now(timezone.utc)
        result = JobResult(
            job_name=name,
            started_at=now,
            completed_at=now,
            error="Job already running",
            skipped=True,
        )
        self._executor.record(result)
        return result

    def _ensure_running(self) -> None:
        """Start APScheduler with whatever triggers are currently paused."""
        if self._scheduler is not None and not self._scheduler.running:
            self._scheduler.start()

    def _snapshot(self, job: RegisteredJob) -> JobSnapshot:
        next_run = None
        if self._scheduler is not None:
            aps_job = self._scheduler.get_job(job.name)
            if aps_job is not None:
                next_run = aps_job.next_run_time
        # A paused APScheduler job has no next fire time
        return JobSnapshot.capture(
            job,
            active=self.is_running and next_run is not None,
            next_run=next_run,
        )

    def _create_scheduler(self) -> AsyncIOScheduler:
        """Create and configure the APScheduler instance."""
        jobstores = {"default": MemoryJobStore()}

        executors = {"default": AsyncIOExecutor()}

        job_defaults = {
            "coalesce": True,
            "max_instances": OVERLAP_MAX_INSTANCES if self._config.allow_overlap else 1,
            "misfire_grace_time": self._config.misfire_grace_time,
        }

        return AsyncIOScheduler(
            jobstores=jobstores,
            executors=executors,
            job_defaults=job_defaults,
            timezone=self._config.timezone,
        )

    def _setup_listeners(self) -> None:
        """Set up APScheduler event listeners."""
        if not self._scheduler:
            return

        def on_job_executed(event: Any) -> None:
            logger.debug(f"Trigger for {event.job_id} fired")

        def on_job_error(event: Any) -> None:
            exception = getattr(event, "exception", "Unknown error")
            logger.error(f"Trigger for {event.job_id} raised: {exception}")

        def on_job_missed(event: Any) -> None:
            logger.warning(f"Job {event.job_id} missed scheduled run")

        self._scheduler.add_listener(on_job_executed, EVENT_JOB_EXECUTED)
        self._scheduler.add_listener(on_job_error, EVENT_JOB_ERROR)
        self._scheduler.add_listener(on_job_missed, EVENT_JOB_MISSED)
        self._scheduler.add_listener(self._on_max_instances, EVENT_JOB_MAX_INSTANCES)

    def _on_max_instances(self, event: Any) -> None:
        """Record a tick APScheduler dropped because the job was still running."""
        if event.job_id in self._jobs:
            self._record_skip(event.job_id)

    def _parse_cron_trigger(self, schedule: str) -> CronTrigger:
        """Parse a five-field cron expression into a CronTrigger.

        Raises:
            ValueError: If the expression does not have five fields
        """
        parts = schedule.split()
        if len(parts) != 5:
            raise ValueError(
                f"Invalid cron schedule: '{schedule}'. "
                "Expected 5 parts (minute hour day month weekday)"
            )

        minute, hour, day, month, weekday = parts
        return CronTrigger(
            minute=minute,
            hour=hour,
            day=day,
            month=month,
            day_of_week=weekday,
            timezone=self._config.timezone,
        )
