"""Data types for the cron scheduler's job registry."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class JobKind(Enum):
    """The six recurring jobs. The value is the job's registry name."""

    OPPORTUNITY_SCAN = "opportunity-scan"
    AUTONOMOUS_LISTING = "autonomous-listing"
    ORDER_FULFILLMENT = "order-fulfillment"
    CLEANUP = "cleanup"
    DAILY_RESET = "daily-reset"
    PAYOUT_PROCESSING = "payout-processing"


class JobStatus(Enum):
    """Execution state of a job.

    idle -> running -> idle on success, idle -> running -> error on
    failure. error is not terminal: the next trigger moves it back to
    running.
    """

    IDLE = "idle"
    RUNNING = "running"
    ERROR = "error"


@dataclass
class JobDescriptor:
    """Identity and static configuration of a recurring job.

    Attributes:
        name: Unique registry key
        schedule: Five-field cron expression
        description: Human-readable label
        enabled: Whether start() activates the job's trigger
    """

    name: str
    schedule: str
    description: str = ""
    enabled: bool = True


@dataclass
class JobRunState:
    """Mutable execution history of a job.

    Attributes:
        last_run: Start time of the most recent invocation
        run_count: Invocations so far, incremented before the body runs
        status: Current JobStatus
        last_error: Message of the last failure, cleared on success
    """

    last_run: Optional[datetime] = None
    run_count: int = 0
    status: JobStatus = JobStatus.IDLE
    last_error: Optional[str] = None


@dataclass
class RegisteredJob:
    """A registry entry: the job kind with its descriptor and run state."""

    kind: JobKind
    descriptor: JobDescriptor
    state: JobRunState = field(default_factory=JobRunState)

    @property
    def name(self) -> str:
        return self.descriptor.name


@dataclass
class JobResult:
    """Result of one job invocation.

    Attributes:
        job_name: Name of the job that ran
        started_at: When execution started
        completed_at: When execution completed
        success: Whether the body returned without raising
        value: Whatever the body returned
        error: Error message if failed or skipped
        skipped: True when the fire was dropped because the job was
            already running
    """

    job_name: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    success: bool = False
    value: Any = None
    error: Optional[str] = None
    skipped: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "jobName": self.job_name,
            "startedAt": self.started_at.isoformat(),
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
            "success": self.success,
            "value": self.value,
            "error": self.error,
            "skipped": self.skipped,
        }


@dataclass(frozen=True)
class JobSnapshot:
    """Point-in-time copy of a registered job, safe to hand to callers."""

    name: str
    schedule: str
    description: str
    enabled: bool
    active: bool
    next_run: Optional[datetime]
    last_run: Optional[datetime]
    run_count: int
    status: JobStatus
    last_error: Optional[str]

    @classmethod
    def capture(
        cls,
        job: RegisteredJob,
        active: bool = False,
        next_run: Optional[datetime] = None,
    ) -> "JobSnapshot":
        return cls(
            name=job.descriptor.name,
            schedule=job.descriptor.schedule,
            description=job.descriptor.description,
            enabled=job.descriptor.enabled,
            active=active,
            next_run=next_run,
            last_run=job.state.last_run,
            run_count=job.state.run_count,
            status=job.state.status,
            last_error=job.state.last_error,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Return the camelCase wire representation."""
        return {
            "name": self.name,
            "schedule": self.schedule,
            "description": self.description,
            "enabled": self.enabled,
            "active": self.active,
            "nextRun": self.next_run.isoformat() if self.next_run else None,
            "lastRun": self.last_run.isoformat() if self.last_run else None,
            "runCount": self.run_count,
            "status": self.status.value,
            "lastError": self.last_error,
        }


@dataclass
class SchedulerStatus:
    """Snapshot of every job plus the registry's initialization flag."""

    jobs: List[JobSnapshot]
    is_initialized: bool

    def get(self, name: str) -> Optional[JobSnapshot]:
        for job in self.jobs:
            if job.name == name:
                return job
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "jobs": [job.to_dict() for job in self.jobs],
            "isInitialized": self.is_initialized,
        }


@dataclass
class JobTrigger:
    """Acknowledgement of a manual trigger.

    ``result`` is None when the run was started in the background.
    """

    triggered: str
    at: datetime
    result: Optional[JobResult] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"triggered": self.triggered, "at": self.at.isoformat()}
        if self.result is not None:
            data["result"] = self.result.to_dict()
        return data
