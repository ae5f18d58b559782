"""Job executor that wraps every job body with status tracking.

The executor is the only writer of a job's JobRunState. It records the
start of an invocation, awaits the body and captures any failure into
the run state and the returned JobResult. It never re-raises, so a
misbehaving job can not disturb APScheduler or the other jobs.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, List, Optional

from arbi_cli.scheduler.models import JobResult, JobRunState, JobStatus

logger = logging.getLogger(__name__)

JobCallable = Callable[[], Awaitable[Any]]


class JobExecutor:
    """Executes job bodies and keeps a bounded execution history.

    Example:
        executor = JobExecutor()
        result = await executor.execute("cleanup", state, body)
        if not result.success:
            print(result.error)
    """

    def __init__(self, max_history: int = 1000) -> None:
        """Initialize the job executor.

        Args:
            max_history: Number of results kept in memory
        """
        self._max_history = max_history
        self._history: List[JobResult] = []

    async def execute(
        self,
        job_name: str,
        state: JobRunState,
        body: JobCallable,
    ) -> JobResult:
        """Run a job body with status tracking.

        Args:
            job_name: Name of the job (for logging and the result)
            state: The job's run state, updated in place
            body: Zero-argument coroutine function doing the work

        Returns:
            Execution result; failures are reported, not raised
        """
        started_at = datetime.now(timezone.utc)

        state.last_run = started_at
        state.run_count += 1
        state.status = JobStatus.RUNNING

        try:
            value = await body()
        except Exception as e:
            error = str(e) or e.__class__.__name__
            logger.error(f"Job '{job_name}' failed: {error}")
            state.status = JobStatus.ERROR
            state.last_error = error
            result = JobResult(
                job_name=job_name,
                started_at=started_at,
                completed_at=datetime.now(timezone.utc),
                success=False,
                error=error,
            )
        else:
            state.status = JobStatus.IDLE
            state.last_error = None
            result = JobResult(
                job_name=job_name,
                started_at=started_at,
                completed_at=datetime.now(timezone.utc),
                success=True,
                value=value,
            )
            logger.info(f"Job '{job_name}' completed: {value}")

        self.record(result)
        return result

    def record(self, result: JobResult) -> None:
        """Append a result to the history, trimming the oldest entries."""
        self._history.append(result)
        if len(self._history) > self._max_history:
            self._history = self._history[-self._max_history:]

    def get_history(
        self,
        job_name: Optional[str] = None,
        limit: int = 10,
    ) -> List[JobResult]:
        """Get the most recent results, oldest first.

        Args:
            job_name: Filter by job name (optional)
            limit: Maximum number of results
        """
        history = self._history
        if job_name:
            history = [r for r in history if r.job_name == job_name]
        return history[-limit:]
