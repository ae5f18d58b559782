"""Exception hierarchy for Arbi.

Every error raised on purpose by the scheduler, the backend client or
the CLI derives from ArbiError so callers can map it to an exit code
or an HTTP status.
"""

from typing import Any

from arbi_cli.cli.exit_codes import ExitCode


class ArbiError(Exception):
    """Base exception for Arbi.

    Attributes:
        message: Error message
        exit_code: Exit code to use when exiting the CLI
        details: Optional dictionary of additional error details
    """

    exit_code: int = ExitCode.GENERAL_ERROR

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if exit_code is not None:
            self.exit_code = exit_code
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ConfigurationError(ArbiError):
    """Raised for unreadable config files or invalid config values."""

    exit_code = ExitCode.CONFIGURATION_ERROR


class SchedulerError(ArbiError):
    """Raised when the cron scheduler is used out of order.

    Examples:
        - start() before initialize()
    """

    exit_code = ExitCode.SCHEDULER_ERROR


class NetworkError(ArbiError):
    """Network/connectivity error."""

    exit_code = ExitCode.NETWORK_ERROR


class BackendUnavailableError(NetworkError):
    """The marketplace backend could not be reached or answered non-2xx.

    Job bodies treat this as a soft failure: they log a warning and
    report an empty result with ``reachable=False``.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        url: str | None = None,
    ) -> None:
        details: dict[str, Any] = {}
        if status_code is not None:
            details["status_code"] = status_code
        if url:
            details["url"] = url
        super().__init__(message, details=details)
        self.status_code = status_code
        self.url = url


class ValidationError(ArbiError):
    """Validation error for user input."""

    exit_code = ExitCode.INVALID_ARGUMENT


class NotFoundError(ArbiError):
    """Resource not found error."""

    exit_code = ExitCode.NOT_FOUND


class JobNotFoundError(NotFoundError):
    """Raised when a job name is not registered with the scheduler."""

    def __init__(self, job_name: str) -> None:
        super().__init__(f"Job '{job_name}' not found")
        self.job_name = job_name
