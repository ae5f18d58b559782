"""PID file tracking for the scheduler daemon."""

import os
from pathlib import Path
from typing import Optional

from arbi_cli.exceptions import SchedulerError


class PIDFile:
    """The daemon's PID file.

    A PID file whose process no longer exists is stale; acquire()
    replaces it, while a live one blocks a second daemon.

    Example:
        pid_file = PIDFile(config.pid_file)
        with pid_file:
            asyncio.run(run_daemon(config, options))
    """

    def __init__(self, path: Path):
        self.path = path

    def __enter__(self) -> "PIDFile":
        self.acquire()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.remove()

    def acquire(self) -> None:
        """Write the current PID, replacing a stale file.

        Raises:
            SchedulerError: If another daemon holds the file
        """
        running = self.get_pid()
        if running is not None and running != os.getpid():
            raise SchedulerError(
                "Daemon is already running",
                details={"pid": running, "pid_file": str(self.path)},
            )
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(str(os.getpid()))

    def remove(self) -> None:
        """Remove the PID file if present."""
        self.path.unlink(missing_ok=True)

    def read(self) -> Optional[int]:
        """Return the recorded PID, or None if missing or unreadable."""
        try:
            return int(self.path.read_text().strip())
        except (ValueError, OSError):
            return None

    def is_running(self) -> bool:
        """Check whether the recorded process is alive."""
        pid = self.read()
        if pid is None:
            return False
        try:
            # Signal 0 checks existence without delivering anything
            os.kill(pid, 0)
        except ProcessLookupError:
            return False
        except PermissionError:
            # Alive, owned by another user
            return True
        return True

    def get_pid(self) -> Optional[int]:
        """Return the recorded PID if that process is alive."""
        if self.is_running():
            return self.read()
        return None

    def clear_if_stale(self) -> bool:
        """Remove the file if its process is gone.

        Returns:
            True if a stale file was removed
        """
        if self.read() is None or self.is_running():
            return False
        self.remove()
        return True
