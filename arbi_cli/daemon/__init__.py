"""Daemon module for Arbi.

Runs the cron scheduler and its management API as a foreground or
background service.
"""

from arbi_cli.daemon.pid import PIDFile
from arbi_cli.daemon.service import (
    ArbiDaemon,
    daemonize,
    run_daemon,
)

__all__ = [
    "ArbiDaemon",
    "PIDFile",
    "daemonize",
    "run_daemon",
]
