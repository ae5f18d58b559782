"""Daemon service hosting the cron scheduler and its management API.

This module provides:
- Service lifecycle management (start/stop)
- Signal handling for graceful shutdown
- Background daemon mode with process forking

The scheduler and the uvicorn server share one event loop. The daemon
owns signal handling; uvicorn's own handlers are disabled so that a
SIGTERM stops the scheduler and the server together.
"""

import asyncio
import contextlib
import dataclasses
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

import uvicorn

from arbi_cli.api.app import create_app
from arbi_cli.config import ArbiConfig
from arbi_cli.engine.autonomous import AutonomousEngine
from arbi_cli.engine.base import ArbitrageEngine
from arbi_cli.scheduler.job_scheduler import CronScheduler
from arbi_cli.services.backend import BackendClient

logger = logging.getLogger(__name__)

SERVER_STOP_TIMEOUT = 5.0


class _ApiServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to the daemon."""

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield

    def install_signal_handlers(self) -> None:
        pass


class ArbiDaemon:
    """Runs the cron scheduler and serves the management API.

    Example:
        daemon = ArbiDaemon(config)

        await daemon.start()
        await daemon.run_until_shutdown()
        await daemon.stop()
    """

    def __init__(
        self,
        config: ArbiConfig,
        engine: Optional[ArbitrageEngine] = None,
        serve_api: bool = True,
    ):
        """Initialize the daemon service.

        Args:
            config: Arbi configuration
            engine: Scan engine (defaults to an AutonomousEngine with no scouts)
            serve_api: Whether to serve the management API
        """
        self._config = config
        self._engine = engine
        self._serve_api = serve_api
        self._backend: Optional[BackendClient] = None
        self._scheduler: Optional[CronScheduler] = None
        self._server: Optional[uvicorn.Server] = None
        self._server_task: Optional[asyncio.Task] = None
        self._running = False
        self._shutdown_event = asyncio.Event()

    async def start(self) -> None:
        """Build the scheduler, start its jobs and serve the API."""
        logger.info("Starting Arbi daemon...")

        if self._engine is None:
            self._engine = AutonomousEngine()

        self._backend = BackendClient(
            base_url=self._config.backend.base_url,
            timeout=self._config.backend.timeout,
        )
        self._scheduler = CronScheduler(
            self._engine,
            self._backend,
            config=self._config.scheduler,
            scan_parameters=dataclasses.replace(self._config.scan),
        )
        self._scheduler.initialize()

        if self._config.scheduler.autostart:
            await self._scheduler.start()
        else:
            logger.info("Autostart disabled, jobs stay inactive until started")

        if self._serve_api:
            self._start_server()

        self._running = True
        logger.info("Arbi daemon started successfully")

    def _start_server(self) -> None:
        server_config = uvicorn.Config(
            create_app(self._scheduler),
            host=self._config.server.host,
            port=self._config.server.port,
            log_config=None,
        )
        self._server = _ApiServer(server_config)
        self._server_task = asyncio.create_task(self._server.serve())
        self._server_task.add_done_callback(self._on_server_done)
        logger.info(
            f"Management API on http://{self._config.server.host}:{self._config.server.port}"
        )

    def _on_server_done(self, task: asyncio.Task) -> None:
        if not self._running:
            return
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Management API stopped: {task.exception()}")
        else:
            logger.warning("Management API exited")
        self.request_shutdown()

    async def stop(self) -> None:
        """Stop the server and the scheduler, then close the backend client."""
        logger.info("Stopping Arbi daemon...")

        self._running = False

        if self._server is not None and self._server_task is not None:
            self._server.should_exit = True
            try:
                await asyncio.wait_for(self._server_task, timeout=SERVER_STOP_TIMEOUT)
            except asyncio.TimeoutError:
                logger.warning("Management API did not stop in time, cancelling")
                self._server_task.cancel()
            except (Exception, SystemExit) as e:
                logger.warning(f"Error stopping management API: {e}")

        if self._scheduler is not None:
            try:
                await self._scheduler.shutdown()
            except Exception as e:
                logger.warning(f"Error stopping scheduler: {e}")

        if self._backend is not None:
            await self._backend.aclose()

        logger.info("Arbi daemon stopped")

    async def run_until_shutdown(self) -> None:
        """Block until request_shutdown() is called."""
        await self._shutdown_event.wait()

    def request_shutdown(self) -> None:
        logger.info("Shutdown requested")
        self._shutdown_event.set()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def scheduler(self) -> Optional[CronScheduler]:
        """The cron scheduler, or None if not started."""
        return self._scheduler


async def run_daemon(config: ArbiConfig, options: Dict[str, Any]) -> None:
    """Run the Arbi daemon with signal handling.

    Args:
        config: Arbi configuration
        options: Daemon options including:
            - serve_api: Serve the management API (default True)
            - engine: Scan engine to use instead of the default
    """
    daemon = ArbiDaemon(
        config,
        engine=options.get("engine"),
        serve_api=options.get("serve_api", True),
    )

    loop = asyncio.get_running_loop()

    def handle_signal(sig: signal.Signals) -> None:
        logger.info(f"Received signal {sig.name}, initiating shutdown...")
        daemon.request_shutdown()

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, lambda s=sig: handle_signal(s))
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            signal.signal(sig, lambda signum, frame: handle_signal(signal.Signals(signum)))

    try:
        await daemon.start()
        await daemon.run_until_shutdown()
    finally:
        await daemon.stop()


def daemonize(log_file: Optional[Path] = None) -> None:
    """Fork into a background daemon.

    Forks twice and redirects the standard file descriptors to
    ``log_file`` (or /dev/null). Does nothing on Windows.
    """
    if sys.platform == "win32":
        logger.warning("Daemon mode not supported on Windows")
        return

    if os.fork() > 0:
        sys.exit(0)

    os.setsid()

    if os.fork() > 0:
        sys.exit(0)

    sys.stdout.flush()
    sys.stderr.flush()

    with open(os.devnull, "r") as devnull:
        os.dup2(devnull.fileno(), sys.stdin.fileno())

    target = log_file or Path(os.devnull)
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
    with open(target, "a+") as out:
        os.dup2(out.fileno(), sys.stdout.fileno())
        os.dup2(out.fileno(), sys.stderr.fileno())

    logger.info(f"Daemon process started (PID: {os.getpid()})")
