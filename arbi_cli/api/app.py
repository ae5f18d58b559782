"""FastAPI application exposing the cron scheduler's management API."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from arbi_cli import __version__
from arbi_cli.api.routes import router
from arbi_cli.exceptions import ArbiError, NotFoundError
from arbi_cli.scheduler.job_scheduler import CronScheduler

logger = logging.getLogger(__name__)


async def _not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"success": False, "error": exc.message})


async def _arbi_error_handler(request: Request, exc: ArbiError) -> JSONResponse:
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})


def create_app(scheduler: CronScheduler) -> FastAPI:
    """Build the management app around an existing scheduler.

    The app never creates or starts the scheduler; the caller owns its
    lifecycle.
    """
    app = FastAPI(title="Arbi Cron", version=__version__)
    app.state.scheduler = scheduler

    app.add_exception_handler(NotFoundError, _not_found_handler)
    app.add_exception_handler(ArbiError, _arbi_error_handler)
    app.include_router(router)

    return app
