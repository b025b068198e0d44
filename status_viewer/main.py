"""FastAPI application serving the reference status store."""
from __future__ import annotations

import asyncio
import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .database import create_session, init_db
from .routers import statuses_router
from .services import CleanupError, run_cleanup

logger = logging.getLogger(__name__)

settings = get_settings()
CLEANUP_ENABLED = not settings.disable_cleanup and os.getenv("PYTEST_CURRENT_TEST") is None

app = FastAPI(title=settings.app_name, version=settings.api_version)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()] or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(statuses_router)

_expiry_sweeper: asyncio.Task[None] | None = None


async def _sweep_expired_statuses(interval_seconds: float) -> None:
    """Delete expired statuses now and then once per interval until cancelled."""

    while True:
        try:
            summary = await asyncio.to_thread(run_cleanup, create_session)
        except CleanupError:
            logger.exception("Expired status sweep failed")
        else:
            if summary.total:
                logger.info("Expired status sweep removed %d rows", summary.total)
        await asyncio.sleep(interval_seconds)


@app.on_event("startup")
async def _startup() -> None:
    init_db()

    if not CLEANUP_ENABLED:
        logger.info("Expired status sweep disabled")
        return

    global _expiry_sweeper
    if _expiry_sweeper is None or _expiry_sweeper.done():
        _expiry_sweeper = asyncio.create_task(_sweep_expired_statuses(settings.cleanup_interval_minutes * 60.0))


@app.on_event("shutdown")
async def _shutdown() -> None:
    global _expiry_sweeper
    if _expiry_sweeper is None:
        return
    _expiry_sweeper.cancel()
    try:
        await _expiry_sweeper
    except asyncio.CancelledError:
        pass
    _expiry_sweeper = None


@app.get("/api", tags=["system"])
def api_info() -> dict[str, str]:
    return {"service": settings.app_name, "version": settings.api_version}


@app.get("/health", tags=["system"])
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
