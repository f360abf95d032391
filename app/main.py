"""FastAPI application: routers, CORS and the notification expiry sweep."""
from __future__ import annotations

import asyncio
import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .database import create_session, init_db
from .routers import auth_router, feedback_router, notifications_router
from .services import CleanupError, email_delivery_configured, run_cleanup
from .services.migrations import run_migrations_if_needed

logger = logging.getLogger(__name__)

settings = get_settings()
APP_NAME = settings.app_name
API_VERSION = settings.api_version
SWEEP_DISABLED = settings.disable_cleanup or os.getenv("PYTEST_CURRENT_TEST") is not None
SWEEP_INTERVAL_SECONDS = settings.notification_sweep_interval_minutes * 60


def _cors_origins() -> list[str]:
    raw = os.getenv("CORS_ORIGINS", "")
    origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    return origins or ["*"]


app = FastAPI(title=APP_NAME, version=API_VERSION)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for _router in (auth_router, feedback_router, notifications_router):
    app.include_router(_router)

_sweep_task: asyncio.Task[None] | None = None
_sweep_stop = asyncio.Event()


async def _sweep_once() -> None:
    """Purge expired notifications without blocking the event loop."""

    try:
        summary = await asyncio.to_thread(run_cleanup, create_session)
    except CleanupError:
        logger.exception("Notification sweep failed")
    except Exception:  # pragma: no cover - keeps the loop alive
        logger.exception("Unexpected error during notification sweep")
    else:
        logger.info("Notification sweep removed %d expired entries", summary.expired_notifications)


async def _sweep_forever() -> None:
    while not _sweep_stop.is_set():
        await _sweep_once()
        try:
            await asyncio.wait_for(_sweep_stop.wait(), timeout=SWEEP_INTERVAL_SECONDS)
        except asyncio.TimeoutError:
            continue


@app.on_event("startup")
async def _startup() -> None:
    try:
        run_migrations_if_needed(database_url=settings.database_url)
        init_db()
    except Exception:  # pragma: no cover - best effort logging
        logger.exception("Database initialisation failed")
        raise

    if email_delivery_configured():
        logger.info("Email delivery configured; feedback notifications will be mailed")
    else:
        logger.warning("No email transport configured; notifications will be stored only")

    if SWEEP_DISABLED:
        logger.info("Notification sweep disabled")
        return

    global _sweep_task
    if _sweep_task is None or _sweep_task.done():
        _sweep_stop.clear()
        _sweep_task = asyncio.create_task(_sweep_forever())
        logger.info("Notification sweep scheduled every %d minutes", settings.notification_sweep_interval_minutes)


@app.on_event("shutdown")
async def _shutdown() -> None:
    if _sweep_task is None:
        return
    _sweep_stop.set()
    try:
        await _sweep_task
    except asyncio.CancelledError:  # pragma: no cover - shutdown race
        pass


@app.get("/api", tags=["system"])
def api_info() -> dict[str, str]:
    return {"service": APP_NAME, "version": API_VERSION}


@app.get("/health", tags=["system"])
async def healthcheck() -> dict[str, str]:
    return {"status": "ok", "version": API_VERSION}
