"""Expiry sweep for notifications whose ``expires_at`` has passed."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from sqlalchemy.orm import Session

from .collaborators import utcnow
from .dependencies import build_notification_store
from .errors import StoreUnavailable

logger = logging.getLogger(__name__)


class CleanupError(RuntimeError):
    """Raised when the cleanup task cannot complete successfully."""


@dataclass(frozen=True, slots=True)
class CleanupSummary:
    """Represents the number of records removed during a cleanup run."""

    expired_notifications: int

    @property
    def total(self) -> int:
        return self.expired_notifications


def perform_cleanup(session: Session, *, now: datetime | None = None) -> CleanupSummary:
    """Delete expired notifications using the provided session.

    Parameters
    ----------
    session:
        An active SQLAlchemy :class:`Session` bound to the application's database.
    now:
        Reference time for expiry; defaults to the current UTC time.

    Raises
    ------
    CleanupError
        If the store rejects the sweep; the store has already rolled back.
    """

    store = build_notification_store(session)
    try:
        removed = store.purge_expired(now or utcnow())
    except StoreUnavailable as exc:
        logger.exception("Notification sweep failed")
        raise CleanupError("notification sweep failed") from exc

    summary = CleanupSummary(expired_notifications=removed)
    logger.info("Cleanup finished (expired_notifications=%d)", summary.expired_notifications)
    return summary


def run_cleanup(session_factory: Callable[[], Session], *, now: datetime | None = None) -> CleanupSummary:
    """Run one sweep in a fresh session scoped to the call.

    Suitable for the FastAPI startup hook or the periodic background task.
    """

    session = session_factory()
    try:
        return perform_cleanup(session, now=now)
    finally:
        session.close()


__all__ = [
    "CleanupError",
    "CleanupSummary",
    "perform_cleanup",
    "run_cleanup",
]
