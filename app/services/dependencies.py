"""Wiring for the feedback/notification core and FastAPI dependencies."""
from __future__ import annotations

from functools import lru_cache

from fastapi import BackgroundTasks, Depends
from sqlalchemy.orm import Session

from ..config import get_settings
from ..database import get_session
from ..models import User
from .auth_service import get_current_user
from .collaborators import Actor, EmailSender, SqlUserDirectory, actor_from_user
from .email_service import TransportEmailSender
from .feedback_service import FeedbackService
from .notification_dispatcher import EmailScheduler, NotificationDispatcher
from .notification_store import InMemoryNotificationStore, NotificationStore, SqlNotificationStore

_email_sender: EmailSender | None = None


def set_email_sender(sender: EmailSender | None) -> None:
    """Override the email transport (used by tests and alternative deployments)."""

    global _email_sender
    _email_sender = sender


def get_email_sender() -> EmailSender:
    global _email_sender
    if _email_sender is None:
        _email_sender = TransportEmailSender()
    return _email_sender


@lru_cache(maxsize=1)
def shared_memory_store() -> InMemoryNotificationStore:
    """Process-wide store used when ``NOTIFICATION_BACKEND=memory``."""

    return InMemoryNotificationStore()


def build_notification_store(db: Session, *, autocommit: bool = True) -> NotificationStore:
    if get_settings().notification_backend == "memory":
        return shared_memory_store()
    return SqlNotificationStore(db, autocommit=autocommit)


def build_dispatcher(
    db: Session,
    *,
    autocommit: bool = True,
    email_scheduler: EmailScheduler | None = None,
) -> NotificationDispatcher:
    return NotificationDispatcher(
        build_notification_store(db, autocommit=autocommit),
        directory=SqlUserDirectory(db),
        email_sender=get_email_sender(),
        email_scheduler=email_scheduler,
    )


def build_feedback_service(db: Session, *, email_scheduler: EmailScheduler | None = None) -> FeedbackService:
    return FeedbackService(
        db,
        dispatcher=build_dispatcher(db, autocommit=False, email_scheduler=email_scheduler),
        directory=SqlUserDirectory(db),
    )


def get_feedback_service(background_tasks: BackgroundTasks, db: Session = Depends(get_session)) -> FeedbackService:
    # Emails go out after the response is sent, on the threadpool.
    return build_feedback_service(db, email_scheduler=background_tasks.add_task)


def get_notification_store(db: Session = Depends(get_session)) -> NotificationStore:
    return build_notification_store(db)


async def get_actor(current_user: User = Depends(get_current_user)) -> Actor:
    return actor_from_user(current_user)


__all__ = [
    "build_dispatcher",
    "build_feedback_service",
    "build_notification_store",
    "get_actor",
    "get_email_sender",
    "get_feedback_service",
    "get_notification_store",
    "set_email_sender",
    "shared_memory_store",
]
