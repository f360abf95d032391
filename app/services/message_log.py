"""Append-only message history for feedback threads."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..constants import SenderType, ThreadStatus
from ..models import FeedbackMessage, FeedbackThread
from .collaborators import ActorRole, Clock, utcnow
from .errors import NotFound, ThreadClosed
from .thread_repository import created_between
from .validators import clean_message_body

logger = logging.getLogger(__name__)

_SENDER_TYPES: dict[ActorRole, SenderType] = {
    ActorRole.CLIENT: SenderType.CLIENT,
    ActorRole.STAFF: SenderType.STAFF,
}


def sender_type_for(role: ActorRole) -> str:
    return _SENDER_TYPES[role].value


def stamp_read(message: FeedbackMessage, now: datetime) -> bool:
    """Flip ``is_read`` once, recording ``read_at`` only on that transition."""

    if message.is_read:
        return False
    message.is_read = True
    message.read_at = now
    return True


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive values for timezone-aware columns.
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def average_response_hours(messages: Sequence[FeedbackMessage]) -> tuple[float, int]:
    """Sum response gaps (hours) between consecutive messages from different roles.

    ``messages`` must already be ordered by thread and time. Returns the total
    number of hours and the number of responses counted.
    """

    total = 0.0
    responses = 0
    for previous, current in zip(messages, messages[1:]):
        if previous.thread_id != current.thread_id or previous.sender_type == current.sender_type:
            continue
        total += (_as_utc(current.created_at) - _as_utc(previous.created_at)).total_seconds() / 3600
        responses += 1
    return total, responses


class MessageLog:
    """Store and read :class:`FeedbackMessage` rows in thread order."""

    def __init__(self, db: Session, *, clock: Clock = utcnow) -> None:
        self._db = db
        self._clock = clock

    def append_message(self, thread_id: str, sender_id: UUID, sender_role: ActorRole, body: str) -> FeedbackMessage:
        text = clean_message_body(body)

        status = self._db.scalar(select(FeedbackThread.status).where(FeedbackThread.thread_id == thread_id))
        if status is None:
            raise NotFound("Feedback thread not found")
        if status == ThreadStatus.CLOSED:
            raise ThreadClosed("Feedback thread is closed; reopen it before replying")

        message = FeedbackMessage(
            thread_id=thread_id,
            sender_id=sender_id,
            sender_type=sender_type_for(sender_role),
            message=text,
            is_read=False,
            created_at=self._clock(),
        )
        self._db.add(message)
        self._db.flush()
        return message

    def list_messages(self, thread_id: str) -> list[FeedbackMessage]:
        stmt = (
            select(FeedbackMessage)
            .where(FeedbackMessage.thread_id == thread_id)
            .order_by(FeedbackMessage.created_at.asc(), FeedbackMessage.id.asc())
        )
        return list(self._db.scalars(stmt))

    def mark_read(self, thread_id: str, reader_role: ActorRole) -> int:
        """Mark the counterpart's unread messages as read; return how many flipped."""

        stmt = select(FeedbackMessage).where(
            FeedbackMessage.thread_id == thread_id,
            FeedbackMessage.sender_type == sender_type_for(reader_role.opposite),
            FeedbackMessage.is_read.is_(False),
        )
        now = self._clock()
        count = sum(1 for message in self._db.scalars(stmt).all() if stamp_read(message, now))
        if count:
            self._db.flush()
        return count

    def unread_count_for(self, thread_id: str, viewer_role: ActorRole) -> int:
        return self.unread_counts_for([thread_id], viewer_role).get(thread_id, 0)

    def unread_counts_for(self, thread_ids: Iterable[str], viewer_role: ActorRole) -> dict[str, int]:
        ids = list(thread_ids)
        if not ids:
            return {}
        stmt = (
            select(FeedbackMessage.thread_id, func.count(FeedbackMessage.id))
            .where(
                FeedbackMessage.thread_id.in_(ids),
                FeedbackMessage.sender_type == sender_type_for(viewer_role.opposite),
                FeedbackMessage.is_read.is_(False),
            )
            .group_by(FeedbackMessage.thread_id)
        )
        return {thread_id: int(count) for thread_id, count in self._db.execute(stmt).all()}

    def latest_messages(self, thread_ids: Iterable[str]) -> dict[str, FeedbackMessage]:
        ids = list(thread_ids)
        if not ids:
            return {}
        newest = (
            select(func.max(FeedbackMessage.id).label("id"))
            .where(FeedbackMessage.thread_id.in_(ids))
            .group_by(FeedbackMessage.thread_id)
            .subquery()
        )
        stmt = select(FeedbackMessage).join(newest, FeedbackMessage.id == newest.c.id)
        return {message.thread_id: message for message in self._db.scalars(stmt)}

    def history_between(self, start: datetime | None, end: datetime | None) -> list[FeedbackMessage]:
        """Messages of threads created in the window, ordered by thread then time."""

        stmt = select(FeedbackMessage).join(FeedbackThread, FeedbackThread.thread_id == FeedbackMessage.thread_id)
        for clause in created_between(start, end):
            stmt = stmt.where(clause)
        stmt = stmt.order_by(FeedbackMessage.thread_id, FeedbackMessage.created_at, FeedbackMessage.id)
        return list(self._db.scalars(stmt))


__all__ = [
    "MessageLog",
    "average_response_hours",
    "sender_type_for",
    "stamp_read",
]
