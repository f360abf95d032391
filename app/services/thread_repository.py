"""Feedback thread persistence, visibility rules and the status state machine."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from ..constants import ThreadCategory, ThreadPriority, ThreadStatus
from ..models import FeedbackThread, User
from .collaborators import Actor, ActorRole, Clock, IdGenerator, UUIDGenerator, utcnow
from .errors import Forbidden, NotFound, ValidationError
from .validators import check_choice, clean_subject

logger = logging.getLogger(__name__)

STAFF_TRANSITIONS: dict[ThreadStatus, frozenset[ThreadStatus]] = {
    ThreadStatus.OPEN: frozenset({ThreadStatus.IN_PROGRESS, ThreadStatus.RESOLVED, ThreadStatus.CLOSED}),
    ThreadStatus.IN_PROGRESS: frozenset({ThreadStatus.RESOLVED, ThreadStatus.CLOSED, ThreadStatus.OPEN}),
    ThreadStatus.RESOLVED: frozenset({ThreadStatus.CLOSED, ThreadStatus.OPEN}),
    ThreadStatus.CLOSED: frozenset({ThreadStatus.OPEN}),
}

CLIENT_TRANSITIONS: dict[ThreadStatus, frozenset[ThreadStatus]] = {
    ThreadStatus.CLOSED: frozenset({ThreadStatus.OPEN}),
}


@dataclass(frozen=True, slots=True)
class ThreadFilters:
    status: str | None = None
    category: str | None = None
    priority: str | None = None
    search: str | None = None


def touch(thread: FeedbackThread, now: datetime) -> None:
    """Stamp ``updated_at`` before the write is flushed."""

    thread.updated_at = now


def is_transition_allowed(current: ThreadStatus, target: ThreadStatus, role: ActorRole) -> bool:
    table = STAFF_TRANSITIONS if role is ActorRole.STAFF else CLIENT_TRANSITIONS
    return target in table.get(current, frozenset())


class ThreadRepository:
    """Create, look up and mutate :class:`FeedbackThread` rows.

    The repository flushes but never commits; the feedback service owns the
    transaction boundary.
    """

    def __init__(self, db: Session, *, clock: Clock = utcnow, ids: IdGenerator | None = None) -> None:
        self._db = db
        self._clock = clock
        self._ids = ids or UUIDGenerator()

    def create_thread(
        self,
        owner_id,
        subject: str,
        category: str = ThreadCategory.GENERAL,
        priority: str = ThreadPriority.MEDIUM,
    ) -> FeedbackThread:
        errors: dict[str, str] = {}
        clean = clean_subject(errors, subject)
        category_value = check_choice(errors, "category", category, ThreadCategory)
        priority_value = check_choice(errors, "priority", priority, ThreadPriority)
        if errors:
            raise ValidationError(errors)

        now = self._clock()
        thread = FeedbackThread(
            thread_id=self._ids.thread_id(),
            client_id=owner_id,
            subject=clean,
            category=str(category_value),
            priority=str(priority_value),
            status=ThreadStatus.OPEN.value,
            created_at=now,
            updated_at=now,
        )
        self._db.add(thread)
        self._db.flush()
        logger.info("Created feedback thread %s for client %s", thread.thread_id, owner_id)
        return thread

    def _get(self, thread_id: str, *, for_update: bool = False) -> FeedbackThread | None:
        stmt = select(FeedbackThread).where(FeedbackThread.thread_id == thread_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self._db.scalar(stmt)

    def find_thread(self, thread_id: str, requester: Actor, *, for_update: bool = False) -> FeedbackThread:
        """Return the thread when visible to ``requester``.

        Threads owned by other clients are reported as missing rather than
        forbidden so their existence does not leak.
        """

        thread = self._get(thread_id, for_update=for_update)
        if thread is None:
            raise NotFound("Feedback thread not found")
        if not requester.is_staff and thread.client_id != requester.user_id:
            raise NotFound("Feedback thread not found")
        return thread

    def _filtered(self, stmt, requester: Actor, filters: ThreadFilters):
        if not requester.is_staff:
            stmt = stmt.where(FeedbackThread.client_id == requester.user_id)

        errors: dict[str, str] = {}
        if filters.status and filters.status != "all":
            stmt = stmt.where(FeedbackThread.status == check_choice(errors, "status", filters.status, ThreadStatus))
        if filters.category and filters.category != "all":
            stmt = stmt.where(
                FeedbackThread.category == check_choice(errors, "category", filters.category, ThreadCategory)
            )
        if filters.priority and filters.priority != "all":
            stmt = stmt.where(
                FeedbackThread.priority == check_choice(errors, "priority", filters.priority, ThreadPriority)
            )
        if errors:
            raise ValidationError(errors)

        term = (filters.search or "").strip()
        if term:
            pattern = f"%{term.lower()}%"
            if requester.is_staff:
                stmt = stmt.join(User, User.id == FeedbackThread.client_id).where(
                    or_(
                        func.lower(FeedbackThread.subject).like(pattern),
                        func.lower(User.full_name).like(pattern),
                        func.lower(User.email).like(pattern),
                    )
                )
            else:
                stmt = stmt.where(func.lower(FeedbackThread.subject).like(pattern))
        return stmt

    def list_threads(
        self,
        requester: Actor,
        filters: ThreadFilters | None = None,
        *,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[FeedbackThread]:
        stmt = self._filtered(select(FeedbackThread), requester, filters or ThreadFilters())
        stmt = stmt.order_by(FeedbackThread.updated_at.desc(), FeedbackThread.id.desc()).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self._db.scalars(stmt))

    def count_threads(self, requester: Actor, filters: ThreadFilters | None = None) -> int:
        stmt = self._filtered(select(func.count(FeedbackThread.id)), requester, filters or ThreadFilters())
        return int(self._db.scalar(stmt) or 0)

    def update_status(self, thread_id: str, new_status: str, acting_role: ActorRole) -> FeedbackThread:
        errors: dict[str, str] = {}
        target = check_choice(errors, "status", new_status, ThreadStatus)
        if errors or target is None:
            raise ValidationError(errors)

        thread = self._get(thread_id, for_update=True)
        if thread is None:
            raise NotFound("Feedback thread not found")

        current = ThreadStatus(thread.status)
        if current is target and acting_role is ActorRole.STAFF:
            return thread
        if not is_transition_allowed(current, target, acting_role):
            raise Forbidden(f"Cannot move a {current.value} thread to {target.value}")

        thread.status = target.value
        touch(thread, self._clock())
        self._db.flush()
        logger.info("Feedback thread %s moved %s -> %s by %s", thread_id, current.value, target.value, acting_role.value)
        return thread

    def reset_to_open(self, thread: FeedbackThread) -> bool:
        """Return a non-closed thread to ``open`` after a new reply."""

        touch(thread, self._clock())
        if thread.status == ThreadStatus.OPEN:
            self._db.flush()
            return False
        thread.status = ThreadStatus.OPEN.value
        self._db.flush()
        return True

    def set_priority(self, thread_id: str, priority: str) -> FeedbackThread:
        errors: dict[str, str] = {}
        value = check_choice(errors, "priority", priority, ThreadPriority)
        if errors or value is None:
            raise ValidationError(errors)

        thread = self._get(thread_id, for_update=True)
        if thread is None:
            raise NotFound("Feedback thread not found")
        if thread.priority != value:
            thread.priority = value.value
            touch(thread, self._clock())
            self._db.flush()
        return thread

    def count_by(self, column: str, *, start: datetime | None = None, end: datetime | None = None) -> dict[str, int]:
        """Group thread counts by ``status``, ``category`` or ``priority``."""

        if column not in {"status", "category", "priority"}:
            raise ValueError(f"Cannot group threads by {column!r}")
        field = getattr(FeedbackThread, column)
        stmt = select(field, func.count(FeedbackThread.id)).group_by(field)
        for clause in created_between(start, end):
            stmt = stmt.where(clause)
        return {str(key): int(count) for key, count in self._db.execute(stmt).all()}


def created_between(start: datetime | None, end: datetime | None) -> Iterable:
    if start is not None:
        yield FeedbackThread.created_at >= start
    if end is not None:
        yield FeedbackThread.created_at <= end


__all__ = [
    "CLIENT_TRANSITIONS",
    "STAFF_TRANSITIONS",
    "ThreadFilters",
    "ThreadRepository",
    "created_between",
    "is_transition_allowed",
    "touch",
]
