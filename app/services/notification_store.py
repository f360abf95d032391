"""Per-user notification storage with a bounded retention window.

Two interchangeable backends implement :class:`NotificationStore`:
``SqlNotificationStore`` persists to the ``notifications`` table and
``InMemoryNotificationStore`` keeps process-local lists (tests, single
worker deployments). Both keep at most ``cap`` notifications per user,
evicting the oldest on insert, and hide expired entries from every view.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterator, Protocol
from uuid import UUID

from sqlalchemy import and_, case, delete, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import get_settings
from ..constants import MAX_PAGE_SIZE, NotificationKind
from ..models import Notification
from .collaborators import Clock, IdGenerator, UUIDGenerator, utcnow
from .errors import StoreUnavailable, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class NotificationDraft:
    """Everything needed to create a notification except its owner."""

    title: str
    message: str
    type: str = NotificationKind.INFO
    category: str = "general"
    payload: dict[str, Any] = field(default_factory=dict)
    expires_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class CategoryStats:
    total: int = 0
    unread: int = 0


@dataclass(frozen=True, slots=True)
class NotificationStats:
    total: int
    unread: int
    by_category: dict[str, CategoryStats]


class NotificationStore(Protocol):
    # False when writes take effect immediately instead of with the session commit.
    transactional: bool

    def build(self, user_id: UUID, draft: NotificationDraft) -> Notification: ...

    def insert(self, notification: Notification) -> Notification: ...

    def append(self, user_id: UUID, draft: NotificationDraft) -> Notification: ...

    def list(
        self,
        user_id: UUID,
        *,
        limit: int = MAX_PAGE_SIZE,
        offset: int = 0,
        unread_only: bool = False,
    ) -> list[Notification]: ...

    def mark_read(self, user_id: UUID, notification_id: UUID) -> bool: ...

    def mark_all_read(self, user_id: UUID) -> int: ...

    def unread_count(self, user_id: UUID) -> int: ...

    def stats(self, user_id: UUID) -> NotificationStats: ...

    def delete(self, user_id: UUID, notification_id: UUID) -> bool: ...

    def purge_expired(self, now: datetime | None = None) -> int: ...


def _validate_draft(draft: NotificationDraft) -> None:
    errors: dict[str, str] = {}
    if not (draft.title or "").strip():
        errors["title"] = "Title is required"
    if not (draft.message or "").strip():
        errors["message"] = "Message is required"
    if draft.type not in {kind.value for kind in NotificationKind}:
        errors["type"] = f"Unsupported notification type '{draft.type}'"
    if errors:
        raise ValidationError(errors)


def _validate_page(limit: int, offset: int) -> None:
    errors: dict[str, str] = {}
    if limit < 1:
        errors["limit"] = "limit must be at least 1"
    if offset < 0:
        errors["offset"] = "offset must not be negative"
    if errors:
        raise ValidationError(errors)


def _default_cap() -> int:
    return get_settings().notification_retention_cap


def _new_notification(user_id: UUID, draft: NotificationDraft, *, ids: IdGenerator, now: datetime) -> Notification:
    _validate_draft(draft)
    return Notification(
        id=ids.notification_id(),
        user_id=user_id,
        title=draft.title,
        message=draft.message,
        type=str(draft.type),
        category=draft.category,
        payload=dict(draft.payload),
        read=False,
        read_at=None,
        created_at=now,
        sequence=0,
        expires_at=draft.expires_at,
    )


_NEWEST_FIRST = (Notification.created_at.desc(), Notification.sequence.desc(), Notification.id.desc())


class SqlNotificationStore:
    """Notification store persisted through a SQLAlchemy session.

    With ``autocommit`` disabled the store only flushes, leaving the commit to
    the enclosing unit of work (the feedback service). Standalone callers such
    as the notifications router keep the default and commit per operation.
    """

    transactional = True

    def __init__(
        self,
        db: Session,
        *,
        cap: int | None = None,
        clock: Clock = utcnow,
        ids: IdGenerator | None = None,
        autocommit: bool = True,
    ) -> None:
        self._db = db
        self._cap = cap if cap is not None else _default_cap()
        self._clock = clock
        self._ids = ids or UUIDGenerator()
        self._autocommit = autocommit

    def _active_clause(self, user_id: UUID):
        now = self._clock()
        return and_(
            Notification.user_id == user_id,
            or_(Notification.expires_at.is_(None), Notification.expires_at > now),
        )

    def _finish(self) -> None:
        if self._autocommit:
            self._db.commit()
        else:
            self._db.flush()

    def _fail(self, action: str, exc: SQLAlchemyError) -> StoreUnavailable:
        if self._autocommit:
            self._db.rollback()
        logger.warning("Notification store failed to %s: %s", action, exc)
        return StoreUnavailable(f"Notification store unavailable while trying to {action}")

    def build(self, user_id: UUID, draft: NotificationDraft) -> Notification:
        return _new_notification(user_id, draft, ids=self._ids, now=self._clock())

    def insert(self, notification: Notification) -> Notification:
        user_id = notification.user_id
        try:
            last = self._db.scalar(select(func.max(Notification.sequence)).where(Notification.user_id == user_id))
            notification.sequence = (last or 0) + 1
            self._db.add(notification)
            self._db.flush()
            self._prune(user_id)
            self._finish()
        except SQLAlchemyError as exc:
            raise self._fail("append a notification", exc) from exc
        return notification

    def append(self, user_id: UUID, draft: NotificationDraft) -> Notification:
        return self.insert(self.build(user_id, draft))

    def _prune(self, user_id: UUID) -> None:
        overflow = select(Notification.id).where(Notification.user_id == user_id).order_by(*_NEWEST_FIRST).offset(self._cap)
        stale_ids = list(self._db.scalars(overflow))
        if stale_ids:
            self._db.execute(
                delete(Notification).where(Notification.id.in_(stale_ids)).execution_options(synchronize_session="fetch")
            )
            logger.debug("Pruned %d notifications beyond the retention cap for %s", len(stale_ids), user_id)

    def list(
        self,
        user_id: UUID,
        *,
        limit: int = MAX_PAGE_SIZE,
        offset: int = 0,
        unread_only: bool = False,
    ) -> list[Notification]:
        _validate_page(limit, offset)
        stmt = select(Notification).where(self._active_clause(user_id))
        if unread_only:
            stmt = stmt.where(Notification.read.is_(False))
        stmt = stmt.order_by(*_NEWEST_FIRST).offset(offset).limit(limit)
        try:
            return list(self._db.scalars(stmt))
        except SQLAlchemyError as exc:
            raise self._fail("list notifications", exc) from exc

    def mark_read(self, user_id: UUID, notification_id: UUID) -> bool:
        try:
            notification = self._db.scalar(
                select(Notification).where(Notification.id == notification_id, Notification.user_id == user_id)
            )
            if notification is None:
                return False
            if not notification.read:
                notification.read = True
                notification.read_at = self._clock()
                self._finish()
        except SQLAlchemyError as exc:
            raise self._fail("mark a notification read", exc) from exc
        return True

    def mark_all_read(self, user_id: UUID) -> int:
        # Bounded by the retention cap.
        stmt = select(Notification).where(Notification.user_id == user_id, Notification.read.is_(False))
        now = self._clock()
        try:
            unread = list(self._db.scalars(stmt))
            for notification in unread:
                notification.read = True
                notification.read_at = now
            if unread:
                self._finish()
        except SQLAlchemyError as exc:
            raise self._fail("mark notifications read", exc) from exc
        return len(unread)

    def unread_count(self, user_id: UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(Notification)
            .where(self._active_clause(user_id), Notification.read.is_(False))
        )
        try:
            return int(self._db.scalar(stmt) or 0)
        except SQLAlchemyError as exc:
            raise self._fail("count unread notifications", exc) from exc

    def stats(self, user_id: UUID) -> NotificationStats:
        unread_expr = func.sum(case((Notification.read.is_(False), 1), else_=0))
        stmt = (
            select(Notification.category, func.count(), unread_expr)
            .where(self._active_clause(user_id))
            .group_by(Notification.category)
        )
        try:
            rows = self._db.execute(stmt).all()
        except SQLAlchemyError as exc:
            raise self._fail("compute notification stats", exc) from exc

        by_category = {
            category: CategoryStats(total=int(total or 0), unread=int(unread or 0)) for category, total, unread in rows
        }
        return NotificationStats(
            total=sum(item.total for item in by_category.values()),
            unread=sum(item.unread for item in by_category.values()),
            by_category=by_category,
        )

    def delete(self, user_id: UUID, notification_id: UUID) -> bool:
        try:
            notification = self._db.scalar(
                select(Notification).where(Notification.id == notification_id, Notification.user_id == user_id)
            )
            if notification is None:
                return False
            self._db.delete(notification)
            self._finish()
        except SQLAlchemyError as exc:
            raise self._fail("delete a notification", exc) from exc
        return True

    def purge_expired(self, now: datetime | None = None) -> int:
        cutoff = now or self._clock()
        stmt = (
            delete(Notification)
            .where(Notification.expires_at.is_not(None), Notification.expires_at <= cutoff)
            .execution_options(synchronize_session=False)
        )
        try:
            result = self._db.execute(stmt)
            self._finish()
        except SQLAlchemyError as exc:
            raise self._fail("purge expired notifications", exc) from exc
        return int(result.rowcount or 0)


class InMemoryNotificationStore:
    """Process-local notification store guarded by a single lock.

    Each user's list is kept newest first, so the cap check and eviction are
    a slice under the lock.
    """

    transactional = False

    def __init__(self, *, cap: int | None = None, clock: Clock = utcnow, ids: IdGenerator | None = None) -> None:
        self._cap = cap if cap is not None else _default_cap()
        self._clock = clock
        self._ids = ids or UUIDGenerator()
        self._lock = threading.Lock()
        self._by_user: dict[UUID, list[Notification]] = {}

    def _is_active(self, notification: Notification, now: datetime) -> bool:
        return notification.expires_at is None or now < notification.expires_at

    def _active(self, user_id: UUID) -> Iterator[Notification]:
        now = self._clock()
        return (item for item in self._by_user.get(user_id, ()) if self._is_active(item, now))

    def build(self, user_id: UUID, draft: NotificationDraft) -> Notification:
        return _new_notification(user_id, draft, ids=self._ids, now=self._clock())

    def insert(self, notification: Notification) -> Notification:
        with self._lock:
            entries = self._by_user.setdefault(notification.user_id, [])
            notification.sequence = max((item.sequence for item in entries), default=0) + 1
            entries.insert(0, notification)
            entries.sort(key=lambda item: (item.created_at, item.sequence), reverse=True)
            del entries[self._cap :]
        return notification

    def append(self, user_id: UUID, draft: NotificationDraft) -> Notification:
        return self.insert(self.build(user_id, draft))

    def list(
        self,
        user_id: UUID,
        *,
        limit: int = MAX_PAGE_SIZE,
        offset: int = 0,
        unread_only: bool = False,
    ) -> list[Notification]:
        _validate_page(limit, offset)
        with self._lock:
            items = [item for item in self._active(user_id) if not (unread_only and item.read)]
        return items[offset : offset + limit]

    def mark_read(self, user_id: UUID, notification_id: UUID) -> bool:
        with self._lock:
            for item in self._by_user.get(user_id, ()):
                if item.id == notification_id:
                    if not item.read:
                        item.read = True
                        item.read_at = self._clock()
                    return True
        return False

    def mark_all_read(self, user_id: UUID) -> int:
        count = 0
        with self._lock:
            now = self._clock()
            for item in self._by_user.get(user_id, ()):
                if not item.read:
                    item.read = True
                    item.read_at = now
                    count += 1
        return count

    def unread_count(self, user_id: UUID) -> int:
        with self._lock:
            return sum(1 for item in self._active(user_id) if not item.read)

    def stats(self, user_id: UUID) -> NotificationStats:
        totals: dict[str, list[int]] = {}
        with self._lock:
            for item in self._active(user_id):
                bucket = totals.setdefault(item.category, [0, 0])
                bucket[0] += 1
                if not item.read:
                    bucket[1] += 1
        by_category = {category: CategoryStats(total=t, unread=u) for category, (t, u) in totals.items()}
        return NotificationStats(
            total=sum(item.total for item in by_category.values()),
            unread=sum(item.unread for item in by_category.values()),
            by_category=by_category,
        )

    def delete(self, user_id: UUID, notification_id: UUID) -> bool:
        with self._lock:
            entries = self._by_user.get(user_id, [])
            for index, item in enumerate(entries):
                if item.id == notification_id:
                    del entries[index]
                    return True
        return False

    def purge_expired(self, now: datetime | None = None) -> int:
        cutoff = now or self._clock()
        removed = 0
        with self._lock:
            for user_id, entries in list(self._by_user.items()):
                kept = [item for item in entries if item.expires_at is None or item.expires_at > cutoff]
                removed += len(entries) - len(kept)
                if kept:
                    self._by_user[user_id] = kept
                else:
                    del self._by_user[user_id]
        return removed


__all__ = [
    "CategoryStats",
    "InMemoryNotificationStore",
    "NotificationDraft",
    "NotificationStats",
    "NotificationStore",
    "SqlNotificationStore",
]
