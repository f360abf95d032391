"""Feedback thread use cases: submit, reply, read tracking and status changes.

``FeedbackService`` is the only entry point the HTTP layer calls. Each public
operation runs as one unit of work over the shared SQLAlchemy session: the
thread row is locked, messages and status are written, notifications are
recorded, and the session commits once. Emails queued by the dispatcher, and
writes to a notification store outside the transaction, happen only after
that commit succeeds.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..constants import MAX_PAGE_SIZE, ThreadCategory, ThreadPriority, ThreadStatus
from ..models import FeedbackMessage, FeedbackThread
from .collaborators import Actor, Clock, IdGenerator, UserDirectory, utcnow
from .errors import Forbidden, StoreUnavailable, ThreadClosed, ValidationError
from .message_log import MessageLog, average_response_hours
from .notification_dispatcher import NotificationDispatcher, NotificationEvent, NotificationTemplate
from .thread_repository import ThreadFilters, ThreadRepository, is_transition_allowed
from .validators import clean_status_reason

logger = logging.getLogger(__name__)

# Statuses whose optional reason is recorded in the thread as a staff message.
_NOTED_STATUSES = frozenset({ThreadStatus.RESOLVED.value, ThreadStatus.CLOSED.value})


@dataclass(slots=True)
class ThreadDetail:
    thread: FeedbackThread
    messages: list[FeedbackMessage]
    unread_count: int = 0


@dataclass(slots=True)
class ThreadSummary:
    thread: FeedbackThread
    unread_count: int = 0
    last_message: FeedbackMessage | None = None


@dataclass(slots=True)
class ThreadPage:
    items: list[ThreadSummary]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.total else 0


@dataclass(slots=True)
class FeedbackStats:
    total: int
    by_status: dict[str, int] = field(default_factory=dict)
    by_category: dict[str, int] = field(default_factory=dict)
    by_priority: dict[str, int] = field(default_factory=dict)
    average_response_hours: float = 0.0


class FeedbackService:
    def __init__(
        self,
        db: Session,
        *,
        dispatcher: NotificationDispatcher,
        directory: UserDirectory,
        clock: Clock = utcnow,
        ids: IdGenerator | None = None,
    ) -> None:
        self._db = db
        self._dispatcher = dispatcher
        self._directory = directory
        self.threads = ThreadRepository(db, clock=clock, ids=ids)
        self.messages = MessageLog(db, clock=clock)

    @contextmanager
    def _unit_of_work(self) -> Iterator[None]:
        try:
            yield
            self._db.commit()
        except SQLAlchemyError as exc:
            self._db.rollback()
            logger.warning("Feedback transaction rolled back: %s", exc)
            raise StoreUnavailable("Feedback store is temporarily unavailable") from exc
        except BaseException:
            self._db.rollback()
            raise

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        with self._dispatcher.hold(), self._unit_of_work():
            yield

    def _notify_staff(self, template: NotificationTemplate, thread: FeedbackThread) -> None:
        data = {"thread_id": thread.thread_id, "subject": thread.subject}
        for staff_id in self._directory.staff_ids():
            self._dispatcher.notify(NotificationEvent(user_id=staff_id, template=template, data=data, send_email=True))

    def _notify_client(self, template: NotificationTemplate, thread: FeedbackThread, **extra: str) -> None:
        data = {"thread_id": thread.thread_id, "subject": thread.subject, **extra}
        self._dispatcher.notify(
            NotificationEvent(user_id=thread.client_id, template=template, data=data, send_email=True)
        )

    def submit_feedback(
        self,
        actor: Actor,
        subject: str,
        body: str,
        category: str = ThreadCategory.GENERAL,
        priority: str = ThreadPriority.MEDIUM,
    ) -> ThreadDetail:
        if actor.is_staff:
            raise Forbidden("Only clients can open feedback threads")

        with self._transaction():
            thread = self.threads.create_thread(actor.user_id, subject, category, priority)
            message = self.messages.append_message(thread.thread_id, actor.user_id, actor.role, body)
            self._notify_staff(NotificationTemplate.FEEDBACK_RECEIVED, thread)
        return ThreadDetail(thread=thread, messages=[message])

    def reply(self, thread_id: str, actor: Actor, body: str) -> FeedbackMessage:
        with self._transaction():
            thread = self.threads.find_thread(thread_id, actor, for_update=True)
            if thread.status == ThreadStatus.CLOSED:
                if actor.is_staff:
                    raise ThreadClosed("Closed threads do not accept replies")
                raise ThreadClosed("Reopen this thread before replying")

            message = self.messages.append_message(thread.thread_id, actor.user_id, actor.role, body)
            if self.threads.reset_to_open(thread):
                logger.info("Feedback thread %s reopened by a new reply", thread.thread_id)

            if actor.is_staff:
                self._notify_client(NotificationTemplate.FEEDBACK_RESPONSE, thread)
            else:
                self._notify_staff(NotificationTemplate.FEEDBACK_REPLY, thread)
        return message

    def mark_thread_read(self, thread_id: str, actor: Actor) -> int:
        with self._unit_of_work():
            thread = self.threads.find_thread(thread_id, actor, for_update=True)
            return self.messages.mark_read(thread.thread_id, actor.role)

    def get_thread(self, thread_id: str, actor: Actor, *, mark_read: bool = True) -> ThreadDetail:
        with self._unit_of_work():
            thread = self.threads.find_thread(thread_id, actor, for_update=mark_read)
            if mark_read:
                self.messages.mark_read(thread.thread_id, actor.role)
            messages = self.messages.list_messages(thread.thread_id)
            unread = self.messages.unread_count_for(thread.thread_id, actor.role)
        return ThreadDetail(thread=thread, messages=messages, unread_count=unread)

    def list_messages(self, thread_id: str, actor: Actor) -> list[FeedbackMessage]:
        with self._unit_of_work():
            thread = self.threads.find_thread(thread_id, actor)
            return self.messages.list_messages(thread.thread_id)

    def list_threads(
        self,
        actor: Actor,
        filters: ThreadFilters | None = None,
        *,
        page: int = 1,
        limit: int = 20,
    ) -> ThreadPage:
        errors: dict[str, str] = {}
        if page < 1:
            errors["page"] = "page must be at least 1"
        if not 1 <= limit <= MAX_PAGE_SIZE:
            errors["limit"] = f"limit must be between 1 and {MAX_PAGE_SIZE}"
        if errors:
            raise ValidationError(errors)

        with self._unit_of_work():
            total = self.threads.count_threads(actor, filters)
            threads = self.threads.list_threads(actor, filters, limit=limit, offset=(page - 1) * limit)
            ids = [thread.thread_id for thread in threads]
            unread = self.messages.unread_counts_for(ids, actor.role)
            latest = self.messages.latest_messages(ids)

        items = [
            ThreadSummary(thread=thread, unread_count=unread.get(thread.thread_id, 0), last_message=latest.get(thread.thread_id))
            for thread in threads
        ]
        return ThreadPage(items=items, total=total, page=page, limit=limit)

    def update_thread(
        self,
        thread_id: str,
        actor: Actor,
        *,
        status: str | None = None,
        priority: str | None = None,
        reason: str | None = None,
    ) -> FeedbackThread:
        """Change status and/or priority.

        A staff ``reason`` given while resolving or closing the thread is
        appended as a staff message before the status flips, since a closed
        thread no longer accepts messages.
        """

        if status is None and priority is None:
            raise ValidationError({"status": "Provide a status or priority to update"})
        if priority is not None and not actor.is_staff:
            raise Forbidden("Only staff can change thread priority")
        note = clean_status_reason(reason)
        if note is not None and not actor.is_staff:
            raise Forbidden("Only staff can record a reason for a status change")

        with self._transaction():
            thread = self.threads.find_thread(thread_id, actor, for_update=True)
            previous = thread.status
            if priority is not None:
                thread = self.threads.set_priority(thread.thread_id, priority)
            if status is not None:
                target = status.strip().lower()
                noted = note is not None and target in _NOTED_STATUSES and target != previous
                if noted and is_transition_allowed(ThreadStatus(previous), ThreadStatus(target), actor.role):
                    self.messages.append_message(thread.thread_id, actor.user_id, actor.role, f"Thread {target}: {note}")
                thread = self.threads.update_status(thread.thread_id, status, actor.role)
            if actor.is_staff and thread.status != previous:
                self._notify_client(NotificationTemplate.FEEDBACK_STATUS_CHANGED, thread, status=thread.status)
        return thread

    def set_status(self, thread_id: str, new_status: str, actor: Actor, *, reason: str | None = None) -> FeedbackThread:
        return self.update_thread(thread_id, actor, status=new_status, reason=reason)

    def set_priority(self, thread_id: str, priority: str, actor: Actor) -> FeedbackThread:
        return self.update_thread(thread_id, actor, priority=priority)

    def reopen(self, thread_id: str, actor: Actor) -> FeedbackThread:
        return self.update_thread(thread_id, actor, status=ThreadStatus.OPEN)

    def feedback_stats(
        self,
        actor: Actor,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> FeedbackStats:
        if not actor.is_staff:
            raise Forbidden("Only staff can view feedback statistics")
        if start is not None and end is not None and start > end:
            raise ValidationError({"start": "start must not be after end"})

        with self._unit_of_work():
            by_status = self.threads.count_by("status", start=start, end=end)
            by_category = self.threads.count_by("category", start=start, end=end)
            by_priority = self.threads.count_by("priority", start=start, end=end)
            hours, responses = average_response_hours(self.messages.history_between(start, end))

        return FeedbackStats(
            total=sum(by_status.values()),
            by_status={status.value: by_status.get(status.value, 0) for status in ThreadStatus},
            by_category=by_category,
            by_priority=by_priority,
            average_response_hours=round(hours / responses, 2) if responses else 0.0,
        )


__all__ = [
    "FeedbackService",
    "FeedbackStats",
    "ThreadDetail",
    "ThreadPage",
    "ThreadSummary",
]
