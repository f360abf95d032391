"""Translate domain events into stored notifications plus optional email."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any, Callable, Iterable, Iterator
from uuid import UUID

from markupsafe import escape

from ..config import get_settings
from ..constants import NotificationKind
from ..models import Notification
from .collaborators import EmailSender, OutboundEmail, UserDirectory
from .errors import DeliveryFailure, ValidationError
from .notification_store import NotificationDraft, NotificationStore

logger = logging.getLogger(__name__)


class NotificationTemplate(StrEnum):
    ORDER_CREATED = "ORDER_CREATED"
    ORDER_UPDATED = "ORDER_UPDATED"
    BILL_GENERATED = "BILL_GENERATED"
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    FEEDBACK_RECEIVED = "FEEDBACK_RECEIVED"
    FEEDBACK_REPLY = "FEEDBACK_REPLY"
    FEEDBACK_RESPONSE = "FEEDBACK_RESPONSE"
    FEEDBACK_STATUS_CHANGED = "FEEDBACK_STATUS_CHANGED"
    TASK_ASSIGNED = "TASK_ASSIGNED"
    TASK_OVERDUE = "TASK_OVERDUE"
    ACCOUNT_APPROVED = "ACCOUNT_APPROVED"
    LEAD_ASSIGNED = "LEAD_ASSIGNED"
    CAMPAIGN_STARTED = "CAMPAIGN_STARTED"


@dataclass(frozen=True, slots=True)
class TemplateSpec:
    title: str
    message: str
    type: NotificationKind
    category: str


TEMPLATES: dict[NotificationTemplate, TemplateSpec] = {
    NotificationTemplate.ORDER_CREATED: TemplateSpec(
        "New Order Created", "Order #{order_number} has been created successfully.", NotificationKind.SUCCESS, "orders"
    ),
    NotificationTemplate.ORDER_UPDATED: TemplateSpec(
        "Order Updated", "Order #{order_number} has been updated.", NotificationKind.INFO, "orders"
    ),
    NotificationTemplate.BILL_GENERATED: TemplateSpec(
        "Bill Generated", "Bill #{bill_number} has been generated.", NotificationKind.INFO, "billing"
    ),
    NotificationTemplate.PAYMENT_RECEIVED: TemplateSpec(
        "Payment Received", "Payment has been received for bill #{bill_number}.", NotificationKind.SUCCESS, "billing"
    ),
    NotificationTemplate.FEEDBACK_RECEIVED: TemplateSpec(
        "New Feedback", 'New feedback: "{subject}"', NotificationKind.INFO, "support"
    ),
    NotificationTemplate.FEEDBACK_REPLY: TemplateSpec(
        "Feedback Reply", 'Client replied to feedback: "{subject}"', NotificationKind.INFO, "support"
    ),
    NotificationTemplate.FEEDBACK_RESPONSE: TemplateSpec(
        "Feedback Response",
        'You have a new response to your feedback: "{subject}"',
        NotificationKind.INFO,
        "support",
    ),
    NotificationTemplate.FEEDBACK_STATUS_CHANGED: TemplateSpec(
        "Feedback Status Update",
        'Your feedback "{subject}" status has been updated to: {status}',
        NotificationKind.INFO,
        "support",
    ),
    NotificationTemplate.TASK_ASSIGNED: TemplateSpec(
        "Task Assigned", 'Task "{task_title}" has been assigned to you.', NotificationKind.INFO, "tasks"
    ),
    NotificationTemplate.TASK_OVERDUE: TemplateSpec(
        "Task Overdue", "You have overdue tasks that need attention.", NotificationKind.WARNING, "tasks"
    ),
    NotificationTemplate.ACCOUNT_APPROVED: TemplateSpec(
        "Account Approved",
        "Your account has been approved and you can now access all features.",
        NotificationKind.SUCCESS,
        "account",
    ),
    NotificationTemplate.LEAD_ASSIGNED: TemplateSpec(
        "Lead Assigned", 'Lead "{lead_name}" from {company} has been assigned to you.', NotificationKind.INFO, "leads"
    ),
    NotificationTemplate.CAMPAIGN_STARTED: TemplateSpec(
        "Campaign Started", 'Campaign "{campaign_name}" has been started.', NotificationKind.INFO, "marketing"
    ),
}


class _TemplateData(dict):
    def __missing__(self, key: str) -> str:
        return ""


@dataclass(slots=True)
class NotificationEvent:
    """A domain event addressed to a single user."""

    user_id: UUID
    template: NotificationTemplate | str
    data: dict[str, Any] = field(default_factory=dict)
    send_email: bool = False
    email: str | None = None
    expires_at: datetime | None = None


def resolve_template(template: NotificationTemplate | str) -> TemplateSpec:
    try:
        return TEMPLATES[NotificationTemplate(template)]
    except ValueError as exc:
        raise ValidationError({"template": f"Unknown notification template '{template}'"}) from exc


def render_email(title: str, message: str, *, brand: str) -> tuple[str, str]:
    """Return ``(subject, html)`` for a notification email."""

    subject = f"{title} - {brand}"
    body = (
        f"<h2>{escape(title)}</h2>\n"
        f"<p>{escape(message)}</p>\n"
        "<hr>\n"
        f"<p><small>This is an automated notification from {escape(brand)}.</small></p>"
    )
    return subject, body


EmailScheduler = Callable[..., Any]


@dataclass(slots=True)
class _HeldEffects:
    writes: list[Notification] = field(default_factory=list)
    emails: list[OutboundEmail] = field(default_factory=list)


class NotificationDispatcher:
    """Persist notifications through a store and mirror them by email.

    Email delivery is a best-effort side channel: failures are logged and
    swallowed so an undeliverable email never rolls back the notification.
    When ``email_scheduler`` is given (for example a request's
    ``BackgroundTasks.add_task``) emails are handed to it instead of being
    sent on the caller's thread.
    """

    def __init__(
        self,
        store: NotificationStore,
        *,
        directory: UserDirectory | None = None,
        email_sender: EmailSender | None = None,
        email_scheduler: EmailScheduler | None = None,
        brand: str | None = None,
    ) -> None:
        self._store = store
        self._directory = directory
        self._email_sender = email_sender
        self._email_scheduler = email_scheduler
        self._brand = brand or get_settings().email_brand_name
        self._held: list[_HeldEffects] = []

    @property
    def store(self) -> NotificationStore:
        return self._store

    def notify(self, event: NotificationEvent) -> Notification:
        spec = resolve_template(event.template)
        data = dict(event.data)
        draft = NotificationDraft(
            title=spec.title,
            message=spec.message.format_map(_TemplateData(data)),
            type=spec.type,
            category=spec.category,
            payload=data,
            expires_at=event.expires_at,
        )
        notification = self._store.build(event.user_id, draft)
        if self._held and not self._store.transactional:
            self._held[-1].writes.append(notification)
        else:
            self._store.insert(notification)

        if event.send_email:
            self._queue_email(notification, event)
        return notification

    def notify_many(
        self,
        user_ids: Iterable[UUID],
        template: NotificationTemplate | str,
        data: dict[str, Any] | None = None,
        *,
        send_email: bool = False,
    ) -> list[Notification]:
        return [
            self.notify(NotificationEvent(user_id=user_id, template=template, data=dict(data or {}), send_email=send_email))
            for user_id in user_ids
        ]

    @contextmanager
    def hold(self) -> Iterator[None]:
        """Defer side effects that cannot be rolled back until the block succeeds.

        Emails are queued, and so are writes to a store that does not take part
        in the session's transaction. A block that raises discards both, so
        neither describes writes that were rolled back. Nested blocks pass
        their effects to the enclosing one.
        """

        self._held.append(_HeldEffects())
        try:
            yield
        except BaseException:
            self._held.pop()
            raise
        effects = self._held.pop()
        if self._held:
            self._held[-1].writes.extend(effects.writes)
            self._held[-1].emails.extend(effects.emails)
            return
        for notification in effects.writes:
            self._store.insert(notification)
        self._dispatch_emails(effects.emails)

    def _queue_email(self, notification: Notification, event: NotificationEvent) -> None:
        if self._email_sender is None:
            logger.debug("No email sender configured; skipping email for notification %s", notification.id)
            return

        address = event.email
        if not address and self._directory is not None:
            contact = self._directory.get_contact(event.user_id)
            address = contact.email if contact else None
        if not address:
            logger.debug("User %s has no email address; skipping email", event.user_id)
            return

        subject, body = render_email(notification.title, notification.message, brand=self._brand)
        email = OutboundEmail(to=address, subject=subject, html=body)
        if self._held:
            self._held[-1].emails.append(email)
        else:
            self._dispatch_emails([email])

    def _dispatch_emails(self, emails: list[OutboundEmail]) -> None:
        if not emails:
            return
        if self._email_scheduler is not None:
            self._email_scheduler(self.deliver_all, list(emails))
        else:
            self.deliver_all(emails)

    def deliver_all(self, emails: Iterable[OutboundEmail]) -> int:
        """Send ``emails`` one by one and return how many were accepted."""

        return sum(1 for email in emails if self._deliver(email))

    def _deliver(self, email: OutboundEmail) -> bool:
        assert self._email_sender is not None
        try:
            return bool(self._email_sender.send(email))
        except DeliveryFailure as exc:
            logger.warning("Email delivery failed for %s: %s", email.to, exc)
        except Exception:
            logger.exception("Unexpected error while emailing %s", email.to)
        return False


__all__ = [
    "EmailScheduler",
    "NotificationDispatcher",
    "NotificationEvent",
    "NotificationTemplate",
    "TEMPLATES",
    "TemplateSpec",
    "render_email",
    "resolve_template",
]
