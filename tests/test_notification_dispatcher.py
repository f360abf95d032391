"""Template rendering and email side channel of the notification dispatcher."""
from __future__ import annotations

import logging
from uuid import uuid4

import pytest

from app.services.errors import ValidationError
from app.services.notification_dispatcher import (
    TEMPLATES,
    NotificationDispatcher,
    NotificationEvent,
    NotificationTemplate,
    render_email,
)
from app.services.notification_store import InMemoryNotificationStore


@pytest.fixture
def store(clock) -> InMemoryNotificationStore:
    return InMemoryNotificationStore(cap=50, clock=clock)


@pytest.fixture
def dispatcher(store, directory, email_sender) -> NotificationDispatcher:
    return NotificationDispatcher(store, directory=directory, email_sender=email_sender, brand="Business Hub")


def test_every_template_has_content() -> None:
    assert set(TEMPLATES) == set(NotificationTemplate)
    for spec in TEMPLATES.values():
        assert spec.title
        assert spec.message


def test_notify_renders_template_and_stores_payload(dispatcher, store) -> None:
    user_id = uuid4()

    notification = dispatcher.notify(
        NotificationEvent(
            user_id=user_id,
            template=NotificationTemplate.FEEDBACK_RESPONSE,
            data={"thread_id": "t-1", "subject": "Billing issue"},
        )
    )

    assert notification.title == "Feedback Response"
    assert notification.message == 'You have a new response to your feedback: "Billing issue"'
    assert notification.category == "support"
    assert notification.type == "info"
    assert notification.payload == {"thread_id": "t-1", "subject": "Billing issue"}
    assert [item.id for item in store.list(user_id)] == [notification.id]


def test_template_key_may_be_given_as_string(dispatcher) -> None:
    notification = dispatcher.notify(
        NotificationEvent(user_id=uuid4(), template="FEEDBACK_STATUS_CHANGED", data={"subject": "Late", "status": "resolved"})
    )

    assert notification.title == "Feedback Status Update"
    assert notification.message == 'Your feedback "Late" status has been updated to: resolved'


def test_missing_placeholders_render_blank(dispatcher) -> None:
    notification = dispatcher.notify(
        NotificationEvent(user_id=uuid4(), template=NotificationTemplate.LEAD_ASSIGNED, data={"lead_name": "Acme"})
    )

    assert notification.message == 'Lead "Acme" from  has been assigned to you.'


def test_unknown_template_is_rejected(dispatcher, store) -> None:
    user_id = uuid4()

    with pytest.raises(ValidationError) as excinfo:
        dispatcher.notify(NotificationEvent(user_id=user_id, template="NOT_A_TEMPLATE"))

    assert "template" in excinfo.value.errors
    assert store.list(user_id) == []


def test_email_uses_directory_address(dispatcher, directory, email_sender) -> None:
    user_id = uuid4()
    directory.add(user_id, "client@example.com")

    dispatcher.notify(
        NotificationEvent(
            user_id=user_id,
            template=NotificationTemplate.FEEDBACK_RESPONSE,
            data={"subject": "<script>alert(1)</script>"},
            send_email=True,
        )
    )

    [email] = email_sender.sent
    assert email.to == "client@example.com"
    assert email.subject == "Feedback Response - Business Hub"
    assert "&lt;script&gt;" in email.html
    assert "<script>" not in email.html
    assert "automated notification from Business Hub" in email.html


def test_explicit_email_overrides_directory(dispatcher, directory, email_sender) -> None:
    user_id = uuid4()
    directory.add(user_id, "stored@example.com")

    dispatcher.notify(
        NotificationEvent(
            user_id=user_id,
            template=NotificationTemplate.ACCOUNT_APPROVED,
            send_email=True,
            email="override@example.com",
        )
    )

    assert [email.to for email in email_sender.sent] == ["override@example.com"]


def test_no_email_without_address_or_opt_in(dispatcher, directory, email_sender) -> None:
    with_address = uuid4()
    directory.add(with_address, "someone@example.com")

    dispatcher.notify(NotificationEvent(user_id=with_address, template=NotificationTemplate.TASK_OVERDUE))
    dispatcher.notify(NotificationEvent(user_id=uuid4(), template=NotificationTemplate.TASK_OVERDUE, send_email=True))

    assert email_sender.sent == []


def test_delivery_failure_is_logged_and_swallowed(dispatcher, directory, email_sender, store, caplog) -> None:
    user_id = uuid4()
    directory.add(user_id, "client@example.com")
    email_sender.fail("smtp down")

    with caplog.at_level(logging.WARNING, logger="app.services.notification_dispatcher"):
        notification = dispatcher.notify(
            NotificationEvent(user_id=user_id, template=NotificationTemplate.FEEDBACK_REPLY, send_email=True)
        )

    assert store.list(user_id)[0].id == notification.id
    assert "Email delivery failed for client@example.com" in caplog.text


def test_unexpected_transport_error_is_swallowed(dispatcher, directory, email_sender, store, caplog) -> None:
    user_id = uuid4()
    directory.add(user_id, "client@example.com")
    email_sender.fail_with = ConnectionResetError("reset by peer")

    with caplog.at_level(logging.ERROR, logger="app.services.notification_dispatcher"):
        dispatcher.notify(NotificationEvent(user_id=user_id, template=NotificationTemplate.FEEDBACK_REPLY, send_email=True))

    assert store.unread_count(user_id) == 1
    assert "Unexpected error while emailing client@example.com" in caplog.text


def test_hold_applies_memory_writes_and_email_after_clean_exit(dispatcher, store, directory, email_sender) -> None:
    user_id = uuid4()
    directory.add(user_id, "client@example.com")

    with dispatcher.hold():
        dispatcher.notify(NotificationEvent(user_id=user_id, template=NotificationTemplate.FEEDBACK_REPLY, send_email=True))
        assert email_sender.sent == []
        assert store.list(user_id) == []

    assert len(email_sender.sent) == 1
    assert [item.title for item in store.list(user_id)] == ["Feedback Reply"]


def test_hold_discards_writes_and_email_when_block_fails(dispatcher, store, directory, email_sender) -> None:
    user_id = uuid4()
    directory.add(user_id, "client@example.com")

    with pytest.raises(RuntimeError):
        with dispatcher.hold():
            dispatcher.notify(
                NotificationEvent(user_id=user_id, template=NotificationTemplate.FEEDBACK_REPLY, send_email=True)
            )
            raise RuntimeError("rolled back")

    assert email_sender.sent == []
    assert store.list(user_id) == []
    assert store.unread_count(user_id) == 0


def test_nested_hold_waits_for_outermost_block(dispatcher, store, directory, email_sender) -> None:
    user_id = uuid4()
    directory.add(user_id, "client@example.com")

    with dispatcher.hold():
        with dispatcher.hold():
            dispatcher.notify(
                NotificationEvent(user_id=user_id, template=NotificationTemplate.FEEDBACK_REPLY, send_email=True)
            )
        assert store.list(user_id) == []
        assert email_sender.sent == []

    assert store.unread_count(user_id) == 1
    assert len(email_sender.sent) == 1


def test_scheduler_receives_emails_instead_of_sending_inline(store, directory, email_sender) -> None:
    scheduled: list[tuple] = []
    dispatcher = NotificationDispatcher(
        store,
        directory=directory,
        email_sender=email_sender,
        email_scheduler=lambda func, *args: scheduled.append((func, args)),
        brand="Business Hub",
    )
    first, second = uuid4(), uuid4()
    directory.add(first, "first@example.com")
    directory.add(second, "second@example.com")

    with dispatcher.hold():
        dispatcher.notify_many([first, second], NotificationTemplate.FEEDBACK_RECEIVED, {"subject": "Late"}, send_email=True)

    assert email_sender.sent == []
    [(task, args)] = scheduled

    assert task(*args) == 2
    assert [email.to for email in email_sender.sent] == ["first@example.com", "second@example.com"]


def test_notify_many_fans_out(dispatcher, store) -> None:
    recipients = [uuid4(), uuid4(), uuid4()]

    created = dispatcher.notify_many(recipients, NotificationTemplate.FEEDBACK_RECEIVED, {"subject": "Billing issue"})

    assert len(created) == 3
    for user_id in recipients:
        [notification] = store.list(user_id)
        assert notification.message == 'New feedback: "Billing issue"'


def test_render_email_subject_includes_brand() -> None:
    subject, html = render_email("Feedback Reply", "Fish & chips", brand="Acme")

    assert subject == "Feedback Reply - Acme"
    assert "Fish &amp; chips" in html
