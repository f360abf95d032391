"""Message append rules, ordering and read tracking."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from app.constants import MESSAGE_MAX_LENGTH
from app.services.collaborators import ActorRole
from app.services.errors import NotFound, ThreadClosed, ValidationError
from app.services.message_log import MessageLog, average_response_hours
from app.services.thread_repository import ThreadRepository


@pytest.fixture
def log(db, clock) -> MessageLog:
    return MessageLog(db, clock=clock)


@pytest.fixture
def parties(user_factory) -> SimpleNamespace:
    return SimpleNamespace(client=user_factory("client-one"), staff=user_factory("admin-one", role="admin"))


@pytest.fixture
def thread(db, clock, parties):
    return ThreadRepository(db, clock=clock).create_thread(parties.client.id, "Billing issue")


def test_body_length_bounds(log, thread, parties) -> None:
    accepted = log.append_message(thread.thread_id, parties.client.id, ActorRole.CLIENT, "x" * MESSAGE_MAX_LENGTH)
    assert len(accepted.message) == MESSAGE_MAX_LENGTH

    with pytest.raises(ValidationError) as too_long:
        log.append_message(thread.thread_id, parties.client.id, ActorRole.CLIENT, "x" * (MESSAGE_MAX_LENGTH + 1))
    assert "message" in too_long.value.errors

    with pytest.raises(ValidationError):
        log.append_message(thread.thread_id, parties.client.id, ActorRole.CLIENT, "   ")

    assert len(log.list_messages(thread.thread_id)) == 1


def test_sender_type_follows_role(log, thread, parties) -> None:
    from_client = log.append_message(thread.thread_id, parties.client.id, ActorRole.CLIENT, "Charged twice")
    from_staff = log.append_message(thread.thread_id, parties.staff.id, ActorRole.STAFF, "Refund issued")

    assert from_client.sender_type == "client"
    assert from_staff.sender_type == "admin"
    assert from_client.is_read is False


def test_same_timestamp_messages_keep_insertion_order(log, thread, parties) -> None:
    bodies = ["first", "second", "third"]
    for body in bodies:
        log.append_message(thread.thread_id, parties.client.id, ActorRole.CLIENT, body)

    assert [message.message for message in log.list_messages(thread.thread_id)] == bodies


def test_closed_or_missing_threads_reject_appends(db, log, thread, parties) -> None:
    with pytest.raises(NotFound):
        log.append_message("missing", parties.client.id, ActorRole.CLIENT, "hello")

    thread.status = "closed"
    db.flush()
    with pytest.raises(ThreadClosed):
        log.append_message(thread.thread_id, parties.staff.id, ActorRole.STAFF, "hello")


def test_mark_read_flips_counterpart_messages_once(log, thread, parties, clock) -> None:
    from_client = log.append_message(thread.thread_id, parties.client.id, ActorRole.CLIENT, "Charged twice")
    staff_messages = [
        log.append_message(thread.thread_id, parties.staff.id, ActorRole.STAFF, "Looking into it"),
        log.append_message(thread.thread_id, parties.staff.id, ActorRole.STAFF, "Refund issued"),
    ]

    assert log.unread_count_for(thread.thread_id, ActorRole.CLIENT) == 2
    read_at = clock.advance(minutes=5)

    assert log.mark_read(thread.thread_id, ActorRole.CLIENT) == 2
    assert log.mark_read(thread.thread_id, ActorRole.CLIENT) == 0
    assert log.unread_count_for(thread.thread_id, ActorRole.CLIENT) == 0
    assert log.unread_count_for(thread.thread_id, ActorRole.STAFF) == 1

    assert all(message.is_read and message.read_at == read_at for message in staff_messages)
    assert from_client.is_read is False


def test_latest_messages_per_thread(db, log, thread, parties, clock) -> None:
    other = ThreadRepository(db, clock=clock).create_thread(parties.client.id, "Second thread")
    log.append_message(thread.thread_id, parties.client.id, ActorRole.CLIENT, "older")
    log.append_message(thread.thread_id, parties.staff.id, ActorRole.STAFF, "newer")
    log.append_message(other.thread_id, parties.client.id, ActorRole.CLIENT, "only")

    latest = log.latest_messages([thread.thread_id, other.thread_id])

    assert latest[thread.thread_id].message == "newer"
    assert latest[other.thread_id].message == "only"
    assert log.latest_messages([]) == {}


def test_average_response_hours_counts_role_changes_only() -> None:
    start = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def message(thread_id: str, sender_type: str, hours: float) -> SimpleNamespace:
        return SimpleNamespace(thread_id=thread_id, sender_type=sender_type, created_at=start + timedelta(hours=hours))

    history = [
        message("a", "client", 0),
        message("a", "client", 1),
        message("a", "admin", 3),
        message("a", "client", 4),
        message("b", "admin", 10),
    ]

    assert average_response_hours(history) == (3.0, 2)
    assert average_response_hours([]) == (0.0, 0)
