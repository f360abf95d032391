"""Behaviour shared by the SQL and in-memory notification stores."""
from __future__ import annotations

from datetime import timedelta
from typing import Callable
from uuid import uuid4

import pytest

from app.services.errors import ValidationError
from app.services.notification_store import (
    InMemoryNotificationStore,
    NotificationDraft,
    NotificationStore,
    SqlNotificationStore,
)


@pytest.fixture(params=["sql", "memory"])
def make_store(request, clock) -> Callable[..., NotificationStore]:
    db = request.getfixturevalue("db") if request.param == "sql" else None

    def _make(cap: int = 50) -> NotificationStore:
        if db is not None:
            return SqlNotificationStore(db, cap=cap, clock=clock)
        return InMemoryNotificationStore(cap=cap, clock=clock)

    return _make


def _draft(title: str = "Heads up", **overrides) -> NotificationDraft:
    values = {"title": title, "message": f"{title} body", "category": "support"}
    values.update(overrides)
    return NotificationDraft(**values)


def test_append_round_trips_fields(make_store) -> None:
    store = make_store()
    user_id = uuid4()

    created = store.append(
        user_id,
        _draft("Feedback Response", type="success", payload={"thread_id": "t-1", "subject": "Billing"}),
    )
    [listed] = store.list(user_id)

    assert listed.id == created.id
    assert listed.title == "Feedback Response"
    assert listed.message == "Feedback Response body"
    assert listed.type == "success"
    assert listed.category == "support"
    assert listed.payload == {"thread_id": "t-1", "subject": "Billing"}
    assert listed.read is False
    assert store.unread_count(user_id) == 1


def test_retention_cap_evicts_oldest_first(make_store, clock) -> None:
    store = make_store(cap=50)
    user_id = uuid4()

    for index in range(51):
        store.append(user_id, _draft(f"Notice {index}"))
        clock.advance(seconds=1)

    items = store.list(user_id, limit=50)
    assert len(items) == 50
    assert items[0].title == "Notice 50"
    assert items[-1].title == "Notice 1"
    assert store.stats(user_id).total == 50


def test_cap_is_per_user(make_store, clock) -> None:
    store = make_store(cap=2)
    first, second = uuid4(), uuid4()

    for index in range(3):
        store.append(first, _draft(f"First {index}"))
        clock.advance(seconds=1)
    store.append(second, _draft("Second 0"))

    assert [item.title for item in store.list(first)] == ["First 2", "First 1"]
    assert [item.title for item in store.list(second)] == ["Second 0"]


def test_same_timestamp_keeps_insertion_order(make_store) -> None:
    store = make_store(cap=2)
    user_id = uuid4()

    for index in range(3):
        store.append(user_id, _draft(f"Tick {index}"))

    assert [item.title for item in store.list(user_id)] == ["Tick 2", "Tick 1"]
    assert store.stats(user_id).total == 2


def test_list_is_newest_first_with_paging_and_unread_filter(make_store, clock) -> None:
    store = make_store()
    user_id = uuid4()
    created = []
    for index in range(4):
        created.append(store.append(user_id, _draft(f"Item {index}")))
        clock.advance(minutes=1)

    assert store.mark_read(user_id, created[3].id) is True

    page = store.list(user_id, limit=2, offset=1)
    assert [item.title for item in page] == ["Item 2", "Item 1"]
    unread = store.list(user_id, unread_only=True)
    assert [item.title for item in unread] == ["Item 2", "Item 1", "Item 0"]


def test_expired_notifications_are_hidden_and_purged(make_store, clock) -> None:
    store = make_store()
    user_id = uuid4()
    store.append(user_id, _draft("Short lived", expires_at=clock.now + timedelta(hours=1)))
    store.append(user_id, _draft("Durable"))

    assert store.unread_count(user_id) == 2

    clock.advance(hours=2)

    assert [item.title for item in store.list(user_id)] == ["Durable"]
    assert store.unread_count(user_id) == 1
    assert store.stats(user_id).total == 1
    assert store.purge_expired() == 1
    assert store.purge_expired() == 0


def test_mark_read_is_idempotent(make_store, clock) -> None:
    store = make_store()
    user_id = uuid4()
    notification = store.append(user_id, _draft())
    first_read_at = clock.now

    assert store.mark_read(user_id, notification.id) is True
    clock.advance(minutes=5)
    assert store.mark_read(user_id, notification.id) is True

    [listed] = store.list(user_id)
    assert listed.read is True
    assert listed.read_at == first_read_at
    assert store.unread_count(user_id) == 0


def test_mark_read_rejects_foreign_or_unknown_ids(make_store) -> None:
    store = make_store()
    owner, stranger = uuid4(), uuid4()
    notification = store.append(owner, _draft())

    assert store.mark_read(stranger, notification.id) is False
    assert store.mark_read(owner, uuid4()) is False
    assert store.unread_count(owner) == 1


def test_mark_all_read_reports_changed_rows(make_store) -> None:
    store = make_store()
    user_id = uuid4()
    for index in range(3):
        store.append(user_id, _draft(f"Item {index}"))

    assert store.mark_all_read(user_id) == 3
    assert store.mark_all_read(user_id) == 0
    assert store.unread_count(user_id) == 0


def test_stats_group_by_category(make_store) -> None:
    store = make_store()
    user_id = uuid4()
    store.append(user_id, _draft("A", category="support"))
    read = store.append(user_id, _draft("B", category="support"))
    store.append(user_id, _draft("C", category="billing"))
    store.mark_read(user_id, read.id)

    stats = store.stats(user_id)

    assert stats.total == 3
    assert stats.unread == 2
    assert stats.by_category["support"].total == 2
    assert stats.by_category["support"].unread == 1
    assert stats.by_category["billing"].total == 1
    assert stats.by_category["billing"].unread == 1


def test_delete_only_removes_own_notification(make_store) -> None:
    store = make_store()
    owner, stranger = uuid4(), uuid4()
    notification = store.append(owner, _draft())

    assert store.delete(stranger, notification.id) is False
    assert store.delete(owner, notification.id) is True
    assert store.delete(owner, notification.id) is False
    assert store.list(owner) == []


def test_unknown_user_has_empty_views(make_store) -> None:
    store = make_store()
    user_id = uuid4()

    assert store.list(user_id) == []
    assert store.unread_count(user_id) == 0
    assert store.mark_all_read(user_id) == 0
    assert store.stats(user_id).total == 0


def test_invalid_drafts_and_pages_are_rejected(make_store) -> None:
    store = make_store()
    user_id = uuid4()

    with pytest.raises(ValidationError) as excinfo:
        store.append(user_id, NotificationDraft(title=" ", message="", type="loud"))
    assert set(excinfo.value.errors) == {"title", "message", "type"}

    with pytest.raises(ValidationError):
        store.list(user_id, limit=0)
    with pytest.raises(ValidationError):
        store.list(user_id, offset=-1)
