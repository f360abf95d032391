"""Expiry sweep over stored notifications."""
from __future__ import annotations

from datetime import timedelta
from uuid import uuid4

from app.database import SessionLocal
from app.services.cleanup_service import perform_cleanup, run_cleanup
from app.services.notification_store import NotificationDraft, SqlNotificationStore


def test_perform_cleanup_removes_only_expired(db, clock) -> None:
    store = SqlNotificationStore(db, clock=clock)
    user_id = uuid4()
    store.append(user_id, NotificationDraft("Flash sale", "Ends soon", expires_at=clock.now + timedelta(hours=1)))
    store.append(user_id, NotificationDraft("Welcome", "Glad you are here"))

    summary = perform_cleanup(db, now=clock.now + timedelta(hours=2))

    assert summary.expired_notifications == 1
    assert summary.total == 1
    assert [item.title for item in store.list(user_id)] == ["Welcome"]


def test_run_cleanup_uses_its_own_session(db, clock) -> None:
    store = SqlNotificationStore(db, clock=clock)
    store.append(uuid4(), NotificationDraft("Old", "Expired already", expires_at=clock.now - timedelta(minutes=1)))

    assert run_cleanup(SessionLocal, now=clock.now).expired_notifications == 1
    assert run_cleanup(SessionLocal, now=clock.now).expired_notifications == 0
