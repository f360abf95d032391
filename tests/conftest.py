"""Shared fixtures and deterministic collaborators for the test-suite."""
from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterator
from uuid import UUID

import pytest
from sqlalchemy import delete
from sqlalchemy.orm import Session

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./test_feedback_core.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DISABLE_CLEANUP", "true")

from app.database import Base, SessionLocal, engine  # noqa: E402
from app.models import FeedbackMessage, FeedbackThread, Notification, User  # noqa: E402
from app.services.collaborators import Contact, OutboundEmail  # noqa: E402
from app.services.errors import DeliveryFailure  # noqa: E402


class FixedClock:
    """Clock that only moves when a test advances it."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


class RecordingEmailSender:
    def __init__(self) -> None:
        self.sent: list[OutboundEmail] = []
        self.fail_with: Exception | None = None

    def send(self, email: OutboundEmail) -> bool:
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(email)
        return True

    def fail(self, message: str = "smtp down") -> None:
        self.fail_with = DeliveryFailure(message)


class StaticDirectory:
    def __init__(self) -> None:
        self.contacts: dict[UUID, Contact] = {}
        self.staff: list[UUID] = []

    def add(self, user_id: UUID, email: str | None, *, staff: bool = False) -> None:
        self.contacts[user_id] = Contact(user_id=user_id, email=email, display_name=email or str(user_id))
        if staff:
            self.staff.append(user_id)

    def get_contact(self, user_id: UUID) -> Contact | None:
        return self.contacts.get(user_id)

    def staff_ids(self) -> list[UUID]:
        return list(self.staff)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def directory() -> StaticDirectory:
    return StaticDirectory()


@pytest.fixture(scope="session")
def _schema() -> Iterator[None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clean_database(_schema: None) -> Iterator[None]:
    with SessionLocal() as session:
        session.execute(delete(FeedbackMessage))
        session.execute(delete(FeedbackThread))
        session.execute(delete(Notification))
        session.execute(delete(User))
        session.commit()
    yield


@pytest.fixture
def db(clean_database: None) -> Iterator[Session]:
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def user_factory(clean_database: None) -> Callable[..., User]:
    def _factory(username: str, *, role: str = "client", email: str | None = None, full_name: str | None = None) -> User:
        with SessionLocal() as session:
            user = User(
                username=username,
                hashed_password="test-hash",
                role=role,
                email=email,
                full_name=full_name,
            )
            session.add(user)
            session.commit()
            session.refresh(user)
            return user

    return _factory
