"""Boundary contracts consumed by the feedback/notification core.

The core never reaches for wall-clock time, identifier generation, the user
table or an email transport directly; it goes through the protocols below so
tests can swap in deterministic fakes.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import StrEnum
from typing import Callable, Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import get_settings
from ..constants import UserRole
from ..models import User

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Return a timezone-aware UTC timestamp."""

    return datetime.now(timezone.utc)


class ActorRole(StrEnum):
    CLIENT = "client"
    STAFF = "staff"

    @property
    def opposite(self) -> "ActorRole":
        return ActorRole.STAFF if self is ActorRole.CLIENT else ActorRole.CLIENT


@dataclass(frozen=True, slots=True)
class Actor:
    """The acting principal for a single core operation."""

    user_id: UUID
    role: ActorRole

    @property
    def is_staff(self) -> bool:
        return self.role is ActorRole.STAFF


def role_for(raw_role: str | None) -> ActorRole:
    """Collapse a stored user role into the client/staff split."""

    normalized = (raw_role or UserRole.CLIENT).strip().lower()
    return ActorRole.CLIENT if normalized == UserRole.CLIENT else ActorRole.STAFF


def actor_from_user(user: User) -> Actor:
    return Actor(user_id=user.id, role=role_for(getattr(user, "role", None)))


class IdGenerator(Protocol):
    def thread_id(self) -> str: ...

    def notification_id(self) -> UUID: ...


class UUIDGenerator:
    """uuid4-backed identifiers; collision resistant without being secret."""

    def thread_id(self) -> str:
        return str(uuid.uuid4())

    def notification_id(self) -> UUID:
        return uuid.uuid4()


@dataclass(frozen=True, slots=True)
class Contact:
    user_id: UUID
    email: str | None
    display_name: str


class UserDirectory(Protocol):
    def get_contact(self, user_id: UUID) -> Contact | None: ...

    def staff_ids(self) -> list[UUID]: ...


class SqlUserDirectory:
    """Resolve contacts and staff recipients from the ``users`` table."""

    def __init__(self, db: Session, *, staff_roles: list[str] | None = None) -> None:
        self._db = db
        self._staff_roles = staff_roles if staff_roles is not None else get_settings().staff_role_names

    def get_contact(self, user_id: UUID) -> Contact | None:
        user = self._db.get(User, user_id)
        if user is None:
            return None
        return Contact(user_id=user.id, email=user.email, display_name=user.display_name)

    def staff_ids(self) -> list[UUID]:
        if not self._staff_roles:
            return []
        stmt = select(User.id).where(User.role.in_(self._staff_roles)).order_by(User.created_at.asc())
        return list(self._db.scalars(stmt))


@dataclass(frozen=True, slots=True)
class OutboundEmail:
    to: str
    subject: str
    html: str


class EmailSender(Protocol):
    def send(self, email: OutboundEmail) -> bool:
        """Deliver ``email``; return ``False`` when delivery was skipped."""
        ...


__all__ = [
    "Actor",
    "ActorRole",
    "Clock",
    "Contact",
    "EmailSender",
    "IdGenerator",
    "OutboundEmail",
    "SqlUserDirectory",
    "UUIDGenerator",
    "UserDirectory",
    "actor_from_user",
    "role_for",
    "utcnow",
]
