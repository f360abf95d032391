"""Input checks shared by the thread repository and message log."""
from __future__ import annotations

from enum import StrEnum
from typing import TypeVar

from ..constants import (
    MESSAGE_MAX_LENGTH,
    MESSAGE_MIN_LENGTH,
    STATUS_REASON_MAX_LENGTH,
    SUBJECT_MAX_LENGTH,
    SUBJECT_MIN_LENGTH,
)
from .errors import ValidationError

E = TypeVar("E", bound=StrEnum)


def check_length(errors: dict[str, str], field: str, value: str | None, minimum: int, maximum: int) -> str:
    text = (value or "").strip()
    if not minimum <= len(text) <= maximum:
        errors[field] = f"{field} must be between {minimum} and {maximum} characters"
    return text


def check_choice(errors: dict[str, str], field: str, value: str | None, enum_cls: type[E]) -> E | None:
    try:
        return enum_cls((value or "").strip().lower())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        errors[field] = f"{field} must be one of: {allowed}"
        return None


def clean_message_body(body: str | None) -> str:
    """Return the trimmed body or raise :class:`ValidationError`."""

    errors: dict[str, str] = {}
    text = check_length(errors, "message", body, MESSAGE_MIN_LENGTH, MESSAGE_MAX_LENGTH)
    if errors:
        raise ValidationError(errors)
    return text


def clean_status_reason(reason: str | None) -> str | None:
    """Trim an optional status-change reason; blank means no reason."""

    text = (reason or "").strip()
    if not text:
        return None
    if len(text) > STATUS_REASON_MAX_LENGTH:
        raise ValidationError({"reason": f"reason must be at most {STATUS_REASON_MAX_LENGTH} characters"})
    return text


def clean_subject(errors: dict[str, str], subject: str | None) -> str:
    return check_length(errors, "subject", subject, SUBJECT_MIN_LENGTH, SUBJECT_MAX_LENGTH)


__all__ = ["check_choice", "check_length", "clean_message_body", "clean_status_reason", "clean_subject"]
