"""Project-wide constant values and closed vocabularies."""
from __future__ import annotations

from enum import StrEnum


class UserRole(StrEnum):
    ADMIN = "admin"
    CLIENT = "client"
    SALES_PURCHASE = "sales_purchase"
    MARKETING = "marketing"
    OFFICE = "office"


class ThreadCategory(StrEnum):
    GENERAL = "general"
    COMPLAINT = "complaint"
    SUGGESTION = "suggestion"
    SUPPORT = "support"


class ThreadPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ThreadStatus(StrEnum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class SenderType(StrEnum):
    """Persisted sender marker on feedback messages; staff messages are stored as ``admin``."""

    CLIENT = "client"
    STAFF = "admin"


class NotificationKind(StrEnum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


SUBJECT_MIN_LENGTH = 3
SUBJECT_MAX_LENGTH = 255
MESSAGE_MIN_LENGTH = 1
MESSAGE_MAX_LENGTH = 5000
STATUS_REASON_MAX_LENGTH = 500

DEFAULT_NOTIFICATION_CAP = 50
MAX_PAGE_SIZE = 50

__all__ = [
    "UserRole",
    "ThreadCategory",
    "ThreadPriority",
    "ThreadStatus",
    "SenderType",
    "NotificationKind",
    "SUBJECT_MIN_LENGTH",
    "SUBJECT_MAX_LENGTH",
    "MESSAGE_MIN_LENGTH",
    "MESSAGE_MAX_LENGTH",
    "STATUS_REASON_MAX_LENGTH",
    "DEFAULT_NOTIFICATION_CAP",
    "MAX_PAGE_SIZE",
]
