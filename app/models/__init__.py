"""Convenience exports for ORM models."""
from .feedback import FeedbackMessage, FeedbackThread
from .notification import Notification
from .user import User

__all__ = [
    "FeedbackMessage",
    "FeedbackThread",
    "Notification",
    "User",
]
