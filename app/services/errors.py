"""Exception hierarchy shared by the feedback and notification services."""
from __future__ import annotations

from typing import Mapping


class FeedbackServiceError(RuntimeError):
    """Base class for failures surfaced by the feedback/notification core."""


class ValidationError(FeedbackServiceError):
    """Raised when a request carries malformed input.

    ``errors`` maps each offending field to a human readable reason so the
    HTTP layer can report every problem at once.
    """

    def __init__(self, errors: Mapping[str, str]) -> None:
        self.errors = dict(errors)
        summary = "; ".join(f"{field}: {reason}" for field, reason in self.errors.items())
        super().__init__(summary or "Validation failed")


class NotFound(FeedbackServiceError):
    """Raised when a record is missing or not visible to the requester."""


class Forbidden(FeedbackServiceError):
    """Raised when the requester may not perform the requested transition."""


class ThreadClosed(FeedbackServiceError):
    """Raised when a reply targets a closed thread."""


class StoreUnavailable(FeedbackServiceError):
    """Raised when the backing store fails during a unit of work."""


class DeliveryFailure(RuntimeError):
    """Raised by email transports; always caught and logged by the dispatcher."""


__all__ = [
    "FeedbackServiceError",
    "ValidationError",
    "NotFound",
    "Forbidden",
    "ThreadClosed",
    "StoreUnavailable",
    "DeliveryFailure",
]
