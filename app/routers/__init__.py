"""Aggregate router exports."""
from .auth import router as auth_router
from .feedback import router as feedback_router
from .notifications import router as notifications_router

__all__ = [
    "auth_router",
    "feedback_router",
    "notifications_router",
]
