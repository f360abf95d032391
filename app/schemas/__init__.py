"""Convenience exports for schema layer."""
from .auth import AuthResponse, LoginRequest, ProfileResponse, RegisterRequest
from .feedback import (
    FeedbackCreateRequest,
    FeedbackStatsResponse,
    MarkReadResponse,
    MessageResponse,
    PaginationInfo,
    ReplyRequest,
    ThreadDetailResponse,
    ThreadListResponse,
    ThreadResponse,
    ThreadSummaryResponse,
    ThreadUpdateRequest,
)
from .notifications import (
    CategoryStatsResponse,
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
    NotificationStatsResponse,
    NotificationSummaryResponse,
)

__all__ = [
    "AuthResponse",
    "LoginRequest",
    "ProfileResponse",
    "RegisterRequest",
    "FeedbackCreateRequest",
    "FeedbackStatsResponse",
    "MarkReadResponse",
    "MessageResponse",
    "PaginationInfo",
    "ReplyRequest",
    "ThreadDetailResponse",
    "ThreadListResponse",
    "ThreadResponse",
    "ThreadSummaryResponse",
    "ThreadUpdateRequest",
    "CategoryStatsResponse",
    "MarkAllReadResponse",
    "NotificationListResponse",
    "NotificationResponse",
    "NotificationStatsResponse",
    "NotificationSummaryResponse",
]
