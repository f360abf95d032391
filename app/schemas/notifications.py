"""Schemas for notifications."""
from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from .feedback import PaginationInfo


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: UUID
    user_id: UUID
    title: str
    message: str
    type: str
    category: str
    created_at: datetime
    read: bool
    read_at: datetime | None = None
    expires_at: datetime | None = None
    payload: dict[str, Any] | None = None


class NotificationListResponse(BaseModel):
    items: list[NotificationResponse]
    pagination: PaginationInfo
    unread_count: int = 0


class NotificationSummaryResponse(BaseModel):
    unread_count: int = 0


class CategoryStatsResponse(BaseModel):
    total: int = 0
    unread: int = 0


class NotificationStatsResponse(BaseModel):
    total: int = 0
    unread: int = 0
    by_category: dict[str, CategoryStatsResponse] = {}


class MarkAllReadResponse(BaseModel):
    updated: int = 0


__all__ = [
    "CategoryStatsResponse",
    "MarkAllReadResponse",
    "NotificationListResponse",
    "NotificationResponse",
    "NotificationStatsResponse",
    "NotificationSummaryResponse",
]
