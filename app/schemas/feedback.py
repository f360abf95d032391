"""Schemas for feedback threads and their messages."""
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..constants import ThreadCategory, ThreadPriority


class FeedbackCreateRequest(BaseModel):
    subject: str
    message: str
    category: str = ThreadCategory.GENERAL.value
    priority: str = ThreadPriority.MEDIUM.value


class ReplyRequest(BaseModel):
    message: str


class ThreadUpdateRequest(BaseModel):
    status: str | None = None
    priority: str | None = None
    reason: str | None = None


class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    thread_id: str
    sender_id: UUID
    sender_type: str
    message: str
    is_read: bool
    read_at: datetime | None = None
    created_at: datetime


class ThreadResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    thread_id: str
    client_id: UUID
    subject: str
    category: str
    priority: str
    status: str
    created_at: datetime
    updated_at: datetime


class ThreadSummaryResponse(ThreadResponse):
    unread_count: int = 0
    last_message: MessageResponse | None = None


class ThreadDetailResponse(BaseModel):
    thread: ThreadResponse
    messages: list[MessageResponse]
    unread_count: int = 0


class PaginationInfo(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class ThreadListResponse(BaseModel):
    items: list[ThreadSummaryResponse]
    pagination: PaginationInfo


class MarkReadResponse(BaseModel):
    marked: int = Field(default=0, ge=0)


class FeedbackStatsResponse(BaseModel):
    total: int
    by_status: dict[str, int]
    by_category: dict[str, int]
    by_priority: dict[str, int]
    average_response_hours: float


__all__ = [
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
]
