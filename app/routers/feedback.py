"""Feedback thread API routes."""
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query, status

from ..constants import MAX_PAGE_SIZE
from ..models import FeedbackThread
from ..schemas import (
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
from ..services import (
    Actor,
    FeedbackService,
    ThreadDetail,
    ThreadFilters,
    get_actor,
    get_feedback_service,
    require_staff,
)
from .errors import service_errors

router = APIRouter(prefix="/feedback", tags=["feedback"])


def _to_thread_response(thread: FeedbackThread) -> ThreadResponse:
    return ThreadResponse.model_validate(thread)


def _to_detail_response(detail: ThreadDetail) -> ThreadDetailResponse:
    return ThreadDetailResponse(
        thread=_to_thread_response(detail.thread),
        messages=[MessageResponse.model_validate(message) for message in detail.messages],
        unread_count=detail.unread_count,
    )


@router.post("/", response_model=ThreadDetailResponse, status_code=status.HTTP_201_CREATED)
async def submit_feedback_endpoint(
    payload: FeedbackCreateRequest,
    actor: Actor = Depends(get_actor),
    service: FeedbackService = Depends(get_feedback_service),
) -> ThreadDetailResponse:
    with service_errors():
        detail = service.submit_feedback(
            actor,
            payload.subject,
            payload.message,
            category=payload.category,
            priority=payload.priority,
        )
    return _to_detail_response(detail)


@router.get("/", response_model=ThreadListResponse)
async def list_threads_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    status_filter: str | None = Query(None, alias="status"),
    category: str | None = None,
    priority: str | None = None,
    search: str | None = None,
    actor: Actor = Depends(get_actor),
    service: FeedbackService = Depends(get_feedback_service),
) -> ThreadListResponse:
    filters = ThreadFilters(status=status_filter, category=category, priority=priority, search=search)
    with service_errors():
        result = service.list_threads(actor, filters, page=page, limit=limit)

    items = []
    for summary in result.items:
        item = ThreadSummaryResponse.model_validate(summary.thread)
        item.unread_count = summary.unread_count
        if summary.last_message is not None:
            item.last_message = MessageResponse.model_validate(summary.last_message)
        items.append(item)

    return ThreadListResponse(
        items=items,
        pagination=PaginationInfo(
            page=result.page,
            limit=result.limit,
            total=result.total,
            total_pages=result.total_pages,
        ),
    )


@router.get("/stats", response_model=FeedbackStatsResponse, dependencies=[Depends(require_staff())])
async def feedback_stats_endpoint(
    start: datetime | None = None,
    end: datetime | None = None,
    actor: Actor = Depends(get_actor),
    service: FeedbackService = Depends(get_feedback_service),
) -> FeedbackStatsResponse:
    with service_errors():
        stats = service.feedback_stats(actor, start=start, end=end)
    return FeedbackStatsResponse(
        total=stats.total,
        by_status=stats.by_status,
        by_category=stats.by_category,
        by_priority=stats.by_priority,
        average_response_hours=stats.average_response_hours,
    )


@router.get("/{thread_id}", response_model=ThreadDetailResponse)
async def get_thread_endpoint(
    thread_id: str,
    mark_read: bool = True,
    actor: Actor = Depends(get_actor),
    service: FeedbackService = Depends(get_feedback_service),
) -> ThreadDetailResponse:
    with service_errors():
        detail = service.get_thread(thread_id, actor, mark_read=mark_read)
    return _to_detail_response(detail)


@router.post("/{thread_id}/messages", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def reply_endpoint(
    thread_id: str,
    payload: ReplyRequest,
    actor: Actor = Depends(get_actor),
    service: FeedbackService = Depends(get_feedback_service),
) -> MessageResponse:
    with service_errors():
        message = service.reply(thread_id, actor, payload.message)
    return MessageResponse.model_validate(message)


@router.post("/{thread_id}/read", response_model=MarkReadResponse)
async def mark_thread_read_endpoint(
    thread_id: str,
    actor: Actor = Depends(get_actor),
    service: FeedbackService = Depends(get_feedback_service),
) -> MarkReadResponse:
    with service_errors():
        marked = service.mark_thread_read(thread_id, actor)
    return MarkReadResponse(marked=marked)


@router.post("/{thread_id}/reopen", response_model=ThreadResponse)
async def reopen_thread_endpoint(
    thread_id: str,
    actor: Actor = Depends(get_actor),
    service: FeedbackService = Depends(get_feedback_service),
) -> ThreadResponse:
    with service_errors():
        thread = service.reopen(thread_id, actor)
    return _to_thread_response(thread)


@router.patch("/{thread_id}", response_model=ThreadResponse)
async def update_thread_endpoint(
    thread_id: str,
    payload: ThreadUpdateRequest,
    actor: Actor = Depends(get_actor),
    service: FeedbackService = Depends(get_feedback_service),
) -> ThreadResponse:
    with service_errors():
        thread = service.update_thread(
            thread_id, actor, status=payload.status, priority=payload.priority, reason=payload.reason
        )
    return _to_thread_response(thread)
