"""Notification API routes."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..constants import MAX_PAGE_SIZE
from ..models import User
from ..schemas import (
    CategoryStatsResponse,
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
    NotificationStatsResponse,
    NotificationSummaryResponse,
    PaginationInfo,
)
from ..services import NotificationStore, get_current_user, get_notification_store
from .errors import service_errors

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/", response_model=NotificationListResponse)
async def list_my_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    unread_only: bool = False,
    current_user: User = Depends(get_current_user),
    store: NotificationStore = Depends(get_notification_store),
) -> NotificationListResponse:
    with service_errors():
        records = store.list(current_user.id, limit=limit, offset=(page - 1) * limit, unread_only=unread_only)
        stats = store.stats(current_user.id)

    total = stats.unread if unread_only else stats.total
    return NotificationListResponse(
        items=[NotificationResponse.model_validate(record) for record in records],
        pagination=PaginationInfo(
            page=page,
            limit=limit,
            total=total,
            total_pages=(total + limit - 1) // limit,
        ),
        unread_count=stats.unread,
    )


@router.get("/summary", response_model=NotificationSummaryResponse)
async def notification_summary_endpoint(
    current_user: User = Depends(get_current_user),
    store: NotificationStore = Depends(get_notification_store),
) -> NotificationSummaryResponse:
    with service_errors():
        unread = store.unread_count(current_user.id)
    return NotificationSummaryResponse(unread_count=unread)


@router.get("/stats", response_model=NotificationStatsResponse)
async def notification_stats_endpoint(
    current_user: User = Depends(get_current_user),
    store: NotificationStore = Depends(get_notification_store),
) -> NotificationStatsResponse:
    with service_errors():
        stats = store.stats(current_user.id)
    return NotificationStatsResponse(
        total=stats.total,
        unread=stats.unread,
        by_category={
            category: CategoryStatsResponse(total=entry.total, unread=entry.unread)
            for category, entry in stats.by_category.items()
        },
    )


@router.post("/mark-read", response_model=MarkAllReadResponse)
async def mark_notifications_read(
    current_user: User = Depends(get_current_user),
    store: NotificationStore = Depends(get_notification_store),
) -> MarkAllReadResponse:
    with service_errors():
        updated = store.mark_all_read(current_user.id)
    return MarkAllReadResponse(updated=updated)


@router.post("/{notification_id}/read", status_code=status.HTTP_204_NO_CONTENT)
async def mark_notification_read(
    notification_id: UUID,
    current_user: User = Depends(get_current_user),
    store: NotificationStore = Depends(get_notification_store),
) -> None:
    with service_errors():
        found = store.mark_read(current_user.id, notification_id)
    if not found:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: UUID,
    current_user: User = Depends(get_current_user),
    store: NotificationStore = Depends(get_notification_store),
) -> None:
    with service_errors():
        removed = store.delete(current_user.id, notification_id)
    if not removed:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
