"""
Notifications Router

Endpoints:
- GET /notifications - List notifications for the current user (or their role)
- POST /notifications/{id}/read - Mark a notification as read
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Actor, get_current_actor
from app.core.database import get_db
from app.core.errors import PermitServiceError, http_error
from app.modules.notifications import service
from app.modules.notifications.schemas import NotificationListResponse, NotificationResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=NotificationListResponse, summary="List Notifications")
async def list_notifications(
    unread_only: bool = Query(False, description="Only return unread notifications"),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> NotificationListResponse:
    notifications = await service.list_notifications(db, actor, unread_only=unread_only)
    return NotificationListResponse(
        items=[NotificationResponse.model_validate(n) for n in notifications],
        unread_count=sum(1 for n in notifications if not n.is_read),
    )


@router.post(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    summary="Mark Notification Read",
)
async def mark_read(
    notification_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> NotificationResponse:
    try:
        notification = await service.mark_notification_read(db, notification_id, actor)
    except PermitServiceError as e:
        raise http_error(e) from e
    return NotificationResponse.model_validate(notification)
