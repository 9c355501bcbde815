"""
Notifications Repository
"""

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Notification, NotificationType


async def create(
    db: AsyncSession,
    type: NotificationType,
    title: str,
    message: str,
    link: str | None = None,
    application_id: UUID | None = None,
    user_id: UUID | None = None,
    recipient_role: str | None = None,
) -> Notification:
    notification = Notification(
        type=type,
        title=title,
        message=message,
        link=link,
        application_id=application_id,
        user_id=user_id,
        recipient_role=recipient_role,
    )
    db.add(notification)
    return notification


async def get_by_id(db: AsyncSession, id: UUID) -> Notification | None:
    return await db.get(Notification, id)


async def list_for_recipient(
    db: AsyncSession,
    user_id: UUID,
    role: str,
    unread_only: bool = False,
    limit: int = 50,
) -> list[Notification]:
    """Notifications addressed to the user or to their role, newest first."""
    stmt = select(Notification).where(
        or_(Notification.user_id == user_id, Notification.recipient_role == role)
    )
    if unread_only:
        stmt = stmt.where(Notification.is_read.is_(False))

    result = await db.execute(stmt.order_by(Notification.created_at.desc()).limit(limit))
    return list(result.scalars().all())


async def mark_read(db: AsyncSession, notification: Notification) -> Notification:
    notification.is_read = True
    notification.read_at = datetime.now(UTC)
    return notification
