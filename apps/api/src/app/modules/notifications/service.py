"""
Notifications Service

Notification collaborator for the pipeline: `notify_applicant` and
`notify_admins` add rows inside the caller's transaction; `deliver_emails`
sends the applicant email copies after the caller has committed.
"""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import ROLE_ADMIN, Actor
from app.core.email import send_notification_email
from app.core.errors import AuthorizationError, NotFoundError
from app.modules.applications.models import Application
from app.modules.notifications import repository
from app.modules.notifications.models import Notification, NotificationType

logger = logging.getLogger(__name__)


def applicant_link(application_id: UUID) -> str:
    return f"/applications/{application_id}"


def admin_link(application_id: UUID) -> str:
    return f"/admin/applications/{application_id}"


async def notify_applicant(
    db: AsyncSession,
    application: Application,
    type: NotificationType,
    title: str,
    message: str,
) -> Notification:
    """Notify the owner of an application."""
    return await repository.create(
        db,
        type=type,
        title=title,
        message=message,
        link=applicant_link(application.id),
        application_id=application.id,
        user_id=application.user_id,
    )


async def notify_admins(
    db: AsyncSession,
    application: Application,
    type: NotificationType,
    title: str,
    message: str,
) -> Notification:
    """Notify every admin (a single role-addressed row)."""
    return await repository.create(
        db,
        type=type,
        title=title,
        message=message,
        link=admin_link(application.id),
        application_id=application.id,
        recipient_role=ROLE_ADMIN,
    )


async def deliver_emails(application: Application, notifications: list[Notification]) -> int:
    """
    Send email copies of applicant notifications.

    Call after commit. Email failures are logged and never raised: the
    notification row is the source of truth.

    Returns:
        Number of emails sent
    """
    if not application.applicant_email:
        return 0

    sent = 0
    for notification in notifications:
        if notification.user_id is None:
            continue
        try:
            if await send_notification_email(
                to_email=application.applicant_email,
                title=notification.title,
                message=notification.message,
                application_no=application.application_no,
                link=notification.link,
            ):
                sent += 1
            else:
                logger.error(
                    f"Failed to send {notification.type.value} email for "
                    f"application {application.id}"
                )
        except Exception as e:
            logger.error(f"Exception sending email for application {application.id}: {e}")
    return sent


async def list_notifications(
    db: AsyncSession,
    actor: Actor,
    unread_only: bool = False,
) -> list[Notification]:
    return await repository.list_for_recipient(
        db, user_id=actor.id, role=actor.role, unread_only=unread_only
    )


async def mark_notification_read(
    db: AsyncSession,
    notification_id: UUID,
    actor: Actor,
) -> Notification:
    """
    Mark a notification as read.

    Raises:
        NotFoundError: If the notification doesn't exist
        AuthorizationError: If it is not addressed to the actor
    """
    notification = await repository.get_by_id(db, notification_id)
    if not notification:
        raise NotFoundError("Notification", notification_id)

    if notification.user_id != actor.id and notification.recipient_role != actor.role:
        raise AuthorizationError("This notification is not addressed to you.")

    await repository.mark_read(db, notification)
    await db.commit()
    return notification
