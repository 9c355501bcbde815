"""
Applications Service Layer

Creation and lookup of permit applications, plus the ownership check every
applicant-facing operation in the pipeline goes through.
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Actor
from app.core.errors import AuthorizationError, NotFoundError
from app.modules.applications import repository
from app.modules.applications.models import (
    Application,
    ApplicationStatus,
    ApplicationStatusHistory,
    ChangedByRole,
)
from app.modules.applications.schemas import ApplicationCreate
from app.modules.coordinates import ledger
from app.modules.notifications.models import Notification, NotificationType
from app.modules.notifications.service import notify_applicant

logger = logging.getLogger(__name__)


def actor_role(actor: Actor) -> ChangedByRole:
    """History role for an authenticated actor."""
    return ChangedByRole.ADMIN if actor.is_admin else ChangedByRole.APPLICANT


async def get_application(db: AsyncSession, application_id: UUID) -> Application:
    """
    Get an application by ID.

    Raises:
        NotFoundError: If the application doesn't exist
    """
    application = await repository.get_by_id(db, application_id)
    if not application:
        raise NotFoundError("Application", application_id)
    return application


async def get_owned_application(
    db: AsyncSession,
    application_id: UUID,
    actor: Actor,
    allow_admin: bool = True,
) -> Application:
    """
    Get an application the actor is allowed to act on.

    Owners always pass; admins pass unless allow_admin is False (for
    operations only the applicant may perform, such as submissions).

    Raises:
        NotFoundError: If the application doesn't exist
        AuthorizationError: If the actor may not access it
    """
    application = await get_application(db, application_id)

    if application.user_id == actor.id:
        return application
    if allow_admin and actor.is_admin:
        return application

    logger.warning(f"{actor} denied access to application {application_id}")
    raise AuthorizationError("You do not own this application.")


async def create_application(
    db: AsyncSession,
    data: ApplicationCreate,
    actor: Actor,
) -> Application:
    """Create a DRAFT application owned by the actor."""
    application = await repository.create(
        db,
        user_id=actor.id,
        permit_type=data.permit_type,
        project_name=data.project_name,
        applicant_email=actor.email,
    )
    await repository.add_history(
        db,
        application_id=application.id,
        from_status=None,
        to_status=application.status,
        changed_by=actor.id,
        changed_by_role=actor_role(actor),
        remarks="Application created",
    )
    await db.commit()
    await db.refresh(application)

    logger.info(f"Created application {application.application_no} ({application.id})")
    return application


async def list_applications(db: AsyncSession, actor: Actor) -> list[Application]:
    return await repository.list_by_user(db, actor.id)


async def get_status_history(
    db: AsyncSession,
    application_id: UUID,
    actor: Actor,
) -> list[ApplicationStatusHistory]:
    await get_owned_application(db, application_id, actor)
    return await repository.list_history(db, application_id)


async def void_application(
    db: AsyncSession,
    application: Application,
    reason: str,
    now: datetime,
) -> Notification:
    """
    Void an application as the system and void its approved coordinates.

    Does not commit; callers (the deadline sweeper) own the transaction.

    Raises:
        InvalidStatusTransitionError: If the application cannot be voided
        ConcurrentStatusChangeError: If the application moved meanwhile
    """
    await repository.transition_status(
        db,
        application,
        ApplicationStatus.VOIDED,
        changed_by=None,
        changed_by_role=ChangedByRole.SYSTEM,
        remarks=reason,
        voided_at=now,
        void_reason=reason,
        coordinate_review_deadline=None,
        coordinate_revision_deadline=None,
    )
    voided = await ledger.void(db, application.id, reason, now=now)
    logger.info(
        f"Voided application {application.application_no} ({voided} coordinate record(s)): "
        f"{reason}"
    )
    return await notify_applicant(
        db,
        application,
        NotificationType.APPLICATION_VOIDED,
        "Application voided",
        f"Your application {application.application_no} was voided: {reason}.",
    )
