"""
Applications Repository

Database operations for permit applications and their status history.

Repository functions never commit: the service layer owns the transaction
so that a status change, its history row, ledger writes and notifications
are persisted atomically. Functions flush when the caller needs generated
values.
"""

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import StateConflictError

from .models import (
    Application,
    ApplicationStatus,
    ApplicationStatusHistory,
    ChangedByRole,
    PermitType,
)

# Valid status transitions for the acceptance pipeline
VALID_STATUS_TRANSITIONS: dict[ApplicationStatus, set[ApplicationStatus]] = {
    ApplicationStatus.DRAFT: {
        ApplicationStatus.PENDING_COORDINATE_APPROVAL,  # Submitted, admin review required
        ApplicationStatus.OVERLAP_DETECTED_PENDING_CONSENT,  # Submitted, overlaps found
        ApplicationStatus.COORDINATE_AUTO_APPROVED,  # Submitted, no overlaps
    },
    ApplicationStatus.PENDING_COORDINATE_APPROVAL: {
        ApplicationStatus.COORDINATE_APPROVED,
        ApplicationStatus.COORDINATE_AUTO_APPROVED,  # Review deadline expired
        ApplicationStatus.COORDINATE_REVISION_REQUIRED,
    },
    ApplicationStatus.OVERLAP_DETECTED_PENDING_CONSENT: {
        ApplicationStatus.PENDING_COORDINATE_APPROVAL,  # All consents verified
        ApplicationStatus.COORDINATE_APPROVED,
        ApplicationStatus.COORDINATE_REVISION_REQUIRED,
    },
    ApplicationStatus.COORDINATE_REVISION_REQUIRED: {
        ApplicationStatus.PENDING_COORDINATE_APPROVAL,
        ApplicationStatus.OVERLAP_DETECTED_PENDING_CONSENT,
        ApplicationStatus.COORDINATE_AUTO_APPROVED,
        ApplicationStatus.VOIDED,  # Revision deadline expired
    },
    ApplicationStatus.COORDINATE_APPROVED: {
        ApplicationStatus.ACCEPTANCE_IN_PROGRESS,
    },
    ApplicationStatus.COORDINATE_AUTO_APPROVED: {
        ApplicationStatus.ACCEPTANCE_IN_PROGRESS,
    },
    ApplicationStatus.ACCEPTANCE_IN_PROGRESS: {
        ApplicationStatus.PENDING_OTHER_DOCUMENTS,  # All requirements accepted
        ApplicationStatus.VOIDED,
    },
    ApplicationStatus.PENDING_OTHER_DOCUMENTS: {
        ApplicationStatus.UNDER_REVIEW,  # All other documents accepted
        ApplicationStatus.VOIDED,
    },
    # Terminal for this pipeline
    ApplicationStatus.UNDER_REVIEW: set(),
    ApplicationStatus.VOIDED: set(),
}


class InvalidStatusTransitionError(StateConflictError):
    """Raised when an invalid status transition is attempted."""

    def __init__(
        self,
        current_status: ApplicationStatus,
        new_status: ApplicationStatus,
    ):
        self.new_status = new_status
        valid_transitions = VALID_STATUS_TRANSITIONS.get(current_status, set())
        super().__init__(
            f"Invalid status transition: {current_status.value} -> {new_status.value}. "
            f"Valid transitions: {sorted(s.value for s in valid_transitions)}",
            current_status=current_status.value,
            error_code="INVALID_STATUS_TRANSITION",
        )


class ConcurrentStatusChangeError(StateConflictError):
    """Raised when the row no longer holds the status the caller read."""

    def __init__(self, application_id: UUID, expected_status: ApplicationStatus):
        super().__init__(
            f"Application {application_id} is no longer in status {expected_status.value}",
            current_status=None,
            error_code="CONCURRENT_STATUS_CHANGE",
        )


async def _next_application_no(db: AsyncSession, permit_type: PermitType) -> str:
    year = datetime.now(UTC).year
    prefix = f"{permit_type.value.upper()}-{year}-"
    result = await db.execute(
        select(func.count()).select_from(Application).where(
            Application.application_no.like(f"{prefix}%")
        )
    )
    sequence = (result.scalar() or 0) + 1
    return f"{prefix}{sequence:04d}"


async def create(
    db: AsyncSession,
    user_id: UUID,
    permit_type: PermitType,
    project_name: str | None = None,
    applicant_email: str | None = None,
) -> Application:
    """Create a DRAFT application."""
    application = Application(
        application_no=await _next_application_no(db, permit_type),
        user_id=user_id,
        applicant_email=applicant_email,
        permit_type=permit_type,
        project_name=project_name,
        status=ApplicationStatus.DRAFT,
    )
    db.add(application)
    await db.flush()
    return application


async def get_by_id(db: AsyncSession, id: UUID) -> Application | None:
    """Get application by ID."""
    return await db.get(Application, id)


async def get_many(db: AsyncSession, ids: list[UUID]) -> dict[UUID, Application]:
    """Get applications keyed by ID."""
    if not ids:
        return {}
    result = await db.execute(select(Application).where(Application.id.in_(ids)))
    return {application.id: application for application in result.scalars().all()}


async def list_by_user(db: AsyncSession, user_id: UUID) -> list[Application]:
    result = await db.execute(
        select(Application)
        .where(Application.user_id == user_id)
        .order_by(Application.created_at.desc())
    )
    return list(result.scalars().all())


async def add_history(
    db: AsyncSession,
    application_id: UUID,
    from_status: ApplicationStatus | None,
    to_status: ApplicationStatus,
    changed_by: UUID | None,
    changed_by_role: ChangedByRole,
    remarks: str | None = None,
) -> ApplicationStatusHistory:
    entry = ApplicationStatusHistory(
        application_id=application_id,
        from_status=from_status,
        to_status=to_status,
        changed_by=changed_by,
        changed_by_role=changed_by_role,
        remarks=remarks,
    )
    db.add(entry)
    return entry


async def list_history(db: AsyncSession, application_id: UUID) -> list[ApplicationStatusHistory]:
    result = await db.execute(
        select(ApplicationStatusHistory)
        .where(ApplicationStatusHistory.application_id == application_id)
        .order_by(ApplicationStatusHistory.created_at)
    )
    return list(result.scalars().all())


async def transition_status(
    db: AsyncSession,
    application: Application,
    new_status: ApplicationStatus,
    *,
    changed_by: UUID | None,
    changed_by_role: ChangedByRole,
    remarks: str | None = None,
    **fields,
) -> Application:
    """
    Move an application to a new status and record the history row.

    The UPDATE is guarded by the status the caller read, so a concurrent
    transition (e.g. a sweep racing an admin review) makes this call fail
    instead of silently overwriting the other change.

    Args:
        db: Database session
        application: The loaded application
        new_status: Target status
        changed_by: Actor ID (None for system)
        changed_by_role: Who triggered the change
        remarks: History remarks
        **fields: Additional columns to update (deadlines, timestamps, ...)

    Returns:
        The application with the new values applied

    Raises:
        InvalidStatusTransitionError: If the transition is not allowed
        ConcurrentStatusChangeError: If the row changed status meanwhile
    """
    current_status = application.status
    if new_status != current_status and new_status not in VALID_STATUS_TRANSITIONS.get(
        current_status, set()
    ):
        raise InvalidStatusTransitionError(current_status, new_status)

    result = await db.execute(
        update(Application)
        .where(Application.id == application.id, Application.status == current_status)
        .values(status=new_status, **fields)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise ConcurrentStatusChangeError(application.id, current_status)

    application.status = new_status
    for key, value in fields.items():
        setattr(application, key, value)

    if new_status != current_status:
        await add_history(
            db,
            application_id=application.id,
            from_status=current_status,
            to_status=new_status,
            changed_by=changed_by,
            changed_by_role=changed_by_role,
            remarks=remarks,
        )

    return application


# ============================================
# Deadline queries
# ============================================


async def get_expired_coordinate_reviews(db: AsyncSession, now: datetime) -> list[Application]:
    """Applications awaiting coordinate review whose review deadline has passed."""
    result = await db.execute(
        select(Application).where(
            Application.status == ApplicationStatus.PENDING_COORDINATE_APPROVAL,
            Application.coordinate_review_deadline.is_not(None),
            Application.coordinate_review_deadline < now,
        )
    )
    return list(result.scalars().all())


async def get_expired_coordinate_revisions(db: AsyncSession, now: datetime) -> list[Application]:
    """Applications whose coordinate revision deadline has passed."""
    result = await db.execute(
        select(Application).where(
            Application.status == ApplicationStatus.COORDINATE_REVISION_REQUIRED,
            Application.coordinate_revision_deadline.is_not(None),
            Application.coordinate_revision_deadline < now,
        )
    )
    return list(result.scalars().all())


async def list_pending_coordinate_review(db: AsyncSession) -> list[Application]:
    """Applications waiting on an admin coordinate decision, oldest deadline first."""
    result = await db.execute(
        select(Application)
        .where(
            Application.status.in_(
                [
                    ApplicationStatus.PENDING_COORDINATE_APPROVAL,
                    ApplicationStatus.OVERLAP_DETECTED_PENDING_CONSENT,
                ]
            )
        )
        .order_by(Application.coordinate_review_deadline.asc().nulls_last())
    )
    return list(result.scalars().all())


async def count_by_status(db: AsyncSession) -> dict[str, int]:
    result = await db.execute(
        select(Application.status, func.count()).group_by(Application.status)
    )
    return {status.value: count for status, count in result.all()}
