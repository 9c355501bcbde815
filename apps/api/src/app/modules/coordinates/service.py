"""
Coordinates Service Layer

Business logic for project coordinates:
1. Stateless validation preview
2. Applicant submission with overlap detection
3. Admin approve/reject with the consent gate
4. System auto-approval once the review deadline passes (sweeper)

Each public operation is one transaction: repositories flush, the service
commits once, and emails go out after the commit.
"""

import logging
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Actor
from app.core.config import settings
from app.core.errors import AuthorizationError, StateConflictError, ValidationError
from app.core.working_days import add_working_days
from app.modules.applications import repository as application_repository
from app.modules.applications.models import Application, ApplicationStatus, ChangedByRole
from app.modules.applications.service import actor_role, get_application, get_owned_application
from app.modules.consents import repository as consent_repository
from app.modules.consents.summary import ensure_all_verified
from app.modules.notifications.models import Notification, NotificationType
from app.modules.notifications.service import deliver_emails, notify_admins, notify_applicant

from . import ledger
from .geometry import bounding_box, centroid, decimal_to_dms, parse_dms, to_geojson
from .models import CoordinateHistory
from .overlap import OverlapResult, detect_overlaps
from .schemas import ReviewDecision
from .validator import (
    CoordinateValidationError,
    normalize_and_validate,
    polygon_from_json,
    polygon_to_json,
)

logger = logging.getLogger(__name__)

SUBMITTABLE_STATUSES = {
    ApplicationStatus.DRAFT,
    ApplicationStatus.COORDINATE_REVISION_REQUIRED,
}

REVIEWABLE_STATUSES = {
    ApplicationStatus.PENDING_COORDINATE_APPROVAL,
    ApplicationStatus.OVERLAP_DETECTED_PENDING_CONSENT,
}


def _now() -> datetime:
    return datetime.now(UTC)


def _convert_dms(value: Any) -> Any:
    """Replace DMS strings (14°35'12.5"N) with decimal degrees, leaving everything else as is."""
    if isinstance(value, str) and "°" in value:
        try:
            return parse_dms(value)
        except ValueError:
            return value
    if isinstance(value, dict):
        return {key: _convert_dms(item) for key, item in value.items()}
    if isinstance(value, list | tuple):
        return [_convert_dms(item) for item in value]
    return value


# ============================================
# Validation preview
# ============================================


def validate_coordinates(raw: Any) -> dict[str, Any]:
    """
    Validate raw coordinates without persisting anything.

    Returns:
        {valid, point_count, errors, bounds, centroid, geojson}; the centroid
        carries DMS renderings for survey plans
    """
    try:
        polygon = normalize_and_validate(
            _convert_dms(raw), max_points=settings.max_coordinate_points
        )
    except CoordinateValidationError as e:
        return {
            "valid": False,
            "point_count": 0,
            "errors": e.details,
            "bounds": None,
            "centroid": None,
            "geojson": None,
        }

    center = centroid(polygon)
    return {
        "valid": True,
        "point_count": len(polygon),
        "errors": [],
        "bounds": bounding_box(polygon).as_dict(),
        "centroid": {
            "lat": center.lat,
            "lng": center.lng,
            "lat_dms": decimal_to_dms(center.lat),
            "lng_dms": decimal_to_dms(center.lng),
        },
        "geojson": to_geojson(polygon),
    }


# ============================================
# Submission
# ============================================


async def submit_coordinates(
    db: AsyncSession,
    application_id: UUID,
    raw: Any,
    actor: Actor,
) -> dict[str, Any]:
    """
    Submit (or resubmit) the project boundary of an application.

    Args:
        db: Database session
        application_id: Application to submit for
        raw: Coordinates in either accepted input shape
        actor: The applicant

    Returns:
        {status, overlaps, review_deadline}

    Raises:
        NotFoundError: If the application doesn't exist
        AuthorizationError: If the actor doesn't own it
        StateConflictError: If coordinates can't be submitted in its status
        CoordinateValidationError: If the polygon is invalid
    """
    application = await get_owned_application(db, application_id, actor, allow_admin=False)

    if application.status not in SUBMITTABLE_STATUSES:
        raise StateConflictError(
            f"Coordinates cannot be submitted while the application is "
            f"{application.status.value}",
            current_status=application.status.value,
        )

    polygon = normalize_and_validate(_convert_dms(raw), max_points=settings.max_coordinate_points)
    references = await ledger.active_set(db, exclude_application_id=application.id)
    overlaps = detect_overlaps(polygon, references)

    now = _now()
    role = actor_role(actor)
    common = {
        "project_coordinates": polygon_to_json(polygon),
        "coordinate_revision_deadline": None,
        "coordinate_review_remarks": None,
    }
    notifications: list[Notification] = []
    review_deadline: datetime | None = None

    if overlaps:
        await _record_overlap_consents(db, application, overlaps)
        await application_repository.transition_status(
            db,
            application,
            ApplicationStatus.OVERLAP_DETECTED_PENDING_CONSENT,
            changed_by=actor.id,
            changed_by_role=role,
            remarks=f"Coordinates overlap {len(overlaps)} approved area(s)",
            coordinate_review_deadline=None,
            **common,
        )
        affected = ", ".join(o.affected_application_no for o in overlaps)
        notifications.append(
            await notify_applicant(
                db,
                application,
                NotificationType.OVERLAP_DETECTED,
                "Overlap detected",
                f"Your project area overlaps {affected}. Upload a consent from each "
                f"affected holder to continue.",
            )
        )
    else:
        await consent_repository.mark_not_required(db, application.id, set())

        if settings.auto_approve_clear_coordinates:
            await application_repository.transition_status(
                db,
                application,
                ApplicationStatus.COORDINATE_AUTO_APPROVED,
                changed_by=actor.id,
                changed_by_role=role,
                remarks="No overlaps detected; coordinates auto-approved",
                coordinate_review_deadline=None,
                coordinate_approved_at=now,
                **common,
            )
            await ledger.approve(db, application.id, polygon, approved_by=None, now=now)
            notifications.append(
                await notify_applicant(
                    db,
                    application,
                    NotificationType.COORDINATES_AUTO_APPROVED,
                    "Coordinates approved",
                    "No overlaps were found. Your project coordinates were approved "
                    "automatically.",
                )
            )
        else:
            review_deadline = add_working_days(now, settings.admin_review_deadline_days)
            await application_repository.transition_status(
                db,
                application,
                ApplicationStatus.PENDING_COORDINATE_APPROVAL,
                changed_by=actor.id,
                changed_by_role=role,
                remarks="Coordinates submitted for review",
                coordinate_review_deadline=review_deadline,
                **common,
            )

    await notify_admins(
        db,
        application,
        NotificationType.COORDINATES_SUBMITTED,
        "Coordinates submitted",
        f"{application.application_no} submitted project coordinates "
        f"({len(overlaps)} overlap(s)).",
    )

    await db.commit()
    await deliver_emails(application, notifications)

    logger.info(
        f"Coordinates submitted for {application.application_no}: "
        f"status={application.status.value}, overlaps={len(overlaps)}"
    )

    return {
        "status": application.status,
        "overlaps": overlaps,
        "review_deadline": review_deadline,
    }


async def _record_overlap_consents(
    db: AsyncSession,
    application: Application,
    overlaps: list[OverlapResult],
) -> None:
    # The submitted polygon has no ledger record until it is approved
    for overlap in overlaps:
        await consent_repository.upsert_required(
            db,
            new_application_id=application.id,
            new_coordinate_history_id=None,
            affected_application_id=overlap.affected_application_id,
            affected_coordinate_history_id=overlap.affected_coordinate_history_id,
            overlap_percentage=overlap.overlap_percentage,
            overlap_area_sq_meters=overlap.overlap_area_sq_meters,
            overlap_geojson=overlap.overlap_geojson,
        )
    stale = await consent_repository.mark_not_required(
        db, application.id, {o.affected_application_id for o in overlaps}
    )
    if stale:
        logger.info(f"{stale} consent(s) no longer required for {application.application_no}")


# ============================================
# Review
# ============================================


async def _approve_into_ledger(
    db: AsyncSession,
    application: Application,
    approved_by: UUID | None,
    now: datetime,
) -> CoordinateHistory:
    polygon = polygon_from_json(application.project_coordinates)
    record = await ledger.approve(db, application.id, polygon, approved_by=approved_by, now=now)
    await consent_repository.link_coordinate_history(db, application.id, record.id)
    return record


async def review_coordinates(
    db: AsyncSession,
    application_id: UUID,
    decision: ReviewDecision,
    remarks: str | None,
    actor: Actor,
) -> Application:
    """
    Approve or reject submitted coordinates.

    Approval is gated on every overlap consent being VERIFIED. Rejection
    opens a revision window of REVISION_DEADLINE_DAYS working days.

    Raises:
        AuthorizationError: If the actor is not an admin
        NotFoundError: If the application doesn't exist
        StateConflictError: If the application is not awaiting review
        ConsentsNotVerifiedError: If approving with consents outstanding
        ValidationError: If rejecting without remarks
    """
    if not actor.is_admin:
        raise AuthorizationError("Only admins can review coordinates.")

    application = await get_application(db, application_id)
    if application.status not in REVIEWABLE_STATUSES:
        raise StateConflictError(
            f"Coordinates of {application.application_no} are not awaiting review",
            current_status=application.status.value,
        )

    now = _now()

    if decision == ReviewDecision.APPROVED:
        consents = await consent_repository.list_for_application(db, application.id)
        ensure_all_verified(consents, current_status=application.status.value)

        await application_repository.transition_status(
            db,
            application,
            ApplicationStatus.COORDINATE_APPROVED,
            changed_by=actor.id,
            changed_by_role=ChangedByRole.ADMIN,
            remarks=remarks or "Coordinates approved",
            coordinate_approved_at=now,
            coordinate_review_deadline=None,
            coordinate_revision_deadline=None,
            coordinate_review_remarks=remarks,
        )
        await _approve_into_ledger(db, application, approved_by=actor.id, now=now)
        notification = await notify_applicant(
            db,
            application,
            NotificationType.COORDINATES_APPROVED,
            "Coordinates approved",
            "Your project coordinates were approved. You can now start the acceptance "
            "requirements.",
        )
    else:
        if not remarks or not remarks.strip():
            raise ValidationError(
                "Remarks are required when rejecting coordinates.",
                details=[{"field": "remarks", "message": "Required when rejecting"}],
            )

        revision_deadline = add_working_days(now, settings.revision_deadline_days)
        await application_repository.transition_status(
            db,
            application,
            ApplicationStatus.COORDINATE_REVISION_REQUIRED,
            changed_by=actor.id,
            changed_by_role=ChangedByRole.ADMIN,
            remarks=remarks,
            coordinate_review_deadline=None,
            coordinate_revision_deadline=revision_deadline,
            coordinate_review_remarks=remarks,
        )
        notification = await notify_applicant(
            db,
            application,
            NotificationType.COORDINATES_REJECTED,
            "Coordinates need revision",
            f"Your project coordinates need revision: {remarks}. Resubmit before "
            f"{revision_deadline:%B %d, %Y}.",
        )

    await db.commit()
    await deliver_emails(application, [notification])

    logger.info(
        f"Admin {actor.id} reviewed coordinates of {application.application_no}: "
        f"{decision.value}"
    )
    return application


async def auto_approve_expired_review(
    db: AsyncSession,
    application: Application,
    now: datetime,
) -> Notification:
    """
    Approve coordinates whose review deadline passed, as the system.

    Does not commit; the sweeper owns the per-record transaction.

    Raises:
        ConsentsNotVerifiedError: If consents are outstanding
        ConcurrentStatusChangeError: If the application moved meanwhile
    """
    consents = await consent_repository.list_for_application(db, application.id)
    ensure_all_verified(consents, current_status=application.status.value)

    await application_repository.transition_status(
        db,
        application,
        ApplicationStatus.COORDINATE_AUTO_APPROVED,
        changed_by=None,
        changed_by_role=ChangedByRole.SYSTEM,
        remarks="Auto-approved due to review deadline expiration",
        coordinate_approved_at=now,
        coordinate_review_deadline=None,
    )
    await _approve_into_ledger(db, application, approved_by=None, now=now)
    return await notify_applicant(
        db,
        application,
        NotificationType.COORDINATES_AUTO_APPROVED,
        "Coordinates auto-approved",
        "The review period for your project coordinates ended; they were approved "
        "automatically.",
    )


# ============================================
# Queries
# ============================================


async def get_coordinate_history(
    db: AsyncSession,
    application_id: UUID,
    actor: Actor,
) -> list[CoordinateHistory]:
    await get_owned_application(db, application_id, actor)
    return await ledger.revision_history(db, application_id)


async def list_pending_reviews(db: AsyncSession) -> list[Application]:
    return await application_repository.list_pending_coordinate_review(db)


async def get_statistics(db: AsyncSession) -> dict[str, Any]:
    counts = await application_repository.count_by_status(db)
    return {
        "ledger": await ledger.statistics(db),
        "pending_review": counts.get(ApplicationStatus.PENDING_COORDINATE_APPROVAL.value, 0),
        "pending_consent": counts.get(
            ApplicationStatus.OVERLAP_DETECTED_PENDING_CONSENT.value, 0
        ),
        "revision_required": counts.get(
            ApplicationStatus.COORDINATE_REVISION_REQUIRED.value, 0
        ),
    }
