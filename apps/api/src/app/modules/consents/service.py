"""
Consents Service Layer

Overlap consent workflow:
1. REQUIRED rows are created by coordinate submission (see coordinates.service)
2. The applicant uploads a signed consent document (-> UPLOADED)
3. An admin verifies or rejects it (-> VERIFIED / REJECTED)

When the last outstanding consent is verified, an application waiting on
consents moves on to admin coordinate review.
"""

import logging
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Actor
from app.core.config import settings
from app.core.errors import (
    AuthorizationError,
    DependencyError,
    NotFoundError,
    StateConflictError,
)
from app.core.storage import FileMetadata, FileStorage, StoredFile, validate_document
from app.core.working_days import add_working_days
from app.modules.applications import repository as application_repository
from app.modules.applications.models import Application, ApplicationStatus, ChangedByRole
from app.modules.applications.service import get_application, get_owned_application
from app.modules.coordinates import ledger
from app.modules.coordinates.geometry import bounding_box
from app.modules.coordinates.models import CoordinateHistory
from app.modules.coordinates.overlap import ReferencePolygon, detect_overlaps
from app.modules.coordinates.validator import Polygon, polygon_from_json
from app.modules.notifications.models import Notification, NotificationType
from app.modules.notifications.service import deliver_emails, notify_admins, notify_applicant

from . import repository
from .models import ConsentStatus, OverlapConsent
from .schemas import ConsentDecision
from .summary import ConsentSummary, consent_summary

logger = logging.getLogger(__name__)

UPLOADABLE_STATUSES = {
    ConsentStatus.REQUIRED,
    ConsentStatus.UPLOADED,
    ConsentStatus.REJECTED,
}


async def _new_application_polygon(
    db: AsyncSession, application: Application
) -> Polygon | None:
    """Boundary of the new application: pending submission first, else its ACTIVE record."""
    if application.project_coordinates:
        return polygon_from_json(application.project_coordinates)
    active = await ledger.get_active(db, application.id)
    if active is not None:
        return polygon_from_json(active.coordinates)
    return None


async def _create_consent_for_pair(
    db: AsyncSession,
    application: Application,
    affected: Application,
    affected_record: CoordinateHistory,
) -> OverlapConsent:
    """A consent row for a pair the applicant uploads for before detection recorded it."""
    polygon = await _new_application_polygon(db, application)

    reference_polygon = polygon_from_json(affected_record.coordinates)
    overlaps = detect_overlaps(
        polygon,
        [
            ReferencePolygon(
                history_id=affected_record.id,
                application_id=affected.id,
                application_no=affected.application_no,
                polygon=reference_polygon,
                bounding_box=bounding_box(reference_polygon),
            )
        ],
    )
    overlap = overlaps[0] if overlaps else None
    return await repository.upsert_required(
        db,
        new_application_id=application.id,
        new_coordinate_history_id=None,
        affected_application_id=affected.id,
        affected_coordinate_history_id=affected_record.id,
        overlap_percentage=overlap.overlap_percentage if overlap else 0.0,
        overlap_area_sq_meters=overlap.overlap_area_sq_meters if overlap else 0.0,
        overlap_geojson=overlap.overlap_geojson if overlap else None,
    )


async def upload_consent(
    db: AsyncSession,
    storage: FileStorage,
    new_application_id: UUID,
    affected_application_id: UUID,
    data: bytes,
    filename: str,
    content_type: str | None,
    actor: Actor,
) -> OverlapConsent:
    """
    Upload the consent document for one overlapping pair.

    The file is stored before any row is written and removed again if the
    transaction fails. A replaced file is deleted after the commit.

    Raises:
        NotFoundError: If either application doesn't exist
        AuthorizationError: If the actor doesn't own the new application
        ValidationError: If the file is invalid
        DependencyError: If a required coordinate record is missing
        StateConflictError: If the consent can no longer be uploaded
    """
    application = await get_owned_application(db, new_application_id, actor, allow_admin=False)
    validate_document(data, filename, content_type, settings.max_upload_file_size)

    if application.status == ApplicationStatus.VOIDED:
        raise StateConflictError(
            "Consents cannot be uploaded for a voided application",
            current_status=application.status.value,
        )

    affected = await get_application(db, affected_application_id)
    affected_record = await ledger.get_active(db, affected.id)
    if affected_record is None:
        raise DependencyError(
            f"Application {affected.application_no} has no approved coordinates",
            missing="affected_coordinate_history",
        )

    polygon = await _new_application_polygon(db, application)
    if polygon is None:
        raise DependencyError(
            f"Application {application.application_no} has no submitted coordinates",
            missing="new_application_coordinates",
        )

    consent = await repository.get_by_pair(db, application.id, affected.id)
    if consent is not None and consent.consent_status not in UPLOADABLE_STATUSES:
        raise StateConflictError(
            f"Consent is {consent.consent_status.value} and cannot be replaced",
            current_status=consent.consent_status.value,
        )

    stored: StoredFile = await storage.store(
        data,
        FileMetadata(
            filename=filename,
            content_type=(content_type or "").lower(),
            folder=f"consents/{application.id}",
        ),
    )

    previous_url = consent.consent_file_url if consent is not None else None
    try:
        if consent is None:
            consent = await _create_consent_for_pair(db, application, affected, affected_record)

        consent.consent_status = ConsentStatus.UPLOADED
        consent.consent_file_url = stored.url
        consent.consent_file_name = filename
        consent.consent_uploaded_at = datetime.now(UTC)
        consent.consent_uploaded_by = actor.id
        consent.consent_verified_at = None
        consent.consent_verified_by = None
        consent.verification_remarks = None

        await notify_admins(
            db,
            application,
            NotificationType.CONSENT_UPLOADED,
            "Consent uploaded",
            f"{application.application_no} uploaded an overlap consent from "
            f"{affected.application_no}.",
        )
        await db.commit()
    except Exception:
        await db.rollback()
        await storage.delete(stored.url)
        raise

    if previous_url:
        try:
            await storage.delete(previous_url)
        except Exception as e:
            logger.error(f"Failed to delete replaced consent file {previous_url}: {e}")

    await db.refresh(consent)
    logger.info(
        f"Consent uploaded for {application.application_no} / {affected.application_no} "
        f"({stored.size} bytes)"
    )
    return consent


async def verify_consent(
    db: AsyncSession,
    consent_id: UUID,
    decision: ConsentDecision,
    remarks: str | None,
    actor: Actor,
) -> tuple[OverlapConsent, ConsentSummary]:
    """
    Verify or reject an uploaded consent.

    Returns:
        The consent and the application's updated consent summary

    Raises:
        AuthorizationError: If the actor is not an admin
        NotFoundError: If the consent doesn't exist
        StateConflictError: If the consent is not UPLOADED
    """
    if not actor.is_admin:
        raise AuthorizationError("Only admins can verify consents.")

    consent = await repository.get_by_id(db, consent_id)
    if not consent:
        raise NotFoundError("Consent", consent_id)

    if consent.consent_status != ConsentStatus.UPLOADED:
        raise StateConflictError(
            f"Only uploaded consents can be verified (consent is "
            f"{consent.consent_status.value})",
            current_status=consent.consent_status.value,
        )

    application = await get_application(db, consent.new_application_id)
    now = datetime.now(UTC)
    verified = decision == ConsentDecision.VERIFIED

    consent.consent_status = ConsentStatus.VERIFIED if verified else ConsentStatus.REJECTED
    consent.consent_verified_at = now
    consent.consent_verified_by = actor.id
    consent.verification_remarks = remarks
    await db.flush()

    notifications: list[Notification] = []
    if verified:
        notifications.append(
            await notify_applicant(
                db,
                application,
                NotificationType.CONSENT_VERIFIED,
                "Consent verified",
                "An overlap consent for your application was verified.",
            )
        )
    else:
        notifications.append(
            await notify_applicant(
                db,
                application,
                NotificationType.CONSENT_REJECTED,
                "Consent rejected",
                f"An overlap consent for your application was rejected: "
                f"{remarks or 'no remarks given'}. Please upload a new one.",
            )
        )

    consents = await repository.list_for_application(db, application.id)
    summary = consent_summary(consents)

    if (
        summary.all_verified
        and application.status == ApplicationStatus.OVERLAP_DETECTED_PENDING_CONSENT
    ):
        await application_repository.transition_status(
            db,
            application,
            ApplicationStatus.PENDING_COORDINATE_APPROVAL,
            changed_by=actor.id,
            changed_by_role=ChangedByRole.ADMIN,
            remarks="All overlap consents verified",
            coordinate_review_deadline=add_working_days(
                now, settings.admin_review_deadline_days
            ),
        )
        logger.info(f"All consents verified for {application.application_no}")

    await db.commit()
    await deliver_emails(application, notifications)

    return consent, summary


async def list_consents(
    db: AsyncSession,
    application_id: UUID,
    actor: Actor,
) -> dict[str, Any]:
    """Consents of an application with their summary."""
    await get_owned_application(db, application_id, actor)
    consents = await repository.list_for_application(db, application_id)
    return {"items": consents, "summary": consent_summary(consents)}
