"""
Consents Repository

Database operations for overlap consents. Nothing here commits.
"""

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import ConsentStatus, OverlapConsent


async def get_by_id(db: AsyncSession, id: UUID) -> OverlapConsent | None:
    return await db.get(OverlapConsent, id)


async def get_by_pair(
    db: AsyncSession,
    new_application_id: UUID,
    affected_application_id: UUID,
) -> OverlapConsent | None:
    result = await db.execute(
        select(OverlapConsent).where(
            OverlapConsent.new_application_id == new_application_id,
            OverlapConsent.affected_application_id == affected_application_id,
        )
    )
    return result.scalar_one_or_none()


async def list_for_application(
    db: AsyncSession,
    new_application_id: UUID,
    include_not_required: bool = False,
) -> list[OverlapConsent]:
    """Consents an application needs, largest overlap first."""
    query = select(OverlapConsent).where(OverlapConsent.new_application_id == new_application_id)
    if not include_not_required:
        query = query.where(OverlapConsent.consent_status != ConsentStatus.NOT_REQUIRED)
    result = await db.execute(query.order_by(OverlapConsent.overlap_percentage.desc()))
    return list(result.scalars().all())


async def upsert_required(
    db: AsyncSession,
    new_application_id: UUID,
    new_coordinate_history_id: UUID | None,
    affected_application_id: UUID,
    affected_coordinate_history_id: UUID,
    overlap_percentage: float,
    overlap_area_sq_meters: float,
    overlap_geojson: dict | None,
) -> OverlapConsent:
    """
    Create or reset the consent for an overlapping pair to REQUIRED.

    An existing row is updated in place: the overlap measurement is
    refreshed and any previous upload or verification is cleared, since it
    was given for a different boundary.
    """
    consent = await get_by_pair(db, new_application_id, affected_application_id)
    if consent is None:
        consent = OverlapConsent(
            new_application_id=new_application_id,
            affected_application_id=affected_application_id,
        )
        db.add(consent)

    consent.new_coordinate_history_id = new_coordinate_history_id
    consent.affected_coordinate_history_id = affected_coordinate_history_id
    consent.overlap_percentage = overlap_percentage
    consent.overlap_area_sq_meters = overlap_area_sq_meters
    consent.overlap_geojson = overlap_geojson
    consent.consent_status = ConsentStatus.REQUIRED
    consent.consent_file_url = None
    consent.consent_file_name = None
    consent.consent_uploaded_at = None
    consent.consent_uploaded_by = None
    consent.consent_verified_at = None
    consent.consent_verified_by = None
    consent.verification_remarks = None

    await db.flush()
    return consent


async def mark_not_required(
    db: AsyncSession,
    new_application_id: UUID,
    keep_affected_ids: set[UUID],
) -> int:
    """
    Mark consents for pairs that no longer overlap as NOT_REQUIRED.

    Returns:
        Number of consents updated
    """
    query = update(OverlapConsent).where(
        OverlapConsent.new_application_id == new_application_id,
        OverlapConsent.consent_status != ConsentStatus.NOT_REQUIRED,
    )
    if keep_affected_ids:
        query = query.where(OverlapConsent.affected_application_id.not_in(keep_affected_ids))

    result = await db.execute(
        query.values(consent_status=ConsentStatus.NOT_REQUIRED).execution_options(
            synchronize_session=False
        )
    )
    return result.rowcount


async def link_coordinate_history(
    db: AsyncSession,
    new_application_id: UUID,
    coordinate_history_id: UUID,
) -> int:
    """Point the application's consents at its newly approved ledger record."""
    result = await db.execute(
        update(OverlapConsent)
        .where(
            OverlapConsent.new_application_id == new_application_id,
            OverlapConsent.consent_status != ConsentStatus.NOT_REQUIRED,
        )
        .values(new_coordinate_history_id=coordinate_history_id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount
