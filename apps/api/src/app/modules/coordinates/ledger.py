"""
Coordinate Ledger

Repository for approved polygon versions (CoordinateHistory).

Like the other repositories, nothing here commits: approval, replacement
and voiding always run inside the caller's transaction together with the
application status change that caused them.
"""

import logging
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.applications.models import Application

from .geometry import BoundingBox, bounding_box, to_geojson
from .models import CoordinateHistory, CoordinateStatus
from .overlap import ReferencePolygon
from .validator import Polygon, polygon_from_json, polygon_to_json

logger = logging.getLogger(__name__)


async def get_active(db: AsyncSession, application_id: UUID) -> CoordinateHistory | None:
    """The ACTIVE record of an application, if any."""
    result = await db.execute(
        select(CoordinateHistory).where(
            CoordinateHistory.application_id == application_id,
            CoordinateHistory.status == CoordinateStatus.ACTIVE,
        )
    )
    return result.scalar_one_or_none()


async def approve(
    db: AsyncSession,
    application_id: UUID,
    polygon: Polygon,
    approved_by: UUID | None,
    now: datetime | None = None,
) -> CoordinateHistory:
    """
    Record a newly approved polygon as the application's ACTIVE version.

    The previous ACTIVE record (if any) is marked REPLACED and flushed
    before the new row is inserted, so the one-ACTIVE-per-application index
    never sees two ACTIVE rows. The old row then points at its successor.

    Args:
        db: Database session
        application_id: Owning application
        polygon: Validated canonical polygon
        approved_by: Admin ID, or None for system approval

    Returns:
        The new ACTIVE record
    """
    now = now or datetime.now(UTC)

    previous = await get_active(db, application_id)
    if previous is not None:
        previous.status = CoordinateStatus.REPLACED
        previous.replaced_at = now
        await db.flush()

    box = bounding_box(polygon)
    record = CoordinateHistory(
        application_id=application_id,
        coordinates=polygon_to_json(polygon),
        point_count=len(polygon),
        min_lat=box.min_lat,
        max_lat=box.max_lat,
        min_lng=box.min_lng,
        max_lng=box.max_lng,
        polygon_geojson=to_geojson(polygon, {"application_id": str(application_id)}),
        status=CoordinateStatus.ACTIVE,
        approved_at=now,
        approved_by=approved_by,
    )
    db.add(record)
    await db.flush()

    if previous is not None:
        previous.replaced_by = record.id
        await db.flush()
        logger.info(f"Coordinates {previous.id} replaced by {record.id} for {application_id}")
    else:
        logger.info(f"Coordinates {record.id} approved for {application_id}")

    return record


async def active_set(
    db: AsyncSession,
    exclude_application_id: UUID | None = None,
) -> list[ReferencePolygon]:
    """All ACTIVE polygons as overlap references, optionally excluding one application."""
    query = select(CoordinateHistory, Application.application_no).join(
        Application, Application.id == CoordinateHistory.application_id
    ).where(CoordinateHistory.status == CoordinateStatus.ACTIVE)
    if exclude_application_id is not None:
        query = query.where(CoordinateHistory.application_id != exclude_application_id)

    result = await db.execute(query)
    return [
        ReferencePolygon(
            history_id=record.id,
            application_id=record.application_id,
            application_no=application_no,
            polygon=polygon_from_json(record.coordinates),
            bounding_box=BoundingBox(
                min_lat=record.min_lat,
                max_lat=record.max_lat,
                min_lng=record.min_lng,
                max_lng=record.max_lng,
            ),
        )
        for record, application_no in result.all()
    ]


async def void(
    db: AsyncSession,
    application_id: UUID,
    reason: str,
    now: datetime | None = None,
) -> int:
    """
    Void every ACTIVE record of an application.

    Returns:
        Number of records voided
    """
    result = await db.execute(
        update(CoordinateHistory)
        .where(
            CoordinateHistory.application_id == application_id,
            CoordinateHistory.status == CoordinateStatus.ACTIVE,
        )
        .values(
            status=CoordinateStatus.VOIDED,
            voided_at=now or datetime.now(UTC),
            void_reason=reason,
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


async def revision_history(db: AsyncSession, application_id: UUID) -> list[CoordinateHistory]:
    """Every approved version of an application, newest first."""
    result = await db.execute(
        select(CoordinateHistory)
        .where(CoordinateHistory.application_id == application_id)
        .order_by(CoordinateHistory.approved_at.desc())
    )
    return list(result.scalars().all())


async def has_approved_coordinates(db: AsyncSession, application_id: UUID) -> bool:
    return await get_active(db, application_id) is not None


async def statistics(db: AsyncSession) -> dict[str, int]:
    """Record counts per status, plus the total."""
    result = await db.execute(
        select(CoordinateHistory.status, func.count()).group_by(CoordinateHistory.status)
    )
    counts = {status.value: 0 for status in CoordinateStatus}
    for status, count in result.all():
        counts[status.value] = count
    counts["total"] = sum(counts.values())
    return counts
