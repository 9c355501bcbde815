"""
Coordinates Admin Router

Endpoints:
- GET /admin/coordinates/pending - Applications awaiting a coordinate decision
- POST /admin/applications/{id}/coordinates/review - Approve or reject
- GET /admin/coordinates/statistics - Ledger and queue counts
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Actor, get_current_admin
from app.core.database import get_db
from app.core.errors import PermitServiceError, http_error
from app.modules.applications.schemas import ApplicationResponse
from app.modules.coordinates import service
from app.modules.coordinates.schemas import (
    CoordinateReviewRequest,
    CoordinateStatisticsResponse,
    PendingReviewItem,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/coordinates/pending",
    response_model=list[PendingReviewItem],
    summary="List Pending Coordinate Reviews",
)
async def list_pending(
    db: AsyncSession = Depends(get_db),
    admin: Actor = Depends(get_current_admin),
) -> list[PendingReviewItem]:
    applications = await service.list_pending_reviews(db)
    return [PendingReviewItem.model_validate(a) for a in applications]


@router.post(
    "/applications/{application_id}/coordinates/review",
    response_model=ApplicationResponse,
    summary="Review Coordinates",
)
async def review_coordinates(
    application_id: UUID,
    data: CoordinateReviewRequest,
    db: AsyncSession = Depends(get_db),
    admin: Actor = Depends(get_current_admin),
) -> ApplicationResponse:
    """
    Approve or reject submitted coordinates.

    Approval fails with 409 CONSENTS_NOT_VERIFIED while any overlap consent
    is still pending or rejected.
    """
    try:
        application = await service.review_coordinates(
            db, application_id, data.decision, data.remarks, admin
        )
    except PermitServiceError as e:
        raise http_error(e) from e
    return ApplicationResponse.model_validate(application)


@router.get(
    "/coordinates/statistics",
    response_model=CoordinateStatisticsResponse,
    summary="Coordinate Statistics",
)
async def get_statistics(
    db: AsyncSession = Depends(get_db),
    admin: Actor = Depends(get_current_admin),
) -> CoordinateStatisticsResponse:
    return CoordinateStatisticsResponse.model_validate(await service.get_statistics(db))
