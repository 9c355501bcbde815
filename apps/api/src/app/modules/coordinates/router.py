"""
Coordinates Router (applicant)

Endpoints:
- POST /coordinates/validate - Validate a boundary without saving it
- POST /applications/{id}/coordinates - Submit or resubmit the boundary
- GET /applications/{id}/coordinates/history - Approved boundary versions
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Actor, get_current_actor
from app.core.database import get_db
from app.core.errors import PermitServiceError, http_error
from app.modules.coordinates import service
from app.modules.coordinates.schemas import (
    CoordinateHistoryResponse,
    CoordinatesInput,
    OverlapResponse,
    SubmissionResponse,
    ValidationResultResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/coordinates/validate",
    response_model=ValidationResultResponse,
    summary="Validate Coordinates",
)
async def validate_coordinates(
    data: CoordinatesInput,
    actor: Actor = Depends(get_current_actor),
) -> ValidationResultResponse:
    """Check a boundary and preview its bounds and GeoJSON. Nothing is stored."""
    return ValidationResultResponse.model_validate(service.validate_coordinates(data.coordinates))


@router.post(
    "/applications/{application_id}/coordinates",
    response_model=SubmissionResponse,
    summary="Submit Project Coordinates",
)
async def submit_coordinates(
    application_id: UUID,
    data: CoordinatesInput,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> SubmissionResponse:
    """
    Submit the project boundary.

    Depending on overlaps with approved areas the application moves to
    COORDINATE_AUTO_APPROVED, PENDING_COORDINATE_APPROVAL or
    OVERLAP_DETECTED_PENDING_CONSENT.
    """
    try:
        result = await service.submit_coordinates(db, application_id, data.coordinates, actor)
    except PermitServiceError as e:
        raise http_error(e) from e

    return SubmissionResponse(
        status=result["status"],
        overlaps=[OverlapResponse.model_validate(o) for o in result["overlaps"]],
        review_deadline=result["review_deadline"],
    )


@router.get(
    "/applications/{application_id}/coordinates/history",
    response_model=list[CoordinateHistoryResponse],
    summary="Get Coordinate History",
)
async def get_coordinate_history(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> list[CoordinateHistoryResponse]:
    try:
        records = await service.get_coordinate_history(db, application_id, actor)
    except PermitServiceError as e:
        raise http_error(e) from e
    return [CoordinateHistoryResponse.model_validate(r) for r in records]
