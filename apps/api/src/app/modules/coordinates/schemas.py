"""
Coordinates Schemas

Request/response models for coordinate validation, submission and review.
"""

import enum
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.modules.applications.models import ApplicationStatus, PermitType

from .models import CoordinateStatus


class ReviewDecision(str, enum.Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


# ============================================
# Requests
# ============================================


class CoordinatesInput(BaseModel):
    """
    Raw boundary input.

    `coordinates` is either a list of points or the legacy keyed object
    ({"point1": {...}, "point2": {...}}); it is decoded by the validator.
    """

    coordinates: list[Any] | dict[str, Any]


class CoordinateReviewRequest(BaseModel):
    decision: ReviewDecision
    remarks: str | None = Field(None, max_length=2000)


# ============================================
# Responses
# ============================================


class FieldError(BaseModel):
    field: str
    message: str


class BoundsResponse(BaseModel):
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float


class CentroidResponse(BaseModel):
    lat: float
    lng: float
    lat_dms: str
    lng_dms: str


class ValidationResultResponse(BaseModel):
    valid: bool
    point_count: int
    errors: list[FieldError]
    bounds: BoundsResponse | None = None
    centroid: CentroidResponse | None = None
    geojson: dict[str, Any] | None = None


class OverlapResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    affected_application_id: UUID
    affected_application_no: str
    affected_coordinate_history_id: UUID
    overlap_percentage: float
    overlap_area_sq_meters: float
    overlap_geojson: dict[str, Any] | None = None


class SubmissionResponse(BaseModel):
    status: ApplicationStatus
    overlaps: list[OverlapResponse]
    review_deadline: datetime | None = None


class CoordinateHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    application_id: UUID
    coordinates: list[dict[str, float]]
    point_count: int
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float
    status: CoordinateStatus
    approved_at: datetime
    approved_by: UUID | None = None
    replaced_at: datetime | None = None
    replaced_by: UUID | None = None
    voided_at: datetime | None = None
    void_reason: str | None = None


class PendingReviewItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    application_no: str
    permit_type: PermitType
    project_name: str | None = None
    status: ApplicationStatus
    coordinate_review_deadline: datetime | None = None
    project_coordinates: list[dict[str, float]] | None = None


class CoordinateStatisticsResponse(BaseModel):
    ledger: dict[str, int]
    pending_review: int
    pending_consent: int
    revision_required: int
