"""
Consents Schemas
"""

import enum
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .models import ConsentStatus


class ConsentDecision(str, enum.Enum):
    VERIFIED = "verified"
    REJECTED = "rejected"


class ConsentVerifyRequest(BaseModel):
    decision: ConsentDecision
    remarks: str | None = Field(None, max_length=2000)


class ConsentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    new_application_id: UUID
    new_coordinate_history_id: UUID | None = None
    affected_application_id: UUID
    affected_coordinate_history_id: UUID
    overlap_percentage: float
    overlap_area_sq_meters: float
    overlap_geojson: dict[str, Any] | None = None
    consent_status: ConsentStatus
    consent_file_url: str | None = None
    consent_file_name: str | None = None
    consent_uploaded_at: datetime | None = None
    consent_verified_at: datetime | None = None
    verification_remarks: str | None = None


class ConsentSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    all_verified: bool
    any_rejected: bool
    total_consents: int
    verified_count: int
    rejected_count: int
    pending_count: int


class ConsentListResponse(BaseModel):
    items: list[ConsentResponse]
    summary: ConsentSummaryResponse


class ConsentVerifyResponse(BaseModel):
    consent: ConsentResponse
    summary: ConsentSummaryResponse
