"""
Applications Schemas
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.modules.applications.models import (
    ApplicationStatus,
    ChangedByRole,
    PermitType,
)


class ApplicationCreate(BaseModel):
    """Request body for POST /applications."""

    permit_type: PermitType
    project_name: str | None = Field(None, min_length=1, max_length=200)


class ApplicationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    application_no: str
    permit_type: PermitType
    project_name: str | None
    status: ApplicationStatus
    project_coordinates: list[dict[str, float]] | None = None
    coordinate_review_deadline: datetime | None = None
    coordinate_revision_deadline: datetime | None = None
    coordinate_review_remarks: str | None = None
    coordinate_approved_at: datetime | None = None
    acceptance_requirements_started_at: datetime | None = None
    current_acceptance_requirement_id: UUID | None = None
    other_documents_started_at: datetime | None = None
    voided_at: datetime | None = None
    void_reason: str | None = None
    created_at: datetime


class StatusHistoryItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    from_status: ApplicationStatus | None
    to_status: ApplicationStatus
    changed_by: UUID | None
    changed_by_role: ChangedByRole
    remarks: str | None
    created_at: datetime
