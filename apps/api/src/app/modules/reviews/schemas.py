"""
Reviews Schemas
"""

import enum
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .models import ItemStatus


class ItemKind(str, enum.Enum):
    ACCEPTANCE_REQUIREMENT = "acceptance_requirement"
    OTHER_DOCUMENT = "other_document"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").capitalize()


class ItemDecision(str, enum.Enum):
    ACCEPTED = "accepted"
    REVISION_REQUIRED = "revision_required"


class ItemReviewRequest(BaseModel):
    decision: ItemDecision
    remarks: str | None = Field(None, max_length=2000)


class ItemResponse(BaseModel):
    """Acceptance requirement or other document."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    application_id: UUID
    item_type: str
    name: str
    description: str | None = None
    order: int | None = None
    status: ItemStatus
    submitted_at: datetime | None = None
    submitted_file_url: str | None = None
    submitted_file_name: str | None = None
    submitted_data: Any = None
    auto_accept_deadline: datetime | None = None
    revision_deadline: datetime | None = None
    is_auto_accepted: bool
    is_voided: bool
    voided_at: datetime | None = None
    void_reason: str | None = None
    reviewed_at: datetime | None = None
    admin_remarks: str | None = None
    admin_remark_file_url: str | None = None
    is_compliant: bool | None = None
