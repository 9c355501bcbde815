"""
Reviews Models

Acceptance requirements and other documents share one review lifecycle,
declared once in ReviewableItemMixin.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSON, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base, enum_values


class ItemStatus(str, enum.Enum):
    PENDING_SUBMISSION = "pending_submission"
    PENDING_REVIEW = "pending_review"
    ACCEPTED = "accepted"
    REVISION_REQUIRED = "revision_required"


class ReviewableItemMixin:
    """Columns shared by every reviewable checklist item."""

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    application_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
    )

    item_type: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[ItemStatus] = mapped_column(
        Enum(ItemStatus, name="item_status", values_callable=enum_values),
        nullable=False,
        default=ItemStatus.PENDING_SUBMISSION,
    )

    # Submission
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    submitted_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    submitted_file_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    submitted_file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    submitted_data: Mapped[dict | list | None] = mapped_column(JSON, nullable=True)

    # Deadlines: at most one is set, depending on status
    auto_accept_deadline: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    revision_deadline: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    is_auto_accepted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_voided: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    voided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    void_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Review
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    admin_remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    admin_remark_file_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    admin_remark_file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    is_compliant: Mapped[bool | None] = mapped_column(Boolean, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class AcceptanceRequirement(ReviewableItemMixin, Base):
    """One item of the ISAG/CSAG acceptance checklist."""

    __tablename__ = "acceptance_requirements"

    order: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "application_id", "item_type", name="uq_acceptance_requirements_application_item"
        ),
        Index("ix_acceptance_requirements_status", "status"),
        Index("ix_acceptance_requirements_auto_accept_deadline", "auto_accept_deadline"),
        Index("ix_acceptance_requirements_revision_deadline", "revision_deadline"),
    )


class OtherDocument(ReviewableItemMixin, Base):
    """Post-acceptance supporting document (ECC, LGU endorsement, ...)."""

    __tablename__ = "other_documents"

    __table_args__ = (
        UniqueConstraint("application_id", "item_type", name="uq_other_documents_application_item"),
        Index("ix_other_documents_status", "status"),
        Index("ix_other_documents_auto_accept_deadline", "auto_accept_deadline"),
        Index("ix_other_documents_revision_deadline", "revision_deadline"),
    )
