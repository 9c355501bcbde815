"""
Applications Models

The permit Application aggregate and its status-history audit trail.
Only the fields used by the acceptance pipeline live here.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import JSON, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base, enum_values


class PermitType(str, enum.Enum):
    """Mining permit types."""

    ISAG = "isag"  # Industrial Sand and Gravel
    CSAG = "csag"  # Commercial Sand and Gravel


class ApplicationStatus(str, enum.Enum):
    """Outward-visible status of a permit application."""

    DRAFT = "draft"
    PENDING_COORDINATE_APPROVAL = "pending_coordinate_approval"
    OVERLAP_DETECTED_PENDING_CONSENT = "overlap_detected_pending_consent"
    COORDINATE_REVISION_REQUIRED = "coordinate_revision_required"
    COORDINATE_APPROVED = "coordinate_approved"
    COORDINATE_AUTO_APPROVED = "coordinate_auto_approved"
    ACCEPTANCE_IN_PROGRESS = "acceptance_in_progress"
    PENDING_OTHER_DOCUMENTS = "pending_other_documents"
    UNDER_REVIEW = "under_review"
    VOIDED = "voided"


class ChangedByRole(str, enum.Enum):
    """Who triggered a status change."""

    APPLICANT = "applicant"
    ADMIN = "admin"
    SYSTEM = "system"


class Application(Base):
    """Mining permit application."""

    __tablename__ = "applications"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    application_no: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)

    # Owner
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    applicant_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    permit_type: Mapped[PermitType] = mapped_column(
        Enum(PermitType, name="permit_type", values_callable=enum_values),
        nullable=False,
    )
    project_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    status: Mapped[ApplicationStatus] = mapped_column(
        Enum(ApplicationStatus, name="application_status", values_callable=enum_values),
        nullable=False,
        default=ApplicationStatus.DRAFT,
    )

    # Last submitted boundary, canonical form: [{"lat": .., "lng": ..}, ...]
    project_coordinates: Mapped[list | None] = mapped_column(JSON, nullable=True)

    # Coordinate review
    coordinate_review_deadline: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    coordinate_revision_deadline: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    coordinate_review_remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    coordinate_approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Acceptance requirements / other documents phases
    acceptance_requirements_started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    # Plain UUID column: acceptance_requirements already references applications
    current_acceptance_requirement_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True
    )
    other_documents_started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Voiding
    voided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    void_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Audit timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    status_history: Mapped[list["ApplicationStatusHistory"]] = relationship(
        "ApplicationStatusHistory",
        back_populates="application",
        cascade="all, delete-orphan",
        order_by="ApplicationStatusHistory.created_at",
    )

    __table_args__ = (
        Index("ix_applications_status", "status"),
        Index("ix_applications_user_id", "user_id"),
        Index("ix_applications_coordinate_review_deadline", "coordinate_review_deadline"),
        Index("ix_applications_coordinate_revision_deadline", "coordinate_revision_deadline"),
    )


class ApplicationStatusHistory(Base):
    """One row per Application status transition."""

    __tablename__ = "application_status_history"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    application_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
    )
    from_status: Mapped[ApplicationStatus | None] = mapped_column(
        Enum(ApplicationStatus, name="application_status", values_callable=enum_values),
        nullable=True,
    )
    to_status: Mapped[ApplicationStatus] = mapped_column(
        Enum(ApplicationStatus, name="application_status", values_callable=enum_values),
        nullable=False,
    )
    changed_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    changed_by_role: Mapped[ChangedByRole] = mapped_column(
        Enum(ChangedByRole, name="changed_by_role", values_callable=enum_values),
        nullable=False,
    )
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    application: Mapped["Application"] = relationship(
        "Application", back_populates="status_history"
    )

    __table_args__ = (Index("ix_application_status_history_application_id", "application_id"),)
