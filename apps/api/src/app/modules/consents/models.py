"""
Consents Models

OverlapConsent tracks the consent an applicant must obtain from the holder
of every approved polygon their submitted boundary overlaps.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSON, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base, enum_values


class ConsentStatus(str, enum.Enum):
    REQUIRED = "required"
    UPLOADED = "uploaded"
    VERIFIED = "verified"
    REJECTED = "rejected"
    NOT_REQUIRED = "not_required"  # Overlap no longer present after resubmission


class OverlapConsent(Base):
    """Consent for one (new application, affected application) overlap pair."""

    __tablename__ = "overlap_consents"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    new_application_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
    )
    new_coordinate_history_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("coordinate_histories.id", ondelete="SET NULL"),
        nullable=True,
    )
    affected_application_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
    )
    affected_coordinate_history_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("coordinate_histories.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Overlap measurement
    overlap_percentage: Mapped[float] = mapped_column(Float, nullable=False)
    overlap_area_sq_meters: Mapped[float] = mapped_column(Float, nullable=False)
    overlap_geojson: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    consent_status: Mapped[ConsentStatus] = mapped_column(
        Enum(ConsentStatus, name="consent_status", values_callable=enum_values),
        nullable=False,
        default=ConsentStatus.REQUIRED,
    )

    # Upload
    consent_file_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    consent_file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    consent_uploaded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    consent_uploaded_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True
    )

    # Verification
    consent_verified_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    consent_verified_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True
    )
    verification_remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint(
            "new_application_id",
            "affected_application_id",
            name="uq_overlap_consents_pair",
        ),
        Index("ix_overlap_consents_new_application_id", "new_application_id"),
        Index("ix_overlap_consents_consent_status", "consent_status"),
    )
