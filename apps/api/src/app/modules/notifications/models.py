"""
Notifications Models

In-app notifications addressed either to a single user or to a role
(all admins).
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base, enum_values


class NotificationType(str, enum.Enum):
    """Kinds of notification emitted by the pipeline."""

    COORDINATES_SUBMITTED = "coordinates_submitted"
    COORDINATES_APPROVED = "coordinates_approved"
    COORDINATES_AUTO_APPROVED = "coordinates_auto_approved"
    COORDINATES_REJECTED = "coordinates_rejected"
    OVERLAP_DETECTED = "overlap_detected"
    CONSENT_UPLOADED = "consent_uploaded"
    CONSENT_VERIFIED = "consent_verified"
    CONSENT_REJECTED = "consent_rejected"
    REQUIREMENT_PENDING_REVIEW = "requirement_pending_review"
    REQUIREMENT_ACCEPTED = "requirement_accepted"
    REQUIREMENT_AUTO_ACCEPTED = "requirement_auto_accepted"
    REQUIREMENT_REVISION_NEEDED = "requirement_revision_needed"
    ACCEPTANCE_REQUIREMENTS_COMPLETED = "acceptance_requirements_completed"
    OTHER_DOCUMENTS_COMPLETED = "other_documents_completed"
    APPLICATION_VOIDED = "application_voided"


class Notification(Base):
    """A single notification row."""

    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Exactly one of user_id / recipient_role is set
    user_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    recipient_role: Mapped[str | None] = mapped_column(String(20), nullable=True)

    application_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=True,
    )

    type: Mapped[NotificationType] = mapped_column(
        Enum(NotificationType, name="notification_type", values_callable=enum_values),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    link: Mapped[str | None] = mapped_column(String(500), nullable=True)

    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_notifications_user_id_is_read", "user_id", "is_read"),
        Index("ix_notifications_recipient_role", "recipient_role"),
    )
