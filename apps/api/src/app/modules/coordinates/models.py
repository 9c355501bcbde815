"""
Coordinates Models

CoordinateHistory is the ledger of approved polygon versions. Only ACTIVE
rows take part in overlap detection.
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
    Integer,
    Text,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import JSON, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base, enum_values


class CoordinateStatus(str, enum.Enum):
    """Lifecycle of an approved polygon version."""

    ACTIVE = "active"
    REPLACED = "replaced"
    VOIDED = "voided"


class CoordinateHistory(Base):
    """One approved polygon version of an application."""

    __tablename__ = "coordinate_histories"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    application_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Canonical polygon: [{"lat": .., "lng": ..}, ...]
    coordinates: Mapped[list] = mapped_column(JSON, nullable=False)
    point_count: Mapped[int] = mapped_column(Integer, nullable=False)

    # Bounding box for cheap overlap pre-filtering
    min_lat: Mapped[float] = mapped_column(Float, nullable=False)
    max_lat: Mapped[float] = mapped_column(Float, nullable=False)
    min_lng: Mapped[float] = mapped_column(Float, nullable=False)
    max_lng: Mapped[float] = mapped_column(Float, nullable=False)

    polygon_geojson: Mapped[dict] = mapped_column(JSON, nullable=False)

    status: Mapped[CoordinateStatus] = mapped_column(
        Enum(CoordinateStatus, name="coordinate_status", values_callable=enum_values),
        nullable=False,
        default=CoordinateStatus.ACTIVE,
    )

    approved_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    approved_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True
    )  # NULL = auto-approved

    replaced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    replaced_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("coordinate_histories.id", ondelete="SET NULL"),
        nullable=True,
    )

    voided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    void_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

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
        Index("ix_coordinate_histories_application_id", "application_id"),
        Index("ix_coordinate_histories_status", "status"),
        Index(
            "ix_coordinate_histories_bbox",
            "min_lat",
            "max_lat",
            "min_lng",
            "max_lng",
        ),
        # At most one ACTIVE version per application
        Index(
            "uq_coordinate_histories_one_active",
            "application_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
        ),
    )
