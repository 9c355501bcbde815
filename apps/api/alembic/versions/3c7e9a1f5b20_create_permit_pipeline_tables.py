"""create permit pipeline tables

Revision ID: 3c7e9a1f5b20
Revises:
Create Date: 2026-10-18 09:00:00.000000

This migration:
1. Creates the enum types (lowercase labels, matching the model values)
2. Creates applications and their status history
3. Creates the coordinate ledger with the one-ACTIVE-per-application index
4. Creates overlap consents, acceptance requirements, other documents
   and notifications

coordinate_histories is created BEFORE overlap_consents since consents
reference ledger versions.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3c7e9a1f5b20"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


ENUMS: dict[str, tuple[str, ...]] = {
    "permit_type": ("isag", "csag"),
    "application_status": (
        "draft",
        "pending_coordinate_approval",
        "overlap_detected_pending_consent",
        "coordinate_revision_required",
        "coordinate_approved",
        "coordinate_auto_approved",
        "acceptance_in_progress",
        "pending_other_documents",
        "under_review",
        "voided",
    ),
    "changed_by_role": ("applicant", "admin", "system"),
    "coordinate_status": ("active", "replaced", "voided"),
    "consent_status": ("required", "uploaded", "verified", "rejected", "not_required"),
    "item_status": ("pending_submission", "pending_review", "accepted", "revision_required"),
    "notification_type": (
        "coordinates_submitted",
        "coordinates_approved",
        "coordinates_auto_approved",
        "coordinates_rejected",
        "overlap_detected",
        "consent_uploaded",
        "consent_verified",
        "consent_rejected",
        "requirement_pending_review",
        "requirement_accepted",
        "requirement_auto_accepted",
        "requirement_revision_needed",
        "acceptance_requirements_completed",
        "other_documents_completed",
        "application_voided",
    ),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def _reviewable_item_columns() -> list[sa.Column]:
    """Columns shared by acceptance_requirements and other_documents."""
    return [
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("application_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("item_type", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", _enum("item_status"), nullable=False),
        # Submission
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("submitted_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("submitted_file_url", sa.String(length=500), nullable=True),
        sa.Column("submitted_file_name", sa.String(length=255), nullable=True),
        sa.Column("submitted_data", postgresql.JSON(astext_type=sa.Text()), nullable=True),
        # Deadlines
        sa.Column("auto_accept_deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revision_deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_auto_accepted", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("is_voided", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("voided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("void_reason", sa.Text(), nullable=True),
        # Review
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewed_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("admin_remarks", sa.Text(), nullable=True),
        sa.Column("admin_remark_file_url", sa.String(length=500), nullable=True),
        sa.Column("admin_remark_file_name", sa.String(length=255), nullable=True),
        sa.Column("is_compliant", sa.Boolean(), nullable=True),
        *_timestamps(),
    ]


def upgrade() -> None:
    """Create all pipeline tables."""
    bind = op.get_bind()
    for name in ENUMS:
        _enum(name).create(bind, checkfirst=True)

    # ============================================
    # applications
    # ============================================
    op.create_table(
        "applications",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("application_no", sa.String(length=30), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("applicant_email", sa.String(length=255), nullable=True),
        sa.Column("permit_type", _enum("permit_type"), nullable=False),
        sa.Column("project_name", sa.String(length=200), nullable=True),
        sa.Column("status", _enum("application_status"), nullable=False),
        sa.Column(
            "project_coordinates",
            postgresql.JSON(astext_type=sa.Text()),
            nullable=True,
        ),
        # Coordinate review
        sa.Column("coordinate_review_deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("coordinate_revision_deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("coordinate_review_remarks", sa.Text(), nullable=True),
        sa.Column("coordinate_approved_at", sa.DateTime(timezone=True), nullable=True),
        # Phases
        sa.Column(
            "acceptance_requirements_started_at", sa.DateTime(timezone=True), nullable=True
        ),
        sa.Column(
            "current_acceptance_requirement_id",
            postgresql.UUID(as_uuid=True),
            nullable=True,
        ),
        sa.Column("other_documents_started_at", sa.DateTime(timezone=True), nullable=True),
        # Voiding
        sa.Column("voided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("void_reason", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("application_no", name="uq_applications_application_no"),
    )
    op.create_index("ix_applications_status", "applications", ["status"])
    op.create_index("ix_applications_user_id", "applications", ["user_id"])
    op.create_index(
        "ix_applications_coordinate_review_deadline",
        "applications",
        ["coordinate_review_deadline"],
    )
    op.create_index(
        "ix_applications_coordinate_revision_deadline",
        "applications",
        ["coordinate_revision_deadline"],
    )

    op.create_table(
        "application_status_history",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("application_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("from_status", _enum("application_status"), nullable=True),
        sa.Column("to_status", _enum("application_status"), nullable=False),
        sa.Column("changed_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("changed_by_role", _enum("changed_by_role"), nullable=False),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["application_id"], ["applications.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "ix_application_status_history_application_id",
        "application_status_history",
        ["application_id"],
    )

    # ============================================
    # coordinate ledger
    # ============================================
    op.create_table(
        "coordinate_histories",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("application_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("coordinates", postgresql.JSON(astext_type=sa.Text()), nullable=False),
        sa.Column("point_count", sa.Integer(), nullable=False),
        sa.Column("min_lat", sa.Float(), nullable=False),
        sa.Column("max_lat", sa.Float(), nullable=False),
        sa.Column("min_lng", sa.Float(), nullable=False),
        sa.Column("max_lng", sa.Float(), nullable=False),
        sa.Column("polygon_geojson", postgresql.JSON(astext_type=sa.Text()), nullable=False),
        sa.Column("status", _enum("coordinate_status"), nullable=False),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("approved_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("replaced_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("replaced_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("voided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("void_reason", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["application_id"], ["applications.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["replaced_by"], ["coordinate_histories.id"], ondelete="SET NULL"
        ),
    )
    op.create_index(
        "ix_coordinate_histories_application_id", "coordinate_histories", ["application_id"]
    )
    op.create_index("ix_coordinate_histories_status", "coordinate_histories", ["status"])
    op.create_index(
        "ix_coordinate_histories_bbox",
        "coordinate_histories",
        ["min_lat", "max_lat", "min_lng", "max_lng"],
    )
    # At most one ACTIVE version per application
    op.create_index(
        "uq_coordinate_histories_one_active",
        "coordinate_histories",
        ["application_id"],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
    )

    # ============================================
    # overlap consents
    # ============================================
    op.create_table(
        "overlap_consents",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("new_application_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("new_coordinate_history_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("affected_application_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "affected_coordinate_history_id", postgresql.UUID(as_uuid=True), nullable=False
        ),
        sa.Column("overlap_percentage", sa.Float(), nullable=False),
        sa.Column("overlap_area_sq_meters", sa.Float(), nullable=False),
        sa.Column("overlap_geojson", postgresql.JSON(astext_type=sa.Text()), nullable=True),
        sa.Column("consent_status", _enum("consent_status"), nullable=False),
        sa.Column("consent_file_url", sa.String(length=500), nullable=True),
        sa.Column("consent_file_name", sa.String(length=255), nullable=True),
        sa.Column("consent_uploaded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("consent_uploaded_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("consent_verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("consent_verified_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("verification_remarks", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["new_application_id"], ["applications.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["affected_application_id"], ["applications.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["new_coordinate_history_id"], ["coordinate_histories.id"], ondelete="SET NULL"
        ),
        sa.ForeignKeyConstraint(
            ["affected_coordinate_history_id"], ["coordinate_histories.id"], ondelete="CASCADE"
        ),
        sa.UniqueConstraint(
            "new_application_id", "affected_application_id", name="uq_overlap_consents_pair"
        ),
    )
    op.create_index(
        "ix_overlap_consents_new_application_id", "overlap_consents", ["new_application_id"]
    )
    op.create_index(
        "ix_overlap_consents_consent_status", "overlap_consents", ["consent_status"]
    )

    # ============================================
    # acceptance requirements / other documents
    # ============================================
    op.create_table(
        "acceptance_requirements",
        *_reviewable_item_columns(),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["application_id"], ["applications.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "application_id", "item_type", name="uq_acceptance_requirements_application_item"
        ),
    )
    op.create_table(
        "other_documents",
        *_reviewable_item_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["application_id"], ["applications.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "application_id", "item_type", name="uq_other_documents_application_item"
        ),
    )
    for table in ("acceptance_requirements", "other_documents"):
        op.create_index(f"ix_{table}_status", table, ["status"])
        op.create_index(f"ix_{table}_auto_accept_deadline", table, ["auto_accept_deadline"])
        op.create_index(f"ix_{table}_revision_deadline", table, ["revision_deadline"])

    # ============================================
    # notifications
    # ============================================
    op.create_table(
        "notifications",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("recipient_role", sa.String(length=20), nullable=True),
        sa.Column("application_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("type", _enum("notification_type"), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("link", sa.String(length=500), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["application_id"], ["applications.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "ix_notifications_user_id_is_read", "notifications", ["user_id", "is_read"]
    )
    op.create_index("ix_notifications_recipient_role", "notifications", ["recipient_role"])


def downgrade() -> None:
    """Drop all pipeline tables and enum types."""
    op.drop_table("notifications")
    op.drop_table("other_documents")
    op.drop_table("acceptance_requirements")
    op.drop_table("overlap_consents")
    op.drop_table("coordinate_histories")
    op.drop_table("application_status_history")
    op.drop_table("applications")

    bind = op.get_bind()
    for name in reversed(list(ENUMS)):
        _enum(name).drop(bind, checkfirst=True)
