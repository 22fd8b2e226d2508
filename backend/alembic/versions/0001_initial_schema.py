"""Initial schema: users, reports and report images

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

# SQLAlchemy stores enum member names
user_role = sa.Enum("CITIZEN", "WORKER", "ADMIN", name="userrole")
report_status = sa.Enum(
    "PENDING",
    "UNDER_REVIEW",
    "ASSIGNED",
    "IN_PROGRESS",
    "RESOLVED",
    "VERIFIED",
    "CLOSED",
    "REJECTED",
    name="reportstatus",
)
light_condition = sa.Enum(
    "WORKING",
    "NOT_WORKING",
    "FLICKERING",
    "BROKEN_POLE",
    "DAMAGED_HEAD",
    "PARTIAL_FAULT",
    name="lightcondition",
)
severity = sa.Enum("LOW", "MEDIUM", "HIGH", "CRITICAL", name="severity")
report_source = sa.Enum("WEB", "MOBILE", "API", name="reportsource")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("phone", sa.String(10), nullable=False),
        sa.Column("hashed_password", sa.String(), nullable=False),
        sa.Column("role", user_role, nullable=False),
        sa.Column("address", sa.String(200), nullable=True),
        sa.Column("assigned_zone", sa.String(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_verified", sa.Boolean(), nullable=False),
        sa.Column("is_blocked", sa.Boolean(), nullable=False),
        sa.Column("reports_submitted", sa.Integer(), nullable=False),
        sa.Column("reports_resolved", sa.Integer(), nullable=False),
        sa.Column("login_attempts", sa.Integer(), nullable=False),
        sa.Column("lock_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("password_changed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("password_reset_token_hash", sa.String(64), nullable=True),
        sa.Column("password_reset_expires", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index(
        "ix_users_password_reset_token_hash", "users", ["password_reset_token_hash"]
    )

    op.create_table(
        "reports",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("address", sa.String(), nullable=True),
        sa.Column("city", sa.String(), nullable=True),
        sa.Column("pincode", sa.String(20), nullable=True),
        sa.Column("light_condition", light_condition, nullable=False),
        sa.Column("severity", severity, nullable=False),
        sa.Column("pole_number", sa.String(), nullable=True),
        sa.Column("status", report_status, nullable=False),
        sa.Column("is_duplicate", sa.Boolean(), nullable=False),
        sa.Column(
            "duplicate_of_id",
            sa.Integer(),
            sa.ForeignKey("reports.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("duplicate_count", sa.Integer(), nullable=False),
        sa.Column("requires_review", sa.Boolean(), nullable=False),
        sa.Column("review_notes", sa.Text(), nullable=True),
        sa.Column(
            "reviewed_by_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True
        ),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "assigned_to_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True
        ),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "resolved_by_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True
        ),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolution_notes", sa.Text(), nullable=True),
        sa.Column(
            "verified_by_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True
        ),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "estimated_resolution_time", sa.DateTime(timezone=True), nullable=True
        ),
        sa.Column("actual_resolution_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("view_count", sa.Integer(), nullable=False),
        sa.Column("source", report_source, nullable=False),
        sa.Column("device_browser", sa.String(500), nullable=True),
        sa.Column("device_os", sa.String(100), nullable=True),
        sa.Column("device_type", sa.String(20), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column(
            "reported_by_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_reports_id", "reports", ["id"])
    op.create_index("ix_reports_city", "reports", ["city"])
    op.create_index("ix_reports_light_condition", "reports", ["light_condition"])
    op.create_index("ix_reports_severity", "reports", ["severity"])
    op.create_index("ix_reports_status", "reports", ["status"])
    op.create_index("ix_reports_requires_review", "reports", ["requires_review"])
    op.create_index("ix_reports_assigned_to_id", "reports", ["assigned_to_id"])
    op.create_index("ix_reports_reported_by_id", "reports", ["reported_by_id"])
    op.create_index("ix_reports_created_at", "reports", ["created_at"])
    # Bounding-box prefilter for radius queries
    op.create_index("ix_reports_lat_lng", "reports", ["latitude", "longitude"])

    op.create_table(
        "report_images",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "report_id",
            sa.Integer(),
            sa.ForeignKey("reports.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("public_id", sa.String(), nullable=False),
        sa.Column("url", sa.String(), nullable=False),
        sa.Column("thumbnail_url", sa.String(), nullable=True),
        sa.Column("width", sa.Integer(), nullable=True),
        sa.Column("height", sa.Integer(), nullable=True),
        sa.Column("format", sa.String(10), nullable=True),
        sa.Column("brightness", sa.Integer(), nullable=True),
        sa.Column("resolution", sa.String(20), nullable=True),
        sa.Column("orientation", sa.String(20), nullable=True),
        sa.Column("quality_warnings", sa.JSON(), nullable=False),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_report_images_id", "report_images", ["id"])
    op.create_index("ix_report_images_report_id", "report_images", ["report_id"])


def downgrade() -> None:
    op.drop_table("report_images")
    op.drop_table("reports")
    op.drop_table("users")
    for enum_type in (report_source, severity, light_condition, report_status, user_role):
        enum_type.drop(op.get_bind(), checkfirst=True)
