"""Initial schema: profiles, locations, submissions, favorites, logbook

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Creates every table of the directory with PostgreSQL server defaults
       (gen_random_uuid(), CURRENT_TIMESTAMP) and the indexes the list and
       quota queries rely on.

Foreign keys:
    submissions / favorites / logbook → profiles       ON DELETE CASCADE
    favorites → locations                             ON DELETE CASCADE
    submissions.existing_location_id → locations       ON DELETE SET NULL
    audit columns (created_by, updated_by, reviewed_by) ON DELETE SET NULL
    submission_images → submissions                    ON DELETE CASCADE

Rollback: downgrade() drops everything (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
    ]


def _site_fields():
    return [
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("country", sa.String(100), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("rock_drop_ft", sa.Integer(), nullable=True),
        sa.Column("total_height_ft", sa.Integer(), nullable=True),
        sa.Column("cliff_aspect", sa.String(50), nullable=True),
        sa.Column("anchor_info", sa.Text(), nullable=True),
        sa.Column("access_info", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("opened_by_name", sa.String(255), nullable=True),
        sa.Column("opened_date", sa.String(50), nullable=True),
        sa.Column("video_link", sa.Text(), nullable=True),
    ]


def upgrade() -> None:
    # ── profiles ──────────────────────────────────────────────────────────
    # id equals the identity provider's user id
    op.create_table(
        "profiles",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("name", sa.String(100), nullable=True),
        sa.Column("username", sa.String(30), nullable=True),
        sa.Column("jump_number", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("role", sa.String(20), nullable=False, server_default=sa.text("'USER'")),
        sa.Column(
            "subscription_status",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'free'"),
        ),
        sa.Column("subscription_expires_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("subscription_updated_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("revenuecat_customer_id", sa.String(255), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username", name="uq_profiles_username"),
        sa.CheckConstraint("role IN ('USER', 'ADMIN', 'SUPERUSER')", name="ck_profiles_role"),
    )
    op.create_index("idx_profiles_revenuecat_customer_id", "profiles", ["revenuecat_customer_id"])

    # ── locations ─────────────────────────────────────────────────────────
    op.create_table(
        "locations",
        sa.Column("id", sa.Integer(), sa.Identity(), nullable=False),
        *_site_fields(),
        sa.Column("is_hidden", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column(
            "created_by",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("profiles.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "updated_by",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("profiles.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_locations_name", "locations", ["name"])
    op.create_index("idx_locations_country", "locations", ["country"])

    # ── location_submission_requests ──────────────────────────────────────
    op.create_table(
        "location_submission_requests",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("submission_type", sa.String(10), nullable=False),
        sa.Column(
            "existing_location_id",
            sa.Integer(),
            sa.ForeignKey("locations.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        *_site_fields(),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("reviewed_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column(
            "reviewed_by",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("profiles.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("submission_type IN ('new', 'update')", name="ck_submissions_type"),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')", name="ck_submissions_status"
        ),
    )
    # Quota counts: pending per user, and per user since local midnight
    op.create_index(
        "idx_submissions_user_status", "location_submission_requests", ["user_id", "status"]
    )
    op.create_index(
        "idx_submissions_user_created", "location_submission_requests", ["user_id", "created_at"]
    )
    op.create_index(
        "idx_submissions_status_created",
        "location_submission_requests",
        ["status", sa.text("created_at DESC")],
    )

    # ── submission_images ─────────────────────────────────────────────────
    op.create_table(
        "submission_images",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column(
            "submission_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("location_submission_requests.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("image_url", sa.Text(), nullable=False),
        sa.Column("image_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_submission_images_submission_order",
        "submission_images",
        ["submission_id", "image_order"],
    )

    # ── saved_locations ───────────────────────────────────────────────────
    op.create_table(
        "saved_locations",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "location_id",
            sa.Integer(),
            sa.ForeignKey("locations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "location_id", name="uq_saved_locations_user_location"),
    )
    op.create_index("idx_saved_locations_location", "saved_locations", ["location_id"])

    # ── logbook_entries ───────────────────────────────────────────────────
    op.create_table(
        "logbook_entries",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("location_name", sa.String(255), nullable=False),
        sa.Column("exit_type", sa.String(20), nullable=True),
        sa.Column("delay_seconds", sa.Integer(), nullable=True),
        sa.Column("jump_date", sa.Date(), nullable=True),
        sa.Column("details", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "exit_type IS NULL OR exit_type IN ('Building', 'Antenna', 'Span', 'Earth')",
            name="ck_logbook_exit_type",
        ),
        sa.CheckConstraint(
            "delay_seconds IS NULL OR delay_seconds >= 0", name="ck_logbook_delay_seconds"
        ),
    )
    op.create_index("idx_logbook_user_jump_date", "logbook_entries", ["user_id", "jump_date"])


def downgrade() -> None:
    op.drop_index("idx_logbook_user_jump_date", table_name="logbook_entries")
    op.drop_table("logbook_entries")
    op.drop_index("idx_saved_locations_location", table_name="saved_locations")
    op.drop_table("saved_locations")
    op.drop_index("idx_submission_images_submission_order", table_name="submission_images")
    op.drop_table("submission_images")
    op.drop_index("idx_submissions_status_created", table_name="location_submission_requests")
    op.drop_index("idx_submissions_user_created", table_name="location_submission_requests")
    op.drop_index("idx_submissions_user_status", table_name="location_submission_requests")
    op.drop_table("location_submission_requests")
    op.drop_index("idx_locations_country", table_name="locations")
    op.drop_index("idx_locations_name", table_name="locations")
    op.drop_table("locations")
    op.drop_index("idx_profiles_revenuecat_customer_id", table_name="profiles")
    op.drop_table("profiles")
