"""Initial database schema.

Revision ID: 001_initial
Revises: None
Create Date: 2026-09-14

Creates the booking engine tables:
- Users, fines and worker privileges
- Properties, rooms, room locks and promotions
- Commission settings
- Bookings and add-ons
- Dues ledger
"""

from typing import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

LIVE_STATUSES = "('pending', 'awaiting', 'confirmed')"


def upgrade() -> None:
    """Create all database tables."""
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")

    # ==================== USERS ====================
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(255), unique=True, nullable=False, index=True),
        sa.Column("first_name", sa.String(100)),
        sa.Column("last_name", sa.String(100)),
        sa.Column("role", sa.String(20), nullable=False, default="guest"),
        sa.Column("is_blocked", sa.Boolean, default=False),
        sa.Column("blocked_at", sa.DateTime(timezone=True)),
        sa.Column("block_reason", sa.Text),
        sa.Column("blocked_until", sa.DateTime(timezone=True)),
        sa.Column("limited_access", sa.Boolean, default=False),
        sa.Column("total_fines_due", sa.Integer, default=0),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now()),
    )

    op.create_table(
        "host_fines",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("reason", sa.Text, nullable=False),
        sa.Column("amount", sa.Integer, nullable=False),
        sa.Column("due_date", sa.Date),
        sa.Column("paid", sa.Boolean, default=False, index=True),
        sa.Column("paid_at", sa.DateTime(timezone=True)),
        sa.Column("penalty_applied", sa.Boolean, default=False),
        sa.Column("commission_applied", sa.Boolean, default=False),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "worker_privileges",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("host_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("worker_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("can_manage_bookings", sa.Boolean, default=True),
        sa.Column("can_cancel_bookings", sa.Boolean, default=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("host_id", "worker_id", name="unique_worker_privilege"),
    )

    # ==================== PROPERTIES ====================
    op.create_table(
        "properties",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("host_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("title", sa.String(150), nullable=False),
        sa.Column("city", sa.String(100)),
        sa.Column("price_per_night", sa.Integer, nullable=False),
        sa.Column("currency", sa.String(3), default="RWF"),
        sa.Column("children_percent", sa.Numeric(5, 2)),
        sa.Column("infant_percent", sa.Numeric(5, 2)),
        sa.Column("max_adults", sa.Integer, default=2),
        sa.Column("max_children", sa.Integer, default=2),
        sa.Column("max_infants", sa.Integer, default=1),
        sa.Column("group_discount_enabled", sa.Boolean, default=False),
        sa.Column("group_discount_percent", sa.Numeric(5, 2), default=0),
        sa.Column("commission_rate", sa.Numeric(5, 2)),
        sa.Column("commission_tier", sa.String(20), default="premium"),
        sa.Column("is_active", sa.Boolean, default=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now()),
    )

    op.create_table(
        "rooms",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("property_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("room_number", sa.String(20)),
        sa.Column("room_type", sa.String(50)),
        sa.Column("price_per_night", sa.Integer, nullable=False),
        sa.Column("max_adults", sa.Integer, default=2),
        sa.Column("max_children", sa.Integer, default=2),
        sa.Column("max_infants", sa.Integer, default=1),
        sa.Column("children_percent", sa.Numeric(5, 2)),
        sa.Column("infant_percent", sa.Numeric(5, 2)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "room_closed_dates",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("room_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("start_date", sa.Date, nullable=False),
        sa.Column("end_date", sa.Date, nullable=False),
        sa.Column("reason", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("end_date > start_date", name="room_closed_dates_valid_range"),
    )

    op.create_table(
        "promotions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("property_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("kind", sa.String(30), nullable=False),
        sa.Column("title", sa.String(150)),
        sa.Column("discount_percent", sa.Numeric(5, 2), nullable=False),
        sa.Column("start_date", sa.Date),
        sa.Column("end_date", sa.Date),
        sa.Column("coupon_code", sa.String(50)),
        sa.Column("last_minute_within_days", sa.Integer),
        sa.Column("min_advance_days", sa.Integer),
        sa.Column("active", sa.Boolean, default=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "commission_settings",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("base_rate", sa.Numeric(5, 2), nullable=False),
        sa.Column("premium_rate", sa.Numeric(5, 2), nullable=False),
        sa.Column("featured_rate", sa.Numeric(5, 2), nullable=False),
        sa.Column("enforcement_paused", sa.Boolean, default=False),
        sa.Column("notes", sa.Text),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now()),
    )

    # ==================== BOOKINGS ====================
    op.create_table(
        "bookings",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("confirmation_code", sa.String(20), unique=True, nullable=False, index=True),
        sa.Column("property_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("properties.id"), nullable=False, index=True),
        sa.Column("room_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("rooms.id"), index=True),
        sa.Column("guest_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("host_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("check_in", sa.Date, nullable=False, index=True),
        sa.Column("check_out", sa.Date, nullable=False, index=True),
        sa.Column("adults", sa.Integer, default=1),
        sa.Column("children", sa.Integer, default=0),
        sa.Column("infants", sa.Integer, default=0),
        sa.Column("is_group_booking", sa.Boolean, default=False),
        sa.Column("group_size", sa.Integer),
        sa.Column("coupon_code", sa.String(50)),
        sa.Column("nightly_rate", sa.Integer, nullable=False),
        sa.Column("nights", sa.Integer, nullable=False),
        sa.Column("base_price", sa.Integer, nullable=False),
        sa.Column("promotion_discount_percent", sa.Numeric(5, 2), default=0),
        sa.Column("promotion_discount_amount", sa.Integer, default=0),
        sa.Column("group_discount_amount", sa.Integer, default=0),
        sa.Column("amount_before_tax", sa.Integer, nullable=False),
        sa.Column("tax_rate", sa.Numeric(5, 2), nullable=False),
        sa.Column("tax_amount", sa.Integer, nullable=False),
        sa.Column("add_ons_total", sa.Integer, default=0),
        sa.Column("total_amount", sa.Integer, nullable=False),
        sa.Column("currency", sa.String(3), default="RWF"),
        sa.Column("is_direct", sa.Boolean, default=False),
        sa.Column("negotiated_total", sa.Integer),
        sa.Column("commission_rate", sa.Numeric(5, 2), nullable=False),
        sa.Column("commission_amount", sa.Integer, nullable=False),
        sa.Column("commission_paid", sa.Boolean, default=False, index=True),
        sa.Column("commission_paid_at", sa.DateTime(timezone=True)),
        sa.Column("payment_status", sa.String(20), default="unpaid", index=True),
        sa.Column("payment_method", sa.String(30)),
        sa.Column("amount_paid", sa.Integer, default=0),
        sa.Column("paid_at", sa.DateTime(timezone=True)),
        sa.Column("status", sa.String(20), default="pending", index=True),
        sa.Column("cancelled_by", sa.String(10)),
        sa.Column("cancellation_reason", sa.Text),
        sa.Column("special_requests", sa.Text),
        sa.Column("confirmed_at", sa.DateTime(timezone=True)),
        sa.Column("cancelled_at", sa.DateTime(timezone=True)),
        sa.Column("ended_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now()),
        sa.CheckConstraint("check_out > check_in", name="bookings_valid_range"),
    )
    op.create_index("ix_bookings_property_dates", "bookings", ["property_id", "check_in", "check_out"])

    # Live bookings may not overlap on the same room, nor on the same whole property
    op.execute(
        f"""
        ALTER TABLE bookings ADD CONSTRAINT bookings_no_overlap_room
        EXCLUDE USING gist (
            room_id WITH =,
            daterange(check_in, check_out, '[)') WITH &&
        ) WHERE (room_id IS NOT NULL AND status IN {LIVE_STATUSES})
        """
    )
    op.execute(
        f"""
        ALTER TABLE bookings ADD CONSTRAINT bookings_no_overlap_property
        EXCLUDE USING gist (
            property_id WITH =,
            daterange(check_in, check_out, '[)') WITH &&
        ) WHERE (room_id IS NULL AND status IN {LIVE_STATUSES})
        """
    )

    op.create_table(
        "booking_add_ons",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("booking_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("amount", sa.Integer, nullable=False),
    )

    # ==================== DUES ====================
    op.create_table(
        "dues_ledger",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("kind", sa.String(20), nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("period_start", sa.Date, nullable=False),
        sa.Column("period_end", sa.Date, nullable=False),
        sa.Column("amount", sa.Integer, nullable=False),
        sa.Column("paid_amount", sa.Integer, default=0),
        sa.Column("currency", sa.String(3), default="RWF"),
        sa.Column("status", sa.String(20), default="unpaid", index=True),
        sa.Column("due_date", sa.Date, nullable=False, index=True),
        sa.Column("grace_end_date", sa.Date, nullable=False),
        sa.Column("reminder_stage", sa.Integer, default=0),
        sa.Column("last_reminder_on", sa.Date),
        sa.Column("enforcement_applied", sa.Boolean, default=False),
        sa.Column("fine_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("host_fines.id"), unique=True),
        sa.Column("paid_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now()),
    )
    op.create_index(
        "uq_dues_commission_period",
        "dues_ledger",
        ["user_id", "kind", "period_start"],
        unique=True,
        postgresql_where=sa.text("kind = 'commission'"),
    )


def downgrade() -> None:
    """Drop all database tables in reverse order."""
    op.drop_index("uq_dues_commission_period", table_name="dues_ledger")
    op.drop_table("dues_ledger")
    op.drop_table("booking_add_ons")
    op.drop_index("ix_bookings_property_dates", table_name="bookings")
    op.drop_table("bookings")
    op.drop_table("commission_settings")
    op.drop_table("promotions")
    op.drop_table("room_closed_dates")
    op.drop_table("rooms")
    op.drop_table("properties")
    op.drop_table("worker_privileges")
    op.drop_table("host_fines")
    op.drop_table("users")
