"""Initial database schema.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-18

Creates all initial tables for the booking service:
- Users (mirrored from the auth service)
- Bookings and participants
- Admin (audit logs)
"""

from typing import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create all database tables."""

    # ==================== USERS ====================
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("email", sa.String(255), unique=True, nullable=False, index=True),
        sa.Column("name", sa.String(200)),
        sa.Column("phone", sa.String(20)),
        sa.Column("role", sa.String(20), nullable=False, server_default="user"),
        sa.Column("is_active", sa.Boolean, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ==================== BOOKINGS ====================
    op.create_table(
        "bookings",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("booking_number", sa.String(20), unique=True, nullable=False, index=True),
        sa.Column("user_id", sa.Uuid, sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("trek_id", sa.Uuid, nullable=False, index=True),
        sa.Column("trek_name", sa.String(200), nullable=False),
        sa.Column("batch_start_date", sa.Date, nullable=False, index=True),
        sa.Column("batch_end_date", sa.Date, nullable=False),
        sa.Column("user_details", sa.JSON, nullable=False),
        sa.Column("number_of_participants", sa.Integer, nullable=False),
        sa.Column("total_price", sa.Integer, nullable=False),
        sa.Column("amount_paid", sa.Integer, server_default="0"),
        sa.Column("currency", sa.String(3), server_default="INR"),
        sa.Column("status", sa.String(30), server_default="pending_payment", index=True),
        sa.Column("payment_status", sa.String(20), server_default="pending"),
        sa.Column("payment_mode", sa.String(10), server_default="full"),
        sa.Column("partial_initial_amount", sa.Integer),
        sa.Column("partial_remaining_amount", sa.Integer),
        sa.Column("partial_final_payment_due_date", sa.Date, index=True),
        sa.Column("partial_reminder_sent", sa.Boolean, server_default=sa.false()),
        sa.Column("partial_reminder_sent_at", sa.DateTime(timezone=True)),
        sa.Column("auto_cancel_on_due_date", sa.Boolean, server_default=sa.false()),
        sa.Column("pickup_location", sa.String(255)),
        sa.Column("drop_location", sa.String(255)),
        sa.Column("additional_requests", sa.Text),
        sa.Column("admin_remarks", sa.Text),
        sa.Column("cancelled_by", sa.String(10)),
        sa.Column("cancellation_reason", sa.Text),
        sa.Column("confirmed_at", sa.DateTime(timezone=True)),
        sa.Column("cancelled_at", sa.DateTime(timezone=True)),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "booking_participants",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("booking_id", sa.Uuid, sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("position", sa.Integer, nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("age", sa.Integer),
        sa.Column("gender", sa.String(10)),
        sa.Column("contact_number", sa.String(20)),
        sa.Column("emergency_contact", sa.JSON),
        sa.Column("medical_conditions", sa.Text),
        sa.Column("special_requests", sa.Text),
        sa.Column("custom_field_responses", sa.JSON),
    )

    # Partial-payment jobs scan by status and due date
    op.create_index(
        "ix_bookings_partial_due",
        "bookings",
        ["status", "partial_final_payment_due_date"],
        postgresql_where=sa.text("payment_mode = 'partial'"),
    )

    # ==================== ADMIN ====================
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("user_id", sa.Uuid, sa.ForeignKey("users.id"), index=True),
        sa.Column("action", sa.String(100), nullable=False, index=True),
        sa.Column("resource_type", sa.String(50), nullable=False, index=True),
        sa.Column("resource_id", sa.Uuid),
        sa.Column("old_values", sa.JSON),
        sa.Column("new_values", sa.JSON),
        sa.Column("ip_address", sa.String(45)),
        sa.Column("user_agent", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
    )


def downgrade() -> None:
    """Drop all database tables in reverse order."""
    op.drop_table("audit_logs")
    op.drop_index("ix_bookings_partial_due", table_name="bookings")
    op.drop_table("booking_participants")
    op.drop_table("bookings")
    op.drop_table("users")
