"""bookings, guest invitations and the credit journal

Revision ID: 20250301_02
Revises: 20250301_01
Create Date: 2025-03-01
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20250301_02"
down_revision = "20250301_01"
branch_labels = None
depends_on = None


ENUMS = {
    "booking_status": ("CONFIRMED", "CANCELLED"),
    "credit_account_type": ("INDIVIDUAL", "ORGANIZATION"),
    "credit_reason": ("BOOKING_DEBIT", "BOOKING_REFUND", "RESCHEDULE_ADJUSTMENT", "GRANT"),
}


def upgrade() -> None:
    bind = op.get_bind()
    for enum_name, values in ENUMS.items():
        postgresql.ENUM(*values, name=enum_name).create(bind, checkfirst=True)

    # btree_gist lets the exclusion constraint mix "=" on an integer with "&&" on a range.
    op.execute(sa.text("CREATE EXTENSION IF NOT EXISTS btree_gist"))

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("room_instance_id", sa.Integer(), sa.ForeignKey("room_instances.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", postgresql.ENUM(name="booking_status", create_type=False), nullable=False, server_default="CONFIRMED"),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("credits_charged", sa.Integer(), nullable=False),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.CheckConstraint("start_time < end_time", name="ck_bookings_valid_range"),
        sa.CheckConstraint("credits_charged >= 0", name="ck_bookings_credits_charged_non_negative"),
    )
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"])
    op.create_index("ix_bookings_instance_window", "bookings", ["room_instance_id", "start_time", "end_time"])
    op.execute(
        sa.text(
            "ALTER TABLE bookings ADD CONSTRAINT ex_bookings_no_overlap "
            "EXCLUDE USING gist (room_instance_id WITH =, tstzrange(start_time, end_time, '[)') WITH &&) "
            "WHERE (status = 'CONFIRMED')"
        )
    )

    op.create_table(
        "guest_invitations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sent_by_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("guest_name", sa.String(length=255), nullable=False),
        sa.Column("guest_email", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.UniqueConstraint("booking_id", "guest_email", name="uq_guest_invitation_booking_email"),
    )

    op.create_table(
        "credit_transactions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("account_type", postgresql.ENUM(name="credit_account_type", create_type=False), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("organization_id", sa.Integer(), sa.ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id", ondelete="SET NULL"), nullable=True),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("balance_after", sa.Integer(), nullable=False),
        sa.Column("reason", postgresql.ENUM(name="credit_reason", create_type=False), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_credit_transactions_user_id", "credit_transactions", ["user_id"])
    op.create_index("ix_credit_transactions_organization_id", "credit_transactions", ["organization_id"])
    op.create_index("ix_credit_transactions_booking_id", "credit_transactions", ["booking_id"])


def downgrade() -> None:
    op.drop_index("ix_credit_transactions_booking_id", table_name="credit_transactions")
    op.drop_index("ix_credit_transactions_organization_id", table_name="credit_transactions")
    op.drop_index("ix_credit_transactions_user_id", table_name="credit_transactions")
    op.drop_table("credit_transactions")

    op.drop_table("guest_invitations")

    op.execute(sa.text("ALTER TABLE bookings DROP CONSTRAINT IF EXISTS ex_bookings_no_overlap"))
    op.drop_index("ix_bookings_instance_window", table_name="bookings")
    op.drop_index("ix_bookings_user_id", table_name="bookings")
    op.drop_table("bookings")

    bind = op.get_bind()
    for enum_name, values in reversed(list(ENUMS.items())):
        postgresql.ENUM(*values, name=enum_name).drop(bind, checkfirst=True)
