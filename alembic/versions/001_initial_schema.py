# alembic/versions/001_initial_schema.py
"""Initial schema - profiles, catalog, messaging, bookings, payments, credits, inquiries

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-01 00:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade() -> None:
    op.create_table(
        "profiles",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="individual"),
        sa.Column("is_approved", sa.Boolean(), nullable=False, server_default=sa.false()),
        _timestamp("created_at"),
    )
    op.create_index("ix_profiles_email", "profiles", ["email"])

    op.create_table(
        "catalog_items",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("item_type", sa.String(32), nullable=False),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("duration", sa.String(64), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _timestamp("created_at"),
    )
    op.create_index("ix_catalog_items_title", "catalog_items", ["title"])

    op.create_table(
        "conversations",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column(
            "user_id", sa.String(64), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("item_id", sa.String(26), nullable=True),
        sa.Column("item_type", sa.String(32), nullable=True),
        sa.Column("context_key", sa.String(64), nullable=False, server_default="general"),
        _timestamp("created_at"),
        _timestamp("last_message_at", nullable=True),
        sa.UniqueConstraint("user_id", "context_key", name="uq_conversations_user_context"),
    )
    op.create_index("idx_conversations_last_message", "conversations", ["last_message_at"])

    op.create_table(
        "messages",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column(
            "conversation_id",
            sa.String(26),
            sa.ForeignKey("conversations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("sender_id", sa.String(64), nullable=False),
        sa.Column("sender_role", sa.String(20), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("message_type", sa.String(20), nullable=False, server_default="text"),
        sa.Column("course_item_id", sa.String(26), nullable=True),
        sa.Column("client_key", sa.String(64), nullable=True),
        _timestamp("created_at"),
        _timestamp("read_at", nullable=True),
        sa.Column("read_by", sa.JSON(), nullable=False),
        sa.UniqueConstraint("conversation_id", "client_key", name="uq_messages_client_key"),
    )
    op.create_index(
        "idx_messages_conversation_created", "messages", ["conversation_id", "created_at"]
    )

    op.create_table(
        "bookings",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column(
            "user_id", sa.String(64), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("item_id", sa.String(26), sa.ForeignKey("catalog_items.id"), nullable=True),
        sa.Column("item_type", sa.String(32), nullable=True),
        sa.Column("service_type", sa.String(64), nullable=False, server_default="consultation"),
        sa.Column("status", sa.String(20), nullable=False, server_default="payment_pending"),
        sa.Column("amount", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("session_date", sa.Date(), nullable=True),
        sa.Column("session_time", sa.Time(), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=True),
        sa.Column("can_rebook", sa.Boolean(), nullable=False, server_default=sa.true()),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        _timestamp("cancelled_at", nullable=True),
    )
    op.create_index("idx_bookings_user_status", "bookings", ["user_id", "status"])
    op.create_index("idx_bookings_status_session", "bookings", ["status", "session_date"])

    op.create_table(
        "payments",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column(
            "user_id", sa.String(64), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("booking_id", sa.String(26), sa.ForeignKey("bookings.id"), nullable=True),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("payment_method", sa.String(32), nullable=False, server_default="razorpay"),
        sa.Column("transaction_id", sa.String(128), nullable=False),
        sa.Column("gateway_payment_id", sa.String(64), nullable=True),
        sa.Column("service_type", sa.String(64), nullable=False, server_default="consultation"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index("ix_payments_transaction_id", "payments", ["transaction_id"])
    op.create_index("idx_payments_booking_status", "payments", ["booking_id", "status"])

    op.create_table(
        "purchases",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column(
            "user_id", sa.String(64), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column(
            "booking_id", sa.String(26), sa.ForeignKey("bookings.id"), nullable=False, unique=True
        ),
        sa.Column("item_id", sa.String(26), nullable=False),
        sa.Column("item_type", sa.String(32), nullable=False),
        sa.Column("amount_paid", sa.Integer(), nullable=False),
        sa.Column("payment_method", sa.String(32), nullable=False, server_default="razorpay"),
        sa.Column("status", sa.String(20), nullable=False, server_default="purchased"),
        sa.Column("can_rebook", sa.Boolean(), nullable=False, server_default=sa.true()),
        _timestamp("purchase_date"),
    )
    op.create_index("idx_purchases_user_item", "purchases", ["user_id", "item_id"])

    op.create_table(
        "coaching_sessions",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("session_type", sa.String(32), nullable=False),
        sa.Column("session_date", sa.Date(), nullable=False),
        sa.Column("session_time", sa.Time(), nullable=False),
        sa.Column("duration", sa.String(64), nullable=True),
        sa.Column("credits_required", sa.Integer(), nullable=False, server_default="1"),
        _timestamp("created_at"),
    )

    op.create_table(
        "session_bookings",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column(
            "user_id", sa.String(64), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column(
            "session_id",
            sa.String(26),
            sa.ForeignKey("coaching_sessions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("status", sa.String(20), nullable=False, server_default="booked"),
        sa.Column("credits_used", sa.Integer(), nullable=False, server_default="0"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index("idx_session_bookings_status", "session_bookings", ["status"])

    op.create_table(
        "credit_requests",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column(
            "user_id", sa.String(64), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("requested_amount", sa.Integer(), nullable=False),
        sa.Column("service_type", sa.String(32), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("admin_id", sa.String(64), nullable=True),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        _timestamp("created_at"),
        _timestamp("decided_at", nullable=True),
    )
    op.create_index("idx_credit_requests_status", "credit_requests", ["status", "created_at"])

    op.create_table(
        "credit_balances",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column(
            "user_id", sa.String(64), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("service_type", sa.String(32), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False, server_default="0"),
        _timestamp("updated_at"),
        sa.UniqueConstraint("user_id", "service_type", name="uq_credit_balances_user_service"),
    )

    op.create_table(
        "inquiries",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("work_email", sa.String(255), nullable=False),
        sa.Column("mobile_number", sa.String(32), nullable=True),
        sa.Column("job_title", sa.String(255), nullable=True),
        sa.Column("company_name", sa.String(255), nullable=False),
        sa.Column("company_size", sa.String(64), nullable=True),
        sa.Column("country", sa.String(8), nullable=True),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("client_ip", sa.String(64), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="new"),
        _timestamp("created_at"),
    )


def downgrade() -> None:
    for table in (
        "inquiries",
        "credit_balances",
        "credit_requests",
        "session_bookings",
        "coaching_sessions",
        "purchases",
        "payments",
        "bookings",
        "messages",
        "conversations",
        "catalog_items",
        "profiles",
    ):
        op.drop_table(table)
