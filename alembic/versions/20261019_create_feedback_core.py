"""Create users, feedback thread, feedback message and notification tables.

Revision ID: 20261019_create_feedback_core
Revises:
Create Date: 2026-10-19
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_create_feedback_core"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("username", sa.String(length=150), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("full_name", sa.String(length=150), nullable=True),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False, server_default="client"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("last_active_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])

    op.create_table(
        "feedback_threads",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("thread_id", sa.String(length=50), nullable=False),
        sa.Column("client_id", sa.Uuid(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("subject", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=32), nullable=False, server_default="general"),
        sa.Column("priority", sa.String(length=16), nullable=False, server_default="medium"),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="open"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_feedback_threads_thread_id", "feedback_threads", ["thread_id"], unique=True)
    op.create_index("ix_feedback_threads_client_id", "feedback_threads", ["client_id"])
    op.create_index("ix_feedback_threads_status", "feedback_threads", ["status"])
    op.create_index("ix_feedback_threads_updated_at", "feedback_threads", ["updated_at"])

    op.create_table(
        "feedback_messages",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("thread_id", sa.String(length=50), sa.ForeignKey("feedback_threads.thread_id"), nullable=False),
        sa.Column("sender_id", sa.Uuid(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("sender_type", sa.String(length=16), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_feedback_messages_thread_id", "feedback_messages", ["thread_id"])
    op.create_index("ix_feedback_messages_sender_id", "feedback_messages", ["sender_id"])
    op.create_index("ix_feedback_messages_sender_type", "feedback_messages", ["sender_type"])
    op.create_index("ix_feedback_messages_is_read", "feedback_messages", ["is_read"])
    op.create_index(
        "ix_feedback_messages_thread_created",
        "feedback_messages",
        ["thread_id", "created_at", "id"],
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("user_id", sa.Uuid(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False, server_default="info"),
        sa.Column("category", sa.String(length=64), nullable=False, server_default="general"),
        sa.Column("payload", sa.JSON().with_variant(postgresql.JSONB(), "postgresql"), nullable=True),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sequence", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_expires_at", "notifications", ["expires_at"])
    op.create_index("ix_notifications_user_created", "notifications", ["user_id", "created_at", "sequence"])


def downgrade() -> None:
    op.drop_index("ix_notifications_user_created", table_name="notifications")
    op.drop_index("ix_notifications_expires_at", table_name="notifications")
    op.drop_index("ix_notifications_user_id", table_name="notifications")
    op.drop_table("notifications")

    op.drop_index("ix_feedback_messages_thread_created", table_name="feedback_messages")
    op.drop_index("ix_feedback_messages_is_read", table_name="feedback_messages")
    op.drop_index("ix_feedback_messages_sender_type", table_name="feedback_messages")
    op.drop_index("ix_feedback_messages_sender_id", table_name="feedback_messages")
    op.drop_index("ix_feedback_messages_thread_id", table_name="feedback_messages")
    op.drop_table("feedback_messages")

    op.drop_index("ix_feedback_threads_updated_at", table_name="feedback_threads")
    op.drop_index("ix_feedback_threads_status", table_name="feedback_threads")
    op.drop_index("ix_feedback_threads_client_id", table_name="feedback_threads")
    op.drop_index("ix_feedback_threads_thread_id", table_name="feedback_threads")
    op.drop_table("feedback_threads")

    op.drop_index("ix_users_role", table_name="users")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
