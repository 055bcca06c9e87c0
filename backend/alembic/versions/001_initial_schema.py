"""Initial schema — users, conversations, participants, messages, reactions, pin_records.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("display_name", sa.String(100), nullable=True),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("image", sa.String(500), nullable=True),
        sa.Column("role", sa.String(10), nullable=False, server_default="user"),
        sa.Column("wallet_address", sa.String(100), nullable=True),
        sa.Column("ens_name", sa.String(255), nullable=True),
        sa.Column("transport_address", sa.String(100), nullable=True),
        sa.Column("public_key", sa.String(1000), nullable=True),
        sa.Column("is_online", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("last_seen", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_users_display_name", "users", ["display_name"])
    op.create_index("ix_users_wallet_address", "users", ["wallet_address"])
    op.create_index("ix_users_ens_name", "users", ["ens_name"])

    op.create_table(
        "conversations",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("kind", sa.String(10), nullable=False),
        sa.Column("name", sa.String(200), nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("avatar", sa.String(200), nullable=True),
        sa.Column("created_by", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("is_encrypted", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("external_topic", sa.String(255), nullable=True),
        sa.Column("last_message_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_message", sa.String(100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("external_topic", name="uq_conversations_external_topic"),
    )
    op.create_index("ix_conversations_created_by", "conversations", ["created_by"])
    op.create_index("ix_conversations_last_message_at", "conversations", ["last_message_at"])

    op.create_table(
        "participants",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("conversation_id", UUID(as_uuid=True), sa.ForeignKey("conversations.id"), nullable=False),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("role", sa.String(10), nullable=False, server_default="member"),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("last_read_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("conversation_id", "user_id", name="uq_participants_conversation_user"),
    )
    op.create_index("ix_participants_user_id", "participants", ["user_id"])

    op.create_table(
        "messages",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("conversation_id", UUID(as_uuid=True), sa.ForeignKey("conversations.id"), nullable=False),
        sa.Column("sender_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("kind", sa.String(10), nullable=False),
        sa.Column("content", sa.Text, nullable=True),
        sa.Column("transport_message_id", sa.String(255), nullable=True),
        sa.Column("media_cid", sa.String(200), nullable=True),
        sa.Column("media_key", sa.Text, nullable=True),
        sa.Column("token_address", sa.String(100), nullable=True),
        sa.Column("token_amount", sa.String(100), nullable=True),
        sa.Column("transaction_hash", sa.String(100), nullable=True),
        sa.Column("reply_to_id", sa.BigInteger, sa.ForeignKey("messages.id"), nullable=True),
        sa.Column("status", sa.String(10), nullable=False, server_default="sent"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("edited_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_messages_sender_id", "messages", ["sender_id"])
    op.create_index(
        "ix_messages_conversation_created", "messages",
        ["conversation_id", "created_at", "id"],
    )

    op.create_table(
        "reactions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("message_id", sa.BigInteger, sa.ForeignKey("messages.id"), nullable=False),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("emoji", sa.String(32), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("message_id", "user_id", "emoji", name="uq_reactions_message_user_emoji"),
    )
    op.create_index("ix_reactions_message_id", "reactions", ["message_id"])

    op.create_table(
        "pin_records",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("cid", sa.String(200), nullable=False),
        sa.Column("filename", sa.String(255), nullable=True),
        sa.Column("size", sa.Integer, nullable=True),
        sa.Column("content_type", sa.String(100), nullable=True),
        sa.Column("pinned_by", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("is_pinned", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("pin_service", sa.String(50), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("cid", name="uq_pin_records_cid"),
    )
    op.create_index("ix_pin_records_pinned_by", "pin_records", ["pinned_by"])


def downgrade() -> None:
    op.drop_table("pin_records")
    op.drop_table("reactions")
    op.drop_table("messages")
    op.drop_table("participants")
    op.drop_table("conversations")
    op.drop_table("users")
