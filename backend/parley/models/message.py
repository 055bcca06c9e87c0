"""Message ORM — one entry in a conversation's append-only message log.

Invariants:
    - id is a monotonically assigned integer (log position); it breaks created_at ties
    - conversation_id and sender_id never change after insert
    - Mutation is limited to content/edited_at, deleted_at and status
    - Soft delete sets deleted_at and keeps content
    - status is one of sending/sent/delivered/failed (MessageStatus)

Design Decisions:
    - Kind-specific payload stored as nullable columns (media_*, token_*): the
      API layer exposes them as a tagged variant per kind
    - Composite index (conversation_id, created_at, id) serves newest-first paging
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger, Integer, String, Text, DateTime, ForeignKey, Index,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from parley.db.base import Base


class Message(Base):
    """Message log entry."""
    __tablename__ = "messages"
    __table_args__ = (
        Index(
            "ix_messages_conversation_created",
            "conversation_id", "created_at", "id",
        ),
    )

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True, autoincrement=True,
    )
    conversation_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("conversations.id"), nullable=False,
    )
    sender_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True,
    )
    kind: Mapped[str] = mapped_column(String(10), nullable=False)

    # Opaque content references (encrypted upstream)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    transport_message_id: Mapped[str | None] = mapped_column(
        String(255), nullable=True,
    )

    # Media (image/audio/file)
    media_cid: Mapped[str | None] = mapped_column(String(200), nullable=True)
    media_key: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Payment
    token_address: Mapped[str | None] = mapped_column(
        String(100), nullable=True,
    )
    token_amount: Mapped[str | None] = mapped_column(String(100), nullable=True)
    transaction_hash: Mapped[str | None] = mapped_column(
        String(100), nullable=True,
    )

    reply_to_id: Mapped[int | None] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        ForeignKey("messages.id"), nullable=True,
    )
    status: Mapped[str] = mapped_column(
        String(10), nullable=False, default="sent",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    edited_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    # Relationships
    sender: Mapped["User"] = relationship("User", lazy="selectin")
