"""Conversation ORM — persists a direct or group conversation and its summary fields.

Invariants:
    - kind is 'direct' or 'group'; is_encrypted is always true
    - external_topic is unique when present (singleton provisioning relies on it)
    - last_message_at/last_message are a denormalized summary of the message log

Design Decisions:
    - Summary denormalized on the row: conversation lists sort and render without
      touching the messages table
    - No participant count enforcement for 'direct' conversations
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from parley.db.base import Base


class Conversation(Base):
    """Conversation: the scope of membership, messages and read state."""
    __tablename__ = "conversations"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    kind: Mapped[str] = mapped_column(String(10), nullable=False)
    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    avatar: Mapped[str | None] = mapped_column(String(200), nullable=True)
    created_by: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True,
    )
    is_encrypted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True,
    )
    external_topic: Mapped[str | None] = mapped_column(
        String(255), nullable=True, unique=True,
    )

    # Denormalized summary
    last_message_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True,
    )
    last_message: Mapped[str | None] = mapped_column(
        String(100), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
