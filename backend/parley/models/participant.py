"""Participant ORM — membership, role and read watermark of one user in one conversation.

Invariants:
    - (conversation_id, user_id) is unique
    - role is 'admin' or 'member'
    - last_read_at is the read watermark (NULL until the first markRead)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from parley.db.base import Base


class Participant(Base):
    """Membership record: the authorization gate for conversation-scoped work."""
    __tablename__ = "participants"
    __table_args__ = (
        UniqueConstraint(
            "conversation_id", "user_id",
            name="uq_participants_conversation_user",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    conversation_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("conversations.id"), nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True,
    )
    role: Mapped[str] = mapped_column(
        String(10), nullable=False, default="member",
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    last_read_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    # Relationships
    user: Mapped["User"] = relationship("User", lazy="selectin")
