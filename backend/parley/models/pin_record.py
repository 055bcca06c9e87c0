"""PinRecord ORM — dedup registry entry for externally stored media, keyed by CID.

Invariants:
    - cid is unique; a repeat pin returns the existing row unchanged
    - is_pinned flips to false on unpin; the row is never deleted
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from parley.db.base import Base


class PinRecord(Base):
    """Pinned content record."""
    __tablename__ = "pin_records"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    cid: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    filename: Mapped[str | None] = mapped_column(String(255), nullable=True)
    size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    content_type: Mapped[str | None] = mapped_column(
        String(100), nullable=True,
    )
    pinned_by: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True,
    )
    is_pinned: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True,
    )
    pin_service: Mapped[str | None] = mapped_column(String(50), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    pinned_by_user: Mapped["User"] = relationship("User", lazy="selectin")
