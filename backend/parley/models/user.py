"""User ORM — persists the principal record resolved from an authenticated request.

Invariants:
    - id is UUID primary key; users are created by the upstream auth layer, never here
    - role is 'admin' or 'user' (UserRole)
    - wallet_address, ens_name and display_name are indexed for lookup and prefix search

Design Decisions:
    - Web3 identity fields (wallet, ENS, transport address, public key) live on
      the user row: every lookup the UI needs is a single-table query
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from parley.db.base import Base


class User(Base):
    """Principal: a person who can join conversations and pin content."""
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    display_name: Mapped[str | None] = mapped_column(
        String(100), nullable=True, index=True,
    )
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    image: Mapped[str | None] = mapped_column(String(500), nullable=True)
    role: Mapped[str] = mapped_column(
        String(10), nullable=False, default="user",
    )

    # Web3 identity
    wallet_address: Mapped[str | None] = mapped_column(
        String(100), nullable=True, index=True,
    )
    ens_name: Mapped[str | None] = mapped_column(
        String(255), nullable=True, index=True,
    )
    transport_address: Mapped[str | None] = mapped_column(
        String(100), nullable=True,
    )
    public_key: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    # Presence
    is_online: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    last_seen: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
