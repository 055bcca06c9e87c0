"""User Directory — identity resolution, profile/presence updates and read-only lookups.

Invariants:
    - resolve() never fabricates a user: unknown ids resolve to None
    - search() is a case-insensitive prefix match over wallet address, ENS name
      and display name, bounded to `limit` results, without duplicates
    - list_all() requires an admin principal
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from parley.core.access_rules import check_admin_role
from parley.models.user import User

logger = logging.getLogger(__name__)

PROFILE_FIELDS = (
    "display_name", "image", "wallet_address", "ens_name",
    "transport_address", "public_key",
)


def _like_prefix(query: str) -> str:
    escaped = (
        query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    )
    return f"{escaped.lower()}%"


class UserDirectory:
    """Principal lookup and self-service profile operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def resolve(self, principal_id: UUID | None) -> User | None:
        if principal_id is None:
            return None
        return await self.db.get(User, principal_id)

    async def update_profile(self, user: User, fields: dict) -> User:
        """Patch the caller's own profile fields and stamp last_seen."""
        for name, value in fields.items():
            if name in PROFILE_FIELDS:
                setattr(user, name, value)
        user.last_seen = datetime.now(timezone.utc)
        await self.db.commit()
        logger.info("Profile updated", extra={"user_id": user.id})
        return user

    async def set_presence(self, user: User, is_online: bool) -> User:
        user.is_online = is_online
        user.last_seen = datetime.now(timezone.utc)
        await self.db.commit()
        return user

    async def list_all(self, caller: User) -> list[User]:
        check_admin_role(caller.role, caller.id)
        result = await self.db.execute(
            select(User).order_by(User.created_at, User.id),
        )
        return list(result.scalars().all())

    async def get_by_wallet(self, wallet_address: str) -> User | None:
        result = await self.db.execute(
            select(User)
            .where(User.wallet_address == wallet_address)
            .order_by(User.created_at)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def search(self, query: str, limit: int = 10) -> list[User]:
        query = query.strip()
        if not query:
            return []
        pattern = _like_prefix(query)
        result = await self.db.execute(
            select(User)
            .where(or_(
                func.lower(User.wallet_address).like(pattern, escape="\\"),
                func.lower(User.ens_name).like(pattern, escape="\\"),
                func.lower(User.display_name).like(pattern, escape="\\"),
            ))
            .order_by(User.display_name, User.id)
            .limit(limit)
        )
        return list(result.scalars().all())
