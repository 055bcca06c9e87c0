"""Pin Registry — content-address (CID) dedup store for externally stored media.

Invariants:
    - CIDs are normalized (normalize_cid) on every path
    - One PinRecord per CID; pin() on a known CID returns the existing id, metadata untouched
    - unpin() and list_all() require an admin principal
    - unpin() flips is_pinned; records are never deleted
    - list_mine() returns only the caller's active pins

Design Decisions:
    - Independent of conversations: no participant gate, only the principal role
    - Insert race on the CID unique key reconciled by rollback + reread
"""

import logging
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from parley.core.access_rules import check_admin_role
from parley.core.domain_types import PinId, PinMetadata
from parley.core.errors import ResourceNotFoundError
from parley.core.pin_rules import normalize_cid
from parley.models.pin_record import PinRecord
from parley.models.user import User

logger = logging.getLogger(__name__)


class PinRegistry:
    """CID-keyed pin records."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _find(self, cid: str) -> PinRecord | None:
        result = await self.db.execute(
            select(PinRecord).where(PinRecord.cid == cid),
        )
        return result.scalar_one_or_none()

    async def pin(self, cid: str, metadata: PinMetadata, pinned_by: UUID) -> PinId:
        cid = normalize_cid(cid)
        existing = await self._find(cid)
        if existing is not None:
            return PinId(existing.id)

        pin_id = uuid4()
        record = PinRecord(
            id=pin_id,
            cid=cid,
            filename=metadata.filename,
            size=metadata.size,
            content_type=metadata.content_type,
            pin_service=metadata.pin_service,
            pinned_by=pinned_by,
            is_pinned=True,
        )
        self.db.add(record)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            existing = await self._find(cid)
            if existing is None:
                raise
            logger.info("Pin insert lost race; using existing record", extra={"cid": cid})
            return PinId(existing.id)
        logger.info("Content pinned", extra={"cid": cid, "user_id": pinned_by})
        return PinId(pin_id)

    async def unpin(self, cid: str, caller: User) -> None:
        check_admin_role(caller.role, caller.id)
        record = await self._find(normalize_cid(cid))
        if record is None:
            raise ResourceNotFoundError("Pin", cid)
        record.is_pinned = False
        await self.db.commit()
        logger.info("Content unpinned", extra={"cid": cid})

    async def list_all(self, caller: User) -> list[PinRecord]:
        """Every pin record with its pinning user (admin only)."""
        check_admin_role(caller.role, caller.id)
        result = await self.db.execute(
            select(PinRecord)
            .order_by(PinRecord.created_at.desc(), PinRecord.id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def list_mine(self, user_id: UUID) -> list[PinRecord]:
        result = await self.db.execute(
            select(PinRecord)
            .where(PinRecord.pinned_by == user_id)
            .where(PinRecord.is_pinned.is_(True))
            .order_by(PinRecord.created_at.desc(), PinRecord.id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())
