"""Participant Registry — membership, roles, read watermarks and the authorization gate.

Invariants:
    - role_of is the single membership lookup; every conversation-scoped read or
      write goes through require_participant / require_admin
    - Absence of membership raises, never returns empty results
    - (conversation_id, user_id) uniqueness is enforced by the DB; a duplicate
      add that slips past the pre-check is reported as ConflictError
    - mark_read only updates an existing participant record

Design Decisions:
    - Gate methods return the Participant row so callers can reuse it
      (e.g. mark_read patches the row it just authorized)
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from parley.core.domain_types import ParticipantRole
from parley.core.errors import (
    ConflictError, ErrorContext, ForbiddenError, NotAParticipantError,
    ResourceNotFoundError,
)
from parley.models.participant import Participant
from parley.models.user import User

logger = logging.getLogger(__name__)


class ParticipantRegistry:
    """Membership store and authorization gate."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, conversation_id: UUID, user_id: UUID) -> Participant | None:
        result = await self.db.execute(
            select(Participant)
            .where(Participant.conversation_id == conversation_id)
            .where(Participant.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def role_of(
        self, conversation_id: UUID, user_id: UUID,
    ) -> ParticipantRole | None:
        participant = await self.get(conversation_id, user_id)
        return ParticipantRole(participant.role) if participant else None

    async def require_participant(
        self, conversation_id: UUID, user_id: UUID,
    ) -> Participant:
        """Authorization gate: caller must hold a participant record."""
        participant = await self.get(conversation_id, user_id)
        if participant is None:
            raise ForbiddenError(
                "Not authorized for this conversation",
                ErrorContext(
                    conversation_id=str(conversation_id), user_id=str(user_id),
                ),
            )
        return participant

    async def require_admin(
        self, conversation_id: UUID, user_id: UUID,
    ) -> Participant:
        """Authorization gate: caller must be an admin participant."""
        participant = await self.get(conversation_id, user_id)
        if participant is None or participant.role != ParticipantRole.ADMIN.value:
            raise ForbiddenError(
                "Admin access required",
                ErrorContext(
                    conversation_id=str(conversation_id), user_id=str(user_id),
                ),
            )
        return participant

    async def add_participant(
        self,
        conversation_id: UUID,
        caller_id: UUID,
        user_id: UUID,
        role: ParticipantRole = ParticipantRole.MEMBER,
    ) -> Participant:
        """Admin-gated add. Conflict if the user is already a participant."""
        await self.require_admin(conversation_id, caller_id)
        if await self.db.get(User, user_id) is None:
            raise ResourceNotFoundError("User", str(user_id))
        if await self.get(conversation_id, user_id) is not None:
            raise self._already_participant(conversation_id, user_id)

        participant = Participant(
            conversation_id=conversation_id, user_id=user_id,
            role=ParticipantRole(role).value,
        )
        self.db.add(participant)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise self._already_participant(conversation_id, user_id)

        logger.info(
            "Participant added",
            extra={"conversation_id": conversation_id, "user_id": user_id},
        )
        return participant

    async def mark_read(
        self,
        conversation_id: UUID,
        user_id: UUID,
        at: datetime | None = None,
    ) -> datetime:
        """Advance the caller's read watermark. NotAParticipant if not a member."""
        participant = await self.get(conversation_id, user_id)
        if participant is None:
            raise NotAParticipantError(str(conversation_id))
        watermark = at or datetime.now(timezone.utc)
        participant.last_read_at = watermark
        await self.db.commit()
        return watermark

    async def list_for_conversation(
        self, conversation_id: UUID,
    ) -> list[Participant]:
        result = await self.db.execute(
            select(Participant)
            .where(Participant.conversation_id == conversation_id)
            .order_by(Participant.joined_at, Participant.id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    def _already_participant(
        self, conversation_id: UUID, user_id: UUID,
    ) -> ConflictError:
        return ConflictError(
            "User is already a participant",
            ErrorContext(
                conversation_id=str(conversation_id), user_id=str(user_id),
            ),
        )
