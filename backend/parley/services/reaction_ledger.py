"""Reaction Ledger — per-(message, user, emoji) toggle set.

Invariants:
    - Row existence is the only state: toggle removes a present triple, adds an absent one
    - The DB unique key on (message_id, user_id, emoji) is the final guard against duplicates
    - Caller must be a participant of the message's conversation

Design Decisions:
    - DELETE first, INSERT only if nothing was deleted: the delete is a single
      statement, so a present reaction is never read-then-removed in two steps
    - An IntegrityError on insert means the same triple was inserted concurrently;
      the row exists, so the toggle is reported as applied
"""

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from parley.core.domain_types import MessageId
from parley.core.errors import ResourceNotFoundError
from parley.models.message import Message
from parley.models.reaction import Reaction
from parley.services.participant_registry import ParticipantRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToggleResult:
    applied: bool


class ReactionLedger:
    """Toggle store for message reactions."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.participants = ParticipantRegistry(db)

    async def toggle(
        self, message_id: MessageId, user_id: UUID, emoji: str,
    ) -> ToggleResult:
        message = await self.db.get(Message, message_id)
        if message is None:
            raise ResourceNotFoundError("Message", str(message_id))
        await self.participants.require_participant(message.conversation_id, user_id)

        result = await self.db.execute(
            delete(Reaction)
            .where(Reaction.message_id == message_id)
            .where(Reaction.user_id == user_id)
            .where(Reaction.emoji == emoji)
        )
        if result.rowcount:
            await self.db.commit()
            return ToggleResult(applied=False)

        self.db.add(Reaction(message_id=message_id, user_id=user_id, emoji=emoji))
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.info(
                "Concurrent reaction insert reconciled",
                extra={"message_id": message_id, "user_id": user_id},
            )
        return ToggleResult(applied=True)
