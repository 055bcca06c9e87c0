"""Conversation Store — conversation lifecycle, enriched reads, singleton provisioning, summary upkeep.

Invariants:
    - create() validates every referenced user before the first write
    - Creator is always inserted as 'admin'; listed users as 'member'
    - At most one conversation carries a given external_topic (DB unique key)
    - get_or_create_singleton() leaves the caller with exactly one participant record
    - Summary fields are written in the same commit as the message that caused them

Design Decisions:
    - create() commits the conversation and its admin first, then the members:
      a failure while adding members leaves the conversation in place and
      surfaces the error (partial state is logged, never hidden)
    - Singleton provisioning: per-topic asyncio.Lock serializes callers inside
      one process; across processes the unique key plus insert-then-reread on
      IntegrityError reconciles the race
    - _provision_locks as module-level dict: shared by every request handled by
      this worker, keyed by topic so unrelated topics never contend; a lock is
      replaced when the running event loop changes
    - Joining an existing singleton never takes the lock
    - Summary patch is a guarded UPDATE: an older message committing late never
      overwrites the preview of a newer one
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from parley.core.conversation_rules import check_external_topic, normalize_member_ids
from parley.core.domain_types import ConversationKind, ParticipantRole
from parley.core.errors import ConflictError, ErrorContext, ResourceNotFoundError
from parley.core.message_rules import build_preview
from parley.models.conversation import Conversation
from parley.models.message import Message
from parley.models.participant import Participant
from parley.models.user import User
from parley.services.participant_registry import ParticipantRegistry

logger = logging.getLogger(__name__)

_provision_locks: dict[str, tuple[asyncio.AbstractEventLoop, asyncio.Lock]] = {}


def _provision_lock(topic: str) -> asyncio.Lock:
    loop = asyncio.get_running_loop()
    entry = _provision_locks.get(topic)
    if entry is None or entry[0] is not loop:
        entry = _provision_locks[topic] = (loop, asyncio.Lock())
    return entry[1]


@dataclass
class ConversationView:
    """A conversation joined with its participants (and, in lists, unread count)."""
    conversation: Conversation
    participants: list[Participant] = field(default_factory=list)
    unread_count: int = 0


class ConversationStore:
    """Conversation lifecycle and summary maintenance."""

    def __init__(self, db: AsyncSession, reserved_topic: str = "public_global"):
        self.db = db
        self.reserved_topic = reserved_topic
        self.participants = ParticipantRegistry(db)

    # ─── Create ──────────────────────────────────────────────────

    async def create(
        self,
        creator_id: UUID,
        kind: ConversationKind,
        participant_ids: list[UUID],
        name: str | None = None,
        description: str | None = None,
        external_topic: str | None = None,
        avatar: str | None = None,
    ) -> UUID:
        """Create a conversation with the creator as admin and listed users as members."""
        check_external_topic(external_topic, self.reserved_topic)
        member_ids = normalize_member_ids(creator_id, participant_ids)
        await self._require_users_exist(member_ids)

        now = datetime.now(timezone.utc)
        conversation = Conversation(
            id=uuid4(),
            kind=ConversationKind(kind).value,
            name=name,
            description=description,
            avatar=avatar,
            created_by=creator_id,
            is_encrypted=True,
            external_topic=external_topic,
            last_message_at=now,
        )
        conversation_id = conversation.id
        self.db.add(conversation)
        self.db.add(Participant(
            conversation_id=conversation_id, user_id=creator_id,
            role=ParticipantRole.ADMIN.value, joined_at=now,
        ))
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError(
                f"External topic '{external_topic}' is already in use",
            )

        if member_ids:
            for member_id in member_ids:
                self.db.add(Participant(
                    conversation_id=conversation_id, user_id=member_id,
                    role=ParticipantRole.MEMBER.value,
                ))
            try:
                await self.db.commit()
            except IntegrityError:
                await self.db.rollback()
                logger.error(
                    "Conversation created but member insert failed",
                    extra={"conversation_id": conversation_id},
                )
                raise ConflictError(
                    "Conversation created, but adding participants failed",
                    ErrorContext(conversation_id=str(conversation_id)),
                )

        logger.info(
            f"Conversation created ({len(member_ids)} members)",
            extra={"conversation_id": conversation_id, "user_id": creator_id},
        )
        return conversation_id

    async def _require_users_exist(self, user_ids: list[UUID]) -> None:
        if not user_ids:
            return
        result = await self.db.execute(
            select(User.id).where(User.id.in_(user_ids)),
        )
        found = set(result.scalars().all())
        for user_id in user_ids:
            if user_id not in found:
                raise ResourceNotFoundError("User", str(user_id))

    # ─── Read ────────────────────────────────────────────────────

    async def list_for_user(self, user_id: UUID) -> list[ConversationView]:
        """Caller's conversations, most recent activity first (NULL activity last)."""
        result = await self.db.execute(
            select(Conversation)
            .join(Participant, Participant.conversation_id == Conversation.id)
            .where(Participant.user_id == user_id)
            .order_by(
                Conversation.last_message_at.desc().nulls_last(),
                Conversation.created_at.desc(),
                Conversation.id,
            )
        )
        conversations = list(result.scalars().all())
        if not conversations:
            return []

        ids = [c.id for c in conversations]
        members = await self.db.execute(
            select(Participant)
            .where(Participant.conversation_id.in_(ids))
            .order_by(Participant.joined_at, Participant.id)
            .execution_options(populate_existing=True)
        )
        by_conversation: dict[UUID, list[Participant]] = {}
        for participant in members.scalars().all():
            by_conversation.setdefault(participant.conversation_id, []).append(
                participant,
            )
        unread = await self.unread_counts(user_id)
        return [
            ConversationView(
                conversation=c,
                participants=by_conversation.get(c.id, []),
                unread_count=unread.get(c.id, 0),
            )
            for c in conversations
        ]

    async def get(self, conversation_id: UUID, user_id: UUID) -> ConversationView:
        """Participant-only read of one conversation with its participants."""
        await self.participants.require_participant(conversation_id, user_id)
        conversation = await self.db.get(Conversation, conversation_id)
        if conversation is None:
            raise ResourceNotFoundError("Conversation", str(conversation_id))
        return ConversationView(
            conversation=conversation,
            participants=await self.participants.list_for_conversation(
                conversation_id,
            ),
        )

    async def unread_counts(self, user_id: UUID) -> dict[UUID, int]:
        """Per-conversation count of active messages from others after the read watermark."""
        result = await self.db.execute(
            select(Message.conversation_id, func.count(Message.id))
            .join(
                Participant,
                and_(
                    Participant.conversation_id == Message.conversation_id,
                    Participant.user_id == user_id,
                ),
            )
            .where(Message.deleted_at.is_(None))
            .where(Message.sender_id != user_id)
            .where(or_(
                Participant.last_read_at.is_(None),
                Message.created_at > Participant.last_read_at,
            ))
            .group_by(Message.conversation_id)
        )
        return {conversation_id: count for conversation_id, count in result.all()}

    # ─── Singleton ───────────────────────────────────────────────

    async def get_or_create_singleton(
        self,
        caller_id: UUID,
        topic: str,
        name: str = "Public",
        description: str | None = None,
    ) -> UUID:
        """Return the conversation for topic, creating it on first call; ensure caller membership."""
        existing = await self._find_by_topic(topic)
        if existing is not None:
            await self._ensure_member(existing, caller_id)
            return existing

        async with _provision_lock(topic):
            conversation_id = await self._find_by_topic(topic)
            if conversation_id is None:
                conversation_id = await self._insert_singleton(
                    caller_id, topic, name, description,
                )
            await self._ensure_member(conversation_id, caller_id)
        return conversation_id

    async def _find_by_topic(self, topic: str) -> UUID | None:
        result = await self.db.execute(
            select(Conversation.id).where(Conversation.external_topic == topic),
        )
        return result.scalar_one_or_none()

    async def _insert_singleton(
        self,
        caller_id: UUID,
        topic: str,
        name: str,
        description: str | None,
    ) -> UUID:
        """Insert the singleton with caller as admin; on unique-key conflict reread the winner."""
        now = datetime.now(timezone.utc)
        conversation_id = uuid4()
        self.db.add(Conversation(
            id=conversation_id,
            kind=ConversationKind.GROUP.value,
            name=name,
            description=description,
            created_by=caller_id,
            is_encrypted=True,
            external_topic=topic,
            last_message_at=now,
        ))
        self.db.add(Participant(
            conversation_id=conversation_id, user_id=caller_id,
            role=ParticipantRole.ADMIN.value, joined_at=now,
        ))
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            existing = await self._find_by_topic(topic)
            if existing is None:
                raise
            logger.info(
                "Singleton insert lost race; using existing conversation",
                extra={"conversation_id": existing},
            )
            return existing
        logger.info(
            f"Singleton conversation created for topic '{topic}'",
            extra={"conversation_id": conversation_id, "user_id": caller_id},
        )
        return conversation_id

    async def _ensure_member(self, conversation_id: UUID, user_id: UUID) -> None:
        if await self.participants.get(conversation_id, user_id) is not None:
            return
        self.db.add(Participant(
            conversation_id=conversation_id, user_id=user_id,
            role=ParticipantRole.MEMBER.value,
        ))
        try:
            await self.db.commit()
        except IntegrityError:
            # Another request for the same caller added the record first.
            await self.db.rollback()

    # ─── Summary ─────────────────────────────────────────────────

    async def patch_summary(
        self, conversation_id: UUID, message: Message,
    ) -> None:
        """Stage summary fields for a freshly sent message. Caller commits.

        Only moves the summary forward: a message created before the current
        last_message_at leaves it untouched.
        """
        exists = await self.db.scalar(
            select(Conversation.id).where(Conversation.id == conversation_id),
        )
        if exists is None:
            raise ResourceNotFoundError("Conversation", str(conversation_id))
        await self.db.execute(
            update(Conversation)
            .where(Conversation.id == conversation_id)
            .where(or_(
                Conversation.last_message_at.is_(None),
                Conversation.last_message_at <= message.created_at,
            ))
            .values(
                last_message_at=message.created_at,
                last_message=build_preview(message.kind, message.content),
            )
            .execution_options(synchronize_session="fetch")
        )

    async def refresh_summary(self, conversation_id: UUID) -> None:
        """Recompute summary from the newest non-deleted message. Caller commits."""
        conversation = await self.db.get(Conversation, conversation_id)
        if conversation is None:
            return
        result = await self.db.execute(
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .where(Message.deleted_at.is_(None))
            .order_by(Message.created_at.desc(), Message.id.desc())
            .limit(1)
        )
        latest = result.scalar_one_or_none()
        if latest is None:
            conversation.last_message = None
            return
        conversation.last_message_at = latest.created_at
        conversation.last_message = build_preview(latest.kind, latest.content)
