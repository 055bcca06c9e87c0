"""Message Store — append-only message log: send, page, edit, soft-delete, status.

Invariants:
    - send() requires sender participancy before any write
    - Message insert and conversation summary patch share one commit
    - Only the original sender may edit, soft-delete or set status
    - Pages hold at most clamp_page_limit(limit) messages in chronological order,
      keyed by (created_at, id); next_cursor is set only when older messages exist
    - Soft-deleted messages keep their content and are hidden from default pages

Design Decisions:
    - Newest-first fetch of limit + 1 rows, reversed for delivery: the extra row
      tells whether another page exists without a COUNT query
    - Cursor anchor resolved with a scalar subquery so the comparison never
      round-trips a timestamp through Python
    - set_status() does not reject backwards transitions; it logs them
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from parley.core.domain_types import MessageId, MessageKind, MessageStatus
from parley.core.errors import (
    ContentValidationError, ErrorContext, ForbiddenError, ResourceNotFoundError,
)
from parley.core.message_rules import (
    MessageDraft, check_content, check_draft, clamp_page_limit, decode_cursor,
    encode_cursor, group_reactions, is_forward_transition,
)
from parley.models.message import Message
from parley.models.reaction import Reaction
from parley.services.conversation_store import ConversationStore
from parley.services.participant_registry import ParticipantRegistry

logger = logging.getLogger(__name__)


@dataclass
class MessageView:
    """A message joined with its reactions grouped by emoji."""
    message: Message
    reactions: dict[str, list[UUID]] = field(default_factory=dict)


@dataclass
class MessagePage:
    messages: list[MessageView]
    next_cursor: str | None = None


class MessageStore:
    """Message log operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.participants = ParticipantRegistry(db)
        self.conversations = ConversationStore(db)

    async def send(
        self, conversation_id: UUID, sender_id: UUID, draft: MessageDraft,
    ) -> MessageId:
        """Append a message with status 'sent' and patch the conversation summary."""
        await self.participants.require_participant(conversation_id, sender_id)
        check_draft(draft)
        if draft.reply_to_id is not None:
            await self._require_reply_target(conversation_id, draft.reply_to_id)

        message = Message(
            conversation_id=conversation_id,
            sender_id=sender_id,
            kind=MessageKind(draft.kind).value,
            content=draft.content,
            transport_message_id=draft.transport_message_id,
            media_cid=draft.media_cid,
            media_key=draft.media_key,
            token_address=draft.token_address,
            token_amount=draft.token_amount,
            transaction_hash=draft.transaction_hash,
            reply_to_id=draft.reply_to_id,
            status=MessageStatus.SENT.value,
            created_at=datetime.now(timezone.utc),
        )
        self.db.add(message)
        await self.conversations.patch_summary(conversation_id, message)
        await self.db.commit()

        logger.info(
            f"Message sent ({message.kind})",
            extra={
                "conversation_id": conversation_id,
                "message_id": message.id,
                "user_id": sender_id,
            },
        )
        return MessageId(message.id)

    async def _require_reply_target(
        self, conversation_id: UUID, reply_to_id: MessageId,
    ) -> None:
        target = await self.db.get(Message, reply_to_id)
        if target is None or target.conversation_id != conversation_id:
            raise ResourceNotFoundError("Message", str(reply_to_id))

    async def list_messages(
        self,
        conversation_id: UUID,
        caller_id: UUID,
        limit: int | None = None,
        cursor: str | None = None,
        include_deleted: bool = False,
    ) -> MessagePage:
        """One page of messages, oldest first, older pages reachable via next_cursor."""
        await self.participants.require_participant(conversation_id, caller_id)
        page_size = clamp_page_limit(limit)

        query = select(Message).where(Message.conversation_id == conversation_id)
        if not include_deleted:
            query = query.where(Message.deleted_at.is_(None))
        if cursor is not None:
            anchor_id = await self._resolve_cursor(conversation_id, cursor)
            anchor_at = (
                select(Message.created_at)
                .where(Message.id == anchor_id)
                .scalar_subquery()
            )
            query = query.where(or_(
                Message.created_at < anchor_at,
                and_(Message.created_at == anchor_at, Message.id < anchor_id),
            ))
        query = (
            query.order_by(Message.created_at.desc(), Message.id.desc())
            .limit(page_size + 1)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        rows = list(result.scalars().all())

        has_more = len(rows) > page_size
        rows = rows[:page_size]
        next_cursor = encode_cursor(MessageId(rows[-1].id)) if has_more else None
        rows.reverse()

        reactions = await self._reactions_for([m.id for m in rows])
        return MessagePage(
            messages=[
                MessageView(message=m, reactions=reactions.get(m.id, {}))
                for m in rows
            ],
            next_cursor=next_cursor,
        )

    async def _resolve_cursor(self, conversation_id: UUID, cursor: str) -> MessageId:
        anchor_id = decode_cursor(cursor)
        anchor = await self.db.get(Message, anchor_id)
        if anchor is None or anchor.conversation_id != conversation_id:
            raise ContentValidationError("Invalid pagination cursor", "cursor")
        return anchor_id

    async def _reactions_for(
        self, message_ids: list[int],
    ) -> dict[int, dict[str, list[UUID]]]:
        if not message_ids:
            return {}
        result = await self.db.execute(
            select(Reaction.message_id, Reaction.emoji, Reaction.user_id)
            .where(Reaction.message_id.in_(message_ids))
            .order_by(Reaction.created_at, Reaction.id)
        )
        pairs: dict[int, list[tuple[str, UUID]]] = {}
        for message_id, emoji, user_id in result.all():
            pairs.setdefault(message_id, []).append((emoji, user_id))
        return {
            message_id: group_reactions(items)
            for message_id, items in pairs.items()
        }

    async def edit(
        self, message_id: MessageId, caller_id: UUID, content: str,
    ) -> None:
        message = await self._require_own_message(message_id, caller_id, "edit")
        check_content(MessageKind(message.kind), content)
        message.content = content
        message.edited_at = datetime.now(timezone.utc)
        await self.conversations.refresh_summary(message.conversation_id)
        await self.db.commit()

    async def soft_delete(self, message_id: MessageId, caller_id: UUID) -> None:
        """Mark deleted; content is retained."""
        message = await self._require_own_message(message_id, caller_id, "delete")
        message.deleted_at = datetime.now(timezone.utc)
        await self.conversations.refresh_summary(message.conversation_id)
        await self.db.commit()
        logger.info(
            "Message soft-deleted",
            extra={
                "conversation_id": message.conversation_id,
                "message_id": message_id,
            },
        )

    async def set_status(
        self, message_id: MessageId, caller_id: UUID, status: MessageStatus,
    ) -> None:
        message = await self._require_own_message(
            message_id, caller_id, "update the status of",
        )
        status = MessageStatus(status)
        if not is_forward_transition(MessageStatus(message.status), status):
            logger.warning(
                f"Non-forward status change {message.status} -> {status.value}",
                extra={"message_id": message_id, "user_id": caller_id},
            )
        message.status = status.value
        await self.db.commit()

    async def _require_own_message(
        self, message_id: MessageId, caller_id: UUID, action: str,
    ) -> Message:
        message = await self.db.get(Message, message_id)
        if message is None:
            raise ResourceNotFoundError("Message", str(message_id))
        if message.sender_id != caller_id:
            raise ForbiddenError(
                f"Can only {action} your own messages",
                ErrorContext(message_id=str(message_id), user_id=str(caller_id)),
            )
        return message
