"""Message Schemas — kind-tagged send payloads, edits, status/reaction requests, message pages.

Invariants:
    - MessageCreate is a discriminated union on `kind`; each variant carries only
      the fields meaningful to that kind
    - Media variants require a CID; payment variants require token address and amount
    - Blank text content is rejected by the message store (ContentValidationError),
      not here, so the rule holds for every caller of the store
    - MessageResponse exposes media/payment blocks only for their own kinds

Design Decisions:
    - Literal discriminators over one record with many optional fields
    - to_draft() converts the API variant into the core MessageDraft
"""

from datetime import datetime
from typing import Annotated, Literal, Union
from uuid import UUID

from pydantic import BaseModel, Field

from parley.core.domain_types import MEDIA_KINDS, MessageKind, MessageStatus
from parley.core.message_rules import MessageDraft
from parley.schemas.user import UserSummary

_CONTENT_MAX = 20_000


class TextMessageCreate(BaseModel):
    kind: Literal["text"]
    content: str = Field(max_length=_CONTENT_MAX)
    transport_message_id: str | None = Field(None, max_length=255)
    reply_to_id: int | None = Field(None, ge=1)

    def to_draft(self) -> MessageDraft:
        return MessageDraft(
            kind=MessageKind.TEXT,
            content=self.content,
            transport_message_id=self.transport_message_id,
            reply_to_id=self.reply_to_id,
        )


class MediaMessageCreate(BaseModel):
    kind: Literal["image", "audio", "file"]
    media_cid: str = Field(min_length=1, max_length=200)
    media_key: str | None = Field(None, max_length=2000)
    content: str | None = Field(None, max_length=_CONTENT_MAX)
    transport_message_id: str | None = Field(None, max_length=255)
    reply_to_id: int | None = Field(None, ge=1)

    def to_draft(self) -> MessageDraft:
        return MessageDraft(
            kind=MessageKind(self.kind),
            content=self.content,
            transport_message_id=self.transport_message_id,
            media_cid=self.media_cid,
            media_key=self.media_key,
            reply_to_id=self.reply_to_id,
        )


class PaymentMessageCreate(BaseModel):
    kind: Literal["payment"]
    token_address: str = Field(min_length=1, max_length=100)
    token_amount: str = Field(min_length=1, max_length=100)
    transaction_hash: str | None = Field(None, max_length=100)
    content: str | None = Field(None, max_length=_CONTENT_MAX)
    transport_message_id: str | None = Field(None, max_length=255)
    reply_to_id: int | None = Field(None, ge=1)

    def to_draft(self) -> MessageDraft:
        return MessageDraft(
            kind=MessageKind.PAYMENT,
            content=self.content,
            transport_message_id=self.transport_message_id,
            token_address=self.token_address,
            token_amount=self.token_amount,
            transaction_hash=self.transaction_hash,
            reply_to_id=self.reply_to_id,
        )


MessageCreate = Annotated[
    Union[TextMessageCreate, MediaMessageCreate, PaymentMessageCreate],
    Field(discriminator="kind"),
]


class MessageCreated(BaseModel):
    id: int


class MessageEdit(BaseModel):
    content: str = Field(max_length=_CONTENT_MAX)


class MessageStatusUpdate(BaseModel):
    status: MessageStatus


class ReactionToggle(BaseModel):
    emoji: str = Field(min_length=1, max_length=32)


class ReactionToggled(BaseModel):
    applied: bool


class MediaRef(BaseModel):
    cid: str
    key: str | None = None


class PaymentFields(BaseModel):
    token_address: str | None = None
    token_amount: str | None = None
    transaction_hash: str | None = None


class MessageResponse(BaseModel):
    id: int
    conversation_id: UUID
    sender_id: UUID
    sender: UserSummary | None = None
    kind: MessageKind
    content: str | None = None
    transport_message_id: str | None = None
    media: MediaRef | None = None
    payment: PaymentFields | None = None
    reply_to_id: int | None = None
    status: MessageStatus
    created_at: datetime
    edited_at: datetime | None = None
    deleted_at: datetime | None = None
    reactions: dict[str, list[UUID]] = {}

    @classmethod
    def from_view(cls, view) -> "MessageResponse":
        m = view.message
        kind = MessageKind(m.kind)
        return cls(
            id=m.id,
            conversation_id=m.conversation_id,
            sender_id=m.sender_id,
            sender=UserSummary.model_validate(m.sender) if m.sender else None,
            kind=kind,
            content=m.content,
            transport_message_id=m.transport_message_id,
            media=(
                MediaRef(cid=m.media_cid, key=m.media_key)
                if kind in MEDIA_KINDS and m.media_cid else None
            ),
            payment=(
                PaymentFields(
                    token_address=m.token_address,
                    token_amount=m.token_amount,
                    transaction_hash=m.transaction_hash,
                )
                if kind == MessageKind.PAYMENT else None
            ),
            reply_to_id=m.reply_to_id,
            status=MessageStatus(m.status),
            created_at=m.created_at,
            edited_at=m.edited_at,
            deleted_at=m.deleted_at,
            reactions=view.reactions,
        )


class MessagePageResponse(BaseModel):
    messages: list[MessageResponse]
    next_cursor: str | None = None
