"""Conversation Schemas — creation, participant adds and enriched conversation responses.

Invariants:
    - ConversationCreate.kind is 'direct' or 'group'
    - Responses always carry the full participant list with conversation roles
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from parley.core.domain_types import ConversationKind, ParticipantRole
from parley.schemas.user import UserSummary


class ConversationCreate(BaseModel):
    kind: ConversationKind
    name: str | None = Field(None, max_length=200)
    description: str | None = Field(None, max_length=2000)
    avatar: str | None = Field(None, max_length=200)
    participant_ids: list[UUID] = Field(default_factory=list, max_length=500)
    external_topic: str | None = Field(None, min_length=1, max_length=255)


class ConversationCreated(BaseModel):
    id: UUID


class ParticipantAdd(BaseModel):
    user_id: UUID
    role: ParticipantRole = ParticipantRole.MEMBER


class ParticipantResponse(BaseModel):
    user: UserSummary
    role: ParticipantRole
    joined_at: datetime
    last_read_at: datetime | None = None

    @classmethod
    def from_participant(cls, participant) -> "ParticipantResponse":
        return cls(
            user=UserSummary.model_validate(participant.user),
            role=ParticipantRole(participant.role),
            joined_at=participant.joined_at,
            last_read_at=participant.last_read_at,
        )


class ConversationResponse(BaseModel):
    id: UUID
    kind: ConversationKind
    name: str | None = None
    description: str | None = None
    avatar: str | None = None
    created_by: UUID
    is_encrypted: bool
    external_topic: str | None = None
    last_message_at: datetime | None = None
    last_message: str | None = None
    created_at: datetime
    participants: list[ParticipantResponse] = []
    unread_count: int = 0

    @classmethod
    def from_view(cls, view) -> "ConversationResponse":
        c = view.conversation
        return cls(
            id=c.id,
            kind=ConversationKind(c.kind),
            name=c.name,
            description=c.description,
            avatar=c.avatar,
            created_by=c.created_by,
            is_encrypted=c.is_encrypted,
            external_topic=c.external_topic,
            last_message_at=c.last_message_at,
            last_message=c.last_message,
            created_at=c.created_at,
            participants=[
                ParticipantResponse.from_participant(p)
                for p in view.participants
            ],
            unread_count=view.unread_count,
        )


class ReadReceipt(BaseModel):
    conversation_id: UUID
    last_read_at: datetime
