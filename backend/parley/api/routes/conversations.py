"""Conversation Routes — create, list, read, participants, read watermark, public singleton.

Invariants:
    - Every route runs as the resolved principal (get_current_user)
    - Participancy and admin checks happen in the services, never here
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from parley.api.dependencies import get_current_user
from parley.config import get_settings
from parley.infrastructure.database import get_db
from parley.models.user import User
from parley.schemas.conversation import (
    ConversationCreate, ConversationCreated, ConversationResponse,
    ParticipantAdd, ReadReceipt,
)
from parley.services.conversation_store import ConversationStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/conversations", tags=["conversations"])


def _store(db: AsyncSession) -> ConversationStore:
    return ConversationStore(db, reserved_topic=get_settings().public_topic)


@router.post(
    "", response_model=ConversationCreated,
    status_code=status.HTTP_201_CREATED,
)
async def create_conversation(
    body: ConversationCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    conversation_id = await _store(db).create(
        creator_id=user.id,
        kind=body.kind,
        participant_ids=body.participant_ids,
        name=body.name,
        description=body.description,
        external_topic=body.external_topic,
        avatar=body.avatar,
    )
    return ConversationCreated(id=conversation_id)


@router.get("", response_model=list[ConversationResponse])
async def list_my_conversations(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Caller's conversations, most recent activity first, with unread counts."""
    views = await _store(db).list_for_user(user.id)
    return [ConversationResponse.from_view(v) for v in views]


@router.post("/public", response_model=ConversationCreated)
async def get_or_create_public_conversation(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Join (creating on first use) the global public conversation."""
    settings = get_settings()
    conversation_id = await _store(db).get_or_create_singleton(
        user.id,
        settings.public_topic,
        name=settings.public_name,
        description=settings.public_description,
    )
    return ConversationCreated(id=conversation_id)


@router.get("/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    conversation_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    view = await _store(db).get(conversation_id, user.id)
    return ConversationResponse.from_view(view)


@router.post(
    "/{conversation_id}/participants", response_model=ConversationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_participant(
    conversation_id: UUID,
    body: ParticipantAdd,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Admin-only add; returns the conversation with its updated roster."""
    store = _store(db)
    await store.participants.add_participant(
        conversation_id, user.id, body.user_id, body.role,
    )
    view = await store.get(conversation_id, user.id)
    return ConversationResponse.from_view(view)


@router.post("/{conversation_id}/read", response_model=ReadReceipt)
async def mark_conversation_read(
    conversation_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    watermark = await _store(db).participants.mark_read(conversation_id, user.id)
    return ReadReceipt(conversation_id=conversation_id, last_read_at=watermark)
