"""Message Routes — send, page, edit, soft-delete, status and reactions.

Invariants:
    - Page size is clamped by the message store, so out-of-range limits are
      accepted here and normalized there
    - Sender-only and participant-only rules are enforced by the services
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from parley.api.dependencies import get_current_user
from parley.core.domain_types import MessageId
from parley.infrastructure.database import get_db
from parley.models.user import User
from parley.schemas.message import (
    MessageCreate, MessageCreated, MessageEdit, MessagePageResponse,
    MessageResponse, MessageStatusUpdate, ReactionToggle, ReactionToggled,
)
from parley.services.message_store import MessageStore
from parley.services.reaction_ledger import ReactionLedger

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["messages"])


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=MessageCreated,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    conversation_id: UUID,
    body: MessageCreate = Body(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    message_id = await MessageStore(db).send(
        conversation_id, user.id, body.to_draft(),
    )
    return MessageCreated(id=message_id)


@router.get(
    "/conversations/{conversation_id}/messages",
    response_model=MessagePageResponse,
)
async def list_messages(
    conversation_id: UUID,
    limit: int | None = Query(None),
    cursor: str | None = Query(None),
    include_deleted: bool = Query(False),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """One page of messages, oldest first; pass next_cursor to fetch older ones."""
    page = await MessageStore(db).list_messages(
        conversation_id, user.id,
        limit=limit, cursor=cursor, include_deleted=include_deleted,
    )
    return MessagePageResponse(
        messages=[MessageResponse.from_view(v) for v in page.messages],
        next_cursor=page.next_cursor,
    )


@router.patch("/messages/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
async def edit_message(
    message_id: int,
    body: MessageEdit,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await MessageStore(db).edit(MessageId(message_id), user.id, body.content)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/messages/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_message(
    message_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await MessageStore(db).soft_delete(MessageId(message_id), user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put(
    "/messages/{message_id}/status", status_code=status.HTTP_204_NO_CONTENT,
)
async def set_message_status(
    message_id: int,
    body: MessageStatusUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await MessageStore(db).set_status(MessageId(message_id), user.id, body.status)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/messages/{message_id}/reactions", response_model=ReactionToggled)
async def toggle_reaction(
    message_id: int,
    body: ReactionToggle,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Add the reaction if absent, remove it if present."""
    result = await ReactionLedger(db).toggle(
        MessageId(message_id), user.id, body.emoji,
    )
    return ReactionToggled(applied=result.applied)
