"""Pin Routes — CID pin/unpin and pin listings."""

import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from parley.api.dependencies import get_current_user
from parley.infrastructure.database import get_db
from parley.models.user import User
from parley.schemas.pin import PinCreate, PinCreated, PinResponse
from parley.services.pin_registry import PinRegistry

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/pins", tags=["pins"])


@router.post("", response_model=PinCreated, status_code=status.HTTP_201_CREATED)
async def pin_content(
    body: PinCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Record a pin for a CID; pinning a known CID returns the existing record id."""
    pin_id = await PinRegistry(db).pin(body.cid, body.to_metadata(), user.id)
    return PinCreated(id=pin_id)


@router.get("", response_model=list[PinResponse])
async def list_all_pins(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    records = await PinRegistry(db).list_all(user)
    return [PinResponse.from_record(r, with_user=True) for r in records]


@router.get("/mine", response_model=list[PinResponse])
async def list_my_pins(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    records = await PinRegistry(db).list_mine(user.id)
    return [PinResponse.from_record(r) for r in records]


@router.delete("/{cid}", status_code=status.HTTP_204_NO_CONTENT)
async def unpin_content(
    cid: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await PinRegistry(db).unpin(cid, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
