"""User Routes — current principal, profile, presence, directory lookups.

Invariants:
    - /users/me routes only ever touch the caller's own record
    - GET /users is admin-only; lookup and search are open to any principal
"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from parley.api.dependencies import get_current_user
from parley.config import get_settings
from parley.core.errors import ResourceNotFoundError
from parley.infrastructure.database import get_db
from parley.models.user import User
from parley.schemas.user import PresenceUpdate, ProfileUpdate, UserSummary
from parley.services.user_directory import UserDirectory

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("/me", response_model=UserSummary)
async def get_me(user: User = Depends(get_current_user)):
    return UserSummary.model_validate(user)


@router.patch("/me", response_model=UserSummary)
async def update_me(
    body: ProfileUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Patch only the fields present in the request body."""
    updated = await UserDirectory(db).update_profile(
        user, body.model_dump(exclude_unset=True),
    )
    return UserSummary.model_validate(updated)


@router.put("/me/presence", response_model=UserSummary)
async def set_presence(
    body: PresenceUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    updated = await UserDirectory(db).set_presence(user, body.is_online)
    return UserSummary.model_validate(updated)


@router.get("", response_model=list[UserSummary])
async def list_users(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    users = await UserDirectory(db).list_all(user)
    return [UserSummary.model_validate(u) for u in users]


@router.get("/search", response_model=list[UserSummary])
async def search_users(
    q: str = Query("", max_length=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Case-insensitive prefix match over wallet address, ENS name and display name."""
    users = await UserDirectory(db).search(
        q, limit=get_settings().search_result_limit,
    )
    return [UserSummary.model_validate(u) for u in users]


@router.get("/by-wallet/{address}", response_model=UserSummary)
async def get_user_by_wallet(
    address: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    found = await UserDirectory(db).get_by_wallet(address)
    if found is None:
        raise ResourceNotFoundError("User", address)
    return UserSummary.model_validate(found)
