"""Request Dependencies — principal resolution shared by every authenticated route.

Invariants:
    - The principal id arrives in the X-User-Id header, set by the upstream gateway
    - Missing, malformed or unknown ids raise NotAuthenticatedError (401)
    - Resolution happens once per request, on the request's own DB session
"""

from uuid import UUID

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from parley.core.errors import NotAuthenticatedError
from parley.infrastructure.database import get_db
from parley.models.user import User
from parley.services.user_directory import UserDirectory


async def get_current_user(
    x_user_id: str | None = Header(None),
    db: AsyncSession = Depends(get_db),
) -> User:
    if not x_user_id:
        raise NotAuthenticatedError()
    try:
        principal_id = UUID(x_user_id)
    except ValueError:
        raise NotAuthenticatedError()
    user = await UserDirectory(db).resolve(principal_id)
    if user is None:
        raise NotAuthenticatedError()
    return user
