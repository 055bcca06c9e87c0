"""User Schemas — public user shape and self-service profile updates.

Invariants:
    - UserSummary never exposes email
    - ProfileUpdate only carries fields the owner may change; role is not one of them
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class UserSummary(BaseModel):
    """Public user fields used in participant lists, message senders and lookups."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    display_name: str | None = None
    image: str | None = None
    wallet_address: str | None = None
    ens_name: str | None = None
    transport_address: str | None = None
    public_key: str | None = None
    role: str = "user"
    is_online: bool = False
    last_seen: datetime | None = None


class ProfileUpdate(BaseModel):
    display_name: str | None = Field(None, max_length=100)
    image: str | None = Field(None, max_length=500)
    wallet_address: str | None = Field(None, max_length=100)
    ens_name: str | None = Field(None, max_length=255)
    transport_address: str | None = Field(None, max_length=100)
    public_key: str | None = Field(None, max_length=1000)

    @field_validator("display_name", "wallet_address", "ens_name")
    @classmethod
    def strip_text(cls, v: str | None) -> str | None:
        return v.strip() if v is not None else v


class PresenceUpdate(BaseModel):
    is_online: bool
