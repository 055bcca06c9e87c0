"""Pin Schemas — pin requests and pin record responses."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from parley.schemas.user import UserSummary
from parley.core.domain_types import PinMetadata
from parley.core.pin_rules import normalize_cid


class PinCreate(BaseModel):
    cid: str = Field(min_length=1, max_length=200)
    filename: str | None = Field(None, max_length=255)
    size: int | None = Field(None, ge=0)
    content_type: str | None = Field(None, max_length=100)
    pin_service: str | None = Field(None, max_length=50)

    @field_validator("cid")
    @classmethod
    def strip_cid(cls, v: str) -> str:
        v = normalize_cid(v)
        if not v:
            raise ValueError("cid cannot be empty or whitespace")
        return v

    def to_metadata(self) -> PinMetadata:
        return PinMetadata(
            filename=self.filename,
            size=self.size,
            content_type=self.content_type,
            pin_service=self.pin_service,
        )


class PinCreated(BaseModel):
    id: UUID


class PinResponse(BaseModel):
    id: UUID
    cid: str
    filename: str | None = None
    size: int | None = None
    content_type: str | None = None
    pin_service: str | None = None
    pinned_by: UUID
    is_pinned: bool
    created_at: datetime
    pinned_by_user: UserSummary | None = None

    @classmethod
    def from_record(cls, record, with_user: bool = False) -> "PinResponse":
        return cls(
            id=record.id,
            cid=record.cid,
            filename=record.filename,
            size=record.size,
            content_type=record.content_type,
            pin_service=record.pin_service,
            pinned_by=record.pinned_by,
            is_pinned=record.is_pinned,
            created_at=record.created_at,
            pinned_by_user=(
                UserSummary.model_validate(record.pinned_by_user)
                if with_user and record.pinned_by_user else None
            ),
        )
