"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - PinId wraps a UUID; MessageId wraps the log position (int)
    - All valid states encoded as Enums, never raw string matching
    - MessageStatus forward order: sending < sent < delivered; delivered and failed are terminal

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON and compare equal to their DB column values
"""

from dataclasses import dataclass
from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

PinId = NewType("PinId", UUID)
MessageId = NewType("MessageId", int)


# ─── Limits ──────────────────────────────────────────────────────

DEFAULT_PAGE_LIMIT = 50
MIN_PAGE_LIMIT = 1
MAX_PAGE_LIMIT = 200
PREVIEW_LENGTH = 60


# ─── Enums ───────────────────────────────────────────────────────

class UserRole(str, Enum):
    """Principal-level role; admin gates pin moderation and user listing."""
    ADMIN = "admin"
    USER = "user"


class ConversationKind(str, Enum):
    DIRECT = "direct"
    GROUP = "group"


class ParticipantRole(str, Enum):
    """Conversation-level role; admin gates participant adds."""
    ADMIN = "admin"
    MEMBER = "member"


class MessageKind(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    AUDIO = "audio"
    FILE = "file"
    PAYMENT = "payment"


MEDIA_KINDS = frozenset({MessageKind.IMAGE, MessageKind.AUDIO, MessageKind.FILE})


class MessageStatus(str, Enum):
    """Delivery status: sending -> sent -> delivered, any -> failed."""
    SENDING = "sending"
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({MessageStatus.DELIVERED, MessageStatus.FAILED})


# ─── Value Objects ───────────────────────────────────────────────

@dataclass(frozen=True)
class PinMetadata:
    """Descriptive fields recorded the first time a CID is pinned."""
    filename: str | None = None
    size: int | None = None
    content_type: str | None = None
    pin_service: str | None = None
