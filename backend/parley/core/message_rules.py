"""Message Rules — pure validation, preview, paging and status logic for the message log.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - Text drafts require non-blank content; other kinds may omit content
    - Page limits always land in [MIN_PAGE_LIMIT, MAX_PAGE_LIMIT]
    - Cursors are opaque urlsafe-base64 tokens; decode rejects anything not produced by encode

Design Decisions:
    - MessageDraft is the kind-tagged payload handed from the API schemas to the
      message store, so the store never sees transport-specific request shapes
    - Validation raises ContentValidationError (not error dicts): the HTTP layer
      renders every ParleyError through one handler
"""

import base64
import binascii
from dataclasses import dataclass
from typing import Iterable
from uuid import UUID

from parley.core.domain_types import (
    DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT, MIN_PAGE_LIMIT, PREVIEW_LENGTH,
    TERMINAL_STATUSES, MessageId, MessageKind, MessageStatus,
)
from parley.core.errors import ContentValidationError

_CURSOR_PREFIX = "msg:"

_STATUS_ORDER = {
    MessageStatus.SENDING: 0,
    MessageStatus.SENT: 1,
    MessageStatus.DELIVERED: 2,
}


@dataclass(frozen=True)
class MessageDraft:
    """A message as submitted by its sender, before it is placed in the log."""
    kind: MessageKind
    content: str | None = None
    transport_message_id: str | None = None
    media_cid: str | None = None
    media_key: str | None = None
    token_address: str | None = None
    token_amount: str | None = None
    transaction_hash: str | None = None
    reply_to_id: MessageId | None = None


def check_content(kind: MessageKind, content: str | None) -> None:
    """Text messages must carry non-blank content."""
    if kind == MessageKind.TEXT and not (content or "").strip():
        raise ContentValidationError(
            "Message content is required for text messages", "content",
        )


def check_draft(draft: MessageDraft) -> None:
    check_content(draft.kind, draft.content)


def build_preview(kind: MessageKind | str, content: str | None) -> str:
    """Conversation summary line: first 60 chars of text, 'Sent <kind>' otherwise."""
    kind = MessageKind(kind)
    if kind == MessageKind.TEXT:
        return (content or "")[:PREVIEW_LENGTH]
    return f"Sent {kind.value}"


def clamp_page_limit(limit: int | None) -> int:
    if limit is None:
        return DEFAULT_PAGE_LIMIT
    return min(MAX_PAGE_LIMIT, max(MIN_PAGE_LIMIT, limit))


def encode_cursor(message_id: MessageId) -> str:
    raw = f"{_CURSOR_PREFIX}{int(message_id)}".encode()
    return base64.urlsafe_b64encode(raw).decode().rstrip("=")


def decode_cursor(cursor: str) -> MessageId:
    """Inverse of encode_cursor. Raises ContentValidationError on malformed input."""
    padded = cursor + "=" * (-len(cursor) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded.encode()).decode()
    except (binascii.Error, UnicodeDecodeError, ValueError):
        raise ContentValidationError("Invalid pagination cursor", "cursor")
    tail = raw[len(_CURSOR_PREFIX):]
    if not raw.startswith(_CURSOR_PREFIX) or not (tail.isascii() and tail.isdigit()):
        raise ContentValidationError("Invalid pagination cursor", "cursor")
    return MessageId(int(tail))


def group_reactions(pairs: Iterable[tuple[str, UUID]]) -> dict[str, list[UUID]]:
    """Group (emoji, user_id) pairs into emoji -> [user ids], preserving input order."""
    groups: dict[str, list[UUID]] = {}
    for emoji, user_id in pairs:
        groups.setdefault(emoji, []).append(user_id)
    return groups


def is_forward_transition(current: MessageStatus, new: MessageStatus) -> bool:
    """True if new does not move the message backwards in the delivery lifecycle.

    failed is reachable from any non-terminal state; terminal states only repeat.
    """
    current, new = MessageStatus(current), MessageStatus(new)
    if current in TERMINAL_STATUSES:
        return new == current
    if new == MessageStatus.FAILED:
        return True
    return _STATUS_ORDER[new] >= _STATUS_ORDER[current]
