"""Conversation Rules — pure checks applied before a conversation is written.

Invariants:
    - The creator is never inserted twice: member lists drop the creator id
    - Member ids keep first-seen order after deduplication
    - The reserved singleton topic is only ever written by singleton provisioning
"""

from typing import Iterable
from uuid import UUID

from parley.core.errors import ContentValidationError


def normalize_member_ids(creator_id: UUID, member_ids: Iterable[UUID]) -> list[UUID]:
    seen: set[UUID] = {creator_id}
    members: list[UUID] = []
    for member_id in member_ids:
        if member_id in seen:
            continue
        seen.add(member_id)
        members.append(member_id)
    return members


def check_external_topic(topic: str | None, reserved_topic: str) -> None:
    """Reject explicit creation of a conversation on the reserved singleton topic."""
    if topic is not None and topic == reserved_topic:
        raise ContentValidationError(
            f"Topic '{reserved_topic}' is reserved for the public conversation",
            "external_topic",
        )
