"""Access Rules — principal-level role checks shared by the pin registry and user directory.

Invariants:
    - Only UserRole.ADMIN passes check_admin_role
    - Conversation-level roles are checked by the participant registry, not here
"""

from uuid import UUID

from parley.core.domain_types import UserRole
from parley.core.errors import ErrorContext, ForbiddenError


def check_admin_role(role: str | None, user_id: UUID) -> None:
    if role != UserRole.ADMIN.value:
        raise ForbiddenError(
            "Admin access required", ErrorContext(user_id=str(user_id)),
        )
