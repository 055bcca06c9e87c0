"""Error Hierarchy — typed, categorized exceptions for every Parley failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Authorization and validation errors are 4xx; storage errors are 503
    - to_response() produces the REST envelope used by the global handler
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with ParleyError base: one FastAPI handler renders all of them
    - NotAParticipantError subclasses ForbiddenError: callers that only care
      about "access denied" catch the parent
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    VALIDATION = "validation"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"
    DATABASE = "database"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    conversation_id: str | None = None
    message_id: str | None = None
    user_id: str | None = None
    debug_info: dict[str, Any] | None = None


class ParleyError(Exception):
    """Base exception for all Parley errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "conversation_id": self.context.conversation_id,
                    "message_id": self.context.message_id,
                },
            }
        }


# ─── Access Errors (401/403) ────────────────────────────────────

class NotAuthenticatedError(ParleyError):
    """No resolvable principal for the request."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Not authenticated",
            "NOT_AUTHENTICATED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
        )


class ForbiddenError(ParleyError):
    """Principal lacks the participancy or role the operation requires."""
    def __init__(
        self, message: str, context: ErrorContext | None = None,
        code: str = "FORBIDDEN",
    ):
        super().__init__(
            message, code, ErrorCategory.AUTHORIZATION,
            ErrorSeverity.WARNING, context, 403,
        )


class NotAParticipantError(ForbiddenError):
    """Caller holds no participant record in the conversation."""
    def __init__(self, conversation_id: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.conversation_id = conversation_id
        super().__init__(
            "Not a participant in this conversation", ctx,
            code="NOT_A_PARTICIPANT",
        )


# ─── Domain Errors (400/404/409) ────────────────────────────────

class ContentValidationError(ParleyError):
    """Request content failed a domain rule (e.g. blank text message)."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


class ResourceNotFoundError(ParleyError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.resource_type = resource_type


class ConflictError(ParleyError):
    """Write collided with an existing unique record."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(ParleyError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
