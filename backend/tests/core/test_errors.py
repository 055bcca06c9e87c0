"""Error Hierarchy — verifies codes, HTTP statuses and the response envelope."""

import pytest

from parley.core.errors import (
    ConflictError, ContentValidationError, DatabaseError, ErrorContext,
    ForbiddenError, NotAParticipantError, NotAuthenticatedError, ParleyError,
    ResourceNotFoundError,
)


@pytest.mark.parametrize("error, code, status", [
    (NotAuthenticatedError(), "NOT_AUTHENTICATED", 401),
    (ForbiddenError("no"), "FORBIDDEN", 403),
    (NotAParticipantError("c-1"), "NOT_A_PARTICIPANT", 403),
    (ResourceNotFoundError("Message", "7"), "RESOURCE_NOT_FOUND", 404),
    (ContentValidationError("bad", "content"), "VALIDATION_ERROR", 400),
    (ConflictError("dup"), "CONFLICT", 409),
    (DatabaseError("down", "execute"), "DATABASE_ERROR", 503),
])
def test_codes_and_statuses(error, code, status):
    assert isinstance(error, ParleyError)
    assert error.code == code
    assert error.http_status == status


def test_not_a_participant_is_a_forbidden_error():
    error = NotAParticipantError("c-1")
    assert isinstance(error, ForbiddenError)
    assert error.context.conversation_id == "c-1"


def test_response_envelope():
    error = ResourceNotFoundError(
        "Message", "42", ErrorContext(conversation_id="c-9", message_id="42"),
    )
    body = error.to_response()["error"]
    assert body["code"] == "RESOURCE_NOT_FOUND"
    assert body["message"] == "Message '42' not found"
    assert body["category"] == "resource_not_found"
    assert body["severity"] == "error"
    assert body["context"] == {"conversation_id": "c-9", "message_id": "42"}
    assert "timestamp" in body


def test_envelope_never_exposes_debug_info():
    error = ConflictError("dup", ErrorContext(debug_info={"sql": "INSERT ..."}))
    assert "debug_info" not in str(error.to_response())
