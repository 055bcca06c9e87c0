"""Conversation routes — create, list, read, participants, read watermark, identity.

Invariants:
    - Creator is admin, listed users are members, duplicates collapse
    - Unknown participant ids fail before anything is written
    - Only participants can read a conversation; only admins can add participants
    - Requests without a resolvable X-User-Id are 401
"""

import uuid

from sqlalchemy import func, select

from parley.models.conversation import Conversation
from tests.services.factories import auth_headers, create_conversation, send_text


# ─── Identity ───────────────────────────────────────────────────

async def test_missing_principal_is_401(client, users):
    res = await client.get("/api/v1/conversations")
    assert res.status_code == 401
    assert res.json()["error"]["code"] == "NOT_AUTHENTICATED"


async def test_malformed_principal_is_401(client, users):
    res = await client.get(
        "/api/v1/conversations", headers={"X-User-Id": "not-a-uuid"},
    )
    assert res.status_code == 401


async def test_unknown_principal_is_401(client, users):
    res = await client.get(
        "/api/v1/conversations", headers=auth_headers(uuid.uuid4()),
    )
    assert res.status_code == 401


# ─── Create ─────────────────────────────────────────────────────

async def test_create_assigns_admin_and_members(client, users):
    conversation_id = await create_conversation(
        client, users["alice"], [users["bob"], users["alice"], users["bob"]],
        name="Team",
    )
    res = await client.get(
        f"/api/v1/conversations/{conversation_id}",
        headers=auth_headers(users["alice"]),
    )
    assert res.status_code == 200
    body = res.json()
    roles = {p["user"]["id"]: p["role"] for p in body["participants"]}
    assert roles == {
        str(users["alice"]): "admin",
        str(users["bob"]): "member",
    }
    assert body["name"] == "Team"
    assert body["is_encrypted"] is True


async def test_create_with_unknown_participant_writes_nothing(
    client, users, test_db,
):
    res = await client.post(
        "/api/v1/conversations",
        json={"kind": "group", "participant_ids": [str(uuid.uuid4())]},
        headers=auth_headers(users["alice"]),
    )
    assert res.status_code == 404
    count = await test_db.scalar(select(func.count(Conversation.id)))
    assert count == 0


async def test_create_on_reserved_topic_is_rejected(client, users):
    res = await client.post(
        "/api/v1/conversations",
        json={"kind": "group", "external_topic": "public_global"},
        headers=auth_headers(users["alice"]),
    )
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_create_with_taken_topic_conflicts(client, users):
    await create_conversation(client, users["alice"], external_topic="room-1")
    res = await client.post(
        "/api/v1/conversations",
        json={"kind": "group", "external_topic": "room-1"},
        headers=auth_headers(users["bob"]),
    )
    assert res.status_code == 409


async def test_create_with_invalid_kind_is_400(client, users):
    res = await client.post(
        "/api/v1/conversations",
        json={"kind": "broadcast"},
        headers=auth_headers(users["alice"]),
    )
    assert res.status_code == 400
    assert res.json()["error"]["details"]


# ─── Read ───────────────────────────────────────────────────────

async def test_non_participant_cannot_read(client, users):
    conversation_id = await create_conversation(client, users["alice"])
    res = await client.get(
        f"/api/v1/conversations/{conversation_id}",
        headers=auth_headers(users["carol"]),
    )
    assert res.status_code == 403


async def test_list_orders_by_latest_activity(client, users):
    first = await create_conversation(client, users["alice"], name="first")
    second = await create_conversation(client, users["alice"], name="second")
    await send_text(client, first, users["alice"], "bump")

    res = await client.get(
        "/api/v1/conversations", headers=auth_headers(users["alice"]),
    )
    assert res.status_code == 200
    assert [c["id"] for c in res.json()] == [first, second]
    assert res.json()[0]["last_message"] == "bump"


async def test_list_only_contains_own_conversations(client, users):
    await create_conversation(client, users["alice"])
    res = await client.get(
        "/api/v1/conversations", headers=auth_headers(users["carol"]),
    )
    assert res.json() == []


async def test_unread_count_tracks_read_watermark(client, users):
    conversation_id = await create_conversation(
        client, users["alice"], [users["bob"]],
    )
    await send_text(client, conversation_id, users["bob"], "one")
    await send_text(client, conversation_id, users["bob"], "two")
    await send_text(client, conversation_id, users["alice"], "mine")

    res = await client.get(
        "/api/v1/conversations", headers=auth_headers(users["alice"]),
    )
    assert res.json()[0]["unread_count"] == 2

    res = await client.post(
        f"/api/v1/conversations/{conversation_id}/read",
        headers=auth_headers(users["alice"]),
    )
    assert res.status_code == 200
    assert res.json()["conversation_id"] == conversation_id

    res = await client.get(
        "/api/v1/conversations", headers=auth_headers(users["alice"]),
    )
    assert res.json()[0]["unread_count"] == 0


async def test_mark_read_by_non_participant(client, users):
    conversation_id = await create_conversation(client, users["alice"])
    res = await client.post(
        f"/api/v1/conversations/{conversation_id}/read",
        headers=auth_headers(users["carol"]),
    )
    assert res.status_code == 403
    assert res.json()["error"]["code"] == "NOT_A_PARTICIPANT"


# ─── Participants ───────────────────────────────────────────────

async def test_admin_adds_participant(client, users):
    conversation_id = await create_conversation(client, users["alice"])
    res = await client.post(
        f"/api/v1/conversations/{conversation_id}/participants",
        json={"user_id": str(users["carol"])},
        headers=auth_headers(users["alice"]),
    )
    assert res.status_code == 201
    ids = {p["user"]["id"] for p in res.json()["participants"]}
    assert str(users["carol"]) in ids


async def test_member_cannot_add_participant(client, users):
    conversation_id = await create_conversation(
        client, users["alice"], [users["bob"]],
    )
    res = await client.post(
        f"/api/v1/conversations/{conversation_id}/participants",
        json={"user_id": str(users["carol"])},
        headers=auth_headers(users["bob"]),
    )
    assert res.status_code == 403


async def test_duplicate_participant_conflicts(client, users):
    conversation_id = await create_conversation(
        client, users["alice"], [users["bob"]],
    )
    res = await client.post(
        f"/api/v1/conversations/{conversation_id}/participants",
        json={"user_id": str(users["bob"])},
        headers=auth_headers(users["alice"]),
    )
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "CONFLICT"


async def test_add_unknown_user_is_404(client, users):
    conversation_id = await create_conversation(client, users["alice"])
    res = await client.post(
        f"/api/v1/conversations/{conversation_id}/participants",
        json={"user_id": str(uuid.uuid4())},
        headers=auth_headers(users["alice"]),
    )
    assert res.status_code == 404


# ─── Health ─────────────────────────────────────────────────────

async def test_liveness(client):
    res = await client.get("/api/v1/health/")
    assert res.status_code == 200
    assert res.json()["status"] == "healthy"


async def test_readiness_with_database(client):
    res = await client.get("/api/v1/health/ready")
    assert res.status_code == 200
    assert res.json()["checks"]["database"] == "healthy"
