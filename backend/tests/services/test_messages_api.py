"""Message routes — send, page, edit, soft-delete, status.

Invariants:
    - Only participants send or read; only the sender edits, deletes or sets status
    - Pages are chronological, at most clamp(limit) long, and chain via next_cursor
    - Soft-deleted messages are hidden unless include_deleted is set
    - Conversation summary follows sends, edits and deletes
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from parley.models.conversation import Conversation
from parley.models.message import Message
from parley.services import message_store
from tests.services.factories import auth_headers, create_conversation, send_text


@pytest.fixture
async def room(client, users):
    """Conversation with alice (admin) and bob (member)."""
    return await create_conversation(client, users["alice"], [users["bob"]])


async def _page(client, conversation_id, user_id, **params):
    res = await client.get(
        f"/api/v1/conversations/{conversation_id}/messages",
        params=params, headers=auth_headers(user_id),
    )
    assert res.status_code == 200, res.text
    return res.json()


async def _summary(client, conversation_id, user_id):
    res = await client.get(
        f"/api/v1/conversations/{conversation_id}",
        headers=auth_headers(user_id),
    )
    return res.json()["last_message"]


async def _stored_state(test_db, conversation_id):
    """(message count, last_message, last_message_at) straight from the tables."""
    cid = uuid.UUID(conversation_id)
    count = await test_db.scalar(
        select(func.count(Message.id)).where(Message.conversation_id == cid),
    )
    summary = (await test_db.execute(
        select(Conversation.last_message, Conversation.last_message_at)
        .where(Conversation.id == cid),
    )).one()
    return count, summary.last_message, summary.last_message_at


class _FiveSecondsAgo(datetime):
    @classmethod
    def now(cls, tz=None):
        return datetime.now(tz) - timedelta(seconds=5)


async def _seed_messages(test_db, conversation_id, sender_id, count):
    start = datetime.now(timezone.utc)
    test_db.add_all([
        Message(
            conversation_id=uuid.UUID(conversation_id),
            sender_id=sender_id,
            kind="text",
            content=f"m{i}",
            status="sent",
            created_at=start + timedelta(milliseconds=i),
        )
        for i in range(count)
    ])
    await test_db.commit()


# ─── Send ───────────────────────────────────────────────────────

async def test_send_text_and_read_back(client, users, room):
    message_id = await send_text(client, room, users["alice"], "hello bob")
    page = await _page(client, room, users["bob"])
    [message] = page["messages"]
    assert message["id"] == message_id
    assert message["content"] == "hello bob"
    assert message["status"] == "sent"
    assert message["sender"]["display_name"] == "Alice"
    assert page["next_cursor"] is None


async def test_send_blank_text_is_400(client, users, room, test_db):
    await send_text(client, room, users["alice"], "before")
    before = await _stored_state(test_db, room)

    res = await client.post(
        f"/api/v1/conversations/{room}/messages",
        json={"kind": "text", "content": "   "},
        headers=auth_headers(users["alice"]),
    )
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"
    assert await _stored_state(test_db, room) == before


async def test_non_participant_cannot_send(client, users, room, test_db):
    before = await _stored_state(test_db, room)

    res = await client.post(
        f"/api/v1/conversations/{room}/messages",
        json={"kind": "text", "content": "hi"},
        headers=auth_headers(users["carol"]),
    )
    assert res.status_code == 403
    assert await _stored_state(test_db, room) == before
    assert before[0] == 0


async def test_late_commit_of_older_message_keeps_newer_summary(
    client, users, room, monkeypatch,
):
    """A message stamped earlier but committed later must not take over the summary."""
    await send_text(client, room, users["bob"], "newer B")
    monkeypatch.setattr(message_store, "datetime", _FiveSecondsAgo)
    await send_text(client, room, users["alice"], "older A")

    page = await _page(client, room, users["alice"])
    assert [m["content"] for m in page["messages"]] == ["older A", "newer B"]
    assert await _summary(client, room, users["alice"]) == "newer B"


async def test_non_participant_cannot_list(client, users, room):
    res = await client.get(
        f"/api/v1/conversations/{room}/messages",
        headers=auth_headers(users["carol"]),
    )
    assert res.status_code == 403


async def test_send_media_sets_summary_label(client, users, room):
    res = await client.post(
        f"/api/v1/conversations/{room}/messages",
        json={"kind": "image", "media_cid": "bafyimg", "media_key": "k1"},
        headers=auth_headers(users["alice"]),
    )
    assert res.status_code == 201
    assert await _summary(client, room, users["alice"]) == "Sent image"

    [message] = (await _page(client, room, users["bob"]))["messages"]
    assert message["media"] == {"cid": "bafyimg", "key": "k1"}
    assert message["payment"] is None


async def test_send_payment(client, users, room):
    res = await client.post(
        f"/api/v1/conversations/{room}/messages",
        json={
            "kind": "payment", "token_address": "0xT",
            "token_amount": "10", "transaction_hash": "0xH",
        },
        headers=auth_headers(users["bob"]),
    )
    assert res.status_code == 201
    [message] = (await _page(client, room, users["alice"]))["messages"]
    assert message["payment"]["transaction_hash"] == "0xH"
    assert await _summary(client, room, users["alice"]) == "Sent payment"


async def test_text_summary_is_truncated(client, users, room):
    await send_text(client, room, users["alice"], "y" * 80)
    assert await _summary(client, room, users["alice"]) == "y" * 60


async def test_reply_to_message_in_other_conversation_is_404(client, users, room):
    other = await create_conversation(client, users["alice"])
    foreign_id = await send_text(client, other, users["alice"], "elsewhere")
    res = await client.post(
        f"/api/v1/conversations/{room}/messages",
        json={"kind": "text", "content": "re", "reply_to_id": foreign_id},
        headers=auth_headers(users["alice"]),
    )
    assert res.status_code == 404


async def test_reply_within_conversation(client, users, room):
    parent = await send_text(client, room, users["alice"], "question")
    res = await client.post(
        f"/api/v1/conversations/{room}/messages",
        json={"kind": "text", "content": "answer", "reply_to_id": parent},
        headers=auth_headers(users["bob"]),
    )
    assert res.status_code == 201
    page = await _page(client, room, users["alice"])
    assert page["messages"][-1]["reply_to_id"] == parent


# ─── Paging ─────────────────────────────────────────────────────

async def test_cursor_walks_back_through_history(client, users, room):
    ids = [
        await send_text(client, room, users["alice"], f"n{i}")
        for i in range(5)
    ]
    first = await _page(client, room, users["bob"], limit=2)
    assert [m["id"] for m in first["messages"]] == ids[3:]
    assert first["next_cursor"]

    second = await _page(
        client, room, users["bob"], limit=2, cursor=first["next_cursor"],
    )
    assert [m["id"] for m in second["messages"]] == ids[1:3]

    third = await _page(
        client, room, users["bob"], limit=2, cursor=second["next_cursor"],
    )
    assert [m["id"] for m in third["messages"]] == ids[:1]
    assert third["next_cursor"] is None


async def test_limit_zero_is_clamped_to_one(client, users, room):
    await send_text(client, room, users["alice"], "a")
    await send_text(client, room, users["alice"], "b")
    page = await _page(client, room, users["alice"], limit=0)
    assert [m["content"] for m in page["messages"]] == ["b"]
    assert page["next_cursor"] is not None


async def test_default_and_maximum_page_sizes(client, users, room, test_db):
    await _seed_messages(test_db, room, users["alice"], 205)

    default_page = await _page(client, room, users["alice"])
    assert len(default_page["messages"]) == 50
    assert default_page["messages"][-1]["content"] == "m204"

    big_page = await _page(client, room, users["alice"], limit=1000)
    assert len(big_page["messages"]) == 200
    assert big_page["messages"][0]["content"] == "m5"
    assert big_page["next_cursor"] is not None


async def test_malformed_cursor_is_400(client, users, room):
    res = await client.get(
        f"/api/v1/conversations/{room}/messages",
        params={"cursor": "garbage"},
        headers=auth_headers(users["alice"]),
    )
    assert res.status_code == 400


async def test_cursor_from_other_conversation_is_400(client, users, room):
    other = await create_conversation(client, users["alice"])
    for i in range(3):
        await send_text(client, other, users["alice"], f"o{i}")
    foreign = await _page(client, other, users["alice"], limit=1)

    res = await client.get(
        f"/api/v1/conversations/{room}/messages",
        params={"cursor": foreign["next_cursor"]},
        headers=auth_headers(users["alice"]),
    )
    assert res.status_code == 400


# ─── Edit / delete ──────────────────────────────────────────────

async def test_sender_edits_message(client, users, room):
    message_id = await send_text(client, room, users["alice"], "draft")
    res = await client.patch(
        f"/api/v1/messages/{message_id}",
        json={"content": "final"},
        headers=auth_headers(users["alice"]),
    )
    assert res.status_code == 204
    [message] = (await _page(client, room, users["bob"]))["messages"]
    assert message["content"] == "final"
    assert message["edited_at"] is not None
    assert await _summary(client, room, users["alice"]) == "final"


async def test_non_sender_cannot_edit(client, users, room):
    message_id = await send_text(client, room, users["alice"], "mine")
    res = await client.patch(
        f"/api/v1/messages/{message_id}",
        json={"content": "hijack"},
        headers=auth_headers(users["bob"]),
    )
    assert res.status_code == 403
    assert res.json()["error"]["message"] == "Can only edit your own messages"


async def test_edit_to_blank_is_400(client, users, room):
    message_id = await send_text(client, room, users["alice"], "text")
    res = await client.patch(
        f"/api/v1/messages/{message_id}",
        json={"content": ""},
        headers=auth_headers(users["alice"]),
    )
    assert res.status_code == 400


async def test_edit_missing_message_is_404(client, users):
    res = await client.patch(
        "/api/v1/messages/999999",
        json={"content": "x"},
        headers=auth_headers(users["alice"]),
    )
    assert res.status_code == 404


async def test_soft_delete_hides_message_but_keeps_it(client, users, room):
    await send_text(client, room, users["alice"], "keep")
    doomed = await send_text(client, room, users["alice"], "oops")

    res = await client.delete(
        f"/api/v1/messages/{doomed}", headers=auth_headers(users["alice"]),
    )
    assert res.status_code == 204

    visible = await _page(client, room, users["bob"])
    assert [m["content"] for m in visible["messages"]] == ["keep"]

    everything = await _page(client, room, users["bob"], include_deleted=True)
    deleted = everything["messages"][-1]
    assert deleted["id"] == doomed
    assert deleted["deleted_at"] is not None
    assert deleted["content"] == "oops"

    assert await _summary(client, room, users["alice"]) == "keep"


async def test_deleting_only_message_clears_preview(client, users, room):
    message_id = await send_text(client, room, users["alice"], "solo")
    await client.delete(
        f"/api/v1/messages/{message_id}", headers=auth_headers(users["alice"]),
    )
    assert await _summary(client, room, users["alice"]) is None


async def test_non_sender_cannot_delete(client, users, room):
    message_id = await send_text(client, room, users["alice"], "mine")
    res = await client.delete(
        f"/api/v1/messages/{message_id}", headers=auth_headers(users["bob"]),
    )
    assert res.status_code == 403


# ─── Status ─────────────────────────────────────────────────────

async def test_sender_sets_status(client, users, room):
    message_id = await send_text(client, room, users["alice"], "ping")
    res = await client.put(
        f"/api/v1/messages/{message_id}/status",
        json={"status": "delivered"},
        headers=auth_headers(users["alice"]),
    )
    assert res.status_code == 204
    [message] = (await _page(client, room, users["alice"]))["messages"]
    assert message["status"] == "delivered"


async def test_backward_status_is_applied(client, users, room):
    message_id = await send_text(client, room, users["alice"], "ping")
    res = await client.put(
        f"/api/v1/messages/{message_id}/status",
        json={"status": "sending"},
        headers=auth_headers(users["alice"]),
    )
    assert res.status_code == 204
    [message] = (await _page(client, room, users["alice"]))["messages"]
    assert message["status"] == "sending"


async def test_unknown_status_is_400(client, users, room):
    message_id = await send_text(client, room, users["alice"], "ping")
    res = await client.put(
        f"/api/v1/messages/{message_id}/status",
        json={"status": "read"},
        headers=auth_headers(users["alice"]),
    )
    assert res.status_code == 400


async def test_non_sender_cannot_set_status(client, users, room):
    message_id = await send_text(client, room, users["alice"], "ping")
    res = await client.put(
        f"/api/v1/messages/{message_id}/status",
        json={"status": "delivered"},
        headers=auth_headers(users["bob"]),
    )
    assert res.status_code == 403
