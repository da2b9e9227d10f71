import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from restobot.models import Conversation, ConversationStatus, Message, SenderType
from tests.conftest import AGENT_TOKEN, CUSTOMER_PHONE

BASE = "/api/admin/conversations"


def hours_ago(hours: float) -> datetime:
    return datetime.now(timezone.utc) - timedelta(hours=hours)


@pytest.fixture
async def conversation(db, agent) -> Conversation:
    conversation = Conversation(
        agent_id=agent.id,
        restaurant_id=agent.restaurant_id,
        customer_phone=CUSTOMER_PHONE,
        customer_name="Maria",
        started_at=hours_ago(2),
        last_message_at=hours_ago(1),
    )
    db.add(conversation)
    await db.flush()
    db.add_all([
        Message(
            conversation_id=conversation.id,
            sender_type=SenderType.CUSTOMER,
            content="Oi",
            created_at=hours_ago(1.5),
        ),
        Message(
            conversation_id=conversation.id,
            sender_type=SenderType.AGENT,
            content="Olá! Como posso ajudar?",
            created_at=hours_ago(1),
        ),
    ])
    await db.commit()
    return conversation


async def add_conversation(db, agent, phone, status=ConversationStatus.ACTIVE, **times):
    conversation = Conversation(
        agent_id=agent.id,
        restaurant_id=agent.restaurant_id,
        customer_phone=phone,
        status=status,
        **times,
    )
    db.add(conversation)
    await db.commit()
    return conversation


async def test_list_sorted_by_last_activity(client, db, agent, conversation):
    older = await add_conversation(
        db, agent, "5521911112222", started_at=hours_ago(30), last_message_at=hours_ago(20)
    )
    newest = await add_conversation(db, agent, "5531933334444", started_at=hours_ago(0.5))

    response = await client.get(BASE, params={"restaurant_id": str(agent.restaurant_id)})

    data = response.json()
    assert response.status_code == 200
    assert data["total"] == 3
    assert [c["id"] for c in data["conversations"]] == [
        str(newest.id), str(conversation.id), str(older.id)
    ]


async def test_list_filters_and_searches(client, db, agent, conversation):
    await add_conversation(db, agent, "5521911112222", status=ConversationStatus.ENDED)

    ended = await client.get(BASE, params={"status": "ended"})
    found = await client.get(BASE, params={"search": "98765"})
    page = await client.get(BASE, params={"page_size": 1, "page": 2})

    assert [c["customer_phone"] for c in ended.json()["conversations"]] == ["5521911112222"]
    assert [c["id"] for c in found.json()["conversations"]] == [str(conversation.id)]
    assert page.json()["total"] == 2
    assert len(page.json()["conversations"]) == 1


async def test_get_conversation(client, conversation):
    response = await client.get(f"{BASE}/{conversation.id}")
    missing = await client.get(f"{BASE}/{uuid.uuid4()}")

    assert response.json()["customer_name"] == "Maria"
    assert response.json()["status"] == "active"
    assert missing.status_code == 404


async def test_messages_oldest_first(client, conversation):
    response = await client.get(f"{BASE}/{conversation.id}/messages")
    limited = await client.get(f"{BASE}/{conversation.id}/messages", params={"limit": 1})

    assert [m["sender_type"] for m in response.json()] == ["customer", "agent"]
    assert [m["content"] for m in limited.json()] == ["Oi"]


async def test_handoff_assigns_operator(client, conversation):
    operator = uuid.uuid4()

    response = await client.post(
        f"{BASE}/{conversation.id}/status",
        json={"status": "human_handoff", "assigned_human_id": str(operator)},
    )

    assert response.status_code == 200
    assert response.json()["status"] == "human_handoff"
    assert response.json()["assigned_human_id"] == str(operator)


async def test_end_then_reopen_is_rejected(client, conversation, session_factory):
    ended = await client.post(f"{BASE}/{conversation.id}/status", json={"status": "ended"})
    reopen = await client.post(f"{BASE}/{conversation.id}/status", json={"status": "active"})

    assert ended.json()["ended_at"] is not None
    assert reopen.status_code == 409
    async with session_factory() as session:
        stored = await session.get(Conversation, conversation.id)
        assert stored.status == ConversationStatus.ENDED


async def test_status_unknown_conversation(client):
    response = await client.post(f"{BASE}/{uuid.uuid4()}/status", json={"status": "ended"})

    assert response.status_code == 404


async def test_human_reply_is_stored_and_relayed(client, conversation, fake_gateway, session_factory):
    response = await client.post(
        f"{BASE}/{conversation.id}/reply", json={"content": "Aqui é o Pedro, da cozinha."}
    )

    data = response.json()
    assert response.status_code == 200
    assert data["delivered"] is True
    assert data["message"]["sender_type"] == "human"
    [sent] = fake_gateway.requests
    assert sent.headers["apikey"] == AGENT_TOKEN
    assert fake_gateway.sent[0]["number"] == CUSTOMER_PHONE
    assert fake_gateway.sent[0]["textMessage"] == {"text": "Aqui é o Pedro, da cozinha."}

    async with session_factory() as session:
        result = await session.execute(
            select(Message).where(Message.sender_type == SenderType.HUMAN)
        )
        assert len(result.scalars().all()) == 1


async def test_human_reply_kept_when_gateway_fails(client, conversation, fake_gateway, session_factory):
    fake_gateway.fail = True

    response = await client.post(f"{BASE}/{conversation.id}/reply", json={"content": "Oi!"})

    assert response.status_code == 200
    assert response.json()["delivered"] is False
    async with session_factory() as session:
        result = await session.execute(
            select(Message).where(Message.sender_type == SenderType.HUMAN)
        )
        assert [m.content for m in result.scalars().all()] == ["Oi!"]


async def test_human_reply_to_ended_conversation(client, db, agent):
    ended = await add_conversation(db, agent, CUSTOMER_PHONE, status=ConversationStatus.ENDED)

    response = await client.post(f"{BASE}/{ended.id}/reply", json={"content": "Oi"})

    assert response.status_code == 409


async def test_human_reply_rejects_empty_content(client, conversation):
    response = await client.post(f"{BASE}/{conversation.id}/reply", json={"content": ""})

    assert response.status_code == 422


# =============================================================================
# Session expiry
# =============================================================================


@pytest.fixture
async def idle_conversations(db, agent, conversation):
    stale = await add_conversation(
        db, agent, "5521911112222", started_at=hours_ago(40), last_message_at=hours_ago(13)
    )
    never_replied = await add_conversation(db, agent, "5531933334444", started_at=hours_ago(24))
    await add_conversation(
        db, agent, "5541955556666", status=ConversationStatus.PAUSED, started_at=hours_ago(48)
    )
    return stale, never_replied


async def test_expire_dry_run_changes_nothing(client, idle_conversations, session_factory):
    stale, never_replied = idle_conversations

    response = await client.post(f"{BASE}/sessions/expire")

    data = response.json()
    assert data["dry_run"] is True
    assert data["would_expire"] == 2
    assert set(data["conversation_ids"]) == {str(stale.id), str(never_replied.id)}
    assert data["inactivity_hours"] == 12
    async with session_factory() as session:
        stored = await session.get(Conversation, stale.id)
        assert stored.status == ConversationStatus.ACTIVE


async def test_expire_ends_idle_active_conversations(
    client, conversation, idle_conversations, session_factory
):
    stale, never_replied = idle_conversations

    response = await client.post(f"{BASE}/sessions/expire", params={"dry_run": "false"})

    assert response.json()["expired"] == 2
    async with session_factory() as session:
        for conversation_id in (stale.id, never_replied.id):
            stored = await session.get(Conversation, conversation_id)
            assert stored.status == ConversationStatus.ENDED
            assert stored.ended_at is not None
        recent = await session.get(Conversation, conversation.id)
        assert recent.status == ConversationStatus.ACTIVE


async def test_expire_with_hours_override(client, conversation, idle_conversations):
    response = await client.post(f"{BASE}/sessions/expire", params={"hours": 0})

    assert response.json()["would_expire"] == 3
    assert response.json()["inactivity_hours"] == 0


async def test_session_stats(client, idle_conversations):
    response = await client.get(f"{BASE}/sessions/stats")

    data = response.json()
    assert data["config"] == {"inactivity_hours": 12}
    assert data["by_status"] == {"active": 3, "paused": 1}
    assert data["idle_active"] == 2
