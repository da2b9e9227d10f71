"""End-to-end tests for the WhatsApp webhook pipeline."""

import logging

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from restobot.models import (
    AILearningInteraction,
    AILearningPattern,
    Conversation,
    ConversationStatus,
    FallbackScenario,
    Message,
    MessageType,
    SenderType,
    SentimentAnalytics,
)
from restobot.schemas.evolution import UNSUPPORTED_MESSAGE_TEXT
from tests.conftest import AGENT_INSTANCE, AGENT_TOKEN, CUSTOMER_PHONE, make_payload

WEBHOOK = "/webhooks/whatsapp"


async def count(session_factory, model, *conditions) -> int:
    async with session_factory() as session:
        return await session.scalar(select(func.count()).select_from(model).where(*conditions))


async def fetch(session_factory, query) -> list:
    async with session_factory() as session:
        return list((await session.execute(query)).scalars().all())


# =============================================================================
# Verification
# =============================================================================


async def test_verification_echoes_challenge(client):
    response = await client.get(WEBHOOK, params={"token": "abc", "challenge": "xyz"})

    assert response.status_code == 200
    assert response.text == "xyz"
    assert response.headers["content-type"].startswith("text/plain")


async def test_verification_without_challenge_fails(client):
    response = await client.get(WEBHOOK, params={"token": "abc"})

    assert response.status_code == 400
    assert response.text == "Webhook verification failed"


# =============================================================================
# Ignorable events
# =============================================================================


async def test_event_without_message_is_ignored_without_writes(client, session_factory, agent):
    response = await client.post(WEBHOOK, json=make_payload(text=None))

    assert response.status_code == 200
    assert response.json() == {"status": "ignored"}
    assert await count(session_factory, Conversation) == 0
    assert await count(session_factory, Message) == 0


async def test_unreadable_body_is_ignored(client):
    response = await client.post(
        WEBHOOK, content=b"not json", headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 200
    assert response.json() == {"status": "ignored"}


async def test_own_outbound_echo_is_ignored(client, session_factory, agent):
    response = await client.post(WEBHOOK, json=make_payload(from_me=True))

    assert response.json() == {"status": "ignored"}
    assert await count(session_factory, Message) == 0


async def test_unknown_instance_returns_no_agent(client, session_factory, agent):
    response = await client.post(WEBHOOK, json=make_payload(instance="someone-else"))

    assert response.status_code == 200
    assert response.json() == {"status": "no_agent"}
    assert await count(session_factory, Conversation) == 0


async def test_inactive_agent_returns_no_agent(client, db, agent):
    agent.is_active = False
    await db.commit()

    response = await client.post(WEBHOOK, json=make_payload())

    assert response.json() == {"status": "no_agent"}


async def test_duplicate_delivery_is_processed_once(client, session_factory, fake_redis, agent):
    first = await client.post(WEBHOOK, json=make_payload(message_id="DUP-1"))
    second = await client.post(WEBHOOK, json=make_payload(message_id="DUP-1"))

    assert first.json() == {"status": "processed"}
    assert second.json() == {"status": "duplicate"}
    assert fake_redis.ttls["wa:msg:processed:DUP-1"] == 300
    assert await count(session_factory, Message, Message.sender_type == SenderType.CUSTOMER) == 1


# =============================================================================
# Happy path
# =============================================================================


async def test_first_message_opens_conversation_and_replies(
    client, session_factory, fake_llm, fake_gateway, agent, product
):
    response = await client.post(WEBHOOK, json=make_payload())

    assert response.status_code == 200
    assert response.json() == {"status": "processed"}

    conversations = await fetch(session_factory, select(Conversation))
    assert len(conversations) == 1
    conversation = conversations[0]
    assert conversation.status == ConversationStatus.ACTIVE
    assert conversation.customer_phone == CUSTOMER_PHONE
    assert conversation.customer_name == "Maria"
    assert conversation.restaurant_id == agent.restaurant_id
    assert conversation.last_message_at is not None

    messages = await fetch(session_factory, select(Message).order_by(Message.created_at))
    assert [m.sender_type for m in messages] == [SenderType.CUSTOMER, SenderType.AGENT]
    assert messages[0].content == "Oi, vocês têm pizza hoje?"
    assert messages[0].whatsapp_message_id == "MSG-1"
    assert messages[1].content == fake_llm.reply


async def test_completion_uses_agent_configuration_and_live_context(
    client, fake_llm, agent, product
):
    await client.post(WEBHOOK, json=make_payload())

    assert len(fake_llm.sentiment_requests) == 1
    assert len(fake_llm.completion_requests) == 1
    body = fake_llm.completion_requests[0]
    assert body["model"] == "gpt-4o-mini"
    assert body["max_completion_tokens"] == 300
    assert body["temperature"] == 0.5

    system, user = body["messages"]
    assert system["role"] == "system"
    assert user == {"role": "user", "content": "Oi, vocês têm pizza hoje?"}
    assert system["content"].startswith(agent.personality)
    assert "Pizza Margherita: 3 units (low_stock)" in system["content"]
    assert "Always offer the dessert of the day." in system["content"]
    assert "## Current sentiment" in system["content"]


async def test_reply_is_relayed_through_agent_gateway(client, fake_llm, fake_gateway, agent):
    await client.post(WEBHOOK, json=make_payload())

    assert len(fake_gateway.requests) == 1
    request = fake_gateway.requests[0]
    assert str(request.url) == f"https://evolution.test/message/sendText/{AGENT_INSTANCE}"
    assert request.headers["apikey"] == AGENT_TOKEN
    assert fake_gateway.sent[0] == {
        "number": CUSTOMER_PHONE,
        "textMessage": {"text": fake_llm.reply},
    }


async def test_second_message_reuses_active_conversation(client, session_factory, fake_llm, agent):
    await client.post(WEBHOOK, json=make_payload(message_id="M-1"))
    await client.post(WEBHOOK, json=make_payload(text="Quero uma pizza grande", message_id="M-2"))

    assert await count(session_factory, Conversation) == 1
    assert await count(session_factory, Message, Message.sender_type == SenderType.CUSTOMER) == 2

    # The first exchange is now history for the second prompt
    system_prompt = fake_llm.completion_requests[1]["messages"][0]["content"]
    assert "Customer: Oi, vocês têm pizza hoje?" in system_prompt
    assert f"Assistant: {fake_llm.reply}" in system_prompt
    assert "CURRENT CUSTOMER MESSAGE: Quero uma pizza grande" in system_prompt


async def test_learning_records_interactions_and_patterns(client, session_factory, agent):
    await client.post(WEBHOOK, json=make_payload(message_id="L-1"))
    await client.post(WEBHOOK, json=make_payload(text="E de sobremesa?", message_id="L-2"))

    interactions = await fetch(session_factory, select(AILearningInteraction))
    assert len(interactions) == 2
    assert interactions[0].learning_tags == ["question", "positive"]

    patterns = await fetch(session_factory, select(AILearningPattern))
    assert len(patterns) == 1
    assert patterns[0].pattern_type == "question_positive"
    assert patterns[0].frequency_count == 2
    assert patterns[0].pattern_data["common_phrases"] == ["E de sobremesa?"]


async def test_sentiment_is_recorded(client, session_factory, agent):
    await client.post(WEBHOOK, json=make_payload())

    rows = await fetch(session_factory, select(SentimentAnalytics))
    assert len(rows) == 1
    assert rows[0].sentiment_score == 0.6
    assert rows[0].escalation_triggered is False
    assert rows[0].customer_phone == CUSTOMER_PHONE


async def test_unsupported_content_is_stored_with_placeholder(client, session_factory, agent):
    payload = make_payload(text=None)
    payload["data"]["message"] = {"audioMessage": {"seconds": 4}}

    response = await client.post(WEBHOOK, json=payload)

    assert response.json() == {"status": "processed"}
    messages = await fetch(
        session_factory, select(Message).where(Message.sender_type == SenderType.CUSTOMER)
    )
    assert messages[0].content == UNSUPPORTED_MESSAGE_TEXT
    assert messages[0].message_type == MessageType.AUDIO


# =============================================================================
# Escalation
# =============================================================================


async def test_negative_sentiment_hands_off_without_completion(
    client, session_factory, fake_llm, fake_gateway, fallback_scenario
):
    fake_llm.sentiment = {
        "sentiment_score": -0.8,
        "sentiment_label": "negative",
        "confidence_score": 0.95,
        "emotional_indicators": {"anger": 0.9},
        "response_strategy": "empathetic",
    }

    response = await client.post(WEBHOOK, json=make_payload(text="Pedido atrasado, que absurdo!"))

    assert response.json() == {"status": "fallback_triggered", "scenario": "angry_customer"}
    assert fake_llm.completion_requests == []

    conversation = (await fetch(session_factory, select(Conversation)))[0]
    assert conversation.status == ConversationStatus.HUMAN_HANDOFF

    agent_messages = await fetch(
        session_factory, select(Message).where(Message.sender_type == SenderType.AGENT)
    )
    assert [m.content for m in agent_messages] == [fallback_scenario.custom_message]
    assert fake_gateway.sent[0]["textMessage"]["text"] == fallback_scenario.custom_message

    sentiment = (await fetch(session_factory, select(SentimentAnalytics)))[0]
    assert sentiment.escalation_triggered is True


async def test_score_above_threshold_does_not_escalate(client, fake_llm, fallback_scenario):
    fake_llm.sentiment = {"sentiment_score": -0.3, "sentiment_label": "negative"}

    response = await client.post(WEBHOOK, json=make_payload())

    assert response.json() == {"status": "processed"}
    assert len(fake_llm.completion_requests) == 1


async def test_manual_scenario_never_triggers(client, db, fake_llm, fallback_scenario):
    fallback_scenario.auto_trigger = False
    await db.commit()
    fake_llm.sentiment = {"sentiment_score": -1.0, "sentiment_label": "negative"}

    response = await client.post(WEBHOOK, json=make_payload())

    assert response.json() == {"status": "processed"}


async def add_scenario(db, agent, name: str, threshold: float, priority: int) -> FallbackScenario:
    scenario = FallbackScenario(
        restaurant_id=agent.restaurant_id,
        agent_id=agent.id,
        scenario_name=name,
        trigger_conditions={"sentiment_threshold": threshold},
        priority_level=priority,
    )
    db.add(scenario)
    await db.commit()
    return scenario


async def test_positive_message_never_escalates_despite_loose_threshold(client, db, fake_llm, agent):
    await add_scenario(db, agent, "too_eager", threshold=0.3, priority=10)
    fake_llm.sentiment = {"sentiment_score": 0.1, "sentiment_label": "positive"}

    response = await client.post(WEBHOOK, json=make_payload(text="Obrigado, tudo ótimo!"))

    assert response.json() == {"status": "processed"}
    assert len(fake_llm.completion_requests) == 1


async def test_mildly_negative_message_stays_with_the_bot(client, db, fake_llm, agent):
    await add_scenario(db, agent, "complaint", threshold=-0.3, priority=10)
    fake_llm.sentiment = {"sentiment_score": -0.4, "sentiment_label": "negative"}

    response = await client.post(WEBHOOK, json=make_payload())

    assert response.json() == {"status": "processed"}


async def test_zero_threshold_is_treated_as_unset(client, db, fake_llm, agent):
    await add_scenario(db, agent, "unset", threshold=0, priority=10)
    fake_llm.sentiment = {"sentiment_score": -0.9, "sentiment_label": "negative"}

    response = await client.post(WEBHOOK, json=make_payload())

    assert response.json() == {"status": "processed"}


async def test_highest_priority_match_wins_over_closest_threshold(client, db, fake_llm, agent):
    await add_scenario(db, agent, "complaint", threshold=-0.3, priority=10)
    await add_scenario(db, agent, "furious", threshold=-0.9, priority=1)
    fake_llm.sentiment = {"sentiment_score": -0.95, "sentiment_label": "negative"}

    response = await client.post(WEBHOOK, json=make_payload())

    assert response.json() == {"status": "fallback_triggered", "scenario": "complaint"}


async def test_equal_priority_scenarios_resolve_by_name(client, db, fake_llm, agent):
    await add_scenario(db, agent, "late_order", threshold=-0.6, priority=5)
    await add_scenario(db, agent, "cold_food", threshold=-0.6, priority=5)
    fake_llm.sentiment = {"sentiment_score": -0.8, "sentiment_label": "negative"}

    response = await client.post(WEBHOOK, json=make_payload())

    assert response.json() == {"status": "fallback_triggered", "scenario": "cold_food"}


async def test_message_after_handoff_opens_new_conversation_with_warning(
    client, session_factory, fake_llm, fallback_scenario, caplog
):
    fake_llm.sentiment = {"sentiment_score": -0.9, "sentiment_label": "negative"}
    await client.post(WEBHOOK, json=make_payload(message_id="H-1"))
    fake_llm.sentiment = {"sentiment_score": 0.0, "sentiment_label": "neutral"}

    with caplog.at_level(logging.WARNING, logger="restobot.services.pipeline"):
        response = await client.post(WEBHOOK, json=make_payload(message_id="H-2"))

    assert response.json() == {"status": "processed"}
    assert len(fake_llm.completion_requests) == 1
    statuses = sorted(c.status.value for c in await fetch(session_factory, select(Conversation)))
    assert statuses == ["active", "human_handoff"]
    assert "awaits a human" in caplog.text


# =============================================================================
# Failure policy
# =============================================================================


async def test_gateway_failure_keeps_assistant_message(
    client, session_factory, fake_llm, fake_gateway, agent
):
    fake_gateway.fail = True

    response = await client.post(WEBHOOK, json=make_payload())

    assert response.status_code == 200
    assert response.json() == {"status": "processed"}
    assert len(fake_gateway.requests) == 1
    agent_messages = await fetch(
        session_factory, select(Message).where(Message.sender_type == SenderType.AGENT)
    )
    assert [m.content for m in agent_messages] == [fake_llm.reply]


async def test_sentiment_failure_is_skipped(client, session_factory, fake_llm, fallback_scenario):
    fake_llm.sentiment_status = 500

    response = await client.post(WEBHOOK, json=make_payload())

    assert response.json() == {"status": "processed"}
    assert await count(session_factory, SentimentAnalytics) == 0
    assert await count(session_factory, Message, Message.sender_type == SenderType.AGENT) == 1


async def test_completion_failure_returns_500_but_keeps_inbound(
    client, session_factory, fake_llm, fake_gateway, agent
):
    fake_llm.completion_status = 500

    response = await client.post(WEBHOOK, json=make_payload())

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
    assert await count(session_factory, Message, Message.sender_type == SenderType.CUSTOMER) == 1
    assert await count(session_factory, Message, Message.sender_type == SenderType.AGENT) == 0
    assert fake_gateway.requests == []


@pytest.mark.parametrize("llm_enabled", [False])
async def test_without_llm_inbound_is_stored_unanswered(
    client, session_factory, fake_llm, fake_gateway, agent
):
    response = await client.post(WEBHOOK, json=make_payload())

    assert response.json() == {"status": "processed"}
    assert fake_llm.requests == []
    assert fake_gateway.requests == []
    assert await count(session_factory, Message) == 1


async def test_agent_without_gateway_credentials_is_not_relayed(
    client, db, session_factory, fake_gateway, agent
):
    agent.evolution_api_token = None
    await db.commit()

    response = await client.post(WEBHOOK, json=make_payload())

    assert response.json() == {"status": "processed"}
    assert fake_gateway.requests == []
    assert await count(session_factory, Message, Message.sender_type == SenderType.AGENT) == 1


# =============================================================================
# Conversation uniqueness
# =============================================================================


async def test_only_one_active_conversation_per_agent_and_phone(db, agent):
    def conversation(status: ConversationStatus) -> Conversation:
        return Conversation(
            agent_id=agent.id,
            restaurant_id=agent.restaurant_id,
            customer_phone=CUSTOMER_PHONE,
            status=status,
        )

    db.add_all([conversation(ConversationStatus.ENDED), conversation(ConversationStatus.ACTIVE)])
    await db.commit()

    db.add(conversation(ConversationStatus.ACTIVE))
    with pytest.raises(IntegrityError):
        await db.commit()
    await db.rollback()


async def test_message_after_ended_conversation_opens_new_one(client, session_factory, agent):
    await client.post(WEBHOOK, json=make_payload(message_id="E-1"))
    async with session_factory() as session:
        conversation = (await session.execute(select(Conversation))).scalar_one()
        conversation.status = ConversationStatus.ENDED
        await session.commit()

    await client.post(WEBHOOK, json=make_payload(message_id="E-2"))

    statuses = sorted(c.status.value for c in await fetch(session_factory, select(Conversation)))
    assert statuses == ["active", "ended"]
