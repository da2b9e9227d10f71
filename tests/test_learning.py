import pytest
from sqlalchemy import select

from restobot.models.conversation import Conversation
from restobot.models.restaurant import Restaurant
from restobot.models.learning import (
    AILearningInteraction,
    AILearningPattern,
    InteractionType,
    ResponseStrategy,
    SentimentLabel,
)
from restobot.schemas.sentiment import SentimentResult
from restobot.services.learning import (
    LearningService,
    classify_interaction,
    pattern_key,
    upsert_learning_pattern,
)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Quero duas pizzas", InteractionType.ORDER),
        ("I'd like a large pepperoni", InteractionType.ORDER),
        ("Tive um problema com a entrega", InteractionType.COMPLAINT),
        ("Obrigado, estava ótimo!", InteractionType.COMPLIMENT),
        ("Thank you!", InteractionType.COMPLIMENT),
        ("Que horas vocês fecham?", InteractionType.QUESTION),
    ],
)
def test_classify_interaction(text, expected):
    assert classify_interaction(text) == expected


def test_order_keywords_win_over_complaints():
    assert classify_interaction("Problema no meu pedido") == InteractionType.ORDER


def test_pattern_key():
    negative = SentimentResult(sentiment_score=-0.5, sentiment_label=SentimentLabel.NEGATIVE)

    assert pattern_key(InteractionType.COMPLAINT, negative) == "complaint_negative"
    assert pattern_key(InteractionType.QUESTION, None) == "question_neutral"


async def test_upsert_creates_then_increments(db, restaurant):
    created = await upsert_learning_pattern(db, restaurant.id, "order_positive", {"v": 1})
    await db.commit()

    assert created.frequency_count == 1
    assert created.confidence_level == 0.5

    updated = await upsert_learning_pattern(db, restaurant.id, "order_positive", {"v": 2})
    await db.commit()

    assert updated.id == created.id
    assert updated.frequency_count == 2
    assert updated.pattern_data == {"v": 2}

    rows = (await db.execute(select(AILearningPattern))).scalars().all()
    assert len(rows) == 1


async def test_patterns_are_scoped_by_restaurant(db, restaurant):
    other = Restaurant(name="Sushi Ya", slug="sushi-ya")
    db.add(other)
    await db.flush()

    await upsert_learning_pattern(db, restaurant.id, "order_positive", {})
    await upsert_learning_pattern(db, other.id, "order_positive", {})
    await db.commit()

    rows = (await db.execute(select(AILearningPattern))).scalars().all()
    assert sorted(r.frequency_count for r in rows) == [1, 1]


async def test_record_interaction(db, agent):
    conversation = Conversation(
        agent_id=agent.id, restaurant_id=agent.restaurant_id, customer_phone="5511900000000"
    )
    db.add(conversation)
    await db.flush()
    sentiment = SentimentResult(
        sentiment_score=0.8,
        sentiment_label=SentimentLabel.POSITIVE,
        response_strategy=ResponseStrategy.PROMOTIONAL,
    )

    interaction = await LearningService(db).record_interaction(
        agent,
        conversation_id=conversation.id,
        customer_phone="5511900000000",
        user_message="Quero uma pizza de calabresa bem grande para o jantar de hoje à noite, por favor",
        ai_response="Claro!",
        sentiment=sentiment,
        context_data={"inventory_consulted": True},
    )
    await db.commit()

    assert interaction.interaction_type == InteractionType.ORDER
    assert interaction.learning_tags == ["order", "positive"]
    assert interaction.context_data == {
        "inventory_consulted": True,
        "sentiment_strategy": "promotional",
    }

    pattern = (await db.execute(select(AILearningPattern))).scalar_one()
    assert pattern.pattern_type == "order_positive"
    assert pattern.pattern_data["response_strategy"] == "promotional"
    assert len(pattern.pattern_data["common_phrases"][0]) == 50


async def test_no_pattern_without_conversation_summary(db, agent):
    agent.enable_conversation_summary = False
    conversation = Conversation(
        agent_id=agent.id, restaurant_id=agent.restaurant_id, customer_phone="5511900000000"
    )
    db.add(conversation)
    await db.flush()

    await LearningService(db).record_interaction(
        agent,
        conversation_id=conversation.id,
        customer_phone="5511900000000",
        user_message="Oi",
        ai_response="Olá!",
    )
    await db.commit()

    assert (await db.execute(select(AILearningInteraction))).scalar_one().learning_tags == ["question"]
    assert (await db.execute(select(AILearningPattern))).scalars().all() == []
