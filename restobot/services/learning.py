"""Interaction tagging and learned-pattern aggregation.

Every answered message is tagged by keyword (order, complaint, compliment,
question) and stored as an :class:`AILearningInteraction`. When the agent has
conversation summaries enabled, the tag and sentiment are also folded into a
per-restaurant :class:`AILearningPattern` whose frequency ranks it for future
prompts.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from restobot.models.agent import Agent
from restobot.models.learning import AILearningInteraction, AILearningPattern, InteractionType
from restobot.schemas.sentiment import SentimentResult

logger = logging.getLogger(__name__)

NEW_PATTERN_CONFIDENCE = 0.5
PHRASE_SAMPLE_LENGTH = 50

# Checked in order; the first group with a hit wins
INTERACTION_KEYWORDS: tuple[tuple[InteractionType, tuple[str, ...]], ...] = (
    (InteractionType.ORDER, ("pedido", "quero", "order", "i want", "i'd like")),
    (InteractionType.COMPLAINT, ("problema", "reclamação", "reclamacao", "problem", "complaint")),
    (InteractionType.COMPLIMENT, ("obrigado", "obrigada", "ótimo", "otimo", "thank", "great")),
)


def classify_interaction(text: str) -> InteractionType:
    """Tag a message by keyword substring. Falls back to ``question``."""
    lowered = text.lower()
    for interaction_type, keywords in INTERACTION_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return interaction_type
    return InteractionType.QUESTION


def pattern_key(interaction_type: InteractionType, sentiment: SentimentResult | None) -> str:
    label = sentiment.sentiment_label.value if sentiment else "neutral"
    return f"{interaction_type.value}_{label}"


async def upsert_learning_pattern(
    db: AsyncSession,
    restaurant_id: uuid.UUID,
    pattern_type: str,
    pattern_data: dict[str, Any],
) -> AILearningPattern:
    """Bump an existing pattern or create it.

    An existing ``(restaurant_id, pattern_type)`` row gets ``frequency_count + 1``,
    its ``pattern_data`` replaced and ``last_occurrence`` set to now. A new row
    starts at frequency 1 with confidence 0.5.
    """
    now = datetime.now(timezone.utc)
    query = select(AILearningPattern).where(
        AILearningPattern.restaurant_id == restaurant_id,
        AILearningPattern.pattern_type == pattern_type,
    )
    pattern = (await db.execute(query)).scalar_one_or_none()

    if pattern is None:
        pattern = AILearningPattern(
            restaurant_id=restaurant_id,
            pattern_type=pattern_type,
            pattern_data=pattern_data,
            frequency_count=1,
            confidence_level=NEW_PATTERN_CONFIDENCE,
            last_occurrence=now,
        )
        try:
            async with db.begin_nested():
                db.add(pattern)
            logger.info(f"Created learning pattern: restaurant_id={restaurant_id}, type={pattern_type}")
            return pattern
        except IntegrityError:
            # Inserted concurrently; fall through and bump the winner
            pattern = (await db.execute(query)).scalar_one()

    pattern.frequency_count += 1
    pattern.pattern_data = pattern_data
    pattern.last_occurrence = now
    await db.flush()
    return pattern


class LearningService:
    """Records interactions and, when enabled, learned patterns."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def record_interaction(
        self,
        agent: Agent,
        conversation_id: uuid.UUID,
        customer_phone: str,
        user_message: str,
        ai_response: str,
        sentiment: SentimentResult | None = None,
        context_data: dict[str, Any] | None = None,
    ) -> AILearningInteraction:
        interaction_type = classify_interaction(user_message)
        tags = [interaction_type.value]
        if sentiment is not None:
            tags.append(sentiment.sentiment_label.value)

        context = dict(context_data or {})
        if sentiment is not None:
            context["sentiment_strategy"] = sentiment.response_strategy.value

        interaction = AILearningInteraction(
            restaurant_id=agent.restaurant_id,
            agent_id=agent.id,
            conversation_id=conversation_id,
            customer_phone=customer_phone,
            interaction_type=interaction_type,
            user_message=user_message,
            ai_response=ai_response,
            sentiment_score=sentiment.sentiment_score if sentiment else None,
            context_data=context,
            learning_tags=tags,
        )
        self._db.add(interaction)
        await self._db.flush()

        if agent.enable_conversation_summary:
            await upsert_learning_pattern(
                self._db,
                agent.restaurant_id,
                pattern_key(interaction_type, sentiment),
                {
                    "common_phrases": [user_message[:PHRASE_SAMPLE_LENGTH]],
                    "response_strategy": sentiment.response_strategy.value if sentiment else None,
                    "sentiment_distribution": sentiment.sentiment_label.value if sentiment else None,
                },
            )

        logger.debug(
            f"Learning interaction recorded: conversation_id={conversation_id}, "
            f"type={interaction_type.value}"
        )
        return interaction
