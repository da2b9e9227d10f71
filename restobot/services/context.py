"""Live restaurant facts and conversation history for prompt building.

Everything is read through the request's ``AsyncSession``; an async session
runs one statement at a time, so the queries are issued in sequence.
"""

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from restobot.core.prompts import (
    AgentProfile,
    HistoryTurn,
    InventoryFact,
    PatternFact,
    PromotionFact,
    PromptContext,
)
from restobot.models.agent import Agent, DEFAULT_CONTEXT_MEMORY_TURNS
from restobot.models.conversation import Conversation, Message
from restobot.models.learning import AILearningPattern
from restobot.models.restaurant import DynamicPromotion, ProductInventory
from restobot.schemas.sentiment import SentimentResult

logger = logging.getLogger(__name__)

TOP_PATTERNS_LIMIT = 10


class ContextService:
    """Assembles a :class:`PromptContext` for one inbound message."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def get_inventory(self, restaurant_id: uuid.UUID) -> tuple[InventoryFact, ...]:
        result = await self._db.execute(
            select(ProductInventory)
            .where(ProductInventory.restaurant_id == restaurant_id)
            .order_by(ProductInventory.current_stock)
        )
        return tuple(
            InventoryFact(
                product_name=row.product.name if row.product else str(row.product_id),
                current_stock=row.current_stock,
                low_stock_threshold=row.low_stock_threshold,
            )
            for row in result.scalars().all()
        )

    async def get_active_promotions(
        self,
        restaurant_id: uuid.UUID,
        now: datetime | None = None,
    ) -> tuple[PromotionFact, ...]:
        """Active promotions that have started and not yet expired."""
        now = now or datetime.now(timezone.utc)
        result = await self._db.execute(
            select(DynamicPromotion)
            .where(
                DynamicPromotion.restaurant_id == restaurant_id,
                DynamicPromotion.is_active.is_(True),
                or_(DynamicPromotion.start_time.is_(None), DynamicPromotion.start_time <= now),
                or_(DynamicPromotion.end_time.is_(None), DynamicPromotion.end_time > now),
            )
            .order_by(DynamicPromotion.title)
        )
        return tuple(
            PromotionFact(
                title=promo.title,
                description=promo.description,
                discount_type=promo.discount_type,
                discount_value=promo.discount_value,
            )
            for promo in result.scalars().all()
        )

    async def get_top_patterns(
        self,
        restaurant_id: uuid.UUID,
        limit: int = TOP_PATTERNS_LIMIT,
    ) -> tuple[PatternFact, ...]:
        result = await self._db.execute(
            select(AILearningPattern)
            .where(AILearningPattern.restaurant_id == restaurant_id)
            .order_by(AILearningPattern.frequency_count.desc(), AILearningPattern.pattern_type)
            .limit(limit)
        )
        return tuple(
            PatternFact(
                pattern_type=pattern.pattern_type,
                pattern_data=pattern.pattern_data or {},
                frequency_count=pattern.frequency_count,
            )
            for pattern in result.scalars().all()
        )

    async def get_history(
        self,
        conversation_id: uuid.UUID,
        turns: int,
        exclude_message_id: uuid.UUID | None = None,
    ) -> tuple[HistoryTurn, ...]:
        """Last ``turns`` messages of a conversation, oldest first."""
        if turns <= 0:
            return ()

        query = select(Message).where(Message.conversation_id == conversation_id)
        if exclude_message_id is not None:
            query = query.where(Message.id != exclude_message_id)
        result = await self._db.execute(
            query.order_by(Message.created_at.desc()).limit(turns)
        )
        recent = list(result.scalars().all())
        recent.reverse()
        return tuple(HistoryTurn(sender_type=m.sender_type, content=m.content) for m in recent)

    async def build(
        self,
        agent: Agent,
        conversation: Conversation,
        current_message: str,
        current_message_id: uuid.UUID | None = None,
        sentiment: SentimentResult | None = None,
        default_model: str = "",
    ) -> PromptContext:
        """Gather every fact the system prompt needs."""
        profile = AgentProfile.from_agent(agent, default_model=default_model)
        restaurant_id = agent.restaurant_id
        turns = agent.context_memory_turns
        if turns is None:
            turns = DEFAULT_CONTEXT_MEMORY_TURNS

        inventory = await self.get_inventory(restaurant_id)
        promotions = await self.get_active_promotions(restaurant_id)
        patterns = await self.get_top_patterns(restaurant_id)
        history = await self.get_history(conversation.id, turns, current_message_id)

        logger.debug(
            f"Context built: conversation_id={conversation.id}, inventory={len(inventory)}, "
            f"promotions={len(promotions)}, patterns={len(patterns)}, history={len(history)}"
        )

        return PromptContext(
            agent=profile,
            current_message=current_message,
            history=history,
            inventory=inventory,
            promotions=promotions,
            patterns=patterns,
            sentiment=sentiment,
        )
