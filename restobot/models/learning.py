"""Analytics rows written by the webhook pipeline: sentiment and learning."""

import enum
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from restobot.db.base import Base, JSONType, enum_column


class SentimentLabel(str, enum.Enum):
    """Coarse sentiment of a customer message."""

    NEGATIVE = "negative"
    NEUTRAL = "neutral"
    POSITIVE = "positive"


class ResponseStrategy(str, enum.Enum):
    """How the assistant should answer given the sentiment."""

    EMPATHETIC = "empathetic"
    PROMOTIONAL = "promotional"
    INFORMATIONAL = "informational"


class InteractionType(str, enum.Enum):
    """Keyword-derived interaction tag used for analytics only."""

    ORDER = "order"
    COMPLAINT = "complaint"
    COMPLIMENT = "compliment"
    QUESTION = "question"


class SentimentAnalytics(Base):
    """One row per successfully classified customer message."""

    __tablename__ = "sentiment_analytics"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    restaurant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("restaurants.id"), nullable=False, index=True
    )
    conversation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("conversations.id"), nullable=False, index=True
    )
    message_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("messages.id"), nullable=True
    )
    customer_phone: Mapped[str] = mapped_column(String(30), nullable=False)
    sentiment_score: Mapped[float] = mapped_column(Float, nullable=False)
    sentiment_label: Mapped[SentimentLabel] = mapped_column(
        enum_column(SentimentLabel), nullable=False
    )
    confidence_score: Mapped[float] = mapped_column(Float, default=0.0)
    emotional_indicators: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    response_strategy: Mapped[ResponseStrategy] = mapped_column(
        enum_column(ResponseStrategy), default=ResponseStrategy.INFORMATIONAL
    )
    escalation_triggered: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True
    )


class AILearningInteraction(Base):
    """Raw record of one answered customer message."""

    __tablename__ = "ai_learning_interactions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    restaurant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("restaurants.id"), nullable=False, index=True
    )
    agent_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("agents.id"), nullable=False)
    conversation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("conversations.id"), nullable=False, index=True
    )
    customer_phone: Mapped[str] = mapped_column(String(30), nullable=False)
    interaction_type: Mapped[InteractionType] = mapped_column(
        enum_column(InteractionType), nullable=False
    )
    user_message: Mapped[str] = mapped_column(Text, nullable=False)
    ai_response: Mapped[str] = mapped_column(Text, nullable=False)
    sentiment_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    context_data: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    learning_tags: Mapped[list[Any] | None] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True
    )


class AILearningPattern(Base):
    """Frequency-ranked aggregate of recurring interactions, fed back into prompts."""

    __tablename__ = "ai_learning_patterns"
    __table_args__ = (
        UniqueConstraint("restaurant_id", "pattern_type", name="uq_learning_pattern_type"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    restaurant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("restaurants.id"), nullable=False, index=True
    )
    pattern_type: Mapped[str] = mapped_column(String(100), nullable=False)
    pattern_data: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    frequency_count: Mapped[int] = mapped_column(Integer, default=1, index=True)
    confidence_level: Mapped[float] = mapped_column(Float, default=0.5)
    last_occurrence: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
