"""Agent and fallback scenario models."""

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from restobot.db.base import Base, JSONType

DEFAULT_CONTEXT_MEMORY_TURNS = 10
DEFAULT_MAX_TOKENS = 500


class Agent(Base):
    """Configuration for one WhatsApp assistant of a restaurant.

    The webhook resolves the owning agent either by ``whatsapp_number`` or by
    the Evolution API instance the event came from.
    """

    __tablename__ = "agents"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    restaurant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("restaurants.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    personality: Mapped[str] = mapped_column(Text, default="")
    instructions: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)

    # Gateway credentials
    whatsapp_number: Mapped[str | None] = mapped_column(String(30), nullable=True, index=True)
    evolution_api_instance: Mapped[str | None] = mapped_column(
        String(100), nullable=True, index=True
    )
    evolution_api_token: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # LLM parameters
    ai_model: Mapped[str | None] = mapped_column(String(100), nullable=True)
    max_tokens: Mapped[int] = mapped_column(Integer, default=DEFAULT_MAX_TOKENS)
    temperature: Mapped[float | None] = mapped_column(Float, nullable=True)
    response_style: Mapped[str] = mapped_column(String(50), default="friendly")
    language: Mapped[str] = mapped_column(String(10), default="pt-BR")
    context_memory_turns: Mapped[int] = mapped_column(
        Integer, default=DEFAULT_CONTEXT_MEMORY_TURNS
    )

    # Feature flags
    enable_sentiment_analysis: Mapped[bool] = mapped_column(Boolean, default=False)
    enable_order_intent_detection: Mapped[bool] = mapped_column(Boolean, default=True)
    enable_proactive_suggestions: Mapped[bool] = mapped_column(Boolean, default=False)
    enable_conversation_summary: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    # Relationships
    restaurant: Mapped["Restaurant"] = relationship(  # noqa: F821
        "Restaurant", back_populates="agents", lazy="selectin"
    )
    fallback_scenarios: Mapped[list["FallbackScenario"]] = relationship(
        "FallbackScenario", back_populates="agent"
    )

    @property
    def can_relay(self) -> bool:
        """Whether gateway credentials are configured."""
        return bool(self.evolution_api_token and self.evolution_api_instance)


class FallbackScenario(Base):
    """Rule that hands a conversation over to a human.

    ``trigger_conditions`` holds ``{"sentiment_threshold": -0.7}``; scenarios
    are evaluated by descending ``priority_level`` and the first match wins.
    """

    __tablename__ = "fallback_scenarios"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    restaurant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("restaurants.id"), nullable=False, index=True
    )
    agent_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("agents.id"), nullable=False, index=True
    )
    scenario_name: Mapped[str] = mapped_column(String(100), nullable=False)
    trigger_conditions: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)
    custom_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    auto_trigger: Mapped[bool] = mapped_column(Boolean, default=True)
    priority_level: Mapped[int] = mapped_column(Integer, default=0)

    # Relationships
    agent: Mapped["Agent"] = relationship("Agent", back_populates="fallback_scenarios")

    @property
    def sentiment_threshold(self) -> float | None:
        """Configured sentiment threshold, if any."""
        value = (self.trigger_conditions or {}).get("sentiment_threshold")
        return float(value) if value is not None else None
