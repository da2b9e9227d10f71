"""Request/response schemas for agent and fallback scenario administration."""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, computed_field


class AgentCreate(BaseModel):
    restaurant_id: uuid.UUID
    name: str = Field(min_length=1, max_length=100)
    personality: str = ""
    instructions: str | None = None
    is_active: bool = True
    whatsapp_number: str | None = None
    evolution_api_instance: str | None = None
    evolution_api_token: str | None = None
    ai_model: str | None = None
    max_tokens: int = Field(default=500, gt=0)
    temperature: float | None = Field(default=None, ge=0, le=2)
    response_style: str = "friendly"
    language: str = "pt-BR"
    context_memory_turns: int = Field(default=10, ge=0, le=100)
    enable_sentiment_analysis: bool = False
    enable_order_intent_detection: bool = True
    enable_proactive_suggestions: bool = False
    enable_conversation_summary: bool = False


class AgentUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    personality: str | None = None
    instructions: str | None = None
    is_active: bool | None = None
    whatsapp_number: str | None = None
    evolution_api_instance: str | None = None
    evolution_api_token: str | None = None
    ai_model: str | None = None
    max_tokens: int | None = Field(default=None, gt=0)
    temperature: float | None = Field(default=None, ge=0, le=2)
    response_style: str | None = None
    language: str | None = None
    context_memory_turns: int | None = Field(default=None, ge=0, le=100)
    enable_sentiment_analysis: bool | None = None
    enable_order_intent_detection: bool | None = None
    enable_proactive_suggestions: bool | None = None
    enable_conversation_summary: bool | None = None


class AgentRead(BaseModel):
    """Agent as shown on the dashboard. The gateway token is never echoed back."""
    id: uuid.UUID
    restaurant_id: uuid.UUID
    name: str
    personality: str
    instructions: str | None
    is_active: bool
    whatsapp_number: str | None
    evolution_api_instance: str | None
    ai_model: str | None
    max_tokens: int
    temperature: float | None
    response_style: str
    language: str
    context_memory_turns: int
    enable_sentiment_analysis: bool
    enable_order_intent_detection: bool
    enable_proactive_suggestions: bool
    enable_conversation_summary: bool
    created_at: datetime

    evolution_api_token: str | None = Field(default=None, exclude=True)

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def has_gateway_token(self) -> bool:
        return bool(self.evolution_api_token)


class FallbackScenarioCreate(BaseModel):
    restaurant_id: uuid.UUID
    agent_id: uuid.UUID
    scenario_name: str = Field(min_length=1, max_length=100)
    trigger_conditions: dict[str, Any] = Field(default_factory=dict)
    custom_message: str | None = None
    auto_trigger: bool = True
    priority_level: int = 0


class FallbackScenarioUpdate(BaseModel):
    scenario_name: str | None = Field(default=None, min_length=1, max_length=100)
    trigger_conditions: dict[str, Any] | None = None
    custom_message: str | None = None
    auto_trigger: bool | None = None
    priority_level: int | None = None


class FallbackScenarioRead(BaseModel):
    id: uuid.UUID
    restaurant_id: uuid.UUID
    agent_id: uuid.UUID
    scenario_name: str
    trigger_conditions: dict[str, Any]
    custom_message: str | None
    auto_trigger: bool
    priority_level: int

    model_config = {"from_attributes": True}
