"""Prompt construction for the restaurant WhatsApp assistant.

``build_system_prompt`` is a pure function: everything it needs arrives in
a frozen :class:`PromptContext` and it returns an immutable
:class:`SystemPrompt`. Nothing here touches the database or the network.
"""

import enum
import json
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from restobot.models.conversation import SenderType
from restobot.models.learning import SentimentLabel
from restobot.models.restaurant import DiscountType
from restobot.schemas.sentiment import SentimentResult


SENTIMENT_SYSTEM_PROMPT = """Analyse the sentiment of the customer's message. Reply ONLY with valid JSON in this exact shape:
{
  "sentiment_score": (number from -1 to 1),
  "sentiment_label": "negative|neutral|positive",
  "confidence_score": (number from 0 to 1),
  "emotional_indicators": {
    "anger": (0-1),
    "satisfaction": (0-1),
    "urgency": (0-1),
    "confusion": (0-1)
  },
  "response_strategy": "empathetic|promotional|informational"
}"""

DEFAULT_FALLBACK_MESSAGE = (
    "I can see something is not going well. I'm transferring you to one of our "
    "team members who can help you better. Please wait a moment. 🤝"
)

SENTIMENT_GUIDANCE = {
    SentimentLabel.NEGATIVE: "- PRIORITY: be empathetic, acknowledge the frustration and offer concrete solutions",
    SentimentLabel.POSITIVE: "- Keep the positive tone and take the chance to suggest extras or upsell",
    SentimentLabel.NEUTRAL: "- Keep a professional, informative tone",
}


class StockStatus(str, enum.Enum):
    """Stock label shown to the model."""

    OUT_OF_STOCK = "out_of_stock"
    LOW_STOCK = "low_stock"
    AVAILABLE = "available"


def stock_status(current_stock: int, low_stock_threshold: int) -> StockStatus:
    """Derive the stock label: zero is out, at or under the threshold is low."""
    if current_stock <= 0:
        return StockStatus.OUT_OF_STOCK
    if current_stock <= low_stock_threshold:
        return StockStatus.LOW_STOCK
    return StockStatus.AVAILABLE


@dataclass(frozen=True)
class InventoryFact:
    product_name: str
    current_stock: int
    low_stock_threshold: int

    @property
    def status(self) -> StockStatus:
        return stock_status(self.current_stock, self.low_stock_threshold)

    def render(self) -> str:
        return f"- {self.product_name}: {self.current_stock} units ({self.status.value})"


@dataclass(frozen=True)
class PromotionFact:
    title: str
    description: str | None
    discount_type: DiscountType
    discount_value: Decimal

    def render(self) -> str:
        if self.discount_type == DiscountType.PERCENTAGE:
            discount = f"{self.discount_value}% off"
        else:
            discount = f"{self.discount_value} off"
        return f"- {self.title}: {self.description or ''} ({discount})"


@dataclass(frozen=True)
class PatternFact:
    pattern_type: str
    pattern_data: dict[str, Any]
    frequency_count: int

    def render(self) -> str:
        data = json.dumps(self.pattern_data, ensure_ascii=False, sort_keys=True)
        return f"- {self.pattern_type}: {data} ({self.frequency_count} occurrences)"


@dataclass(frozen=True)
class HistoryTurn:
    sender_type: SenderType
    content: str

    def render(self) -> str:
        speaker = "Customer" if self.sender_type == SenderType.CUSTOMER else "Assistant"
        return f"{speaker}: {self.content}"


@dataclass(frozen=True)
class AgentProfile:
    """The parts of an agent's configuration that shape the prompt."""

    personality: str
    instructions: str = ""
    model: str = ""
    response_style: str = "friendly"
    language: str = "pt-BR"
    context_memory_turns: int = 10
    sentiment_analysis: bool = False
    order_intent_detection: bool = False
    proactive_suggestions: bool = False

    @classmethod
    def from_agent(cls, agent: Any, default_model: str = "") -> "AgentProfile":
        return cls(
            personality=agent.personality or "",
            instructions=agent.instructions or "",
            model=agent.ai_model or default_model,
            response_style=agent.response_style or "friendly",
            language=agent.language or "pt-BR",
            context_memory_turns=(
                agent.context_memory_turns if agent.context_memory_turns is not None else 10
            ),
            sentiment_analysis=bool(agent.enable_sentiment_analysis),
            order_intent_detection=bool(agent.enable_order_intent_detection),
            proactive_suggestions=bool(agent.enable_proactive_suggestions),
        )


@dataclass(frozen=True)
class PromptContext:
    """Everything the system prompt is built from."""

    agent: AgentProfile
    current_message: str
    history: tuple[HistoryTurn, ...] = field(default_factory=tuple)
    inventory: tuple[InventoryFact, ...] = field(default_factory=tuple)
    promotions: tuple[PromotionFact, ...] = field(default_factory=tuple)
    patterns: tuple[PatternFact, ...] = field(default_factory=tuple)
    sentiment: SentimentResult | None = None


@dataclass(frozen=True)
class SystemPrompt:
    """Rendered prompt plus the customer turn it answers."""

    text: str
    user_message: str

    def to_messages(self) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": self.text},
            {"role": "user", "content": self.user_message},
        ]


def _flag(enabled: bool) -> str:
    return "ON" if enabled else "OFF"


def _section(title: str, lines: list[str]) -> str:
    if not lines:
        return ""
    return f"\n## {title}\n" + "\n".join(lines) + "\n"


def _render_sentiment(sentiment: SentimentResult) -> str:
    indicators = json.dumps(sentiment.emotional_indicators, sort_keys=True)
    return (
        "\n## Current sentiment\n"
        f"- Score: {sentiment.sentiment_score} ({sentiment.sentiment_label.value})\n"
        f"- Recommended strategy: {sentiment.response_strategy.value}\n"
        f"- Emotional indicators: {indicators}\n"
        f"{SENTIMENT_GUIDANCE[sentiment.sentiment_label]}\n"
    )


def build_system_prompt(context: PromptContext) -> SystemPrompt:
    """Assemble the system prompt for one customer message.

    Args:
        context: Agent profile, conversation history and live restaurant facts.

    Returns:
        The immutable prompt, ready for ``to_messages()``.
    """
    agent = context.agent

    behaviour = [
        "- Use the live context to answer precisely about stock and promotions",
        "- Learn from the recurring patterns listed above",
    ]
    if agent.sentiment_analysis:
        behaviour.append("- Adapt your tone to the customer's sentiment")
    if agent.order_intent_detection:
        behaviour.append("- Detect ordering intent and guide the customer naturally")
    if agent.proactive_suggestions:
        behaviour.append("- Make proactive suggestions when they fit the context")
    behaviour.append("- You are chatting on WhatsApp: keep answers short but complete")

    parts = [
        agent.personality.strip(),
        "",
        "## Assistant configuration",
        f"- Model: {agent.model}",
        f"- Style: {agent.response_style}",
        f"- Language: {agent.language}",
        f"- Sentiment analysis: {_flag(agent.sentiment_analysis)}",
        f"- Order detection: {_flag(agent.order_intent_detection)}",
        f"- Proactive suggestions: {_flag(agent.proactive_suggestions)}",
    ]
    text = "\n".join(parts) + "\n"

    text += _section("Current stock", [item.render() for item in context.inventory])
    text += _section("Active promotions", [promo.render() for promo in context.promotions])
    text += _section("Learned patterns", [pattern.render() for pattern in context.patterns])

    if agent.instructions:
        text += f"\n## Special instructions\n{agent.instructions.strip()}\n"

    text += "\n## Behaviour\n" + "\n".join(behaviour) + "\n"

    if context.sentiment is not None:
        text += _render_sentiment(context.sentiment)

    text += _section("Conversation history", [turn.render() for turn in context.history])
    text += (
        f"\nCURRENT CUSTOMER MESSAGE: {context.current_message}\n\n"
        "Answer naturally, taking all of the context above into account."
    )

    return SystemPrompt(text=text, user_message=context.current_message)
