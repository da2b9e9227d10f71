"""Sentiment classification of customer messages.

One extra LLM call per message, asking for a small JSON object that is
validated with :class:`SentimentResult`. Anything the model returns that does
not fit raises :class:`SentimentError`; the pipeline treats that as a skipped
step rather than a failure.
"""

import json
import logging
import re
import uuid

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from restobot.config import Settings
from restobot.core.llm import ChatCompletionClient, LLMError
from restobot.core.prompts import SENTIMENT_SYSTEM_PROMPT
from restobot.models.learning import SentimentAnalytics
from restobot.schemas.sentiment import SentimentResult

logger = logging.getLogger(__name__)

SENTIMENT_MAX_TOKENS = 200
SENTIMENT_TEMPERATURE = 0.1

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


class SentimentError(Exception):
    """Raised when a message could not be classified."""
    pass


def parse_sentiment_reply(content: str | None) -> SentimentResult:
    """Validate the classifier's reply, tolerating a Markdown code fence."""
    if not content:
        raise SentimentError("Empty sentiment reply")

    cleaned = _CODE_FENCE.sub("", content.strip())
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise SentimentError(f"Sentiment reply is not JSON: {e}") from e

    try:
        return SentimentResult.model_validate(data)
    except ValidationError as e:
        raise SentimentError(f"Sentiment reply has an unexpected shape: {e}") from e


class SentimentAnalyzer:
    """Classifies messages and records the outcome."""

    def __init__(self, llm: ChatCompletionClient, settings: Settings) -> None:
        self._llm = llm
        self._settings = settings

    async def classify(self, text: str) -> SentimentResult:
        """Classify one message.

        Raises:
            SentimentError: If the LLM call fails or the reply is unusable
        """
        messages = [
            {"role": "system", "content": SENTIMENT_SYSTEM_PROMPT},
            {"role": "user", "content": text},
        ]
        try:
            response = await self._llm.chat_completion(
                messages=messages,
                model=self._settings.sentiment_model,
                max_tokens=SENTIMENT_MAX_TOKENS,
                temperature=SENTIMENT_TEMPERATURE,
            )
        except LLMError as e:
            raise SentimentError(f"Sentiment call failed: {e}") from e

        return parse_sentiment_reply(response["content"])

    def is_escalation(self, result: SentimentResult) -> bool:
        return result.sentiment_score < self._settings.escalation_sentiment_threshold

    async def record(
        self,
        db: AsyncSession,
        result: SentimentResult,
        restaurant_id: uuid.UUID,
        conversation_id: uuid.UUID,
        customer_phone: str,
        message_id: uuid.UUID | None = None,
    ) -> SentimentAnalytics:
        """Persist one analytics row for a classified message."""
        row = SentimentAnalytics(
            restaurant_id=restaurant_id,
            conversation_id=conversation_id,
            message_id=message_id,
            customer_phone=customer_phone,
            sentiment_score=result.sentiment_score,
            sentiment_label=result.sentiment_label,
            confidence_score=result.confidence_score,
            emotional_indicators=dict(result.emotional_indicators),
            response_strategy=result.response_strategy,
            escalation_triggered=self.is_escalation(result),
        )
        db.add(row)
        await db.flush()
        logger.info(
            f"Sentiment recorded: conversation_id={conversation_id}, "
            f"score={result.sentiment_score}, label={result.sentiment_label.value}"
        )
        return row
