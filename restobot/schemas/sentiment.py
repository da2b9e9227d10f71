"""Schema for the sentiment classifier's JSON reply."""

from pydantic import BaseModel, Field

from restobot.models.learning import ResponseStrategy, SentimentLabel


class SentimentResult(BaseModel):
    """Validated sentiment classification of one customer message."""
    sentiment_score: float = Field(ge=-1.0, le=1.0)
    sentiment_label: SentimentLabel
    confidence_score: float = Field(default=0.0, ge=0.0, le=1.0)
    emotional_indicators: dict[str, float] = Field(default_factory=dict)
    response_strategy: ResponseStrategy = ResponseStrategy.INFORMATIONAL

    model_config = {"frozen": True}
