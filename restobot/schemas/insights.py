"""Schemas for analytics endpoints: sentiment, learning, A/B tests and forecasts."""

import uuid
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field

from restobot.models.learning import SentimentLabel


# ============================================================================
# Sentiment & learning
# ============================================================================

class SentimentSummary(BaseModel):
    restaurant_id: uuid.UUID
    total: int
    average_score: float | None
    by_label: dict[SentimentLabel, int]
    escalations: int


class LearningPatternRead(BaseModel):
    id: uuid.UUID
    pattern_type: str
    pattern_data: dict[str, Any] | None
    frequency_count: int
    confidence_level: float
    last_occurrence: datetime

    model_config = {"from_attributes": True}


# ============================================================================
# A/B testing
# ============================================================================

class VariantSpec(BaseModel):
    variant_name: str = Field(min_length=1, max_length=100)
    response_template: str = Field(min_length=1)
    traffic_percentage: float = Field(gt=0, le=100)


class ABTestCreate(BaseModel):
    restaurant_id: uuid.UUID
    agent_id: uuid.UUID
    test_name: str = Field(min_length=1, max_length=100)
    variants: list[VariantSpec] = Field(min_length=1)


class ABTestEnd(BaseModel):
    restaurant_id: uuid.UUID
    agent_id: uuid.UUID
    test_name: str


class VariantSelect(BaseModel):
    restaurant_id: uuid.UUID
    agent_id: uuid.UUID
    test_name: str


class ABTestVariantRead(BaseModel):
    id: uuid.UUID
    test_name: str
    variant_name: str
    response_template: str
    traffic_percentage: float
    is_active: bool
    start_date: datetime
    end_date: datetime | None

    model_config = {"from_attributes": True}


class ABTestResultCreate(BaseModel):
    restaurant_id: uuid.UUID
    variant_id: uuid.UUID
    conversation_id: uuid.UUID | None = None
    customer_phone: str | None = None
    response_used: str | None = None
    user_satisfaction: float | None = Field(default=None, ge=0, le=5)
    conversion_achieved: bool = False
    interaction_duration_seconds: int | None = Field(default=None, ge=0)


class VariantStats(BaseModel):
    variant_id: uuid.UUID
    variant_name: str
    total_interactions: int
    conversions: int
    conversion_rate: float
    avg_satisfaction: float
    avg_duration: float


class SignificanceResult(BaseModel):
    significant: bool
    confidence: float
    winner: str | None = None
    z_score: float | None = None
    message: str


class ABTestSummary(BaseModel):
    test_name: str
    variants: list[VariantStats]
    significance: SignificanceResult | None


# ============================================================================
# Forecasting
# ============================================================================

class DailyForecast(BaseModel):
    forecast_date: date
    predicted_orders: int
    predicted_revenue: int
    confidence: int
    trend: str
    seasonal: str
    day_of_week: str


class Seasonality(BaseModel):
    weekday_averages: list[float]  # Sunday first
    peak_day: str
    low_day: str
    weekend_boost: float


class ForecastInsight(BaseModel):
    kind: str
    title: str
    description: str
    impact: str
    action: str


class DemandForecast(BaseModel):
    restaurant_id: uuid.UUID
    days_ahead: int
    history_days: int
    forecast: list[DailyForecast]
    seasonality: Seasonality
    insights: list[ForecastInsight]
    recommendations: list[str]
