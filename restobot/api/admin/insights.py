"""Analytics endpoints: sentiment, learned patterns, A/B tests and demand forecasts."""

import logging
import uuid
from typing import Any

from fastapi import APIRouter, HTTPException, Query
from sqlalchemy import func, select

from restobot.api.deps import AdminAuth, DbSession
from restobot.models.learning import AILearningPattern, SentimentAnalytics, SentimentLabel
from restobot.models.restaurant import Restaurant
from restobot.schemas.insights import (
    ABTestCreate,
    ABTestEnd,
    ABTestResultCreate,
    ABTestSummary,
    ABTestVariantRead,
    DemandForecast,
    LearningPatternRead,
    SentimentSummary,
    VariantSelect,
)
from restobot.services.experiments import ExperimentError, ExperimentService
from restobot.services.forecasting import ForecastingService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/admin/insights", tags=["Insights"])


# =============================================================================
# Sentiment & learning
# =============================================================================


@router.get("/sentiment", response_model=SentimentSummary)
async def get_sentiment_summary(
    db: DbSession,
    restaurant_id: uuid.UUID = Query(...),
    _auth: AdminAuth = None,
) -> SentimentSummary:
    """Counts per label, average score and escalations for one restaurant."""
    result = await db.execute(
        select(SentimentAnalytics.sentiment_label, func.count(SentimentAnalytics.id))
        .where(SentimentAnalytics.restaurant_id == restaurant_id)
        .group_by(SentimentAnalytics.sentiment_label)
    )
    by_label = {label: 0 for label in SentimentLabel}
    for label, count in result.all():
        by_label[SentimentLabel(label)] = count

    average = await db.scalar(
        select(func.avg(SentimentAnalytics.sentiment_score)).where(
            SentimentAnalytics.restaurant_id == restaurant_id
        )
    )
    escalations = await db.scalar(
        select(func.count(SentimentAnalytics.id)).where(
            SentimentAnalytics.restaurant_id == restaurant_id,
            SentimentAnalytics.escalation_triggered.is_(True),
        )
    )

    return SentimentSummary(
        restaurant_id=restaurant_id,
        total=sum(by_label.values()),
        average_score=round(float(average), 3) if average is not None else None,
        by_label=by_label,
        escalations=escalations or 0,
    )


@router.get("/patterns", response_model=list[LearningPatternRead])
async def get_learning_patterns(
    db: DbSession,
    restaurant_id: uuid.UUID = Query(...),
    limit: int = Query(default=10, ge=1, le=100),
    _auth: AdminAuth = None,
) -> Any:
    """Most frequent learned patterns first."""
    result = await db.execute(
        select(AILearningPattern)
        .where(AILearningPattern.restaurant_id == restaurant_id)
        .order_by(AILearningPattern.frequency_count.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


# =============================================================================
# A/B testing
# =============================================================================


@router.post("/ab-tests", response_model=list[ABTestVariantRead], status_code=201)
async def create_ab_test(
    body: ABTestCreate,
    db: DbSession,
    _auth: AdminAuth = None,
) -> Any:
    service = ExperimentService(db)
    return await service.create_test(body)


@router.post("/ab-tests/end", response_model=list[ABTestVariantRead])
async def end_ab_test(
    body: ABTestEnd,
    db: DbSession,
    _auth: AdminAuth = None,
) -> Any:
    service = ExperimentService(db)
    try:
        return await service.end_test(body.restaurant_id, body.agent_id, body.test_name)
    except ExperimentError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/ab-tests/select", response_model=ABTestVariantRead | None)
async def select_ab_variant(
    body: VariantSelect,
    db: DbSession,
    _auth: AdminAuth = None,
) -> Any:
    """Pick a variant by traffic weight; ``null`` when the test has no live variant."""
    service = ExperimentService(db)
    return await service.select_variant(body.restaurant_id, body.agent_id, body.test_name)


@router.post("/ab-tests/results", status_code=201)
async def record_ab_result(
    body: ABTestResultCreate,
    db: DbSession,
    _auth: AdminAuth = None,
) -> dict[str, Any]:
    service = ExperimentService(db)
    try:
        row = await service.record_result(body)
    except ExperimentError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"id": str(row.id), "variant_id": str(row.variant_id)}


@router.get("/ab-tests/summary", response_model=ABTestSummary)
async def get_ab_test_summary(
    db: DbSession,
    restaurant_id: uuid.UUID = Query(...),
    agent_id: uuid.UUID = Query(...),
    test_name: str = Query(...),
    _auth: AdminAuth = None,
) -> ABTestSummary:
    service = ExperimentService(db)
    try:
        return await service.summarize(restaurant_id, agent_id, test_name)
    except ExperimentError as e:
        raise HTTPException(status_code=404, detail=str(e))


# =============================================================================
# Forecasting
# =============================================================================


@router.get("/forecast", response_model=DemandForecast)
async def get_demand_forecast(
    db: DbSession,
    restaurant_id: uuid.UUID = Query(...),
    days_ahead: int = Query(default=30, ge=1, le=90),
    _auth: AdminAuth = None,
) -> DemandForecast:
    if await db.get(Restaurant, restaurant_id) is None:
        raise HTTPException(status_code=404, detail="Restaurant not found")
    service = ForecastingService(db)
    return await service.forecast(restaurant_id, days_ahead=days_ahead)
