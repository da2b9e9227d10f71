"""A/B testing of agent response templates.

A test is a set of :class:`ABTestVariant` rows sharing ``test_name`` for one
agent. Conversations are assigned a variant by weighted random choice over
``traffic_percentage``, outcomes are recorded as :class:`ABTestResult` rows,
and the summary compares the first two variants with a two-proportion z-test.
"""

import logging
import math
import random
import uuid
from datetime import datetime, timezone

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from restobot.models.experiment import ABTestResult, ABTestVariant
from restobot.schemas.insights import (
    ABTestCreate,
    ABTestResultCreate,
    ABTestSummary,
    SignificanceResult,
    VariantStats,
)

logger = logging.getLogger(__name__)

MIN_INTERACTIONS_FOR_SIGNIFICANCE = 30
Z_CRITICAL_95 = 1.96


class ExperimentError(Exception):
    """Raised when an A/B test operation refers to something that does not exist."""
    pass


def pick_weighted(variants: list[ABTestVariant], rng: random.Random) -> ABTestVariant:
    """Choose a variant with probability proportional to its traffic share."""
    total_weight = sum(v.traffic_percentage for v in variants)
    point = rng.random() * total_weight
    cumulative = 0.0
    for variant in variants:
        cumulative += variant.traffic_percentage
        if point <= cumulative:
            return variant
    return variants[-1]


def summarize_variant(variant: ABTestVariant) -> VariantStats:
    results = variant.results or []
    total = len(results)
    conversions = sum(1 for r in results if r.conversion_achieved)
    if total:
        avg_satisfaction = sum(r.user_satisfaction or 0 for r in results) / total
        avg_duration = sum(r.interaction_duration_seconds or 0 for r in results) / total
    else:
        avg_satisfaction = avg_duration = 0.0

    return VariantStats(
        variant_id=variant.id,
        variant_name=variant.variant_name,
        total_interactions=total,
        conversions=conversions,
        conversion_rate=(conversions / total) * 100 if total else 0.0,
        avg_satisfaction=avg_satisfaction,
        avg_duration=avg_duration,
    )


def calculate_significance(stats: list[VariantStats]) -> SignificanceResult | None:
    """Two-proportion z-test on the conversion rates of the first two variants.

    Returns None with fewer than two variants.
    """
    if len(stats) < 2:
        return None

    a, b = stats[0], stats[1]
    if (
        a.total_interactions < MIN_INTERACTIONS_FOR_SIGNIFICANCE
        or b.total_interactions < MIN_INTERACTIONS_FOR_SIGNIFICANCE
    ):
        return SignificanceResult(
            significant=False,
            confidence=0,
            message=(
                f"Need at least {MIN_INTERACTIONS_FOR_SIGNIFICANCE} interactions "
                "per variant for statistical significance"
            ),
        )

    p1 = a.conversion_rate / 100
    p2 = b.conversion_rate / 100
    n1 = a.total_interactions
    n2 = b.total_interactions
    pooled = (a.conversions + b.conversions) / (n1 + n2)
    se = math.sqrt(pooled * (1 - pooled) * (1 / n1 + 1 / n2))
    # Identical all-or-nothing rates leave no variance to test
    z_score = abs(p1 - p2) / se if se > 0 else 0.0

    significant = z_score > Z_CRITICAL_95
    return SignificanceResult(
        significant=significant,
        confidence=95 if significant else min(90, z_score * 45),
        z_score=z_score,
        winner=a.variant_name if p1 > p2 else b.variant_name,
        message=(
            "Results are statistically significant"
            if significant
            else "Need more data for significance"
        ),
    )


class ExperimentService:
    """Create, run and evaluate A/B tests."""

    def __init__(self, db: AsyncSession, rng: random.Random | None = None) -> None:
        self._db = db
        self._rng = rng or random.Random()

    async def create_test(self, data: ABTestCreate) -> list[ABTestVariant]:
        variants = [
            ABTestVariant(
                restaurant_id=data.restaurant_id,
                agent_id=data.agent_id,
                test_name=data.test_name,
                variant_name=spec.variant_name,
                response_template=spec.response_template,
                traffic_percentage=spec.traffic_percentage,
                is_active=True,
            )
            for spec in data.variants
        ]
        self._db.add_all(variants)
        await self._db.flush()
        logger.info(f"Created A/B test: {data.test_name} with {len(variants)} variants")
        return variants

    async def _variants(
        self,
        restaurant_id: uuid.UUID,
        agent_id: uuid.UUID,
        test_name: str,
    ) -> list[ABTestVariant]:
        result = await self._db.execute(
            select(ABTestVariant)
            .where(
                ABTestVariant.restaurant_id == restaurant_id,
                ABTestVariant.agent_id == agent_id,
                ABTestVariant.test_name == test_name,
            )
            .order_by(ABTestVariant.start_date, ABTestVariant.variant_name)
        )
        return list(result.scalars().all())

    async def end_test(
        self,
        restaurant_id: uuid.UUID,
        agent_id: uuid.UUID,
        test_name: str,
    ) -> list[ABTestVariant]:
        """Deactivate every variant of a test and stamp its end date."""
        variants = await self._variants(restaurant_id, agent_id, test_name)
        if not variants:
            raise ExperimentError(f"A/B test not found: {test_name}")

        now = datetime.now(timezone.utc)
        for variant in variants:
            variant.is_active = False
            variant.end_date = now
        await self._db.flush()
        logger.info(f"Ended A/B test: {test_name}")
        return variants

    async def select_variant(
        self,
        restaurant_id: uuid.UUID,
        agent_id: uuid.UUID,
        test_name: str,
    ) -> ABTestVariant | None:
        """Weighted-random active variant inside its date window, or None."""
        now = datetime.now(timezone.utc)
        result = await self._db.execute(
            select(ABTestVariant)
            .where(
                ABTestVariant.restaurant_id == restaurant_id,
                ABTestVariant.agent_id == agent_id,
                ABTestVariant.test_name == test_name,
                ABTestVariant.is_active.is_(True),
                ABTestVariant.start_date <= now,
                or_(ABTestVariant.end_date.is_(None), ABTestVariant.end_date >= now),
            )
            .order_by(ABTestVariant.start_date, ABTestVariant.variant_name)
        )
        variants = list(result.scalars().all())
        if not variants:
            return None

        selected = pick_weighted(variants, self._rng)
        logger.debug(f"Selected variant {selected.variant_name} for test {test_name}")
        return selected

    async def record_result(self, data: ABTestResultCreate) -> ABTestResult:
        variant = await self._db.get(ABTestVariant, data.variant_id)
        if variant is None or variant.restaurant_id != data.restaurant_id:
            raise ExperimentError(f"A/B test variant not found: {data.variant_id}")

        row = ABTestResult(**data.model_dump())
        self._db.add(row)
        await self._db.flush()
        return row

    async def summarize(
        self,
        restaurant_id: uuid.UUID,
        agent_id: uuid.UUID,
        test_name: str,
    ) -> ABTestSummary:
        variants = await self._variants(restaurant_id, agent_id, test_name)
        if not variants:
            raise ExperimentError(f"A/B test not found: {test_name}")

        # Results recorded after the variants were first loaded
        for variant in variants:
            await self._db.refresh(variant, attribute_names=["results"])

        stats = [summarize_variant(v) for v in variants]
        return ABTestSummary(
            test_name=test_name,
            variants=stats,
            significance=calculate_significance(stats),
        )
