import random
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from restobot.models.experiment import ABTestResult, ABTestVariant
from restobot.schemas.insights import ABTestCreate, ABTestResultCreate, VariantSpec, VariantStats
from restobot.services.experiments import (
    ExperimentError,
    ExperimentService,
    calculate_significance,
    pick_weighted,
)


def stats(name: str, total: int, conversions: int) -> VariantStats:
    return VariantStats(
        variant_id=uuid.uuid4(),
        variant_name=name,
        total_interactions=total,
        conversions=conversions,
        conversion_rate=(conversions / total) * 100 if total else 0.0,
        avg_satisfaction=0.0,
        avg_duration=0.0,
    )


class FixedRandom(random.Random):
    def __init__(self, value: float) -> None:
        super().__init__()
        self.value = value

    def random(self) -> float:
        return self.value


# =============================================================================
# Pure helpers
# =============================================================================


def test_pick_weighted_respects_cumulative_weights():
    a = ABTestVariant(variant_name="a", traffic_percentage=70)
    b = ABTestVariant(variant_name="b", traffic_percentage=30)

    assert pick_weighted([a, b], FixedRandom(0.0)) is a
    assert pick_weighted([a, b], FixedRandom(0.69)) is a
    assert pick_weighted([a, b], FixedRandom(0.71)) is b


def test_pick_weighted_distribution_is_reproducible():
    a = ABTestVariant(variant_name="a", traffic_percentage=50)
    b = ABTestVariant(variant_name="b", traffic_percentage=50)

    first = [pick_weighted([a, b], random.Random(7)).variant_name for _ in range(5)]
    second = [pick_weighted([a, b], random.Random(7)).variant_name for _ in range(5)]

    assert first == second


def test_significance_needs_two_variants():
    assert calculate_significance([stats("a", 100, 10)]) is None


def test_significance_needs_thirty_interactions():
    result = calculate_significance([stats("a", 29, 10), stats("b", 100, 50)])

    assert result.significant is False
    assert result.confidence == 0
    assert "30" in result.message


def test_significant_difference():
    result = calculate_significance([stats("control", 100, 10), stats("friendly", 100, 30)])

    assert result.significant is True
    assert result.confidence == 95
    assert result.winner == "friendly"
    assert result.z_score == pytest.approx(3.5355, rel=1e-3)


def test_insignificant_difference_caps_confidence():
    result = calculate_significance([stats("a", 100, 20), stats("b", 100, 22)])

    assert result.significant is False
    assert result.confidence == pytest.approx(min(90, result.z_score * 45))
    assert result.message == "Need more data for significance"


def test_identical_extremes_have_zero_z():
    result = calculate_significance([stats("a", 40, 40), stats("b", 40, 40)])

    assert result.z_score == 0
    assert result.significant is False


# =============================================================================
# Service
# =============================================================================


@pytest.fixture
def create_request(agent) -> ABTestCreate:
    return ABTestCreate(
        restaurant_id=agent.restaurant_id,
        agent_id=agent.id,
        test_name="greeting",
        variants=[
            VariantSpec(variant_name="formal", response_template="Boa noite.", traffic_percentage=50),
            VariantSpec(variant_name="casual", response_template="E aí!", traffic_percentage=50),
        ],
    )


async def test_create_select_and_end(db, agent, create_request):
    service = ExperimentService(db, rng=FixedRandom(0.9))
    variants = await service.create_test(create_request)
    await db.commit()

    assert {v.variant_name for v in variants} == {"formal", "casual"}

    selected = await service.select_variant(agent.restaurant_id, agent.id, "greeting")
    assert selected is not None

    ended = await service.end_test(agent.restaurant_id, agent.id, "greeting")
    await db.commit()
    assert all(not v.is_active and v.end_date is not None for v in ended)
    assert await service.select_variant(agent.restaurant_id, agent.id, "greeting") is None


async def test_variant_outside_window_is_not_selected(db, agent, create_request):
    service = ExperimentService(db)
    variants = await service.create_test(create_request)
    for variant in variants:
        variant.start_date = datetime.now(timezone.utc) + timedelta(days=1)
    await db.commit()

    assert await service.select_variant(agent.restaurant_id, agent.id, "greeting") is None


async def test_end_unknown_test_raises(db, agent):
    with pytest.raises(ExperimentError):
        await ExperimentService(db).end_test(agent.restaurant_id, agent.id, "missing")


async def test_record_and_summarize(db, agent, create_request):
    service = ExperimentService(db)
    formal, casual = await service.create_test(create_request)
    await db.commit()

    for i in range(4):
        await service.record_result(ABTestResultCreate(
            restaurant_id=agent.restaurant_id,
            variant_id=formal.id,
            conversion_achieved=i < 1,
            user_satisfaction=4,
            interaction_duration_seconds=60,
        ))
    await service.record_result(ABTestResultCreate(
        restaurant_id=agent.restaurant_id, variant_id=casual.id, conversion_achieved=True,
    ))
    await db.commit()

    summary = await service.summarize(agent.restaurant_id, agent.id, "greeting")
    by_name = {v.variant_name: v for v in summary.variants}

    assert by_name["formal"].total_interactions == 4
    assert by_name["formal"].conversions == 1
    assert by_name["formal"].conversion_rate == 25.0
    assert by_name["formal"].avg_satisfaction == 4
    assert by_name["formal"].avg_duration == 60
    assert by_name["casual"].conversion_rate == 100.0
    assert summary.significance.significant is False


async def test_record_result_for_other_restaurant_is_rejected(db, agent, create_request):
    service = ExperimentService(db)
    variants = await service.create_test(create_request)
    await db.commit()

    with pytest.raises(ExperimentError):
        await service.record_result(ABTestResultCreate(
            restaurant_id=uuid.uuid4(), variant_id=variants[0].id,
        ))
    assert (await db.execute(select(ABTestResult))).scalars().all() == []
