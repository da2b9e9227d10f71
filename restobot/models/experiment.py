"""A/B test variants and their recorded results."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from restobot.db.base import Base


class ABTestVariant(Base):
    """One arm of a named response test for an agent."""

    __tablename__ = "ab_test_variants"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    restaurant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("restaurants.id"), nullable=False, index=True
    )
    agent_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("agents.id"), nullable=False, index=True
    )
    test_name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    variant_name: Mapped[str] = mapped_column(String(100), nullable=False)
    response_template: Mapped[str] = mapped_column(Text, nullable=False)
    traffic_percentage: Mapped[float] = mapped_column(Float, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    start_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    results: Mapped[list["ABTestResult"]] = relationship(
        "ABTestResult", back_populates="variant", lazy="selectin"
    )


class ABTestResult(Base):
    """Outcome of one conversation served by a variant."""

    __tablename__ = "ab_test_results"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    restaurant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("restaurants.id"), nullable=False, index=True
    )
    variant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("ab_test_variants.id"), nullable=False, index=True
    )
    conversation_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("conversations.id"), nullable=True
    )
    customer_phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    response_used: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_satisfaction: Mapped[float | None] = mapped_column(Float, nullable=True)
    conversion_achieved: Mapped[bool] = mapped_column(Boolean, default=False)
    interaction_duration_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    # Relationships
    variant: Mapped["ABTestVariant"] = relationship("ABTestVariant", back_populates="results")
