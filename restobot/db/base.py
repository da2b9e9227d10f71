"""Declarative base and shared column types."""

import enum
from typing import Any

from sqlalchemy import JSON, Enum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase

# JSONB on PostgreSQL, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")


def enum_column(enum_cls: type[enum.Enum], **kwargs: Any) -> Enum:
    """Enum type that stores member values ("active") rather than names ("ACTIVE")."""
    return Enum(
        enum_cls,
        values_callable=lambda members: [member.value for member in members],
        **kwargs,
    )


class Base(DeclarativeBase):
    """Base class for all ORM models."""
