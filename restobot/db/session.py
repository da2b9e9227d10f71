"""Async engine and session factory.

``get_db`` is the request dependency; scripts open sessions through
``session_scope``. Both commit on success and roll back on error.
"""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from restobot.config import Settings, get_settings


def build_engine(settings: Settings) -> AsyncEngine:
    """Create the engine. Pool sizing only applies to server databases."""
    options: dict[str, Any] = {"echo": settings.app_debug}
    if not settings.database_url.startswith("sqlite"):
        options.update(pool_size=settings.database_pool_size, pool_pre_ping=True)
    return create_async_engine(settings.database_url, **options)


engine = build_engine(get_settings())

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Session that commits when the block exits cleanly."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that provides a request-scoped database session."""
    async with session_scope() as session:
        yield session


async def dispose_engine() -> None:
    """Close pooled connections. Called on application shutdown."""
    await engine.dispose()
