"""API dependencies for dependency injection."""

import logging
from typing import Annotated

import redis.asyncio as redis
from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from restobot.config import Settings, get_settings
from restobot.core.llm import ChatCompletionClient, get_llm_client
from restobot.db.session import get_db
from restobot.services.gateway import EvolutionClient, get_gateway_client

logger = logging.getLogger(__name__)


async def get_redis(request: Request) -> redis.Redis:
    """Get Redis client from app state."""
    return request.app.state.redis


async def get_llm() -> ChatCompletionClient | None:
    """Shared LLM client, or None when no API key is configured."""
    return get_llm_client()


async def get_gateway() -> EvolutionClient:
    """Shared Evolution API client."""
    return get_gateway_client()


# =============================================================================
# Authentication Dependencies
# =============================================================================


async def verify_admin_api_key(
    settings: Annotated[Settings, Depends(get_settings)],
    x_api_key: str | None = Header(None, alias="X-API-Key"),
) -> bool:
    """Verify admin API requests using API key header.

    Dashboard should send X-API-Key header with each request.
    In development mode, authentication is skipped if no key is configured.
    """
    # Skip auth in development if no key configured
    if settings.is_development and not settings.admin_api_key:
        logger.warning("Admin API auth skipped - no key configured (dev mode)")
        return True

    if not settings.admin_api_key:
        logger.error("ADMIN_API_KEY not configured")
        raise HTTPException(status_code=500, detail="API authentication not configured")

    if not x_api_key:
        logger.warning("Admin API request missing X-API-Key header")
        raise HTTPException(status_code=401, detail="Missing API key")

    if x_api_key != settings.admin_api_key:
        logger.warning("Admin API request with invalid API key")
        raise HTTPException(status_code=401, detail="Invalid API key")

    return True


# =============================================================================
# Type Aliases
# =============================================================================

DbSession = Annotated[AsyncSession, Depends(get_db)]
RedisClient = Annotated[redis.Redis, Depends(get_redis)]
AppSettings = Annotated[Settings, Depends(get_settings)]
LLMClient = Annotated[ChatCompletionClient | None, Depends(get_llm)]
GatewayClient = Annotated[EvolutionClient, Depends(get_gateway)]
AdminAuth = Annotated[bool, Depends(verify_admin_api_key)]
