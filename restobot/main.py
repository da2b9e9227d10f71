"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

import redis.asyncio as redis
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from restobot.config import get_settings
from restobot.core.llm import shutdown_llm_client
from restobot.db.session import dispose_engine
from restobot.rate_limit import limiter
from restobot.services.gateway import shutdown_gateway_client
from restobot.api.admin import catalog, conversations, health, insights, orders
from restobot.api.webhooks import whatsapp

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager for startup/shutdown events."""
    # Startup: Initialize Redis connection pool
    app.state.redis = redis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    if not settings.llm_enabled:
        logger.warning("OPENAI_API_KEY not set: inbound messages are stored but not answered")

    yield
    # Shutdown: Close connections
    await shutdown_llm_client()
    await shutdown_gateway_client()
    await app.state.redis.close()
    await dispose_engine()


app = FastAPI(
    title="Restobot",
    description="Multi-tenant WhatsApp assistant for restaurants",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.is_development else settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(whatsapp.router)
app.include_router(catalog.router)
app.include_router(conversations.router)
app.include_router(orders.router)
app.include_router(insights.router)
