"""WhatsApp webhook endpoint for the Evolution API gateway.

This module handles:
- GET: Webhook verification (echo the challenge)
- POST: Inbound message events, run through :class:`WebhookPipeline`
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError

from restobot.api.deps import AppSettings, DbSession, GatewayClient, LLMClient, RedisClient
from restobot.config import get_settings
from restobot.rate_limit import limiter
from restobot.schemas.evolution import EvolutionWebhookPayload
from restobot.services.pipeline import PipelineStatus, WebhookPipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks/whatsapp", tags=["WhatsApp"])


# ============================================================================
# GET - Webhook Verification
# ============================================================================


@router.get("", response_class=PlainTextResponse)
async def verify_webhook(
    token: Annotated[str | None, Query()] = None,
    challenge: Annotated[str | None, Query()] = None,
) -> PlainTextResponse:
    """Echo ``challenge`` when both ``token`` and ``challenge`` are present.

    Returns:
        The challenge as ``text/plain``, or 400 when a parameter is missing
    """
    logger.info(f"Webhook verification request: token_provided={bool(token)}")

    if not token or not challenge:
        logger.warning("Missing required verification parameters")
        return PlainTextResponse("Webhook verification failed", status_code=400)

    return PlainTextResponse(challenge)


# ============================================================================
# POST - Receive Messages
# ============================================================================


@router.post("", status_code=200)
@limiter.limit(lambda: get_settings().rate_limit_webhook)
async def receive_webhook(
    request: Request,
    db: DbSession,
    redis_client: RedisClient,
    llm: LLMClient,
    gateway: GatewayClient,
    settings: AppSettings,
) -> Any:
    """Receive one Evolution API event.

    Returns:
        ``{"status": ...}`` with one of ignored, duplicate, no_agent, processed
        or fallback_triggered (plus ``scenario``); HTTP 500 with
        ``{"error": ...}`` when processing fails.
    """
    try:
        body = await request.json()
        payload = EvolutionWebhookPayload.model_validate(body)
    except (ValueError, ValidationError) as e:
        # Anything we cannot read is not a message event
        logger.warning(f"Unreadable webhook payload: {e}")
        return {"status": PipelineStatus.IGNORED.value}

    pipeline = WebhookPipeline(settings, db, redis_client, llm, gateway)
    try:
        result = await pipeline.handle(payload)
    except Exception as e:
        logger.exception(f"Error processing webhook event: {e}")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    logger.info(
        f"Webhook processed: status={result.status.value}, "
        f"steps={result.completed_steps}, failed={result.failed_steps}"
    )
    return result.to_response()
