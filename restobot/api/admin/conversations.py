"""Conversation management for the dashboard.

List and inspect conversations, move them between states, and let a human
operator answer the customer directly.
"""

import logging
import uuid
from typing import Any

from fastapi import APIRouter, HTTPException, Query
from sqlalchemy import desc, func, select

from restobot.api.deps import AdminAuth, AppSettings, DbSession, GatewayClient
from restobot.core.states import InvalidTransitionError, transition_conversation
from restobot.models.agent import Agent
from restobot.models.conversation import Conversation, ConversationStatus, Message, SenderType
from restobot.schemas.conversations import (
    ConversationListResponse,
    ConversationRead,
    ConversationTransition,
    HumanReply,
    HumanReplyResponse,
    MessageRead,
)
from restobot.services.gateway import MessageSendError
from restobot.services.sessions import SessionExpiryService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/admin/conversations", tags=["Conversations"])


async def _get_conversation(db: DbSession, conversation_id: uuid.UUID) -> Conversation:
    conversation = await db.get(Conversation, conversation_id)
    if conversation is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return conversation


@router.get("", response_model=ConversationListResponse)
async def list_conversations(
    db: DbSession,
    _auth: AdminAuth = None,
    restaurant_id: uuid.UUID | None = Query(default=None),
    status: ConversationStatus | None = Query(default=None, description="Filter by status"),
    search: str | None = Query(default=None, description="Search by phone number"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> ConversationListResponse:
    """List conversations, most recently active first."""
    query = select(Conversation)
    if restaurant_id is not None:
        query = query.where(Conversation.restaurant_id == restaurant_id)
    if status is not None:
        query = query.where(Conversation.status == status)
    if search:
        query = query.where(Conversation.customer_phone.contains(search))

    total = await db.scalar(select(func.count()).select_from(query.subquery())) or 0

    result = await db.execute(
        query.order_by(
            desc(func.coalesce(Conversation.last_message_at, Conversation.started_at))
        )
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return ConversationListResponse(
        conversations=[ConversationRead.model_validate(c) for c in result.scalars().all()],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{conversation_id}", response_model=ConversationRead)
async def get_conversation(
    conversation_id: uuid.UUID,
    db: DbSession,
    _auth: AdminAuth = None,
) -> Any:
    return await _get_conversation(db, conversation_id)


@router.get("/{conversation_id}/messages", response_model=list[MessageRead])
async def get_messages(
    conversation_id: uuid.UUID,
    db: DbSession,
    _auth: AdminAuth = None,
    limit: int = Query(default=100, ge=1, le=500),
) -> Any:
    """Message history, oldest first."""
    await _get_conversation(db, conversation_id)
    result = await db.execute(
        select(Message)
        .where(Message.conversation_id == conversation_id)
        .order_by(Message.created_at)
        .limit(limit)
    )
    return list(result.scalars().all())


@router.post("/{conversation_id}/status", response_model=ConversationRead)
async def change_status(
    conversation_id: uuid.UUID,
    body: ConversationTransition,
    db: DbSession,
    _auth: AdminAuth = None,
) -> Any:
    """Move a conversation to another state.

    Raises:
        HTTPException: 404 for an unknown conversation, 409 for a disallowed move
    """
    conversation = await _get_conversation(db, conversation_id)
    try:
        transition_conversation(conversation, body.status)
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))

    if body.assigned_human_id is not None and body.status == ConversationStatus.HUMAN_HANDOFF:
        conversation.assigned_human_id = body.assigned_human_id

    await db.flush()
    logger.info(f"Conversation {conversation_id} moved to {body.status.value}")
    return conversation


@router.post("/{conversation_id}/reply", response_model=HumanReplyResponse)
async def human_reply(
    conversation_id: uuid.UUID,
    body: HumanReply,
    db: DbSession,
    gateway: GatewayClient,
    _auth: AdminAuth = None,
) -> HumanReplyResponse:
    """Send a message written by a human operator.

    The message is stored even when the gateway is unreachable; ``delivered``
    reports whether the relay succeeded.
    """
    conversation = await _get_conversation(db, conversation_id)
    if conversation.status == ConversationStatus.ENDED:
        raise HTTPException(status_code=409, detail="Conversation has ended")

    message = Message(
        conversation_id=conversation.id,
        sender_type=SenderType.HUMAN,
        content=body.content,
    )
    db.add(message)
    await db.flush()

    agent = await db.get(Agent, conversation.agent_id)
    delivered = False
    if agent is not None and agent.can_relay:
        try:
            await gateway.send_text_message(
                instance=agent.evolution_api_instance,
                api_key=agent.evolution_api_token,
                to=conversation.customer_phone,
                text=body.content,
            )
            delivered = True
        except MessageSendError as e:
            logger.error(f"Human reply not delivered: conversation_id={conversation_id}, error={e}")
    else:
        logger.warning(f"Human reply not relayed, agent has no gateway credentials: {conversation.agent_id}")

    conversation.last_message_at = message.created_at
    return HumanReplyResponse(message=MessageRead.model_validate(message), delivered=delivered)


# =============================================================================
# Session expiry
# =============================================================================


@router.get("/sessions/stats")
async def get_session_stats(
    db: DbSession,
    settings: AppSettings,
    _auth: AdminAuth = None,
) -> dict[str, Any]:
    """Counts per status and how many active conversations are idle."""
    service = SessionExpiryService(db, settings)
    return await service.get_session_stats()


@router.post("/sessions/expire")
async def expire_sessions(
    db: DbSession,
    settings: AppSettings,
    _auth: AdminAuth = None,
    dry_run: bool = Query(default=True, description="If true, only preview what would be ended"),
    hours: int | None = Query(default=None, ge=0, description="Override inactivity window"),
) -> dict[str, Any]:
    """End idle active conversations. Defaults to a dry run."""
    service = SessionExpiryService(db, settings)
    return await service.expire_inactive(dry_run=dry_run, hours_override=hours)
