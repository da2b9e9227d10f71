"""Conversation and message schemas for the admin API."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from restobot.models.conversation import ConversationStatus, MessageType, SenderType


class ConversationRead(BaseModel):
    id: uuid.UUID
    agent_id: uuid.UUID
    restaurant_id: uuid.UUID
    customer_phone: str
    customer_name: str | None
    status: ConversationStatus
    channel: str
    assigned_human_id: uuid.UUID | None
    started_at: datetime
    last_message_at: datetime | None
    ended_at: datetime | None

    model_config = {"from_attributes": True}


class ConversationListResponse(BaseModel):
    conversations: list[ConversationRead]
    total: int
    page: int
    page_size: int


class MessageRead(BaseModel):
    id: uuid.UUID
    conversation_id: uuid.UUID
    sender_type: SenderType
    content: str
    message_type: MessageType
    whatsapp_message_id: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class ConversationTransition(BaseModel):
    status: ConversationStatus
    assigned_human_id: uuid.UUID | None = None


class HumanReply(BaseModel):
    content: str = Field(min_length=1, max_length=4096)


class HumanReplyResponse(BaseModel):
    message: MessageRead
    delivered: bool
