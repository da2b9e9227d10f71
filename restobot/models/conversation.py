"""Conversation and Message models."""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from restobot.db.base import Base, enum_column


class ConversationStatus(str, enum.Enum):
    """Conversation status. Allowed transitions live in :mod:`restobot.core.states`."""

    ACTIVE = "active"
    PAUSED = "paused"
    HUMAN_HANDOFF = "human_handoff"
    ENDED = "ended"


class SenderType(str, enum.Enum):
    """Who wrote a message."""

    CUSTOMER = "customer"
    AGENT = "agent"
    HUMAN = "human"


class MessageType(str, enum.Enum):
    """Message content type."""

    TEXT = "text"
    IMAGE = "image"
    AUDIO = "audio"


class Conversation(Base):
    """Exchange between one customer phone and one agent.

    At most one conversation per (agent, phone) may be active; the partial
    unique index enforces it at the database.
    """

    __tablename__ = "conversations"
    __table_args__ = (
        Index(
            "uq_conversations_active_agent_phone",
            "agent_id",
            "customer_phone",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    agent_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("agents.id"), nullable=False, index=True
    )
    restaurant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("restaurants.id"), nullable=False, index=True
    )
    customer_phone: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    customer_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[ConversationStatus] = mapped_column(
        enum_column(ConversationStatus), default=ConversationStatus.ACTIVE
    )
    channel: Mapped[str] = mapped_column(String(20), default="whatsapp")
    assigned_human_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    last_message_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    ended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    messages: Mapped[list["Message"]] = relationship(
        "Message", back_populates="conversation", order_by="Message.created_at"
    )


class Message(Base):
    """Individual messages within a conversation. Never updated once written."""

    __tablename__ = "messages"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    conversation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("conversations.id"), nullable=False, index=True
    )
    sender_type: Mapped[SenderType] = mapped_column(enum_column(SenderType), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    message_type: Mapped[MessageType] = mapped_column(
        enum_column(MessageType), default=MessageType.TEXT
    )
    whatsapp_message_id: Mapped[str | None] = mapped_column(
        String(100), nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True
    )

    # Relationships
    conversation: Mapped["Conversation"] = relationship(
        "Conversation", back_populates="messages"
    )
