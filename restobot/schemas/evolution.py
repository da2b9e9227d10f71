"""Pydantic schemas for Evolution API (WhatsApp gateway) payloads.

Inbound events arrive as::

    {
        "event": "messages.upsert",
        "instance": "my-instance",
        "data": {
            "key": {"remoteJid": "5511999999999@s.whatsapp.net", "id": "ABC", "fromMe": false},
            "pushName": "Maria",
            "message": {"conversation": "Oi!"}
        }
    }
"""

from typing import Any

from pydantic import BaseModel, Field

from restobot.models.conversation import MessageType

JID_SUFFIX = "@s.whatsapp.net"
UNSUPPORTED_MESSAGE_TEXT = "Unsupported message"


# ============================================================================
# Inbound webhook
# ============================================================================

class MessageKey(BaseModel):
    """Identity of an inbound message."""
    remote_jid: str | None = Field(default=None, alias="remoteJid")
    id: str | None = None
    from_me: bool = Field(default=False, alias="fromMe")

    model_config = {"populate_by_name": True}


class ExtendedText(BaseModel):
    text: str | None = None


class MediaMessage(BaseModel):
    caption: str | None = None


class MessageContent(BaseModel):
    """The subset of the Baileys message union the assistant understands."""
    conversation: str | None = None
    extended_text_message: ExtendedText | None = Field(default=None, alias="extendedTextMessage")
    image_message: MediaMessage | None = Field(default=None, alias="imageMessage")
    audio_message: dict[str, Any] | None = Field(default=None, alias="audioMessage")

    model_config = {"populate_by_name": True, "extra": "allow"}

    @property
    def message_type(self) -> MessageType:
        if self.image_message is not None:
            return MessageType.IMAGE
        if self.audio_message is not None:
            return MessageType.AUDIO
        return MessageType.TEXT

    @property
    def text(self) -> str:
        """Message body, or a placeholder for content types without text."""
        if self.conversation:
            return self.conversation
        if self.extended_text_message and self.extended_text_message.text:
            return self.extended_text_message.text
        if self.image_message and self.image_message.caption:
            return self.image_message.caption
        return UNSUPPORTED_MESSAGE_TEXT


class EventData(BaseModel):
    key: MessageKey = Field(default_factory=MessageKey)
    push_name: str | None = Field(default=None, alias="pushName")
    message: MessageContent | None = None

    model_config = {"populate_by_name": True}


class EvolutionWebhookPayload(BaseModel):
    """Envelope POSTed by the gateway for every event."""
    event: str | None = None
    instance: str | None = None
    data: EventData | None = None

    model_config = {"extra": "allow"}


class InboundMessage(BaseModel):
    """Normalized inbound message handed to the pipeline."""
    customer_phone: str
    customer_name: str | None = None
    instance: str | None = None
    text: str
    message_type: MessageType = MessageType.TEXT
    provider_message_id: str | None = None


def phone_from_jid(remote_jid: str) -> str:
    """Strip the WhatsApp JID suffix: ``5511999@s.whatsapp.net`` -> ``5511999``."""
    return remote_jid.replace(JID_SUFFIX, "")


def parse_inbound_message(payload: EvolutionWebhookPayload) -> InboundMessage | None:
    """Extract the customer message from an event.

    Returns:
        The normalized message, or None when the event carries no message,
        has no sender, or was sent by the business itself.
    """
    data = payload.data
    if data is None or data.message is None:
        return None
    if data.key.from_me or not data.key.remote_jid:
        return None

    return InboundMessage(
        customer_phone=phone_from_jid(data.key.remote_jid),
        customer_name=data.push_name,
        instance=payload.instance,
        text=data.message.text,
        message_type=data.message.message_type,
        provider_message_id=data.key.id,
    )


# ============================================================================
# Outbound
# ============================================================================

class TextMessageBody(BaseModel):
    text: str


class SendTextRequest(BaseModel):
    """Body of ``POST /message/sendText/{instance}``."""
    number: str
    text_message: TextMessageBody = Field(alias="textMessage")

    model_config = {"populate_by_name": True}

    @classmethod
    def build(cls, number: str, text: str) -> "SendTextRequest":
        return cls(number=number, text_message=TextMessageBody(text=text))

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)
