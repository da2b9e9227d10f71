"""Evolution API client for sending WhatsApp messages.

Each agent owns its own gateway instance and API token, so credentials are
passed per call rather than configured on the client. Relay failures raise
:class:`MessageSendError`; callers decide whether that is fatal.

Reference: https://doc.evolution-api.com/v1/api-reference/message-controller/send-text
"""

import logging
from typing import Any

import httpx

from restobot.config import Settings, get_settings
from restobot.schemas.evolution import SendTextRequest
from restobot.utils.phone import mask_phone

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 4096
CHUNK_SIZE = 4000


class GatewayError(Exception):
    """Base exception for messaging gateway errors."""
    pass


class MessageSendError(GatewayError):
    """Raised when message sending fails."""
    pass


class EvolutionClient:
    """Async client for the Evolution API ``sendText`` endpoint."""

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Application settings (base URL, timeout)
            transport: Optional httpx transport, used by tests to stub the gateway
        """
        self._base_url = settings.evolution_api_base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            timeout=settings.gateway_timeout_seconds,
            transport=transport,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        if not self._client.is_closed:
            await self._client.aclose()

    async def _send_api_request(
        self,
        instance: str,
        api_key: str,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        """POST one message. No retries: a failed relay is reported, not repeated."""
        url = f"{self._base_url}/message/sendText/{instance}"

        try:
            response = await self._client.post(
                url,
                json=payload,
                headers={"apikey": api_key, "Content-Type": "application/json"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Evolution API error: status={e.response.status_code}, body={e.response.text}"
            )
            raise MessageSendError(f"Failed to send message: {e.response.status_code}") from e
        except httpx.RequestError as e:
            logger.error(f"Evolution API request error: {e}")
            raise MessageSendError(f"Failed to connect to Evolution API: {e}") from e

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {"raw": response.text}

    async def send_text_message(
        self,
        instance: str,
        api_key: str,
        to: str,
        text: str,
    ) -> dict[str, Any]:
        """Send a text message, split into chunks when over the WhatsApp limit.

        Args:
            instance: Gateway instance name of the sending agent
            api_key: Gateway API token of the sending agent
            to: Recipient phone number (digits only)
            text: Message body

        Returns:
            Gateway response for the last chunk sent

        Raises:
            MessageSendError: If the gateway rejects the message or is unreachable
        """
        if len(text) > MAX_TEXT_LENGTH:
            chunks = [text[i:i + CHUNK_SIZE] for i in range(0, len(text), CHUNK_SIZE)]
        else:
            chunks = [text]

        result: dict[str, Any] = {}
        for chunk in chunks:
            payload = SendTextRequest.build(to, chunk).to_payload()
            result = await self._send_api_request(instance, api_key, payload)

        logger.info(f"Sent message to {mask_phone(to)} via instance {instance}")
        return result


# Singleton instance for application-wide use
_client_instance: EvolutionClient | None = None


def get_gateway_client() -> EvolutionClient:
    """Get or create the global gateway client."""
    global _client_instance
    if _client_instance is None:
        _client_instance = EvolutionClient(get_settings())
    return _client_instance


async def shutdown_gateway_client() -> None:
    """Close the global gateway client. Call during application shutdown."""
    global _client_instance
    if _client_instance is not None:
        await _client_instance.close()
        _client_instance = None
