"""Async client for OpenAI-compatible chat completion APIs.

The pipeline only ever sends one system turn and one user turn, so this
client exposes a single ``chat_completion`` call. Model, token limit and
temperature come from the calling agent's configuration.
"""

import logging
from typing import Any

import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from restobot.config import Settings, get_settings

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """Base exception for LLM-related errors."""
    pass


class LLMConnectionError(LLMError):
    """Raised when connection to LLM API fails."""
    pass


class LLMRateLimitError(LLMError):
    """Raised when rate limit is exceeded."""
    pass


class LLMResponseError(LLMError):
    """Raised when LLM returns an invalid or unexpected response."""
    pass


class ChatCompletionClient:
    """Async client for an OpenAI-compatible ``/chat/completions`` endpoint.

    Usage:
        client = ChatCompletionClient(settings)
        response = await client.chat_completion(
            messages=[{"role": "user", "content": "Hello"}],
            model="gpt-4o-mini",
        )
    """

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Application settings (API key, base URL, timeout).
            transport: Optional httpx transport, used by tests to stub the API.
        """
        if not settings.openai_api_key:
            raise ValueError("OPENAI_API_KEY is not configured")

        self._api_key = settings.openai_api_key
        self._base_url = settings.openai_base_url.rstrip("/")
        self._default_model = settings.default_ai_model
        self._temperature_models = set(settings.temperature_models)
        self._client = httpx.AsyncClient(
            timeout=settings.llm_timeout_seconds,
            transport=transport,
        )

    @property
    def default_model(self) -> str:
        """Get the configured fallback model name."""
        return self._default_model

    def _build_request_body(
        self,
        messages: list[dict[str, Any]],
        model: str,
        max_tokens: int,
        temperature: float | None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "max_completion_tokens": max_tokens,
        }
        # Reasoning models reject a sampling temperature
        if temperature is not None and model in self._temperature_models:
            body["temperature"] = temperature
        return body

    @retry(
        retry=retry_if_exception_type((httpx.ConnectError, httpx.TimeoutException, LLMRateLimitError)),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=30),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _post(self, body: dict[str, Any]) -> dict[str, Any]:
        response = await self._client.post(
            f"{self._base_url}/chat/completions",
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
            },
            json=body,
        )

        if response.status_code == 429:
            raise LLMRateLimitError("LLM API rate limit exceeded")

        if response.status_code != 200:
            error_text = response.text
            logger.error(f"LLM API error: {response.status_code} - {error_text}")
            raise LLMError(f"LLM API error: {response.status_code} - {error_text}")

        return response.json()

    async def chat_completion(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        max_tokens: int = 500,
        temperature: float | None = None,
    ) -> dict[str, Any]:
        """Send a chat completion request.

        Args:
            messages: List of message objects with role and content.
            model: Model name; defaults to ``settings.default_ai_model``.
            max_tokens: Maximum completion tokens. Default 500.
            temperature: Sampling temperature, only sent to models that accept it.

        Returns:
            dict with the following structure:
            {
                "content": str | None,
                "finish_reason": str,
                "usage": dict,
                "model": str,
            }

        Raises:
            LLMConnectionError: If connection to API fails after retries.
            LLMRateLimitError: If rate limit is still exceeded after retries.
            LLMResponseError: If API returns an unexpected response.
            LLMError: For other API errors.
        """
        model = model or self._default_model
        body = self._build_request_body(messages, model, max_tokens, temperature)

        logger.debug(
            "Sending chat completion request",
            extra={"model": model, "message_count": len(messages)},
        )

        try:
            data = await self._post(body)
        except httpx.ConnectError as e:
            logger.error(f"Connection error to LLM API: {e}")
            raise LLMConnectionError(f"Failed to connect to LLM API: {e}") from e
        except httpx.TimeoutException as e:
            logger.error(f"Timeout connecting to LLM API: {e}")
            raise LLMConnectionError(f"Timeout connecting to LLM API: {e}") from e
        except LLMError:
            raise
        except Exception as e:
            logger.exception(f"Unexpected error in chat completion: {e}")
            raise LLMResponseError(f"Unexpected error: {e}") from e

        choices = data.get("choices") or []
        if not choices:
            raise LLMResponseError("LLM API returned no choices")

        choice = choices[0]
        result = {
            "content": (choice.get("message") or {}).get("content"),
            "finish_reason": choice.get("finish_reason", "stop"),
            "usage": data.get("usage", {
                "prompt_tokens": 0,
                "completion_tokens": 0,
                "total_tokens": 0,
            }),
            "model": data.get("model", model),
        }

        logger.debug(
            "Chat completion successful",
            extra={
                "finish_reason": result["finish_reason"],
                "total_tokens": result["usage"].get("total_tokens", 0),
            },
        )
        return result

    async def close(self) -> None:
        """Close the client and release resources."""
        await self._client.aclose()

    async def __aenter__(self) -> "ChatCompletionClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()


# Singleton instance for application-wide use
_client_instance: ChatCompletionClient | None = None


def get_llm_client() -> ChatCompletionClient | None:
    """Get or create the global LLM client.

    Returns:
        The shared client, or None when no API key is configured.
    """
    global _client_instance
    settings = get_settings()
    if not settings.llm_enabled:
        return None
    if _client_instance is None:
        _client_instance = ChatCompletionClient(settings)
    return _client_instance


async def shutdown_llm_client() -> None:
    """Shutdown the global LLM client instance.

    Call this during application shutdown to properly release resources.
    """
    global _client_instance
    if _client_instance is not None:
        await _client_instance.close()
        _client_instance = None
