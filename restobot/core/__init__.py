"""Core building blocks: the LLM client, prompt construction and state machines."""

from restobot.core.llm import (
    ChatCompletionClient,
    LLMError,
    LLMConnectionError,
    LLMRateLimitError,
    LLMResponseError,
    get_llm_client,
    shutdown_llm_client,
)
from restobot.core.prompts import (
    DEFAULT_FALLBACK_MESSAGE,
    SENTIMENT_SYSTEM_PROMPT,
    AgentProfile,
    PromptContext,
    SystemPrompt,
    build_system_prompt,
)
from restobot.core.states import InvalidTransitionError, transition_conversation, transition_order

__all__ = [
    # LLM Client
    "ChatCompletionClient",
    "LLMError",
    "LLMConnectionError",
    "LLMRateLimitError",
    "LLMResponseError",
    "get_llm_client",
    "shutdown_llm_client",
    # Prompts
    "DEFAULT_FALLBACK_MESSAGE",
    "SENTIMENT_SYSTEM_PROMPT",
    "AgentProfile",
    "PromptContext",
    "SystemPrompt",
    "build_system_prompt",
    # State machines
    "InvalidTransitionError",
    "transition_conversation",
    "transition_order",
]
