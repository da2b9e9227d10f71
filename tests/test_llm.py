import httpx
import pytest

from restobot.config import Settings
from restobot.core.llm import ChatCompletionClient, LLMError, LLMResponseError


def completion_response(content="Olá!") -> httpx.Response:
    return httpx.Response(200, json={
        "model": "gpt-4o-mini",
        "choices": [{"message": {"content": content}, "finish_reason": "stop"}],
        "usage": {"prompt_tokens": 3, "completion_tokens": 2, "total_tokens": 5},
    })


def make_client(settings, handler) -> ChatCompletionClient:
    return ChatCompletionClient(settings, transport=httpx.MockTransport(handler))


def test_requires_api_key():
    with pytest.raises(ValueError):
        ChatCompletionClient(Settings(openai_api_key=""))


async def test_request_shape(settings):
    seen: list[httpx.Request] = []

    def handler(request):
        seen.append(request)
        return completion_response()

    client = make_client(settings, handler)
    result = await client.chat_completion(
        [{"role": "user", "content": "Oi"}], model="gpt-4o-mini", max_tokens=120, temperature=0.3
    )
    await client.close()

    assert result["content"] == "Olá!"
    assert result["usage"]["total_tokens"] == 5
    request = seen[0]
    assert str(request.url) == "https://api.openai.com/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer test-key"
    body = httpx.Response(200, content=request.content).json()
    assert body == {
        "model": "gpt-4o-mini",
        "messages": [{"role": "user", "content": "Oi"}],
        "max_completion_tokens": 120,
        "temperature": 0.3,
    }


async def test_temperature_dropped_for_models_without_sampling(settings):
    bodies = []

    def handler(request):
        bodies.append(httpx.Response(200, content=request.content).json())
        return completion_response()

    client = make_client(settings, handler)
    await client.chat_completion([{"role": "user", "content": "Oi"}], model="o3-mini", temperature=0.7)
    await client.close()

    assert "temperature" not in bodies[0]


async def test_default_model(settings):
    bodies = []

    def handler(request):
        bodies.append(httpx.Response(200, content=request.content).json())
        return completion_response()

    client = make_client(settings, handler)
    await client.chat_completion([{"role": "user", "content": "Oi"}])
    await client.close()

    assert bodies[0]["model"] == settings.default_ai_model


async def test_api_error_raises(settings):
    client = make_client(settings, lambda request: httpx.Response(400, text="bad request"))

    with pytest.raises(LLMError):
        await client.chat_completion([{"role": "user", "content": "Oi"}])
    await client.close()


async def test_no_choices_raises(settings):
    client = make_client(settings, lambda request: httpx.Response(200, json={"choices": []}))

    with pytest.raises(LLMResponseError):
        await client.chat_completion([{"role": "user", "content": "Oi"}])
    await client.close()
