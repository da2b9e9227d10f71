import json
import uuid
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

import httpx
import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from restobot.api.deps import get_gateway, get_llm, get_redis
from restobot.config import Settings, get_settings
from restobot.core.llm import ChatCompletionClient
from restobot.core.prompts import SENTIMENT_SYSTEM_PROMPT
from restobot.db.base import Base
from restobot.db.session import get_db
from restobot.main import app
from restobot.models import Agent, FallbackScenario, Product, ProductInventory, Restaurant
from restobot.rate_limit import limiter
from restobot.services.gateway import EvolutionClient

AGENT_INSTANCE = "pizzaria-bella"
AGENT_TOKEN = "evo-token-123"
CUSTOMER_PHONE = "5511987654321"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        app_env="development",
        database_url="sqlite+aiosqlite://",
        openai_api_key="test-key",
        default_ai_model="gpt-4o-mini",
        sentiment_model="gpt-4o-mini",
        evolution_api_base_url="https://evolution.test",
        admin_api_key="",
        message_dedup_enabled=True,
    )


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite does not emit BEGIN itself, which breaks SAVEPOINT
    @event.listens_for(engine.sync_engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


# =============================================================================
# External services
# =============================================================================


class FakeRedis:
    """The handful of Redis commands the app uses."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def exists(self, key: str) -> int:
        return int(key in self.store)

    async def setex(self, key: str, ttl: int, value: str) -> None:
        self.store[key] = value
        self.ttls[key] = ttl

    async def ping(self) -> bool:
        return True


@dataclass
class FakeLLM:
    """Scripted chat-completion backend served through httpx.MockTransport."""

    reply: str = "Olá! Temos pizza margherita hoje."
    sentiment: dict[str, Any] = field(default_factory=lambda: {
        "sentiment_score": 0.6,
        "sentiment_label": "positive",
        "confidence_score": 0.9,
        "emotional_indicators": {"satisfaction": 0.8},
        "response_strategy": "promotional",
    })
    sentiment_status: int = 200
    completion_status: int = 200
    requests: list[dict[str, Any]] = field(default_factory=list)

    @staticmethod
    def is_sentiment_request(body: dict[str, Any]) -> bool:
        return body["messages"][0]["content"] == SENTIMENT_SYSTEM_PROMPT

    @property
    def completion_requests(self) -> list[dict[str, Any]]:
        return [r for r in self.requests if not self.is_sentiment_request(r)]

    @property
    def sentiment_requests(self) -> list[dict[str, Any]]:
        return [r for r in self.requests if self.is_sentiment_request(r)]

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.requests.append(body)
        if self.is_sentiment_request(body):
            if self.sentiment_status != 200:
                return httpx.Response(self.sentiment_status, text="upstream error")
            content = json.dumps(self.sentiment)
        else:
            if self.completion_status != 200:
                return httpx.Response(self.completion_status, text="upstream error")
            content = self.reply
        return httpx.Response(200, json={
            "model": body["model"],
            "choices": [{"message": {"role": "assistant", "content": content}, "finish_reason": "stop"}],
            "usage": {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
        })


@dataclass
class FakeGateway:
    """Records sendText calls; ``fail`` simulates a network error."""

    fail: bool = False
    status: int = 201
    requests: list[httpx.Request] = field(default_factory=list)

    @property
    def sent(self) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail:
            raise httpx.ConnectError("gateway unreachable", request=request)
        return httpx.Response(self.status, json={"key": {"id": "OUT1"}, "status": "PENDING"})


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
async def llm_client(settings, fake_llm) -> AsyncIterator[ChatCompletionClient]:
    client = ChatCompletionClient(settings, transport=httpx.MockTransport(fake_llm.handler))
    yield client
    await client.close()


@pytest.fixture
async def gateway_client(settings, fake_gateway) -> AsyncIterator[EvolutionClient]:
    client = EvolutionClient(settings, transport=httpx.MockTransport(fake_gateway.handler))
    yield client
    await client.close()


# =============================================================================
# App
# =============================================================================


@pytest.fixture
def llm_enabled() -> bool:
    return True


@pytest.fixture
async def client(
    settings, session_factory, fake_redis, llm_client, gateway_client, llm_enabled
) -> AsyncIterator[httpx.AsyncClient]:
    async def _get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_redis] = lambda: fake_redis
    app.dependency_overrides[get_llm] = lambda: llm_client if llm_enabled else None
    app.dependency_overrides[get_gateway] = lambda: gateway_client
    limiter.enabled = False

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    limiter.enabled = True


# =============================================================================
# Seed data
# =============================================================================


@pytest.fixture
async def restaurant(db) -> Restaurant:
    restaurant = Restaurant(name="Pizzaria Bella", slug=f"bella-{uuid.uuid4().hex[:6]}")
    db.add(restaurant)
    await db.commit()
    return restaurant


@pytest.fixture
async def agent(db, restaurant) -> Agent:
    agent = Agent(
        restaurant_id=restaurant.id,
        name="Bella",
        personality="You are Bella, the friendly assistant of Pizzaria Bella.",
        instructions="Always offer the dessert of the day.",
        is_active=True,
        evolution_api_instance=AGENT_INSTANCE,
        evolution_api_token=AGENT_TOKEN,
        ai_model="gpt-4o-mini",
        max_tokens=300,
        temperature=0.5,
        context_memory_turns=10,
        enable_sentiment_analysis=True,
        enable_order_intent_detection=True,
        enable_conversation_summary=True,
    )
    db.add(agent)
    await db.commit()
    return agent


@pytest.fixture
async def fallback_scenario(db, agent) -> FallbackScenario:
    scenario = FallbackScenario(
        restaurant_id=agent.restaurant_id,
        agent_id=agent.id,
        scenario_name="angry_customer",
        trigger_conditions={"sentiment_threshold": -0.6},
        custom_message="Sinto muito! Um atendente vai falar com você agora.",
        auto_trigger=True,
        priority_level=10,
    )
    db.add(scenario)
    await db.commit()
    return scenario


@pytest.fixture
async def product(db, restaurant) -> Product:
    product = Product(
        restaurant_id=restaurant.id,
        name="Pizza Margherita",
        price=Decimal("42.50"),
        is_available=True,
    )
    db.add(product)
    await db.flush()
    db.add(ProductInventory(
        restaurant_id=restaurant.id,
        product_id=product.id,
        current_stock=3,
        low_stock_threshold=5,
    ))
    await db.commit()
    return product


def make_payload(
    text: str | None = "Oi, vocês têm pizza hoje?",
    message_id: str = "MSG-1",
    phone: str = CUSTOMER_PHONE,
    instance: str | None = AGENT_INSTANCE,
    from_me: bool = False,
    push_name: str | None = "Maria",
) -> dict[str, Any]:
    """Evolution API ``messages.upsert`` event."""
    data: dict[str, Any] = {
        "key": {"remoteJid": f"{phone}@s.whatsapp.net", "id": message_id, "fromMe": from_me},
        "pushName": push_name,
    }
    if text is not None:
        data["message"] = {"conversation": text}
    return {"event": "messages.upsert", "instance": instance, "data": data}
