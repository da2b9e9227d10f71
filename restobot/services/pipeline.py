"""Inbound WhatsApp message pipeline.

Flow for one gateway event::

    parse -> dedup -> agent lookup -> conversation -> inbound message (committed)
          -> sentiment? -> fallback -> context -> completion -> learning? -> relay?

Everything after the inbound commit is an ordered list of named
:class:`PipelineStep` objects. A step tagged optional that raises is logged
and skipped, with its database writes rolled back to a savepoint. A required
step that raises aborts the pipeline and propagates to the webhook handler.
"""

import enum
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import redis.asyncio as redis
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from restobot.config import Settings
from restobot.core.llm import ChatCompletionClient, LLMResponseError
from restobot.core.prompts import DEFAULT_FALLBACK_MESSAGE, PromptContext, build_system_prompt
from restobot.core.states import transition_conversation
from restobot.models.agent import Agent, FallbackScenario
from restobot.models.conversation import (
    Conversation,
    ConversationStatus,
    Message,
    MessageType,
    SenderType,
)
from restobot.schemas.evolution import EvolutionWebhookPayload, InboundMessage, parse_inbound_message
from restobot.schemas.sentiment import SentimentResult
from restobot.services.context import ContextService
from restobot.services.gateway import EvolutionClient
from restobot.services.learning import LearningService
from restobot.services.sentiment import SentimentAnalyzer
from restobot.utils.phone import mask_phone

logger = logging.getLogger(__name__)

MESSAGE_DEDUP_TTL_SECONDS = 5 * 60  # 5 minutes for deduplication
DEFAULT_CUSTOMER_NAME = "Customer"
DEFAULT_TEMPERATURE = 0.7


class PipelineStatus(str, enum.Enum):
    """Outcome reported back to the gateway."""

    IGNORED = "ignored"
    DUPLICATE = "duplicate"
    NO_AGENT = "no_agent"
    PROCESSED = "processed"
    FALLBACK_TRIGGERED = "fallback_triggered"


@dataclass
class PipelineState:
    """Mutable state threaded through the steps of one run."""

    inbound: InboundMessage
    agent: Agent
    conversation: Conversation
    customer_message: Message
    sentiment: SentimentResult | None = None
    prompt_context: PromptContext | None = None
    reply: Message | None = None
    scenario: FallbackScenario | None = None
    short_circuited: bool = False
    delivered: bool = False


StepFn = Callable[[PipelineState], Awaitable[None]]


@dataclass(frozen=True)
class PipelineStep:
    """One named stage of the pipeline.

    Attributes:
        name: Step name used in logs and results
        run: Coroutine that reads and updates the state
        required: Whether a failure aborts the pipeline
        when: Predicate deciding whether the step applies to this run
        after_short_circuit: Still runs once an earlier step short-circuited
    """

    name: str
    run: StepFn
    required: bool = True
    when: Callable[[PipelineState], bool] = lambda state: True
    after_short_circuit: bool = False


@dataclass
class PipelineResult:
    status: PipelineStatus
    scenario: str | None = None
    conversation_id: Any = None
    completed_steps: list[str] = field(default_factory=list)
    skipped_steps: list[str] = field(default_factory=list)
    failed_steps: list[str] = field(default_factory=list)

    def to_response(self) -> dict[str, Any]:
        body: dict[str, Any] = {"status": self.status.value}
        if self.scenario is not None:
            body["scenario"] = self.scenario
        return body


class WebhookPipeline:
    """Processes inbound gateway events for every tenant.

    Usage:
        pipeline = WebhookPipeline(settings, db, redis_client, llm, gateway)
        result = await pipeline.handle(payload)
    """

    def __init__(
        self,
        settings: Settings,
        db: AsyncSession,
        redis_client: redis.Redis,
        llm: ChatCompletionClient | None,
        gateway: EvolutionClient,
    ) -> None:
        self._settings = settings
        self._db = db
        self._redis = redis_client
        self._llm = llm
        self._gateway = gateway
        self._context = ContextService(db)
        self._learning = LearningService(db)
        self._sentiment = SentimentAnalyzer(llm, settings) if llm is not None else None

    @property
    def steps(self) -> list[PipelineStep]:
        """The ordered steps run after the inbound message is stored."""
        return [
            PipelineStep(
                "sentiment",
                self._step_sentiment,
                required=False,
                when=lambda s: self._sentiment is not None and s.agent.enable_sentiment_analysis,
            ),
            PipelineStep("fallback", self._step_fallback, when=self._needs_escalation_check),
            PipelineStep("context", self._step_context, when=lambda s: self._llm is not None),
            PipelineStep("completion", self._step_completion, when=lambda s: self._llm is not None),
            PipelineStep(
                "learning",
                self._step_learning,
                required=False,
                when=lambda s: s.reply is not None,
            ),
            PipelineStep(
                "relay",
                self._step_relay,
                required=False,
                when=lambda s: s.reply is not None,
                after_short_circuit=True,
            ),
        ]

    # ========================================================================
    # Message Deduplication
    # ========================================================================

    @staticmethod
    def _dedup_key(provider_message_id: str) -> str:
        return f"wa:msg:processed:{provider_message_id}"

    async def is_duplicate_message(self, provider_message_id: str) -> bool:
        """Check if a message has already been processed."""
        exists = await self._redis.exists(self._dedup_key(provider_message_id))
        return bool(exists)

    async def mark_message_processed(self, provider_message_id: str) -> None:
        """Mark a message as processed for deduplication."""
        await self._redis.setex(
            self._dedup_key(provider_message_id), MESSAGE_DEDUP_TTL_SECONDS, "1"
        )

    # ========================================================================
    # Ingestion
    # ========================================================================

    async def find_agent(self, customer_phone: str, instance: str | None) -> Agent | None:
        """Active agent matching the sender number or the gateway instance."""
        conditions = [Agent.whatsapp_number == customer_phone]
        if instance:
            conditions.append(Agent.evolution_api_instance == instance)

        result = await self._db.execute(
            select(Agent)
            .where(Agent.is_active.is_(True), or_(*conditions))
            .order_by(Agent.created_at)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_or_create_conversation(
        self,
        agent: Agent,
        customer_phone: str,
        customer_name: str | None,
    ) -> Conversation:
        """Get the active conversation for (agent, phone) or open one.

        The insert runs inside a SAVEPOINT; if a concurrent request already
        opened the conversation the partial unique index rejects ours and the
        winner is re-read.
        """
        query = select(Conversation).where(
            Conversation.agent_id == agent.id,
            Conversation.customer_phone == customer_phone,
            Conversation.status == ConversationStatus.ACTIVE,
        )
        conversation = (await self._db.execute(query)).scalar_one_or_none()
        if conversation is not None:
            return conversation

        handoff_id = await self._db.scalar(
            select(Conversation.id)
            .where(
                Conversation.agent_id == agent.id,
                Conversation.customer_phone == customer_phone,
                Conversation.status == ConversationStatus.HUMAN_HANDOFF,
            )
            .limit(1)
        )
        if handoff_id is not None:
            logger.warning(
                f"Opening a new conversation while {handoff_id} awaits a human: "
                f"agent_id={agent.id}, phone={mask_phone(customer_phone)}"
            )

        conversation = Conversation(
            agent_id=agent.id,
            restaurant_id=agent.restaurant_id,
            customer_phone=customer_phone,
            customer_name=customer_name or DEFAULT_CUSTOMER_NAME,
            status=ConversationStatus.ACTIVE,
            channel="whatsapp",
        )
        try:
            async with self._db.begin_nested():
                self._db.add(conversation)
        except IntegrityError:
            logger.info(
                f"Conversation opened concurrently, reusing it: agent_id={agent.id}, "
                f"phone={mask_phone(customer_phone)}"
            )
            return (await self._db.execute(query)).scalar_one()

        logger.info(
            f"Created new conversation: agent_id={agent.id}, conversation_id={conversation.id}"
        )
        return conversation

    async def save_message(
        self,
        conversation: Conversation,
        sender_type: SenderType,
        content: str,
        message_type: MessageType = MessageType.TEXT,
        whatsapp_message_id: str | None = None,
    ) -> Message:
        """Append a message and bump the conversation's activity timestamp."""
        message = Message(
            conversation_id=conversation.id,
            sender_type=sender_type,
            content=content,
            message_type=message_type,
            whatsapp_message_id=whatsapp_message_id,
        )
        self._db.add(message)
        conversation.last_message_at = datetime.now(timezone.utc)
        await self._db.flush()
        return message

    # ========================================================================
    # Entry point
    # ========================================================================

    async def handle(self, payload: EvolutionWebhookPayload) -> PipelineResult:
        """Process one gateway event end to end."""
        inbound = parse_inbound_message(payload)
        if inbound is None:
            logger.debug(f"Ignoring event without customer message: event={payload.event}")
            return PipelineResult(status=PipelineStatus.IGNORED)

        message_id = inbound.provider_message_id
        dedup = self._settings.message_dedup_enabled and bool(message_id)
        if dedup and await self.is_duplicate_message(message_id):
            logger.info(f"Skipping duplicate message: {message_id}")
            return PipelineResult(status=PipelineStatus.DUPLICATE)

        agent = await self.find_agent(inbound.customer_phone, inbound.instance)
        if agent is None:
            logger.info(
                f"No active agent for phone={mask_phone(inbound.customer_phone)}, "
                f"instance={inbound.instance}"
            )
            return PipelineResult(status=PipelineStatus.NO_AGENT)

        logger.info(
            f"Processing message: id={message_id}, from={mask_phone(inbound.customer_phone)}, "
            f"agent_id={agent.id}, type={inbound.message_type.value}"
        )

        conversation = await self.get_or_create_conversation(
            agent, inbound.customer_phone, inbound.customer_name
        )
        customer_message = await self.save_message(
            conversation,
            SenderType.CUSTOMER,
            inbound.text,
            message_type=inbound.message_type,
            whatsapp_message_id=message_id,
        )
        # The inbound message survives whatever happens next
        await self._db.commit()
        if dedup:
            await self.mark_message_processed(message_id)

        state = PipelineState(
            inbound=inbound,
            agent=agent,
            conversation=conversation,
            customer_message=customer_message,
        )
        result = await self.run_steps(state)
        result.conversation_id = conversation.id
        return result

    async def run_steps(self, state: PipelineState) -> PipelineResult:
        """Run every applicable step, enforcing the required/optional policy."""
        result = PipelineResult(status=PipelineStatus.PROCESSED)

        for step in self.steps:
            if state.short_circuited and not step.after_short_circuit:
                result.skipped_steps.append(step.name)
                continue
            if not step.when(state):
                result.skipped_steps.append(step.name)
                continue

            if step.required:
                try:
                    await step.run(state)
                except Exception:
                    logger.exception(
                        f"Required step '{step.name}' failed: conversation_id={state.conversation.id}"
                    )
                    await self._db.rollback()
                    raise
            else:
                try:
                    async with self._db.begin_nested():
                        await step.run(state)
                except Exception as e:
                    logger.warning(
                        f"Optional step '{step.name}' failed, continuing: "
                        f"conversation_id={state.conversation.id}, error={e}"
                    )
                    result.failed_steps.append(step.name)
                    continue

            result.completed_steps.append(step.name)

        if state.scenario is not None:
            result.status = PipelineStatus.FALLBACK_TRIGGERED
            result.scenario = state.scenario.scenario_name
        return result

    # ========================================================================
    # Steps
    # ========================================================================

    async def _step_sentiment(self, state: PipelineState) -> None:
        sentiment = await self._sentiment.classify(state.inbound.text)
        await self._sentiment.record(
            self._db,
            sentiment,
            restaurant_id=state.agent.restaurant_id,
            conversation_id=state.conversation.id,
            customer_phone=state.inbound.customer_phone,
            message_id=state.customer_message.id,
        )
        state.sentiment = sentiment

    async def find_fallback_scenario(
        self, agent: Agent, sentiment_score: float
    ) -> FallbackScenario | None:
        """First auto-trigger scenario, by descending priority, whose threshold is met.

        A threshold of 0 counts as unset and never matches.
        """
        result = await self._db.execute(
            select(FallbackScenario)
            .where(
                FallbackScenario.agent_id == agent.id,
                FallbackScenario.restaurant_id == agent.restaurant_id,
                FallbackScenario.auto_trigger.is_(True),
            )
            .order_by(FallbackScenario.priority_level.desc(), FallbackScenario.scenario_name)
        )
        for scenario in result.scalars().all():
            threshold = scenario.sentiment_threshold
            if threshold and sentiment_score <= threshold:
                return scenario
        return None

    def _needs_escalation_check(self, state: PipelineState) -> bool:
        """Scenarios are only consulted once the score crosses the global gate."""
        return state.sentiment is not None and self._sentiment.is_escalation(state.sentiment)

    async def _step_fallback(self, state: PipelineState) -> None:
        scenario = await self.find_fallback_scenario(state.agent, state.sentiment.sentiment_score)
        if scenario is None:
            return

        logger.info(
            f"Triggering fallback scenario '{scenario.scenario_name}': "
            f"conversation_id={state.conversation.id}, score={state.sentiment.sentiment_score}"
        )
        transition_conversation(state.conversation, ConversationStatus.HUMAN_HANDOFF)
        state.reply = await self.save_message(
            state.conversation,
            SenderType.AGENT,
            scenario.custom_message or DEFAULT_FALLBACK_MESSAGE,
        )
        state.scenario = scenario
        state.short_circuited = True

    async def _step_context(self, state: PipelineState) -> None:
        state.prompt_context = await self._context.build(
            state.agent,
            state.conversation,
            current_message=state.inbound.text,
            current_message_id=state.customer_message.id,
            sentiment=state.sentiment,
            default_model=self._settings.default_ai_model,
        )

    async def _step_completion(self, state: PipelineState) -> None:
        agent = state.agent
        prompt = build_system_prompt(state.prompt_context)
        response = await self._llm.chat_completion(
            messages=prompt.to_messages(),
            model=agent.ai_model or self._settings.default_ai_model,
            max_tokens=agent.max_tokens,
            temperature=agent.temperature if agent.temperature is not None else DEFAULT_TEMPERATURE,
        )
        content = (response.get("content") or "").strip()
        if not content:
            raise LLMResponseError("LLM returned an empty reply")

        state.reply = await self.save_message(state.conversation, SenderType.AGENT, content)

    async def _step_learning(self, state: PipelineState) -> None:
        context = state.prompt_context
        await self._learning.record_interaction(
            state.agent,
            conversation_id=state.conversation.id,
            customer_phone=state.inbound.customer_phone,
            user_message=state.inbound.text,
            ai_response=state.reply.content,
            sentiment=state.sentiment,
            context_data={
                "inventory_consulted": bool(context and context.inventory),
                "promotions_mentioned": bool(context and context.promotions),
            },
        )

    async def _step_relay(self, state: PipelineState) -> None:
        agent = state.agent
        if not agent.can_relay:
            logger.warning(f"Agent {agent.id} has no gateway credentials; reply not relayed")
            return

        await self._gateway.send_text_message(
            instance=agent.evolution_api_instance,
            api_key=agent.evolution_api_token,
            to=state.inbound.customer_phone,
            text=state.reply.content,
        )
        state.delivered = True
