"""Explicit state machines for conversations and orders.

Both tables list every allowed ``from -> to`` move; anything else raises
:class:`InvalidTransitionError`. Terminal states map to an empty set.
"""

from datetime import datetime, timezone

from restobot.models.conversation import Conversation, ConversationStatus
from restobot.models.order import Order, OrderStatus


class InvalidTransitionError(Exception):
    """Raised when a status change is not allowed from the current state."""

    def __init__(self, entity: str, current: str, target: str) -> None:
        self.entity = entity
        self.current = current
        self.target = target
        super().__init__(f"Cannot move {entity} from '{current}' to '{target}'")


CONVERSATION_TRANSITIONS: dict[ConversationStatus, frozenset[ConversationStatus]] = {
    ConversationStatus.ACTIVE: frozenset({
        ConversationStatus.PAUSED,
        ConversationStatus.HUMAN_HANDOFF,
        ConversationStatus.ENDED,
    }),
    ConversationStatus.PAUSED: frozenset({
        ConversationStatus.ACTIVE,
        ConversationStatus.HUMAN_HANDOFF,
        ConversationStatus.ENDED,
    }),
    ConversationStatus.HUMAN_HANDOFF: frozenset({
        ConversationStatus.ACTIVE,
        ConversationStatus.ENDED,
    }),
    ConversationStatus.ENDED: frozenset(),
}

ORDER_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY}),
    OrderStatus.READY: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


def can_transition_conversation(
    current: ConversationStatus, target: ConversationStatus
) -> bool:
    return target in CONVERSATION_TRANSITIONS[current]


def can_transition_order(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ORDER_TRANSITIONS[current]


def transition_conversation(
    conversation: Conversation, target: ConversationStatus
) -> Conversation:
    """Move a conversation to ``target``, stamping ``ended_at`` when it ends."""
    current = ConversationStatus(conversation.status)
    if not can_transition_conversation(current, target):
        raise InvalidTransitionError("conversation", current.value, target.value)

    conversation.status = target
    if target == ConversationStatus.ENDED:
        conversation.ended_at = datetime.now(timezone.utc)
    if target == ConversationStatus.HUMAN_HANDOFF:
        conversation.assigned_human_id = None
    return conversation


def transition_order(order: Order, target: OrderStatus) -> Order:
    """Move an order to ``target``."""
    current = OrderStatus(order.status)
    if not can_transition_order(current, target):
        raise InvalidTransitionError("order", current.value, target.value)

    order.status = target
    return order
