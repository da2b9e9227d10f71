"""SQLAlchemy models.

Importing this package registers every table on ``Base.metadata``.
"""

from restobot.models.restaurant import (
    Restaurant,
    Category,
    Product,
    Modifier,
    PaymentMethod,
    DeliveryZone,
    ProductInventory,
    DynamicPromotion,
    DiscountType,
)
from restobot.models.agent import Agent, FallbackScenario
from restobot.models.conversation import (
    Conversation,
    ConversationStatus,
    Message,
    MessageType,
    SenderType,
)
from restobot.models.order import (
    Customer,
    Order,
    OrderItem,
    OrderStatus,
    PaymentStatus,
    DeliveryType,
)
from restobot.models.learning import (
    SentimentAnalytics,
    AILearningInteraction,
    AILearningPattern,
    SentimentLabel,
    ResponseStrategy,
    InteractionType,
)
from restobot.models.experiment import ABTestVariant, ABTestResult

__all__ = [
    "Restaurant",
    "Category",
    "Product",
    "Modifier",
    "PaymentMethod",
    "DeliveryZone",
    "ProductInventory",
    "DynamicPromotion",
    "DiscountType",
    "Agent",
    "FallbackScenario",
    "Conversation",
    "ConversationStatus",
    "Message",
    "MessageType",
    "SenderType",
    "Customer",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentStatus",
    "DeliveryType",
    "SentimentAnalytics",
    "AILearningInteraction",
    "AILearningPattern",
    "SentimentLabel",
    "ResponseStrategy",
    "InteractionType",
    "ABTestVariant",
    "ABTestResult",
]
