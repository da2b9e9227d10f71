"""Order creation, status changes and listing.

Prices always come from the product table at the time of ordering, never
from the request. Status changes go through the order state machine.
"""

import logging
import uuid
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from restobot.config import Settings
from restobot.core.states import transition_order
from restobot.models.order import Customer, DeliveryType, Order, OrderItem, OrderStatus, PaymentStatus
from restobot.models.restaurant import DeliveryZone, Product, Restaurant
from restobot.schemas.orders import CustomerInfo, OrderCreate
from restobot.utils.phone import mask_phone, normalize_phone

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


class OrderError(Exception):
    """Raised when an order request cannot be fulfilled."""
    pass


class OrderNotFoundError(OrderError):
    """Raised when an order or one of its references does not exist."""
    pass


class OrderService:
    """Service for the restaurant order lifecycle."""

    def __init__(self, db: AsyncSession, settings: Settings) -> None:
        self._db = db
        self._settings = settings

    async def get_or_create_customer(self, info: CustomerInfo) -> Customer:
        """Find the customer by phone, refreshing changed details, or create one."""
        phone = normalize_phone(info.phone)
        if not phone:
            raise OrderError("Customer phone is required")

        result = await self._db.execute(select(Customer).where(Customer.phone == phone))
        customer = result.scalar_one_or_none()

        if customer is None:
            customer = Customer(
                phone=phone,
                name=info.name,
                email=info.email,
                address=info.address,
            )
            self._db.add(customer)
            await self._db.flush()
            logger.info(f"Created new customer: phone={mask_phone(phone)}, id={customer.id}")
            return customer

        if info.name and info.name != customer.name:
            customer.name = info.name
        if info.email and info.email != customer.email:
            customer.email = info.email
        if info.address and info.address != customer.address:
            customer.address = info.address
        return customer

    async def _resolve_delivery_fee(
        self, data: OrderCreate
    ) -> tuple[Decimal, DeliveryZone | None]:
        if data.delivery_type == DeliveryType.PICKUP:
            return Decimal("0"), None

        if data.delivery_zone_id is None:
            return self._settings.default_delivery_fee, None

        zone = await self._db.get(DeliveryZone, data.delivery_zone_id)
        if zone is None or zone.restaurant_id != data.restaurant_id or not zone.is_active:
            raise OrderError(f"Delivery zone not available: {data.delivery_zone_id}")
        return zone.delivery_fee, zone

    async def create_order(self, data: OrderCreate) -> Order:
        """Create a pending order.

        Raises:
            OrderNotFoundError: Unknown restaurant
            OrderError: Empty cart, unknown or unavailable product, bad delivery zone,
                or a subtotal under the zone's minimum
        """
        restaurant = await self._db.get(Restaurant, data.restaurant_id)
        if restaurant is None:
            raise OrderNotFoundError(f"Restaurant not found: {data.restaurant_id}")
        if not data.items:
            raise OrderError("An order needs at least one item")

        customer = await self.get_or_create_customer(data.customer)

        product_ids = {item.product_id for item in data.items}
        result = await self._db.execute(
            select(Product).where(
                Product.id.in_(product_ids),
                Product.restaurant_id == data.restaurant_id,
            )
        )
        products = {product.id: product for product in result.scalars().all()}

        items: list[OrderItem] = []
        subtotal = Decimal("0")
        for requested in data.items:
            product = products.get(requested.product_id)
            if product is None:
                raise OrderError(f"Product not found: {requested.product_id}")
            if not product.is_available:
                raise OrderError(f"Product not available: {product.name}")

            unit_price = Decimal(product.price).quantize(CENTS)
            total_price = (unit_price * requested.quantity).quantize(CENTS)
            subtotal += total_price
            items.append(
                OrderItem(
                    product_id=product.id,
                    product_name=product.name,
                    quantity=requested.quantity,
                    unit_price=unit_price,
                    total_price=total_price,
                    notes=requested.notes,
                )
            )

        delivery_fee, zone = await self._resolve_delivery_fee(data)
        if zone is not None and zone.min_order_value is not None and subtotal < zone.min_order_value:
            raise OrderError(
                f"Minimum order for {zone.name} is {zone.min_order_value}, got {subtotal}"
            )

        delivery_address = None
        if data.delivery_type == DeliveryType.DELIVERY:
            delivery_address = data.delivery_address or data.customer.address or customer.address

        order = Order(
            restaurant_id=data.restaurant_id,
            customer_id=customer.id,
            status=OrderStatus.PENDING,
            subtotal=subtotal,
            delivery_fee=Decimal(delivery_fee).quantize(CENTS),
            total=(subtotal + delivery_fee).quantize(CENTS),
            payment_method=data.payment_method,
            payment_status=PaymentStatus.PENDING,
            delivery_type=data.delivery_type,
            delivery_zone_id=zone.id if zone else None,
            delivery_address=delivery_address,
            notes=data.notes,
            items=items,
        )
        order.customer = customer
        self._db.add(order)
        await self._db.flush()

        logger.info(
            f"Order created: order_id={order.id}, restaurant_id={data.restaurant_id}, "
            f"items={len(items)}, total={order.total}"
        )
        return order

    async def get_order(self, order_id: uuid.UUID) -> Order:
        order = await self._db.get(Order, order_id)
        if order is None:
            raise OrderNotFoundError(f"Order not found: {order_id}")
        return order

    async def update_status(self, order_id: uuid.UUID, status: OrderStatus) -> Order:
        """Move an order along its lifecycle.

        Raises:
            OrderNotFoundError: Unknown order
            InvalidTransitionError: The move is not allowed from the current status
        """
        order = await self.get_order(order_id)
        previous = order.status
        transition_order(order, status)
        await self._db.flush()
        logger.info(f"Order {order_id} status: {previous.value} -> {status.value}")
        return order

    async def list_orders(
        self,
        restaurant_id: uuid.UUID | None = None,
        status: OrderStatus | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Order], int]:
        """Newest-first page of orders and the total matching count."""
        conditions = []
        if restaurant_id is not None:
            conditions.append(Order.restaurant_id == restaurant_id)
        if status is not None:
            conditions.append(Order.status == status)

        total = await self._db.scalar(
            select(func.count(Order.id)).where(*conditions)
        ) or 0

        result = await self._db.execute(
            select(Order)
            .where(*conditions)
            .order_by(Order.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total
