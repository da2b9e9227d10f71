"""Order request/response schemas."""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from restobot.models.order import DeliveryType, OrderStatus, PaymentStatus


class CustomerInfo(BaseModel):
    phone: str = Field(min_length=1, max_length=30)
    name: str | None = None
    email: str | None = None
    address: str | None = None


class OrderItemCreate(BaseModel):
    product_id: uuid.UUID
    quantity: int = Field(default=1, gt=0)
    notes: str | None = None


class OrderCreate(BaseModel):
    restaurant_id: uuid.UUID
    customer: CustomerInfo
    items: list[OrderItemCreate]
    delivery_type: DeliveryType = DeliveryType.DELIVERY
    delivery_zone_id: uuid.UUID | None = None
    delivery_address: str | None = None
    payment_method: str = "cash"
    notes: str | None = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class CustomerRead(BaseModel):
    id: uuid.UUID
    phone: str
    name: str | None
    email: str | None
    address: str | None

    model_config = {"from_attributes": True}


class OrderItemRead(BaseModel):
    id: uuid.UUID
    product_id: uuid.UUID
    product_name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    notes: str | None

    model_config = {"from_attributes": True}


class OrderRead(BaseModel):
    id: uuid.UUID
    restaurant_id: uuid.UUID
    status: OrderStatus
    subtotal: Decimal
    delivery_fee: Decimal
    total: Decimal
    payment_method: str
    payment_status: PaymentStatus
    delivery_type: DeliveryType
    delivery_zone_id: uuid.UUID | None
    delivery_address: str | None
    notes: str | None
    created_at: datetime
    updated_at: datetime
    customer: CustomerRead
    items: list[OrderItemRead]

    model_config = {"from_attributes": True}


class OrderListResponse(BaseModel):
    orders: list[OrderRead]
    total: int
    page: int
    page_size: int
