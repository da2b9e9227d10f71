"""Request/response schemas for restaurant catalog administration."""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from restobot.models.restaurant import DiscountType


class ORMModel(BaseModel):
    model_config = {"from_attributes": True}


# ============================================================================
# Categories
# ============================================================================

class CategoryCreate(BaseModel):
    restaurant_id: uuid.UUID
    name: str = Field(min_length=1, max_length=100)
    description: str | None = None
    display_order: int = 0
    is_active: bool = True


class CategoryUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    display_order: int | None = None
    is_active: bool | None = None


class CategoryRead(ORMModel):
    id: uuid.UUID
    restaurant_id: uuid.UUID
    name: str
    description: str | None
    display_order: int
    is_active: bool
    created_at: datetime


# ============================================================================
# Products
# ============================================================================

class ProductCreate(BaseModel):
    restaurant_id: uuid.UUID
    category_id: uuid.UUID | None = None
    name: str = Field(min_length=1, max_length=200)
    description: str | None = None
    price: Decimal = Field(ge=0)
    image_url: str | None = None
    is_available: bool = True


class ProductUpdate(BaseModel):
    category_id: uuid.UUID | None = None
    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    price: Decimal | None = Field(default=None, ge=0)
    image_url: str | None = None
    is_available: bool | None = None


class ProductRead(ORMModel):
    id: uuid.UUID
    restaurant_id: uuid.UUID
    category_id: uuid.UUID | None
    name: str
    description: str | None
    price: Decimal
    image_url: str | None
    is_available: bool
    created_at: datetime


# ============================================================================
# Modifiers
# ============================================================================

class ModifierCreate(BaseModel):
    restaurant_id: uuid.UUID
    product_id: uuid.UUID | None = None
    name: str = Field(min_length=1, max_length=100)
    price: Decimal = Field(default=Decimal("0"), ge=0)
    is_required: bool = False
    is_active: bool = True


class ModifierUpdate(BaseModel):
    product_id: uuid.UUID | None = None
    name: str | None = Field(default=None, min_length=1, max_length=100)
    price: Decimal | None = Field(default=None, ge=0)
    is_required: bool | None = None
    is_active: bool | None = None


class ModifierRead(ORMModel):
    id: uuid.UUID
    restaurant_id: uuid.UUID
    product_id: uuid.UUID | None
    name: str
    price: Decimal
    is_required: bool
    is_active: bool


# ============================================================================
# Payment methods
# ============================================================================

class PaymentMethodCreate(BaseModel):
    restaurant_id: uuid.UUID
    name: str = Field(min_length=1, max_length=100)
    method_type: str = Field(min_length=1, max_length=50)
    instructions: str | None = None
    is_active: bool = True


class PaymentMethodUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    method_type: str | None = Field(default=None, min_length=1, max_length=50)
    instructions: str | None = None
    is_active: bool | None = None


class PaymentMethodRead(ORMModel):
    id: uuid.UUID
    restaurant_id: uuid.UUID
    name: str
    method_type: str
    instructions: str | None
    is_active: bool


# ============================================================================
# Delivery zones
# ============================================================================

class DeliveryZoneCreate(BaseModel):
    restaurant_id: uuid.UUID
    name: str = Field(min_length=1, max_length=100)
    delivery_fee: Decimal = Field(default=Decimal("0"), ge=0)
    min_order_value: Decimal | None = Field(default=None, ge=0)
    estimated_minutes: int | None = Field(default=None, ge=0)
    is_active: bool = True


class DeliveryZoneUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    delivery_fee: Decimal | None = Field(default=None, ge=0)
    min_order_value: Decimal | None = Field(default=None, ge=0)
    estimated_minutes: int | None = Field(default=None, ge=0)
    is_active: bool | None = None


class DeliveryZoneRead(ORMModel):
    id: uuid.UUID
    restaurant_id: uuid.UUID
    name: str
    delivery_fee: Decimal
    min_order_value: Decimal | None
    estimated_minutes: int | None
    is_active: bool


# ============================================================================
# Inventory
# ============================================================================

class InventoryCreate(BaseModel):
    restaurant_id: uuid.UUID
    product_id: uuid.UUID
    current_stock: int = Field(default=0, ge=0)
    low_stock_threshold: int = Field(default=5, ge=0)


class InventoryUpdate(BaseModel):
    current_stock: int | None = Field(default=None, ge=0)
    low_stock_threshold: int | None = Field(default=None, ge=0)


class InventoryRead(ORMModel):
    id: uuid.UUID
    restaurant_id: uuid.UUID
    product_id: uuid.UUID
    current_stock: int
    low_stock_threshold: int
    updated_at: datetime


# ============================================================================
# Promotions
# ============================================================================

class PromotionCreate(BaseModel):
    restaurant_id: uuid.UUID
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    discount_type: DiscountType = DiscountType.PERCENTAGE
    discount_value: Decimal = Field(default=Decimal("0"), ge=0)
    is_active: bool = True
    start_time: datetime | None = None
    end_time: datetime | None = None


class PromotionUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    discount_type: DiscountType | None = None
    discount_value: Decimal | None = Field(default=None, ge=0)
    is_active: bool | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None


class PromotionRead(ORMModel):
    id: uuid.UUID
    restaurant_id: uuid.UUID
    title: str
    description: str | None
    discount_type: DiscountType
    discount_value: Decimal
    is_active: bool
    start_time: datetime | None
    end_time: datetime | None
