"""Admin CRUD for the restaurant catalog, agents and fallback scenarios."""

from fastapi import APIRouter

from restobot.api.admin.crud import build_crud_router
from restobot.models.agent import Agent, FallbackScenario
from restobot.models.restaurant import (
    Category,
    DeliveryZone,
    DynamicPromotion,
    Modifier,
    PaymentMethod,
    Product,
    ProductInventory,
)
from restobot.schemas import agents, catalog

router = APIRouter(prefix="/api/admin", tags=["Catalog"])

router.include_router(build_crud_router(
    Category, "categories",
    catalog.CategoryCreate, catalog.CategoryUpdate, catalog.CategoryRead,
    order_by=Category.display_order,
))
router.include_router(build_crud_router(
    Product, "products",
    catalog.ProductCreate, catalog.ProductUpdate, catalog.ProductRead,
    order_by=Product.name,
))
router.include_router(build_crud_router(
    Modifier, "modifiers",
    catalog.ModifierCreate, catalog.ModifierUpdate, catalog.ModifierRead,
    order_by=Modifier.name,
))
router.include_router(build_crud_router(
    PaymentMethod, "payment-methods",
    catalog.PaymentMethodCreate, catalog.PaymentMethodUpdate, catalog.PaymentMethodRead,
    order_by=PaymentMethod.name,
))
router.include_router(build_crud_router(
    DeliveryZone, "delivery-zones",
    catalog.DeliveryZoneCreate, catalog.DeliveryZoneUpdate, catalog.DeliveryZoneRead,
    order_by=DeliveryZone.name,
))
router.include_router(build_crud_router(
    ProductInventory, "inventory",
    catalog.InventoryCreate, catalog.InventoryUpdate, catalog.InventoryRead,
    order_by=ProductInventory.current_stock,
))
router.include_router(build_crud_router(
    DynamicPromotion, "promotions",
    catalog.PromotionCreate, catalog.PromotionUpdate, catalog.PromotionRead,
    order_by=DynamicPromotion.title,
))
router.include_router(build_crud_router(
    Agent, "agents",
    agents.AgentCreate, agents.AgentUpdate, agents.AgentRead,
    order_by=Agent.created_at,
))
router.include_router(build_crud_router(
    FallbackScenario, "fallback-scenarios",
    agents.FallbackScenarioCreate, agents.FallbackScenarioUpdate, agents.FallbackScenarioRead,
    order_by=FallbackScenario.priority_level.desc(),
))
