"""Order endpoints for the dashboard."""

import logging
import uuid
from typing import Any

from fastapi import APIRouter, HTTPException, Query

from restobot.api.deps import AdminAuth, AppSettings, DbSession
from restobot.core.states import InvalidTransitionError
from restobot.models.order import OrderStatus
from restobot.schemas.orders import OrderCreate, OrderListResponse, OrderRead, OrderStatusUpdate
from restobot.services.orders import OrderError, OrderNotFoundError, OrderService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/admin/orders", tags=["Orders"])


@router.post("", response_model=OrderRead, status_code=201)
async def create_order(
    body: OrderCreate,
    db: DbSession,
    settings: AppSettings,
    _auth: AdminAuth = None,
) -> Any:
    """Create a pending order with server-side pricing.

    Raises:
        HTTPException: 404 for an unknown restaurant, 400 for invalid items or zone
    """
    service = OrderService(db, settings)
    try:
        return await service.create_order(body)
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except OrderError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("", response_model=OrderListResponse)
async def list_orders(
    db: DbSession,
    settings: AppSettings,
    _auth: AdminAuth = None,
    restaurant_id: uuid.UUID | None = Query(default=None),
    status: OrderStatus | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> OrderListResponse:
    service = OrderService(db, settings)
    orders, total = await service.list_orders(restaurant_id, status, page, page_size)
    return OrderListResponse(
        orders=[OrderRead.model_validate(o) for o in orders],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{order_id}", response_model=OrderRead)
async def get_order(
    order_id: uuid.UUID,
    db: DbSession,
    settings: AppSettings,
    _auth: AdminAuth = None,
) -> Any:
    service = OrderService(db, settings)
    try:
        return await service.get_order(order_id)
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/{order_id}/status", response_model=OrderRead)
async def update_order_status(
    order_id: uuid.UUID,
    body: OrderStatusUpdate,
    db: DbSession,
    settings: AppSettings,
    _auth: AdminAuth = None,
) -> Any:
    """Advance an order. Disallowed moves answer 409 and leave the order untouched."""
    service = OrderService(db, settings)
    try:
        return await service.update_status(order_id, body.status)
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
