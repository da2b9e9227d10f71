"""Generic CRUD endpoints for restaurant-scoped configuration tables.

Every dashboard manager (categories, products, modifiers, payment methods,
delivery zones, inventory, promotions, agents, fallback scenarios) performs
the same list / get / create / partial update / delete calls against one
table, so one factory builds all of them.
"""

import logging
import uuid
from typing import Any

from fastapi import APIRouter, HTTPException, Query, Response
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from restobot.api.deps import AdminAuth, DbSession
from restobot.db.base import Base

logger = logging.getLogger(__name__)


def build_crud_router(
    model: type[Base],
    path: str,
    create_schema: type[BaseModel],
    update_schema: type[BaseModel],
    read_schema: type[BaseModel],
    order_by: Any = None,
) -> APIRouter:
    """Build list/get/create/update/delete endpoints for ``model`` under ``path``.

    Args:
        model: ORM model with ``id`` and ``restaurant_id`` columns
        path: URL segment, e.g. ``"categories"``
        create_schema: Request body for POST
        update_schema: Request body for PATCH; only fields sent are applied
        read_schema: Response model
        order_by: Column used to order list results
    """
    router = APIRouter(prefix=f"/{path}")
    label = model.__name__
    ordering = order_by if order_by is not None else model.id

    async def _get_or_404(db: DbSession, item_id: uuid.UUID) -> Any:
        item = await db.get(model, item_id)
        if item is None:
            raise HTTPException(status_code=404, detail=f"{label} not found")
        return item

    async def _flush(db: DbSession) -> None:
        try:
            await db.flush()
        except IntegrityError as e:
            await db.rollback()
            logger.warning(f"{label} write rejected: {e.orig}")
            raise HTTPException(status_code=409, detail=f"{label} conflicts with existing data")

    @router.get("", response_model=list[read_schema])
    async def list_items(
        db: DbSession,
        _auth: AdminAuth = None,
        restaurant_id: uuid.UUID | None = Query(default=None, description="Filter by restaurant"),
        offset: int = Query(default=0, ge=0),
        limit: int = Query(default=100, ge=1, le=500),
    ) -> list[Any]:
        query = select(model)
        if restaurant_id is not None:
            query = query.where(model.restaurant_id == restaurant_id)
        result = await db.execute(query.order_by(ordering).offset(offset).limit(limit))
        return list(result.scalars().all())

    @router.get("/{item_id}", response_model=read_schema)
    async def get_item(item_id: uuid.UUID, db: DbSession, _auth: AdminAuth = None) -> Any:
        return await _get_or_404(db, item_id)

    @router.post("", response_model=read_schema, status_code=201)
    async def create_item(body: create_schema, db: DbSession, _auth: AdminAuth = None) -> Any:  # type: ignore[valid-type]
        item = model(**body.model_dump())
        db.add(item)
        await _flush(db)
        logger.info(f"Created {label}: id={item.id}")
        return item

    @router.patch("/{item_id}", response_model=read_schema)
    async def update_item(
        item_id: uuid.UUID,
        body: update_schema,  # type: ignore[valid-type]
        db: DbSession,
        _auth: AdminAuth = None,
    ) -> Any:
        item = await _get_or_404(db, item_id)
        for field, value in body.model_dump(exclude_unset=True).items():
            setattr(item, field, value)
        await _flush(db)
        await db.refresh(item)
        return item

    @router.delete("/{item_id}", status_code=204)
    async def delete_item(item_id: uuid.UUID, db: DbSession, _auth: AdminAuth = None) -> Response:
        item = await _get_or_404(db, item_id)
        await db.delete(item)
        await _flush(db)
        logger.info(f"Deleted {label}: id={item_id}")
        return Response(status_code=204)

    return router
