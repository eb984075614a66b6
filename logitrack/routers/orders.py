"""
Order Endpoints for LogiTrack

GET    /api/order              - paginated orders with their items, cached
GET    /api/order/{id}         - single order with items, cached
POST   /api/order              - place an order (optionally with new items)
POST   /api/order/{id}/items   - attach new items to an existing order
DELETE /api/order/{id}         - delete an order (Admin only)
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from logitrack import config
from logitrack.api.deps import get_cache, get_db
from logitrack.api.schemas import OrderIn, OrderItemsIn, OrderOut
from logitrack.auth import ROLE_ADMIN, ROLE_MANAGER, require_roles
from logitrack.database import (
    add_items_to_order,
    count_orders,
    create_order,
    delete_order,
    get_order,
    list_orders,
)
from logitrack.read_through import ReadThroughCache, build_key, clamp_page
from logitrack.routers.inventory import CACHE_PREFIX as INVENTORY_PREFIX
from logitrack.routers.inventory import ORDER_CACHE_PREFIX

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/order",
    tags=["orders"],
    dependencies=[Depends(require_roles(ROLE_MANAGER, ROLE_ADMIN))],
)

CACHE_PREFIX = ORDER_CACHE_PREFIX


def _dump(order) -> dict:
    return OrderOut.model_validate(order).model_dump(mode="json")


def _not_found(order_id: int) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Order {order_id} not found")


@router.get("")
async def get_orders(
    skip: int = Query(0),
    take: int = Query(config.DEFAULT_PAGE_SIZE),
    db: Session = Depends(get_db),
    cache: ReadThroughCache = Depends(get_cache),
):
    skip, take = clamp_page(skip, take, config.MAX_PAGE_SIZE)

    def _sync():
        return cache.fetch_page(
            "GetOrders",
            CACHE_PREFIX,
            skip,
            take,
            load_items=lambda s, t: [_dump(o) for o in list_orders(db, s, t)],
            load_count=lambda: count_orders(db),
        )

    result = await asyncio.to_thread(_sync)
    return {
        "source": result.source,
        "skip": skip,
        "take": take,
        "total": result.total,
        "count": len(result.data),
        "data": result.data,
    }


@router.get("/{order_id}")
async def get_single_order(
    order_id: int,
    db: Session = Depends(get_db),
    cache: ReadThroughCache = Depends(get_cache),
):
    def _sync():
        def _load():
            order = get_order(db, order_id)
            return _dump(order) if order is not None else None

        return cache.fetch("GetOrder", build_key(CACHE_PREFIX, order_id), _load)

    result = await asyncio.to_thread(_sync)
    if result.data is None:
        raise _not_found(order_id)
    return {"source": result.source, "data": result.data}


@router.post("", status_code=201)
async def add_order(
    body: OrderIn,
    db: Session = Depends(get_db),
    cache: ReadThroughCache = Depends(get_cache),
):
    def _sync():
        order = create_order(
            db,
            body.customer_name,
            body.date_placed,
            [i.model_dump() for i in body.items],
        )
        cache.invalidate(CACHE_PREFIX)
        if body.items:
            cache.invalidate(INVENTORY_PREFIX)
        logger.info("Order placed: %s", order.summary())
        return _dump(order)

    return await asyncio.to_thread(_sync)


@router.post("/{order_id}/items")
async def add_order_items(
    order_id: int,
    body: OrderItemsIn,
    db: Session = Depends(get_db),
    cache: ReadThroughCache = Depends(get_cache),
):
    def _sync():
        order = add_items_to_order(db, order_id, [i.model_dump() for i in body.items])
        if order is None:
            return None
        cache.invalidate(CACHE_PREFIX, order_id)
        cache.invalidate(INVENTORY_PREFIX)
        return _dump(order)

    updated = await asyncio.to_thread(_sync)
    if updated is None:
        raise _not_found(order_id)
    return updated


@router.delete(
    "/{order_id}",
    status_code=204,
    dependencies=[Depends(require_roles(ROLE_ADMIN))],
)
async def remove_order(
    order_id: int,
    db: Session = Depends(get_db),
    cache: ReadThroughCache = Depends(get_cache),
):
    def _sync():
        item_ids = delete_order(db, order_id)
        if item_ids is None:
            return False
        cache.invalidate(CACHE_PREFIX, order_id)
        cache.invalidate(INVENTORY_PREFIX)
        # By-id entries of the deleted items survive a prefix sweep.
        for item_id in item_ids:
            cache.invalidate(INVENTORY_PREFIX, item_id, page_count=0)
        logger.info("Order %d deleted with %d items", order_id, len(item_ids))
        return True

    if not await asyncio.to_thread(_sync):
        raise _not_found(order_id)
    return Response(status_code=204)
