"""
Inventory Endpoints for LogiTrack

GET    /api/inventory           - paginated list (skip/take), cached
GET    /api/inventory/search    - filter by name and minimum quantity, cached
GET    /api/inventory/summary   - lightweight projection, cached
GET    /api/inventory/{id}      - single item, cached
POST   /api/inventory           - create, invalidates the inventory cache
PUT    /api/inventory/{id}      - update, invalidates the inventory cache
DELETE /api/inventory/{id}      - delete, invalidates the inventory cache
"""

import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from logitrack import config
from logitrack.api.deps import get_cache, get_db
from logitrack.api.schemas import InventoryItemIn, InventoryItemOut, InventorySummaryRow
from logitrack.auth import ROLE_ADMIN, ROLE_MANAGER, require_roles
from logitrack.database import (
    count_inventory,
    create_inventory_item,
    delete_inventory_item,
    get_inventory_item,
    inventory_summary,
    list_inventory,
    search_inventory,
    update_inventory_item,
)
from logitrack.read_through import ReadThroughCache, build_key, clamp_page

router = APIRouter(
    prefix="/api/inventory",
    tags=["inventory"],
    dependencies=[Depends(require_roles(ROLE_MANAGER, ROLE_ADMIN))],
)

CACHE_PREFIX = "inventory"
# Orders embed their items, so item writes also touch the owning order.
ORDER_CACHE_PREFIX = "order_data"


def _dump(item) -> dict:
    return InventoryItemOut.model_validate(item).model_dump(mode="json")


def _not_found(item_id: int) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Inventory item with ID {item_id} not found.")


@router.get("")
async def get_inventory_items(
    skip: int = Query(0),
    take: int = Query(config.DEFAULT_PAGE_SIZE),
    db: Session = Depends(get_db),
    cache: ReadThroughCache = Depends(get_cache),
):
    """Paginated inventory list ordered by item id."""
    skip, take = clamp_page(skip, take, config.MAX_PAGE_SIZE)

    def _sync():
        return cache.fetch_page(
            "GetInventoryItems",
            CACHE_PREFIX,
            skip,
            take,
            load_items=lambda s, t: [_dump(i) for i in list_inventory(db, s, t)],
            load_count=lambda: count_inventory(db),
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


@router.get("/search")
async def search_items(
    name: Optional[str] = Query(None, max_length=100),
    min_quantity: Optional[int] = Query(None, alias="minQuantity", ge=0),
    take: int = Query(config.DEFAULT_PAGE_SIZE),
    db: Session = Depends(get_db),
    cache: ReadThroughCache = Depends(get_cache),
):
    """Items whose name contains ``name`` with at least ``minQuantity`` on hand."""
    _, take = clamp_page(0, take, config.MAX_PAGE_SIZE)
    key = build_key(CACHE_PREFIX, "search", "name", name, "qty", min_quantity, "take", take)

    def _sync():
        return cache.fetch(
            "SearchItems",
            key,
            lambda: [_dump(i) for i in search_inventory(db, name, min_quantity, take)],
        )

    result = await asyncio.to_thread(_sync)
    return {"source": result.source, "count": len(result.data), "data": result.data}


@router.get("/summary")
async def get_inventory_summary(
    take: int = Query(config.DEFAULT_PAGE_SIZE),
    db: Session = Depends(get_db),
    cache: ReadThroughCache = Depends(get_cache),
):
    _, take = clamp_page(0, take, config.MAX_PAGE_SIZE)
    key = build_key(CACHE_PREFIX, "summary", "take", take)

    def _sync():
        return cache.fetch(
            "GetInventorySummary",
            key,
            lambda: [
                InventorySummaryRow(**row).model_dump(mode="json")
                for row in inventory_summary(db, take)
            ],
        )

    result = await asyncio.to_thread(_sync)
    return {"source": result.source, "count": len(result.data), "data": result.data}


@router.get("/{item_id}")
async def get_item(
    item_id: int,
    db: Session = Depends(get_db),
    cache: ReadThroughCache = Depends(get_cache),
):
    def _sync():
        def _load():
            item = get_inventory_item(db, item_id)
            return _dump(item) if item is not None else None

        return cache.fetch("GetInventoryItem", build_key(CACHE_PREFIX, item_id), _load)

    result = await asyncio.to_thread(_sync)
    if result.data is None:
        raise _not_found(item_id)
    return {"source": result.source, "data": result.data}


@router.post("", status_code=201)
async def add_item(
    body: InventoryItemIn,
    db: Session = Depends(get_db),
    cache: ReadThroughCache = Depends(get_cache),
):
    def _sync():
        item = create_inventory_item(db, body.name, body.quantity, body.location)
        cache.invalidate(CACHE_PREFIX)
        return _dump(item)

    return await asyncio.to_thread(_sync)


def _invalidate_item(cache: ReadThroughCache, item) -> None:
    cache.invalidate(CACHE_PREFIX, item.item_id)
    if item.order_id is not None:
        cache.invalidate(ORDER_CACHE_PREFIX, item.order_id)


@router.put("/{item_id}")
async def update_item(
    item_id: int,
    body: InventoryItemIn,
    db: Session = Depends(get_db),
    cache: ReadThroughCache = Depends(get_cache),
):
    def _sync():
        item = update_inventory_item(db, item_id, body.name, body.quantity, body.location)
        if item is None:
            return None
        _invalidate_item(cache, item)
        return _dump(item)

    updated = await asyncio.to_thread(_sync)
    if updated is None:
        raise _not_found(item_id)
    return updated


@router.delete("/{item_id}", status_code=204)
async def delete_item(
    item_id: int,
    db: Session = Depends(get_db),
    cache: ReadThroughCache = Depends(get_cache),
):
    def _sync():
        deleted = delete_inventory_item(db, item_id)
        if deleted is None:
            return False
        _invalidate_item(cache, deleted)
        return True

    if not await asyncio.to_thread(_sync):
        raise _not_found(item_id)
    return Response(status_code=204)
