"""
LogiTrack: API request/response schemas (Pydantic).

Cached payloads are stored as ``model_dump(mode="json")`` output so the
same value can live in the memory store or in Redis.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------

class InventoryItemIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    quantity: int = Field(..., ge=0)
    location: str = Field(..., min_length=1, max_length=100)

    @field_validator("name", "location")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("cannot be empty")
        return v.strip()


class InventoryItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    item_id: int
    name: str
    quantity: int
    location: str
    order_id: Optional[int] = None


class InventorySummaryRow(BaseModel):
    item_id: int
    name: str
    quantity: int
    location: str


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------

class OrderIn(BaseModel):
    customer_name: str = Field(..., min_length=1, max_length=100)
    date_placed: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    items: List[InventoryItemIn] = Field(default_factory=list)

    @field_validator("customer_name")
    @classmethod
    def _name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Customer name is required")
        return v.strip()

    @field_validator("date_placed")
    @classmethod
    def _not_in_future(cls, v: datetime) -> datetime:
        aware = v if v.tzinfo else v.replace(tzinfo=timezone.utc)
        if aware > datetime.now(timezone.utc):
            raise ValueError("Order date cannot be in the future")
        # Stored naive in UTC.
        return aware.astimezone(timezone.utc).replace(tzinfo=None)


class OrderItemsIn(BaseModel):
    items: List[InventoryItemIn] = Field(..., min_length=1)


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    order_id: int
    customer_name: str
    date_placed: datetime
    items: List[InventoryItemOut] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

class RegisterRequest(BaseModel):
    email: str = ""
    password: str = ""


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class TokenResponse(BaseModel):
    token: str


# ---------------------------------------------------------------------------
# Admin / health
# ---------------------------------------------------------------------------

class PerformanceStatsOut(BaseModel):
    operation: str
    total_requests: int
    cache_hits: int
    cache_misses: int
    cache_hit_rate: float
    average_response_ms: float
    min_response_ms: float
    max_response_ms: float


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    cache_backend: str
    rate_limited_clients: int
    profiler: Dict[str, Any] = Field(default_factory=dict)
