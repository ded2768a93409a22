"""Pydantic schemas for the marketplace side of the integration.

Defines the external shapes the MarketplaceClient speaks:
- MarketplaceProduct: flat product DTO (name/price/description + attribute bag)
- ReadStatus, ReadResult: tri-state outcome of a read (ok / empty / error)
- MarketplaceGroup: product group (read-only)
- OrderStatus, MarketplaceOrderItem, MarketplaceOrder: orders (read-mostly)
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class MarketplaceProduct(BaseModel):
    """Product as the marketplace sees it.

    ``id`` is empty until the marketplace accepts a create. Every field other
    than name/price/description travels in ``specific_attributes``; list and
    map values in the bag are JSON-encoded strings.
    """

    id: str = ""
    name: str = ""
    price: float = 0.0
    description: str = ""
    specific_attributes: dict[str, Any] = Field(default_factory=dict)


class ReadStatus(str, Enum):
    """Outcome of a marketplace read."""

    OK = "ok"
    EMPTY = "empty"
    ERROR = "error"


class ReadResult(BaseModel):
    """Items from a marketplace read plus whether the read actually succeeded."""

    status: ReadStatus
    items: list[MarketplaceProduct] = Field(default_factory=list)
    error: str | None = None


class MarketplaceGroup(BaseModel):
    """Product group (catalog folder) on the marketplace."""

    id: str
    name: str = ""
    name_multilang: dict[str, str] = Field(default_factory=dict)
    description: str = ""
    description_multilang: dict[str, str] = Field(default_factory=dict)
    image: str = ""
    parent_group_id: str | None = None


class OrderStatus(str, Enum):
    """Internal order lifecycle states."""

    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    ON_HOLD = "on_hold"


class MarketplaceOrderItem(BaseModel):
    """Single order line."""

    product_id: str = ""
    name: str = ""
    sku: str | None = None
    quantity: int = 1
    price: float = 0.0


class MarketplaceOrder(BaseModel):
    """Order placed on the marketplace."""

    id: str
    status: OrderStatus = OrderStatus.PENDING
    marketplace_status: str = ""
    date_created: datetime | None = None
    date_modified: datetime | None = None
    client_first_name: str = ""
    client_last_name: str = ""
    phone: str = ""
    email: str | None = None
    price: float = 0.0
    delivery_address: str | None = None
    items: list[MarketplaceOrderItem] = Field(default_factory=list)
