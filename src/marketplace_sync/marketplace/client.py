"""Marketplace client abstract base class.

Every marketplace backend implements this ABC. The SyncEngine and the
PublishPipeline depend only on this interface.

Contract:
- Reads never raise on a non-success status or transport failure: the failure
  is logged and surfaces as an empty result (fetch_products also reports it
  through ReadResult.status).
- Writes raise MarketplaceRejectedError / MarketplaceTransportError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from typing import Any

from src.marketplace_sync.marketplace.schemas import (
    MarketplaceGroup,
    MarketplaceOrder,
    MarketplaceProduct,
    OrderStatus,
    ReadResult,
)


class MarketplaceClient(ABC):
    """Abstract interface for marketplace API operations."""

    marketplace_type: str

    @abstractmethod
    async def fetch_products(self) -> ReadResult:
        """List all products, reporting ok/empty/error."""
        ...

    async def list_products(self) -> list[MarketplaceProduct]:
        """List all products; failures collapse to an empty list."""
        result = await self.fetch_products()
        return result.items

    @abstractmethod
    async def get_product(self, product_id: str) -> MarketplaceProduct | None:
        """Fetch one product by marketplace ID, None if unavailable."""
        ...

    @abstractmethod
    async def create_product(self, product: MarketplaceProduct) -> MarketplaceProduct:
        """Create a product, return it with the marketplace-assigned ID."""
        ...

    @abstractmethod
    async def update_product(self, product: MarketplaceProduct) -> MarketplaceProduct:
        """Update an existing product by its marketplace ID."""
        ...

    @abstractmethod
    async def delete_product(self, product_id: str) -> None:
        """Delete a product by marketplace ID."""
        ...

    @abstractmethod
    async def submit_product(self, payload: dict[str, Any]) -> Any:
        """Send a raw creation payload, return the decoded response body."""
        ...

    @abstractmethod
    async def list_groups(self) -> list[MarketplaceGroup]:
        """List product groups."""
        ...

    @abstractmethod
    async def get_group(self, group_id: str) -> MarketplaceGroup | None:
        """Fetch one product group."""
        ...

    @abstractmethod
    async def list_orders(
        self, date_from: date | None = None, date_to: date | None = None
    ) -> list[MarketplaceOrder]:
        """List orders, optionally restricted to a date window."""
        ...

    @abstractmethod
    async def get_order(self, order_id: str) -> MarketplaceOrder | None:
        """Fetch one order."""
        ...

    @abstractmethod
    async def update_order_status(self, order_id: str, status: OrderStatus) -> None:
        """Change an order's status on the marketplace."""
        ...
