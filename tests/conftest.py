"""Shared test doubles and fixtures for marketplace sync tests.

Provides:
- InMemoryProductRepository: ProductRepository without a database, enforcing
  unique (marketplace_type, marketplace_id) like the real mapping table
- FakeMarketplaceClient: MarketplaceClient backed by a dict, recording calls
- make_product(): Product factory with sensible defaults
- repo / client / engine fixtures wired together
"""

from __future__ import annotations

from datetime import date
from typing import Any

import pytest

from src.marketplace_sync.marketplace.client import MarketplaceClient
from src.marketplace_sync.marketplace.errors import DuplicateMappingError
from src.marketplace_sync.marketplace.schemas import (
    MarketplaceGroup,
    MarketplaceOrder,
    MarketplaceProduct,
    OrderStatus,
    ReadResult,
    ReadStatus,
)
from src.marketplace_sync.products.repository import ProductNotFoundError, ProductRepository
from src.marketplace_sync.products.schemas import Product
from src.marketplace_sync.sync.engine import SyncEngine


# ── Helpers ────────────────────────────────────────────────────────────────


def make_product(**overrides: Any) -> Product:
    """Create a test Product tagged with the prom marketplace."""
    defaults: dict[str, Any] = {
        "name": "Test Widget",
        "price": 10.0,
        "marketplace_type": "prom",
    }
    defaults.update(overrides)
    product = Product(**defaults)
    if product.marketplace_id and product.marketplace_type:
        product.assign_marketplace_id(product.marketplace_type, product.marketplace_id)
    return product


# ── In-Memory Test Doubles ─────────────────────────────────────────────────


class InMemoryProductRepository(ProductRepository):
    """In-memory ProductRepository for testing without database.

    Stores deep copies so callers never share state with the store.
    """

    def __init__(self) -> None:
        self.products: dict[str, Product] = {}

    async def get_by_id(self, product_id: str) -> Product | None:
        product = self.products.get(product_id)
        return product.model_copy(deep=True) if product else None

    async def get_by_marketplace_id(
        self, marketplace_id: str, marketplace_type: str
    ) -> Product | None:
        for product in self.products.values():
            if product.marketplace_id_for(marketplace_type) == marketplace_id:
                return product.model_copy(deep=True)
        return None

    async def get_by_marketplace_type(self, marketplace_type: str) -> list[Product]:
        return [
            p.model_copy(deep=True)
            for p in self.products.values()
            if p.marketplace_type == marketplace_type or marketplace_type in p.marketplace_mappings
        ]

    async def create(self, product: Product) -> str:
        self._check_unique(product)
        self.products[product.id] = product.model_copy(deep=True)
        return product.id

    async def update(self, product: Product) -> None:
        if product.id not in self.products:
            raise ProductNotFoundError(f"Product {product.id} not found")
        self._check_unique(product)
        self.products[product.id] = product.model_copy(deep=True)

    async def delete(self, product_id: str) -> bool:
        return self.products.pop(product_id, None) is not None

    def _check_unique(self, product: Product) -> None:
        mappings = dict(product.marketplace_mappings)
        if product.marketplace_type and product.marketplace_id:
            mappings[product.marketplace_type] = product.marketplace_id
        for marketplace_type, marketplace_id in mappings.items():
            for other in self.products.values():
                if other.id != product.id and other.marketplace_id_for(marketplace_type) == marketplace_id:
                    raise DuplicateMappingError(marketplace_type, marketplace_id, other.id)


class FakeMarketplaceClient(MarketplaceClient):
    """Dict-backed MarketplaceClient that records every write."""

    marketplace_type = "prom"

    def __init__(self, products: list[MarketplaceProduct] | None = None, next_id: int = 100) -> None:
        self.products: dict[str, MarketplaceProduct] = {p.id: p for p in products or []}
        self.read_error: str | None = None
        self.created: list[MarketplaceProduct] = []
        self.updated: list[MarketplaceProduct] = []
        self.deleted: list[str] = []
        self.submitted: list[dict[str, Any]] = []
        self.submit_response: Any = None
        self.update_error: BaseException | None = None
        self.create_returns_no_id = False
        self.groups: list[MarketplaceGroup] = []
        self.orders: dict[str, MarketplaceOrder] = {}
        self.status_updates: list[tuple[str, OrderStatus]] = []
        self._next_id = next_id

    async def fetch_products(self) -> ReadResult:
        if self.read_error is not None:
            return ReadResult(status=ReadStatus.ERROR, error=self.read_error)
        items = list(self.products.values())
        return ReadResult(status=ReadStatus.OK if items else ReadStatus.EMPTY, items=items)

    async def get_product(self, product_id: str) -> MarketplaceProduct | None:
        return self.products.get(product_id)

    async def create_product(self, product: MarketplaceProduct) -> MarketplaceProduct:
        if self.create_returns_no_id:
            self.created.append(product)
            return product.model_copy(update={"id": ""})
        created = product.model_copy(update={"id": str(self._next_id)})
        self._next_id += 1
        self.products[created.id] = created
        self.created.append(created)
        return created

    async def update_product(self, product: MarketplaceProduct) -> MarketplaceProduct:
        if self.update_error is not None:
            raise self.update_error
        self.updated.append(product)
        self.products[product.id] = product
        return product

    async def delete_product(self, product_id: str) -> None:
        self.deleted.append(product_id)
        self.products.pop(product_id, None)

    async def submit_product(self, payload: dict[str, Any]) -> Any:
        self.submitted.append(payload)
        if isinstance(self.submit_response, BaseException):
            raise self.submit_response
        return self.submit_response

    async def list_groups(self) -> list[MarketplaceGroup]:
        return list(self.groups)

    async def get_group(self, group_id: str) -> MarketplaceGroup | None:
        return next((g for g in self.groups if g.id == group_id), None)

    async def list_orders(
        self, date_from: date | None = None, date_to: date | None = None
    ) -> list[MarketplaceOrder]:
        return list(self.orders.values())

    async def get_order(self, order_id: str) -> MarketplaceOrder | None:
        return self.orders.get(order_id)

    async def update_order_status(self, order_id: str, status: OrderStatus) -> None:
        self.status_updates.append((order_id, status))


# ── Fixtures ───────────────────────────────────────────────────────────────


@pytest.fixture
def repo() -> InMemoryProductRepository:
    return InMemoryProductRepository()


@pytest.fixture
def client() -> FakeMarketplaceClient:
    return FakeMarketplaceClient()


@pytest.fixture
def engine(client, repo) -> SyncEngine:
    return SyncEngine(client=client, repository=repo)
