"""Prom.ua marketplace client -- async HTTP client for the Prom REST API.

Implements MarketplaceClient over httpx with bearer-token authentication.

Key implementation details:
- Wire products are flattened into MarketplaceProduct: name/price/description
  get their own slots, nested group/category objects become group_*/category_*
  attributes, and every other field (known or not) lands in the attribute bag
- Reads log non-success responses and return empty results; writes raise
  MarketplaceRejectedError / MarketplaceTransportError
- One attempt per call by default; MARKETPLACE_MAX_ATTEMPTS > 1 enables a
  tenacity retry on connect/timeout errors only
"""

from __future__ import annotations

import re
from datetime import date
from typing import Any

import httpx
import structlog
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from src.marketplace_sync.config import Settings
from src.marketplace_sync.core.monitoring import track_marketplace_call
from src.marketplace_sync.marketplace.attributes import (
    as_datetime,
    as_float,
    as_int,
    as_str_map,
    as_text,
    decode_structured,
    encode_attribute,
)
from src.marketplace_sync.marketplace.client import MarketplaceClient
from src.marketplace_sync.marketplace.errors import (
    MarketplaceConfigurationError,
    MarketplaceRejectedError,
    MarketplaceTransportError,
)
from src.marketplace_sync.marketplace.responses import extract_created_id, read_body
from src.marketplace_sync.marketplace.schemas import (
    MarketplaceGroup,
    MarketplaceOrder,
    MarketplaceOrderItem,
    MarketplaceProduct,
    OrderStatus,
    ReadResult,
    ReadStatus,
)

logger = structlog.get_logger(__name__)

_TRANSIENT_ERRORS = (httpx.ConnectError, httpx.TimeoutException)

# Fields with a dedicated MarketplaceProduct slot
_CORE_FIELDS = frozenset({"id", "name", "price", "description"})

# Nested wire objects flattened into prefixed attributes
_FLATTENED_OBJECTS = {"group": "group_", "category": "category_"}


# ── Order Status Mapping ───────────────────────────────────────────────────

_STATUS_FROM_PROM: dict[str, OrderStatus] = {
    "pending": OrderStatus.PENDING,
    "received": OrderStatus.PROCESSING,
    "draft": OrderStatus.PROCESSING,
    "delivering": OrderStatus.SHIPPED,
    "delivered": OrderStatus.DELIVERED,
    "canceled": OrderStatus.CANCELLED,
}

_STATUS_TO_PROM: dict[OrderStatus, str] = {
    OrderStatus.PENDING: "pending",
    OrderStatus.PROCESSING: "received",
    OrderStatus.SHIPPED: "delivering",
    OrderStatus.DELIVERED: "delivered",
    OrderStatus.CANCELLED: "canceled",
    OrderStatus.ON_HOLD: "canceled",
}

CANCELLATION_REASON = "Order cancelled by merchant"


def order_status_from_marketplace(status: str | None) -> OrderStatus:
    """Map a Prom order status to OrderStatus; unknown values read as PENDING."""
    return _STATUS_FROM_PROM.get((status or "").strip().lower(), OrderStatus.PENDING)


def order_status_to_marketplace(status: OrderStatus) -> str:
    return _STATUS_TO_PROM.get(status, "pending")


# ── Wire Conversion ────────────────────────────────────────────────────────


def product_from_wire(data: dict[str, Any]) -> MarketplaceProduct:
    """Flatten a Prom product object into a MarketplaceProduct."""
    attributes: dict[str, Any] = {}

    for key, value in data.items():
        if key in _CORE_FIELDS:
            continue
        prefix = _FLATTENED_OBJECTS.get(key)
        if prefix is not None and isinstance(value, dict):
            for nested_key, nested_value in value.items():
                attributes[f"{prefix}{nested_key}"] = encode_attribute(nested_value)
            continue
        attributes[key] = encode_attribute(value)

    return MarketplaceProduct(
        id=as_text(data.get("id")) or "",
        name=as_text(data.get("name")) or "",
        price=as_float(data.get("price")) or 0.0,
        description=as_text(data.get("description")) or "",
        specific_attributes=attributes,
    )


def product_to_wire(product: MarketplaceProduct) -> dict[str, Any]:
    """Build the flat Prom payload for a create/update request."""
    payload: dict[str, Any] = {
        "name": product.name,
        "price": product.price,
        "description": product.description,
    }
    for key, value in product.specific_attributes.items():
        if key in _CORE_FIELDS:
            continue
        payload[key] = decode_structured(value)
    if product.id:
        numeric_id = as_int(product.id)
        payload["id"] = numeric_id if numeric_id is not None else product.id
    return payload


def group_from_wire(data: dict[str, Any]) -> MarketplaceGroup:
    return MarketplaceGroup(
        id=as_text(data.get("id")) or "",
        name=as_text(data.get("name")) or "",
        name_multilang=as_str_map(data.get("name_multilang")),
        description=as_text(data.get("description")) or "",
        description_multilang=as_str_map(data.get("description_multilang")),
        image=as_text(data.get("image")) or "",
        parent_group_id=as_text(data.get("parent_group_id")) or None,
    )


def _parse_money(value: Any) -> float:
    """Read a price that may carry currency text ("1 200,50 грн")."""
    amount = as_float(value)
    if amount is None and isinstance(value, str):
        amount = as_float(re.sub(r"[^\d.,-]", "", value))
    return amount or 0.0


def order_from_wire(data: dict[str, Any]) -> MarketplaceOrder:
    marketplace_status = as_text(data.get("status")) or ""
    items = []
    for line in data.get("products") or []:
        if not isinstance(line, dict):
            continue
        items.append(
            MarketplaceOrderItem(
                product_id=as_text(line.get("id")) or "",
                name=as_text(line.get("name")) or "",
                sku=as_text(line.get("sku")),
                quantity=as_int(line.get("quantity")) or 1,
                price=_parse_money(line.get("price")),
            )
        )

    return MarketplaceOrder(
        id=as_text(data.get("id")) or "",
        status=order_status_from_marketplace(marketplace_status),
        marketplace_status=marketplace_status,
        date_created=as_datetime(data.get("date_created")),
        date_modified=as_datetime(data.get("date_modified")),
        client_first_name=as_text(data.get("client_first_name")) or "",
        client_last_name=as_text(data.get("client_last_name")) or "",
        phone=as_text(data.get("phone")) or "",
        email=as_text(data.get("email")),
        price=_parse_money(data.get("price")),
        delivery_address=as_text(data.get("delivery_address")),
        items=items,
    )


# ── Client ─────────────────────────────────────────────────────────────────


class PromClient(MarketplaceClient):
    """Async client for the Prom.ua REST API.

    Args:
        api_key: Prom API token, sent as a bearer token.
        base_url: API root, e.g. https://my.prom.ua/api/v1/.
        marketplace_type: Tag stored on internal products owned by this marketplace.
        read_timeout: Timeout for list/get calls, seconds.
        write_timeout: Timeout for create/update/delete calls, seconds.
        max_attempts: Attempts per call; 1 disables retry.
        transport: Optional httpx transport (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        marketplace_type: str = "prom",
        read_timeout: float = 10.0,
        write_timeout: float = 30.0,
        max_attempts: int = 1,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key or not api_key.strip():
            raise MarketplaceConfigurationError("Marketplace API key is missing")
        if not base_url or not base_url.strip():
            raise MarketplaceConfigurationError("Marketplace base URL is missing")

        self.marketplace_type = marketplace_type
        self._base_url = base_url.rstrip("/") + "/"
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        self._read_timeout = read_timeout
        self._write_timeout = write_timeout
        self._max_attempts = max(1, max_attempts)
        self._retry_wait = wait_exponential(multiplier=1, min=1, max=10)
        self._transport = transport

        logger.info(
            "prom.client_configured",
            base_url=self._base_url,
            api_key_prefix=api_key[:4],
            max_attempts=self._max_attempts,
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None
    ) -> PromClient:
        return cls(
            api_key=settings.MARKETPLACE_API_KEY,
            base_url=settings.MARKETPLACE_BASE_URL,
            marketplace_type=settings.MARKETPLACE_TYPE,
            read_timeout=settings.MARKETPLACE_READ_TIMEOUT,
            write_timeout=settings.MARKETPLACE_WRITE_TIMEOUT,
            max_attempts=settings.MARKETPLACE_MAX_ATTEMPTS,
            transport=transport,
        )

    def _client(self, timeout: float) -> httpx.AsyncClient:
        """Create a new httpx client with specified timeout."""
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._headers,
            timeout=timeout,
            transport=self._transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        timeout: float,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Perform one logical request; raises httpx.HTTPError on transport failure."""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=self._retry_wait,
            retry=retry_if_exception_type(_TRANSIENT_ERRORS),
            reraise=True,
        )
        with track_marketplace_call(self.marketplace_type, operation):
            async for attempt in retrying:
                with attempt:
                    async with self._client(timeout) as client:
                        response = await client.request(method, path, json=json, params=params)
        logger.debug(
            "prom.response",
            operation=operation,
            path=path,
            status_code=response.status_code,
        )
        return response

    async def _read(
        self, path: str, operation: str, params: dict[str, Any] | None = None
    ) -> tuple[Any, str | None]:
        """GET a resource. Returns (body, None) or (None, error description)."""
        try:
            response = await self._request(
                "GET", path, operation=operation, timeout=self._read_timeout, params=params
            )
        except httpx.HTTPError as exc:
            logger.error("prom.read_transport_error", operation=operation, path=path, error=str(exc))
            return None, f"transport error: {exc}"

        if response.is_error:
            logger.error(
                "prom.read_failed",
                operation=operation,
                path=path,
                status_code=response.status_code,
                body=response.text[:500],
            )
            return None, f"HTTP {response.status_code}"

        return read_body(response), None

    async def _write(
        self, method: str, path: str, operation: str, json: Any = None
    ) -> Any:
        """Send a mutating request. Raises on transport failure or non-success status."""
        try:
            response = await self._request(
                method, path, operation=operation, timeout=self._write_timeout, json=json
            )
        except httpx.HTTPError as exc:
            logger.error("prom.write_transport_error", operation=operation, path=path, error=str(exc))
            raise MarketplaceTransportError(f"{operation} failed: {exc}") from exc

        if response.is_error:
            logger.error(
                "prom.write_rejected",
                operation=operation,
                path=path,
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise MarketplaceRejectedError(response.status_code, response.text, operation)

        return read_body(response)

    @staticmethod
    def _envelope(body: Any, key: str) -> Any:
        return body.get(key) if isinstance(body, dict) else None

    # ── Products ──────────────────────────────────────────────────────────

    async def fetch_products(self) -> ReadResult:
        body, error = await self._read("products/list", "list_products")
        if error is not None:
            return ReadResult(status=ReadStatus.ERROR, error=error)

        raw_products = self._envelope(body, "products")
        if not isinstance(raw_products, list):
            logger.error("prom.products_envelope_missing", body_type=type(body).__name__)
            return ReadResult(status=ReadStatus.ERROR, error="response has no 'products' list")

        items: list[MarketplaceProduct] = []
        for entry in raw_products:
            if not isinstance(entry, dict):
                logger.warning("prom.product_entry_skipped", entry_type=type(entry).__name__)
                continue
            items.append(product_from_wire(entry))

        logger.info("prom.products_listed", count=len(items))
        return ReadResult(status=ReadStatus.OK if items else ReadStatus.EMPTY, items=items)

    async def get_product(self, product_id: str) -> MarketplaceProduct | None:
        body, error = await self._read(f"products/{product_id}", "get_product")
        if error is not None:
            return None

        raw = self._envelope(body, "product")
        if not isinstance(raw, dict):
            logger.warning("prom.product_not_found", product_id=product_id)
            return None
        return product_from_wire(raw)

    async def submit_product(self, payload: dict[str, Any]) -> Any:
        return await self._write("POST", "products", "create_product", json={"product": payload})

    async def create_product(self, product: MarketplaceProduct) -> MarketplaceProduct:
        payload = product_to_wire(product.model_copy(update={"id": ""}))
        body = await self.submit_product(payload)

        created_id = extract_created_id(body)
        if created_id is None:
            logger.warning("prom.product_created_without_id", name=product.name)
            return product.model_copy(update={"id": ""})

        logger.info("prom.product_created", product_id=created_id, name=product.name)
        return product.model_copy(update={"id": created_id})

    async def update_product(self, product: MarketplaceProduct) -> MarketplaceProduct:
        if not product.id:
            raise ValueError("Marketplace product id is required for update")

        body = await self._write(
            "PUT",
            f"products/{product.id}",
            "update_product",
            json={"product": product_to_wire(product)},
        )
        logger.info("prom.product_updated", product_id=product.id)

        raw = self._envelope(body, "product")
        if isinstance(raw, dict) and as_text(raw.get("id")) == product.id:
            return product_from_wire(raw)
        return product

    async def delete_product(self, product_id: str) -> None:
        await self._write("DELETE", f"products/{product_id}", "delete_product")
        logger.info("prom.product_deleted", product_id=product_id)

    # ── Groups ────────────────────────────────────────────────────────────

    async def list_groups(self) -> list[MarketplaceGroup]:
        body, error = await self._read("groups/list", "list_groups")
        raw_groups = self._envelope(body, "groups") if error is None else None
        if not isinstance(raw_groups, list):
            return []

        groups = [group_from_wire(g) for g in raw_groups if isinstance(g, dict)]
        logger.info("prom.groups_listed", count=len(groups))
        return groups

    async def get_group(self, group_id: str) -> MarketplaceGroup | None:
        body, error = await self._read(f"groups/{group_id}", "get_group")
        raw = self._envelope(body, "group") if error is None else None
        if not isinstance(raw, dict):
            return None
        return group_from_wire(raw)

    # ── Orders ────────────────────────────────────────────────────────────

    async def list_orders(
        self, date_from: date | None = None, date_to: date | None = None
    ) -> list[MarketplaceOrder]:
        params: dict[str, Any] = {}
        if date_from is not None:
            params["date_from"] = date_from.strftime("%Y-%m-%d")
        if date_to is not None:
            params["date_to"] = date_to.strftime("%Y-%m-%d")

        body, error = await self._read("orders/list", "list_orders", params=params or None)
        raw_orders = self._envelope(body, "orders") if error is None else None
        if not isinstance(raw_orders, list):
            return []

        orders: list[MarketplaceOrder] = []
        for entry in raw_orders:
            if not isinstance(entry, dict):
                continue
            try:
                orders.append(order_from_wire(entry))
            except ValueError as exc:
                logger.warning("prom.order_parse_failed", order_id=entry.get("id"), error=str(exc))

        logger.info("prom.orders_listed", count=len(orders))
        return orders

    async def get_order(self, order_id: str) -> MarketplaceOrder | None:
        body, error = await self._read(f"orders/{order_id}", "get_order")
        raw = self._envelope(body, "order") if error is None else None
        if not isinstance(raw, dict):
            return None
        return order_from_wire(raw)

    async def update_order_status(self, order_id: str, status: OrderStatus) -> None:
        payload: dict[str, Any] = {"status": order_status_to_marketplace(status)}
        if status == OrderStatus.CANCELLED:
            payload["cancellation_reason"] = CANCELLATION_REASON

        await self._write("POST", f"orders/{order_id}/status", "update_order_status", json=payload)
        logger.info("prom.order_status_updated", order_id=order_id, status=payload["status"])
