"""REST API endpoints for marketplace sync operations.

Provides the sync trigger, listing publication, inventory updates and
read access to marketplace groups and orders. Services are resolved from
app.state (wired in the application lifespan); a missing service yields 503.
"""

from __future__ import annotations

from datetime import date
from typing import Any

import structlog
from fastapi import APIRouter, HTTPException, Query, Request, status
from pydantic import BaseModel, Field

from src.marketplace_sync.marketplace.errors import MarketplaceError
from src.marketplace_sync.marketplace.schemas import (
    MarketplaceGroup,
    MarketplaceOrder,
    OrderStatus,
)
from src.marketplace_sync.sync.schemas import (
    PublishResult,
    RefinedProductDescription,
    SyncDirection,
    SyncResult,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/marketplace", tags=["marketplace"])


# ── Request / Response Schemas ───────────────────────────────────────────────


class SyncRequest(BaseModel):
    """Optional restriction of a sync pass to specific internal products."""

    product_ids: list[str] | None = None


class InventoryRequest(BaseModel):
    quantity: int = Field(ge=0)


class InventoryResponse(BaseModel):
    marketplace_product_id: str
    quantity: int
    success: bool


class OrderStatusRequest(BaseModel):
    status: OrderStatus


# ── Dependency Injection Helpers ─────────────────────────────────────────────


def _get_state(request: Request, name: str, label: str) -> Any:
    """Retrieve a service from app.state, 503 if not available."""
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{label} not initialized",
        )
    return service


def _get_sync_engine(request: Request) -> Any:
    return _get_state(request, "sync_engine", "Sync engine")


def _get_publish_pipeline(request: Request) -> Any:
    return _get_state(request, "publish_pipeline", "Publish pipeline")


def _get_marketplace_client(request: Request) -> Any:
    return _get_state(request, "marketplace_client", "Marketplace client")


# ── Sync ─────────────────────────────────────────────────────────────────────


@router.post("/sync", response_model=SyncResult)
async def trigger_sync(
    request: Request,
    direction: SyncDirection = Query(SyncDirection.BOTH),
    body: SyncRequest | None = None,
) -> SyncResult:
    """Run one sync pass and return its tally."""
    engine = _get_sync_engine(request)
    product_ids = body.product_ids if body is not None else None
    return await engine.sync(direction, product_ids)


@router.post("/inventory/{marketplace_product_id}", response_model=InventoryResponse)
async def update_inventory(
    marketplace_product_id: str,
    body: InventoryRequest,
    request: Request,
) -> InventoryResponse:
    """Set the stock quantity of one marketplace item."""
    engine = _get_sync_engine(request)
    success = await engine.sync_inventory(marketplace_product_id, body.quantity)
    return InventoryResponse(
        marketplace_product_id=marketplace_product_id,
        quantity=body.quantity,
        success=success,
    )


# ── Publish ──────────────────────────────────────────────────────────────────


@router.post("/publish", response_model=PublishResult)
async def publish_product(body: RefinedProductDescription, request: Request) -> PublishResult:
    """Publish a refined description as a new marketplace listing."""
    pipeline = _get_publish_pipeline(request)
    return await pipeline.publish(body)


@router.post("/publish/refined", response_model=PublishResult)
async def publish_refined_content(body: dict[str, Any], request: Request) -> PublishResult:
    """Publish raw content-generator output (refinedTitle, Images, ...)."""
    pipeline = _get_publish_pipeline(request)
    return await pipeline.publish(RefinedProductDescription.from_refined_content(body))


# ── Groups ───────────────────────────────────────────────────────────────────


@router.get("/groups", response_model=list[MarketplaceGroup])
async def list_groups(request: Request) -> list[MarketplaceGroup]:
    client = _get_marketplace_client(request)
    return await client.list_groups()


# ── Orders ───────────────────────────────────────────────────────────────────


@router.get("/orders", response_model=list[MarketplaceOrder])
async def list_orders(
    request: Request,
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
) -> list[MarketplaceOrder]:
    client = _get_marketplace_client(request)
    return await client.list_orders(date_from=date_from, date_to=date_to)


@router.get("/orders/{order_id}", response_model=MarketplaceOrder)
async def get_order(order_id: str, request: Request) -> MarketplaceOrder:
    client = _get_marketplace_client(request)
    order = await client.get_order(order_id)
    if order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return order


@router.post("/orders/{order_id}/status", status_code=status.HTTP_204_NO_CONTENT)
async def update_order_status(order_id: str, body: OrderStatusRequest, request: Request) -> None:
    """Change an order's status on the marketplace."""
    client = _get_marketplace_client(request)
    try:
        await client.update_order_status(order_id, body.status)
    except MarketplaceError as exc:
        logger.error("api.order_status_update_failed", order_id=order_id, error=str(exc))
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
