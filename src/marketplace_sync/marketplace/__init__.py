"""Marketplace integration layer -- abstract client plus the Prom.ua implementation.

Provides the MarketplaceClient interface the sync engine depends on, the
PromClient HTTP implementation, wire DTOs (MarketplaceProduct, ReadResult,
groups, orders), typed attribute coercion and the error hierarchy.
"""

from src.marketplace_sync.marketplace.client import MarketplaceClient
from src.marketplace_sync.marketplace.errors import (
    DuplicateMappingError,
    MarketplaceConfigurationError,
    MarketplaceError,
    MarketplaceRejectedError,
    MarketplaceTransportError,
)
from src.marketplace_sync.marketplace.prom import (
    PromClient,
    order_status_from_marketplace,
    order_status_to_marketplace,
)
from src.marketplace_sync.marketplace.responses import CREATED_ID_STRATEGIES, extract_created_id
from src.marketplace_sync.marketplace.schemas import (
    MarketplaceGroup,
    MarketplaceOrder,
    MarketplaceOrderItem,
    MarketplaceProduct,
    OrderStatus,
    ReadResult,
    ReadStatus,
)

__all__ = [
    "MarketplaceClient",
    "PromClient",
    "MarketplaceProduct",
    "MarketplaceGroup",
    "MarketplaceOrder",
    "MarketplaceOrderItem",
    "OrderStatus",
    "ReadResult",
    "ReadStatus",
    "MarketplaceError",
    "MarketplaceConfigurationError",
    "MarketplaceTransportError",
    "MarketplaceRejectedError",
    "DuplicateMappingError",
    "CREATED_ID_STRATEGIES",
    "extract_created_id",
    "order_status_from_marketplace",
    "order_status_to_marketplace",
]
