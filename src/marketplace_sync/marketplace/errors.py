"""Marketplace integration errors.

Write operations raise these; read operations log and return empty results.
"""

from __future__ import annotations


class MarketplaceError(Exception):
    """Base class for marketplace integration failures."""


class MarketplaceConfigurationError(MarketplaceError):
    """Client cannot be built (missing API key, base URL, ...)."""


class MarketplaceTransportError(MarketplaceError):
    """The marketplace could not be reached or its response could not be read."""


class MarketplaceRejectedError(MarketplaceError):
    """The marketplace answered a write request with a non-success status."""

    def __init__(self, status_code: int, body: str, operation: str = "") -> None:
        self.status_code = status_code
        self.body = body
        self.operation = operation
        super().__init__(
            f"Marketplace rejected {operation or 'request'}: {status_code} {body[:500]}"
        )


class DuplicateMappingError(MarketplaceError):
    """A marketplace ID is already claimed by another internal product."""

    def __init__(self, marketplace_type: str, marketplace_id: str, holder_id: str) -> None:
        self.marketplace_type = marketplace_type
        self.marketplace_id = marketplace_id
        self.holder_id = holder_id
        super().__init__(
            f"{marketplace_type} product {marketplace_id} is already mapped to {holder_id}"
        )
