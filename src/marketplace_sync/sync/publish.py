"""Publish pipeline -- turns refined product content into a new marketplace listing.

The listing is submitted through the client's raw creation path and the new
marketplace ID is located with the ordered CREATED_ID_STRATEGIES. A listing
the marketplace accepted without reporting an ID is a partial success
(PublishStatus.PUBLISHED_WITHOUT_ID), not a failure.
"""

from __future__ import annotations

from typing import Any

import structlog

from src.marketplace_sync.marketplace.client import MarketplaceClient
from src.marketplace_sync.marketplace.errors import MarketplaceError
from src.marketplace_sync.marketplace.responses import extract_created_id
from src.marketplace_sync.sync.mapper import DEFAULT_CURRENCY
from src.marketplace_sync.sync.schemas import (
    PublishResult,
    PublishStatus,
    RefinedProductDescription,
)

logger = structlog.get_logger(__name__)

DEFAULT_NAME = "Generated Product"
DEFAULT_DESCRIPTION = "No description"


def build_publish_payload(
    description: RefinedProductDescription, currency: str = DEFAULT_CURRENCY
) -> dict[str, Any]:
    """Build the flat creation payload for a refined description."""
    payload: dict[str, Any] = {
        "name": description.title or DEFAULT_NAME,
        "description": description.description or DEFAULT_DESCRIPTION,
        "price": description.price if description.price is not None else 0,
        "keywords": ", ".join(description.tags),
        "status": "on_display",
        "currency": currency,
        "presence": "available",
    }

    if description.images:
        payload["images"] = list(description.images)
        payload["main_image"] = description.images[0]
    if description.name_multilang:
        payload["name_multilang"] = dict(description.name_multilang)
    if description.description_multilang:
        payload["description_multilang"] = dict(description.description_multilang)
    if description.meta_title:
        payload["meta_title"] = description.meta_title
    if description.meta_description:
        payload["meta_description"] = description.meta_description
    if description.seo_url:
        payload["seo_url"] = description.seo_url
    if description.attributes:
        payload["attributes"] = dict(description.attributes)
    if description.category:
        payload["category"] = description.category

    return payload


class PublishPipeline:
    """Publishes refined product descriptions to a marketplace.

    Args:
        client: Marketplace client used for submission.
        currency: Currency stamped on every new listing.
    """

    def __init__(self, client: MarketplaceClient, currency: str = DEFAULT_CURRENCY) -> None:
        self._client = client
        self._currency = currency

    async def publish(self, description: RefinedProductDescription) -> PublishResult:
        payload = build_publish_payload(description, self._currency)
        logger.info("publish.started", name=payload["name"], images=len(description.images))

        try:
            body = await self._client.submit_product(payload)
        except MarketplaceError as exc:
            logger.error("publish.failed", name=payload["name"], error=str(exc))
            return PublishResult(
                success=False,
                message=f"Failed to publish product: {exc}",
                status=PublishStatus.FAILED,
            )

        product_id = extract_created_id(body)
        if product_id is None:
            logger.warning("publish.no_product_id", name=payload["name"])
            return PublishResult(
                success=True,
                message="Product published, but no product ID was returned",
                status=PublishStatus.PUBLISHED_WITHOUT_ID,
            )

        logger.info("publish.complete", name=payload["name"], product_id=product_id)
        return PublishResult(
            success=True,
            message="Product published successfully",
            marketplace_product_id=product_id,
            status=PublishStatus.PUBLISHED,
        )
