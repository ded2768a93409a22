"""Pydantic schemas for the internal product catalog.

Defines the Product aggregate the CRM owns:
- ProductProperty: free-form name/value/unit attribute (size, color, material)
- ProductVariant: concrete sellable SKU under a parent product
- Product: the aggregate root, including marketplace identity and the open
  marketplace_specific_data bag for fields without a first-class column

Marketplace identity is kept in lock-step through Product.assign_marketplace_id:
marketplace_id, marketplace_type and marketplace_mappings[marketplace_type]
always change together.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, model_validator


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProductProperty(BaseModel):
    """Free-form product attribute (e.g. size=42, unit=EU)."""

    name: str
    value: str = ""
    unit: str | None = None


class ProductVariant(BaseModel):
    """A concrete sellable SKU belonging to a parent product."""

    id: str = Field(default_factory=_new_id)
    product_id: str | None = None
    name: str = ""
    sku: str | None = None
    variant_attributes: dict[str, str] = Field(default_factory=dict)

    # Pricing
    price: float = 0.0
    old_price: float | None = None
    currency: str | None = None

    # Inventory
    quantity_in_stock: int | None = None
    in_stock: bool = False

    # Content
    main_image: str | None = None
    images: list[str] = Field(default_factory=list)
    status: str | None = None

    # Marketplace identity
    marketplace_id: str | None = None
    marketplace_type: str | None = None
    marketplace_specific_data: dict[str, Any] = Field(default_factory=dict)

    created_at: datetime = Field(default_factory=_utcnow)
    date_modified: datetime | None = None


class Product(BaseModel):
    """Internal product aggregate."""

    id: str = Field(default_factory=_new_id)
    external_id: str = ""
    name: str = ""
    sku: str | None = None
    keywords: str | None = None

    # Categories and groups
    category_id: str | None = None
    category_name: str | None = None
    group_id: str | None = None
    group_name: str | None = None

    # Variant linkage
    is_variant: bool = False
    variant_group_id: str | None = None
    parent_product_id: str | None = None

    # Pricing
    price: float = 0.0
    old_price: float | None = None
    currency: str | None = None

    # Inventory
    quantity_in_stock: int | None = None
    in_stock: bool = False

    # Content
    description: str | None = None
    main_image: str | None = None
    images: list[str] = Field(default_factory=list)
    status: str | None = None
    name_multilang: dict[str, str] = Field(default_factory=dict)
    description_multilang: dict[str, str] = Field(default_factory=dict)

    # Marketplace identity
    marketplace_id: str | None = None
    marketplace_type: str | None = None
    marketplace_mappings: dict[str, str] = Field(default_factory=dict)
    marketplace_specific_data: dict[str, Any] = Field(default_factory=dict)

    properties: list[ProductProperty] = Field(default_factory=list)
    variants: list[ProductVariant] = Field(default_factory=list)

    date_modified: datetime | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def _check_links(self) -> Product:
        if self.parent_product_id is not None and self.parent_product_id == self.id:
            raise ValueError(f"Product {self.id} cannot be its own parent")
        for variant in self.variants:
            if variant.id == self.id:
                raise ValueError(f"Variant {variant.id} cannot share its parent's id")
        if (
            self.marketplace_type
            and self.marketplace_id
            and self.marketplace_mappings.get(self.marketplace_type, self.marketplace_id)
            != self.marketplace_id
        ):
            raise ValueError(
                f"marketplace_mappings[{self.marketplace_type!r}] disagrees with marketplace_id"
            )
        return self

    def marketplace_id_for(self, marketplace_type: str) -> str | None:
        """Return the ID this product is known under on the given marketplace."""
        if self.marketplace_type == marketplace_type and self.marketplace_id:
            return self.marketplace_id
        return self.marketplace_mappings.get(marketplace_type) or None

    def assign_marketplace_id(self, marketplace_type: str, marketplace_id: str) -> None:
        """Record a marketplace-assigned ID, keeping identity fields in lock-step."""
        self.marketplace_type = marketplace_type
        self.marketplace_id = marketplace_id
        self.marketplace_mappings[marketplace_type] = marketplace_id
