"""Product catalog module -- the internal Product aggregate and its persistence.

Provides Pydantic schemas (Product, ProductVariant, ProductProperty),
SQLAlchemy models for products and their marketplace mappings, and the
ProductRepository interface with its PostgreSQL implementation.
"""

from src.marketplace_sync.products.repository import (
    PostgresProductRepository,
    ProductNotFoundError,
    ProductRepository,
)
from src.marketplace_sync.products.schemas import Product, ProductProperty, ProductVariant

__all__ = [
    "Product",
    "ProductProperty",
    "ProductVariant",
    "ProductRepository",
    "PostgresProductRepository",
    "ProductNotFoundError",
]
