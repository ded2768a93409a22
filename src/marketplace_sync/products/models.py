"""Product persistence models.

Two SQLAlchemy models:
- ProductModel: one row per internal product; scalar lookup columns plus the
  whole Product aggregate as a JSON document
- ProductMarketplaceMappingModel: one row per (product, marketplace type);
  the unique (marketplace_type, marketplace_id) constraint guarantees a
  marketplace item maps to at most one internal product
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint, func, text
from sqlalchemy.dialects.postgresql import JSON
from sqlalchemy.orm import Mapped, mapped_column

from src.marketplace_sync.core.database import Base


class ProductModel(Base):
    """Internal product aggregate stored as a JSON document."""

    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    external_id: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    name: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    sku: Mapped[str | None] = mapped_column(String(200), nullable=True, index=True)
    marketplace_type: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)
    marketplace_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    parent_product_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    document: Mapped[dict] = mapped_column(
        JSON, default=dict, server_default=text("'{}'::json")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        onupdate=func.now(),
        nullable=True,
    )


class ProductMarketplaceMappingModel(Base):
    """Marketplace identity of a product on one marketplace type."""

    __tablename__ = "product_marketplace_mappings"
    __table_args__ = (
        UniqueConstraint(
            "marketplace_type",
            "marketplace_id",
            name="uq_mapping_marketplace_type_id",
        ),
    )

    product_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("products.id", ondelete="CASCADE"),
        primary_key=True,
    )
    marketplace_type: Mapped[str] = mapped_column(String(50), primary_key=True)
    marketplace_id: Mapped[str] = mapped_column(String(100), nullable=False)
