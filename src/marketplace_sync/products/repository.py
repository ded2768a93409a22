"""Product repository -- persistence for the Product aggregate.

Provides the ProductRepository interface the sync engine depends on and
PostgresProductRepository, an async SQLAlchemy implementation using the
session_factory callable pattern.

The aggregate is serialized with Product.model_dump(mode="json") into the
products.document column and restored with Product.model_validate(). Marketplace
identities are mirrored into product_marketplace_mappings, whose unique
(marketplace_type, marketplace_id) constraint turns a second claim on the same
marketplace item into DuplicateMappingError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timezone

import structlog
from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.marketplace_sync.marketplace.errors import DuplicateMappingError
from src.marketplace_sync.products.models import ProductMarketplaceMappingModel, ProductModel
from src.marketplace_sync.products.schemas import Product

logger = structlog.get_logger(__name__)


class ProductNotFoundError(LookupError):
    """Update targeted a product ID that is not stored."""


# ── Interface ───────────────────────────────────────────────────────────────


class ProductRepository(ABC):
    """Abstract persistence for internal products."""

    @abstractmethod
    async def get_by_id(self, product_id: str) -> Product | None:
        ...

    @abstractmethod
    async def get_by_marketplace_id(
        self, marketplace_id: str, marketplace_type: str
    ) -> Product | None:
        """Resolve the internal product holding a marketplace identity."""
        ...

    @abstractmethod
    async def get_by_marketplace_type(self, marketplace_type: str) -> list[Product]:
        """All products tagged with, or mapped on, the given marketplace type."""
        ...

    @abstractmethod
    async def create(self, product: Product) -> str:
        """Persist a new product and return its internal ID."""
        ...

    @abstractmethod
    async def update(self, product: Product) -> None:
        """Overwrite a stored product; raises ProductNotFoundError if absent."""
        ...

    @abstractmethod
    async def delete(self, product_id: str) -> bool:
        """Delete a product; returns False if it did not exist."""
        ...


# ── Serialization Helpers ───────────────────────────────────────────────────


def _product_to_document(product: Product) -> dict:
    return product.model_dump(mode="json")


def _model_to_product(model: ProductModel) -> Product:
    return Product.model_validate(model.document)


def _apply_columns(model: ProductModel, product: Product) -> None:
    model.external_id = product.external_id
    model.name = product.name
    model.sku = product.sku
    model.marketplace_type = product.marketplace_type
    model.marketplace_id = product.marketplace_id
    model.parent_product_id = product.parent_product_id
    model.document = _product_to_document(product)


def _mapping_rows(product: Product) -> list[ProductMarketplaceMappingModel]:
    mappings = dict(product.marketplace_mappings)
    if product.marketplace_type and product.marketplace_id:
        mappings[product.marketplace_type] = product.marketplace_id
    return [
        ProductMarketplaceMappingModel(
            product_id=product.id,
            marketplace_type=marketplace_type,
            marketplace_id=marketplace_id,
        )
        for marketplace_type, marketplace_id in mappings.items()
        if marketplace_id
    ]


# ── PostgreSQL Implementation ──────────────────────────────────────────────


class PostgresProductRepository(ProductRepository):
    """Async SQLAlchemy product repository.

    Args:
        session_factory: Async callable that yields AsyncSession instances.
    """

    def __init__(
        self, session_factory: Callable[..., AsyncGenerator[AsyncSession, None]]
    ) -> None:
        self._session_factory = session_factory

    async def get_by_id(self, product_id: str) -> Product | None:
        async for session in self._session_factory():
            model = await session.get(ProductModel, product_id)
            if model is None:
                return None
            return _model_to_product(model)

    async def get_by_marketplace_id(
        self, marketplace_id: str, marketplace_type: str
    ) -> Product | None:
        async for session in self._session_factory():
            stmt = (
                select(ProductModel)
                .join(
                    ProductMarketplaceMappingModel,
                    ProductMarketplaceMappingModel.product_id == ProductModel.id,
                )
                .where(
                    ProductMarketplaceMappingModel.marketplace_type == marketplace_type,
                    ProductMarketplaceMappingModel.marketplace_id == marketplace_id,
                )
            )
            result = await session.execute(stmt)
            model = result.scalar_one_or_none()
            if model is None:
                return None
            return _model_to_product(model)

    async def get_by_marketplace_type(self, marketplace_type: str) -> list[Product]:
        async for session in self._session_factory():
            mapped_ids = select(ProductMarketplaceMappingModel.product_id).where(
                ProductMarketplaceMappingModel.marketplace_type == marketplace_type
            )
            stmt = (
                select(ProductModel)
                .where(
                    or_(
                        ProductModel.marketplace_type == marketplace_type,
                        ProductModel.id.in_(mapped_ids),
                    )
                )
                .order_by(ProductModel.created_at)
            )
            result = await session.execute(stmt)
            return [_model_to_product(m) for m in result.scalars().all()]

    async def create(self, product: Product) -> str:
        async for session in self._session_factory():
            model = ProductModel(id=product.id, created_at=product.created_at)
            _apply_columns(model, product)
            session.add(model)
            await session.flush()
            session.add_all(_mapping_rows(product))
            await self._commit(session, product)
            logger.info("products.created", product_id=product.id, name=product.name)
            return product.id

    async def update(self, product: Product) -> None:
        async for session in self._session_factory():
            model = await session.get(ProductModel, product.id)
            if model is None:
                raise ProductNotFoundError(f"Product {product.id} not found")

            product.updated_at = datetime.now(timezone.utc)
            _apply_columns(model, product)
            await session.execute(
                delete(ProductMarketplaceMappingModel).where(
                    ProductMarketplaceMappingModel.product_id == product.id
                )
            )
            session.add_all(_mapping_rows(product))
            await self._commit(session, product)
            logger.debug("products.updated", product_id=product.id)

    async def delete(self, product_id: str) -> bool:
        async for session in self._session_factory():
            model = await session.get(ProductModel, product_id)
            if model is None:
                return False
            await session.delete(model)
            await session.commit()
            logger.info("products.deleted", product_id=product_id)
            return True

    async def _commit(self, session: AsyncSession, product: Product) -> None:
        """Commit, translating a mapping uniqueness violation into DuplicateMappingError."""
        try:
            await session.commit()
        except IntegrityError:
            await session.rollback()
            for row in _mapping_rows(product):
                stmt = select(ProductMarketplaceMappingModel.product_id).where(
                    ProductMarketplaceMappingModel.marketplace_type == row.marketplace_type,
                    ProductMarketplaceMappingModel.marketplace_id == row.marketplace_id,
                    ProductMarketplaceMappingModel.product_id != product.id,
                )
                holder_id = (await session.execute(stmt)).scalar_one_or_none()
                if holder_id is not None:
                    logger.warning(
                        "products.duplicate_mapping",
                        product_id=product.id,
                        holder_id=holder_id,
                        marketplace_type=row.marketplace_type,
                        marketplace_id=row.marketplace_id,
                    )
                    raise DuplicateMappingError(
                        row.marketplace_type, row.marketplace_id, holder_id
                    ) from None
            raise
