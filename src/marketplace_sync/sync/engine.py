"""Marketplace sync engine -- reconciles internal products with one marketplace.

One pass moves products in a single direction (or both) and tallies each item:
- Import pulls marketplace products, maps them to internal products and
  creates or updates them by (marketplace_id, marketplace_type)
- Export pushes internal products, creating the ones the marketplace has
  never seen and writing the assigned marketplace ID back
- Both runs Import then Export and sums the tallies; its Import leaves an
  existing product alone unless the marketplace copy is newer, so local
  edits reach the marketplace instead of being overwritten by a stale pull

Failure of one item never aborts the pass: any exception raised while
processing an item is logged, counted in ``failed`` and the pass continues.
Cancellation aborts the remaining batch and propagates to the caller.
Items run under a semaphore sized by SYNC_MAX_CONCURRENCY (1 = sequential);
a per-product lock makes read -> create -> write-back atomic for that product.
"""

from __future__ import annotations

import asyncio
import functools
from collections import Counter
from collections.abc import AsyncIterator, Awaitable, Callable, Hashable, Sequence
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, TypeVar

import structlog

from src.marketplace_sync.core.monitoring import sync_items_total
from src.marketplace_sync.marketplace.attributes import as_text, is_blank
from src.marketplace_sync.marketplace.client import MarketplaceClient
from src.marketplace_sync.marketplace.errors import DuplicateMappingError, MarketplaceError
from src.marketplace_sync.marketplace.schemas import MarketplaceProduct, ReadStatus
from src.marketplace_sync.products.repository import ProductNotFoundError, ProductRepository
from src.marketplace_sync.products.schemas import Product
from src.marketplace_sync.sync import mapper
from src.marketplace_sync.sync.schemas import SyncDirection, SyncResult

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Marketplace attribute naming the parent item of a variation
VARIATION_BASE_KEY = "variation_base_id"

# Fields an import overwrites on an existing product. Identity, created_at,
# variants and other marketplaces' mappings are kept.
IMPORTED_FIELDS = (
    "external_id",
    "name",
    "sku",
    "keywords",
    "category_id",
    "category_name",
    "group_id",
    "group_name",
    "is_variant",
    "variant_group_id",
    "price",
    "old_price",
    "currency",
    "quantity_in_stock",
    "in_stock",
    "description",
    "main_image",
    "images",
    "status",
    "name_multilang",
    "description_multilang",
    "marketplace_specific_data",
    "properties",
    "date_modified",
)


def _modified_after(marketplace_modified: datetime | None, local_updated: datetime) -> bool:
    """True when the marketplace copy changed after the local product did.

    A marketplace copy without a modification time never counts as newer.
    """
    if marketplace_modified is None:
        return False
    if marketplace_modified.tzinfo is None:
        marketplace_modified = marketplace_modified.replace(tzinfo=timezone.utc)
    if local_updated.tzinfo is None:
        local_updated = local_updated.replace(tzinfo=timezone.utc)
    return marketplace_modified > local_updated


class SyncEngine:
    """Orchestrates product sync between the repository and a marketplace client.

    Args:
        client: Marketplace API client.
        repository: Internal product persistence.
        marketplace_type: Tag of the marketplace; defaults to the client's.
        max_concurrency: Items processed at once; 1 keeps passes sequential.
        default_currency: Currency sent when a product has none.
    """

    def __init__(
        self,
        client: MarketplaceClient,
        repository: ProductRepository,
        marketplace_type: str | None = None,
        max_concurrency: int = 1,
        default_currency: str = mapper.DEFAULT_CURRENCY,
    ) -> None:
        self._client = client
        self._repository = repository
        self.marketplace_type = marketplace_type or client.marketplace_type
        self._max_concurrency = max(1, max_concurrency)
        self._default_currency = default_currency
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: Counter[str] = Counter()

    # ── Entry Point ─────────────────────────────────────────────────────────

    async def sync(
        self,
        direction: SyncDirection,
        product_ids: Sequence[str] | None = None,
    ) -> SyncResult:
        """Run one sync pass.

        Args:
            direction: IMPORT, EXPORT or BOTH (import first, then export).
            product_ids: Optional internal product IDs restricting the pass.

        Returns:
            SyncResult with imported/exported/failed counts.
        """
        logger.info(
            "sync.started",
            marketplace=self.marketplace_type,
            direction=direction.value,
            product_ids=len(product_ids) if product_ids is not None else None,
        )

        if direction == SyncDirection.IMPORT:
            result = await self.import_products(product_ids)
        elif direction == SyncDirection.EXPORT:
            result = await self.export_products(product_ids)
        else:
            result = await self.import_products(product_ids, keep_local_edits=True)
            result = result + await self.export_products(product_ids)

        logger.info(
            "sync.complete",
            marketplace=self.marketplace_type,
            direction=direction.value,
            imported=result.imported,
            exported=result.exported,
            failed=result.failed,
        )
        return result

    # ── Import ──────────────────────────────────────────────────────────────

    async def import_products(
        self,
        product_ids: Sequence[str] | None = None,
        keep_local_edits: bool = False,
    ) -> SyncResult:
        """Pull marketplace products into the repository.

        With ``keep_local_edits`` an existing product is only overwritten when
        the marketplace copy was modified after the local one; otherwise the
        item is a no-op and local state is left for the export step.
        """
        if product_ids is None:
            read = await self._client.fetch_products()
            if read.status == ReadStatus.ERROR:
                logger.error(
                    "sync.import_source_unavailable",
                    marketplace=self.marketplace_type,
                    error=read.error,
                )
                return SyncResult(errors=[f"Marketplace product list unavailable: {read.error}"])
            items = read.items
        else:
            items = await self._resolve_import_items(product_ids)

        succeeded, failed, errors = await self._run_batch(
            items,
            functools.partial(self._import_one, keep_local_edits=keep_local_edits),
            SyncDirection.IMPORT,
            lambda mp: mp.id or mp.name,
        )
        logger.info("sync.import_complete", imported=succeeded, failed=failed)
        return SyncResult(imported=succeeded, failed=failed, errors=errors)

    async def _resolve_import_items(self, product_ids: Sequence[str]) -> list[MarketplaceProduct]:
        """Fetch the marketplace item behind each listed internal product.

        Products without a marketplace identity, or whose item cannot be read,
        are skipped with a warning.
        """
        items: list[MarketplaceProduct] = []
        for product_id in product_ids:
            product = await self._repository.get_by_id(product_id)
            if product is None:
                logger.warning("sync.import_product_missing", product_id=product_id)
                continue

            marketplace_id = product.marketplace_id_for(self.marketplace_type)
            if not marketplace_id:
                logger.warning("sync.import_skip_no_marketplace_id", product_id=product_id)
                continue

            mp = await self._client.get_product(marketplace_id)
            if mp is None:
                logger.warning(
                    "sync.import_item_unavailable",
                    product_id=product_id,
                    marketplace_id=marketplace_id,
                )
                continue
            items.append(mp)
        return items

    async def _import_one(self, mp: MarketplaceProduct, keep_local_edits: bool = False) -> None:
        if not mp.id:
            raise ValueError(f"Marketplace product {mp.name!r} has no id")

        incoming = mapper.to_internal(mp, self.marketplace_type)

        async with self._locked(f"{self.marketplace_type}:{mp.id}"):
            existing = await self._repository.get_by_marketplace_id(mp.id, self.marketplace_type)
            if existing is None:
                await self._resolve_parent(incoming)
                await self._repository.create(incoming)
                logger.debug("sync.import_created", product_id=incoming.id, marketplace_id=mp.id)
                return

            if keep_local_edits and not _modified_after(incoming.date_modified, existing.updated_at):
                logger.debug(
                    "sync.import_kept_local",
                    product_id=existing.id,
                    marketplace_id=mp.id,
                    marketplace_modified=incoming.date_modified,
                )
                return

            merged = existing.model_copy(
                update={field: getattr(incoming, field) for field in IMPORTED_FIELDS},
                deep=True,
            )
            merged.assign_marketplace_id(self.marketplace_type, mp.id)
            await self._resolve_parent(merged)
            await self._repository.update(merged)
            logger.debug("sync.import_updated", product_id=merged.id, marketplace_id=mp.id)

    async def _resolve_parent(self, product: Product) -> None:
        """Link a variation to its parent product when the parent is known.

        The link is refused if following the parent chain leads back to the
        product itself.
        """
        base_id = as_text(product.marketplace_specific_data.get(VARIATION_BASE_KEY))
        if is_blank(base_id) or base_id == product.marketplace_id:
            return

        parent = await self._repository.get_by_marketplace_id(base_id, self.marketplace_type)
        if parent is None:
            return

        visited = {product.id}
        cursor: Product | None = parent
        while cursor is not None:
            if cursor.id in visited:
                logger.warning(
                    "sync.variant_cycle_refused",
                    product_id=product.id,
                    parent_id=parent.id,
                )
                return
            visited.add(cursor.id)
            cursor = (
                await self._repository.get_by_id(cursor.parent_product_id)
                if cursor.parent_product_id
                else None
            )

        product.parent_product_id = parent.id
        product.is_variant = True

    # ── Export ──────────────────────────────────────────────────────────────

    async def export_products(self, product_ids: Sequence[str] | None = None) -> SyncResult:
        """Push internal products to the marketplace."""
        if product_ids is None:
            products = await self._repository.get_by_marketplace_type(self.marketplace_type)
        else:
            products = []
            for product_id in product_ids:
                product = await self._repository.get_by_id(product_id)
                if product is None:
                    logger.warning("sync.export_product_missing", product_id=product_id)
                    continue
                products.append(product)

        succeeded, failed, errors = await self._run_batch(
            products, self._export_one, SyncDirection.EXPORT, lambda p: p.id
        )
        logger.info("sync.export_complete", exported=succeeded, failed=failed)
        return SyncResult(exported=succeeded, failed=failed, errors=errors)

    async def _export_one(self, product: Product) -> None:
        async with self._locked(product.id):
            current = await self._repository.get_by_id(product.id)
            if current is None:
                raise ProductNotFoundError(f"Product {product.id} not found")

            mp = mapper.to_external(current, self.marketplace_type, self._default_currency)
            if mp.id:
                await self._client.update_product(mp)
                logger.debug("sync.export_updated", product_id=current.id, marketplace_id=mp.id)
                return

            created = await self._client.create_product(mp)
            if not created.id:
                raise MarketplaceError(
                    f"Marketplace accepted product {current.id} without returning an id"
                )

            holder = await self._repository.get_by_marketplace_id(created.id, self.marketplace_type)
            if holder is not None and holder.id != current.id:
                raise DuplicateMappingError(self.marketplace_type, created.id, holder.id)

            current.assign_marketplace_id(self.marketplace_type, created.id)
            await self._repository.update(current)
            logger.info("sync.export_created", product_id=current.id, marketplace_id=created.id)

    # ── Inventory ───────────────────────────────────────────────────────────

    async def sync_inventory(self, marketplace_product_id: str, quantity: int) -> bool:
        """Set the stock quantity of one marketplace item.

        The internal product holding the item, if any, is updated to match.
        Returns False when the item cannot be read or the update is rejected.
        """
        mp = await self._client.get_product(marketplace_product_id)
        if mp is None:
            logger.warning("sync.inventory_item_missing", marketplace_id=marketplace_product_id)
            return False

        attributes: dict[str, Any] = dict(mp.specific_attributes)
        attributes["quantity_in_stock"] = quantity
        attributes["in_stock"] = quantity > 0
        if "presence" in attributes:
            attributes["presence"] = "available" if quantity > 0 else "not_available"

        try:
            await self._client.update_product(mp.model_copy(update={"specific_attributes": attributes}))
        except MarketplaceError as exc:
            logger.error(
                "sync.inventory_update_failed",
                marketplace_id=marketplace_product_id,
                error=str(exc),
            )
            return False

        product = await self._repository.get_by_marketplace_id(
            marketplace_product_id, self.marketplace_type
        )
        if product is not None:
            product.quantity_in_stock = quantity
            product.in_stock = quantity > 0
            await self._repository.update(product)

        logger.info(
            "sync.inventory_updated",
            marketplace_id=marketplace_product_id,
            quantity=quantity,
            product_id=product.id if product else None,
        )
        return True

    # ── Batch Execution ─────────────────────────────────────────────────────

    @asynccontextmanager
    async def _locked(self, key: str) -> AsyncIterator[None]:
        """Hold the lock for key; the lock is dropped once nobody holds or awaits it."""
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]

    async def _run_batch(
        self,
        items: Sequence[T],
        worker: Callable[[T], Awaitable[None]],
        direction: SyncDirection,
        label: Callable[[T], Hashable],
    ) -> tuple[int, int, list[str]]:
        """Run worker over items with per-item isolation.

        Returns:
            (succeeded, failed, error messages).
        """
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def guarded(item: T) -> str | None:
            async with semaphore:
                try:
                    await worker(item)
                except Exception as exc:
                    message = f"{direction.value} {label(item)}: {exc}"
                    logger.error(
                        "sync.item_failed",
                        marketplace=self.marketplace_type,
                        direction=direction.value,
                        item=str(label(item)),
                        error=str(exc),
                        error_type=type(exc).__name__,
                    )
                    sync_items_total.labels(
                        marketplace=self.marketplace_type,
                        direction=direction.value,
                        outcome="failed",
                    ).inc()
                    return message
            sync_items_total.labels(
                marketplace=self.marketplace_type,
                direction=direction.value,
                outcome="success",
            ).inc()
            return None

        if self._max_concurrency == 1:
            outcomes = [await guarded(item) for item in items]
        else:
            tasks = [asyncio.ensure_future(guarded(item)) for item in items]
            try:
                outcomes = await asyncio.gather(*tasks)
            except BaseException:
                for task in tasks:
                    task.cancel()
                raise

        errors = [message for message in outcomes if message is not None]
        return len(outcomes) - len(errors), len(errors), errors
