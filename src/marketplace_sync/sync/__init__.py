"""Sync layer -- attribute mapping, sync orchestration and listing publication.

Provides:
- mapper: to_internal()/to_external() between MarketplaceProduct and Product
- SyncEngine: import/export/both passes with per-item failure isolation
- PublishPipeline: publishes a RefinedProductDescription as a new listing
"""

from src.marketplace_sync.sync.engine import SyncEngine
from src.marketplace_sync.sync.mapper import to_external, to_internal
from src.marketplace_sync.sync.publish import PublishPipeline, build_publish_payload
from src.marketplace_sync.sync.schemas import (
    PublishResult,
    PublishStatus,
    RefinedProductDescription,
    SyncDirection,
    SyncResult,
)

__all__ = [
    "SyncEngine",
    "PublishPipeline",
    "build_publish_payload",
    "to_internal",
    "to_external",
    "SyncDirection",
    "SyncResult",
    "RefinedProductDescription",
    "PublishResult",
    "PublishStatus",
]
