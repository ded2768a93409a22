"""Pydantic schemas for sync passes and the publish pipeline.

Defines:
- SyncDirection: which way a pass moves data (import / export / both)
- SyncResult: per-pass tally; summable with ``+`` and carries per-item errors
- RefinedProductDescription: publish input with explicit optional members
- PublishStatus, PublishResult: publish outcome, including the partial
  "published but ID unknown" case
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from src.marketplace_sync.marketplace.attributes import (
    as_float,
    as_list,
    as_str_map,
    as_text,
    is_blank,
)


class SyncDirection(str, Enum):
    IMPORT = "import"
    EXPORT = "export"
    BOTH = "both"


class SyncResult(BaseModel):
    """Outcome of one sync pass.

    ``imported`` and ``exported`` count items that completed; ``failed`` counts
    items whose processing raised. ``errors`` keeps one message per failure plus
    any source-unavailable notes.
    """

    imported: int = 0
    exported: int = 0
    failed: int = 0
    errors: list[str] = Field(default_factory=list)

    def __add__(self, other: SyncResult) -> SyncResult:
        return SyncResult(
            imported=self.imported + other.imported,
            exported=self.exported + other.exported,
            failed=self.failed + other.failed,
            errors=[*self.errors, *other.errors],
        )

    @property
    def succeeded(self) -> int:
        return self.imported + self.exported


# ── Publish ────────────────────────────────────────────────────────────────


def _as_text_list(value: Any) -> list[str]:
    """Read a list of strings; a plain string is split on commas."""
    if isinstance(value, str) and value.strip()[:1] != "[":
        return [part.strip() for part in value.split(",") if part.strip()]
    return [text for text in (as_text(item) for item in as_list(value)) if text]


class RefinedProductDescription(BaseModel):
    """Refined product content ready to be published as a new listing."""

    title: str = ""
    description: str = ""
    price: float | None = None
    images: list[str] = Field(default_factory=list)
    attributes: dict[str, str] = Field(default_factory=dict)
    category: str | None = None
    tags: list[str] = Field(default_factory=list)

    # Optional multilingual and SEO content
    name_multilang: dict[str, str] = Field(default_factory=dict)
    description_multilang: dict[str, str] = Field(default_factory=dict)
    meta_title: str | None = None
    meta_description: str | None = None
    seo_url: str | None = None

    @classmethod
    def from_refined_content(cls, content: dict[str, Any]) -> RefinedProductDescription:
        """Build from the content generator's output.

        Missing or malformed keys fall back to empty values; nothing raises.
        """
        category = content.get("category")
        return cls(
            title=as_text(content.get("refinedTitle")) or "",
            description=as_text(content.get("refinedDescription")) or "",
            price=as_float(content.get("recommendedPrice")),
            images=_as_text_list(content.get("Images")),
            attributes=as_str_map(content.get("Attributes")),
            category=None if is_blank(category) else as_text(category),
            tags=_as_text_list(content.get("Keywords")),
            name_multilang=as_str_map(content.get("nameMultilang")),
            description_multilang=as_str_map(content.get("descriptionMultilang")),
            meta_title=as_text(content.get("metaTitle")) or None,
            meta_description=as_text(content.get("metaDescription")) or None,
            seo_url=as_text(content.get("seoUrl")) or None,
        )


class PublishStatus(str, Enum):
    PUBLISHED = "published"
    PUBLISHED_WITHOUT_ID = "published_without_id"
    FAILED = "failed"


class PublishResult(BaseModel):
    success: bool
    message: str
    marketplace_product_id: str | None = None
    status: PublishStatus
