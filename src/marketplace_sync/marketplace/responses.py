"""Parsing helpers for marketplace write responses.

Create/update endpoints answer in one of several shapes. The created product
ID is located by trying CREATED_ID_STRATEGIES in order and taking the first
non-empty match:

1. bare JSON scalar body:       123 / "123"
2. top-level id:                {"id": 123}
3. top-level product_id:        {"product_id": 123}
4. nested product object:       {"product": {"id": 123}}
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import httpx
import structlog

logger = structlog.get_logger(__name__)

IdStrategy = Callable[[Any], Any]


def _bare_id(payload: Any) -> Any:
    if isinstance(payload, bool):
        return None
    if isinstance(payload, (int, str)):
        return payload
    return None


def _top_level_id(payload: Any) -> Any:
    return payload.get("id") if isinstance(payload, dict) else None


def _top_level_product_id(payload: Any) -> Any:
    return payload.get("product_id") if isinstance(payload, dict) else None


def _nested_product_id(payload: Any) -> Any:
    if not isinstance(payload, dict):
        return None
    product = payload.get("product")
    return product.get("id") if isinstance(product, dict) else None


CREATED_ID_STRATEGIES: tuple[tuple[str, IdStrategy], ...] = (
    ("bare", _bare_id),
    ("id", _top_level_id),
    ("product_id", _top_level_product_id),
    ("product.id", _nested_product_id),
)


def _normalize_id(value: Any) -> str | None:
    if value is None or isinstance(value, (bool, dict, list)):
        return None
    text = str(value).strip()
    return text or None


def extract_created_id(
    payload: Any,
    strategies: tuple[tuple[str, IdStrategy], ...] = CREATED_ID_STRATEGIES,
) -> str | None:
    """Return the marketplace ID found by the first matching strategy, or None."""
    for _name, strategy in strategies:
        found = _normalize_id(strategy(payload))
        if found is not None:
            return found
    return None


def read_body(response: httpx.Response) -> Any:
    """Decode a response body as JSON.

    An empty or non-JSON body (an HTML page, a plain "OK") yields None, so it
    can never be mistaken for a created ID.
    """
    text = response.text.strip()
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        logger.warning(
            "marketplace.response_not_json",
            status_code=response.status_code,
            content_type=response.headers.get("content-type"),
            body=text[:200],
        )
        return None
