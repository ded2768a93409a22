"""Typed access to the marketplace attribute bag.

Marketplace attributes arrive as loosely-typed JSON values. Every value is
classified into exactly one AttributeKind, and each coercion function handles
every kind explicitly, returning None when the value cannot be read as the
requested type. Callers treat None as "absent" and keep their own default.

Structured values (lists and maps) travel through the bag as JSON-encoded
strings; encode_structured() and decode_structured() convert at the edges.
"""

from __future__ import annotations

import json
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Union

AttributeValue = Union[None, bool, int, float, str, list, dict]

_TRUE_STRINGS = frozenset({"true", "1", "yes", "y", "on"})
_FALSE_STRINGS = frozenset({"false", "0", "no", "n", "off"})


class AttributeKind(str, Enum):
    """Shape of a single attribute value."""

    NULL = "null"
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    TEXT = "text"
    LIST = "list"
    MAP = "map"


def kind_of(value: Any) -> AttributeKind:
    """Classify an attribute value.

    bool is checked before int because bool is an int subclass. Decimal counts
    as FLOAT; anything unrecognized (datetime, UUID, ...) is read as TEXT via str().
    """
    if value is None:
        return AttributeKind.NULL
    if isinstance(value, bool):
        return AttributeKind.BOOL
    if isinstance(value, int):
        return AttributeKind.INT
    if isinstance(value, (float, Decimal)):
        return AttributeKind.FLOAT
    if isinstance(value, (list, tuple)):
        return AttributeKind.LIST
    if isinstance(value, dict):
        return AttributeKind.MAP
    return AttributeKind.TEXT


def is_blank(value: Any) -> bool:
    """True for None, empty/whitespace strings and empty collections."""
    kind = kind_of(value)
    if kind == AttributeKind.NULL:
        return True
    if kind == AttributeKind.TEXT:
        return not str(value).strip()
    if kind in (AttributeKind.LIST, AttributeKind.MAP):
        return len(value) == 0
    return False


# ── Scalar coercion ─────────────────────────────────────────────────────────


def as_text(value: Any) -> str | None:
    kind = kind_of(value)
    if kind == AttributeKind.NULL:
        return None
    if kind == AttributeKind.BOOL:
        return "true" if value else "false"
    if kind == AttributeKind.INT:
        return str(value)
    if kind == AttributeKind.FLOAT:
        return str(value)
    if kind == AttributeKind.TEXT:
        return value if isinstance(value, str) else str(value)
    # LIST / MAP
    return encode_structured(value)


def as_bool(value: Any) -> bool | None:
    kind = kind_of(value)
    if kind == AttributeKind.BOOL:
        return value
    if kind in (AttributeKind.INT, AttributeKind.FLOAT):
        if value == 1:
            return True
        if value == 0:
            return False
        return None
    if kind == AttributeKind.TEXT:
        text = str(value).strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
        return None
    # NULL / LIST / MAP
    return None


def as_int(value: Any) -> int | None:
    """Read an integer; accepts numbers and numeric strings such as "5" or "5.0"."""
    kind = kind_of(value)
    if kind == AttributeKind.INT:
        return value
    if kind == AttributeKind.FLOAT:
        number = Decimal(str(value))
        if not number.is_finite() or number != number.to_integral_value():
            return None
        return int(number)
    if kind == AttributeKind.TEXT:
        text = str(value).strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = Decimal(text)
        except InvalidOperation:
            return None
        if not number.is_finite() or number != number.to_integral_value():
            return None
        return int(number)
    # NULL / BOOL / LIST / MAP
    return None


def as_float(value: Any) -> float | None:
    """Read a decimal number; accepts a comma as decimal separator in strings."""
    kind = kind_of(value)
    if kind in (AttributeKind.INT, AttributeKind.FLOAT):
        return float(value)
    if kind == AttributeKind.TEXT:
        text = str(value).strip().replace(",", ".")
        try:
            number = float(text)
        except ValueError:
            return None
        return number if number == number and number not in (float("inf"), float("-inf")) else None
    # NULL / BOOL / LIST / MAP
    return None


def as_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    kind = kind_of(value)
    if kind == AttributeKind.TEXT:
        text = str(value).strip()
        if not text:
            return None
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
    # NULL / BOOL / INT / FLOAT / LIST / MAP
    return None


# ── Structured values ───────────────────────────────────────────────────────


def encode_structured(value: Any) -> str:
    """JSON-encode a list or map for storage in the attribute bag."""
    return json.dumps(value, ensure_ascii=False, default=str)


def decode_structured(value: Any) -> Any:
    """Decode a JSON-encoded list/map string; other values pass through unchanged."""
    if isinstance(value, str):
        text = value.strip()
        if text[:1] in ("[", "{"):
            try:
                return json.loads(text)
            except ValueError:
                return value
    return value


def as_list(value: Any) -> list[Any]:
    """Read a list, decoding JSON text. Anything unreadable yields []."""
    kind = kind_of(value)
    if kind == AttributeKind.LIST:
        return list(value)
    if kind == AttributeKind.TEXT:
        decoded = decode_structured(value)
        return list(decoded) if isinstance(decoded, list) else []
    # NULL / BOOL / INT / FLOAT / MAP
    return []


def as_str_map(value: Any) -> dict[str, str]:
    """Read a string→string map, decoding JSON text. Anything unreadable yields {}."""
    kind = kind_of(value)
    if kind == AttributeKind.MAP:
        raw = value
    elif kind == AttributeKind.TEXT:
        raw = decode_structured(value)
        if not isinstance(raw, dict):
            return {}
    else:
        # NULL / BOOL / INT / FLOAT / LIST
        return {}
    return {str(k): as_text(v) or "" for k, v in raw.items() if v is not None}


def encode_attribute(value: Any) -> AttributeValue:
    """Normalize a wire value for the attribute bag.

    Lists and maps become JSON strings; scalars are kept as-is.
    """
    kind = kind_of(value)
    if kind in (AttributeKind.LIST, AttributeKind.MAP):
        return encode_structured(value)
    if kind == AttributeKind.FLOAT and isinstance(value, Decimal):
        return float(value)
    if kind == AttributeKind.TEXT and not isinstance(value, str):
        return str(value)
    return value
