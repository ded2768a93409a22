"""Attribute mapper -- pure translation between MarketplaceProduct and Product.

Defines:
- ATTRIBUTE_FIELD_MAP: known attribute keys, the Product field each fills and
  the parser used to read it
- to_internal(): MarketplaceProduct -> Product
- to_external(): Product -> MarketplaceProduct

Both directions are total. A known attribute that cannot be parsed leaves the
field at its default and is kept verbatim in marketplace_specific_data, as is
every unknown attribute, so to_internal(to_external(p)) reproduces p.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from src.marketplace_sync.marketplace.attributes import (
    as_bool,
    as_datetime,
    as_float,
    as_int,
    as_str_map,
    as_text,
    decode_structured,
    encode_attribute,
    is_blank,
)
from src.marketplace_sync.marketplace.schemas import MarketplaceProduct
from src.marketplace_sync.products.schemas import Product, ProductProperty

DEFAULT_CURRENCY = "UAH"


# ── Parsers ────────────────────────────────────────────────────────────────
# Each returns None when the raw value is absent or unreadable.


def _text(raw: Any) -> str | None:
    return None if is_blank(raw) else as_text(raw)


def _image_url(item: Any) -> str | None:
    if isinstance(item, dict):
        return _text(item.get("url"))
    return _text(item)


def _images(raw: Any) -> list[str] | None:
    decoded = decode_structured(raw)
    if isinstance(decoded, list):
        return [url for url in (_image_url(item) for item in decoded) if url]
    if isinstance(decoded, str) and decoded.strip() and decoded.strip()[:1] not in ("[", "{"):
        return [decoded.strip()]
    return None


def _text_map(raw: Any) -> dict[str, str] | None:
    decoded = decode_structured(raw)
    if not isinstance(decoded, dict):
        return None
    return as_str_map(decoded)


def _properties(raw: Any) -> list[ProductProperty] | None:
    decoded = decode_structured(raw)
    if not isinstance(decoded, list):
        return None
    properties = []
    for item in decoded:
        if not isinstance(item, dict) or is_blank(item.get("name")):
            continue
        properties.append(
            ProductProperty(
                name=as_text(item["name"]) or "",
                value=as_text(item.get("value")) or "",
                unit=_text(item.get("unit")),
            )
        )
    return properties


ATTRIBUTE_FIELD_MAP: dict[str, tuple[str, Callable[[Any], Any]]] = {
    "external_id": ("external_id", _text),
    "sku": ("sku", _text),
    "keywords": ("keywords", _text),
    "currency": ("currency", _text),
    "main_image": ("main_image", _text),
    "status": ("status", _text),
    "group_id": ("group_id", _text),
    "group_name": ("group_name", _text),
    "category_id": ("category_id", _text),
    "category_name": ("category_name", _text),
    "category_caption": ("category_name", _text),
    "images": ("images", _images),
    "in_stock": ("in_stock", as_bool),
    "quantity_in_stock": ("quantity_in_stock", as_int),
    "old_price": ("old_price", as_float),
    "date_modified": ("date_modified", as_datetime),
    "name_multilang": ("name_multilang", _text_map),
    "description_multilang": ("description_multilang", _text_map),
    "is_variation": ("is_variant", as_bool),
    "variation_group_id": ("variant_group_id", _text),
    "properties": ("properties", _properties),
}

# Alternate keys that yield to their canonical key when both are present
_ALIAS_KEYS = frozenset({"category_caption"})


def to_internal(mp: MarketplaceProduct, marketplace_type: str = "prom") -> Product:
    """Build an internal Product from a marketplace product.

    The result carries a fresh internal ID; callers updating an existing
    product copy the mutable fields across themselves.
    """
    fields: dict[str, Any] = {}
    extra: dict[str, Any] = {}

    for key, raw in mp.specific_attributes.items():
        rule = ATTRIBUTE_FIELD_MAP.get(key)
        if rule is None:
            extra[key] = raw
            continue

        field, parse = rule
        value = parse(raw)
        if value is None:
            if not is_blank(raw):
                extra[key] = raw
            continue
        if key in _ALIAS_KEYS and field in fields:
            continue
        fields[field] = value

    if "in_stock" not in fields:
        fields["in_stock"] = (fields.get("quantity_in_stock") or 0) > 0

    product = Product(
        name=mp.name,
        price=mp.price,
        description=mp.description or None,
        marketplace_specific_data=extra,
        **fields,
    )
    if mp.id:
        product.assign_marketplace_id(marketplace_type, mp.id)
    return product


def to_external(
    product: Product,
    marketplace_type: str = "prom",
    default_currency: str = DEFAULT_CURRENCY,
) -> MarketplaceProduct:
    """Build the marketplace representation of an internal Product.

    Starts from marketplace_specific_data and overlays every non-empty mapped
    field. The ID is the product's existing marketplace ID for this type, or
    empty when the product has never been created there.
    """
    attributes: dict[str, Any] = dict(product.marketplace_specific_data)

    def put(key: str, value: Any) -> None:
        if not is_blank(value):
            attributes[key] = encode_attribute(value)

    put("external_id", product.external_id)
    put("sku", product.sku)
    put("keywords", product.keywords)
    put("currency", product.currency or default_currency)
    put("main_image", product.main_image)
    put("status", product.status)
    put("group_id", product.group_id)
    put("group_name", product.group_name)
    put("category_id", product.category_id)
    put("category_caption", product.category_name)  # Prom wire name
    put("images", product.images)
    put("name_multilang", product.name_multilang)
    put("description_multilang", product.description_multilang)
    put("variation_group_id", product.variant_group_id)
    put("properties", [p.model_dump(exclude_none=True) for p in product.properties])

    if product.quantity_in_stock is not None:
        attributes["quantity_in_stock"] = product.quantity_in_stock
    if product.old_price is not None:
        attributes["old_price"] = product.old_price
    if product.date_modified is not None:
        attributes["date_modified"] = product.date_modified.isoformat()
    if product.is_variant:
        attributes["is_variation"] = True
    attributes["in_stock"] = product.in_stock

    return MarketplaceProduct(
        id=product.marketplace_id_for(marketplace_type) or "",
        name=product.name,
        price=product.price,
        description=product.description or "",
        specific_attributes=attributes,
    )
