"""Unit tests for the attribute mapper (MarketplaceProduct <-> Product)."""

from __future__ import annotations

import json
from datetime import datetime, timezone

from src.marketplace_sync.marketplace.schemas import MarketplaceProduct
from src.marketplace_sync.products.schemas import Product, ProductProperty
from src.marketplace_sync.sync.mapper import to_external, to_internal


def _mp(**attributes) -> MarketplaceProduct:
    return MarketplaceProduct(id="42", name="Widget", price=9.99, specific_attributes=attributes)


# ── to_internal ────────────────────────────────────────────────────────────


class TestToInternal:
    def test_known_scalar_fields(self):
        product = to_internal(
            _mp(
                sku="W-1",
                external_id="EXT-7",
                keywords="widget, tool",
                currency="USD",
                status="on_display",
                group_id=15,
                group_name="Tools",
                category_id="300",
                main_image="https://img/1.jpg",
            )
        )

        assert product.sku == "W-1"
        assert product.external_id == "EXT-7"
        assert product.keywords == "widget, tool"
        assert product.currency == "USD"
        assert product.status == "on_display"
        assert product.group_id == "15"
        assert product.group_name == "Tools"
        assert product.category_id == "300"
        assert product.main_image == "https://img/1.jpg"
        assert product.marketplace_specific_data == {}

    def test_stamps_marketplace_identity(self):
        product = to_internal(_mp(), marketplace_type="prom")

        assert product.marketplace_id == "42"
        assert product.marketplace_type == "prom"
        assert product.marketplace_mappings == {"prom": "42"}

    def test_product_without_marketplace_id_has_no_identity(self):
        product = to_internal(MarketplaceProduct(name="Draft"))

        assert product.marketplace_id is None
        assert product.marketplace_mappings == {}

    def test_core_fields(self):
        product = to_internal(
            MarketplaceProduct(id="1", name="Lamp", price=12.5, description="Bright")
        )

        assert product.name == "Lamp"
        assert product.price == 12.5
        assert product.description == "Bright"

    def test_empty_description_reads_as_none(self):
        assert to_internal(_mp()).description is None

    def test_quantity_string_sets_in_stock(self):
        product = to_internal(_mp(sku="W-1", quantity_in_stock="5"))

        assert product.quantity_in_stock == 5
        assert product.in_stock is True

    def test_in_stock_derived_false_for_zero_quantity(self):
        assert to_internal(_mp(quantity_in_stock=0)).in_stock is False

    def test_explicit_in_stock_wins_over_quantity(self):
        assert to_internal(_mp(quantity_in_stock=0, in_stock="true")).in_stock is True

    def test_malformed_values_keep_defaults_and_raw_value(self):
        product = to_internal(
            _mp(in_stock="maybe", old_price="abc", quantity_in_stock="lots", date_modified="yesterday")
        )

        assert product.in_stock is False
        assert product.old_price is None
        assert product.quantity_in_stock is None
        assert product.date_modified is None
        assert product.marketplace_specific_data == {
            "in_stock": "maybe",
            "old_price": "abc",
            "quantity_in_stock": "lots",
            "date_modified": "yesterday",
        }

    def test_blank_known_values_are_not_retained(self):
        product = to_internal(_mp(sku="", old_price=None))

        assert product.sku is None
        assert product.marketplace_specific_data == {}

    def test_unknown_keys_preserved_verbatim(self):
        product = to_internal(_mp(presence="available", selling_type="retail", measure_unit=7))

        assert product.marketplace_specific_data == {
            "presence": "available",
            "selling_type": "retail",
            "measure_unit": 7,
        }

    def test_images_from_json_with_url_objects(self):
        product = to_internal(_mp(images='[{"id": 1, "url": "a.jpg"}, "b.jpg", {"id": 2}]'))

        assert product.images == ["a.jpg", "b.jpg"]

    def test_images_from_list(self):
        assert to_internal(_mp(images=["a.jpg"])).images == ["a.jpg"]

    def test_single_image_url(self):
        assert to_internal(_mp(images="https://img/x.jpg")).images == ["https://img/x.jpg"]

    def test_broken_image_json_yields_empty_and_keeps_raw(self):
        product = to_internal(_mp(images='[{"url": '))

        assert product.images == []
        assert product.marketplace_specific_data == {"images": '[{"url": '}

    def test_multilang_maps(self):
        product = to_internal(
            _mp(
                name_multilang='{"uk": "Віджет", "ru": "Виджет"}',
                description_multilang={"uk": "Опис"},
            )
        )

        assert product.name_multilang == {"uk": "Віджет", "ru": "Виджет"}
        assert product.description_multilang == {"uk": "Опис"}

    def test_broken_multilang_json_yields_empty_map(self):
        product = to_internal(_mp(name_multilang='{"uk":'))

        assert product.name_multilang == {}
        assert product.marketplace_specific_data["name_multilang"] == '{"uk":'

    def test_properties(self):
        product = to_internal(
            _mp(
                properties=json.dumps(
                    [
                        {"name": "Color", "value": "Red"},
                        {"name": "Size", "value": 42, "unit": "EU"},
                        {"value": "nameless"},
                    ]
                )
            )
        )

        assert product.properties == [
            ProductProperty(name="Color", value="Red"),
            ProductProperty(name="Size", value="42", unit="EU"),
        ]

    def test_category_name_wins_over_caption(self):
        first = to_internal(_mp(category_caption="Caption", category_name="Name"))
        second = to_internal(_mp(category_name="Name", category_caption="Caption"))

        assert first.category_name == "Name"
        assert second.category_name == "Name"

    def test_category_caption_alone(self):
        assert to_internal(_mp(category_caption="Caption")).category_name == "Caption"

    def test_variant_fields(self):
        product = to_internal(_mp(is_variation="true", variation_group_id=12))

        assert product.is_variant is True
        assert product.variant_group_id == "12"

    def test_date_modified(self):
        product = to_internal(_mp(date_modified="2026-01-02T03:04:05Z"))

        assert product.date_modified == datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    def test_old_price_with_comma(self):
        assert to_internal(_mp(old_price="15,75")).old_price == 15.75


# ── to_external ────────────────────────────────────────────────────────────


class TestToExternal:
    def test_currency_defaults(self):
        product = Product(name="A")

        assert to_external(product).specific_attributes["currency"] == "UAH"
        assert to_external(product, default_currency="EUR").specific_attributes["currency"] == "EUR"

    def test_in_stock_always_emitted(self):
        attributes = to_external(Product(name="A")).specific_attributes

        assert attributes["in_stock"] is False

    def test_empty_fields_not_emitted(self):
        attributes = to_external(Product(name="A")).specific_attributes

        assert set(attributes) == {"currency", "in_stock"}

    def test_no_marketplace_id_yields_empty_id(self):
        assert to_external(Product(name="A")).id == ""

    def test_id_for_requested_marketplace(self):
        product = Product(name="A")
        product.assign_marketplace_id("rozetka", "R1")
        product.assign_marketplace_id("prom", "P1")

        assert to_external(product, "prom").id == "P1"
        assert to_external(product, "rozetka").id == "R1"
        assert to_external(product, "epicentr").id == ""

    def test_overlays_specific_data(self):
        product = Product(
            name="A",
            sku="NEW",
            marketplace_specific_data={"presence": "available", "sku": "OLD"},
        )

        attributes = to_external(product).specific_attributes

        assert attributes["sku"] == "NEW"
        assert attributes["presence"] == "available"

    def test_structured_fields_json_encoded(self):
        product = Product(
            name="A",
            images=["a.jpg", "b.jpg"],
            name_multilang={"uk": "Віджет"},
            properties=[ProductProperty(name="Color", value="Red")],
        )

        attributes = to_external(product).specific_attributes

        assert json.loads(attributes["images"]) == ["a.jpg", "b.jpg"]
        assert json.loads(attributes["name_multilang"]) == {"uk": "Віджет"}
        assert json.loads(attributes["properties"]) == [{"name": "Color", "value": "Red"}]

    def test_category_name_sent_as_caption(self):
        attributes = to_external(
            Product(name="A", category_id="300", category_name="Hand tools")
        ).specific_attributes

        assert attributes["category_caption"] == "Hand tools"
        assert attributes["category_id"] == "300"
        assert "category_name" not in attributes

    def test_core_fields(self):
        mp = to_external(Product(name="Lamp", price=12.5, description="Bright"))

        assert (mp.name, mp.price, mp.description) == ("Lamp", 12.5, "Bright")

    def test_missing_description_is_empty_string(self):
        assert to_external(Product(name="A")).description == ""


# ── Round Trip ─────────────────────────────────────────────────────────────


class TestRoundTrip:
    def test_mapped_fields_and_unknown_attributes_survive(self):
        original = Product(
            external_id="EXT-1",
            name="Widget",
            sku="W-1",
            keywords="a, b",
            category_id="10",
            category_name="Tools",
            group_id="5",
            group_name="Hand tools",
            is_variant=True,
            variant_group_id="G1",
            price=12.5,
            old_price=15.5,
            currency="USD",
            quantity_in_stock=3,
            in_stock=True,
            description="Steel widget",
            main_image="a.jpg",
            images=["a.jpg", "b.jpg"],
            status="on_display",
            name_multilang={"uk": "Віджет"},
            description_multilang={"uk": "Сталевий"},
            marketplace_specific_data={"presence": "available", "selling_type": "retail"},
            properties=[ProductProperty(name="Color", value="Red", unit=None)],
            date_modified=datetime(2026, 2, 3, 4, 5, 6, tzinfo=timezone.utc),
        )
        original.assign_marketplace_id("prom", "42")

        restored = to_internal(to_external(original, "prom"), "prom")

        fields = [
            "external_id", "name", "sku", "keywords", "category_id", "category_name",
            "group_id", "group_name", "is_variant", "variant_group_id", "price",
            "old_price", "currency", "quantity_in_stock", "in_stock", "description",
            "main_image", "images", "status", "name_multilang", "description_multilang",
            "marketplace_specific_data", "properties", "date_modified",
            "marketplace_id", "marketplace_type", "marketplace_mappings",
        ]
        for field in fields:
            assert getattr(restored, field) == getattr(original, field), field

    def test_out_of_stock_survives(self):
        original = Product(name="A", quantity_in_stock=4, in_stock=False)

        restored = to_internal(to_external(original))

        assert restored.quantity_in_stock == 4
        assert restored.in_stock is False
