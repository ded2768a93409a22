"""Unit tests for the publish pipeline and refined-content parsing."""

from __future__ import annotations

import pytest

from conftest import FakeMarketplaceClient
from src.marketplace_sync.marketplace.errors import MarketplaceRejectedError
from src.marketplace_sync.sync.publish import PublishPipeline, build_publish_payload
from src.marketplace_sync.sync.schemas import PublishStatus, RefinedProductDescription


@pytest.fixture
def pipeline(client) -> PublishPipeline:
    return PublishPipeline(client)


# ── Payload ────────────────────────────────────────────────────────────────


class TestBuildPublishPayload:
    def test_defaults_for_empty_description(self):
        payload = build_publish_payload(RefinedProductDescription())

        assert payload == {
            "name": "Generated Product",
            "description": "No description",
            "price": 0,
            "keywords": "",
            "status": "on_display",
            "currency": "UAH",
            "presence": "available",
        }

    def test_full_description(self):
        description = RefinedProductDescription(
            title="Desk Lamp",
            description="LED lamp",
            price=499.0,
            images=["a.jpg", "b.jpg"],
            attributes={"Color": "Black"},
            category="Lighting",
            tags=["lamp", "led"],
            name_multilang={"uk": "Лампа"},
            description_multilang={"uk": "Світлодіодна"},
            meta_title="Lamp",
            meta_description="Best lamp",
            seo_url="desk-lamp",
        )

        payload = build_publish_payload(description, currency="USD")

        assert payload["name"] == "Desk Lamp"
        assert payload["price"] == 499.0
        assert payload["keywords"] == "lamp, led"
        assert payload["currency"] == "USD"
        assert payload["images"] == ["a.jpg", "b.jpg"]
        assert payload["main_image"] == "a.jpg"
        assert payload["attributes"] == {"Color": "Black"}
        assert payload["category"] == "Lighting"
        assert payload["name_multilang"] == {"uk": "Лампа"}
        assert payload["description_multilang"] == {"uk": "Світлодіодна"}
        assert payload["meta_title"] == "Lamp"
        assert payload["meta_description"] == "Best lamp"
        assert payload["seo_url"] == "desk-lamp"

    def test_zero_price_is_kept(self):
        assert build_publish_payload(RefinedProductDescription(price=0.0))["price"] == 0.0


# ── Pipeline ───────────────────────────────────────────────────────────────


class TestPublishPipeline:
    async def test_published_with_id(self, pipeline, client: FakeMarketplaceClient):
        client.submit_response = {"product_id": 555}

        result = await pipeline.publish(RefinedProductDescription(title="Lamp"))

        assert result.success is True
        assert result.status == PublishStatus.PUBLISHED
        assert result.marketplace_product_id == "555"
        assert result.message == "Product published successfully"
        assert client.submitted[0]["name"] == "Lamp"

    async def test_published_without_id(self, pipeline, client: FakeMarketplaceClient):
        client.submit_response = {"status": "ok"}

        result = await pipeline.publish(RefinedProductDescription(title="Lamp"))

        assert result.success is True
        assert result.status == PublishStatus.PUBLISHED_WITHOUT_ID
        assert result.marketplace_product_id is None

    async def test_rejected(self, pipeline, client: FakeMarketplaceClient):
        client.submit_response = MarketplaceRejectedError(400, "bad price", "submit_product")

        result = await pipeline.publish(RefinedProductDescription(title="Lamp"))

        assert result.success is False
        assert result.status == PublishStatus.FAILED
        assert result.message.startswith("Failed to publish product:")
        assert "bad price" in result.message

    async def test_currency_is_stamped(self, client: FakeMarketplaceClient):
        client.submit_response = 1

        await PublishPipeline(client, currency="EUR").publish(RefinedProductDescription())

        assert client.submitted[0]["currency"] == "EUR"


# ── Refined Content ────────────────────────────────────────────────────────


class TestFromRefinedContent:
    def test_full_content(self):
        description = RefinedProductDescription.from_refined_content(
            {
                "refinedTitle": "Lamp",
                "refinedDescription": "LED lamp",
                "recommendedPrice": "499,90",
                "Images": ["a.jpg", "b.jpg"],
                "Attributes": {"Color": "Black", "Watts": 9},
                "category": "Lighting",
                "Keywords": "lamp, led , ",
                "nameMultilang": {"uk": "Лампа"},
                "metaTitle": "Lamp",
                "seoUrl": "lamp",
            }
        )

        assert description.title == "Lamp"
        assert description.price == 499.9
        assert description.images == ["a.jpg", "b.jpg"]
        assert description.attributes == {"Color": "Black", "Watts": "9"}
        assert description.category == "Lighting"
        assert description.tags == ["lamp", "led"]
        assert description.name_multilang == {"uk": "Лампа"}
        assert description.meta_title == "Lamp"
        assert description.meta_description is None
        assert description.seo_url == "lamp"

    def test_malformed_content_falls_back_to_empty(self):
        description = RefinedProductDescription.from_refined_content(
            {"recommendedPrice": "n/a", "Images": 5, "Attributes": "[]", "category": ""}
        )

        assert description.title == ""
        assert description.price is None
        assert description.images == []
        assert description.attributes == {}
        assert description.category is None

    def test_keyword_list(self):
        description = RefinedProductDescription.from_refined_content({"Keywords": ["a", "", "b"]})

        assert description.tags == ["a", "b"]
