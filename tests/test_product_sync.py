"""
Tests for the Shopify -> Meilisearch product sync

Tests cover:
- Document ID sanitization
- Product node decoding
- Cursor pagination across pages
- Idempotent upserts
"""

import re

import pytest

from storefront.errors import FetchFailed
from storefront.services.meilisearch_client import PRODUCTS_INDEX
from storefront.services.product_sync import (
    SYNC_PAGE_SIZE,
    ProductSyncService,
    sanitize_id,
    transform_product,
)
from tests.fakes import FakeSearchIndex, FakeShopify, product_node, products_page

SAFE_ID = re.compile(r"^[A-Za-z0-9_-]+$")


class TestSanitizeId:
    """Tests for sanitize_id."""

    def test_product_gid(self):
        assert sanitize_id("gid://shopify/Product/123") == "shopify-Product-123"

    def test_unsafe_characters_become_underscores(self):
        result = sanitize_id("gid://shopify/Product/12.3?x=1")

        assert result == "shopify-Product-12_3_x_1"
        assert SAFE_ID.match(result)

    def test_deterministic(self):
        gid = "gid://shopify/ProductVariant/987"
        assert sanitize_id(gid) == sanitize_id(gid)

    def test_only_leading_scheme_is_removed(self):
        assert sanitize_id("gid://a/gid://b") == "a-gid_--b"


class TestTransformProduct:
    """Tests for transform_product."""

    def test_document_shape(self):
        document = transform_product(product_node(7, title="Alpaca", collections=[("Wool", "wool"), ("Sale", "sale")]))

        assert document["id"] == "shopify-Product-7"
        assert document["title"] == "Alpaca"
        assert document["handle"] == "product-7"
        assert document["minPriceAmount"] == 89.0
        assert document["minPriceCurrency"] == "SEK"
        assert document["variantTitles"] == ["Red", "Blue"]
        assert document["collections"] == ["Wool", "Sale"]
        assert document["collectionHandles"] == ["wool", "sale"]
        assert document["options"] == [{"name": "Color", "values": ["Red", "Blue"]}]

    def test_only_image_media_is_kept(self):
        document = transform_product(product_node(7))

        assert document["images"] == [{"url": "https://cdn/7.jpg", "altText": None}]

    def test_variant_fields(self):
        variant = transform_product(product_node(7))["variants"][0]

        assert variant == {
            "id": "gid://shopify/ProductVariant/71",
            "title": "Red",
            "price": "89.0",
            "inventoryQuantity": 4,
            "selectedOptions": [{"name": "Color", "value": "Red"}],
        }


class TestProductSyncService:
    """Tests for ProductSyncService."""

    @pytest.mark.asyncio
    async def test_follows_cursor_across_pages(self):
        shopify = FakeShopify([
            products_page([product_node(1), product_node(2)], has_next_page=True, end_cursor="c1"),
            products_page([product_node(3)], has_next_page=False, end_cursor="c2"),
        ])
        service = ProductSyncService(shopify, FakeSearchIndex())

        documents = await service.fetch_all_documents()

        assert [d["id"] for d in documents] == [
            "shopify-Product-1",
            "shopify-Product-2",
            "shopify-Product-3",
        ]
        assert [variables for _, variables in shopify.calls] == [
            {"first": SYNC_PAGE_SIZE, "after": None},
            {"first": SYNC_PAGE_SIZE, "after": "c1"},
        ]

    @pytest.mark.asyncio
    async def test_stops_when_cursor_missing(self):
        """hasNextPage without an endCursor ends the loop."""
        shopify = FakeShopify([products_page([product_node(1)], has_next_page=True, end_cursor=None)])
        service = ProductSyncService(shopify, FakeSearchIndex())

        documents = await service.fetch_all_documents()

        assert len(documents) == 1
        assert len(shopify.calls) == 1

    @pytest.mark.asyncio
    async def test_missing_products_raises_fetch_failed(self):
        shopify = FakeShopify([{"data": {"products": None}}])
        service = ProductSyncService(shopify, FakeSearchIndex())

        with pytest.raises(FetchFailed):
            await service.fetch_all_documents()

    @pytest.mark.asyncio
    async def test_failure_on_later_page_writes_nothing(self):
        shopify = FakeShopify([
            products_page([product_node(1)], has_next_page=True, end_cursor="c1"),
            {"errors": [{"message": "Throttled"}]},
        ])
        search_index = FakeSearchIndex()
        service = ProductSyncService(shopify, search_index)

        with pytest.raises(FetchFailed):
            await service.sync_once()

        assert search_index.indexes == {}

    @pytest.mark.asyncio
    async def test_sync_upserts_into_products_index(self):
        shopify = FakeShopify([products_page([product_node(1), product_node(2)], False, None)])
        search_index = FakeSearchIndex()
        service = ProductSyncService(shopify, search_index)

        count = await service.sync_once()

        assert count == 2
        assert set(search_index.indexes[PRODUCTS_INDEX]) == {"shopify-Product-1", "shopify-Product-2"}

    @pytest.mark.asyncio
    async def test_sync_is_idempotent(self):
        """Running twice over an unchanged catalog leaves the same documents."""
        search_index = FakeSearchIndex()
        pages = [products_page([product_node(1), product_node(2)], False, None)]
        service = ProductSyncService(FakeShopify(pages * 2), search_index)

        await service.sync_once()
        first = dict(search_index.indexes[PRODUCTS_INDEX])
        await service.sync_once()

        assert search_index.indexes[PRODUCTS_INDEX] == first
        assert len(search_index.indexes[PRODUCTS_INDEX]) == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
