"""
Tests for the Shopify, Meilisearch and Redis clients

HTTP clients run against httpx.MockTransport; no network access.
"""

import json
from unittest.mock import AsyncMock

import httpx
import pytest

from storefront.errors import UpstreamError
from storefront.services.meilisearch_client import (
    FILTERABLE_ATTRIBUTES,
    PRODUCTS_INDEX,
    MeilisearchClient,
)
from storefront.services.redis_client import RedisService
from storefront.services.shopify_client import OAUTH_REDIS_KEY, ShopifyClient
from tests.fakes import FakeStore


class TestShopifyClient:
    """Tests for ShopifyClient."""

    @pytest.mark.asyncio
    async def test_token_from_redis(self):
        store = FakeStore()
        store.data[OAUTH_REDIS_KEY] = json.dumps({"access_token": "shpat_123", "scope": "read_products"})
        client = ShopifyClient("yarn.myshopify.com", "2025-01")

        await client.init(store=store)

        assert client.access_token == "shpat_123"
        await client.close()

    @pytest.mark.asyncio
    async def test_configured_token_wins(self):
        store = FakeStore()
        client = ShopifyClient("yarn.myshopify.com", "2025-01", access_token="configured")

        await client.init(store=store)

        assert client.access_token == "configured"
        await client.close()

    @pytest.mark.asyncio
    async def test_missing_token(self):
        client = ShopifyClient("yarn.myshopify.com", "2025-01")

        with pytest.raises(RuntimeError, match="OAuth token not found"):
            await client.init(store=FakeStore())

    @pytest.mark.asyncio
    async def test_missing_domain(self):
        with pytest.raises(RuntimeError, match="SHOPIFY_SHOP_DOMAIN"):
            await ShopifyClient(None, "2025-01", access_token="t").init()

    @pytest.mark.asyncio
    async def test_request_posts_query(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"data": {"shop": {"name": "Yarn"}}})

        client = ShopifyClient("yarn.myshopify.com", "2025-01", access_token="t")
        client._http = httpx.AsyncClient(transport=httpx.MockTransport(handler))

        body = await client.request("query { shop { name } }", {"first": 1})

        assert body == {"data": {"shop": {"name": "Yarn"}}}
        assert seen["url"] == "https://yarn.myshopify.com/admin/api/2025-01/graphql.json"
        assert seen["body"] == {"query": "query { shop { name } }", "variables": {"first": 1}}
        await client.close()

    @pytest.mark.asyncio
    async def test_http_error_becomes_upstream_error(self):
        client = ShopifyClient("yarn.myshopify.com", "2025-01", access_token="t")
        client._http = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(401, json={"errors": "Unauthorized"}))
        )

        with pytest.raises(UpstreamError) as exc_info:
            await client.request("query { shop { name } }")

        assert exc_info.value.status_code == 502
        await client.close()

    @pytest.mark.asyncio
    async def test_request_before_init(self):
        with pytest.raises(RuntimeError, match="not initialized"):
            await ShopifyClient("yarn.myshopify.com", "2025-01").request("query {}")


class TestMeilisearchClient:
    """Tests for MeilisearchClient."""

    @staticmethod
    def _client(handler) -> MeilisearchClient:
        client = MeilisearchClient("http://meili:7700/", "master-key")
        client._http = httpx.AsyncClient(base_url=client.endpoint, transport=httpx.MockTransport(handler))
        return client

    @pytest.mark.asyncio
    async def test_upsert_sends_primary_key(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            seen["body"] = json.loads(request.content)
            return httpx.Response(202, json={"taskUid": 9, "status": "enqueued"})

        client = self._client(handler)

        task = await client.upsert_documents(PRODUCTS_INDEX, [{"id": "shopify-Product-1"}])

        assert task["taskUid"] == 9
        assert seen["path"] == "/indexes/products/documents"
        assert seen["params"] == {"primaryKey": "id"}
        assert seen["body"] == [{"id": "shopify-Product-1"}]

    @pytest.mark.asyncio
    async def test_get_documents_projects_fields(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={"results": [{"title": "Yarn"}], "limit": 200, "total": 1})

        client = self._client(handler)

        documents = await client.get_documents(PRODUCTS_INDEX, limit=200, fields=["title", "handle"])

        assert documents == [{"title": "Yarn"}]
        assert seen["params"] == {"limit": "200", "fields": "title,handle"}

    @pytest.mark.asyncio
    async def test_http_errors_propagate(self):
        client = self._client(lambda request: httpx.Response(503, json={"message": "down"}))

        with pytest.raises(httpx.HTTPStatusError):
            await client.get_documents(PRODUCTS_INDEX, limit=10)

    @pytest.mark.asyncio
    async def test_index_settings_applied_on_init(self, monkeypatch):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append((request.method, request.url.path, request.content))
            if request.url.path == "/health":
                return httpx.Response(200, json={"status": "available"})
            return httpx.Response(202, json={"taskUid": len(requests)})

        real_client = httpx.AsyncClient
        monkeypatch.setattr(
            httpx,
            "AsyncClient",
            lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs)
        )
        client = MeilisearchClient("http://meili:7700", "master-key")

        await client.init()

        paths = [(method, path) for method, path, _ in requests]
        assert paths[:2] == [("GET", "/health"), ("POST", "/indexes")]
        assert ("PUT", "/indexes/products/settings/filterable-attributes") in paths
        filterable = next(body for method, path, body in requests if path.endswith("filterable-attributes"))
        assert json.loads(filterable) == FILTERABLE_ATTRIBUTES
        await client.close()

    @pytest.mark.asyncio
    async def test_init_requires_endpoint(self):
        with pytest.raises(RuntimeError, match="MEILI_ENDPOINT"):
            await MeilisearchClient(None, "key").init()


class TestRedisService:
    """Tests for RedisService."""

    @pytest.mark.asyncio
    async def test_set_uses_expiry(self):
        service = RedisService()
        service.client = AsyncMock()

        await service.set("cache:products", "{}", 600)

        service.client.set.assert_awaited_once_with("cache:products", "{}", ex=600)

    @pytest.mark.asyncio
    async def test_get_passes_through(self):
        service = RedisService()
        service.client = AsyncMock()
        service.client.get.return_value = "value"

        assert await service.get("k") == "value"

    @pytest.mark.asyncio
    async def test_errors_propagate(self):
        service = RedisService()
        service.client = AsyncMock()
        service.client.get.side_effect = ConnectionError("refused")

        with pytest.raises(ConnectionError):
            await service.get("k")

    @pytest.mark.asyncio
    async def test_close_uses_aclose(self):
        service = RedisService()
        client = AsyncMock()
        service.client = client

        await service.close()
        await service.close()

        client.aclose.assert_awaited_once()
        assert service.client is None

    @pytest.mark.asyncio
    async def test_requires_connect(self):
        with pytest.raises(RuntimeError, match="connect"):
            await RedisService().get("k")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
