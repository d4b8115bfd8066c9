"""
Shopify Admin GraphQL Client
Sends GraphQL queries to the Shopify Admin API using a pre-provisioned access token
"""

import json
from typing import Any, Dict, Optional

import httpx
import structlog

from storefront.errors import UpstreamError

logger = structlog.get_logger(__name__)

OAUTH_REDIS_KEY = "oauth"


class ShopifyClient:
    """
    Client for the Shopify Admin GraphQL API.

    The access token comes from settings when configured, otherwise from
    the JSON blob stored in Redis under the "oauth" key
    ({"access_token": "..."}). Token acquisition itself happens elsewhere.
    """

    def __init__(
        self,
        shop_domain: Optional[str],
        api_version: str,
        access_token: Optional[str] = None,
        timeout: float = 30.0
    ):
        self.shop_domain = shop_domain
        self.api_version = api_version
        self.access_token = access_token
        self.timeout = timeout
        self._http: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(cls, settings) -> "ShopifyClient":
        return cls(
            shop_domain=settings.shopify_shop_domain,
            api_version=settings.shopify_api_version,
            access_token=settings.shopify_access_token,
            timeout=settings.shopify_timeout_seconds,
        )

    @property
    def endpoint(self) -> str:
        return f"https://{self.shop_domain}/admin/api/{self.api_version}/graphql.json"

    async def init(self, store=None) -> None:
        """
        Resolve the access token and open the HTTP client.

        Args:
            store: Key-value store holding the "oauth" token blob, used when
                   no access token is configured

        Raises:
            RuntimeError: If the shop domain or access token is unavailable
        """
        if not self.shop_domain:
            raise RuntimeError("Missing required setting: SHOPIFY_SHOP_DOMAIN")

        if not self.access_token:
            if store is None:
                raise RuntimeError("Shopify access token not configured")
            oauth_data = await store.get(OAUTH_REDIS_KEY)
            if not oauth_data:
                raise RuntimeError("OAuth token not found in Redis")
            self.access_token = json.loads(oauth_data)["access_token"]

        self._http = httpx.AsyncClient(
            timeout=self.timeout,
            headers={
                "X-Shopify-Access-Token": self.access_token,
                "Content-Type": "application/json",
            },
        )
        logger.info("shopify_client_initialized", shop=self.shop_domain, api_version=self.api_version)

    async def request(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Execute a GraphQL query.

        Args:
            query: GraphQL document
            variables: Query variables (None values are sent as null)

        Returns:
            Full response body ({"data": ..., "errors": ...})

        Raises:
            UpstreamError: On transport failure or non-2xx status
        """
        if self._http is None:
            raise RuntimeError("Shopify client not initialized. Call init() first.")

        try:
            response = await self._http.post(
                self.endpoint,
                json={"query": query, "variables": variables or {}},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("shopify_request_failed", error=str(e))
            raise UpstreamError(f"Shopify request failed: {e}") from e

        body = response.json()
        if body.get("errors"):
            logger.warning("shopify_graphql_errors", errors=body["errors"])
        return body

    async def close(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None
