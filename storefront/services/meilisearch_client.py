"""
Meilisearch Client
Handles the products search index over the Meilisearch REST API
"""

from typing import Any, Dict, List, Optional, Sequence

import httpx
import structlog

logger = structlog.get_logger(__name__)

PRODUCTS_INDEX = "products"
PRODUCTS_PRIMARY_KEY = "id"

SEARCHABLE_ATTRIBUTES = [
    "title",
    "description",
    "handle",
    "collections",
    "options",
    "variantTitles",
]
FILTERABLE_ATTRIBUTES = [
    "collections",
    "collectionHandles",
    "minPriceAmount",
    "handle",
]
SORTABLE_ATTRIBUTES = [
    "title",
    "minPriceAmount",
]


class MeilisearchClient:
    """
    Client for the Meilisearch search index.

    Features:
    - Health check and products index setup
    - Batch document upsert (replace by primary key)
    - Document listing with field projection

    HTTP errors are raised as httpx.HTTPStatusError and are not retried.
    """

    def __init__(self, endpoint: Optional[str], api_key: Optional[str], timeout: float = 30.0):
        self.endpoint = endpoint.rstrip("/") if endpoint else endpoint
        self.api_key = api_key
        self.timeout = timeout
        self._http: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(cls, settings) -> "MeilisearchClient":
        return cls(
            endpoint=settings.meili_endpoint,
            api_key=settings.meili_api_key,
            timeout=settings.meili_timeout_seconds,
        )

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            raise RuntimeError("Meilisearch not initialized. Call init() first.")
        return self._http

    async def init(self) -> None:
        """
        Open the HTTP client, verify health and configure the products index.

        The products index uses the sanitized Shopify product ID as primary
        key, so re-adding a product replaces its document.

        Raises:
            RuntimeError: If configuration is missing or the server is unhealthy
        """
        if not self.endpoint:
            raise RuntimeError("Missing required setting: MEILI_ENDPOINT")
        if not self.api_key:
            raise RuntimeError("Missing required setting: MEILI_API_KEY")

        self._http = httpx.AsyncClient(
            base_url=self.endpoint,
            timeout=self.timeout,
            headers={"Authorization": f"Bearer {self.api_key}"},
        )

        response = await self._http.get("/health")
        response.raise_for_status()
        status = response.json().get("status")
        if status != "available":
            raise RuntimeError(f"Meilisearch is not healthy: {status}")

        # Enqueued as a task; fails harmlessly server-side if the index exists
        response = await self._http.post(
            "/indexes",
            json={"uid": PRODUCTS_INDEX, "primaryKey": PRODUCTS_PRIMARY_KEY},
        )
        response.raise_for_status()

        settings_path = f"/indexes/{PRODUCTS_INDEX}/settings"
        for setting, values in (
            ("searchable-attributes", SEARCHABLE_ATTRIBUTES),
            ("filterable-attributes", FILTERABLE_ATTRIBUTES),
            ("sortable-attributes", SORTABLE_ATTRIBUTES),
        ):
            response = await self._http.put(f"{settings_path}/{setting}", json=values)
            response.raise_for_status()

        logger.info("meilisearch_initialized", index=PRODUCTS_INDEX)

    async def upsert_documents(
        self,
        index: str,
        documents: List[Dict[str, Any]],
        primary_key: str = PRODUCTS_PRIMARY_KEY
    ) -> Dict[str, Any]:
        """
        Add or replace documents by primary key.

        Args:
            index: Index uid
            documents: Documents to write
            primary_key: Primary key field name

        Returns:
            Enqueued task summary (contains taskUid)
        """
        response = await self._client().post(
            f"/indexes/{index}/documents",
            params={"primaryKey": primary_key},
            json=documents,
        )
        response.raise_for_status()
        return response.json()

    async def get_documents(
        self,
        index: str,
        limit: int,
        fields: Optional[Sequence[str]] = None
    ) -> List[Dict[str, Any]]:
        """
        List documents from an index.

        Args:
            index: Index uid
            limit: Maximum number of documents
            fields: Fields to return (all fields when None)

        Returns:
            List of documents
        """
        params: Dict[str, Any] = {"limit": limit}
        if fields:
            params["fields"] = ",".join(fields)

        response = await self._client().get(f"/indexes/{index}/documents", params=params)
        response.raise_for_status()
        return response.json().get("results", [])

    async def close(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None
