"""
Product Sync Service
Pages through the full Shopify catalog and upserts it into the Meilisearch products index
"""

import re
from typing import Any, Dict, List, Optional

import structlog

from storefront.errors import FetchFailed
from storefront.services.meilisearch_client import PRODUCTS_INDEX, PRODUCTS_PRIMARY_KEY

logger = structlog.get_logger(__name__)

SYNC_PAGE_SIZE = 50

SYNC_PRODUCTS_QUERY = """
  query SyncProducts($first: Int!, $after: String) {
    products(first: $first, after: $after) {
      pageInfo {
        hasNextPage
        endCursor
      }
      edges {
        node {
          id
          title
          description
          handle
          priceRangeV2 {
            minVariantPrice {
              amount
              currencyCode
            }
          }
          media(first: 10) {
            edges {
              node {
                __typename
                ... on MediaImage {
                  image {
                    url
                    altText
                  }
                }
              }
            }
          }
          variants(first: 100) {
            edges {
              node {
                id
                title
                price
                inventoryQuantity
                selectedOptions {
                  name
                  value
                }
              }
            }
          }
          options {
            name
            values
          }
          collections(first: 50) {
            edges {
              node {
                title
                handle
              }
            }
          }
        }
      }
    }
  }
"""

_UNSAFE_ID_CHARS = re.compile(r"[^A-Za-z0-9_-]")


def sanitize_id(gid: str) -> str:
    """
    Convert a Shopify GID into a Meilisearch-safe document ID.

    Meilisearch IDs may only contain alphanumerics, hyphens and underscores.
    e.g. "gid://shopify/Product/123" -> "shopify-Product-123"
    """
    flat = gid.replace("gid://", "", 1).replace("/", "-")
    return _UNSAFE_ID_CHARS.sub("_", flat)


def transform_product(product: Dict[str, Any]) -> Dict[str, Any]:
    """
    Decode one product node into a search document.

    Args:
        product: The "node" of a products edge from SYNC_PRODUCTS_QUERY

    Returns:
        Document dict keyed by the sanitized product ID
    """
    images = [
        {"url": edge["node"]["image"]["url"], "altText": edge["node"]["image"].get("altText")}
        for edge in product["media"]["edges"]
        if edge["node"].get("__typename") == "MediaImage" and edge["node"].get("image")
    ]

    variants = [
        {
            "id": edge["node"]["id"],
            "title": edge["node"]["title"],
            "price": edge["node"]["price"],
            "inventoryQuantity": edge["node"]["inventoryQuantity"],
            "selectedOptions": edge["node"]["selectedOptions"],
        }
        for edge in product["variants"]["edges"]
    ]

    collection_nodes = [edge["node"] for edge in product["collections"]["edges"]]
    min_price = product["priceRangeV2"]["minVariantPrice"]

    return {
        "id": sanitize_id(product["id"]),
        "title": product["title"],
        "description": product["description"],
        "handle": product["handle"],
        "minPriceAmount": float(min_price["amount"]),
        "minPriceCurrency": min_price["currencyCode"],
        "images": images,
        "variants": variants,
        "options": product["options"],
        "variantTitles": [variant["title"] for variant in variants],
        "collections": [node["title"] for node in collection_nodes],
        "collectionHandles": [node["handle"] for node in collection_nodes],
    }


class ProductSyncService:
    """
    Full-catalog sync from Shopify into Meilisearch.

    Every run rewrites all documents; products removed upstream are not
    deleted from the index.
    """

    def __init__(self, shopify, search_index, page_size: int = SYNC_PAGE_SIZE):
        """
        Args:
            shopify: GraphQL client exposing request(query, variables)
            search_index: Index client exposing upsert_documents(index, documents, primary_key)
            page_size: Products per GraphQL page
        """
        self.shopify = shopify
        self.search_index = search_index
        self.page_size = page_size

    async def fetch_all_documents(self) -> List[Dict[str, Any]]:
        """
        Fetch every product from Shopify, page by page.

        Raises:
            FetchFailed: If a page response has no products data
        """
        documents: List[Dict[str, Any]] = []
        has_next_page = True
        after: Optional[str] = None
        pages = 0

        while has_next_page:
            response = await self.shopify.request(
                SYNC_PRODUCTS_QUERY,
                {"first": self.page_size, "after": after}
            )

            products_data = (response.get("data") or {}).get("products")
            if not products_data:
                raise FetchFailed()

            documents.extend(transform_product(edge["node"]) for edge in products_data["edges"])
            pages += 1

            page_info = products_data["pageInfo"]
            after = page_info.get("endCursor") or None
            has_next_page = bool(page_info.get("hasNextPage")) and after is not None

        logger.debug("products_fetched", documents=len(documents), pages=pages)
        return documents

    async def sync_once(self) -> int:
        """
        Fetch the whole catalog and upsert it as one batch.

        Returns:
            Number of documents submitted
        """
        logger.info("product_sync_started")

        documents = await self.fetch_all_documents()
        task = await self.search_index.upsert_documents(
            PRODUCTS_INDEX,
            documents,
            primary_key=PRODUCTS_PRIMARY_KEY
        )

        logger.info(
            "product_sync_enqueued",
            documents=len(documents),
            task_uid=(task or {}).get("taskUid")
        )
        return len(documents)
