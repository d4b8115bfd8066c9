"""
Product Context Loader
Builds the condensed catalog snapshot embedded in the chat system prompt
"""

import json
from typing import Any, Dict, List

import structlog

from storefront.services.meilisearch_client import PRODUCTS_INDEX

logger = structlog.get_logger(__name__)

CONTEXT_FIELDS = [
    "title",
    "description",
    "minPriceAmount",
    "minPriceCurrency",
    "collections",
    "options",
    "variantTitles",
    "handle",
]
DESCRIPTION_MAX_CHARS = 200
EMPTY_CONTEXT = "[]"


def condense_product(document: Dict[str, Any]) -> Dict[str, Any]:
    """Reduce a search document to the fields the assistant needs."""
    description = document.get("description") or ""
    return {
        "title": document.get("title"),
        "description": description.strip()[:DESCRIPTION_MAX_CHARS],
        "price": f"{document.get('minPriceAmount')} {document.get('minPriceCurrency')}",
        "collections": document.get("collections"),
        "options": document.get("options"),
        "variants": document.get("variantTitles"),
        "handle": document.get("handle"),
    }


class ProductContextLoader:
    """
    Loads up to `limit` products from the search index as compact JSON.

    Never raises: on any failure the assistant runs without catalog
    grounding and gets an empty list.
    """

    def __init__(self, search_index, limit: int = 200):
        self.search_index = search_index
        self.limit = limit

    async def load(self) -> str:
        try:
            documents: List[Dict[str, Any]] = await self.search_index.get_documents(
                PRODUCTS_INDEX,
                limit=self.limit,
                fields=CONTEXT_FIELDS
            )
            products = [condense_product(document) for document in documents]
            logger.debug("product_context_loaded", products=len(products))
            return json.dumps(products, ensure_ascii=False, separators=(",", ":"))
        except Exception as e:
            logger.error("product_context_failed", error=str(e), exc_info=True)
            return EMPTY_CONTEXT
