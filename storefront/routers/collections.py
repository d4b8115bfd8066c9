"""
Collections API Router
Cached collection listing and products per collection
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query

from storefront.dependencies import ServiceContainer, get_services
from storefront.errors import AppError
from storefront.routers.pagination import clamp_page_size
from storefront.services.cache import build_cache_key
from storefront.services.catalog import fetch_collection_products, fetch_collections

logger = structlog.get_logger()

router = APIRouter(prefix="/collections", tags=["collections"])


@router.get("")
async def list_collections(
    first: Optional[str] = Query(None, description="Page size (1-50, default 12)"),
    after: Optional[str] = Query(None, description="Cursor from the previous page"),
    services: ServiceContainer = Depends(get_services)
):
    """
    List collections.

    Returns:
        dict with collections and pageInfo
    """
    page_size = clamp_page_size(first)
    cache_key = build_cache_key("collections", {"first": page_size, "after": after})

    try:
        return await services.cache.get_or_compute(
            cache_key,
            lambda: fetch_collections(services.shopify, page_size, after)
        )
    except AppError as e:
        logger.error("collections_fetch_failed", error=e.message, status=e.status_code)
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error("collections_fetch_failed", error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch collections")


@router.get("/{handle}/products")
async def list_collection_products(
    handle: str,
    first: Optional[str] = Query(None, description="Page size (1-50, default 12)"),
    after: Optional[str] = Query(None, description="Cursor from the previous page"),
    services: ServiceContainer = Depends(get_services)
):
    """
    A collection with one page of its products.

    Raises:
        404: Collection not found
    """
    page_size = clamp_page_size(first)
    cache_key = build_cache_key(
        "collection-products",
        {"handle": handle, "first": page_size, "after": after}
    )

    try:
        return await services.cache.get_or_compute(
            cache_key,
            lambda: fetch_collection_products(services.shopify, handle, page_size, after)
        )
    except AppError as e:
        logger.error("collection_products_fetch_failed", handle=handle, error=e.message)
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error("collection_products_fetch_failed", handle=handle, error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch collection products")
