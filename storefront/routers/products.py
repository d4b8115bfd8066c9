"""
Products API Router
Cached product listing and per-product inventory
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query

from storefront.dependencies import ServiceContainer, get_services
from storefront.errors import AppError
from storefront.routers.pagination import clamp_page_size
from storefront.services.cache import build_cache_key
from storefront.services.catalog import fetch_product_inventory, fetch_products

logger = structlog.get_logger()

router = APIRouter(tags=["products"])


@router.get("/products")
async def list_products(
    first: Optional[str] = Query(None, description="Page size (1-50, default 12)"),
    after: Optional[str] = Query(None, description="Cursor from the previous page's pageInfo.endCursor"),
    services: ServiceContainer = Depends(get_services)
):
    """
    List products with images, variants and options.

    Returns:
        dict with products and pageInfo
    """
    page_size = clamp_page_size(first)
    cache_key = build_cache_key("products", {"first": page_size, "after": after})

    try:
        return await services.cache.get_or_compute(
            cache_key,
            lambda: fetch_products(services.shopify, page_size, after)
        )
    except AppError as e:
        logger.error("products_fetch_failed", error=e.message, status=e.status_code)
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error("products_fetch_failed", error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch products")


@router.get("/products/{product_id:path}/inventory")
async def get_product_inventory(
    product_id: str,
    services: ServiceContainer = Depends(get_services)
):
    """
    Available inventory per variant and location.

    Args:
        product_id: Shopify product GID (e.g. gid://shopify/Product/123)

    Raises:
        404: Product not found
    """
    if not product_id:
        raise HTTPException(status_code=400, detail="Product ID is required")

    cache_key = build_cache_key("product-inventory", {"productId": product_id})

    try:
        return await services.cache.get_or_compute(
            cache_key,
            lambda: fetch_product_inventory(services.shopify, product_id)
        )
    except AppError as e:
        logger.error("product_inventory_fetch_failed", product_id=product_id, error=e.message)
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error("product_inventory_fetch_failed", product_id=product_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch product inventory")
