"""
API routers package
"""

from storefront.routers.products import router as products_router
from storefront.routers.collections import router as collections_router
from storefront.routers.chat import router as chat_router

__all__ = ["products_router", "collections_router", "chat_router"]
