"""
Shared fixtures for the storefront tests.

Every external service is replaced by an in-memory fake injected through
ServiceContainer; nothing is patched at module level.
"""

from typing import Optional
from unittest.mock import Mock

import pytest

from storefront.dependencies import ServiceContainer
from storefront.services.cache import ResponseCache
from storefront.services.product_sync import ProductSyncService
from tests.fakes import FakeCompletions, FakeSearchIndex, FakeShopify, FakeStore


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def search_index():
    return FakeSearchIndex()


@pytest.fixture
def completions():
    return FakeCompletions()


@pytest.fixture
def make_services(store, search_index, completions):
    """Build a ServiceContainer around fakes."""

    def _make(shopify: Optional[FakeShopify] = None) -> ServiceContainer:
        shopify = shopify or FakeShopify()
        scheduler = Mock()
        scheduler.running = False
        return ServiceContainer(
            redis=store,
            cache=ResponseCache(store),
            shopify=shopify,
            search_index=search_index,
            completions=completions,
            product_sync=ProductSyncService(shopify, search_index),
            scheduler=scheduler,
        )

    return _make
