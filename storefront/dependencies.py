"""
Service Container and FastAPI dependencies

All external service handles are constructed explicitly, initialized at
startup and reached by handlers through app.state.services.
"""

from dataclasses import dataclass

import structlog
from fastapi import HTTPException
from starlette.requests import HTTPConnection

from storefront.scheduler import ProductSyncScheduler
from storefront.services.cache import ResponseCache
from storefront.services.meilisearch_client import MeilisearchClient
from storefront.services.openrouter import OpenRouterClient
from storefront.services.product_sync import ProductSyncService
from storefront.services.redis_client import RedisService
from storefront.services.shopify_client import ShopifyClient

logger = structlog.get_logger(__name__)


@dataclass
class ServiceContainer:
    redis: RedisService
    cache: ResponseCache
    shopify: ShopifyClient
    search_index: MeilisearchClient
    completions: OpenRouterClient
    product_sync: ProductSyncService
    scheduler: ProductSyncScheduler

    @classmethod
    def from_settings(cls, settings) -> "ServiceContainer":
        redis = RedisService.from_settings(settings)
        shopify = ShopifyClient.from_settings(settings)
        search_index = MeilisearchClient.from_settings(settings)
        product_sync = ProductSyncService(shopify, search_index, page_size=settings.sync_page_size)

        return cls(
            redis=redis,
            cache=ResponseCache(redis, ttl_seconds=settings.cache_ttl_seconds),
            shopify=shopify,
            search_index=search_index,
            completions=OpenRouterClient.from_settings(settings),
            product_sync=product_sync,
            scheduler=ProductSyncScheduler(product_sync, timezone=settings.scheduler_timezone),
        )

    async def init(self, start_scheduler: bool = True) -> None:
        """
        Connect every service in dependency order.

        Redis comes first because the Shopify token may live there.
        """
        await self.redis.connect()
        await self.shopify.init(store=self.redis)
        await self.search_index.init()
        self.completions.init()

        if start_scheduler:
            self.scheduler.start()
        else:
            logger.info("scheduler_skipped", reason="testing_environment")

    async def close(self) -> None:
        self.scheduler.stop()
        await self.completions.close()
        await self.search_index.close()
        await self.shopify.close()
        await self.redis.close()


def get_services(connection: HTTPConnection) -> ServiceContainer:
    """Dependency returning the app's service container."""
    services = getattr(connection.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="Services not initialized")
    return services
