"""
Redis Client Service
Async key-value store used by the response cache and for the
pre-provisioned Shopify OAuth token.
"""

from typing import Optional

import redis.asyncio as aioredis
import structlog

logger = structlog.get_logger(__name__)


class RedisService:
    """
    Thin async wrapper around redis-py exposing the store capability
    used by the cache: connect, get, set with expiry.

    Errors from Redis are not caught here; callers see them as raised.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        host: str = "localhost",
        port: int = 6379,
        password: Optional[str] = None
    ):
        self.url = url
        self.host = host
        self.port = port
        self.password = password
        self.client: Optional[aioredis.Redis] = None

    @classmethod
    def from_settings(cls, settings) -> "RedisService":
        return cls(
            url=settings.redis_url,
            host=settings.redis_host,
            port=settings.redis_port,
            password=settings.redis_password,
        )

    async def connect(self) -> None:
        """Create the connection pool and verify it with PING."""
        if self.url:
            self.client = aioredis.from_url(self.url, decode_responses=True)
        else:
            self.client = aioredis.Redis(
                host=self.host,
                port=self.port,
                password=self.password or None,
                decode_responses=True,
            )
        await self.client.ping()
        logger.info("redis_connected", host=self.host if not self.url else "url")

    def _require_client(self) -> aioredis.Redis:
        if self.client is None:
            raise RuntimeError("Redis not connected. Call connect() first.")
        return self.client

    async def get(self, key: str) -> Optional[str]:
        return await self._require_client().get(key)

    async def set(self, key: str, value: str, expire_seconds: int) -> None:
        await self._require_client().set(key, value, ex=expire_seconds)

    async def close(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None
            logger.info("redis_closed")
