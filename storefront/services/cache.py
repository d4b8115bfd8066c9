"""
Response Cache Service
Read-through cache in front of Shopify GraphQL calls, backed by Redis.

Key format: cache:{prefix}[:{k1}={v1}&{k2}={v2}...]
TTL: 600 seconds, never invalidated explicitly
"""

import json
from typing import Any, Awaitable, Callable, Mapping, Optional, Protocol, TypeVar

import structlog

logger = structlog.get_logger(__name__)

CACHE_NAMESPACE = "cache"
CACHE_TTL_SECONDS = 600

T = TypeVar("T")


class KeyValueStore(Protocol):
    """Store capability required by the cache (see RedisService)."""

    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str, expire_seconds: int) -> None: ...


def build_cache_key(prefix: str, params: Mapping[str, Any]) -> str:
    """
    Build a deterministic cache key from a prefix and request parameters.

    Parameters are sorted by name so the same logical request always maps
    to the same key. None values are omitted.

    Args:
        prefix: Operation name (e.g. "products")
        params: Request parameters

    Returns:
        Cache key string
    """
    filtered = sorted(
        ((name, value) for name, value in params.items() if value is not None),
        key=lambda item: item[0]
    )

    if not filtered:
        return f"{CACHE_NAMESPACE}:{prefix}"

    param_string = "&".join(f"{name}={value}" for name, value in filtered)
    return f"{CACHE_NAMESPACE}:{prefix}:{param_string}"


class ResponseCache:
    """
    Cache-aside wrapper: look up a key, compute and store on miss.

    No negative caching and no stampede protection: concurrent misses on
    the same key each call compute and the last write wins.
    """

    def __init__(self, store: KeyValueStore, ttl_seconds: int = CACHE_TTL_SECONDS):
        self.store = store
        self.ttl_seconds = ttl_seconds

    async def get_or_compute(self, key: str, compute: Callable[[], Awaitable[T]]) -> T:
        """
        Return the cached value for key, computing and storing it on a miss.

        Errors from the store or from compute propagate unchanged and
        nothing is written.

        Args:
            key: Cache key (see build_cache_key)
            compute: Zero-argument coroutine function producing a JSON-serializable value

        Returns:
            Cached or freshly computed value
        """
        cached = await self.store.get(key)
        if cached is not None:
            logger.debug("cache_hit", key=key)
            return json.loads(cached)

        logger.debug("cache_miss", key=key)
        result = await compute()
        await self.store.set(key, json.dumps(result), self.ttl_seconds)
        return result
