"""Redis caching for catalog read endpoints.

A single shared CacheService wraps a lazily created Redis client. Every
operation degrades gracefully: when Redis is down, reads miss and writes
are skipped, so the API keeps serving from the database.
"""

from typing import Any, Optional
import structlog

from redis.asyncio import Redis, from_url
from redis.exceptions import RedisError

from app.config import settings

logger = structlog.get_logger(__name__)


class CacheService:
    """Async Redis cache with TTL and pattern invalidation."""

    def __init__(self, redis_url: str, default_ttl: Optional[int] = None):
        """Initialize cache service.

        Args:
            redis_url: Redis connection URL (e.g., "redis://localhost:6379/0")
            default_ttl: TTL in seconds for ``set`` when none is given
        """
        self.redis_url = redis_url
        self.default_ttl = default_ttl or settings.CATEGORY_CACHE_TTL
        self._redis: Optional[Redis] = None
        self.logger = logger.bind(service="cache_service")

    async def _get_redis(self) -> Redis:
        if self._redis is None:
            self._redis = from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
            self.logger.info("redis_connection_created", url=self.redis_url)

        return self._redis

    async def get(self, key: str) -> Optional[str]:
        """Get a value from cache.

        Returns:
            Cached string, or None on a miss or a Redis error
        """
        try:
            redis = await self._get_redis()
            value = await redis.get(key)
        except RedisError as e:
            self.logger.error("cache_get_failed", key=key, error=str(e), exc_info=True)
            return None

        self.logger.debug("cache_hit" if value else "cache_miss", key=key)
        return value

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        """Store a value with a TTL (seconds). Returns False on a Redis error."""
        ttl = ttl or self.default_ttl
        try:
            redis = await self._get_redis()
            await redis.set(key, value, ex=ttl)
        except RedisError as e:
            self.logger.error("cache_set_failed", key=key, error=str(e), exc_info=True)
            return False

        self.logger.debug("cache_set", key=key, ttl=ttl, value_length=len(value))
        return True

    async def delete(self, key: str) -> bool:
        try:
            redis = await self._get_redis()
            result = await redis.delete(key)
        except RedisError as e:
            self.logger.error("cache_delete_failed", key=key, error=str(e), exc_info=True)
            return False

        return bool(result)

    async def delete_pattern(self, pattern: str) -> int:
        """Delete all keys matching a glob pattern such as ``categories:*``.

        Returns:
            Number of keys deleted, 0 on error
        """
        try:
            redis = await self._get_redis()
            keys = [key async for key in redis.scan_iter(match=pattern, count=100)]
            deleted = await redis.delete(*keys) if keys else 0
        except RedisError as e:
            self.logger.error(
                "cache_pattern_delete_failed",
                pattern=pattern,
                error=str(e),
                exc_info=True,
            )
            return 0

        self.logger.info("cache_pattern_delete", pattern=pattern, keys_deleted=deleted)
        return deleted

    async def health_check(self) -> bool:
        try:
            redis = await self._get_redis()
            await redis.ping()
            return True
        except Exception as e:
            self.logger.error("redis_health_check_failed", error=str(e))
            return False

    async def close(self) -> None:
        """Close the Redis connection. Called on application shutdown."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None
            self.logger.info("redis_connection_closed")


# Global cache instance
_cache_instance: Optional[CacheService] = None


def get_cache_service() -> CacheService:
    """Get or create the process-wide cache service."""
    global _cache_instance

    if _cache_instance is None:
        _cache_instance = CacheService(settings.REDIS_URL)
        logger.info("cache_service_initialized", redis_url=settings.REDIS_URL)

    return _cache_instance


async def get_cache() -> CacheService:
    """FastAPI dependency for cache service.

    Usage:
        @router.get("/endpoint")
        async def endpoint(cache: CacheService = Depends(get_cache)):
            ...
    """
    return get_cache_service()


CATEGORY_CACHE_PATTERNS = ("categories:*",)


async def invalidate_categories_cache(cache: Optional[CacheService] = None) -> int:
    """Invalidate all category-related cache entries.

    Category listings embed product counts, so this is called after every
    category or product write.

    Args:
        cache: Cache to clear, defaults to the global instance

    Returns:
        Number of cache keys deleted
    """
    cache = cache or get_cache_service()

    total_deleted = 0
    for pattern in CATEGORY_CACHE_PATTERNS:
        total_deleted += await cache.delete_pattern(pattern)

    logger.info("categories_cache_invalidated", keys_deleted=total_deleted)
    return total_deleted


def cache_key_for_categories(view: str, **params: Any) -> str:
    """Generate cache key for a category read endpoint.

    Args:
        view: Endpoint name (e.g., "list", "tree", "featured")
        **params: Query parameters; None values are skipped

    Returns:
        Cache key string, e.g. "categories:list:level=1:page=1"
    """
    parts = ["categories", view]

    for name in sorted(params):
        value = params[name]
        if value is not None:
            parts.append(f"{name}={value}")

    return ":".join(parts)
