"""CacheService - Redis caching for bibliographic lookups.

Google Books answers for the same (title, author) rarely change, so lookups
are cached with a long TTL plus jitter to avoid synchronized expiry.

Cache failures never break a request: every Redis error is logged and the
caller proceeds as on a miss.

Cache Key Types:
    - book:{hash} - Book detail for a (title, author) pair (7d TTL)
"""

import hashlib
import json
import random
from typing import Any

import structlog
from redis.asyncio import Redis

logger = structlog.get_logger(__name__)


class CacheService:
    """Redis cache with jittered TTLs.

    Usage with FastAPI:
        ```python
        from article_manager.services.cache import CacheService, get_cache_service

        @router.get("/books")
        async def books(cache: CacheService | None = Depends(get_cache_service)):
            ...
        ```
    """

    # TTL constants (in seconds)
    TTL_BOOK_DETAILS = 604800  # 7 days

    def __init__(self, redis: Redis) -> None:
        """Initialize the cache service.

        Args:
            redis: Async Redis client
        """
        self.redis = redis

    async def get(self, cache_key: str) -> dict[str, Any] | None:
        """Get a cached value.

        Returns:
            Cached data, or None if missing or unreadable
        """
        try:
            result = await self.redis.get(cache_key)
            if not result:
                return None
            return json.loads(result)
        except Exception as e:
            logger.warning("cache_get_failed", cache_key=cache_key, error=str(e))
            return None

    async def set(
        self,
        cache_key: str,
        data: dict[str, Any],
        base_ttl: int | None = None,
    ) -> None:
        """Store in Redis with jittered TTL.

        Args:
            cache_key: Cache key
            data: Data to cache (must be JSON-serializable)
            base_ttl: Base TTL in seconds (defaults to the book TTL)
        """
        try:
            ttl = self._jitter_ttl(base_ttl or self.TTL_BOOK_DETAILS)
            await self.redis.setex(
                cache_key, ttl, json.dumps(data, ensure_ascii=False)
            )
            logger.debug("cache_set", cache_key=cache_key, ttl=ttl)
        except Exception as e:
            logger.warning("cache_set_failed", cache_key=cache_key, error=str(e))

    def _jitter_ttl(self, base_ttl: int) -> int:
        """Add ±10% random jitter to a TTL."""
        jitter = random.uniform(-0.1, 0.1)
        return max(1, int(base_ttl * (1 + jitter)))

    # -------------------------------------------------------------------------
    # Cache Key Generators
    # -------------------------------------------------------------------------

    @staticmethod
    def book_key(title: str, author: str = "") -> str:
        """Generate a deterministic cache key for a book lookup.

        Input is normalized (casefolded, stripped) so trivially different
        spellings share a key.

        Returns:
            Cache key (e.g., "book:a3f2b1c4d5e6f7a8")
        """
        key_string = f"title={title.casefold().strip()}&author={author.casefold().strip()}"
        hash_digest = hashlib.sha256(key_string.encode()).hexdigest()[:16]
        return f"book:{hash_digest}"


# Global Redis client (set during app startup)
_redis_client: Redis | None = None


def set_redis_client(redis: Redis | None) -> None:
    """Set the global Redis client during app startup."""
    global _redis_client
    _redis_client = redis


def get_cache_service() -> CacheService | None:
    """FastAPI dependency for CacheService.

    Returns None when Redis is not configured, in which case lookups go
    straight to the upstream API.
    """
    if _redis_client is None:
        return None
    return CacheService(_redis_client)
