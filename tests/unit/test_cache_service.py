"""Tests for CacheService."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from article_manager.services import cache as cache_module
from article_manager.services.cache import CacheService, get_cache_service, set_redis_client


@pytest.fixture
def redis() -> MagicMock:
    mock = MagicMock()
    mock.get = AsyncMock(return_value=None)
    mock.setex = AsyncMock()
    mock.delete = AsyncMock()
    return mock


@pytest.fixture
def cache(redis: MagicMock) -> CacheService:
    return CacheService(redis)


# =============================================================================
# Get / Set Tests
# =============================================================================


class TestCacheOperations:
    """Tests for get and set."""

    @pytest.mark.asyncio
    async def test_get_miss(self, cache: CacheService) -> None:
        assert await cache.get("book:x") is None

    @pytest.mark.asyncio
    async def test_get_hit_decodes_json(self, cache: CacheService, redis: MagicMock) -> None:
        redis.get.return_value = json.dumps({"title": "リーダブルコード"}).encode()
        assert await cache.get("book:x") == {"title": "リーダブルコード"}

    @pytest.mark.asyncio
    async def test_get_errors_are_a_miss(self, cache: CacheService, redis: MagicMock) -> None:
        redis.get.side_effect = ConnectionError("redis down")
        assert await cache.get("book:x") is None

    @pytest.mark.asyncio
    async def test_get_corrupt_value_is_a_miss(
        self, cache: CacheService, redis: MagicMock
    ) -> None:
        redis.get.return_value = b"{not json"
        assert await cache.get("book:x") is None

    @pytest.mark.asyncio
    async def test_set_uses_jittered_ttl(self, cache: CacheService, redis: MagicMock) -> None:
        await cache.set("book:x", {"title": "本"}, base_ttl=1000)

        key, ttl, payload = redis.setex.await_args.args
        assert key == "book:x"
        assert 900 <= ttl <= 1100
        assert json.loads(payload) == {"title": "本"}
        assert "本" in payload

    @pytest.mark.asyncio
    async def test_set_defaults_to_book_ttl(self, cache: CacheService, redis: MagicMock) -> None:
        await cache.set("book:x", {})

        ttl = redis.setex.await_args.args[1]
        base = CacheService.TTL_BOOK_DETAILS
        assert base * 0.9 <= ttl <= base * 1.1

    @pytest.mark.asyncio
    async def test_set_errors_are_swallowed(self, cache: CacheService, redis: MagicMock) -> None:
        redis.setex.side_effect = ConnectionError("redis down")
        await cache.set("book:x", {"title": "t"})

    def test_jitter_never_below_one(self, cache: CacheService) -> None:
        assert cache._jitter_ttl(1) >= 1


# =============================================================================
# Key and Dependency Tests
# =============================================================================


class TestCacheKeys:
    """Tests for key generation and the dependency getter."""

    def test_book_key_is_normalized(self) -> None:
        key = CacheService.book_key("Effective Python", "Brett Slatkin")
        assert key.startswith("book:")
        assert len(key) == len("book:") + 16
        assert key == CacheService.book_key("  effective python ", "BRETT SLATKIN")

    def test_book_key_depends_on_author(self) -> None:
        assert CacheService.book_key("t", "a") != CacheService.book_key("t", "b")

    def test_get_cache_service_without_client(self, monkeypatch) -> None:
        monkeypatch.setattr(cache_module, "_redis_client", None)
        assert get_cache_service() is None

    def test_get_cache_service_with_client(self, monkeypatch, redis: MagicMock) -> None:
        monkeypatch.setattr(cache_module, "_redis_client", None)
        set_redis_client(redis)
        service = get_cache_service()
        assert service is not None
        assert service.redis is redis
