"""Tests for the cache-aside primitives and their failure behaviour."""

from __future__ import annotations

from unittest.mock import AsyncMock

import fakeredis
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from shortline.cache.redis import RedisCache


@pytest.fixture
def broken_client() -> AsyncMock:
    """A Redis client whose every call fails as if the server were down."""
    client = AsyncMock()
    client.get.side_effect = RedisConnectionError("connection refused")
    client.setex.side_effect = RedisConnectionError("connection refused")
    client.delete.side_effect = RedisConnectionError("connection refused")
    client.ping.side_effect = RedisConnectionError("connection refused")
    return client


class TestGetOrPopulate:
    @pytest.mark.asyncio
    async def test_miss_loads_and_caches(self, cache: RedisCache) -> None:
        loader = AsyncMock(return_value={"id": "alice"})

        assert await cache.get_or_populate("user:alice", loader) == {"id": "alice"}
        assert await cache.get_or_populate("user:alice", loader) == {"id": "alice"}
        loader.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_absent_value_is_not_cached(self, cache: RedisCache) -> None:
        loader = AsyncMock(return_value=None)

        assert await cache.get_or_populate("short:x", loader) is None
        assert await cache.get_or_populate("short:x", loader) is None
        assert loader.await_count == 2

    @pytest.mark.asyncio
    async def test_empty_list_is_cached(self, cache: RedisCache) -> None:
        loader = AsyncMock(return_value=[])

        assert await cache.get_or_populate("feed_user:alice", loader) == []
        assert await cache.get_or_populate("feed_user:alice", loader) == []
        loader.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_ttl_is_applied(
        self, cache: RedisCache, redis_client: fakeredis.FakeAsyncRedis
    ) -> None:
        await cache.get_or_populate("user_search_ALI", AsyncMock(return_value=[]), ttl=3600)
        ttl = await redis_client.ttl("user_search_ALI")
        assert 0 < ttl <= 3600


class TestInvalidate:
    @pytest.mark.asyncio
    async def test_invalidate_removes_all_keys(
        self, cache: RedisCache, redis_client: fakeredis.FakeAsyncRedis
    ) -> None:
        await cache.set_json("feed_user:bob", ["a"])
        await cache.set_json("feed_user:carol", ["b"])

        await cache.invalidate("feed_user:bob", "feed_user:carol", "feed_user:nobody")

        assert await redis_client.exists("feed_user:bob", "feed_user:carol") == 0

    @pytest.mark.asyncio
    async def test_invalidate_nothing_is_noop(self, cache: RedisCache) -> None:
        await cache.invalidate()


class TestCorruptEntries:
    @pytest.mark.asyncio
    async def test_undecodable_entry_is_a_miss(
        self, cache: RedisCache, redis_client: fakeredis.FakeAsyncRedis
    ) -> None:
        await redis_client.set("user:alice", b"{not json")

        assert await cache.get_json("user:alice") is None
        assert await redis_client.exists("user:alice") == 0


class TestDegradation:
    """An unreachable cache must never surface as an error."""

    @pytest.mark.asyncio
    async def test_read_failure_falls_back_to_loader(self, broken_client: AsyncMock) -> None:
        cache = RedisCache(broken_client, ttl=60)
        loader = AsyncMock(return_value=["x"])

        assert await cache.get_or_populate("shorts_user:alice", loader) == ["x"]
        loader.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_write_and_invalidate_failures_are_swallowed(
        self, broken_client: AsyncMock
    ) -> None:
        cache = RedisCache(broken_client, ttl=60)

        await cache.set_bytes("bytes:a+1", b"data")
        await cache.invalidate("short:a+1")
        assert await cache.get_bytes("bytes:a+1") is None

    @pytest.mark.asyncio
    async def test_os_error_is_treated_as_unavailable(self) -> None:
        client = AsyncMock()
        client.get.side_effect = TimeoutError("socket timeout")
        cache = RedisCache(client, ttl=60)

        assert await cache.get_json("user:alice") is None

    @pytest.mark.asyncio
    async def test_health_check_reports_failure(self, broken_client: AsyncMock) -> None:
        assert await RedisCache(broken_client).health_check() is False

    @pytest.mark.asyncio
    async def test_health_check_reports_success(self, cache: RedisCache) -> None:
        assert await cache.health_check() is True
