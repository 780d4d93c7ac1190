"""Shared fixtures.

Every test gets its own SQLite database file, an in-memory Redis and a
temporary blob directory, wired into the same stores production uses.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from pathlib import Path

import fakeredis
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from shortline.cache.redis import RedisCache
from shortline.core.model import User
from shortline.persistence.db import init_db
from shortline.security.tokens import TokenService
from shortline.services import Services, build_services
from shortline.storage.local import LocalBlobStorage


@pytest_asyncio.fixture
async def engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'shortline.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def redis_client() -> AsyncIterator[fakeredis.FakeAsyncRedis]:
    client = fakeredis.FakeAsyncRedis()
    yield client
    await client.aclose()


@pytest.fixture
def cache(redis_client: fakeredis.FakeAsyncRedis) -> RedisCache:
    return RedisCache(redis_client, ttl=600)


@pytest.fixture
def storage(tmp_path: Path) -> LocalBlobStorage:
    return LocalBlobStorage(tmp_path / "blobs")


@pytest.fixture
def tokens() -> TokenService:
    return TokenService("test-secret", ttl_seconds=300)


@pytest.fixture
def services(
    session_factory: async_sessionmaker[AsyncSession],
    cache: RedisCache,
    storage: LocalBlobStorage,
    tokens: TokenService,
) -> Services:
    return build_services(session_factory, cache, storage, tokens)


@pytest.fixture
def make_user(services: Services) -> Callable[[str], Awaitable[User]]:
    """Register a user whose credential is '<id>-pwd'."""

    async def _make(user_id: str) -> User:
        user = User(
            id=user_id,
            pwd=f"{user_id}-pwd",
            email=f"{user_id}@example.com",
            display_name=user_id.capitalize(),
        )
        result = await services.users.create(user)
        assert result.is_ok, result
        return user

    return _make
