"""User store: cache-aside over the users table.

Cached projections keep the credential, since a cache hit only counts when
the presented credential matches the cached one. Search results are the
exception: they are cached with credentials blanked and expire on a fixed
window instead of being invalidated.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shortline.cache.keys import CacheKeys
from shortline.cache.redis import RedisCache
from shortline.config import settings
from shortline.core.errors import BadRequestError, InternalError, NotFoundError
from shortline.core.model import User, UserPatch
from shortline.core.result import Result, operation
from shortline.persistence.db import session_context
from shortline.persistence.repositories import UserRepository

logger = logging.getLogger(__name__)

# Called with the id of a user whose row was just deleted
UserDeleteHandler = Callable[[str], Awaitable[Result[Any]]]


class UserStore:
    """Create, read, update, delete and search users."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        cache: RedisCache,
        search_ttl: int | None = None,
    ):
        self.session_factory = session_factory
        self.cache = cache
        self.search_ttl = search_ttl if search_ttl is not None else settings.cache_search_ttl
        self._delete_handlers: list[UserDeleteHandler] = []

    def add_delete_handler(self, handler: UserDeleteHandler) -> None:
        """Register a cascade to run after a user row is deleted."""
        self._delete_handlers.append(handler)
        handler_name = getattr(handler, "__qualname__", handler.__class__.__name__)
        logger.info(f"Registered user delete handler: {handler_name}")

    async def _cached(self, user_id: str) -> User | None:
        key = CacheKeys.user(user_id)
        data = await self.cache.get_json(key)
        if data is None:
            return None
        try:
            return User.model_validate(data)
        except ValidationError:
            logger.warning(f"Discarding malformed cache entry {key}")
            await self.cache.invalidate(key)
            return None

    @operation
    async def create(self, user: User) -> str:
        """Register a new user and return its id."""
        if not user.is_complete():
            raise BadRequestError("id, pwd, email and displayName are required")

        async with session_context(self.session_factory) as session:
            await UserRepository(session).create(user)

        await self.cache.set_json(CacheKeys.user(user.id), user.to_cache())
        logger.info(f"Created user {user.id}")
        return user.id

    @operation
    async def get(self, user_id: str, pwd: str) -> User:
        """Return the user matching (id, credential).

        A wrong id and a wrong credential both yield NotFound.
        """
        if not user_id:
            raise BadRequestError("User id is required")

        cached = await self._cached(user_id)
        if cached is not None and cached.pwd == pwd:
            return cached

        async with session_context(self.session_factory) as session:
            user = await UserRepository(session).get(user_id, pwd)
        if user is None:
            raise NotFoundError("User", user_id)

        await self.cache.set_json(CacheKeys.user(user_id), user.to_cache())
        return user

    @operation
    async def exists(self, user_id: str) -> bool:
        if not user_id:
            return False
        if await self.cache.get_bytes(CacheKeys.user(user_id)) is not None:
            return True
        async with session_context(self.session_factory) as session:
            return await UserRepository(session).exists(user_id)

    @operation
    async def update(self, user_id: str, pwd: str, patch: UserPatch) -> User:
        """Apply a partial update; fields left as None keep their value."""
        if patch.id is not None and patch.id != user_id:
            raise BadRequestError("User id cannot be changed")
        if "" in (patch.pwd, patch.email, patch.display_name):
            raise BadRequestError("pwd, email and displayName cannot be set to empty")

        async with session_context(self.session_factory) as session:
            user = await UserRepository(session).update(user_id, pwd, patch)
        if user is None:
            raise NotFoundError("User", user_id)

        await self.cache.set_json(CacheKeys.user(user_id), user.to_cache())
        logger.info(f"Updated user {user_id}")
        return user

    @operation
    async def delete(self, user_id: str, pwd: str) -> User:
        """Delete the user, then cascade into everything they own."""
        async with session_context(self.session_factory) as session:
            repo = UserRepository(session)
            user = await repo.get(user_id, pwd)
            if user is None or not await repo.delete(user_id, pwd):
                raise NotFoundError("User", user_id)

        await self.cache.invalidate(CacheKeys.user(user_id))
        logger.info(f"Deleted user {user_id}")

        for handler in self._delete_handlers:
            result = await handler(user_id)
            if not result.is_ok:
                logger.error(f"Delete cascade for user {user_id} failed: {result.detail}")
                raise InternalError(f"Delete cascade failed for user '{user_id}'", result.detail)

        return user

    @operation
    async def search(self, pattern: str) -> list[User]:
        """Case-insensitive substring search over display name and email."""

        async def load() -> list[dict[str, Any]]:
            async with session_context(self.session_factory) as session:
                users = await UserRepository(session).search(pattern)
            return [user.public().to_cache() for user in users]

        rows = await self.cache.get_or_populate(
            CacheKeys.user_search(pattern), load, self.search_ttl
        )
        return [User.model_validate(row) for row in rows or []]
