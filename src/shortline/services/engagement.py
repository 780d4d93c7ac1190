"""Like graph store: like/unlike and likes-of, cache-aside per short."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shortline.cache.keys import CacheKeys
from shortline.cache.redis import RedisCache
from shortline.config import settings
from shortline.core.errors import BadRequestError, ErrorCode, ForbiddenError
from shortline.core.result import operation
from shortline.persistence.db import session_context
from shortline.persistence.repositories import LikeRepository
from shortline.services.auth import AuthGate
from shortline.services.shorts import ShortStore

logger = logging.getLogger(__name__)


class EngagementStore:
    """Like edges between users and shorts."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        cache: RedisCache,
        auth: AuthGate,
        shorts: ShortStore,
        list_ttl: int | None = None,
    ):
        self.session_factory = session_factory
        self.cache = cache
        self.auth = auth
        self.shorts = shorts
        self.list_ttl = list_ttl if list_ttl is not None else settings.cache_list_ttl

    @operation
    async def like(self, short_id: str, user_id: str, is_liked: bool, pwd: str) -> None:
        """Add (is_liked) or remove user_id's like on a short."""
        (await self.auth.authenticate(user_id, pwd)).unwrap()
        short = (await self.shorts.get(short_id)).unwrap()

        async with session_context(self.session_factory) as session:
            repo = LikeRepository(session)
            if is_liked:
                await repo.add(user_id, short_id, short.owner_id)
            else:
                await repo.remove(user_id, short_id)

        await self.cache.invalidate(CacheKeys.likes_of_short(short_id))
        logger.debug(f"{user_id} {'liked' if is_liked else 'unliked'} {short_id}")

    @operation
    async def likes(self, short_id: str, pwd: str) -> list[str]:
        """Ids of the users who liked a short; visible to its owner only."""
        short = (await self.shorts.get(short_id)).unwrap()

        auth = await self.auth.authenticate(short.owner_id, pwd)
        if auth.error == ErrorCode.FORBIDDEN:
            raise ForbiddenError(f"Only the owner may list likes of '{short_id}'")
        if not auth.is_ok:
            raise BadRequestError(f"Cannot authenticate owner of '{short_id}'")

        async def load() -> list[str]:
            async with session_context(self.session_factory) as session:
                return await LikeRepository(session).likers_of(short_id)

        ids = await self.cache.get_or_populate(
            CacheKeys.likes_of_short(short_id), load, self.list_ttl
        )
        return list(ids or [])
