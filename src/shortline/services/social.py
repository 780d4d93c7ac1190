"""Follow graph store: follow/unfollow and followers-of, cache-aside."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shortline.cache.keys import CacheKeys
from shortline.cache.redis import RedisCache
from shortline.config import settings
from shortline.core.errors import BadRequestError
from shortline.core.result import operation
from shortline.persistence.db import session_context
from shortline.persistence.repositories import FollowRepository
from shortline.services.auth import AuthGate

logger = logging.getLogger(__name__)


class SocialGraphStore:
    """Follow edges between users."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        cache: RedisCache,
        auth: AuthGate,
        list_ttl: int | None = None,
    ):
        self.session_factory = session_factory
        self.cache = cache
        self.auth = auth
        self.list_ttl = list_ttl if list_ttl is not None else settings.cache_list_ttl

    @operation
    async def follow(self, follower: str, followee: str, is_following: bool, pwd: str) -> None:
        """Create (is_following) or remove the edge follower -> followee."""
        (await self.auth.authenticate(follower, pwd)).unwrap()
        (await self.auth.exists(followee)).unwrap()
        if follower == followee:
            raise BadRequestError("Users cannot follow themselves")

        async with session_context(self.session_factory) as session:
            repo = FollowRepository(session)
            if is_following:
                await repo.add(follower, followee)
            else:
                await repo.remove(follower, followee)

        # The follower's feed depends on their followee set
        await self.cache.invalidate(
            CacheKeys.feed_of_user(follower),
            CacheKeys.followers_of_user(follower),
            CacheKeys.followers_of_user(followee),
        )
        logger.info(f"{follower} {'followed' if is_following else 'unfollowed'} {followee}")

    @operation
    async def followers(self, user_id: str, pwd: str) -> list[str]:
        """Ids of the users following user_id; only the user may ask."""
        (await self.auth.authenticate(user_id, pwd)).unwrap()

        async def load() -> list[str]:
            async with session_context(self.session_factory) as session:
                return await FollowRepository(session).followers_of(user_id)

        ids = await self.cache.get_or_populate(
            CacheKeys.followers_of_user(user_id), load, self.list_ttl
        )
        return list(ids or [])
