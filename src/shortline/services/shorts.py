"""Short store: shorts, per-owner listings and feeds, cache-aside.

A short's cache entries fan out: creating or deleting one changes the
owner's listing and the feed of every follower of the owner, so those keys
are invalidated after each committed write.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shortline.cache.keys import CacheKeys
from shortline.cache.redis import RedisCache
from shortline.config import settings
from shortline.core.errors import BadRequestError, ForbiddenError, InternalError, NotFoundError
from shortline.core.ids import blob_url, mint_short_id
from shortline.core.model import Short
from shortline.core.result import operation
from shortline.persistence.db import session_context
from shortline.persistence.repositories import FollowRepository, LikeRepository, ShortRepository
from shortline.security.tokens import TokenService
from shortline.services.auth import AuthGate
from shortline.services.blobs import BlobStore
from shortline.services.cascade import CascadeReport, UserContentCascade

logger = logging.getLogger(__name__)


class ShortStore:
    """Create, read and delete shorts; owner listings and feeds."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        cache: RedisCache,
        auth: AuthGate,
        blobs: BlobStore,
        tokens: TokenService,
        blobs_base_url: str | None = None,
        list_ttl: int | None = None,
    ):
        self.session_factory = session_factory
        self.cache = cache
        self.auth = auth
        self.blobs = blobs
        self.tokens = tokens
        self.blobs_base_url = blobs_base_url or settings.blobs_base_url
        self.list_ttl = list_ttl if list_ttl is not None else settings.cache_list_ttl
        self.cascade = UserContentCascade(session_factory, cache, blobs, tokens)

    @operation
    async def create(self, user_id: str, pwd: str) -> Short:
        """Create a short owned by user_id; its blob is uploaded separately."""
        (await self.auth.authenticate(user_id, pwd)).unwrap()

        short_id = mint_short_id(user_id)
        url = blob_url(self.blobs_base_url, short_id, self.tokens.issue(short_id))

        async with session_context(self.session_factory) as session:
            short = await ShortRepository(session).create(
                Short(id=short_id, owner_id=user_id, blob_url=url)
            )
            followers = await FollowRepository(session).followers_of(user_id)

        await self.cache.set_json(CacheKeys.short(short_id), short.to_cache())
        await self.cache.invalidate(
            CacheKeys.shorts_of_user(user_id), *CacheKeys.feeds_of(followers)
        )
        logger.info(f"Created short {short_id}")
        return short

    @operation
    async def get(self, short_id: str) -> Short:
        """Shorts are public: no credential is needed to read one."""
        if not short_id:
            raise BadRequestError("Short id is required")

        async def load() -> dict[str, object] | None:
            async with session_context(self.session_factory) as session:
                short = await ShortRepository(session).get(short_id)
            return None if short is None else short.to_cache()

        key = CacheKeys.short(short_id)
        data = await self.cache.get_or_populate(key, load)
        if data is None:
            raise NotFoundError("Short", short_id)
        try:
            return Short.model_validate(data)
        except ValidationError:
            logger.warning(f"Discarding malformed cache entry {key}")
            await self.cache.invalidate(key)
            raise InternalError(f"Unreadable short '{short_id}'") from None

    @operation
    async def delete(self, short_id: str, pwd: str) -> None:
        """Delete a short, its likes and its blob. Only the owner may."""
        short = (await self.get(short_id)).unwrap()

        if not (await self.auth.authenticate(short.owner_id, pwd)).is_ok:
            raise ForbiddenError(f"Not the owner of short '{short_id}'")

        async with session_context(self.session_factory) as session:
            await LikeRepository(session).delete_for_short(short_id)
            await ShortRepository(session).delete(short_id)
            followers = await FollowRepository(session).followers_of(short.owner_id)

        await self.cache.invalidate(
            CacheKeys.short(short_id),
            CacheKeys.likes_of_short(short_id),
            CacheKeys.shorts_of_user(short.owner_id),
            *CacheKeys.feeds_of(followers),
        )

        blob_result = await self.blobs.delete(short_id, self.tokens.issue(short_id))
        if not blob_result.is_ok:
            raise InternalError(f"Short '{short_id}' deleted but its blob was not")
        logger.info(f"Deleted short {short_id}")

    @operation
    async def list_by_owner(self, user_id: str) -> list[str]:
        """Ids of the shorts owned by user_id, oldest first."""
        (await self.auth.exists(user_id)).unwrap()

        async def load() -> list[str]:
            async with session_context(self.session_factory) as session:
                return await ShortRepository(session).ids_by_owner(user_id)

        ids = await self.cache.get_or_populate(
            CacheKeys.shorts_of_user(user_id), load, self.list_ttl
        )
        return list(ids or [])

    @operation
    async def feed(self, user_id: str, pwd: str) -> list[str]:
        """Ids of the shorts of everyone user_id follows, most recent first."""
        (await self.auth.authenticate(user_id, pwd)).unwrap()

        async def load() -> list[str]:
            async with session_context(self.session_factory) as session:
                return await ShortRepository(session).feed_ids(user_id)

        ids = await self.cache.get_or_populate(
            CacheKeys.feed_of_user(user_id), load, self.list_ttl
        )
        return list(ids or [])

    @operation
    async def delete_all(self, user_id: str) -> CascadeReport:
        """Remove everything user_id owns or participates in.

        Not authenticated here: callers must already have authenticated
        user_id (UserStore.delete, or the token-gated internal route).
        """
        return await self.cascade.run(user_id)
