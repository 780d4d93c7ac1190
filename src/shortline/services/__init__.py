"""Data-consistency services for shortline.

Stores are constructed explicitly with injected handles. Two dependency
cycles are closed after construction:
- UserStore.delete cascades into ShortStore.delete_all (delete handler)
- BlobStore.delete_all_for_owner enumerates via ShortStore.list_by_owner
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shortline.cache.redis import RedisCache
from shortline.config import Settings, settings
from shortline.security.tokens import TokenService
from shortline.services.auth import AuthGate
from shortline.services.blobs import BlobStore
from shortline.services.cascade import CascadeReport, CascadeStep, UserContentCascade
from shortline.services.engagement import EngagementStore
from shortline.services.shorts import ShortStore
from shortline.services.social import SocialGraphStore
from shortline.services.users import UserStore
from shortline.storage.base import BlobStorage


@dataclass
class Services:
    """The wired set of stores."""

    auth: AuthGate
    users: UserStore
    social: SocialGraphStore
    shorts: ShortStore
    engagement: EngagementStore
    blobs: BlobStore
    tokens: TokenService
    cache: RedisCache


def build_services(
    session_factory: async_sessionmaker[AsyncSession],
    cache: RedisCache,
    storage: BlobStorage,
    tokens: TokenService,
    config: Settings | None = None,
) -> Services:
    """Construct every store and close the dependency cycles."""
    config = config or settings

    users = UserStore(session_factory, cache, search_ttl=config.cache_search_ttl)
    auth = AuthGate(users)
    social = SocialGraphStore(session_factory, cache, auth, list_ttl=config.cache_list_ttl)
    blobs = BlobStore(cache, storage, tokens, auth, max_cached_bytes=config.blob_cache_max_bytes)
    shorts = ShortStore(
        session_factory,
        cache,
        auth,
        blobs,
        tokens,
        blobs_base_url=config.blobs_base_url,
        list_ttl=config.cache_list_ttl,
    )
    engagement = EngagementStore(session_factory, cache, auth, shorts, list_ttl=config.cache_list_ttl)

    users.add_delete_handler(shorts.delete_all)
    blobs.owner_index = shorts.list_by_owner

    return Services(
        auth=auth,
        users=users,
        social=social,
        shorts=shorts,
        engagement=engagement,
        blobs=blobs,
        tokens=tokens,
        cache=cache,
    )


__all__ = [
    "AuthGate",
    "BlobStore",
    "CascadeReport",
    "CascadeStep",
    "EngagementStore",
    "Services",
    "ShortStore",
    "SocialGraphStore",
    "UserContentCascade",
    "UserStore",
    "build_services",
]
