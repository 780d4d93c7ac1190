"""User delete cascade, run as an ordered saga.

Steps run in a fixed order and each relational step commits on its own.
The first failing step aborts the saga; the report records which steps
completed so a caller can tell exactly how far the cascade progressed.
Nothing is compensated: a partial cascade is reported, not rolled back.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shortline.cache.keys import CacheKeys
from shortline.cache.redis import RedisCache
from shortline.core.errors import InternalError
from shortline.persistence.db import session_context
from shortline.persistence.repositories import FollowRepository, LikeRepository, ShortRepository
from shortline.security.tokens import TokenService

if TYPE_CHECKING:
    from shortline.services.blobs import BlobStore

logger = logging.getLogger(__name__)


class CascadeStep(str, Enum):
    """Steps of the user delete cascade, in execution order."""

    ENUMERATE = "enumerate"
    LIKES = "likes"
    SHORTS = "shorts"
    FOLLOWS = "follows"
    CACHE = "cache"
    BLOBS = "blobs"


@dataclass
class CascadeReport:
    """Progress of one cascade run."""

    user_id: str
    completed: list[CascadeStep] = field(default_factory=list)
    failed_step: CascadeStep | None = None
    short_ids: list[str] = field(default_factory=list)
    follower_ids: list[str] = field(default_factory=list)
    followee_ids: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.failed_step is None and len(self.completed) == len(CascadeStep)

    def to_dict(self) -> dict[str, object]:
        return {
            "userId": self.user_id,
            "completed": [step.value for step in self.completed],
            "failedStep": self.failed_step.value if self.failed_step else None,
        }


class UserContentCascade:
    """Deletes everything a user owns or participates in."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        cache: RedisCache,
        blobs: BlobStore,
        tokens: TokenService,
    ):
        self.session_factory = session_factory
        self.cache = cache
        self.blobs = blobs
        self.tokens = tokens

    async def run(self, user_id: str) -> CascadeReport:
        """Run every step in order.

        Raises:
            InternalError: carrying the CascadeReport as detail, if a step fails
        """
        report = CascadeReport(user_id=user_id)
        steps: list[tuple[CascadeStep, Callable[[CascadeReport], Awaitable[None]]]] = [
            (CascadeStep.ENUMERATE, self._enumerate),
            (CascadeStep.LIKES, self._delete_likes),
            (CascadeStep.SHORTS, self._delete_shorts),
            (CascadeStep.FOLLOWS, self._delete_follows),
            (CascadeStep.CACHE, self._invalidate_cache),
            (CascadeStep.BLOBS, self._delete_blobs),
        ]

        for step, action in steps:
            try:
                await action(report)
            except Exception:
                report.failed_step = step
                logger.exception(
                    f"Delete cascade for {user_id} failed at step '{step.value}' "
                    f"after {[s.value for s in report.completed]}"
                )
                raise InternalError(
                    f"Delete cascade failed at step '{step.value}'", report
                ) from None
            report.completed.append(step)

        logger.info(
            f"Delete cascade for {user_id} removed {len(report.short_ids)} shorts "
            f"and notified {len(report.follower_ids)} followers"
        )
        return report

    async def _enumerate(self, report: CascadeReport) -> None:
        # Must run before deletion: the ids cannot be looked up afterwards
        async with session_context(self.session_factory) as session:
            report.short_ids = await ShortRepository(session).ids_by_owner(report.user_id)
            repo = FollowRepository(session)
            report.follower_ids = await repo.followers_of(report.user_id)
            report.followee_ids = await repo.followees_of(report.user_id)

    async def _delete_likes(self, report: CascadeReport) -> None:
        async with session_context(self.session_factory) as session:
            await LikeRepository(session).delete_for_shorts(report.short_ids)

    async def _delete_shorts(self, report: CascadeReport) -> None:
        async with session_context(self.session_factory) as session:
            await ShortRepository(session).delete_many(report.short_ids)

    async def _delete_follows(self, report: CascadeReport) -> None:
        async with session_context(self.session_factory) as session:
            repo = FollowRepository(session)
            await repo.delete_as_follower(report.user_id)
            await repo.delete_as_followee(report.user_id)

    async def _invalidate_cache(self, report: CascadeReport) -> None:
        keys = [
            CacheKeys.shorts_of_user(report.user_id),
            CacheKeys.followers_of_user(report.user_id),
            CacheKeys.feed_of_user(report.user_id),
        ]
        for short_id in report.short_ids:
            keys.append(CacheKeys.short(short_id))
            keys.append(CacheKeys.likes_of_short(short_id))
        keys.extend(CacheKeys.feeds_of(report.follower_ids))
        keys.extend(CacheKeys.followers_of_user(user_id) for user_id in report.followee_ids)
        await self.cache.invalidate(*keys)

    async def _delete_blobs(self, report: CascadeReport) -> None:
        for short_id in report.short_ids:
            (await self.blobs.delete(short_id, self.tokens.issue(short_id))).unwrap()
