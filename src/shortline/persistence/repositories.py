"""Repository pattern for the system of record.

One repository per table. Repositories only run parameterised statements
inside the session they are given; transaction boundaries and cache
handling belong to the stores in shortline.services.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Generic, TypeVar

from sqlalchemy import Delete, delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from shortline.core.model import Short, User, UserPatch
from shortline.persistence.tables import FollowingTable, LikeTable, ShortTable, UserTable

TableT = TypeVar("TableT")


def _like_escape(pattern: str) -> str:
    """Escape LIKE wildcards so the pattern matches literally."""
    return pattern.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class BaseRepository(Generic[TableT]):
    """Base repository holding the session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _delete(self, stmt: Delete) -> int:
        """Run a bulk delete and return the number of rows removed."""
        result = await self.session.execute(stmt.execution_options(synchronize_session=False))
        return int(result.rowcount or 0)


class UserRepository(BaseRepository[UserTable]):
    """Repository for user rows."""

    @staticmethod
    def _to_model(row: UserTable) -> User:
        return User(id=row.user_id, pwd=row.pwd, email=row.email, display_name=row.display_name)

    async def create(self, user: User) -> None:
        """Insert a user. Duplicate ids fail with IntegrityError on flush."""
        self.session.add(
            UserTable(
                user_id=user.id,
                pwd=user.pwd,
                email=user.email,
                display_name=user.display_name,
            )
        )
        await self.session.flush()

    async def get(self, user_id: str, pwd: str) -> User | None:
        """Get a user by id and credential."""
        stmt = select(UserTable).where(UserTable.user_id == user_id, UserTable.pwd == pwd)
        result = await self.session.execute(stmt)
        row = result.scalar_one_or_none()
        return None if row is None else self._to_model(row)

    async def exists(self, user_id: str) -> bool:
        """Check if a user id is registered."""
        stmt = select(UserTable.user_id).where(UserTable.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def update(self, user_id: str, pwd: str, patch: UserPatch) -> User | None:
        """Apply a patch to the user matching (id, credential).

        Returns:
            The updated user, or None if no row matched.
        """
        stmt = (
            select(UserTable)
            .where(UserTable.user_id == user_id, UserTable.pwd == pwd)
            .with_for_update()
        )
        result = await self.session.execute(stmt)
        row = result.scalar_one_or_none()
        if row is None:
            return None

        if patch.pwd is not None:
            row.pwd = patch.pwd
        if patch.email is not None:
            row.email = patch.email
        if patch.display_name is not None:
            row.display_name = patch.display_name

        await self.session.flush()
        return self._to_model(row)

    async def delete(self, user_id: str, pwd: str) -> bool:
        """Delete the user matching (id, credential)."""
        stmt = delete(UserTable).where(UserTable.user_id == user_id, UserTable.pwd == pwd)
        return bool(await self._delete(stmt))

    async def search(self, pattern: str) -> list[User]:
        """Case-insensitive substring match over display name or email."""
        like = f"%{_like_escape(pattern)}%"
        stmt = (
            select(UserTable)
            .where(
                or_(
                    UserTable.display_name.ilike(like, escape="\\"),
                    UserTable.email.ilike(like, escape="\\"),
                )
            )
            .order_by(UserTable.user_id)
        )
        result = await self.session.execute(stmt)
        return [self._to_model(row) for row in result.scalars().all()]


class ShortRepository(BaseRepository[ShortTable]):
    """Repository for short rows."""

    @staticmethod
    def _to_model(row: ShortTable) -> Short:
        return Short(
            id=row.short_id,
            owner_id=row.user_id,
            blob_url=row.blob_url,
            created_at=row.created_at,
        )

    async def create(self, short: Short) -> Short:
        """Insert a short and return it with its creation time."""
        row = ShortTable(short_id=short.id, user_id=short.owner_id, blob_url=short.blob_url)
        if short.created_at is not None:
            row.created_at = short.created_at
        self.session.add(row)
        await self.session.flush()
        return self._to_model(row)

    async def get(self, short_id: str) -> Short | None:
        """Get a short by id."""
        stmt = select(ShortTable).where(ShortTable.short_id == short_id)
        result = await self.session.execute(stmt)
        row = result.scalar_one_or_none()
        return None if row is None else self._to_model(row)

    async def delete(self, short_id: str) -> bool:
        """Delete a short row."""
        return bool(await self._delete(delete(ShortTable).where(ShortTable.short_id == short_id)))

    async def ids_by_owner(self, user_id: str) -> list[str]:
        """Ids of all shorts owned by a user, oldest first."""
        stmt = (
            select(ShortTable.short_id)
            .where(ShortTable.user_id == user_id)
            .order_by(ShortTable.created_at)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def feed_ids(self, user_id: str) -> list[str]:
        """Ids of shorts owned by anyone the user follows, most recent first."""
        followees = select(FollowingTable.followee).where(FollowingTable.follower == user_id)
        stmt = (
            select(ShortTable.short_id)
            .where(ShortTable.user_id.in_(followees))
            .order_by(ShortTable.created_at.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def delete_many(self, short_ids: Sequence[str]) -> int:
        """Delete the given shorts. Returns the row count."""
        if not short_ids:
            return 0
        return await self._delete(delete(ShortTable).where(ShortTable.short_id.in_(short_ids)))


class FollowRepository(BaseRepository[FollowingTable]):
    """Repository for follow edges."""

    async def add(self, follower: str, followee: str) -> None:
        """Insert an edge. A duplicate pair fails with IntegrityError."""
        self.session.add(FollowingTable(follower=follower, followee=followee))
        await self.session.flush()

    async def remove(self, follower: str, followee: str) -> bool:
        """Delete an edge if present."""
        stmt = delete(FollowingTable).where(
            FollowingTable.follower == follower, FollowingTable.followee == followee
        )
        return bool(await self._delete(stmt))

    async def followers_of(self, user_id: str) -> list[str]:
        """Ids of the users following user_id."""
        stmt = (
            select(FollowingTable.follower)
            .where(FollowingTable.followee == user_id)
            .order_by(FollowingTable.follower)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def followees_of(self, user_id: str) -> list[str]:
        """Ids of the users user_id follows."""
        stmt = (
            select(FollowingTable.followee)
            .where(FollowingTable.follower == user_id)
            .order_by(FollowingTable.followee)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def delete_as_follower(self, user_id: str) -> int:
        """Delete every edge where user_id follows someone."""
        return await self._delete(delete(FollowingTable).where(FollowingTable.follower == user_id))

    async def delete_as_followee(self, user_id: str) -> int:
        """Delete every edge where someone follows user_id."""
        return await self._delete(delete(FollowingTable).where(FollowingTable.followee == user_id))


class LikeRepository(BaseRepository[LikeTable]):
    """Repository for like edges."""

    async def add(self, user_id: str, short_id: str, owner_id: str) -> None:
        """Insert a like. A duplicate (user, short) fails with IntegrityError."""
        self.session.add(LikeTable(user_id=user_id, short_id=short_id, owner_id=owner_id))
        await self.session.flush()

    async def remove(self, user_id: str, short_id: str) -> bool:
        """Delete a like if present."""
        stmt = delete(LikeTable).where(LikeTable.user_id == user_id, LikeTable.short_id == short_id)
        return bool(await self._delete(stmt))

    async def likers_of(self, short_id: str) -> list[str]:
        """Ids of the users who liked a short."""
        stmt = select(LikeTable.user_id).where(LikeTable.short_id == short_id).order_by(
            LikeTable.user_id
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def delete_for_short(self, short_id: str) -> int:
        """Delete all likes on one short."""
        return await self._delete(delete(LikeTable).where(LikeTable.short_id == short_id))

    async def delete_for_shorts(self, short_ids: Sequence[str]) -> int:
        """Delete all likes on the given shorts."""
        if not short_ids:
            return 0
        return await self._delete(delete(LikeTable).where(LikeTable.short_id.in_(short_ids)))
