"""Tests for the relational repositories against SQLite."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shortline.core.model import Short, User, UserPatch
from shortline.persistence.db import health_check, session_context
from shortline.persistence.repositories import (
    FollowRepository,
    LikeRepository,
    ShortRepository,
    UserRepository,
)

Factory = async_sessionmaker[AsyncSession]


def _user(user_id: str, name: str | None = None, email: str | None = None) -> User:
    return User(
        id=user_id,
        pwd="pw",
        email=email or f"{user_id}@example.com",
        display_name=name or user_id,
    )


class TestUserRepository:
    @pytest.mark.asyncio
    async def test_get_requires_matching_credential(self, session_factory: Factory) -> None:
        async with session_context(session_factory) as session:
            await UserRepository(session).create(_user("alice"))

        async with session_context(session_factory) as session:
            repo = UserRepository(session)
            assert (await repo.get("alice", "pw")) == _user("alice")
            assert await repo.get("alice", "wrong") is None
            assert await repo.exists("alice")
            assert not await repo.exists("bob")

    @pytest.mark.asyncio
    async def test_duplicate_id_violates_constraint(self, session_factory: Factory) -> None:
        async with session_context(session_factory) as session:
            await UserRepository(session).create(_user("alice"))

        with pytest.raises(IntegrityError):
            async with session_context(session_factory) as session:
                await UserRepository(session).create(_user("alice"))

    @pytest.mark.asyncio
    async def test_update_is_conditional_and_partial(self, session_factory: Factory) -> None:
        async with session_context(session_factory) as session:
            await UserRepository(session).create(_user("alice", name="Alice"))

        async with session_context(session_factory) as session:
            repo = UserRepository(session)
            assert await repo.update("alice", "wrong", UserPatch(email="x@y")) is None
            updated = await repo.update("alice", "pw", UserPatch(email="new@example.com"))

        assert updated is not None
        assert updated.email == "new@example.com"
        assert updated.display_name == "Alice"

    @pytest.mark.asyncio
    async def test_delete_is_conditional(self, session_factory: Factory) -> None:
        async with session_context(session_factory) as session:
            await UserRepository(session).create(_user("alice"))

        async with session_context(session_factory) as session:
            repo = UserRepository(session)
            assert not await repo.delete("alice", "wrong")
            assert await repo.delete("alice", "pw")
            assert not await repo.exists("alice")

    @pytest.mark.asyncio
    async def test_search_matches_name_or_email_case_insensitively(
        self, session_factory: Factory
    ) -> None:
        async with session_context(session_factory) as session:
            repo = UserRepository(session)
            await repo.create(_user("alice", name="Alice Liddell"))
            await repo.create(_user("bob", name="Bob", email="bob@wonderland.org"))
            await repo.create(_user("carol", name="Carol"))

        async with session_context(session_factory) as session:
            repo = UserRepository(session)
            assert [u.id for u in await repo.search("LIDDELL")] == ["alice"]
            assert [u.id for u in await repo.search("wonder")] == ["bob"]
            assert len(await repo.search("")) == 3

    @pytest.mark.asyncio
    async def test_search_wildcards_are_literal(self, session_factory: Factory) -> None:
        async with session_context(session_factory) as session:
            repo = UserRepository(session)
            await repo.create(_user("alice", name="100% alice"))
            await repo.create(_user("bob", name="bob_b"))
            await repo.create(_user("carol", name="carol"))

        async with session_context(session_factory) as session:
            repo = UserRepository(session)
            assert [u.id for u in await repo.search("%")] == ["alice"]
            assert [u.id for u in await repo.search("_")] == ["bob"]


class TestShortRepository:
    @pytest.mark.asyncio
    async def test_feed_orders_by_creation_descending(self, session_factory: Factory) -> None:
        base = datetime(2024, 1, 1, tzinfo=UTC)
        async with session_context(session_factory) as session:
            shorts = ShortRepository(session)
            for i, owner in enumerate(["alice", "carol", "alice", "dave"]):
                await shorts.create(
                    Short(
                        id=f"{owner}+{i}",
                        owner_id=owner,
                        blob_url="u",
                        created_at=base + timedelta(minutes=i),
                    )
                )
            follows = FollowRepository(session)
            await follows.add("bob", "alice")
            await follows.add("bob", "carol")

        async with session_context(session_factory) as session:
            shorts = ShortRepository(session)
            assert await shorts.feed_ids("bob") == ["alice+2", "carol+1", "alice+0"]
            assert await shorts.ids_by_owner("alice") == ["alice+0", "alice+2"]
            assert await shorts.feed_ids("dave") == []

    @pytest.mark.asyncio
    async def test_created_at_defaults_to_now(self, session_factory: Factory) -> None:
        async with session_context(session_factory) as session:
            short = await ShortRepository(session).create(
                Short(id="alice+1", owner_id="alice", blob_url="u")
            )
        assert short.created_at is not None

    @pytest.mark.asyncio
    async def test_delete_many(self, session_factory: Factory) -> None:
        async with session_context(session_factory) as session:
            shorts = ShortRepository(session)
            await shorts.create(Short(id="alice+1", owner_id="alice", blob_url="u"))
            await shorts.create(Short(id="alice+2", owner_id="alice", blob_url="u"))
            await shorts.create(Short(id="bob+1", owner_id="bob", blob_url="u"))

        async with session_context(session_factory) as session:
            shorts = ShortRepository(session)
            assert await shorts.delete_many(["alice+1", "alice+2"]) == 2
            assert await shorts.delete_many([]) == 0
            assert await shorts.get("alice+1") is None
            assert await shorts.get("bob+1") is not None


class TestEdgeRepositories:
    @pytest.mark.asyncio
    async def test_follow_edges(self, session_factory: Factory) -> None:
        async with session_context(session_factory) as session:
            follows = FollowRepository(session)
            await follows.add("bob", "alice")
            await follows.add("carol", "alice")
            await follows.add("alice", "dave")

        async with session_context(session_factory) as session:
            follows = FollowRepository(session)
            assert await follows.followers_of("alice") == ["bob", "carol"]
            assert await follows.followees_of("alice") == ["dave"]
            assert await follows.remove("bob", "alice")
            assert not await follows.remove("bob", "alice")
            assert await follows.delete_as_follower("alice") == 1
            assert await follows.delete_as_followee("alice") == 1

    @pytest.mark.asyncio
    async def test_duplicate_follow_violates_constraint(self, session_factory: Factory) -> None:
        async with session_context(session_factory) as session:
            await FollowRepository(session).add("bob", "alice")

        with pytest.raises(IntegrityError):
            async with session_context(session_factory) as session:
                await FollowRepository(session).add("bob", "alice")

    @pytest.mark.asyncio
    async def test_likes_on_listed_shorts(self, session_factory: Factory) -> None:
        async with session_context(session_factory) as session:
            await ShortRepository(session).create(
                Short(id="alice+1", owner_id="alice", blob_url="u")
            )
            await ShortRepository(session).create(Short(id="bob+1", owner_id="bob", blob_url="u"))
            likes = LikeRepository(session)
            await likes.add("bob", "alice+1", "alice")
            await likes.add("carol", "alice+1", "alice")
            await likes.add("alice", "bob+1", "bob")

        async with session_context(session_factory) as session:
            likes = LikeRepository(session)
            assert await likes.likers_of("alice+1") == ["bob", "carol"]
            assert await likes.delete_for_shorts(["alice+1"]) == 2
            assert await likes.likers_of("alice+1") == []
            assert await likes.likers_of("bob+1") == ["alice"]


class TestSessionContext:
    @pytest.mark.asyncio
    async def test_rolls_back_on_error(self, session_factory: Factory) -> None:
        with pytest.raises(RuntimeError):
            async with session_context(session_factory) as session:
                await UserRepository(session).create(_user("alice"))
                raise RuntimeError("abort")

        async with session_context(session_factory) as session:
            assert not await UserRepository(session).exists("alice")

    @pytest.mark.asyncio
    async def test_health_check(self, session_factory: Factory) -> None:
        assert await asyncio.wait_for(health_check(session_factory), timeout=5)
