"""Tests for token-gated, content-addressed blob access."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from unittest.mock import AsyncMock

import fakeredis
import pytest
from aiofiles.threadpool.binary import AsyncBufferedIOBase

from shortline.cache.keys import CacheKeys
from shortline.cache.redis import RedisCache
from shortline.core.errors import ErrorCode
from shortline.core.model import User
from shortline.security.tokens import TokenService
from shortline.services import Services
from shortline.services.blobs import BlobStore
from shortline.storage.local import LocalBlobStorage

MakeUser = Callable[[str], Awaitable[User]]

BLOB_ID = "alice+0001"


class TestUpload:
    @pytest.mark.asyncio
    async def test_upload_stores_and_materialises(
        self,
        services: Services,
        tokens: TokenService,
        storage: LocalBlobStorage,
        redis_client: fakeredis.FakeAsyncRedis,
    ) -> None:
        assert (await services.blobs.upload(BLOB_ID, b"video", tokens.issue(BLOB_ID))).is_ok

        assert await storage.retrieve(BLOB_ID) == b"video"
        assert await redis_client.get(CacheKeys.blob_bytes(BLOB_ID)) == b"video"

    @pytest.mark.asyncio
    async def test_identical_reupload_is_noop(
        self, services: Services, tokens: TokenService, storage: LocalBlobStorage
    ) -> None:
        token = tokens.issue(BLOB_ID)
        await services.blobs.upload(BLOB_ID, b"video", token)

        assert (await services.blobs.upload(BLOB_ID, b"video", token)).is_ok
        assert await storage.retrieve(BLOB_ID) == b"video"

    @pytest.mark.asyncio
    async def test_different_reupload_conflicts(
        self, services: Services, tokens: TokenService, storage: LocalBlobStorage
    ) -> None:
        token = tokens.issue(BLOB_ID)
        await services.blobs.upload(BLOB_ID, b"video", token)

        result = await services.blobs.upload(BLOB_ID, b"other", token)

        assert result.error == ErrorCode.CONFLICT
        assert await storage.retrieve(BLOB_ID) == b"video"
        assert (await services.blobs.download(BLOB_ID, token)).unwrap() == b"video"

    @pytest.mark.asyncio
    async def test_token_must_match_blob(self, services: Services, tokens: TokenService) -> None:
        result = await services.blobs.upload(BLOB_ID, b"video", tokens.issue("alice+0002"))
        assert result.error == ErrorCode.FORBIDDEN

    @pytest.mark.asyncio
    async def test_large_blobs_are_not_cached(
        self,
        cache: RedisCache,
        storage: LocalBlobStorage,
        tokens: TokenService,
        services: Services,
        redis_client: fakeredis.FakeAsyncRedis,
    ) -> None:
        blobs = BlobStore(cache, storage, tokens, services.auth, max_cached_bytes=4)

        assert (await blobs.upload(BLOB_ID, b"too large", tokens.issue(BLOB_ID))).is_ok
        assert (await blobs.download(BLOB_ID, tokens.issue(BLOB_ID))).unwrap() == b"too large"
        assert not await redis_client.exists(CacheKeys.blob_bytes(BLOB_ID))

    @pytest.mark.asyncio
    async def test_retry_after_failed_write_succeeds(
        self, services: Services, tokens: TokenService, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        original = AsyncBufferedIOBase.write
        calls = {"n": 0}

        async def write(self: AsyncBufferedIOBase, data: bytes) -> int:
            calls["n"] += 1
            if calls["n"] == 1:
                raise OSError(28, "No space left on device")
            return await original(self, data)

        monkeypatch.setattr(AsyncBufferedIOBase, "write", write)
        token = tokens.issue(BLOB_ID)

        first = await services.blobs.upload(BLOB_ID, b"0123456789", token)
        assert first.error == ErrorCode.INTERNAL_ERROR

        assert (await services.blobs.upload(BLOB_ID, b"0123456789", token)).is_ok
        assert (await services.blobs.download(BLOB_ID, token)).unwrap() == b"0123456789"

    @pytest.mark.asyncio
    async def test_concurrent_identical_uploads_both_succeed(
        self, services: Services, tokens: TokenService, storage: LocalBlobStorage
    ) -> None:
        content = b"v" * (4 * 1024 * 1024)
        token = tokens.issue(BLOB_ID)

        results = await asyncio.gather(
            *(services.blobs.upload(BLOB_ID, content, token) for _ in range(4))
        )

        assert all(result.is_ok for result in results)
        assert await storage.retrieve(BLOB_ID) == content


class TestDownload:
    @pytest.mark.asyncio
    async def test_download_after_cache_flush(
        self, services: Services, tokens: TokenService, redis_client: fakeredis.FakeAsyncRedis
    ) -> None:
        token = tokens.issue(BLOB_ID)
        await services.blobs.upload(BLOB_ID, b"video", token)
        await redis_client.flushall()

        assert (await services.blobs.download(BLOB_ID, token)).unwrap() == b"video"
        assert await redis_client.get(CacheKeys.blob_bytes(BLOB_ID)) == b"video"

    @pytest.mark.asyncio
    async def test_missing_blob(self, services: Services, tokens: TokenService) -> None:
        result = await services.blobs.download(BLOB_ID, tokens.issue(BLOB_ID))
        assert result.error == ErrorCode.NOT_FOUND

    @pytest.mark.asyncio
    async def test_invalid_token(self, services: Services) -> None:
        result = await services.blobs.download(BLOB_ID, "garbage")
        assert result.error == ErrorCode.FORBIDDEN

    @pytest.mark.asyncio
    async def test_storage_failure_is_internal(
        self, cache: RedisCache, tokens: TokenService, services: Services
    ) -> None:
        storage = AsyncMock()
        storage.retrieve.side_effect = OSError("disk gone")
        blobs = BlobStore(cache, storage, tokens, services.auth)

        result = await blobs.download(BLOB_ID, tokens.issue(BLOB_ID))
        assert result.error == ErrorCode.INTERNAL_ERROR


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_is_idempotent(
        self,
        services: Services,
        tokens: TokenService,
        storage: LocalBlobStorage,
        redis_client: fakeredis.FakeAsyncRedis,
    ) -> None:
        token = tokens.issue(BLOB_ID)
        await services.blobs.upload(BLOB_ID, b"video", token)

        assert (await services.blobs.delete(BLOB_ID, token)).is_ok
        assert (await services.blobs.delete(BLOB_ID, token)).is_ok
        assert not await storage.exists(BLOB_ID)
        assert not await redis_client.exists(CacheKeys.blob_bytes(BLOB_ID))

    @pytest.mark.asyncio
    async def test_invalid_token(self, services: Services) -> None:
        assert (await services.blobs.delete(BLOB_ID, None)).error == ErrorCode.FORBIDDEN


class TestDeleteAllForOwner:
    @pytest.mark.asyncio
    async def test_deletes_every_owned_blob(
        self,
        services: Services,
        make_user: MakeUser,
        tokens: TokenService,
        storage: LocalBlobStorage,
    ) -> None:
        await make_user("alice")
        await make_user("bob")
        ids = [(await services.shorts.create("alice", "alice-pwd")).unwrap().id for _ in range(3)]
        # One blob never uploaded: absences are tolerated
        for short_id in ids[:2]:
            await services.blobs.upload(short_id, short_id.encode(), tokens.issue(short_id))
        bobs = (await services.shorts.create("bob", "bob-pwd")).unwrap().id
        await services.blobs.upload(bobs, b"bob", tokens.issue(bobs))

        assert (await services.blobs.delete_all_for_owner("alice", "alice-pwd")).is_ok

        for short_id in ids:
            assert not await storage.exists(short_id)
        assert await storage.exists(bobs)

    @pytest.mark.asyncio
    async def test_requires_credential(self, services: Services, make_user: MakeUser) -> None:
        await make_user("alice")
        result = await services.blobs.delete_all_for_owner("alice", "wrong")
        assert result.error == ErrorCode.FORBIDDEN

    @pytest.mark.asyncio
    async def test_storage_failure_aborts(
        self,
        services: Services,
        make_user: MakeUser,
        cache: RedisCache,
        tokens: TokenService,
    ) -> None:
        await make_user("alice")
        await services.shorts.create("alice", "alice-pwd")
        await services.shorts.create("alice", "alice-pwd")
        storage = AsyncMock()
        storage.delete.side_effect = OSError("disk gone")
        blobs = BlobStore(cache, storage, tokens, services.auth)
        blobs.owner_index = services.shorts.list_by_owner

        result = await blobs.delete_all_for_owner("alice", "alice-pwd")

        assert result.error == ErrorCode.INTERNAL_ERROR
        storage.delete.assert_awaited_once()
