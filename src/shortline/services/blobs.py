"""Blob store: media bytes addressed by short id.

Uploads are content-addressed on conflict: a second upload to an existing
id succeeds as a no-op when the SHA-256 digests match and fails with
Conflict otherwise, so stored bytes are never silently overwritten. Small
blobs are materialised in the cache under bytes:<id>.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from shortline.cache.keys import CacheKeys
from shortline.cache.redis import RedisCache
from shortline.config import settings
from shortline.core.errors import ConflictError, ForbiddenError, InternalError, NotFoundError
from shortline.core.result import Result, operation
from shortline.security.tokens import TokenService
from shortline.services.auth import AuthGate
from shortline.storage.base import BlobExistsError, BlobStorage

logger = logging.getLogger(__name__)

# Lists the blob ids owned by a user (ShortStore.list_by_owner)
OwnerIndex = Callable[[str], Awaitable[Result[list[str]]]]


class BlobStore:
    """Token-gated access to blob storage with a byte cache."""

    def __init__(
        self,
        cache: RedisCache,
        storage: BlobStorage,
        tokens: TokenService,
        auth: AuthGate,
        max_cached_bytes: int | None = None,
    ):
        self.cache = cache
        self.storage = storage
        self.tokens = tokens
        self.auth = auth
        self.max_cached_bytes = (
            max_cached_bytes if max_cached_bytes is not None else settings.blob_cache_max_bytes
        )
        # Bound after construction; shorts and blobs depend on each other
        self.owner_index: OwnerIndex | None = None

    def _check_token(self, blob_id: str, token: str | None) -> None:
        if not self.tokens.is_valid(token, blob_id):
            raise ForbiddenError(f"Invalid token for blob '{blob_id}'")

    async def _materialise(self, blob_id: str, data: bytes) -> None:
        if len(data) <= self.max_cached_bytes:
            await self.cache.set_bytes(CacheKeys.blob_bytes(blob_id), data)

    @operation
    async def upload(self, blob_id: str, data: bytes, token: str | None) -> None:
        """Store bytes under blob_id unless different bytes are already there."""
        self._check_token(blob_id, token)

        try:
            stored = await self.storage.store(blob_id, data, overwrite=False)
        except BlobExistsError:
            existing = await self.storage.retrieve(blob_id)
            if BlobStorage.compute_hash(existing) == BlobStorage.compute_hash(data):
                logger.debug(f"Blob {blob_id} re-uploaded with identical content")
                return None
            raise ConflictError(f"Blob '{blob_id}' already holds different content") from None

        await self._materialise(blob_id, data)
        logger.info(
            f"Stored blob {blob_id} at {stored.storage_uri} "
            f"({stored.size_bytes} bytes, sha256 {stored.content_hash[:12]})"
        )
        return None

    @operation
    async def download(self, blob_id: str, token: str | None) -> bytes:
        """Read-through: cached bytes, else blob storage."""
        self._check_token(blob_id, token)

        cached = await self.cache.get_bytes(CacheKeys.blob_bytes(blob_id))
        if cached is not None:
            return cached

        try:
            data = await self.storage.retrieve(blob_id)
        except FileNotFoundError:
            raise NotFoundError("Blob", blob_id) from None

        await self._materialise(blob_id, data)
        return data

    @operation
    async def delete(self, blob_id: str, token: str | None) -> None:
        """Delete a blob. Deleting an absent blob succeeds."""
        self._check_token(blob_id, token)

        if not await self.storage.delete(blob_id):
            logger.debug(f"Blob {blob_id} already absent")
        await self.cache.invalidate(CacheKeys.blob_bytes(blob_id))

    @operation
    async def delete_all_for_owner(self, user_id: str, pwd: str) -> None:
        """Delete the blob of every short user_id owns.

        The first storage failure aborts the remaining deletions.
        """
        (await self.auth.authenticate(user_id, pwd)).unwrap()
        if self.owner_index is None:
            raise InternalError("Blob store has no owner index")

        blob_ids = (await self.owner_index(user_id)).unwrap()
        for blob_id in blob_ids:
            await self.storage.delete(blob_id)
            await self.cache.invalidate(CacheKeys.blob_bytes(blob_id))
        logger.info(f"Deleted {len(blob_ids)} blobs of {user_id}")
