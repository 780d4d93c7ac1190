"""Local filesystem blob storage.

Stores blobs in a local directory structure:
    {base_path}/{owner_id[:2]}/{owner_id}/{blob_id}

This provides:
- Simple deployment (no external services)
- Create-if-absent writes: bytes land in a temporary file first and are
  linked into place only once complete, so a blob path never holds
  partial content
- Easy backup and inspection
"""

from __future__ import annotations

import contextlib
import logging
import uuid
from datetime import UTC, datetime
from pathlib import Path
from typing import cast

import aiofiles  # type: ignore[import-untyped]
import aiofiles.os  # type: ignore[import-untyped]

from shortline.core.ids import InvalidShortId, owner_of
from shortline.storage.base import BlobExistsError, BlobMetadata, BlobStorage

logger = logging.getLogger(__name__)


class LocalBlobStorage(BlobStorage):
    """Local filesystem blob storage backend."""

    def __init__(self, base_path: str | Path = "/var/lib/shortline/blobs"):
        """Initialize local blob storage.

        Args:
            base_path: Base directory for blob storage
        """
        self.base_path = Path(base_path)

    def _get_blob_path(self, blob_id: str) -> Path:
        """Get the full path for a blob.

        Groups blobs by the owner embedded in the id, sharded on its first
        two characters to avoid too many entries in a single directory.
        """
        if not blob_id or "/" in blob_id or blob_id in {".", ".."}:
            raise ValueError(f"Invalid blob id: {blob_id!r}")
        try:
            owner = owner_of(blob_id)
        except InvalidShortId:
            owner = "_"
        shard = owner[:2] if len(owner) >= 2 else "00"
        return self.base_path / shard / owner / blob_id

    async def store(self, blob_id: str, content: bytes, overwrite: bool = False) -> BlobMetadata:
        """Store a blob in the local filesystem."""
        blob_path = self._get_blob_path(blob_id)
        await aiofiles.os.makedirs(blob_path.parent, exist_ok=True)

        # Dot-prefixed and unique per writer; never visible under a blob id
        tmp_path = blob_path.with_name(f".{blob_id}.{uuid.uuid4().hex}.tmp")
        try:
            async with aiofiles.open(tmp_path, "xb") as f:
                await f.write(content)
            if overwrite:
                await aiofiles.os.replace(tmp_path, blob_path)
            else:
                # link() claims the name atomically and fails if it is taken
                await aiofiles.os.link(tmp_path, blob_path)
        except FileExistsError as exc:
            raise BlobExistsError(blob_id) from exc
        finally:
            with contextlib.suppress(FileNotFoundError):
                await aiofiles.os.remove(tmp_path)

        logger.debug(f"Stored blob {blob_id} at {blob_path} ({len(content)} bytes)")

        return BlobMetadata(
            id=blob_id,
            storage_type="local",
            storage_uri=str(blob_path),
            size_bytes=len(content),
            content_hash=self.compute_hash(content),
            created_at=datetime.now(UTC),
        )

    async def retrieve(self, blob_id: str) -> bytes:
        """Retrieve blob content from local filesystem."""
        blob_path = self._get_blob_path(blob_id)

        if not await aiofiles.os.path.exists(blob_path):
            raise FileNotFoundError(f"Blob not found: {blob_id}")

        async with aiofiles.open(blob_path, "rb") as f:
            content = await f.read()

        return cast(bytes, content)

    async def delete(self, blob_id: str) -> bool:
        """Delete a blob from local filesystem.

        Owner directories are left in place; a concurrent store may be
        about to write into them.
        """
        blob_path = self._get_blob_path(blob_id)

        try:
            await aiofiles.os.remove(blob_path)
        except FileNotFoundError:
            return False
        logger.debug(f"Deleted blob at {blob_path}")
        return True

    async def exists(self, blob_id: str) -> bool:
        """Check if a blob exists in local filesystem."""
        return cast(bool, await aiofiles.os.path.exists(self._get_blob_path(blob_id)))
