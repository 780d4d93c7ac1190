"""Base blob storage interface.

Defines the abstract interface for blob storage backends. Blobs are
addressed by the id of the short they belong to.
"""

from __future__ import annotations

import hashlib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


class BlobExistsError(Exception):
    """Raised by a create-if-absent store when the blob id is taken."""

    def __init__(self, blob_id: str):
        self.blob_id = blob_id
        super().__init__(f"Blob already exists: {blob_id}")


@dataclass
class BlobMetadata:
    """Metadata for a stored blob."""

    id: str
    storage_type: str = "local"
    storage_uri: str = ""
    size_bytes: int = 0
    content_hash: str = ""
    created_at: datetime | None = None


class BlobStorage(ABC):
    """Abstract base class for blob storage backends."""

    @abstractmethod
    async def store(self, blob_id: str, content: bytes, overwrite: bool = False) -> BlobMetadata:
        """Store a blob and return its metadata.

        Args:
            blob_id: Id of the blob (the owning short's id)
            content: Binary content
            overwrite: Replace an existing blob instead of failing

        Returns:
            BlobMetadata with storage location and hash

        Raises:
            BlobExistsError: If the blob exists and overwrite is False
        """
        ...

    @abstractmethod
    async def retrieve(self, blob_id: str) -> bytes:
        """Retrieve blob content.

        Raises:
            FileNotFoundError: If blob not found
        """
        ...

    @abstractmethod
    async def delete(self, blob_id: str) -> bool:
        """Delete a blob.

        Returns:
            True if deleted, False if not found
        """
        ...

    @abstractmethod
    async def exists(self, blob_id: str) -> bool:
        """Check if a blob exists."""
        ...

    async def close(self) -> None:
        """Release backend resources."""
        return None

    @staticmethod
    def compute_hash(content: bytes) -> str:
        """Compute SHA256 hash of content."""
        return hashlib.sha256(content).hexdigest()
