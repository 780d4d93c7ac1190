"""Blob storage module for shortline.

Holds the media bytes of every short, addressed by the short's id:
- Local filesystem storage (default)
- Azure Blob Storage

Writes are create-if-absent so that the blob store can detect a second
upload to the same id and let the caller compare content digests.
"""

from shortline.storage.azure import AzureBlobStorage
from shortline.storage.base import BlobExistsError, BlobMetadata, BlobStorage
from shortline.storage.factory import close_blob_storage, create_blob_storage, get_blob_storage
from shortline.storage.local import LocalBlobStorage

__all__ = [
    "BlobStorage",
    "BlobMetadata",
    "BlobExistsError",
    "LocalBlobStorage",
    "AzureBlobStorage",
    "create_blob_storage",
    "get_blob_storage",
    "close_blob_storage",
]
