"""Blob storage factory for shortline."""

from __future__ import annotations

from shortline.config import Settings, settings
from shortline.storage.azure import AzureBlobStorage
from shortline.storage.base import BlobStorage
from shortline.storage.local import LocalBlobStorage

_storage: BlobStorage | None = None


def create_blob_storage(config: Settings | None = None) -> BlobStorage:
    """Build the backend selected by blob_storage_type."""
    config = config or settings
    storage_type = config.blob_storage_type.lower()
    if storage_type == "azure":
        if not config.azure_container:
            raise ValueError("AZURE_CONTAINER is required for blob_storage_type='azure'")
        credential = config.azure_account_key or config.azure_sas_token
        return AzureBlobStorage(
            container=config.azure_container,
            prefix=config.azure_prefix,
            connection_string=config.azure_connection_string,
            account_url=config.azure_account_url,
            credential=credential,
        )
    if storage_type == "local":
        return LocalBlobStorage(base_path=config.blob_storage_path)
    raise ValueError("Unsupported blob_storage_type. Supported values: local, azure.")


def get_blob_storage() -> BlobStorage:
    """Return a singleton BlobStorage based on settings."""
    global _storage
    if _storage is None:
        _storage = create_blob_storage()
    return _storage


async def close_blob_storage() -> None:
    """Close the singleton backend, if any."""
    global _storage
    if _storage is not None:
        await _storage.close()
        _storage = None
