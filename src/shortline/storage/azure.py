"""Azure Blob Storage backend."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, cast

from shortline.storage.base import BlobExistsError, BlobMetadata, BlobStorage


class AzureBlobStorage(BlobStorage):
    """Azure Blob Storage implementation using azure-storage-blob aio client."""

    def __init__(
        self,
        container: str,
        prefix: str = "",
        connection_string: str | None = None,
        account_url: str | None = None,
        credential: str | None = None,
        client: Any | None = None,
    ) -> None:
        self.container = container
        self.prefix = prefix.rstrip("/") + "/" if prefix else ""
        self.connection_string = connection_string
        self.account_url = account_url
        self.credential = credential
        self._client: Any | None = client

    async def _get_client(self) -> Any:
        """Get or create BlobServiceClient."""
        if self._client is None:
            try:
                from azure.storage.blob.aio import BlobServiceClient
            except ImportError as exc:
                raise RuntimeError(
                    "azure-storage-blob is required for Azure blob storage"
                ) from exc

            if self.connection_string:
                self._client = BlobServiceClient.from_connection_string(
                    self.connection_string
                )
            elif self.account_url:
                self._client = BlobServiceClient(
                    account_url=self.account_url, credential=self.credential
                )
            else:
                raise ValueError(
                    "Azure storage requires AZURE_STORAGE_CONNECTION_STRING or AZURE_ACCOUNT_URL"
                )

        return self._client

    def _blob_name(self, blob_id: str) -> str:
        return f"{self.prefix}{blob_id}"

    async def _blob_client(self, blob_id: str) -> Any:
        client = await self._get_client()
        return client.get_blob_client(container=self.container, blob=self._blob_name(blob_id))

    async def store(self, blob_id: str, content: bytes, overwrite: bool = False) -> BlobMetadata:
        """Store a blob in Azure Blob Storage.

        Without overwrite the service rejects the upload if the name is
        taken, which makes creation atomic across writers.
        """
        from azure.core.exceptions import ResourceExistsError

        content_hash = self.compute_hash(content)
        blob_client = await self._blob_client(blob_id)

        try:
            await blob_client.upload_blob(
                content,
                overwrite=overwrite,
                metadata={"content-hash": content_hash},
            )
        except ResourceExistsError as exc:
            raise BlobExistsError(blob_id) from exc

        return BlobMetadata(
            id=blob_id,
            storage_type="azure",
            storage_uri=f"azure://{self.container}/{self._blob_name(blob_id)}",
            size_bytes=len(content),
            content_hash=content_hash,
            created_at=datetime.now(timezone.utc),
        )

    async def retrieve(self, blob_id: str) -> bytes:
        """Retrieve blob content from Azure Blob Storage."""
        from azure.core.exceptions import ResourceNotFoundError

        blob_client = await self._blob_client(blob_id)
        try:
            stream = await blob_client.download_blob()
            data = await stream.readall()
        except ResourceNotFoundError as exc:
            raise FileNotFoundError(f"Blob not found: {blob_id}") from exc
        return cast(bytes, data)

    async def delete(self, blob_id: str) -> bool:
        """Delete a blob from Azure Blob Storage."""
        from azure.core.exceptions import ResourceNotFoundError

        blob_client = await self._blob_client(blob_id)
        try:
            await blob_client.delete_blob()
        except ResourceNotFoundError:
            return False
        return True

    async def exists(self, blob_id: str) -> bool:
        """Check if a blob exists in Azure Blob Storage."""
        blob_client = await self._blob_client(blob_id)
        return cast(bool, await blob_client.exists())

    async def close(self) -> None:
        """Close the underlying client."""
        if self._client is not None:
            await self._client.close()
            self._client = None
