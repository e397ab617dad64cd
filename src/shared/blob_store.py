from typing import Optional, Set

from azure.core.exceptions import ResourceExistsError
from azure.storage.blob import ContentSettings
from azure.storage.blob.aio import BlobServiceClient

from src.shared.logging_utils import info as log_info
from src.specs.common.collaborators_spec import StoredFile
from src.specs.common.errors import ConfigurationError


class AzureBlobStorage:
    """Blob storage backed by Azure Storage; a bucket maps to a container."""

    def __init__(self, service: BlobServiceClient):
        self._service = service
        self._ready: Set[str] = set()

    @classmethod
    def from_connection_string(cls, conn: Optional[str]) -> "AzureBlobStorage":
        if not conn:
            raise ConfigurationError("PUBLIC_BLOB_CONNECTION_STRING is required for blob uploads")
        return cls(BlobServiceClient.from_connection_string(conn))

    async def _ensure_bucket(self, bucket_id: str) -> None:
        if bucket_id in self._ready:
            return
        container_client = self._service.get_container_client(bucket_id)
        try:
            await container_client.create_container(public_access="blob")
            log_info(None, "blob:bucket_created", bucketId=bucket_id)
        except ResourceExistsError:
            pass
        self._ready.add(bucket_id)

    async def upload(
        self,
        bucket_id: str,
        unique_id: str,
        data: bytes,
        content_type: Optional[str] = None,
    ) -> StoredFile:
        """Upload bytes under ``unique_id``; never overwrites an existing object."""
        await self._ensure_bucket(bucket_id)
        blob = self._service.get_blob_client(container=bucket_id, blob=unique_id)
        kwargs = {}
        if content_type:
            kwargs["content_settings"] = ContentSettings(content_type=content_type)
        await blob.upload_blob(data, overwrite=False, **kwargs)
        return StoredFile(id=unique_id, bucketId=bucket_id, size=len(data))

    def get_view_url(self, bucket_id: str, stored_id: str) -> str:
        return self._service.get_blob_client(container=bucket_id, blob=stored_id).url

    async def close(self) -> None:
        await self._service.close()
