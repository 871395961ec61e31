from typing import BinaryIO

import structlog
from azure.core.exceptions import AzureError
from azure.storage.blob import BlobServiceClient

from ..config import settings
from .provider import StorageProvider

logger = structlog.get_logger(__name__)


class BlobStorageProvider(StorageProvider):
    def __init__(self) -> None:
        if not settings.azure_blob_connection or not settings.azure_blob_container:
            raise RuntimeError("AZURE_BLOB_CONNECTION and AZURE_BLOB_CONTAINER must be set")
        self._service = BlobServiceClient.from_connection_string(settings.azure_blob_connection)
        self._container = settings.azure_blob_container

    def _client(self, key: str):
        return self._service.get_blob_client(self._container, key.lstrip("/"))

    def public_url(self, key: str) -> str:
        return self._client(key).url

    def exists(self, key: str) -> bool:
        return self._client(key).exists()

    def copy_in(self, src_stream: BinaryIO | bytes, key: str) -> None:
        self._client(key).upload_blob(src_stream, overwrite=True)

    def delete(self, key: str) -> None:
        try:
            self._client(key).delete_blob()
        except AzureError as e:
            logger.warning("blob_delete_failed", key=key, error=str(e))
