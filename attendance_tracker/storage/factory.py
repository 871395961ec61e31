from ..config import settings
from .local_provider import LocalStorageProvider
from .provider import StorageProvider


def get_storage() -> StorageProvider:
    """
    Get storage provider based on configuration.
    Uses BlobStorageProvider when STORAGE_PROVIDER=blob and Azure Blob is configured,
    otherwise local filesystem storage.
    """
    if settings.storage_provider == "blob" and settings.azure_blob_connection and settings.azure_blob_container:
        from .blob_provider import BlobStorageProvider
        return BlobStorageProvider()
    return LocalStorageProvider()
