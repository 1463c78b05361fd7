"""Storage backend selection."""

from imagevault.core.config import Settings
from imagevault.storage.base import StorageBackend
from imagevault.storage.exceptions import StorageConfigurationError
from imagevault.storage.gcs import GCSStorageBackend
from imagevault.storage.local import LocalStorageBackend


def get_storage_backend(settings: Settings) -> StorageBackend:
    """Build the storage backend named by settings.STORAGE_BACKEND.

    Raises:
        StorageConfigurationError: Unknown backend or missing configuration
    """
    backend = settings.STORAGE_BACKEND.lower()

    if backend == "gcs":
        if not settings.GCS_BUCKET_NAME:
            raise StorageConfigurationError("GCS_BUCKET_NAME not configured")
        return GCSStorageBackend(
            bucket_name=settings.GCS_BUCKET_NAME,
            project_id=settings.GCP_PROJECT_ID,
            signing_key_file=settings.GCS_SIGNING_KEY_FILE,
        )

    if backend == "local":
        return LocalStorageBackend(
            base_path=settings.LOCAL_STORAGE_PATH,
            signing_key=settings.LOCAL_SIGNING_KEY,
            public_base_url=settings.PUBLIC_BASE_URL,
        )

    raise StorageConfigurationError(f"Unknown storage backend: {settings.STORAGE_BACKEND}")
