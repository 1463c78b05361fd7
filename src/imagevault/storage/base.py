"""Abstract storage backend interface."""

from abc import ABC, abstractmethod
from datetime import datetime


class StorageBackend(ABC):
    """Abstract base class for storage backends.

    A backend stores bytes under a name, deletes by name and produces a
    signed URL for a name. Nothing else about the backend's own API leaks
    out of this interface.
    """

    @property
    @abstractmethod
    def managed_host(self) -> str:
        """Host name of the endpoint this backend can sign URLs for."""
        pass

    @property
    @abstractmethod
    def managed_path_prefix(self) -> str:
        """URL path under which stored objects live, with trailing slash."""
        pass

    def object_url(self, name: str) -> str:
        """Unsigned URL of a stored object."""
        return f"https://{self.managed_host}{self.managed_path_prefix}{name}"

    @abstractmethod
    async def write_object(self, name: str, data: bytes, content_type: str) -> None:
        """Store object bytes under name.

        Args:
            name: Storage name of the object
            data: Object content
            content_type: MIME type recorded on the object

        Raises:
            TransientStorageError: Backend unavailable or timed out
            PermanentStorageError: Backend rejected the write
        """
        pass

    @abstractmethod
    async def delete_object(self, name: str) -> None:
        """Delete object by name. Deleting a missing object is not an error.

        Raises:
            StorageBackendError: If the backend fails to delete
        """
        pass

    @abstractmethod
    def generate_signed_url(
        self,
        name: str,
        *,
        starts_on: datetime,
        expires_on: datetime,
        permissions: str = "r",
    ) -> str:
        """Build a credential-bearing URL for name valid in [starts_on, expires_on].

        Args:
            name: Bare storage name (no URL, no query string)
            starts_on: Start of the validity window (UTC)
            expires_on: End of the validity window (UTC)
            permissions: Granted permissions, "r" for read-only

        Returns:
            Signed URL
        """
        pass

    @abstractmethod
    def get_backend_name(self) -> str:
        """Return backend identifier."""
        pass
