"""Exceptions raised by storage backends."""


class StorageBackendError(Exception):
    """Base exception for storage backend failures."""
    pass


class TransientStorageError(StorageBackendError):
    """Backend unavailable, timed out or throttled. Safe to retry."""
    pass


class PermanentStorageError(StorageBackendError):
    """Backend rejected the operation. Retrying will not help."""
    pass


class StorageConfigurationError(StorageBackendError):
    """Exception raised when a backend is missing required configuration."""
    pass
