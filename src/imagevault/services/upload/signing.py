"""Signed access URL generation for stored objects."""

import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Optional
from urllib.parse import unquote, urlsplit

from imagevault.storage.base import StorageBackend

logger = logging.getLogger(__name__)

READ_ONLY = "r"


class ExpiryPreset(str, Enum):
    """Named validity windows for signed URLs."""

    SHORT = "short"  # Sensitive content
    DEFAULT = "default"  # Standard API responses
    LONG = "long"  # Special cases


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CredentialGenerator:
    """Derives fresh, short-lived signed URLs for stored objects.

    Accepts either a bare storage name or a URL. URLs on the backend's
    managed host are reduced to their storage name and re-signed; URLs on
    any other host are returned unchanged.
    """

    def __init__(
        self,
        backend: StorageBackend,
        default_expiry_minutes: int = 60,
        clock: Callable[[], datetime] = utcnow,
        short_expiry_minutes: int = 15,
        long_expiry_minutes: int = 1440,
    ):
        self.backend = backend
        self.default_expiry_minutes = default_expiry_minutes
        self.short_expiry_minutes = short_expiry_minutes
        self.long_expiry_minutes = long_expiry_minutes
        self._clock = clock

    def expiry_minutes_for(self, preset: ExpiryPreset = ExpiryPreset.DEFAULT) -> int:
        """Window length in minutes for a named preset."""
        if preset is ExpiryPreset.SHORT:
            return self.short_expiry_minutes
        if preset is ExpiryPreset.LONG:
            return self.long_expiry_minutes
        return self.default_expiry_minutes

    def resolve_expiry_minutes(
        self, expiry_minutes: Optional[int] = None, preset: Optional[ExpiryPreset] = None
    ) -> int:
        """Explicit minutes win over a preset; neither gives the default window."""
        if expiry_minutes is not None:
            return expiry_minutes
        return self.expiry_minutes_for(preset or ExpiryPreset.DEFAULT)

    def is_url(self, value: str) -> bool:
        return value.startswith("http://") or value.startswith("https://")

    def is_managed_url(self, url: str) -> bool:
        """True if url points at an object under the managed storage endpoint."""
        if not self.is_url(url):
            return False
        parts = urlsplit(url)
        return (
            parts.netloc.lower() == self.backend.managed_host.lower()
            and parts.path.startswith(self.backend.managed_path_prefix)
        )

    def extract_storage_name(self, value: Optional[str]) -> Optional[str]:
        """Return the bare storage name for value.

        Bare names come back as-is, managed URLs lose their query string
        and path prefix, foreign URLs and empty values give None.
        """
        if not value:
            return None
        if not self.is_url(value):
            return value
        if not self.is_managed_url(value):
            return None

        path = urlsplit(value).path
        name = unquote(path[len(self.backend.managed_path_prefix):])
        return name or None

    def sign(self, value: Optional[str], expiry_minutes: Optional[int] = None) -> str:
        """Return a signed URL for value, valid for expiry_minutes from now.

        Empty input gives an empty string. Foreign URLs are passed through.
        """
        if not value:
            return ""

        name = self.extract_storage_name(value)
        if name is None:
            return value

        minutes = self.resolve_expiry_minutes(expiry_minutes)
        starts_on = self._clock()
        expires_on = starts_on + timedelta(minutes=minutes)

        return self.backend.generate_signed_url(
            name,
            starts_on=starts_on,
            expires_on=expires_on,
            permissions=READ_ONLY,
        )
