"""Local filesystem storage backend."""

import asyncio
import hashlib
import hmac
import logging
from datetime import datetime
from pathlib import Path
from typing import Mapping
from urllib.parse import urlencode, urlsplit

from imagevault.storage.base import StorageBackend
from imagevault.storage.exceptions import PermanentStorageError, StorageConfigurationError

logger = logging.getLogger(__name__)

MEDIA_ROUTE_PREFIX = "/media/"


class LocalStorageBackend(StorageBackend):
    """Local filesystem storage backend.

    Objects are plain files under ``base_path``. Signed URLs point at the
    service's own ``/media/{name}`` route and carry an HMAC-SHA256 signature
    over the name, permissions and validity window.
    """

    def __init__(self, base_path: str | Path, signing_key: str, public_base_url: str):
        if not signing_key:
            raise StorageConfigurationError("LOCAL_SIGNING_KEY not configured")

        self.base_path = Path(base_path)
        self._signing_key = signing_key.encode("utf-8")

        parts = urlsplit(public_base_url)
        self._scheme = parts.scheme or "http"
        self._host = parts.netloc
        self._prefix = parts.path.rstrip("/") + MEDIA_ROUTE_PREFIX

    @property
    def managed_host(self) -> str:
        return self._host

    @property
    def managed_path_prefix(self) -> str:
        return self._prefix

    def object_url(self, name: str) -> str:
        return f"{self._scheme}://{self._host}{self._prefix}{name}"

    def get_target_path(self, name: str) -> Path:
        """Resolve the file path for name, refusing anything outside base_path."""
        if not name or "/" in name or "\\" in name or name in (".", ".."):
            raise PermanentStorageError(f"Invalid storage name: {name!r}")
        return self.base_path / name

    async def write_object(self, name: str, data: bytes, content_type: str) -> None:
        """Write object bytes to the local filesystem."""
        target_path = self.get_target_path(name)
        try:
            await asyncio.to_thread(self._write_bytes, target_path, data)
        except OSError as e:
            raise PermanentStorageError(f"Failed to write {name}: {e}") from e

        logger.debug(
            "Stored object on local filesystem",
            extra={"storage_name": name, "content_type": content_type, "size_bytes": len(data)},
        )

    async def delete_object(self, name: str) -> None:
        """Remove object file if present."""
        target_path = self.get_target_path(name)
        try:
            await asyncio.to_thread(target_path.unlink, missing_ok=True)
        except OSError as e:
            raise PermanentStorageError(f"Failed to delete {name}: {e}") from e

    def open_object(self, name: str) -> Path:
        """Return the path of a stored object.

        Raises:
            FileNotFoundError: If no object is stored under name
        """
        target_path = self.get_target_path(name)
        if not target_path.is_file():
            raise FileNotFoundError(name)
        return target_path

    def generate_signed_url(
        self,
        name: str,
        *,
        starts_on: datetime,
        expires_on: datetime,
        permissions: str = "r",
    ) -> str:
        start = int(starts_on.timestamp())
        expiry = int(expires_on.timestamp())
        query = urlencode(
            {
                "sp": permissions,
                "st": start,
                "se": expiry,
                "sig": self._sign(name, permissions, start, expiry),
            }
        )
        return f"{self.object_url(name)}?{query}"

    def verify_signature(self, name: str, params: Mapping[str, str], now: datetime) -> bool:
        """Check a signed URL's query parameters for name at time now."""
        try:
            permissions = params["sp"]
            start = int(params["st"])
            expiry = int(params["se"])
            signature = params["sig"]
        except (KeyError, ValueError):
            return False

        expected = self._sign(name, permissions, start, expiry)
        if not hmac.compare_digest(expected, signature):
            return False
        if "r" not in permissions:
            return False

        timestamp = now.timestamp()
        return start <= timestamp <= expiry

    def get_backend_name(self) -> str:
        return "local"

    def _sign(self, name: str, permissions: str, start: int, expiry: int) -> str:
        string_to_sign = "\n".join([name, permissions, str(start), str(expiry)])
        return hmac.new(
            self._signing_key, string_to_sign.encode("utf-8"), hashlib.sha256
        ).hexdigest()

    @staticmethod
    def _write_bytes(target_path: Path, data: bytes) -> None:
        target_path.parent.mkdir(parents=True, exist_ok=True)
        with open(target_path, "wb") as f:
            f.write(data)
