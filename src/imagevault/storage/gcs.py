"""Google Cloud Storage backend."""

import asyncio
import logging
from datetime import datetime
from typing import Optional

import requests
from google.api_core import exceptions as api_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import storage
from google.oauth2 import service_account

from imagevault.storage.base import StorageBackend
from imagevault.storage.exceptions import (
    PermanentStorageError,
    StorageConfigurationError,
    TransientStorageError,
)

logger = logging.getLogger(__name__)

GCS_HOST = "storage.googleapis.com"

# Failures worth another attempt: unavailable, timed out, throttled
TRANSIENT_ERRORS = (
    api_exceptions.ServiceUnavailable,
    api_exceptions.GatewayTimeout,
    api_exceptions.BadGateway,
    api_exceptions.InternalServerError,
    api_exceptions.TooManyRequests,
    api_exceptions.DeadlineExceeded,
    auth_exceptions.TransportError,
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
    ConnectionError,
    TimeoutError,
)


class GCSStorageBackend(StorageBackend):
    """Google Cloud Storage backend."""

    def __init__(
        self,
        bucket_name: str,
        project_id: str = "",
        signing_key_file: str = "",
    ):
        self.bucket_name = bucket_name
        self.project_id = project_id
        self.signing_key_file = signing_key_file
        self._client: Optional[storage.Client] = None
        self._bucket: Optional[storage.Bucket] = None
        self._signing_credentials = None

    def _get_bucket(self) -> storage.Bucket:
        """Lazy-load and cache GCS bucket."""
        if self._bucket is None:
            if not self.bucket_name:
                raise StorageConfigurationError("GCS_BUCKET_NAME not configured")

            self._client = storage.Client(project=self.project_id or None)
            self._bucket = self._client.bucket(self.bucket_name)

        return self._bucket

    @property
    def managed_host(self) -> str:
        return GCS_HOST

    @property
    def managed_path_prefix(self) -> str:
        return f"/{self.bucket_name}/"

    async def write_object(self, name: str, data: bytes, content_type: str) -> None:
        """Upload object bytes to GCS."""
        blob = self._get_bucket().blob(name)
        try:
            await asyncio.to_thread(blob.upload_from_string, data, content_type=content_type)
        except TRANSIENT_ERRORS as e:
            raise TransientStorageError(f"GCS upload of {name} failed: {e}") from e
        except api_exceptions.GoogleAPIError as e:
            raise PermanentStorageError(f"GCS rejected upload of {name}: {e}") from e

        logger.debug(
            "Uploaded object to GCS",
            extra={"bucket": self.bucket_name, "storage_name": name, "size_bytes": len(data)},
        )

    async def delete_object(self, name: str) -> None:
        """Delete object from GCS. A missing object is ignored."""
        blob = self._get_bucket().blob(name)
        try:
            await asyncio.to_thread(blob.delete)
        except api_exceptions.NotFound:
            logger.debug(
                "Object already absent from GCS",
                extra={"bucket": self.bucket_name, "storage_name": name},
            )
        except TRANSIENT_ERRORS as e:
            raise TransientStorageError(f"GCS delete of {name} failed: {e}") from e
        except api_exceptions.GoogleAPIError as e:
            raise PermanentStorageError(f"GCS rejected delete of {name}: {e}") from e

    def generate_signed_url(
        self,
        name: str,
        *,
        starts_on: datetime,
        expires_on: datetime,
        permissions: str = "r",
    ) -> str:
        """Generate a V4 signed GET URL.

        V4 signing always starts the window at signing time, so only the
        window length is taken from starts_on/expires_on.
        """
        if "r" not in permissions:
            raise ValueError(f"Unsupported permissions for GCS signed URL: {permissions!r}")

        blob = self._get_bucket().blob(name)
        return blob.generate_signed_url(
            version="v4",
            expiration=expires_on - starts_on,
            method="GET",
            credentials=self._get_signing_credentials(),
        )

    def get_backend_name(self) -> str:
        return "gcs"

    def _get_signing_credentials(self):
        """Build and cache credentials able to sign URLs.

        With GCS_SIGNING_KEY_FILE set, the service account key signs locally.
        Otherwise the runtime service account signs through the IAM signBlob
        API, which needs roles/iam.serviceAccountTokenCreator on itself.
        """
        if self._signing_credentials is not None:
            return self._signing_credentials

        if self.signing_key_file:
            self._signing_credentials = service_account.Credentials.from_service_account_file(
                self.signing_key_file
            )
            return self._signing_credentials

        from google.auth import compute_engine, iam
        from google.auth.transport import requests as auth_requests

        credentials = compute_engine.Credentials()
        auth_request = auth_requests.Request()
        credentials.refresh(auth_request)
        service_account_email = credentials.service_account_email

        signer = iam.Signer(
            request=auth_request,
            credentials=credentials,
            service_account_email=service_account_email,
        )
        # token_uri is required by the constructor; signing goes through the IAM signer
        self._signing_credentials = service_account.Credentials(
            signer=signer,
            service_account_email=service_account_email,
            token_uri="https://oauth2.googleapis.com/token",
        )
        return self._signing_credentials
