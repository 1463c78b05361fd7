"""Tests for storage backends."""

from datetime import timedelta
from unittest.mock import MagicMock, patch
from urllib.parse import parse_qs, urlsplit

import pytest
from google.api_core.exceptions import Forbidden, NotFound, ServiceUnavailable
from requests.exceptions import ConnectionError as RequestsConnectionError

from imagevault.core.config import Settings
from imagevault.storage.exceptions import (
    PermanentStorageError,
    StorageConfigurationError,
    TransientStorageError,
)
from imagevault.storage.factory import get_storage_backend
from imagevault.storage.gcs import GCSStorageBackend
from imagevault.storage.local import LocalStorageBackend
from upload_helpers import FIXED_NOW

NAME = "9-1700000000000-12345678-1234-5678-1234-567812345678.png"


def signed_params(url: str) -> dict[str, str]:
    return {key: values[0] for key, values in parse_qs(urlsplit(url).query).items()}


class TestLocalStorageBackend:
    """Tests for local storage backend."""

    @pytest.fixture
    def backend(self, tmp_path):
        return LocalStorageBackend(tmp_path, signing_key="secret", public_base_url="http://localhost:8080")

    @pytest.mark.asyncio
    async def test_write_and_delete(self, backend, tmp_path):
        await backend.write_object(NAME, b"\x89PNG data", "image/png")

        assert (tmp_path / NAME).read_bytes() == b"\x89PNG data"
        assert backend.open_object(NAME) == tmp_path / NAME

        await backend.delete_object(NAME)

        assert not (tmp_path / NAME).exists()

    @pytest.mark.asyncio
    async def test_delete_missing_object_is_not_an_error(self, backend):
        await backend.delete_object(NAME)

    @pytest.mark.asyncio
    async def test_rejects_path_traversal(self, backend):
        with pytest.raises(PermanentStorageError):
            await backend.write_object("../escape.png", b"x", "image/png")

    def test_open_missing_object(self, backend):
        with pytest.raises(FileNotFoundError):
            backend.open_object(NAME)

    def test_managed_endpoint(self, backend):
        assert backend.managed_host == "localhost:8080"
        assert backend.managed_path_prefix == "/media/"
        assert backend.object_url(NAME) == f"http://localhost:8080/media/{NAME}"

    def test_signed_url_round_trip(self, backend):
        url = backend.generate_signed_url(
            NAME, starts_on=FIXED_NOW, expires_on=FIXED_NOW + timedelta(minutes=15)
        )
        params = signed_params(url)

        assert url.startswith(f"http://localhost:8080/media/{NAME}?")
        assert int(params["se"]) - int(params["st"]) == 900
        assert backend.verify_signature(NAME, params, FIXED_NOW + timedelta(minutes=5))

    def test_verify_rejects_expired(self, backend):
        params = signed_params(
            backend.generate_signed_url(NAME, starts_on=FIXED_NOW, expires_on=FIXED_NOW + timedelta(minutes=15))
        )

        assert not backend.verify_signature(NAME, params, FIXED_NOW + timedelta(minutes=16))

    def test_verify_rejects_tampering(self, backend):
        params = signed_params(
            backend.generate_signed_url(NAME, starts_on=FIXED_NOW, expires_on=FIXED_NOW + timedelta(minutes=15))
        )
        extended = dict(params, se=str(int(params["se"]) + 3600))

        assert not backend.verify_signature(NAME, extended, FIXED_NOW)
        assert not backend.verify_signature("other.png", params, FIXED_NOW)
        assert not backend.verify_signature(NAME, {"sig": params["sig"]}, FIXED_NOW)

    def test_verify_rejects_other_key(self, backend, tmp_path):
        other = LocalStorageBackend(tmp_path, signing_key="different", public_base_url="http://localhost:8080")
        params = signed_params(
            other.generate_signed_url(NAME, starts_on=FIXED_NOW, expires_on=FIXED_NOW + timedelta(minutes=15))
        )

        assert not backend.verify_signature(NAME, params, FIXED_NOW)

    def test_requires_signing_key(self, tmp_path):
        with pytest.raises(StorageConfigurationError):
            LocalStorageBackend(tmp_path, signing_key="", public_base_url="http://localhost")

    def test_get_backend_name(self, backend):
        assert backend.get_backend_name() == "local"


class TestGCSStorageBackend:
    """Tests for GCS storage backend."""

    @pytest.fixture
    def mock_blob(self):
        with patch("imagevault.storage.gcs.storage.Client") as mock_client_class:
            mock_blob = MagicMock()
            mock_client_class.return_value.bucket.return_value.blob.return_value = mock_blob
            yield mock_blob

    @pytest.fixture
    def backend(self, mock_blob):
        return GCSStorageBackend(bucket_name="test-bucket", project_id="test-project")

    @pytest.mark.asyncio
    async def test_write_object(self, backend, mock_blob):
        await backend.write_object(NAME, b"data", "image/png")

        mock_blob.upload_from_string.assert_called_once_with(b"data", content_type="image/png")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [ServiceUnavailable("down"), RequestsConnectionError("refused"), TimeoutError("slow")],
    )
    async def test_write_transient_errors(self, backend, mock_blob, error):
        mock_blob.upload_from_string.side_effect = error

        with pytest.raises(TransientStorageError):
            await backend.write_object(NAME, b"data", "image/png")

    @pytest.mark.asyncio
    async def test_write_permanent_error(self, backend, mock_blob):
        mock_blob.upload_from_string.side_effect = Forbidden("no access")

        with pytest.raises(PermanentStorageError):
            await backend.write_object(NAME, b"data", "image/png")

    @pytest.mark.asyncio
    async def test_delete_missing_object_is_ignored(self, backend, mock_blob):
        mock_blob.delete.side_effect = NotFound("gone")

        await backend.delete_object(NAME)

        mock_blob.delete.assert_called_once()

    @pytest.mark.asyncio
    async def test_missing_bucket_name(self):
        backend = GCSStorageBackend(bucket_name="")

        with pytest.raises(StorageConfigurationError):
            await backend.write_object(NAME, b"data", "image/png")

    def test_generate_signed_url(self, backend, mock_blob):
        mock_blob.generate_signed_url.return_value = "https://storage.googleapis.com/test-bucket/x?X-Goog-Signature=abc"
        backend.signing_key_file = "/secrets/key.json"

        with patch(
            "imagevault.storage.gcs.service_account.Credentials.from_service_account_file"
        ) as mock_from_file:
            url = backend.generate_signed_url(
                NAME, starts_on=FIXED_NOW, expires_on=FIXED_NOW + timedelta(minutes=15)
            )

        assert url.startswith("https://storage.googleapis.com/test-bucket/")
        mock_from_file.assert_called_once_with("/secrets/key.json")
        mock_blob.generate_signed_url.assert_called_once_with(
            version="v4",
            expiration=timedelta(minutes=15),
            method="GET",
            credentials=mock_from_file.return_value,
        )

    def test_signing_credentials_are_cached(self, backend, mock_blob):
        backend.signing_key_file = "/secrets/key.json"

        with patch(
            "imagevault.storage.gcs.service_account.Credentials.from_service_account_file"
        ) as mock_from_file:
            for _ in range(3):
                backend.generate_signed_url(
                    NAME, starts_on=FIXED_NOW, expires_on=FIXED_NOW + timedelta(minutes=1)
                )

        mock_from_file.assert_called_once()

    def test_managed_endpoint(self, backend):
        assert backend.managed_host == "storage.googleapis.com"
        assert backend.managed_path_prefix == "/test-bucket/"
        assert backend.object_url(NAME) == f"https://storage.googleapis.com/test-bucket/{NAME}"
        assert backend.get_backend_name() == "gcs"


class TestStorageFactory:
    """Tests for backend selection."""

    def test_local_backend(self, tmp_path):
        settings = Settings(
            STORAGE_BACKEND="local", LOCAL_STORAGE_PATH=str(tmp_path), LOCAL_SIGNING_KEY="secret"
        )

        assert isinstance(get_storage_backend(settings), LocalStorageBackend)

    def test_local_backend_requires_signing_key(self, tmp_path):
        settings = Settings(STORAGE_BACKEND="local", LOCAL_STORAGE_PATH=str(tmp_path))

        with pytest.raises(StorageConfigurationError):
            get_storage_backend(settings)

    def test_gcs_backend(self):
        settings = Settings(STORAGE_BACKEND="gcs", GCS_BUCKET_NAME="bucket")

        backend = get_storage_backend(settings)

        assert isinstance(backend, GCSStorageBackend)
        assert backend.bucket_name == "bucket"

    def test_gcs_backend_requires_bucket(self):
        with pytest.raises(StorageConfigurationError):
            get_storage_backend(Settings(STORAGE_BACKEND="gcs", GCS_BUCKET_NAME=""))

    def test_unknown_backend(self):
        with pytest.raises(StorageConfigurationError):
            get_storage_backend(Settings(STORAGE_BACKEND="ftp"))
