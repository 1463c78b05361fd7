"""Pytest configuration and shared fixtures."""

import pytest

from imagevault.services.upload.models import RetryPolicy, UploadPolicy
from imagevault.services.upload.orchestrator import UploadOrchestrator
from imagevault.services.upload.signing import CredentialGenerator
from upload_helpers import FIXED_NOW, FakeStorageBackend, RecordingSleep


@pytest.fixture
def fake_backend():
    return FakeStorageBackend()


@pytest.fixture
def signer(fake_backend):
    return CredentialGenerator(fake_backend, default_expiry_minutes=60, clock=lambda: FIXED_NOW)


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def policy():
    return UploadPolicy()


@pytest.fixture
def orchestrator(fake_backend, signer, recording_sleep):
    return UploadOrchestrator(
        fake_backend,
        signer,
        retry_policy=RetryPolicy(max_retries=3, delays_ms=(0, 100, 200, 400)),
        enable_cleanup=True,
        sleep=recording_sleep,
    )
