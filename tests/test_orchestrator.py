"""Tests for single-file upload orchestration."""

import logging

import pytest

from imagevault.services.upload.models import (
    RetryPolicy,
    UploadedObject,
    UploadError,
    UploadErrorCode,
)
from imagevault.services.upload.naming import parse_storage_name
from imagevault.services.upload.orchestrator import UploadOrchestrator
from imagevault.storage.exceptions import PermanentStorageError, TransientStorageError
from upload_helpers import JPEG_HEADER, make_candidate, make_image


@pytest.mark.asyncio
async def test_upload_success(orchestrator, fake_backend, policy):
    candidate = make_candidate("cat.jpg", "image/jpeg", make_image(JPEG_HEADER, 100))

    result = await orchestrator.upload(candidate, 123, policy)

    assert isinstance(result, UploadedObject)
    assert result.filename == "cat.jpg"
    assert result.size == 100
    assert result.media_type == "image/jpeg"
    assert parse_storage_name(result.storage_name).owner_id == "123"
    assert result.storage_name.endswith(".jpg")
    assert fake_backend.objects[result.storage_name] == candidate.data
    assert result.signed_url.startswith(f"https://storage.example.test/images/{result.storage_name}?")
    assert fake_backend.delete_calls == []


@pytest.mark.asyncio
async def test_oversized_file_never_reaches_storage(orchestrator, fake_backend, policy):
    """A 6MB file declared as PNG is rejected without a backend call."""
    candidate = make_candidate("big.png", "image/png", size=6 * 1024 * 1024)

    result = await orchestrator.upload(candidate, 1, policy)

    assert isinstance(result, UploadError)
    assert result.code == UploadErrorCode.FILE_TOO_LARGE
    assert fake_backend.write_calls == []


@pytest.mark.asyncio
async def test_spoofed_file_never_reaches_storage(orchestrator, fake_backend, policy):
    candidate = make_candidate("evil.png", "image/png", data=b"MZ\x90\x00not-an-image")

    result = await orchestrator.upload(candidate, 1, policy)

    assert result.code == UploadErrorCode.FILE_INTEGRITY_ERROR
    assert fake_backend.write_calls == []


@pytest.mark.asyncio
async def test_transient_failure_then_success(orchestrator, fake_backend, recording_sleep, policy):
    fake_backend.write_failures = [TransientStorageError("503"), TransientStorageError("timeout"), None]

    result = await orchestrator.upload(make_candidate(), 5, policy)

    assert isinstance(result, UploadedObject)
    assert len(fake_backend.write_calls) == 3
    # All attempts target the same name
    assert len(set(fake_backend.write_calls)) == 1
    assert recording_sleep.delays == [0.0, 0.1]
    assert fake_backend.delete_calls == []


@pytest.mark.asyncio
async def test_retry_bound_and_single_cleanup(orchestrator, fake_backend, recording_sleep, policy):
    """An always-failing backend gets max_retries + 1 writes and one cleanup."""
    fake_backend.fail_always = TransientStorageError("service unavailable")

    result = await orchestrator.upload(make_candidate(), 5, policy)

    assert isinstance(result, UploadError)
    assert result.code == UploadErrorCode.INTERNAL_ERROR
    assert len(fake_backend.write_calls) == 4
    assert fake_backend.delete_calls == [fake_backend.write_calls[0]]
    assert recording_sleep.delays == [0.0, 0.1, 0.2]


@pytest.mark.asyncio
async def test_retry_budget_is_configurable(fake_backend, signer, recording_sleep, policy):
    orchestrator = UploadOrchestrator(
        fake_backend,
        signer,
        retry_policy=RetryPolicy(max_retries=5, delays_ms=(10, 20)),
        sleep=recording_sleep,
    )
    fake_backend.fail_always = TransientStorageError("timeout")

    await orchestrator.upload(make_candidate(), 5, policy)

    assert len(fake_backend.write_calls) == 6
    assert recording_sleep.delays == [0.01, 0.02, 0.02, 0.02, 0.02]


@pytest.mark.asyncio
async def test_permanent_failure_is_not_retried(orchestrator, fake_backend, recording_sleep, policy):
    fake_backend.fail_always = PermanentStorageError("403 forbidden")

    result = await orchestrator.upload(make_candidate(), 5, policy)

    assert result.code == UploadErrorCode.INTERNAL_ERROR
    assert "403 forbidden" in result.details
    assert len(fake_backend.write_calls) == 1
    assert len(fake_backend.delete_calls) == 1
    assert recording_sleep.delays == []


@pytest.mark.asyncio
async def test_cleanup_failure_does_not_mask_upload_error(orchestrator, fake_backend, policy, caplog):
    fake_backend.fail_always = TransientStorageError("timeout")
    fake_backend.delete_error = RuntimeError("delete exploded")

    with caplog.at_level(logging.ERROR):
        result = await orchestrator.upload(make_candidate(), 5, policy)

    assert result.code == UploadErrorCode.INTERNAL_ERROR
    assert "timeout" in result.details
    assert len(fake_backend.delete_calls) == 1
    assert any("clean up" in record.getMessage() for record in caplog.records)


@pytest.mark.asyncio
async def test_cleanup_can_be_disabled(fake_backend, signer, recording_sleep, policy):
    orchestrator = UploadOrchestrator(
        fake_backend, signer, enable_cleanup=False, sleep=recording_sleep
    )
    fake_backend.fail_always = TransientStorageError("timeout")

    result = await orchestrator.upload(make_candidate(), 5, policy)

    assert result.code == UploadErrorCode.INTERNAL_ERROR
    assert fake_backend.delete_calls == []


@pytest.mark.asyncio
async def test_preview_signing_failure_keeps_upload(orchestrator, fake_backend, policy, monkeypatch):
    def broken_sign(*args, **kwargs):
        raise RuntimeError("no signing credentials")

    monkeypatch.setattr(fake_backend, "generate_signed_url", broken_sign)

    result = await orchestrator.upload(make_candidate(), 5, policy)

    assert isinstance(result, UploadedObject)
    assert result.signed_url == ""
    assert result.storage_name in fake_backend.objects


def test_delay_schedule():
    policy = RetryPolicy(max_retries=3, delays_ms=(0, 100, 200, 400))

    assert [policy.delay_before_retry(n) for n in (1, 2, 3, 4, 5)] == [0.0, 0.1, 0.2, 0.4, 0.4]
    assert RetryPolicy(delays_ms=()).delay_before_retry(1) == 0.0
