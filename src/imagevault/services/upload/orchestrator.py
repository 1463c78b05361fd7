"""Single-file upload: validate, name, write with retry, clean up on failure."""

import asyncio
import logging
from typing import Awaitable, Callable

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception_type, stop_after_attempt

from imagevault.core.logging import storage_name_context
from imagevault.services.upload import naming
from imagevault.services.upload.models import (
    Rejected,
    RetryPolicy,
    UploadCandidate,
    UploadedObject,
    UploadError,
    UploadErrorCode,
    UploadPolicy,
    UploadResult,
)
from imagevault.services.upload.signing import CredentialGenerator
from imagevault.services.upload.validator import validate
from imagevault.storage.base import StorageBackend
from imagevault.storage.exceptions import TransientStorageError

logger = logging.getLogger(__name__)


class UploadOrchestrator:
    """Drives one candidate through validation, storage write and result.

    Transient write failures are retried on a fixed delay schedule. When
    the write finally fails, one best-effort delete of the object is
    attempted; its outcome is logged and never reported to the caller.
    """

    def __init__(
        self,
        backend: StorageBackend,
        signer: CredentialGenerator,
        retry_policy: RetryPolicy = RetryPolicy(),
        enable_cleanup: bool = True,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.backend = backend
        self.signer = signer
        self.retry_policy = retry_policy
        self.enable_cleanup = enable_cleanup
        self._sleep = sleep

    async def upload(self, candidate: UploadCandidate, owner_id, policy: UploadPolicy) -> UploadResult:
        """Validate and store candidate for owner_id.

        Returns:
            UploadedObject on success, UploadError otherwise
        """
        verdict = validate(candidate, policy)
        if isinstance(verdict, Rejected):
            return UploadError(code=verdict.code, message=verdict.message)

        storage_name = naming.allocate(owner_id, verdict.extension)
        token = storage_name_context.set(storage_name)
        try:
            return await self._store(candidate, owner_id, storage_name)
        finally:
            storage_name_context.reset(token)

    async def _store(self, candidate: UploadCandidate, owner_id, storage_name: str) -> UploadResult:
        try:
            await self._write_with_retry(storage_name, candidate)
        except Exception as e:
            logger.error(
                "Upload failed",
                extra={
                    "owner_id": owner_id,
                    "storage_name": storage_name,
                    "original_filename": candidate.filename,
                    "error": str(e),
                },
                exc_info=True,
            )
            await self._cleanup(storage_name)
            return UploadError(
                code=UploadErrorCode.INTERNAL_ERROR,
                message="Failed to upload file",
                details=str(e),
            )

        logger.info(
            "Upload completed",
            extra={
                "owner_id": owner_id,
                "storage_name": storage_name,
                "backend": self.backend.get_backend_name(),
                "size_bytes": candidate.size,
            },
        )

        return UploadedObject(
            storage_name=storage_name,
            signed_url=self._preview_url(storage_name),
            filename=candidate.filename,
            size=candidate.size,
            media_type=candidate.media_type,
        )

    async def _write_with_retry(self, storage_name: str, candidate: UploadCandidate) -> None:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.retry_policy.max_retries + 1),
            wait=self._wait,
            retry=retry_if_exception_type(TransientStorageError),
            before_sleep=self._log_retry,
            sleep=self._sleep,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                await self.backend.write_object(storage_name, candidate.data, candidate.media_type)

    def _wait(self, retry_state: RetryCallState) -> float:
        return self.retry_policy.delay_before_retry(retry_state.attempt_number)

    def _log_retry(self, retry_state: RetryCallState) -> None:
        outcome = retry_state.outcome
        logger.warning(
            f"Storage write attempt {retry_state.attempt_number} failed, retrying",
            extra={
                "attempt": retry_state.attempt_number,
                "max_attempts": self.retry_policy.max_retries + 1,
                "delay_ms": int(self._wait(retry_state) * 1000),
                "error": str(outcome.exception()) if outcome else None,
            },
        )

    async def _cleanup(self, storage_name: str) -> None:
        """Best-effort delete of a possibly partially written object."""
        if not self.enable_cleanup:
            return
        try:
            await self.backend.delete_object(storage_name)
            logger.info("Cleaned up object after failed upload", extra={"storage_name": storage_name})
        except Exception as e:
            logger.error(
                "Failed to clean up object after failed upload",
                extra={"storage_name": storage_name, "error": str(e)},
                exc_info=True,
            )

    def _preview_url(self, storage_name: str) -> str:
        try:
            return self.signer.sign(storage_name)
        except Exception as e:
            logger.error(
                "Failed to sign preview URL",
                extra={"storage_name": storage_name, "error": str(e)},
                exc_info=True,
            )
            return ""
