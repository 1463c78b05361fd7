"""Batch upload: fan a list of candidates out to the orchestrator."""

import asyncio
import logging
from typing import Sequence, Union

from imagevault.services.upload.models import (
    BatchError,
    BatchItemResult,
    UploadCandidate,
    UploadError,
    UploadErrorCode,
    UploadPolicy,
)
from imagevault.services.upload.orchestrator import UploadOrchestrator

logger = logging.getLogger(__name__)


class BatchCoordinator:
    """Uploads up to max_batch_size candidates concurrently.

    Only the batch-size precondition fails the whole call. Every other
    failure is reported in the entry at the same position as its input.
    """

    def __init__(self, orchestrator: UploadOrchestrator, max_batch_size: int = 10):
        self.orchestrator = orchestrator
        self.max_batch_size = max_batch_size

    async def upload_batch(
        self,
        candidates: Sequence[UploadCandidate],
        owner_id,
        policy: UploadPolicy,
    ) -> Union[list[BatchItemResult], BatchError]:
        if len(candidates) > self.max_batch_size:
            logger.info(
                "Batch rejected",
                extra={
                    "owner_id": owner_id,
                    "file_count": len(candidates),
                    "max_files": self.max_batch_size,
                },
            )
            return BatchError(
                code=UploadErrorCode.TOO_MANY_FILES,
                message=f"Maximum {self.max_batch_size} files per batch",
            )

        results = await asyncio.gather(
            *(self._upload_one(candidate, owner_id, policy) for candidate in candidates)
        )

        succeeded = sum(1 for result in results if result.success)
        logger.info(
            "Batch upload finished",
            extra={
                "owner_id": owner_id,
                "file_count": len(results),
                "succeeded": succeeded,
                "failed": len(results) - succeeded,
            },
        )
        return list(results)

    async def _upload_one(
        self, candidate: UploadCandidate, owner_id, policy: UploadPolicy
    ) -> BatchItemResult:
        try:
            result = await self.orchestrator.upload(candidate, owner_id, policy)
        except Exception as e:
            logger.error(
                "Unexpected error uploading batch item",
                extra={"owner_id": owner_id, "original_filename": candidate.filename, "error": str(e)},
                exc_info=True,
            )
            result = UploadError(
                code=UploadErrorCode.INTERNAL_ERROR,
                message="Failed to upload file",
                details=str(e),
            )
        return BatchItemResult.from_result(candidate, result)
