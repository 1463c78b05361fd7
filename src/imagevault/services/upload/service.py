"""Assembly of the upload components around one storage backend."""

from dataclasses import dataclass
from typing import Optional, Sequence, Union

from imagevault.core.config import Settings
from imagevault.services.upload.batch import BatchCoordinator
from imagevault.services.upload.delivery import DeliveryRewriter
from imagevault.services.upload.models import (
    BatchError,
    BatchItemResult,
    RetryPolicy,
    UploadCandidate,
    UploadPolicy,
    UploadResult,
)
from imagevault.services.upload.orchestrator import UploadOrchestrator
from imagevault.services.upload.signing import CredentialGenerator
from imagevault.storage.base import StorageBackend
from imagevault.storage.factory import get_storage_backend


@dataclass
class UploadService:
    """Upload and delivery operations sharing one backend and one policy."""

    backend: StorageBackend
    policy: UploadPolicy
    signer: CredentialGenerator
    orchestrator: UploadOrchestrator
    batch: BatchCoordinator
    rewriter: DeliveryRewriter

    async def upload_image(self, candidate: UploadCandidate, owner_id) -> UploadResult:
        return await self.orchestrator.upload(candidate, owner_id, self.policy)

    async def upload_images(
        self, candidates: Sequence[UploadCandidate], owner_id
    ) -> Union[list[BatchItemResult], BatchError]:
        return await self.batch.upload_batch(candidates, owner_id, self.policy)


def build_upload_service(settings: Settings, backend: Optional[StorageBackend] = None) -> UploadService:
    """Wire the upload components from settings.

    Args:
        settings: Application settings
        backend: Storage backend to use instead of the configured one

    Raises:
        StorageConfigurationError: If the configured backend cannot be built
    """
    backend = backend or get_storage_backend(settings)
    policy = UploadPolicy.from_settings(settings)

    signer = CredentialGenerator(
        backend,
        default_expiry_minutes=settings.SIGNED_URL_DEFAULT_EXPIRY_MINUTES,
        short_expiry_minutes=settings.SIGNED_URL_SHORT_EXPIRY_MINUTES,
        long_expiry_minutes=settings.SIGNED_URL_LONG_EXPIRY_MINUTES,
    )
    orchestrator = UploadOrchestrator(
        backend,
        signer,
        retry_policy=RetryPolicy.from_settings(settings),
        enable_cleanup=settings.UPLOAD_ENABLE_AUTO_CLEANUP,
    )

    return UploadService(
        backend=backend,
        policy=policy,
        signer=signer,
        orchestrator=orchestrator,
        batch=BatchCoordinator(orchestrator, max_batch_size=settings.MAX_FILES_PER_BATCH),
        rewriter=DeliveryRewriter(signer),
    )
