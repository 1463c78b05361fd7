"""
Image Upload Service

Validates user-submitted images (including leading-byte signature checks),
stores them under collision-resistant names with retry and cleanup, and
produces short-lived signed URLs for displaying them later.
"""

from imagevault.services.upload.delivery import DeliveryRewriter
from imagevault.services.upload.models import (
    BatchError,
    BatchItemResult,
    UploadCandidate,
    UploadedObject,
    UploadError,
    UploadErrorCode,
    UploadPolicy,
)
from imagevault.services.upload.service import UploadService, build_upload_service
from imagevault.services.upload.signing import CredentialGenerator, ExpiryPreset

__all__ = [
    "BatchError",
    "BatchItemResult",
    "CredentialGenerator",
    "DeliveryRewriter",
    "ExpiryPreset",
    "UploadCandidate",
    "UploadedObject",
    "UploadError",
    "UploadErrorCode",
    "UploadPolicy",
    "UploadService",
    "build_upload_service",
]
