"""Content validation for uploaded images.

Checks run in a fixed order and stop at the first failure:

1. size against the policy cap
2. declared media type against the allowed set
3. filename extension against the allowed set and the declared media type
4. empty payload
5. leading bytes against the declared media type's signature

The last check defeats files whose extension or declared type was spoofed.
"""

import logging
import os

from imagevault.services.upload.models import (
    Accepted,
    Rejected,
    UploadCandidate,
    UploadErrorCode,
    UploadPolicy,
    ValidationVerdict,
)

logger = logging.getLogger(__name__)

# Media type -> (offset, expected bytes) parts of its leading-byte signature
MEDIA_TYPE_SIGNATURES: dict[str, tuple[tuple[int, bytes], ...]] = {
    "image/jpeg": ((0, b"\xff\xd8\xff"),),
    "image/png": ((0, b"\x89PNG\r\n\x1a\n"),),
    "image/webp": ((0, b"RIFF"), (8, b"WEBP")),
}

# Media type -> extensions consistent with it
MEDIA_TYPE_EXTENSIONS: dict[str, frozenset[str]] = {
    "image/jpeg": frozenset({"jpg", "jpeg"}),
    "image/png": frozenset({"png"}),
    "image/webp": frozenset({"webp"}),
}

MEDIA_TYPE_LABELS = {
    "image/jpeg": "JPEG",
    "image/png": "PNG",
    "image/webp": "WebP",
}


def get_extension(filename: str) -> str:
    """Lower-case extension of filename without the dot, or empty string."""
    return os.path.splitext(filename or "")[1].lower().lstrip(".")


def matches_signature(data: bytes, media_type: str) -> bool:
    """Return True if data starts with the known signature for media_type."""
    parts = MEDIA_TYPE_SIGNATURES.get(media_type)
    if not parts:
        return False
    return all(data[offset:offset + len(expected)] == expected for offset, expected in parts)


def validate(candidate: UploadCandidate, policy: UploadPolicy) -> ValidationVerdict:
    """Decide whether candidate may be stored under policy."""
    verdict = _check(candidate, policy)
    if isinstance(verdict, Rejected):
        logger.info(
            "Upload candidate rejected",
            extra={
                "original_filename": candidate.filename,
                "media_type": candidate.media_type,
                "size_bytes": candidate.size,
                "reason_code": verdict.code.value,
            },
        )
    return verdict


def _check(candidate: UploadCandidate, policy: UploadPolicy) -> ValidationVerdict:
    if candidate.size > policy.max_size_bytes:
        max_mb = policy.max_size_bytes / 1024 / 1024
        return Rejected(
            UploadErrorCode.FILE_TOO_LARGE,
            f"File exceeds maximum size of {max_mb:g}MB",
        )

    if candidate.media_type not in policy.allowed_media_types:
        return Rejected(
            UploadErrorCode.INVALID_MEDIA_TYPE,
            f"File type not allowed. Allowed: {', '.join(sorted(policy.allowed_media_types))}",
        )

    extension = get_extension(candidate.filename)
    if extension not in policy.allowed_extensions:
        return Rejected(
            UploadErrorCode.EXTENSION_MISMATCH,
            f"File extension not allowed. Allowed: {', '.join(sorted(policy.allowed_extensions))}",
        )

    consistent = MEDIA_TYPE_EXTENSIONS.get(candidate.media_type)
    if consistent is not None and extension not in consistent:
        return Rejected(
            UploadErrorCode.EXTENSION_MISMATCH,
            f"File extension .{extension} does not match declared type {candidate.media_type}",
        )

    if candidate.size == 0 or not candidate.data:
        return Rejected(UploadErrorCode.EMPTY_BUFFER, "File buffer is empty")

    if not matches_signature(candidate.data, candidate.media_type):
        label = MEDIA_TYPE_LABELS.get(candidate.media_type, candidate.media_type)
        return Rejected(
            UploadErrorCode.FILE_INTEGRITY_ERROR,
            f"File content doesn't match declared {label} type",
        )

    return Accepted(extension=extension, media_type=candidate.media_type)
