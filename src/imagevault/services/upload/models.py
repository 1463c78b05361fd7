"""Value types passed between the upload components."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union


class UploadErrorCode(str, Enum):
    """Reason codes reported for a failed upload."""

    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    INVALID_MEDIA_TYPE = "INVALID_MEDIA_TYPE"
    EXTENSION_MISMATCH = "EXTENSION_MISMATCH"
    FILE_INTEGRITY_ERROR = "FILE_INTEGRITY_ERROR"
    EMPTY_BUFFER = "EMPTY_BUFFER"
    TOO_MANY_FILES = "TOO_MANY_FILES"
    NO_FILE_PROVIDED = "NO_FILE_PROVIDED"
    NO_FILES_PROVIDED = "NO_FILES_PROVIDED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


@dataclass
class UploadCandidate:
    """A caller-supplied file awaiting validation and upload."""

    data: bytes
    media_type: str
    filename: str
    size: int


@dataclass(frozen=True)
class UploadPolicy:
    """Limits a candidate must satisfy to be accepted."""

    max_size_bytes: int = 5 * 1024 * 1024
    allowed_media_types: frozenset[str] = frozenset({"image/jpeg", "image/png", "image/webp"})
    allowed_extensions: frozenset[str] = frozenset({"jpg", "jpeg", "png", "webp"})

    @classmethod
    def from_settings(cls, settings) -> "UploadPolicy":
        return cls(
            max_size_bytes=settings.max_upload_bytes,
            allowed_media_types=frozenset(settings.allowed_mime_types),
            allowed_extensions=frozenset(settings.allowed_extensions),
        )


@dataclass(frozen=True)
class Accepted:
    """Validation verdict for a candidate that may be stored."""

    extension: str
    media_type: str


@dataclass(frozen=True)
class Rejected:
    """Validation verdict for a candidate that must not reach storage."""

    code: UploadErrorCode
    message: str


ValidationVerdict = Union[Accepted, Rejected]


@dataclass
class UploadedObject:
    """A stored object plus a preview URL for immediate display.

    Only storage_name is meant to be persisted; signed_url expires.
    """

    storage_name: str
    signed_url: str
    filename: str
    size: int
    media_type: str


@dataclass
class UploadError:
    """Typed failure of a single upload."""

    code: UploadErrorCode
    message: str
    details: Optional[str] = None


UploadResult = Union[UploadedObject, UploadError]


@dataclass
class BatchItemResult:
    """Outcome of one file within a batch, in the same position as its input."""

    success: bool
    filename: str
    size: int
    media_type: str
    storage_name: Optional[str] = None
    signed_url: Optional[str] = None
    error: Optional[UploadError] = None

    @classmethod
    def from_result(cls, candidate: UploadCandidate, result: UploadResult) -> "BatchItemResult":
        if isinstance(result, UploadedObject):
            return cls(
                success=True,
                filename=result.filename,
                size=result.size,
                media_type=result.media_type,
                storage_name=result.storage_name,
                signed_url=result.signed_url,
            )
        return cls(
            success=False,
            filename=candidate.filename,
            size=candidate.size,
            media_type=candidate.media_type,
            error=result,
        )


@dataclass
class BatchError:
    """Systemic failure of a whole batch; no item was processed."""

    code: UploadErrorCode
    message: str
    details: Optional[str] = None


@dataclass(frozen=True)
class RetryPolicy:
    """Retry budget and fixed delay schedule for transient storage failures."""

    max_retries: int = 3
    delays_ms: tuple[int, ...] = field(default=(0, 100, 200, 400))

    def delay_before_retry(self, retry_number: int) -> float:
        """Delay in seconds before the given retry (1-based).

        The last entry repeats when the schedule is shorter than the budget.
        """
        if not self.delays_ms:
            return 0.0
        index = min(retry_number - 1, len(self.delays_ms) - 1)
        return self.delays_ms[index] / 1000

    @classmethod
    def from_settings(cls, settings) -> "RetryPolicy":
        return cls(
            max_retries=settings.UPLOAD_MAX_RETRIES,
            delays_ms=tuple(settings.retry_delays_ms),
        )
