"""Upload API data models."""

from datetime import datetime
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ErrorDetail(BaseModel):
    """Error block of a failed response or batch item."""

    code: str
    message: str
    details: Optional[str] = None


class UploadedImageData(BaseModel):
    """A stored image. Persist storage_name; signed_url is for preview only."""

    storage_name: str
    signed_url: str
    filename: str
    size: int
    media_type: str


class BatchItemResponse(BaseModel):
    """Per-file outcome of a batch upload."""

    success: bool
    filename: str
    size: int
    media_type: str
    storage_name: Optional[str] = None
    signed_url: Optional[str] = None
    error: Optional[ErrorDetail] = None


class SuccessResponse(BaseModel, Generic[T]):
    """Envelope for successful responses."""

    success: bool = True
    data: T


class ErrorResponse(BaseModel):
    """Envelope for failed responses."""

    success: bool = False
    error: ErrorDetail


class UploadImageResponse(SuccessResponse[UploadedImageData]):
    pass


class UploadImagesResponse(SuccessResponse[List[BatchItemResponse]]):
    pass


class SignedUrlData(BaseModel):
    """A freshly signed URL for a stored name or URL."""

    source: str
    url: str
    expires_at: Optional[datetime] = None


class SignedUrlResponse(SuccessResponse[SignedUrlData]):
    pass
