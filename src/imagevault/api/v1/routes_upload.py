"""Upload API routes."""

import logging
from dataclasses import asdict
from typing import List, Optional

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import JSONResponse

from imagevault.api.dependencies import get_owner_id, get_upload_service
from imagevault.models.upload import (
    BatchItemResponse,
    ErrorDetail,
    ErrorResponse,
    UploadedImageData,
    UploadImageResponse,
    UploadImagesResponse,
)
from imagevault.services.upload.models import (
    BatchError,
    BatchItemResult,
    UploadCandidate,
    UploadError,
    UploadErrorCode,
)
from imagevault.services.upload.service import UploadService

router = APIRouter(prefix="/api/v1/upload", tags=["upload"])
logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    UploadErrorCode.FILE_TOO_LARGE: 413,
    UploadErrorCode.INTERNAL_ERROR: 500,
}


def error_response(code: UploadErrorCode, message: str, details: Optional[str] = None) -> JSONResponse:
    """Build the failure envelope with the status code for code."""
    body = ErrorResponse(error=ErrorDetail(code=code.value, message=message, details=details))
    return JSONResponse(
        status_code=ERROR_STATUS_CODES.get(code, 400),
        content=body.model_dump(exclude_none=True),
    )


async def to_candidate(file: UploadFile, max_size_bytes: int, read: bool = True) -> UploadCandidate:
    """Build a candidate from an uploaded file.

    The size comes from the spooled file, so bytes are only pulled into
    memory when the upload can actually be stored.
    """
    file.file.seek(0, 2)  # Seek to end
    size = file.file.tell()
    file.file.seek(0)

    data = b""
    if read and size <= max_size_bytes:
        data = await file.read()

    return UploadCandidate(
        data=data,
        media_type=file.content_type or "application/octet-stream",
        filename=file.filename or "unnamed",
        size=size,
    )


def to_batch_item(result: BatchItemResult) -> BatchItemResponse:
    error = None
    if result.error is not None:
        error = ErrorDetail(
            code=result.error.code.value,
            message=result.error.message,
            details=result.error.details,
        )
    return BatchItemResponse(
        success=result.success,
        filename=result.filename,
        size=result.size,
        media_type=result.media_type,
        storage_name=result.storage_name,
        signed_url=result.signed_url,
        error=error,
    )


@router.post("/image", response_model=UploadImageResponse)
async def upload_image(
    image: Optional[UploadFile] = File(None),
    owner_id: str = Depends(get_owner_id),
    service: UploadService = Depends(get_upload_service),
):
    """Upload a single image (multipart field "image")."""
    if image is None:
        return error_response(
            UploadErrorCode.NO_FILE_PROVIDED,
            "No file provided in request",
            "Please upload a file using the 'image' field",
        )

    candidate = await to_candidate(image, service.policy.max_size_bytes)
    result = await service.upload_image(candidate, owner_id)

    if isinstance(result, UploadError):
        return error_response(result.code, result.message, result.details)

    return UploadImageResponse(data=UploadedImageData(**asdict(result)))


@router.post("/images", response_model=UploadImagesResponse)
async def upload_images(
    images: Optional[List[UploadFile]] = File(None),
    owner_id: str = Depends(get_owner_id),
    service: UploadService = Depends(get_upload_service),
):
    """Upload a batch of images (multipart field "images").

    Responds 200 with a per-file breakdown even when some or all files
    failed; only a missing or oversized batch fails the request.
    """
    if not images:
        return error_response(
            UploadErrorCode.NO_FILES_PROVIDED,
            "No files provided in request",
            "Please upload files using the 'images' field",
        )

    # An oversized batch is rejected whole, so none of its files are read
    within_limit = len(images) <= service.batch.max_batch_size
    candidates = [
        await to_candidate(file, service.policy.max_size_bytes, read=within_limit) for file in images
    ]
    result = await service.upload_images(candidates, owner_id)

    if isinstance(result, BatchError):
        return error_response(result.code, result.message, result.details)

    return UploadImagesResponse(data=[to_batch_item(item) for item in result])
