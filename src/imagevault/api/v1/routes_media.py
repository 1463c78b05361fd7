"""Signed URL and local media delivery routes."""

import logging
import mimetypes
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import FileResponse

from imagevault.api.dependencies import get_upload_service
from imagevault.models.upload import SignedUrlData, SignedUrlResponse
from imagevault.services.upload.service import UploadService
from imagevault.services.upload.signing import ExpiryPreset, utcnow
from imagevault.storage.local import LocalStorageBackend

router = APIRouter(prefix="/api/v1/media", tags=["media"])
delivery_router = APIRouter(tags=["media"])
logger = logging.getLogger(__name__)


@router.get("/signed-url", response_model=SignedUrlResponse)
async def get_signed_url(
    name: str = Query(..., min_length=1, description="Storage name or previously issued URL"),
    expiry_minutes: Optional[int] = Query(None, ge=1, le=7 * 24 * 60),
    preset: Optional[ExpiryPreset] = Query(None, description="Named window, ignored when expiry_minutes is set"),
    service: UploadService = Depends(get_upload_service),
) -> SignedUrlResponse:
    """Issue a fresh signed URL. URLs on foreign hosts come back unchanged."""
    minutes = service.signer.resolve_expiry_minutes(expiry_minutes, preset)
    url = service.rewriter.rewrite_url(name, minutes)

    expires_at = None
    if service.signer.extract_storage_name(name) is not None:
        expires_at = utcnow() + timedelta(minutes=minutes)

    return SignedUrlResponse(data=SignedUrlData(source=name, url=url, expires_at=expires_at))


@delivery_router.get("/media/{storage_name}")
async def get_media(
    storage_name: str,
    request: Request,
    service: UploadService = Depends(get_upload_service),
) -> FileResponse:
    """Serve a locally stored object to holders of a valid signed URL."""
    backend = service.backend
    if not isinstance(backend, LocalStorageBackend):
        raise HTTPException(status_code=404, detail="Not found")

    if not backend.verify_signature(storage_name, request.query_params, utcnow()):
        logger.warning("Rejected media request with invalid signature", extra={"storage_name": storage_name})
        raise HTTPException(status_code=403, detail="Invalid or expired signature")

    try:
        path = backend.open_object(storage_name)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="Not found")

    media_type, _ = mimetypes.guess_type(storage_name)
    return FileResponse(path, media_type=media_type or "application/octet-stream")
