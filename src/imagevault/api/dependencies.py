"""Shared FastAPI dependencies."""

import re
from typing import Optional

from fastapi import Header, HTTPException, Request

from imagevault.core.config import settings
from imagevault.services.upload.service import UploadService, build_upload_service

# Owner ids become the first segment of storage names
OWNER_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


def get_upload_service(request: Request) -> UploadService:
    """Return the upload service, building it from settings on first use.

    Raises:
        StorageConfigurationError: If the configured backend cannot be built
    """
    service = getattr(request.app.state, "upload_service", None)
    if service is None:
        service = build_upload_service(settings)
        request.app.state.upload_service = service
    return service


def get_owner_id(x_owner_id: Optional[str] = Header(None)) -> str:
    """Identity of the uploading user, set by the authentication layer in front of us."""
    if not x_owner_id or not x_owner_id.strip():
        raise HTTPException(status_code=401, detail="Authentication required")

    owner_id = x_owner_id.strip()
    if not OWNER_ID_PATTERN.match(owner_id):
        raise HTTPException(status_code=400, detail="Invalid owner id")
    return owner_id
