"""Main application entrypoint for ImageVault."""

from typing import Optional

from fastapi import FastAPI

from imagevault.api.v1 import routes_health
from imagevault.api.v1.routes_media import delivery_router, router as media_router
from imagevault.api.v1.routes_upload import router as upload_router
from imagevault.core.config import settings
from imagevault.core.logging import setup_logging
from imagevault.core.middleware import HTTPErrorLoggingMiddleware
from imagevault.services.upload.service import UploadService


def create_app(upload_service: Optional[UploadService] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        upload_service: Prebuilt service; built from settings on the first
            request that needs it when omitted

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    setup_logging()

    app = FastAPI(
        title=settings.SERVICE_NAME,
        version=settings.SERVICE_VERSION,
    )
    app.state.upload_service = upload_service

    app.add_middleware(HTTPErrorLoggingMiddleware)

    app.include_router(routes_health.router, tags=["health"])
    app.include_router(upload_router)
    app.include_router(media_router)
    app.include_router(delivery_router)

    return app


# Export app instance for ASGI servers
app = create_app()
