"""
Health check endpoint.

Reports which storage adapter the process resolved, which providers
have credentials, and how compilation is configured. It never calls a
provider, so it stays fast and works while storage is down.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ... import __version__
from ..dependencies import SettingsDep, StorageSelectorDep

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    """
    Health check response.

    Standardized format makes it easy for monitoring tools to parse.
    """
    status: str
    timestamp: str
    response_time_ms: int
    version: str
    dependencies: dict[str, Any] = {}


@router.get(
    "",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Service health",
    description="Returns storage and compute configuration. Does not call external services.",
    responses={500: {"description": "Storage adapter could not be resolved"}},
)
async def health_check(settings: SettingsDep, selector: StorageSelectorDep):
    started = time.monotonic()
    timestamp = datetime.now(timezone.utc).isoformat()

    try:
        provider = selector.get().get_provider_name()
    except Exception as e:
        logger.error("Health check failed", extra={"error": str(e)})
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "status": "unhealthy",
                "timestamp": timestamp,
                "response_time_ms": int((time.monotonic() - started) * 1000),
                "error": str(e),
            },
        )

    return HealthResponse(
        status="healthy",
        timestamp=timestamp,
        response_time_ms=int((time.monotonic() - started) * 1000),
        version=__version__,
        dependencies={
            "storage": {
                "provider": provider,
                "configured": settings.storage_provider.value,
                "mock_mode": settings.storage_mock_mode,
                "available": {
                    "s3": settings.has_s3_credentials,
                    "vercel_blob": settings.has_blob_credentials,
                },
            },
            "remote_compute": {
                "configured": bool(settings.remote_compute_url),
                "enabled": settings.use_remote_compilation,
                "fallback_to_local": settings.remote_fallback_to_local,
            },
            "authentication": {
                "enabled": bool(settings.api_secret_key),
            },
        },
    )
