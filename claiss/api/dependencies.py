"""
FastAPI dependency injection.

Dependencies provide settings, the storage adapter and the orchestrators
to route handlers. Routes never build their own collaborators, so tests
swap any of them through app.dependency_overrides.

The storage selector is created once in the application factory and
kept on app.state; every request sees the same adapter until the
selector is reset.
"""

import logging
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..config.settings import Settings, get_settings
from ..core.compiler import VideoCompiler
from ..core.errors import AuthenticationError
from ..core.merger import VideoMerger
from ..infrastructure.compute.local import ManimRenderer
from ..infrastructure.compute.remote import RemoteComputeClient
from ..infrastructure.storage.local_disk import LocalVideoStore
from ..infrastructure.storage.selector import StorageSelector

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

async def verify_api_key(
    settings: Annotated[Settings, Depends(get_settings)],
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
) -> Optional[str]:
    """
    Validate the bearer token on /api routes.

    With no API_SECRET_KEY configured, authentication is disabled and
    every request is let through (development mode).
    """
    if not settings.api_secret_key:
        logger.warning("API_SECRET_KEY not configured - authentication disabled")
        return None

    if credentials is None or credentials.scheme.lower() != "bearer":
        logger.warning("Request missing bearer token")
        raise AuthenticationError(
            "Missing or invalid Authorization header. Use: Authorization: Bearer YOUR_API_KEY"
        )

    if credentials.credentials != settings.api_secret_key:
        logger.warning(
            "Invalid API key attempt",
            extra={"key_prefix": credentials.credentials[:4]}
        )
        raise AuthenticationError("Invalid API key")

    return credentials.credentials


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

def get_storage_selector(request: Request) -> StorageSelector:
    """The process-wide selector created by the application factory."""
    return request.app.state.storage_selector


def get_local_store(
    settings: Annotated[Settings, Depends(get_settings)],
) -> LocalVideoStore:
    return LocalVideoStore(settings.local_fallback_path)


# ---------------------------------------------------------------------------
# Compute
# ---------------------------------------------------------------------------

def get_remote_client(
    settings: Annotated[Settings, Depends(get_settings)],
) -> Optional[RemoteComputeClient]:
    """Remote compute client, or None when no service URL is configured."""
    if not settings.remote_compute_url:
        return None
    return RemoteComputeClient(
        base_url=settings.remote_compute_url,
        token=settings.remote_compute_token or None,
        timeout_seconds=settings.remote_timeout_seconds,
    )


def get_video_compiler(
    settings: Annotated[Settings, Depends(get_settings)],
    selector: Annotated[StorageSelector, Depends(get_storage_selector)],
    local_store: Annotated[LocalVideoStore, Depends(get_local_store)],
    remote: Annotated[Optional[RemoteComputeClient], Depends(get_remote_client)],
) -> VideoCompiler:
    """
    Provide a VideoCompiler wired to the configured tiers.

    The compiler is stateless, so we create a new instance per request.
    """
    renderer = ManimRenderer(
        manim_command=settings.manim_command,
        work_dir=settings.local_work_dir,
        timeout_seconds=settings.local_timeout_seconds,
    )
    return VideoCompiler(
        storage=selector,
        local_store=local_store,
        local_renderer=renderer,
        remote_renderer=remote,
        use_remote=settings.use_remote_compilation,
        fallback_to_local=settings.remote_fallback_to_local,
        remote_quality=settings.remote_quality,
    )


def get_video_merger(
    selector: Annotated[StorageSelector, Depends(get_storage_selector)],
    remote: Annotated[Optional[RemoteComputeClient], Depends(get_remote_client)],
) -> VideoMerger:
    if remote is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Remote compute service not configured. Set REMOTE_COMPUTE_URL.",
        )
    return VideoMerger(storage=selector, remote=remote)


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
Authenticated = Annotated[Optional[str], Depends(verify_api_key)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
StorageSelectorDep = Annotated[StorageSelector, Depends(get_storage_selector)]
LocalStoreDep = Annotated[LocalVideoStore, Depends(get_local_store)]
VideoCompilerDep = Annotated[VideoCompiler, Depends(get_video_compiler)]
VideoMergerDep = Annotated[VideoMerger, Depends(get_video_merger)]
