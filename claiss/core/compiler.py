"""
Compilation orchestration.

VideoCompiler turns Manim source into a stored video through two
fallback chains:

    compute:  remote compute service -> local renderer
    storage:  storage provider upload -> local fallback file

Every request ends in exactly one CompilationResult. compilation_type
reports which compute tier produced the bytes; which storage tier kept
them shows up in video_url and video_path. A storage failure after a
successful render never triggers a second render.
"""

import logging
import time
from pathlib import Path
from typing import Callable, Optional, Protocol

from .errors import CompilationError, FallbackExhaustedError
from .models import (
    VIDEO_CONTENT_TYPE,
    Access,
    CompilationResult,
    ComputeTier,
    UploadOptions,
    UploadResult,
    generate_video_id,
    video_path,
)
from .source import DEFAULT_SCENE_CLASS

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class RemoteCompileOutcome(Protocol):
    success: bool
    video_bytes: Optional[bytes]
    logs: Optional[str]
    duration: Optional[float]
    error: Optional[str]


class RemoteRenderer(Protocol):
    """The remote compute service, as far as compilation is concerned."""

    async def compile(
        self,
        code: str,
        class_name: str = "Scene",
        quality: str = "low_quality",
    ) -> RemoteCompileOutcome:
        ...


class LocalRenderOutcome(Protocol):
    video_bytes: bytes
    logs: str
    duration_seconds: float


class LocalRenderer(Protocol):
    """A renderer running on this host. Raises CompilationError on failure."""

    async def render(self, code: str, class_name: str = "Scene") -> LocalRenderOutcome:
        ...


class Uploader(Protocol):
    async def upload(
        self,
        path: str,
        data: bytes,
        options: Optional[UploadOptions] = None,
    ) -> UploadResult:
        ...


class StorageSource(Protocol):
    """Hands out the process's storage adapter (see StorageSelector)."""

    def get(self) -> Uploader:
        ...


class LocalFileStore(Protocol):
    """Last-resort local file. save() raises OSError when the disk fails too."""

    async def save(self, data: bytes) -> Path:
        ...


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

def local_video_url(video_id: str) -> str:
    """URL served by this API for a video kept on local disk."""
    return f"/api/videos?id={video_id}"


class VideoCompiler:
    """
    Drives remote-then-local rendering and upload-then-disk persistence.

    Args:
        storage: Source of the storage adapter, resolved lazily per request
        local_store: Local fallback file for when the upload fails
        local_renderer: Renderer used when remote is disabled or fails
        remote_renderer: Remote compute client; None means not configured
        use_remote: Try the remote service first
        fallback_to_local: Render locally when the remote tier fails
        remote_quality: Quality tier sent to the remote service
        id_factory: Produces video ids (injectable for tests)
    """

    def __init__(
        self,
        storage: StorageSource,
        local_store: LocalFileStore,
        local_renderer: LocalRenderer,
        remote_renderer: Optional[RemoteRenderer] = None,
        use_remote: bool = True,
        fallback_to_local: bool = True,
        remote_quality: str = "low_quality",
        id_factory: Callable[[], str] = generate_video_id,
    ) -> None:
        self._storage = storage
        self._local_store = local_store
        self._local = local_renderer
        self._remote = remote_renderer
        self._use_remote = use_remote
        self._fallback_to_local = fallback_to_local
        self._remote_quality = remote_quality
        self._id_factory = id_factory

    async def compile(self, code: str, class_name: str = DEFAULT_SCENE_CLASS) -> CompilationResult:
        """Render code and persist the video. Never raises for render or storage failures."""
        logger.info(
            "Starting compilation",
            extra={
                "class_name": class_name,
                "use_remote": self._use_remote,
                "fallback_to_local": self._fallback_to_local,
            }
        )

        remote_error: Optional[CompilationError] = None

        if self._use_remote:
            try:
                video_bytes, logs, duration = await self._render_remote(code, class_name)
            except CompilationError as e:
                remote_error = e
                logger.warning("Remote compilation failed", extra={"error": str(e)})

                if not self._fallback_to_local:
                    return CompilationResult(
                        success=False,
                        compilation_type=ComputeTier.REMOTE,
                        error=str(e),
                        logs=e.logs,
                        duration=e.duration,
                    )
            else:
                return await self._persist(video_bytes, ComputeTier.REMOTE, logs, duration)

            logger.info("Falling back to local compilation")

        return await self._compile_local(code, class_name, remote_error)

    async def _render_remote(
        self,
        code: str,
        class_name: str,
    ) -> tuple[bytes, Optional[str], Optional[float]]:
        if self._remote is None:
            raise CompilationError(
                "Remote compute service not configured",
                tier=ComputeTier.REMOTE,
            )

        try:
            response = await self._remote.compile(code, class_name, self._remote_quality)
        except Exception as e:
            raise CompilationError(
                f"Remote compilation failed: {e}",
                tier=ComputeTier.REMOTE,
            ) from e

        if not response.success or not response.video_bytes:
            raise CompilationError(
                response.error or "Remote compilation failed",
                tier=ComputeTier.REMOTE,
                logs=response.logs,
                duration=response.duration,
            )

        return response.video_bytes, response.logs, response.duration

    async def _compile_local(
        self,
        code: str,
        class_name: str,
        remote_error: Optional[CompilationError],
    ) -> CompilationResult:
        started = time.monotonic()

        try:
            output = await self._local.render(code, class_name)
        except Exception as e:
            if not isinstance(e, CompilationError):
                logger.exception("Local renderer raised unexpectedly")
            logs = e.logs if isinstance(e, CompilationError) else None

            error = str(e)
            if remote_error is not None:
                error = str(FallbackExhaustedError(
                    "Compilation failed on every tier",
                    remote_error,
                    e,
                    primary_label="remote",
                    secondary_label="local",
                ))

            logger.error("Local compilation failed", extra={"error": error})
            return CompilationResult(
                success=False,
                compilation_type=ComputeTier.LOCAL,
                error=error,
                logs=logs,
                duration=time.monotonic() - started,
            )

        return await self._persist(
            output.video_bytes,
            ComputeTier.LOCAL,
            output.logs,
            output.duration_seconds,
        )

    async def _persist(
        self,
        video_bytes: bytes,
        tier: ComputeTier,
        logs: Optional[str],
        duration: Optional[float],
    ) -> CompilationResult:
        """Upload through the storage adapter, or keep the video on local disk."""
        video_id = self._id_factory()
        path = video_path(video_id)

        logger.info(
            "Uploading video to storage",
            extra={"storage_path": path, "size_bytes": len(video_bytes), "tier": tier.value}
        )

        try:
            storage = self._storage.get()
            upload = await storage.upload(
                path,
                video_bytes,
                UploadOptions(access=Access.PUBLIC, content_type=VIDEO_CONTENT_TYPE),
            )
        except Exception as storage_error:
            logger.error(
                "Failed to upload to storage, falling back to local disk",
                extra={"storage_path": path, "error": str(storage_error)}
            )
            return await self._save_locally(
                video_bytes, video_id, tier, logs, duration, storage_error
            )

        logger.info(
            "Video uploaded",
            extra={"url": upload.url, "video_id": upload.video_id, "tier": tier.value}
        )

        return CompilationResult(
            success=True,
            compilation_type=tier,
            video_path=upload.pathname,
            video_url=upload.url,
            video_id=upload.video_id,
            logs=logs,
            duration=duration,
        )

    async def _save_locally(
        self,
        video_bytes: bytes,
        video_id: str,
        tier: ComputeTier,
        logs: Optional[str],
        duration: Optional[float],
        storage_error: Exception,
    ) -> CompilationResult:
        try:
            saved_path = await self._local_store.save(video_bytes)
        except OSError as disk_error:
            exhausted = FallbackExhaustedError(
                "Failed to save video",
                storage_error,
                disk_error,
                primary_label="storage",
                secondary_label="local disk",
            )
            logger.error("Local disk fallback failed", extra={"error": str(exhausted)})
            return CompilationResult(
                success=False,
                compilation_type=tier,
                error=str(exhausted),
                logs=logs,
                duration=duration,
            )

        logger.info(
            "Video saved to local disk as fallback",
            extra={"path": str(saved_path), "video_id": video_id}
        )

        return CompilationResult(
            success=True,
            compilation_type=tier,
            video_path=str(saved_path),
            video_url=local_video_url(video_id),
            video_id=video_id,
            logs=logs,
            duration=duration,
        )
