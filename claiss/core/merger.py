"""
Merging compiled scenes into one video.

Scenes are validated first: every scene must be compiled with a video,
and the orders must be exactly 0..n-1. Validation problems raise
ValidationError immediately and are never retried. Concatenation is
delegated to the remote compute service; the result is uploaded through
the storage adapter, with no local-disk tier.
"""

import logging
import time
from typing import Callable, Optional, Protocol, Sequence

from .compiler import StorageSource
from .errors import ValidationError
from .models import (
    VIDEO_CONTENT_TYPE,
    Access,
    MergeResult,
    Scene,
    UploadOptions,
    video_path,
)

logger = logging.getLogger(__name__)

DEFAULT_TRANSITION_DURATION = 0.5


class RemoteMergeOutcome(Protocol):
    success: bool
    video_bytes: Optional[bytes]
    duration: Optional[float]
    error: Optional[str]


class RemoteMerger(Protocol):
    async def merge_videos(
        self,
        video_urls: list[str],
        add_transitions: bool = False,
        transition_duration: float = DEFAULT_TRANSITION_DURATION,
    ) -> RemoteMergeOutcome:
        ...


def validate_scenes(scenes: Sequence[Scene]) -> list[str]:
    """
    Return a list of human-readable problems; empty means mergeable.

    A scene counts as missing its video when its status is not
    compiled, whatever its video_url says.
    """
    issues = []

    missing = [scene for scene in scenes if not scene.is_compiled]
    if missing:
        issues.append(f"{len(missing)} scene(s) missing compiled videos")

    orders = sorted(scene.order for scene in scenes)
    if orders != list(range(len(scenes))):
        issues.append("Scene order has gaps or duplicates")

    return issues


def ordered_video_urls(scenes: Sequence[Scene]) -> list[str]:
    """Video URLs of compiled scenes, sorted by scene order."""
    return [
        scene.video_url
        for scene in sorted(scenes, key=lambda s: s.order)
        if scene.is_compiled
    ]


def default_merged_video_id() -> str:
    return f"final-{int(time.time() * 1000)}"


class VideoMerger:
    """Validates scenes, merges them remotely and stores the result."""

    def __init__(
        self,
        storage: StorageSource,
        remote: RemoteMerger,
        id_factory: Callable[[], str] = default_merged_video_id,
    ) -> None:
        self._storage = storage
        self._remote = remote
        self._id_factory = id_factory

    async def merge(
        self,
        scenes: Sequence[Scene],
        video_id: Optional[str] = None,
        add_transitions: bool = False,
        transition_duration: float = DEFAULT_TRANSITION_DURATION,
    ) -> MergeResult:
        """
        Merge scenes in order.

        Raises:
            ValidationError: scenes are not mergeable (itemized in .issues)

        Remote and storage failures come back as a failed MergeResult.
        """
        started = time.monotonic()

        logger.info("Validating scenes", extra={"scene_count": len(scenes)})
        issues = validate_scenes(scenes)
        if issues:
            raise ValidationError(issues)

        video_urls = ordered_video_urls(scenes)
        if not video_urls:
            raise ValidationError(["No compiled scenes to merge"])

        logger.info(
            "Merging scenes",
            extra={"scene_count": len(video_urls), "add_transitions": add_transitions}
        )

        try:
            merged = await self._remote.merge_videos(
                video_urls,
                add_transitions=add_transitions,
                transition_duration=transition_duration,
            )
        except Exception as e:
            logger.error("Remote merge raised", extra={"error": str(e)})
            return self._failure(started, len(video_urls), f"Merge failed: {e}")

        if not merged.success or not merged.video_bytes:
            logger.error("Remote merge failed", extra={"error": merged.error})
            return self._failure(started, len(video_urls), merged.error or "Merge failed")

        merged_id = video_id or self._id_factory()
        path = video_path(merged_id)

        try:
            storage = self._storage.get()
            upload = await storage.upload(
                path,
                merged.video_bytes,
                UploadOptions(
                    access=Access.PUBLIC,
                    content_type=VIDEO_CONTENT_TYPE,
                    add_random_suffix=True,
                ),
            )
        except Exception as e:
            logger.error(
                "Failed to upload merged video",
                extra={"storage_path": path, "error": str(e)}
            )
            return self._failure(started, len(video_urls), f"Failed to store merged video: {e}")

        elapsed_ms = self._elapsed_ms(started)
        logger.info(
            "Merge completed",
            extra={"elapsed_ms": elapsed_ms, "url": upload.url, "video_id": upload.video_id}
        )

        return MergeResult(
            success=True,
            scene_count=len(video_urls),
            elapsed_ms=elapsed_ms,
            video_url=upload.url,
            video_id=upload.video_id,
            merge_time=merged.duration,
        )

    def _failure(self, started: float, scene_count: int, error: str) -> MergeResult:
        return MergeResult(
            success=False,
            scene_count=scene_count,
            elapsed_ms=self._elapsed_ms(started),
            error=error,
        )

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.monotonic() - started) * 1000)
