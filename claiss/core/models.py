"""
Domain models for video storage, compilation and merging.

These models have no dependencies on external frameworks, databases,
or APIs. Storage adapters, renderers and HTTP routes translate to and
from them.
"""

import re
import secrets
import string
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

VIDEO_PREFIX = "videos/"
VIDEO_EXTENSION = "mp4"
VIDEO_CONTENT_TYPE = "video/mp4"

_VIDEO_ID_PATTERN = re.compile(r"videos/([^.]+)")
_ID_ALPHABET = string.ascii_lowercase + string.digits
_BASE36_DIGITS = string.digits + string.ascii_lowercase


class Access(str, Enum):
    """Visibility flag passed through to the storage backend."""
    PUBLIC = "public"
    PRIVATE = "private"


class ComputeTier(str, Enum):
    """Which renderer produced a video."""
    REMOTE = "remote"
    LOCAL = "local"


class SceneStatus(str, Enum):
    """Known scene states. Clients may send others; only COMPILED is mergeable."""
    PENDING = "pending"
    COMPILING = "compiling"
    COMPILED = "compiled"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Video identifiers
# ---------------------------------------------------------------------------

def _base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def generate_video_id() -> str:
    """
    Generate a short, URL-safe video identifier.

    Format: vid_<base36 millisecond timestamp>_<6 random chars>
    """
    timestamp = _base36(int(time.time() * 1000))
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(6))
    return f"vid_{timestamp}_{suffix}"


def extract_video_id(path: str) -> Optional[str]:
    """Pull <id> out of a videos/<id>.<ext> path, or None."""
    match = _VIDEO_ID_PATTERN.search(path)
    return match.group(1) if match else None


def video_id_for_path(path: str) -> str:
    """Derive the id from the path convention, or mint a fresh one."""
    return extract_video_id(path) or generate_video_id()


def video_path(video_id: str) -> str:
    """Storage path for a video id: videos/<id>.mp4"""
    return f"{VIDEO_PREFIX}{video_id}.{VIDEO_EXTENSION}"


# ---------------------------------------------------------------------------
# Storage values
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StorageObject:
    """
    One persisted artifact as reported by a provider listing.

    A snapshot, re-read on every list call.
    """
    url: str
    pathname: str
    size: int
    uploaded_at: datetime

    def __post_init__(self) -> None:
        if self.size < 0:
            raise ValueError("size cannot be negative")


@dataclass(frozen=True)
class UploadOptions:
    access: Access = Access.PUBLIC
    content_type: str = VIDEO_CONTENT_TYPE
    add_random_suffix: bool = False


@dataclass(frozen=True)
class UploadResult:
    url: str
    pathname: str
    video_id: str


@dataclass(frozen=True)
class ListOptions:
    prefix: Optional[str] = None
    limit: Optional[int] = None


@dataclass(frozen=True)
class ListResult:
    """
    Objects returned by a provider listing.

    Provider order is not recency order. Use latest() when the newest
    upload matters.
    """
    blobs: list[StorageObject] = field(default_factory=list)

    def latest(self) -> Optional[StorageObject]:
        if not self.blobs:
            return None
        return max(self.blobs, key=lambda blob: blob.uploaded_at)


# ---------------------------------------------------------------------------
# Compilation and merging
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CompilationResult:
    """
    Outcome of one compilation request.

    compilation_type names the compute tier that produced (or failed to
    produce) the bytes, whichever storage tier ended up holding them.
    """
    success: bool
    compilation_type: ComputeTier
    video_path: Optional[str] = None
    video_url: Optional[str] = None
    video_id: Optional[str] = None
    error: Optional[str] = None
    logs: Optional[str] = None
    duration: Optional[float] = None


@dataclass(frozen=True)
class Scene:
    """
    A compiled (or not yet compiled) piece of a longer video.

    Supplied by the client. The merger reads scenes and never changes them.
    """
    order: int
    status: str
    video_url: Optional[str] = None
    id: Optional[str] = None

    @property
    def is_compiled(self) -> bool:
        return self.status == SceneStatus.COMPILED and bool(self.video_url)


@dataclass(frozen=True)
class MergeResult:
    success: bool
    scene_count: int
    elapsed_ms: int
    video_url: Optional[str] = None
    video_id: Optional[str] = None
    merge_time: Optional[float] = None
    error: Optional[str] = None
