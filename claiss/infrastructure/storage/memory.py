"""
In-memory storage for local development.

This mock enables running the full API flow without provisioning real
object storage. Objects live in a dictionary and URLs are mock URIs.
Not suitable for production.
"""

import logging
import secrets
import string
from datetime import datetime, timezone
from typing import Optional

from ...core.errors import StorageError
from ...core.models import (
    ListOptions,
    ListResult,
    StorageObject,
    UploadOptions,
    UploadResult,
    video_id_for_path,
    video_path,
)

logger = logging.getLogger(__name__)

_SUFFIX_ALPHABET = string.ascii_letters + string.digits


class MockStorageAdapter:
    """In-memory implementation of the storage contract."""

    def __init__(self) -> None:
        # {pathname: (bytes, content_type, uploaded_at)}
        self._objects: dict[str, tuple[bytes, str, datetime]] = {}
        logger.info("Initialized mock storage adapter (in-memory)")

    async def upload(
        self,
        path: str,
        data: bytes,
        options: Optional[UploadOptions] = None,
    ) -> UploadResult:
        options = options or UploadOptions()

        pathname = path
        if options.add_random_suffix:
            stem, dot, ext = path.rpartition(".")
            suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(21))
            pathname = f"{stem}-{suffix}.{ext}" if dot else f"{path}-{suffix}"

        self._objects[pathname] = (data, options.content_type, datetime.now(timezone.utc))

        logger.debug(
            "Stored object in mock storage",
            extra={"storage_path": pathname, "size_bytes": len(data)}
        )

        return UploadResult(
            url=self._url(pathname),
            pathname=pathname,
            video_id=video_id_for_path(path),
        )

    async def list(self, options: Optional[ListOptions] = None) -> ListResult:
        options = options or ListOptions()
        prefix = options.prefix or ""

        blobs = [
            StorageObject(
                url=self._url(pathname),
                pathname=pathname,
                size=len(data),
                uploaded_at=uploaded_at,
            )
            for pathname, (data, _, uploaded_at) in self._objects.items()
            if pathname.startswith(prefix)
        ]
        if options.limit:
            blobs = blobs[:options.limit]

        return ListResult(blobs=blobs)

    def get_public_url(self, video_id: str) -> str:
        return self._url(video_path(video_id))

    def get_provider_name(self) -> str:
        return "memory"

    def read(self, pathname: str) -> bytes:
        """Return stored bytes. Test helper; not part of the storage contract."""
        if pathname not in self._objects:
            raise StorageError(f"Object not found: {pathname}")
        return self._objects[pathname][0]

    def _url(self, pathname: str) -> str:
        return f"mock://storage/{pathname}"
