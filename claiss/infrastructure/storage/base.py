"""
Storage contract shared by every provider adapter.

Adapters are stateless apart from their configuration, which is what
lets the selector cache one instance for the whole process.
"""

from typing import Optional, Protocol

from ...core.models import ListOptions, ListResult, UploadOptions, UploadResult


class StorageAdapter(Protocol):
    """
    Protocol for video object storage.

    Implementations: S3StorageAdapter, VercelBlobAdapter,
    MockStorageAdapter and FallbackStorageAdapter (which composes two
    others behind this same interface).
    """

    async def upload(
        self,
        path: str,
        data: bytes,
        options: Optional[UploadOptions] = None,
    ) -> UploadResult:
        """Write bytes under path (convention: videos/<id>.mp4)."""
        ...

    async def list(self, options: Optional[ListOptions] = None) -> ListResult:
        """List objects whose path starts with options.prefix."""
        ...

    def get_public_url(self, video_id: str) -> str:
        """Build a retrievable URL for a video without any network call."""
        ...

    def get_provider_name(self) -> str:
        """Fixed identifier used in logs and health output."""
        ...
