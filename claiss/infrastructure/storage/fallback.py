"""
Auto-fallback storage: a primary adapter backed by a secondary one.

FallbackStorageAdapter implements the same StorageAdapter contract as
the adapters it wraps, so callers cannot tell it apart from a single
provider. Each call falls back independently; nothing is remembered
between calls.
"""

import logging
from typing import Optional

from ...core.models import ListOptions, ListResult, UploadOptions, UploadResult
from .base import StorageAdapter

logger = logging.getLogger(__name__)


class FallbackStorageAdapter:
    """
    Try the primary adapter, then the secondary on any exception.

    If both fail the secondary's exception propagates and the primary's
    is only logged, so callers see exactly one error.
    """

    def __init__(self, primary: StorageAdapter, secondary: StorageAdapter) -> None:
        self._primary = primary
        self._secondary = secondary

        logger.info(
            "Initialized fallback storage adapter",
            extra={
                "primary": primary.get_provider_name(),
                "secondary": secondary.get_provider_name(),
            }
        )

    @property
    def primary(self) -> StorageAdapter:
        return self._primary

    @property
    def secondary(self) -> StorageAdapter:
        return self._secondary

    async def upload(
        self,
        path: str,
        data: bytes,
        options: Optional[UploadOptions] = None,
    ) -> UploadResult:
        try:
            return await self._primary.upload(path, data, options)
        except Exception as e:
            self._log_fallback("upload", e)

        return await self._secondary.upload(path, data, options)

    async def list(self, options: Optional[ListOptions] = None) -> ListResult:
        try:
            return await self._primary.list(options)
        except Exception as e:
            self._log_fallback("list", e)

        return await self._secondary.list(options)

    def get_public_url(self, video_id: str) -> str:
        # Always the primary's URL, even while the primary is failing.
        return self._primary.get_public_url(video_id)

    def get_provider_name(self) -> str:
        return (
            f"auto ({self._primary.get_provider_name()} -> "
            f"{self._secondary.get_provider_name()})"
        )

    def _log_fallback(self, operation: str, error: Exception) -> None:
        logger.warning(
            "Primary storage failed, falling back",
            extra={
                "operation": operation,
                "primary": self._primary.get_provider_name(),
                "secondary": self._secondary.get_provider_name(),
                "error": str(error),
            }
        )
