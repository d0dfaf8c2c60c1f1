"""
Storage selection.

StorageSelector resolves settings to one adapter and keeps it for the
life of the selector. The application creates a single selector at
startup and keeps it on app.state; tests build their own and call
reset() to start over.

Population is not locked. Two concurrent first calls may both build an
adapter; adapters hold no state beyond configuration, so whichever is
published first is kept and the other is dropped.
"""

import logging
from typing import Callable, Optional

from ...config.settings import Settings, StorageProvider
from .base import StorageAdapter
from .fallback import FallbackStorageAdapter
from .memory import MockStorageAdapter
from .s3 import S3Config, S3StorageAdapter
from .vercel_blob import VercelBlobAdapter

logger = logging.getLogger(__name__)

AdapterFactory = Callable[[Settings], StorageAdapter]


def build_s3_adapter(settings: Settings) -> S3StorageAdapter:
    config = S3Config(
        access_key_id=settings.s3_access_key_id,
        secret_access_key=settings.s3_secret_access_key,
        bucket=settings.s3_bucket,
        region=settings.s3_region,
        endpoint_url=settings.s3_endpoint or None,
        public_url_base=settings.s3_public_url_base or None,
        force_path_style=settings.s3_force_path_style,
    )
    return S3StorageAdapter(config, retry_policy=settings.retry_policy)


def build_blob_adapter(settings: Settings) -> VercelBlobAdapter:
    return VercelBlobAdapter(
        token=settings.blob_read_write_token,
        api_url=settings.blob_api_url,
    )


class StorageSelector:
    """
    Chooses and memoizes one storage adapter.

    Resolution:
    - mock mode: in-memory adapter
    - vercel-blob / s3: that provider
    - auto: blob as primary with S3 as secondary when both have
      credentials, otherwise whichever has credentials, otherwise blob
    - construction failure in an explicit mode: one last-resort attempt
      at the blob adapter; if that fails too the error propagates
    """

    def __init__(
        self,
        settings: Settings,
        s3_factory: AdapterFactory = build_s3_adapter,
        blob_factory: AdapterFactory = build_blob_adapter,
    ) -> None:
        self._settings = settings
        self._s3_factory = s3_factory
        self._blob_factory = blob_factory
        self._adapter: Optional[StorageAdapter] = None

    def get(self) -> StorageAdapter:
        """Return the cached adapter, resolving it on first use."""
        if self._adapter is not None:
            return self._adapter

        adapter = self._resolve()
        if self._adapter is None:
            self._adapter = adapter
            logger.info(
                "Storage adapter selected",
                extra={"provider": adapter.get_provider_name()}
            )
        return self._adapter

    def reset(self) -> None:
        """Forget the cached adapter. The next get() resolves again."""
        self._adapter = None

    def _resolve(self) -> StorageAdapter:
        settings = self._settings

        if settings.storage_mock_mode:
            return MockStorageAdapter()

        provider = settings.storage_provider
        logger.info("Initializing storage provider", extra={"provider": provider.value})

        if provider is StorageProvider.AUTO:
            return self._resolve_auto()

        try:
            if provider is StorageProvider.S3:
                return self._s3_factory(settings)
            return self._blob_factory(settings)
        except Exception as e:
            logger.error(
                "Storage provider construction failed, falling back to Vercel Blob",
                extra={"provider": provider.value, "error": str(e)}
            )
            return self._blob_factory(settings)

    def _resolve_auto(self) -> StorageAdapter:
        settings = self._settings
        has_s3 = settings.has_s3_credentials
        has_blob = settings.has_blob_credentials

        if has_blob and has_s3:
            return FallbackStorageAdapter(
                primary=self._blob_factory(settings),
                secondary=self._s3_factory(settings),
            )
        if has_s3:
            return self._s3_factory(settings)
        if not has_blob:
            logger.warning(
                "No storage credentials found, defaulting to Vercel Blob",
                extra={"provider": "vercel-blob"}
            )
        return self._blob_factory(settings)
