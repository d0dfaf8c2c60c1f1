"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables with sensible defaults.
Using Pydantic's BaseSettings means we get:
- Type validation at startup (fail fast if config is wrong)
- Documentation of what's required vs optional
- Easy testing with different configurations

The storage provider is a closed set of values. Aliases are normalized
here and anything unrecognized is rejected when settings load, so the
storage selector never has to guess at call time.
"""

from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..core.retry import RetryPolicy


class StorageProvider(str, Enum):
    """Storage backends the selector knows how to build."""
    AUTO = "auto"
    VERCEL_BLOB = "vercel-blob"
    S3 = "s3"


_PROVIDER_ALIASES = {
    "": StorageProvider.AUTO,
    "auto": StorageProvider.AUTO,
    "vercel-blob": StorageProvider.VERCEL_BLOB,
    "vercel": StorageProvider.VERCEL_BLOB,
    "blob": StorageProvider.VERCEL_BLOB,
    "s3": StorageProvider.S3,
}


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    For lists (like cors_origins), use comma-separated values in env.
    """

    # API Configuration
    api_title: str = "Claiss API"
    api_version: str = "v1"
    api_secret_key: str = Field(
        default="",
        description="Bearer token required on /api routes. Empty disables authentication."
    )

    # Storage selection
    storage_provider: StorageProvider = Field(
        default=StorageProvider.AUTO,
        description="One of auto, vercel-blob, s3. Unset means auto."
    )
    storage_mock_mode: bool = Field(
        default=False,
        description="Use in-memory storage instead of a real provider. Enables local dev without credentials."
    )

    # Vercel Blob Configuration
    blob_read_write_token: str = Field(
        default="",
        description="Vercel Blob read/write token"
    )
    blob_api_url: str = Field(
        default="https://blob.vercel-storage.com",
        description="Vercel Blob API base URL"
    )

    # S3-compatible Storage Configuration
    s3_endpoint: Optional[str] = Field(
        default=None,
        description="Endpoint for S3-compatible services. Unset means AWS S3."
    )
    s3_region: str = Field(
        default="us-east-1",
        description="S3 region"
    )
    s3_access_key_id: str = Field(
        default="",
        description="S3 access key ID"
    )
    s3_secret_access_key: str = Field(
        default="",
        description="S3 secret access key"
    )
    s3_bucket: str = Field(
        default="",
        description="S3 bucket for rendered videos"
    )
    s3_public_url_base: Optional[str] = Field(
        default=None,
        description="Public URL prefix (CDN or custom domain) used instead of the bucket URL"
    )
    s3_force_path_style: bool = Field(
        default=True,
        description="Path-style URLs (endpoint/bucket/key) instead of virtual-hosted style"
    )

    # Remote compute Configuration
    use_remote_compilation: bool = Field(
        default=True,
        description="Render on the remote compute service before trying locally"
    )
    remote_fallback_to_local: bool = Field(
        default=True,
        description="Fall back to the local renderer when remote compilation fails"
    )
    remote_compute_url: str = Field(
        default="",
        description="Base URL of the remote compute service"
    )
    remote_compute_token: str = Field(
        default="",
        description="Bearer token for the remote compute service"
    )
    remote_quality: str = Field(
        default="low_quality",
        description="Quality tier requested from the remote renderer"
    )
    remote_timeout_seconds: float = Field(
        default=300.0,
        description="Timeout for a single remote compile or merge call"
    )

    # Local renderer Configuration
    manim_command: str = Field(
        default="manim",
        description="Path to the manim executable"
    )
    local_work_dir: str = Field(
        default="/tmp/manim-current",
        description="Working directory for local renders"
    )
    local_timeout_seconds: float = Field(
        default=120.0,
        description="Wall-clock limit for a local render"
    )
    local_fallback_path: str = Field(
        default="/tmp/latest.mp4",
        description="Where a video is written when every storage provider fails"
    )

    # Retry behavior for network-facing storage calls
    retry_max_attempts: int = Field(
        default=5,
        ge=1,
        description="Attempts per storage call, including the first"
    )
    retry_initial_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Delay before the second attempt. Doubles for each later attempt."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins. Use * for development only."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @field_validator("storage_provider", mode="before")
    @classmethod
    def _normalize_storage_provider(cls, value):
        if value is None:
            return StorageProvider.AUTO
        if isinstance(value, StorageProvider):
            return value
        key = str(value).strip().lower()
        if key not in _PROVIDER_ALIASES:
            allowed = ", ".join(p.value for p in StorageProvider)
            raise ValueError(f"Unknown storage provider '{value}'. Use one of: {allowed}")
        return _PROVIDER_ALIASES[key]

    @property
    def has_s3_credentials(self) -> bool:
        return bool(self.s3_access_key_id and self.s3_secret_access_key and self.s3_bucket)

    @property
    def has_blob_credentials(self) -> bool:
        return bool(self.blob_read_write_token)

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.retry_max_attempts,
            initial_delay=self.retry_initial_delay_seconds,
        )

    def validate_required_fields(self) -> list[str]:
        """
        Report configuration that is missing for the selected modes.

        Returns a list of environment variable names. This is separate
        from Pydantic validation because requirements depend on which
        providers and compute tiers are enabled.
        """
        missing = []

        if not self.storage_mock_mode:
            if self.storage_provider is StorageProvider.S3 and not self.has_s3_credentials:
                if not self.s3_access_key_id:
                    missing.append("S3_ACCESS_KEY_ID")
                if not self.s3_secret_access_key:
                    missing.append("S3_SECRET_ACCESS_KEY")
                if not self.s3_bucket:
                    missing.append("S3_BUCKET")
            if self.storage_provider is StorageProvider.VERCEL_BLOB and not self.has_blob_credentials:
                missing.append("BLOB_READ_WRITE_TOKEN")
            if (
                self.storage_provider is StorageProvider.AUTO
                and not self.has_s3_credentials
                and not self.has_blob_credentials
            ):
                missing.append("BLOB_READ_WRITE_TOKEN or S3_ACCESS_KEY_ID/S3_SECRET_ACCESS_KEY/S3_BUCKET")

        if self.use_remote_compilation and not self.remote_compute_url:
            missing.append("REMOTE_COMPUTE_URL")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings load once per process. For tests, call
    get_settings.cache_clear() to reset.
    """
    return Settings()
