"""
S3-compatible object storage adapter.

Works with AWS S3 and S3-compatible services (Cloudflare R2,
DigitalOcean Spaces, MinIO, Backblaze B2) through boto3.

boto3 is synchronous, so every call is pushed onto a worker thread
with asyncio.to_thread and wrapped in with_retry. Public URLs are
built from configuration alone.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ...core.errors import ConfigurationError, TransientProviderError
from ...core.models import (
    Access,
    ListOptions,
    ListResult,
    StorageObject,
    UploadOptions,
    UploadResult,
    video_id_for_path,
    video_path,
)
from ...core.retry import DEFAULT_RETRY_POLICY, RetryPolicy, with_retry

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 1000


@dataclass
class S3Config:
    """Configuration for an S3-compatible bucket."""
    access_key_id: str
    secret_access_key: str
    bucket: str
    region: str = "us-east-1"
    endpoint_url: Optional[str] = None  # None means AWS S3
    public_url_base: Optional[str] = None
    force_path_style: bool = True


class S3StorageAdapter:
    """
    Storage adapter for S3-compatible object stores.

    Uploads and listings are retried with exponential backoff. Missing
    credentials or bucket fail at construction with ConfigurationError,
    which is not retried.
    """

    def __init__(
        self,
        config: S3Config,
        retry_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    ) -> None:
        if not config.access_key_id or not config.secret_access_key:
            raise ConfigurationError(
                "S3 credentials not configured. Set S3_ACCESS_KEY_ID and S3_SECRET_ACCESS_KEY."
            )
        if not config.bucket:
            raise ConfigurationError("S3 bucket not configured. Set S3_BUCKET.")

        self._config = config
        self._retry_policy = retry_policy

        boto_config = Config(
            signature_version="s3v4",
            s3={"addressing_style": "path" if config.force_path_style else "virtual"},
        )

        client_kwargs = {
            "aws_access_key_id": config.access_key_id,
            "aws_secret_access_key": config.secret_access_key,
            "region_name": config.region,
            "config": boto_config,
        }
        if config.endpoint_url:
            client_kwargs["endpoint_url"] = config.endpoint_url

        self._s3_client = boto3.client("s3", **client_kwargs)

        logger.info(
            "Initialized S3 storage adapter",
            extra={
                "bucket": config.bucket,
                "region": config.region,
                "endpoint": config.endpoint_url or "AWS S3 default",
                "force_path_style": config.force_path_style,
            }
        )

    async def upload(
        self,
        path: str,
        data: bytes,
        options: Optional[UploadOptions] = None,
    ) -> UploadResult:
        """
        Upload bytes with retry.

        add_random_suffix is ignored: S3 keys are written exactly as given.
        """
        options = options or UploadOptions()
        video_id = video_id_for_path(path)

        params = {
            "Bucket": self._config.bucket,
            "Key": path,
            "Body": data,
            "ContentType": options.content_type,
        }
        if options.access is Access.PUBLIC:
            params["ACL"] = "public-read"

        async def put() -> None:
            try:
                await asyncio.to_thread(self._s3_client.put_object, **params)
            except (BotoCoreError, ClientError) as e:
                raise TransientProviderError(f"S3 upload failed for {path}: {e}") from e

        logger.info(
            "Uploading to S3",
            extra={"storage_path": path, "size_bytes": len(data)}
        )

        await with_retry(put, f"Upload {path}", policy=self._retry_policy)

        url = self._object_url(path)
        logger.info("S3 upload successful", extra={"storage_path": path, "url": url})

        return UploadResult(url=url, pathname=path, video_id=video_id)

    async def list(self, options: Optional[ListOptions] = None) -> ListResult:
        """List objects under a prefix with retry. Provider order, not recency order."""
        options = options or ListOptions()

        params = {
            "Bucket": self._config.bucket,
            "MaxKeys": options.limit or DEFAULT_LIST_LIMIT,
        }
        if options.prefix:
            params["Prefix"] = options.prefix

        async def list_objects() -> dict:
            try:
                return await asyncio.to_thread(self._s3_client.list_objects_v2, **params)
            except (BotoCoreError, ClientError) as e:
                raise TransientProviderError(
                    f"S3 list failed for prefix {options.prefix or 'all'}: {e}"
                ) from e

        response = await with_retry(
            list_objects,
            f"List objects (prefix: {options.prefix or 'all'})",
            policy=self._retry_policy,
        )

        blobs = [
            StorageObject(
                url=self._object_url(obj["Key"]),
                pathname=obj["Key"],
                size=obj.get("Size", 0),
                uploaded_at=obj["LastModified"],
            )
            for obj in response.get("Contents", [])
        ]

        logger.debug("Listed S3 objects", extra={"prefix": options.prefix, "count": len(blobs)})

        return ListResult(blobs=blobs)

    def get_public_url(self, video_id: str) -> str:
        return self._object_url(video_path(video_id))

    def get_provider_name(self) -> str:
        return "s3"

    def _object_url(self, key: str) -> str:
        """
        Build the URL for a key.

        Order of precedence: public_url_base, then the custom endpoint,
        then AWS. Path-style vs virtual-hosted style follows
        force_path_style.
        """
        config = self._config

        if config.public_url_base:
            return f"{config.public_url_base.rstrip('/')}/{key}"

        if config.endpoint_url:
            endpoint = config.endpoint_url.rstrip("/")
            if config.force_path_style:
                return f"{endpoint}/{config.bucket}/{key}"
            host = endpoint.split("://", 1)[-1]
            return f"https://{config.bucket}.{host}/{key}"

        if config.force_path_style:
            return f"https://s3.{config.region}.amazonaws.com/{config.bucket}/{key}"
        return f"https://{config.bucket}.s3.{config.region}.amazonaws.com/{key}"
