"""
Vercel Blob storage adapter.

Talks to the Vercel Blob REST API with httpx. The read/write token may
be injected by the hosting platform after startup, so construction
never fails; a missing token surfaces as a StorageError on each call.

Uploads are a single attempt. Blob URLs carry a store-specific host and
an optional random suffix, so get_public_url cannot build one without a
listing round trip and points at this service's /api/videos route instead.
"""

import logging
from datetime import datetime
from typing import Optional

import httpx
from pydantic import BaseModel, ConfigDict

from ...core.errors import StorageError
from ...core.models import (
    ListOptions,
    ListResult,
    StorageObject,
    UploadOptions,
    UploadResult,
    video_id_for_path,
)

logger = logging.getLogger(__name__)

BLOB_API_VERSION = "7"
DEFAULT_BLOB_API_URL = "https://blob.vercel-storage.com"


class _PutBlobResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    url: str
    pathname: str


class _ListedBlob(BaseModel):
    model_config = ConfigDict(extra="ignore")

    url: str
    pathname: str
    size: int
    uploadedAt: datetime


class _ListBlobsResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    blobs: list[_ListedBlob] = []
    cursor: Optional[str] = None
    hasMore: bool = False


class VercelBlobAdapter:
    """Storage adapter for Vercel Blob."""

    def __init__(
        self,
        token: str = "",
        api_url: str = DEFAULT_BLOB_API_URL,
        timeout_seconds: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Args:
            token: BLOB_READ_WRITE_TOKEN
            api_url: Blob API base URL
            timeout_seconds: Per-request timeout
            transport: Optional httpx transport (tests pass httpx.MockTransport)
        """
        self._token = token
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout_seconds
        self._transport = transport

    async def upload(
        self,
        path: str,
        data: bytes,
        options: Optional[UploadOptions] = None,
    ) -> UploadResult:
        options = options or UploadOptions()

        logger.info(
            "Uploading to Vercel Blob",
            extra={"storage_path": path, "size_bytes": len(data)}
        )

        headers = {
            **self._auth_headers(),
            "x-content-type": options.content_type,
            "x-add-random-suffix": "1" if options.add_random_suffix else "0",
            "x-access": options.access.value,
        }

        response = await self._request("PUT", f"{self._api_url}/{path}", content=data, headers=headers)
        blob = _PutBlobResponse.model_validate(response.json())

        logger.info(
            "Vercel Blob upload successful",
            extra={"storage_path": blob.pathname, "url": blob.url}
        )

        return UploadResult(
            url=blob.url,
            pathname=blob.pathname,
            video_id=video_id_for_path(path),
        )

    async def list(self, options: Optional[ListOptions] = None) -> ListResult:
        options = options or ListOptions()

        params = {}
        if options.prefix:
            params["prefix"] = options.prefix
        if options.limit:
            params["limit"] = str(options.limit)

        response = await self._request(
            "GET", self._api_url, params=params, headers=self._auth_headers()
        )
        listing = _ListBlobsResponse.model_validate(response.json())

        blobs = [
            StorageObject(
                url=blob.url,
                pathname=blob.pathname,
                size=blob.size,
                uploaded_at=blob.uploadedAt,
            )
            for blob in listing.blobs
        ]

        logger.debug(
            "Listed Vercel blobs",
            extra={"prefix": options.prefix, "count": len(blobs)}
        )

        return ListResult(blobs=blobs)

    def get_public_url(self, video_id: str) -> str:
        return f"/api/videos?id={video_id}"

    def get_provider_name(self) -> str:
        return "vercel-blob"

    def _auth_headers(self) -> dict[str, str]:
        if not self._token:
            raise StorageError(
                "Vercel Blob token not configured. Set BLOB_READ_WRITE_TOKEN."
            )
        return {
            "authorization": f"Bearer {self._token}",
            "x-api-version": BLOB_API_VERSION,
        }

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
                response = await client.request(method, url, **kwargs)
                response.raise_for_status()
                return response
        except httpx.HTTPStatusError as e:
            logger.error(
                "Vercel Blob returned error status",
                extra={"status": e.response.status_code, "body": e.response.text[:500]}
            )
            raise StorageError(
                f"Vercel Blob error: {e.response.status_code} - {e.response.text}"
            ) from e
        except httpx.RequestError as e:
            logger.error("Vercel Blob request failed", extra={"error": str(e)})
            raise StorageError(f"Failed to reach Vercel Blob: {e}") from e
