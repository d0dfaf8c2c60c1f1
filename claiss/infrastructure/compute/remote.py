"""
HTTP client for the remote compute service.

The service renders Manim scenes and concatenates rendered scenes into
one video. Only its request/response contract matters here:

    POST {base}/compile  {code, class_name, quality}
        -> {success, video_bytes, logs, duration, error}
    POST {base}/merge    {video_urls, add_transitions, transition_duration}
        -> {success, video_bytes, duration, error}

video_bytes arrives either as base64 text or as a JSON array of byte
values. A response with success=false is returned as-is; transport
errors and non-2xx statuses raise RemoteComputeError.
"""

import base64
import logging
from typing import Optional, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...core.errors import RemoteComputeError

logger = logging.getLogger(__name__)


def _decode_video_bytes(value: Union[None, str, bytes, list[int]]) -> Optional[bytes]:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value
    if isinstance(value, str):
        return base64.b64decode(value)
    return bytes(value)


class CompileRequest(BaseModel):
    code: str
    class_name: str = "Scene"
    quality: str = "low_quality"


class MergeRequest(BaseModel):
    video_urls: list[str] = Field(min_length=1)
    add_transitions: bool = False
    transition_duration: float = 0.5


class RemoteCompileResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    success: bool
    video_bytes: Optional[bytes] = None
    logs: Optional[str] = None
    duration: Optional[float] = None
    error: Optional[str] = None

    @field_validator("video_bytes", mode="before")
    @classmethod
    def _decode(cls, value):
        return _decode_video_bytes(value)


class RemoteMergeResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    success: bool
    video_bytes: Optional[bytes] = None
    duration: Optional[float] = None
    error: Optional[str] = None

    @field_validator("video_bytes", mode="before")
    @classmethod
    def _decode(cls, value):
        return _decode_video_bytes(value)


class RemoteComputeClient:
    """Async client for the remote render/merge service."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout_seconds: float = 300.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Args:
            base_url: Base URL of the compute service
            token: Optional bearer token
            timeout_seconds: Timeout per call; renders can take minutes
            transport: Optional httpx transport (tests pass httpx.MockTransport)
        """
        if not base_url:
            raise ValueError("Remote compute base URL is required")
        self.base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = timeout_seconds
        self._transport = transport

    async def compile(
        self,
        code: str,
        class_name: str = "Scene",
        quality: str = "low_quality",
    ) -> RemoteCompileResponse:
        """Render one scene remotely."""
        request_body = CompileRequest(code=code, class_name=class_name, quality=quality)

        logger.info(
            "Requesting remote compilation",
            extra={"class_name": class_name, "quality": quality}
        )

        data = await self._post("/compile", request_body.model_dump())
        result = RemoteCompileResponse.model_validate(data)

        logger.info(
            "Remote compilation finished",
            extra={
                "success": result.success,
                "duration": result.duration,
                "size_bytes": len(result.video_bytes or b""),
            }
        )
        return result

    async def merge_videos(
        self,
        video_urls: list[str],
        add_transitions: bool = False,
        transition_duration: float = 0.5,
    ) -> RemoteMergeResponse:
        """Concatenate already rendered videos, in the given order."""
        request_body = MergeRequest(
            video_urls=video_urls,
            add_transitions=add_transitions,
            transition_duration=transition_duration,
        )

        logger.info(
            "Requesting remote merge",
            extra={"video_count": len(video_urls), "add_transitions": add_transitions}
        )

        data = await self._post("/merge", request_body.model_dump())
        return RemoteMergeResponse.model_validate(data)

    async def _post(self, endpoint: str, body: dict) -> dict:
        url = f"{self.base_url}{endpoint}"
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
                response = await client.post(url, json=body, headers=headers)
                response.raise_for_status()
                return response.json()

        except httpx.HTTPStatusError as e:
            logger.error(
                "Remote compute returned error status",
                extra={"status": e.response.status_code, "body": e.response.text[:500]}
            )
            raise RemoteComputeError(
                f"Remote compute error: {e.response.status_code} - {e.response.text}"
            ) from e
        except httpx.TimeoutException as e:
            logger.error("Remote compute request timed out", extra={"url": url})
            raise RemoteComputeError("Remote compute request timed out") from e
        except httpx.RequestError as e:
            logger.error("Remote compute request failed", extra={"error": str(e)})
            raise RemoteComputeError(f"Failed to connect to remote compute: {e}") from e
        except ValueError as e:
            raise RemoteComputeError(f"Remote compute returned invalid JSON: {e}") from e
