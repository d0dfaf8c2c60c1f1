"""
Video merge endpoint.

The client sends its scene list (the server keeps no scene state);
compiled scenes are concatenated in order by the remote compute
service and the result is stored.
"""

import logging
from typing import Optional

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import Field

from ...core.errors import ValidationError
from ...core.merger import DEFAULT_TRANSITION_DURATION
from ...core.models import Scene
from ..dependencies import Authenticated, VideoMergerDep
from ..schemas import CamelModel

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class SceneItem(CamelModel):
    """One scene as the client tracks it. Unknown fields are ignored."""

    id: Optional[str] = None
    order: int = Field(ge=0)
    status: str
    video_url: Optional[str] = None

    def to_scene(self) -> Scene:
        return Scene(order=self.order, status=self.status, video_url=self.video_url, id=self.id)


class MergeOptions(CamelModel):
    add_transitions: bool = False
    transition_duration: float = Field(default=DEFAULT_TRANSITION_DURATION, ge=0)


class MergeRequest(CamelModel):
    video_id: Optional[str] = Field(
        default=None,
        description="Id for the merged video. Generated when omitted.",
    )
    scenes: list[SceneItem]
    options: MergeOptions = Field(default_factory=MergeOptions)


class MergeResponse(CamelModel):
    success: bool
    video_url: Optional[str] = None
    video_id: Optional[str] = None
    duration: str = Field(description="Elapsed time, e.g. '1520ms'")
    merge_time: Optional[float] = None
    scene_count: int
    error: Optional[str] = None


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=MergeResponse,
    status_code=status.HTTP_200_OK,
    summary="Merge compiled scenes",
    responses={
        400: {"description": "Scene validation failed"},
        500: {"description": "Merge or storage failed", "model": MergeResponse},
    },
)
async def merge_scenes(
    request: MergeRequest,
    merger: VideoMergerDep,
    _auth: Authenticated,
):
    scenes = [item.to_scene() for item in request.scenes]

    logger.info("Merge request received", extra={"scene_count": len(scenes)})

    try:
        result = await merger.merge(
            scenes,
            video_id=request.video_id,
            add_transitions=request.options.add_transitions,
            transition_duration=request.options.transition_duration,
        )
    except ValidationError as e:
        logger.info("Scene validation failed", extra={"issues": e.issues})
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "success": False,
                "error": "Scene validation failed",
                "issues": e.issues,
            },
        )

    body = MergeResponse(
        success=result.success,
        video_url=result.video_url,
        video_id=result.video_id,
        duration=f"{result.elapsed_ms}ms",
        merge_time=result.merge_time,
        scene_count=result.scene_count,
        error=result.error,
    )

    if not result.success:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=body.model_dump(by_alias=True, exclude_none=True),
        )

    return body


@router.get(
    "",
    summary="Describe the merge endpoint",
)
async def describe_merge(_auth: Authenticated) -> dict:
    return {
        "name": "Video Merge API",
        "description": "Merge compiled scene videos into final video",
        "endpoints": {
            "POST": {
                "description": "Merge scenes",
                "body": {
                    "videoId": "optional - video ID for the merged video",
                    "scenes": "required - array of scene objects with order, status and videoUrl",
                    "options": {
                        "addTransitions": "boolean",
                        "transitionDuration": "number (seconds)",
                    },
                },
            },
        },
        "status": "active",
        "note": "Client must send the scenes array - the server keeps no scene state",
    }
