"""
Manim compilation endpoint.

Accepts Manim source (bare or inside a markdown code fence), renders it
through the remote-then-local compute chain and stores the video
through the upload-then-disk storage chain.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Response, status
from pydantic import Field

from ...core.models import CompilationResult
from ...core.source import detect_scene_class, extract_manim_code
from ..dependencies import Authenticated, VideoCompilerDep
from ..schemas import CamelModel

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class CompileRequest(CamelModel):
    """Request to render one Manim scene."""
    code: str = Field(
        description="Manim source, optionally wrapped in a ```python fence",
        min_length=1,
    )
    class_name: Optional[str] = Field(
        default=None,
        description="Scene class to render. Detected from the source when omitted.",
    )


class CompileResponse(CamelModel):
    success: bool
    compilation_type: str
    video_path: Optional[str] = None
    video_url: Optional[str] = None
    video_id: Optional[str] = None
    error: Optional[str] = None
    logs: Optional[str] = None
    duration: Optional[float] = None

    @classmethod
    def from_result(cls, result: CompilationResult) -> "CompileResponse":
        return cls(
            success=result.success,
            compilation_type=result.compilation_type.value,
            video_path=result.video_path,
            video_url=result.video_url,
            video_id=result.video_id,
            error=result.error,
            logs=result.logs,
            duration=result.duration,
        )


def resolve_source(request: CompileRequest) -> tuple[str, str]:
    """Unwrap fenced code and pick the scene class."""
    code = request.code
    if "```" in code:
        extracted = extract_manim_code(code)
        if extracted is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No Manim code block found in request",
            )
        code, detected = extracted
    else:
        detected = detect_scene_class(code)

    return code, request.class_name or detected


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=CompileResponse,
    status_code=status.HTTP_200_OK,
    summary="Compile a Manim scene",
    responses={500: {"description": "Compilation or storage failed", "model": CompileResponse}},
)
async def compile_scene(
    request: CompileRequest,
    response: Response,
    compiler: VideoCompilerDep,
    _auth: Authenticated,
) -> CompileResponse:
    code, class_name = resolve_source(request)

    logger.info("Compile request received", extra={"class_name": class_name})

    result = await compiler.compile(code, class_name)

    if not result.success:
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    return CompileResponse.from_result(result)
