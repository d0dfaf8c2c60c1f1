"""
Video retrieval endpoint.

Looks a video up in the active storage adapter and redirects to it.
When storage has nothing (or cannot be reached) the local fallback file
is streamed instead, so videos saved during a storage outage stay
viewable on the host that rendered them.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Query, status
from fastapi.responses import FileResponse, PlainTextResponse, RedirectResponse, Response

from ...core.models import VIDEO_CONTENT_TYPE, VIDEO_PREFIX, ListOptions, StorageObject, video_path
from ...infrastructure.storage.selector import StorageSelector
from ..dependencies import Authenticated, LocalStoreDep, StorageSelectorDep

logger = logging.getLogger(__name__)

router = APIRouter()

LATEST_LOOKUP_LIMIT = 10

_LOCAL_HEADERS = {
    "Cache-Control": "no-cache",
    "Accept-Ranges": "bytes",
}


async def find_stored_video(
    selector: StorageSelector,
    video_id: Optional[str],
) -> Optional[StorageObject]:
    """
    The stored object for video_id, or the newest video when no id is given.

    Storage failures are logged and reported as "not found" so callers
    can move on to the local file.
    """
    if video_id:
        options = ListOptions(prefix=video_path(video_id), limit=1)
    else:
        options = ListOptions(prefix=VIDEO_PREFIX, limit=LATEST_LOOKUP_LIMIT)

    try:
        listing = await selector.get().list(options)
    except Exception as e:
        logger.warning(
            "Storage lookup failed, trying local file",
            extra={"video_id": video_id, "error": str(e)}
        )
        return None

    if video_id:
        return listing.blobs[0] if listing.blobs else None
    return listing.latest()


def _not_found() -> PlainTextResponse:
    return PlainTextResponse("Video not found", status_code=status.HTTP_404_NOT_FOUND)


@router.get(
    "",
    summary="Fetch a video",
    description="Redirects to the stored video, or streams the local fallback file.",
    responses={
        307: {"description": "Redirect to the stored video"},
        200: {"description": "Local fallback video", "content": {VIDEO_CONTENT_TYPE: {}}},
        404: {"description": "No stored video and no local file"},
    },
)
async def get_video(
    selector: StorageSelectorDep,
    local_store: LocalStoreDep,
    _auth: Authenticated,
    video_id: Optional[str] = Query(default=None, alias="id", description="Video id. Latest video when omitted."),
):
    stored = await find_stored_video(selector, video_id)
    if stored is not None:
        logger.info("Redirecting to stored video", extra={"video_id": video_id, "url": stored.url})
        return RedirectResponse(stored.url)

    if local_store.exists():
        logger.info("Serving local fallback video", extra={"path": str(local_store.path)})
        return FileResponse(
            local_store.path,
            media_type=VIDEO_CONTENT_TYPE,
            headers=_LOCAL_HEADERS,
        )

    logger.info("Video not found", extra={"video_id": video_id})
    return _not_found()


@router.head(
    "",
    summary="Check whether a video exists",
    responses={404: {"description": "No stored video and no local file"}},
)
async def head_video(
    selector: StorageSelectorDep,
    local_store: LocalStoreDep,
    _auth: Authenticated,
    video_id: Optional[str] = Query(default=None, alias="id"),
):
    stored = await find_stored_video(selector, video_id)
    if stored is not None:
        return Response(
            status_code=status.HTTP_200_OK,
            headers={
                "Content-Type": VIDEO_CONTENT_TYPE,
                "Content-Length": str(stored.size),
                **_LOCAL_HEADERS,
            },
        )

    size = local_store.size()
    if size is not None:
        return Response(
            status_code=status.HTTP_200_OK,
            headers={
                "Content-Type": VIDEO_CONTENT_TYPE,
                "Content-Length": str(size),
                **_LOCAL_HEADERS,
            },
        )

    return Response(status_code=status.HTTP_404_NOT_FOUND)
