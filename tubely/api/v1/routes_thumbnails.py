from __future__ import annotations

from fastapi import APIRouter, Response

from tubely.api import deps


router = APIRouter(prefix="/thumbnails", tags=["thumbnails"])


@router.get("/{video_id}", response_class=Response, summary="Serve a stored thumbnail")
async def get_thumbnail(video_id: str, service: deps.ThumbnailServiceDependency) -> Response:
    thumbnail = await service.get_thumbnail(video_id)
    return Response(
        content=thumbnail.data,
        media_type=thumbnail.media_type,
        headers={"Cache-Control": "no-store"},
    )


__all__ = ["router"]
