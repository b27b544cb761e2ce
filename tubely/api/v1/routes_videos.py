from __future__ import annotations

import os
from typing import BinaryIO, List, Optional

from fastapi import APIRouter, Depends, File, UploadFile, status

from tubely.api import deps
from tubely.core.config import Settings
from tubely.core.errors import AuthorizationError, NotFoundError
from tubely.ingest.models import UploadRequest

from . import schemas


router = APIRouter(prefix="/videos", tags=["videos"])

ERROR_RESPONSES = {
    400: {"model": schemas.ErrorResponse},
    401: {"model": schemas.ErrorResponse},
    403: {"model": schemas.ErrorResponse},
    404: {"model": schemas.ErrorResponse},
}


def _declared_size(upload: UploadFile) -> int:
    if upload.size is not None:
        return upload.size
    handle: BinaryIO = upload.file
    handle.seek(0, os.SEEK_END)
    size = handle.tell()
    handle.seek(0)
    return size


@router.post("", response_model=schemas.VideoResponse, status_code=status.HTTP_201_CREATED)
async def create_video(
    payload: schemas.VideoCreateRequest,
    store: deps.VideoStoreDependency,
    context: deps.AuthDependency,
) -> schemas.VideoResponse:
    video = await store.create(user_id=context.user_id, title=payload.title, description=payload.description)
    return schemas.VideoResponse.model_validate(video)


@router.get("", response_model=List[schemas.VideoResponse])
async def list_videos(
    store: deps.VideoStoreDependency,
    context: deps.AuthDependency,
) -> List[schemas.VideoResponse]:
    videos = await store.list_for_user(context.user_id)
    return [schemas.VideoResponse.model_validate(video) for video in videos]


@router.get("/{video_id}", response_model=schemas.VideoResponse, responses=ERROR_RESPONSES)
async def get_video(
    video_id: str,
    store: deps.VideoStoreDependency,
    context: deps.AuthDependency,
) -> schemas.VideoResponse:
    video = await store.get(video_id)
    if video is None:
        raise NotFoundError("Video not found", video_id=video_id)
    if video.user_id != context.user_id:
        raise AuthorizationError("User not authorized to view video", video_id=video_id)
    return schemas.VideoResponse.model_validate(video)


@router.post(
    "/{video_id}/upload",
    response_model=schemas.VideoResponse,
    responses={
        **ERROR_RESPONSES,
        413: {"model": schemas.ErrorResponse},
        415: {"model": schemas.ErrorResponse},
        422: {"model": schemas.ErrorResponse},
        500: {"model": schemas.ErrorResponse},
        502: {"model": schemas.ErrorResponse},
    },
)
async def upload_video(
    video_id: str,
    service: deps.IngestServiceDependency,
    context: deps.AuthDependency,
    video: Optional[UploadFile] = File(default=None),
) -> schemas.VideoResponse:
    request = UploadRequest(
        video_id=video_id,
        stream=video.file if video else None,
        media_type=video.content_type if video else None,
        declared_size=_declared_size(video) if video else None,
    )
    try:
        updated = await service.upload_video(user_id=context.user_id, upload=request)
    finally:
        if video:
            await video.close()
    return schemas.VideoResponse.model_validate(updated)


@router.post("/{video_id}/thumbnail", response_model=schemas.VideoResponse, responses=ERROR_RESPONSES)
async def upload_thumbnail(
    video_id: str,
    service: deps.ThumbnailServiceDependency,
    context: deps.AuthDependency,
    settings: Settings = Depends(deps.get_app_settings),
    thumbnail: Optional[UploadFile] = File(default=None),
) -> schemas.VideoResponse:
    data: Optional[bytes] = None
    media_type: Optional[str] = None
    if thumbnail is not None:
        # One byte past the ceiling is enough to reject oversize payloads.
        data = await thumbnail.read(settings.max_thumbnail_upload_bytes + 1)
        media_type = thumbnail.content_type
        await thumbnail.close()
    updated = await service.upload_thumbnail(
        user_id=context.user_id,
        video_id=video_id,
        data=data,
        media_type=media_type,
    )
    return schemas.VideoResponse.model_validate(updated)


__all__ = ["router"]
