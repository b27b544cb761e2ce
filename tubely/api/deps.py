from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tubely.core.auth import AuthContext, get_auth_context
from tubely.core.config import Settings, get_settings
from tubely.core.storage import ObjectStorage
from tubely.db.videos import SqlVideoStore
from tubely.ingest.faststart import Remuxer
from tubely.ingest.probe import Prober
from tubely.ingest.publisher import Publisher
from tubely.ingest.staging import StagingManager
from tubely.services.ingest_service import VideoIngestService
from tubely.services.thumbnail_service import ThumbnailService, ThumbnailStore


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    session_factory = request.app.state.session_factory
    if not isinstance(session_factory, async_sessionmaker):  # pragma: no cover
        raise RuntimeError("session_factory_not_configured")
    async with session_factory() as session:
        yield session


def get_app_settings() -> Settings:
    return get_settings()


def get_object_storage(request: Request) -> ObjectStorage:
    return request.app.state.object_storage


def get_staging_manager(request: Request) -> StagingManager:
    return request.app.state.staging


def get_prober(request: Request) -> Prober:
    return request.app.state.prober


def get_remuxer(request: Request) -> Remuxer:
    return request.app.state.remuxer


def get_thumbnail_store(request: Request) -> ThumbnailStore:
    return request.app.state.thumbnail_store


def get_video_store(session: AsyncSession = Depends(get_session)) -> SqlVideoStore:
    return SqlVideoStore(session)


def get_ingest_service(
    store: SqlVideoStore = Depends(get_video_store),
    settings: Settings = Depends(get_app_settings),
    staging: StagingManager = Depends(get_staging_manager),
    remuxer: Remuxer = Depends(get_remuxer),
    prober: Prober = Depends(get_prober),
    storage: ObjectStorage = Depends(get_object_storage),
) -> VideoIngestService:
    return VideoIngestService(settings, store, staging, remuxer, prober, Publisher(storage))


def get_thumbnail_service(
    store: SqlVideoStore = Depends(get_video_store),
    settings: Settings = Depends(get_app_settings),
    thumbnails: ThumbnailStore = Depends(get_thumbnail_store),
) -> ThumbnailService:
    return ThumbnailService(settings, store, thumbnails)


AuthDependency = Annotated[AuthContext, Depends(get_auth_context)]
VideoStoreDependency = Annotated[SqlVideoStore, Depends(get_video_store)]
IngestServiceDependency = Annotated[VideoIngestService, Depends(get_ingest_service)]
ThumbnailServiceDependency = Annotated[ThumbnailService, Depends(get_thumbnail_service)]


__all__ = [
    "get_session",
    "get_app_settings",
    "get_object_storage",
    "get_staging_manager",
    "get_prober",
    "get_remuxer",
    "get_thumbnail_store",
    "get_video_store",
    "get_ingest_service",
    "get_thumbnail_service",
    "AuthDependency",
    "VideoStoreDependency",
    "IngestServiceDependency",
    "ThumbnailServiceDependency",
]
