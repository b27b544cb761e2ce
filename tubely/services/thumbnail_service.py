from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from tubely.core.config import Settings
from tubely.core.errors import AuthorizationError, NotFoundError, PayloadTooLarge, UnsupportedMediaType, ValidationError
from tubely.core.logging import get_logger
from tubely.db.models import Video
from tubely.db.videos import SqlVideoStore


@dataclass(frozen=True, slots=True)
class StoredThumbnail:
    data: bytes
    media_type: str


class ThumbnailStore(ABC):
    @abstractmethod
    def get(self, video_id: str) -> Optional[StoredThumbnail]: ...

    @abstractmethod
    def put(self, video_id: str, thumbnail: StoredThumbnail) -> None: ...


class InMemoryThumbnailStore(ThumbnailStore):
    """Process-local thumbnail bytes; one instance per application."""

    def __init__(self) -> None:
        self._items: dict[str, StoredThumbnail] = {}
        self._lock = threading.Lock()

    def get(self, video_id: str) -> Optional[StoredThumbnail]:
        with self._lock:
            return self._items.get(video_id)

    def put(self, video_id: str, thumbnail: StoredThumbnail) -> None:
        with self._lock:
            self._items[video_id] = thumbnail


class ThumbnailService:
    def __init__(self, settings: Settings, store: SqlVideoStore, thumbnails: ThumbnailStore):
        self.settings = settings
        self.store = store
        self.thumbnails = thumbnails
        self.logger = get_logger(component="thumbnail_service")

    async def upload_thumbnail(
        self,
        *,
        user_id: str,
        video_id: str,
        data: Optional[bytes],
        media_type: Optional[str],
    ) -> Video:
        video = await self.store.get(video_id)
        if video is None:
            raise NotFoundError("Couldn't find video", video_id=video_id)
        if video.user_id != user_id:
            raise AuthorizationError("User not authorized to update thumbnail", video_id=video_id)

        if data is None:
            raise ValidationError("Invalid thumbnail")
        ceiling = self.settings.max_thumbnail_upload_bytes
        if len(data) > ceiling:
            raise PayloadTooLarge(
                f"Thumbnail too large. Max size: {ceiling // (1024 * 1024)} MB.",
                limit_bytes=ceiling,
            )
        if not media_type or not media_type.startswith("image/"):
            raise UnsupportedMediaType("Invalid thumbnail", media_type=media_type)

        self.thumbnails.put(video_id, StoredThumbnail(data=data, media_type=media_type))
        thumbnail_url = f"{self.settings.public_base_url.rstrip('/')}/v1/thumbnails/{video_id}"
        updated = await self.store.set_thumbnail_url(video_id, thumbnail_url)
        if updated is None:
            raise NotFoundError("Couldn't find video", video_id=video_id)
        self.logger.info("thumbnail_stored", video_id=video_id, size_bytes=len(data), media_type=media_type)
        return updated

    async def get_thumbnail(self, video_id: str) -> StoredThumbnail:
        if await self.store.get(video_id) is None:
            raise NotFoundError("Couldn't find video", video_id=video_id)
        thumbnail = self.thumbnails.get(video_id)
        if thumbnail is None:
            raise NotFoundError("Thumbnail not found", video_id=video_id)
        return thumbnail


__all__ = ["StoredThumbnail", "ThumbnailStore", "InMemoryThumbnailStore", "ThumbnailService"]
