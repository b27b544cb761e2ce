from __future__ import annotations

from typing import Optional, Protocol, Sequence
from uuid import uuid4

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Video


class VideoStore(Protocol):
    async def get(self, video_id: str) -> Optional[Video]: ...

    async def set_video_url(self, video_id: str, video_url: str) -> Optional[Video]: ...

    async def release(self) -> None: ...


class SqlVideoStore:
    """Video record persistence on top of an async SQLAlchemy session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, *, user_id: str, title: str, description: str | None = None) -> Video:
        video = Video(id=str(uuid4()), user_id=user_id, title=title, description=description)
        self.session.add(video)
        await self.session.commit()
        await self.session.refresh(video)
        return video

    async def get(self, video_id: str) -> Optional[Video]:
        return await self.session.get(Video, video_id)

    async def release(self) -> None:
        """Hand the pooled connection back; the next statement checks out a fresh one."""
        await self.session.close()

    async def list_for_user(self, user_id: str) -> Sequence[Video]:
        stmt = select(Video).where(Video.user_id == user_id).order_by(Video.created_at.desc(), Video.id)
        return (await self.session.execute(stmt)).scalars().all()

    async def set_video_url(self, video_id: str, video_url: str) -> Optional[Video]:
        return await self._set_column(video_id, video_url=video_url)

    async def set_thumbnail_url(self, video_id: str, thumbnail_url: str) -> Optional[Video]:
        return await self._set_column(video_id, thumbnail_url=thumbnail_url)

    async def _set_column(self, video_id: str, **values: str) -> Optional[Video]:
        # Only the named column is written so concurrent edits to other fields survive.
        stmt = update(Video).where(Video.id == video_id).values(updated_at=func.now(), **values)
        result = await self.session.execute(stmt)
        await self.session.commit()
        if result.rowcount == 0:
            return None
        video = await self.session.get(Video, video_id)
        if video is not None:
            await self.session.refresh(video)
        return video


__all__ = ["VideoStore", "SqlVideoStore"]
