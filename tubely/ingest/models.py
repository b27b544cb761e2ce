from __future__ import annotations

from dataclasses import dataclass
from typing import BinaryIO, Optional


@dataclass(slots=True)
class UploadRequest:
    """A single incoming video upload, valid for the duration of one request."""

    video_id: str
    stream: Optional[BinaryIO]
    media_type: Optional[str]
    declared_size: Optional[int]


@dataclass(frozen=True, slots=True)
class Geometry:
    """Pixel dimensions of the first video stream."""

    width: int
    height: int

    @property
    def is_valid(self) -> bool:
        return self.width > 0 and self.height > 0

    @property
    def ratio(self) -> float:
        return self.width / self.height


@dataclass(frozen=True, slots=True)
class PublishedLocation:
    storage_key: str
    public_url: str


__all__ = ["UploadRequest", "Geometry", "PublishedLocation"]
