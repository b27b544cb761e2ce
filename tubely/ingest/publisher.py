from __future__ import annotations

import secrets
from pathlib import Path

from tubely.core.errors import PublishFailure, ValidationError
from tubely.core.logging import get_logger
from tubely.core.storage import ObjectStorage, StorageBackendError

from .aspect import AspectCategory
from .models import PublishedLocation

RANDOM_ID_BYTES = 32


def extension_for(media_type: str) -> str:
    """``video/mp4`` -> ``mp4``."""
    _, _, subtype = media_type.partition("/")
    subtype = subtype.split(";", 1)[0].strip().lower()
    if not subtype or not subtype.isalnum():
        raise ValidationError(f"Cannot derive a file extension from {media_type!r}")
    return subtype


def build_storage_key(category: AspectCategory, media_type: str) -> str:
    random_id = secrets.token_urlsafe(RANDOM_ID_BYTES)
    return f"{category.value}/{random_id}.{extension_for(media_type)}"


class Publisher:
    def __init__(self, storage: ObjectStorage):
        self.storage = storage
        self.logger = get_logger(component="publisher")

    def publish(self, local_path: Path, category: AspectCategory, media_type: str) -> PublishedLocation:
        key = build_storage_key(category, media_type)
        try:
            self.storage.put_file(key, Path(local_path), content_type=media_type)
        except (StorageBackendError, OSError) as exc:
            self.logger.error("publish_failed", key=key, error=str(exc))
            raise PublishFailure("Failed to upload video to object storage", key=key) from exc
        url = self.storage.public_url(key)
        self.logger.info("publish_succeeded", key=key, url=url)
        return PublishedLocation(storage_key=key, public_url=url)


__all__ = ["Publisher", "build_storage_key", "extension_for", "RANDOM_ID_BYTES"]
