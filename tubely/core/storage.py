from __future__ import annotations

import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .config import Settings
from .logging import get_logger


class StorageBackendError(Exception):
    """Raised by object storage backends on any transport or service error."""


class ObjectStorage(ABC):
    @abstractmethod
    def put_file(self, key: str, path: Path, *, content_type: str) -> None: ...

    @abstractmethod
    def public_url(self, key: str) -> str: ...


class LocalObjectStorage(ObjectStorage):
    """Filesystem-backed object storage suitable for development."""

    def __init__(self, base_path: Path, public_base_url: Optional[str] = None):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None

    def _resolve(self, key: str) -> Path:
        target = (self.base_path / key).resolve()
        if self.base_path.resolve() not in target.parents:
            raise StorageBackendError(f"Key escapes storage root: {key}")
        return target

    def put_file(self, key: str, path: Path, *, content_type: str) -> None:
        target = self._resolve(key)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(path, target)
        except OSError as exc:
            raise StorageBackendError(f"Failed to write {key}: {exc}") from exc

    def public_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url}/{key}"
        return self._resolve(key).as_uri()


class S3ObjectStorage(ObjectStorage):
    """S3 (or S3 compatible) bucket storage via boto3."""

    def __init__(
        self,
        bucket: str,
        region: str,
        *,
        client: Any = None,
        endpoint_url: Optional[str] = None,
        public_base_url: Optional[str] = None,
    ):
        self.bucket = bucket
        self.region = region
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None
        self.client = client or boto3.client("s3", region_name=region, endpoint_url=endpoint_url)
        self.logger = get_logger(component="s3_storage", bucket=bucket)

    def put_file(self, key: str, path: Path, *, content_type: str) -> None:
        self.logger.info("s3_upload_started", key=key, path=str(path))
        try:
            self.client.upload_file(str(path), self.bucket, key, ExtraArgs={"ContentType": content_type})
        except (BotoCoreError, ClientError) as exc:
            raise StorageBackendError(f"Upload of {key} to bucket {self.bucket} failed: {exc}") from exc
        self.logger.info("s3_upload_finished", key=key)

    def public_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"


def get_object_storage(settings: Settings) -> ObjectStorage:
    if settings.storage_backend == "local":
        return LocalObjectStorage(
            base_path=Path(settings.local_storage_base_path),
            public_base_url=settings.storage_public_base_url,
        )
    if settings.storage_backend == "s3":
        if not settings.s3_bucket:
            raise ValueError("s3 storage backend requires a bucket")
        return S3ObjectStorage(
            settings.s3_bucket,
            settings.s3_region,
            endpoint_url=settings.s3_endpoint_url,
            public_base_url=settings.storage_public_base_url,
        )
    raise ValueError(f"Unsupported storage backend: {settings.storage_backend}")


__all__ = [
    "ObjectStorage",
    "LocalObjectStorage",
    "S3ObjectStorage",
    "StorageBackendError",
    "get_object_storage",
]
