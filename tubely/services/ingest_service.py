"""Video ingestion orchestration.

A run validates the request, stages the upload, remuxes it for fast start,
probes and classifies its geometry, publishes it to object storage and finally
records the public URL on the video. Staged files are released on every exit
path; the record is touched only after a successful publish.
"""

from __future__ import annotations

import asyncio
import enum
import re
import threading
from typing import BinaryIO, Optional

from tubely.core.config import Settings
from tubely.core.errors import (
    AuthorizationError,
    IngestCancelled,
    NotFoundError,
    PayloadTooLarge,
    TubelyError,
    UnsupportedMediaType,
    ValidationError,
)
from tubely.core.logging import get_logger
from tubely.db.models import Video
from tubely.db.videos import VideoStore
from tubely.ingest.aspect import AspectBands, classify_aspect
from tubely.ingest.faststart import Remuxer
from tubely.ingest.models import PublishedLocation, UploadRequest
from tubely.ingest.probe import Prober
from tubely.ingest.publisher import Publisher, extension_for
from tubely.ingest.staging import StagingManager

VIDEO_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


class IngestState(str, enum.Enum):
    validated = "validated"
    staged = "staged"
    remuxed = "remuxed"
    probed = "probed"
    classified = "classified"
    published = "published"
    record_updated = "record_updated"
    failed = "failed"


class VideoIngestService:
    def __init__(
        self,
        settings: Settings,
        store: VideoStore,
        staging: StagingManager,
        remuxer: Remuxer,
        prober: Prober,
        publisher: Publisher,
        *,
        bands: Optional[AspectBands] = None,
    ):
        self.settings = settings
        self.store = store
        self.staging = staging
        self.remuxer = remuxer
        self.prober = prober
        self.publisher = publisher
        self.bands = bands or settings.aspect_bands
        self.logger = get_logger(component="ingest_service")

    async def upload_video(self, *, user_id: str, upload: UploadRequest) -> Video:
        video_id = upload.video_id
        logger = self.logger.bind(video_id=video_id, user_id=user_id)
        logger.info("video_upload_started")

        video = await self._authorise(user_id=user_id, video_id=video_id)
        media_type = self._validate_upload(upload)
        # No pooled connection is held while the pipeline runs.
        await self.store.release()
        logger.info("ingest_state_changed", state=IngestState.validated.value)

        cancel = threading.Event()
        try:
            location = await asyncio.to_thread(self._run_pipeline, video_id, upload.stream, media_type, cancel)
        except asyncio.CancelledError:
            cancel.set()
            logger.warning("ingest_cancel_requested")
            raise
        except TubelyError as exc:
            logger.warning("ingest_state_changed", state=IngestState.failed.value, error=exc.code)
            raise

        updated = await self.store.set_video_url(video.id, location.public_url)
        if updated is None:
            # The record disappeared mid-run; the published object is left unreferenced.
            logger.warning("ingest_record_vanished", storage_key=location.storage_key)
            raise NotFoundError("Video not found", video_id=video_id)
        logger.info("ingest_state_changed", state=IngestState.record_updated.value, video_url=updated.video_url)
        return updated

    async def _authorise(self, *, user_id: str, video_id: str) -> Video:
        if not video_id or not VIDEO_ID_PATTERN.match(video_id):
            raise ValidationError("Invalid video ID")
        video = await self.store.get(video_id)
        if video is None:
            raise NotFoundError("Video not found", video_id=video_id)
        if video.user_id != user_id:
            raise AuthorizationError("User not authorized to upload video", video_id=video_id)
        return video

    def _validate_upload(self, upload: UploadRequest) -> str:
        if upload.stream is None:
            raise ValidationError("Invalid video file")
        ceiling = self.settings.max_video_upload_bytes
        if upload.declared_size is None or upload.declared_size < 0:
            raise ValidationError("Video file size is unknown")
        if upload.declared_size > ceiling:
            raise PayloadTooLarge(
                f"Video file too large. Max size: {ceiling // (1024 * 1024)} MB.",
                limit_bytes=ceiling,
                declared_size=upload.declared_size,
            )
        media_type = (upload.media_type or "").split(";", 1)[0].strip().lower()
        if media_type != self.settings.accepted_video_type:
            raise UnsupportedMediaType(
                "Invalid video file type",
                media_type=upload.media_type,
                accepted=self.settings.accepted_video_type,
            )
        return media_type

    def _run_pipeline(
        self,
        video_id: str,
        stream: BinaryIO,
        media_type: str,
        cancel: threading.Event,
    ) -> PublishedLocation:
        with self.staging.run(video_id) as run:
            logger = self.logger.bind(video_id=video_id, run_id=run.run_id)
            reached = IngestState.validated
            location: Optional[PublishedLocation] = None

            def advance(state: IngestState, **details: object) -> None:
                nonlocal reached
                if cancel.is_set():
                    raise IngestCancelled("Upload aborted before publication", state=state.value)
                reached = state
                logger.info("ingest_state_changed", state=state.value, **details)

            try:
                raw = run.stage(
                    stream,
                    extension=extension_for(media_type),
                    limit_bytes=self.settings.max_video_upload_bytes,
                )
                advance(IngestState.staged, path=str(raw.path))

                remuxed = run.derive(raw, self.remuxer)
                advance(IngestState.remuxed, path=str(remuxed.path))

                geometry = self.prober.probe(remuxed.path)
                advance(IngestState.probed, width=geometry.width, height=geometry.height)

                category = classify_aspect(geometry, self.bands)
                advance(IngestState.classified, category=category.value)

                location = self.publisher.publish(remuxed.path, category, media_type)
                reached = IngestState.published
                logger.info("ingest_state_changed", state=IngestState.published.value, storage_key=location.storage_key)
                return location
            except Exception:
                logger.exception("ingest_pipeline_failed")
                raise
            finally:
                if cancel.is_set():
                    # Nobody awaits this run any more; a published object here is orphaned.
                    logger.warning(
                        "ingest_cancelled_run_finished",
                        last_state=reached.value,
                        orphaned_storage_key=location.storage_key if location else None,
                    )


__all__ = ["IngestState", "VideoIngestService", "VIDEO_ID_PATTERN"]
