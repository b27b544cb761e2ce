"""Scratch-file lifecycle for ingestion runs.

Each run owns uniquely named paths under the staging root. Paths are tracked
before anything is written to them so a run that fails half way through a
write still removes what it left behind.
"""

from __future__ import annotations

import enum
import re
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterator, Optional
from uuid import uuid4

from tubely.core.errors import PayloadTooLarge
from tubely.core.logging import get_logger

from .faststart import Remuxer

CHUNK_SIZE = 1024 * 1024

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")


class ArtifactRole(str, enum.Enum):
    raw = "raw"
    remuxed = "remuxed"


@dataclass(frozen=True, slots=True)
class StagedArtifact:
    path: Path
    role: ArtifactRole


class StagingRun:
    """Paths allocated for a single ingestion run."""

    def __init__(self, root: Path, video_id: str, run_id: str) -> None:
        self.root = root
        self.video_id = video_id
        self.run_id = run_id
        self._tracked: list[Path] = []
        self._released = False
        self._lock = threading.Lock()
        self.logger = get_logger(component="staging", run_id=run_id, video_id=video_id)

    @property
    def tracked_paths(self) -> tuple[Path, ...]:
        with self._lock:
            return tuple(self._tracked)

    @property
    def released(self) -> bool:
        return self._released

    def allocate(self, role: ArtifactRole, extension: str) -> Path:
        stem = f"{_safe(self.video_id)}-{self.run_id}"
        if role is ArtifactRole.remuxed:
            stem = f"{stem}.faststart"
        path = self.root / f"{stem}.{_safe(extension) or 'bin'}"
        with self._lock:
            if self._released:
                raise RuntimeError(f"staging run {self.run_id} already released")
            self._tracked.append(path)
        return path

    def stage(self, stream: BinaryIO, *, extension: str, limit_bytes: Optional[int] = None) -> StagedArtifact:
        """Copy ``stream`` into a fresh raw artefact.

        Raises:
            PayloadTooLarge: If more than ``limit_bytes`` are read from the stream.
        """
        self.root.mkdir(parents=True, exist_ok=True)
        path = self.allocate(ArtifactRole.raw, extension)
        written = 0
        with path.open("xb") as handle:
            while chunk := stream.read(CHUNK_SIZE):
                written += len(chunk)
                if limit_bytes is not None and written > limit_bytes:
                    raise PayloadTooLarge(
                        f"Video file too large. Max size: {limit_bytes // (1024 * 1024)} MB.",
                        limit_bytes=limit_bytes,
                    )
                handle.write(chunk)
        self.logger.info("staging_written", path=str(path), size_bytes=written)
        return StagedArtifact(path=path, role=ArtifactRole.raw)

    def derive(self, artifact: StagedArtifact, remuxer: Remuxer) -> StagedArtifact:
        extension = artifact.path.suffix.lstrip(".")
        output = self.allocate(ArtifactRole.remuxed, extension)
        produced = remuxer.remux(artifact.path, output)
        return StagedArtifact(path=Path(produced), role=ArtifactRole.remuxed)

    def release_all(self) -> int:
        """Remove every tracked path. Safe to call repeatedly; missing files are ignored."""
        with self._lock:
            if self._released:
                return 0
            self._released = True
            paths, self._tracked = self._tracked, []

        removed = 0
        for path in paths:
            try:
                if path.exists():
                    path.unlink()
                    removed += 1
            except FileNotFoundError:
                continue
            except OSError as exc:
                self.logger.warning("staging_cleanup_failed", path=str(path), error=str(exc))
        self.logger.info("staging_released", removed=removed, tracked=len(paths))
        return removed


class StagingManager:
    """Owns the staging root and every run allocated beneath it."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self._runs: dict[str, StagingRun] = {}
        self._lock = threading.Lock()

    def open_run(self, video_id: str) -> StagingRun:
        run = StagingRun(self.root, video_id, uuid4().hex)
        with self._lock:
            self._runs[run.run_id] = run
        return run

    def release_all(self, run_id: str) -> int:
        with self._lock:
            run = self._runs.pop(run_id, None)
        if run is None:
            return 0
        return run.release_all()

    @contextmanager
    def run(self, video_id: str) -> Iterator[StagingRun]:
        staging_run = self.open_run(video_id)
        try:
            yield staging_run
        finally:
            self.release_all(staging_run.run_id)

    @property
    def active_run_ids(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(self._runs)


def _safe(value: str) -> str:
    return _UNSAFE_CHARS.sub("_", value)


__all__ = ["ArtifactRole", "StagedArtifact", "StagingRun", "StagingManager", "CHUNK_SIZE"]
