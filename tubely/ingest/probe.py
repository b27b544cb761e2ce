from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from tubely.core.errors import MalformedMedia, ProbeFailure
from tubely.core.logging import get_logger

from .models import Geometry
from .tools import run_media_tool

logger = get_logger(component="media_prober")


class Prober(Protocol):
    def probe(self, path: Path) -> Geometry: ...


class FFprobeProber:
    """Reads the geometry of the first video stream with ffprobe."""

    def __init__(self, binary: str = "ffprobe", *, timeout_s: Optional[float] = None) -> None:
        self.binary = binary
        self.timeout_s = timeout_s

    def command(self, path: Path) -> list[str]:
        return [
            self.binary,
            "-v",
            "error",
            "-select_streams",
            "v:0",
            "-show_entries",
            "stream=width,height",
            "-of",
            "json",
            str(path),
        ]

    def probe(self, path: Path) -> Geometry:
        proc = run_media_tool(self.command(path), failure=ProbeFailure, timeout_s=self.timeout_s)
        try:
            payload = json.loads(proc.stdout)
        except json.JSONDecodeError as exc:
            raise MalformedMedia("ffprobe returned unparseable output", path=str(path)) from exc
        geometry = parse_geometry(payload)
        logger.info("media_probed", path=str(path), width=geometry.width, height=geometry.height)
        return geometry


def parse_geometry(payload: Dict[str, Any]) -> Geometry:
    """Extract the first video stream's dimensions from ffprobe JSON.

    Raises:
        MalformedMedia: If no stream is reported or either dimension is missing,
            non-integral or not strictly positive.
    """
    streams = payload.get("streams") if isinstance(payload, dict) else None
    if not streams:
        raise MalformedMedia("No video stream found")

    stream = streams[0]
    if not isinstance(stream, dict):
        raise MalformedMedia("No video stream found")
    width = _positive_int(stream.get("width"))
    height = _positive_int(stream.get("height"))
    if width is None or height is None:
        raise MalformedMedia(
            "Invalid video dimensions",
            width=stream.get("width"),
            height=stream.get("height"),
        )
    return Geometry(width=width, height=height)


def _positive_int(value: Any) -> Optional[int]:
    if isinstance(value, bool) or value in (None, "N/A", ""):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


__all__ = ["Prober", "FFprobeProber", "parse_geometry"]
