from __future__ import annotations

from pathlib import Path
from typing import Optional, Protocol

from tubely.core.errors import RemuxFailure
from tubely.core.logging import get_logger

from .tools import run_media_tool

logger = get_logger(component="faststart_remuxer")


class Remuxer(Protocol):
    def remux(self, input_path: Path, output_path: Path) -> Path: ...


class FastStartRemuxer:
    """Moves the MP4 ``moov`` atom ahead of the media payload without re-encoding."""

    def __init__(self, binary: str = "ffmpeg", *, timeout_s: Optional[float] = None) -> None:
        self.binary = binary
        self.timeout_s = timeout_s

    def command(self, input_path: Path, output_path: Path) -> list[str]:
        return [
            self.binary,
            "-nostdin",
            "-v",
            "error",
            "-y",
            "-i",
            str(input_path),
            "-movflags",
            "faststart",
            "-map_metadata",
            "0",
            "-codec",
            "copy",
            "-f",
            "mp4",
            str(output_path),
        ]

    def remux(self, input_path: Path, output_path: Path) -> Path:
        if Path(input_path).resolve() == Path(output_path).resolve():
            raise ValueError("remux output must differ from its input")
        proc = run_media_tool(self.command(input_path, output_path), failure=RemuxFailure, timeout_s=self.timeout_s)
        if proc.stderr.strip():
            logger.debug("faststart_diagnostics", stderr=proc.stderr.strip())
        logger.info("faststart_remuxed", input=str(input_path), output=str(output_path))
        return Path(output_path)


__all__ = ["Remuxer", "FastStartRemuxer"]
