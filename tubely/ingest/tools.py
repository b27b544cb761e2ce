"""Thin wrapper around blocking ffmpeg / ffprobe invocations.

Commands are always argument lists (never a shell string), output is captured
for diagnostics and a non-zero exit becomes a :class:`ProcessFailure`.
"""

from __future__ import annotations

import subprocess
from typing import Optional, Sequence, Type

from tubely.core.errors import ProcessFailure
from tubely.core.logging import get_logger

logger = get_logger(component="media_tools")


def run_media_tool(
    command: Sequence[str],
    *,
    failure: Type[ProcessFailure] = ProcessFailure,
    timeout_s: Optional[float] = None,
) -> subprocess.CompletedProcess[str]:
    """Run ``command`` to completion and return the completed process.

    Args:
        command: Executable followed by its arguments.
        failure: The :class:`ProcessFailure` subclass raised on error.
        timeout_s: Optional wall-clock limit for the process.

    Returns:
        The completed process with captured ``stdout``/``stderr``.

    Raises:
        ProcessFailure: If the tool is missing, times out or exits non-zero.
    """
    args = [str(part) for part in command]
    tool = args[0]
    logger.debug("media_tool_run", command=args)
    try:
        proc = subprocess.run(
            args,
            check=False,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            timeout=timeout_s,
        )
    except FileNotFoundError as exc:
        logger.error("media_tool_missing", tool=tool)
        raise failure(f"{tool} is not installed or not on PATH", command=args) from exc
    except subprocess.TimeoutExpired as exc:
        logger.error("media_tool_timeout", tool=tool, timeout_s=timeout_s)
        raise failure(
            f"{tool} timed out after {timeout_s}s",
            command=args,
            stdout=_as_text(exc.stdout),
            stderr=_as_text(exc.stderr),
        ) from exc

    if proc.returncode != 0:
        logger.error("media_tool_failed", tool=tool, exit_code=proc.returncode, stderr=proc.stderr.strip())
        raise failure(
            f"{tool} exited with code {proc.returncode}",
            command=args,
            exit_code=proc.returncode,
            stdout=proc.stdout,
            stderr=proc.stderr,
        )
    return proc


def tool_available(binary: str) -> bool:
    try:
        subprocess.run([binary, "-version"], stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL, check=True)
    except (OSError, subprocess.CalledProcessError):
        return False
    return True


def _as_text(value: bytes | str | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


__all__ = ["run_media_tool", "tool_available"]
