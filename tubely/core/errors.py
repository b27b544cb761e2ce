"""Error taxonomy shared by the ingestion pipeline and the HTTP layer.

Every error carries the HTTP status it maps to, a stable machine readable
``code`` and whether resubmitting the same request can reasonably succeed.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence


class TubelyError(Exception):
    status_code: int = 500
    code: str = "internal_error"
    retryable: bool = False

    def __init__(self, message: str, **detail: Any) -> None:
        super().__init__(message)
        self.message = message
        self.detail = {key: value for key, value in detail.items() if value is not None}

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "error": self.code,
            "message": self.message,
            "retryable": self.retryable,
        }
        if self.detail:
            payload["detail"] = self.detail
        return payload


class ValidationError(TubelyError):
    status_code = 400
    code = "validation_error"


class PayloadTooLarge(ValidationError):
    status_code = 413
    code = "payload_too_large"


class UnsupportedMediaType(ValidationError):
    status_code = 415
    code = "unsupported_media_type"


class AuthenticationError(TubelyError):
    status_code = 401
    code = "unauthenticated"


class AuthorizationError(TubelyError):
    status_code = 403
    code = "forbidden"


class NotFoundError(TubelyError):
    status_code = 404
    code = "not_found"


class ProcessFailure(TubelyError):
    """An external media tool exited non-zero (or could not run at all)."""

    status_code = 500
    code = "process_failure"
    retryable = True

    def __init__(
        self,
        message: str,
        *,
        command: Sequence[str] = (),
        exit_code: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        super().__init__(message, exit_code=exit_code, stderr=stderr.strip() or None)
        self.command = list(command)
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr


class RemuxFailure(ProcessFailure):
    code = "remux_failure"


class ProbeFailure(ProcessFailure):
    code = "probe_failure"


class MalformedMedia(TubelyError):
    status_code = 422
    code = "malformed_media"


class PublishFailure(TubelyError):
    status_code = 502
    code = "publish_failure"
    retryable = True


class IngestCancelled(TubelyError):
    status_code = 499
    code = "ingest_cancelled"
    retryable = True


__all__ = [
    "TubelyError",
    "ValidationError",
    "PayloadTooLarge",
    "UnsupportedMediaType",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "ProcessFailure",
    "RemuxFailure",
    "ProbeFailure",
    "MalformedMedia",
    "PublishFailure",
    "IngestCancelled",
]
