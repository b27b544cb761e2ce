from __future__ import annotations

import os
import tempfile
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from tubely.ingest.aspect import AspectBands


class Secrets(BaseSettings):
    """Secrets configuration, loaded from the environment or a secrets management service."""

    model_config = SettingsConfigDict(
        env_prefix="TUBELY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    jwt_secret: str = Field(default="change-me", description="Signing secret for bearer token validation.")

    @classmethod
    def from_settings(cls, settings: "Settings") -> "Secrets":
        return cls()


class Settings(BaseSettings):
    """Centralised runtime configuration for the Tubely API."""

    model_config = SettingsConfigDict(
        env_prefix="TUBELY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Tubely API"
    environment: str = Field(default="development", description="Deployment environment label.")
    version: str = Field(default="0.1.0", description="API version for metadata and OpenAPI.")
    log_level: str = Field(default="info")

    database_url: str = Field(
        default="sqlite+aiosqlite:///./tubely.db",
        description="SQLAlchemy compatible DSN.",
    )
    create_schema_on_startup: bool = Field(default=False, description="Create missing tables at startup (development only).")

    staging_root: Path = Field(
        default_factory=lambda: Path(tempfile.gettempdir()) / "tubely-staging",
        description="Scratch directory for in-flight upload artefacts.",
    )
    storage_backend: Literal["local", "s3"] = Field(default="local", description="Active object storage implementation.")
    local_storage_base_path: Path = Field(
        default_factory=lambda: Path("assets"),
        description="Root directory for the local object storage backend.",
    )
    s3_bucket: Optional[str] = None
    s3_region: str = Field(default="us-east-1")
    s3_endpoint_url: Optional[str] = Field(default=None, description="Custom endpoint for S3 compatible stores.")
    storage_public_base_url: Optional[str] = Field(
        default=None,
        description="Overrides the virtual-hosted bucket URL used for published objects (e.g. a CDN).",
    )
    public_base_url: str = Field(default="http://localhost:8091", description="Externally visible API origin.")

    max_video_upload_bytes: int = Field(default=1 << 30, description="Hard ceiling for video uploads.")
    max_thumbnail_upload_bytes: int = Field(default=10 << 20, description="Hard ceiling for thumbnail uploads.")
    accepted_video_type: str = Field(default="video/mp4", description="The single accepted video media type.")

    ffmpeg_binary: str = Field(default="ffmpeg")
    ffprobe_binary: str = Field(default="ffprobe")
    media_tool_timeout_s: Optional[float] = Field(
        default=600.0,
        description="Upper bound for a single ffmpeg/ffprobe invocation; unset to wait indefinitely.",
    )

    landscape_min_factor: float = Field(default=0.95, gt=0)
    landscape_max_factor: float = Field(default=1.05, gt=0)
    portrait_min_factor: float = Field(default=0.95, gt=0)
    portrait_max_factor: float = Field(default=1.05, gt=0)

    jwt_algorithm: str = Field(default="HS256", description="Algorithm used for JWT tokens.")
    jwt_issuer: Optional[str] = None
    jwt_audience: Optional[str] = None

    secrets: Secrets = Field(default_factory=Secrets, description="Holds sensitive configuration.")

    @property
    def environment_lower(self) -> str:
        return self.environment.lower()

    @property
    def aspect_bands(self) -> AspectBands:
        return AspectBands(
            landscape_min=self.landscape_min_factor,
            landscape_max=self.landscape_max_factor,
            portrait_min=self.portrait_min_factor,
            portrait_max=self.portrait_max_factor,
        )


@lru_cache()
def get_settings() -> Settings:
    load_dotenv(".env", override=False)

    _ENV_ALIAS_MAP = {
        "TUBELY_ENV": "TUBELY_ENVIRONMENT",
        "TUBELY_DB_URL": "TUBELY_DATABASE_URL",
    }

    for source, target in _ENV_ALIAS_MAP.items():
        value = os.getenv(source)
        if value:
            os.environ[target] = value

    settings = Settings()
    secrets = Secrets.from_settings(settings)

    if settings.environment_lower == "production" and secrets.jwt_secret == "change-me":
        raise ValueError("Production environment must have a non-default JWT secret.")
    if settings.storage_backend == "s3" and not settings.s3_bucket:
        raise ValueError("TUBELY_S3_BUCKET is required when the s3 storage backend is selected.")
    try:
        settings.aspect_bands
    except ValueError as exc:
        raise ValueError(f"Invalid TUBELY_*_FACTOR aspect band configuration: {exc}") from exc

    settings.secrets = secrets
    return settings


__all__ = ["Secrets", "Settings", "get_settings"]
