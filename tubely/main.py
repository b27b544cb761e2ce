from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tubely.api.v1 import get_api_router
from tubely.core.config import get_settings
from tubely.core.db import create_engine, create_schema, create_session_factory
from tubely.core.errors import TubelyError
from tubely.core.logging import configure_logging, get_logger, level_from_name
from tubely.core.storage import get_object_storage
from tubely.ingest.faststart import FastStartRemuxer
from tubely.ingest.probe import FFprobeProber
from tubely.ingest.staging import StagingManager
from tubely.services.thumbnail_service import InMemoryThumbnailStore

logger = get_logger(component="http")


async def handle_tubely_error(request: Request, exc: TubelyError) -> JSONResponse:
    log = logger.warning if exc.status_code < 500 else logger.error
    log("request_failed", path=request.url.path, status=exc.status_code, error=exc.code, message=exc.message)
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload(), headers=headers)


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(level=level_from_name(settings.log_level))
    engine = create_engine(settings)
    session_factory = create_session_factory(engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.create_schema_on_startup:
            await create_schema(engine)
        app.state.settings = settings
        app.state.engine = engine
        app.state.session_factory = session_factory
        app.state.object_storage = get_object_storage(settings)
        app.state.staging = StagingManager(settings.staging_root)
        app.state.prober = FFprobeProber(settings.ffprobe_binary, timeout_s=settings.media_tool_timeout_s)
        app.state.remuxer = FastStartRemuxer(settings.ffmpeg_binary, timeout_s=settings.media_tool_timeout_s)
        app.state.thumbnail_store = InMemoryThumbnailStore()
        try:
            yield
        finally:
            await engine.dispose()

    app = FastAPI(
        title=settings.app_name,
        version=settings.version,
        lifespan=lifespan,
        openapi_url="/openapi.json",
        docs_url="/docs",
    )
    app.add_exception_handler(TubelyError, handle_tubely_error)  # type: ignore[arg-type]
    app.include_router(get_api_router())
    return app


__all__ = ["create_app", "handle_tubely_error"]
