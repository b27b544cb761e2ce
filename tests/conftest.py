import asyncio
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from types import SimpleNamespace

import jwt
import pytest
from fastapi.testclient import TestClient

from tubely.api import deps
from tubely.core.config import get_settings
from tubely.core.db import Base, create_engine, create_schema
from tubely.core.storage import ObjectStorage, StorageBackendError
from tubely.ingest.models import Geometry
from tubely.main import create_app

JWT_SECRET = "test-secret"
JWT_ISSUER = "tubely-test"
JWT_AUDIENCE = "tubely"
PUBLIC_STORAGE_URL = "https://tubely-test.s3.us-east-1.amazonaws.com"


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "no_default_env: disable the default Tubely environment bootstrap fixture for tests that manage their own .env",
    )


@pytest.fixture(autouse=True)
def configure_environment(request, monkeypatch, tmp_path, tmp_path_factory):
    if request.node.get_closest_marker("no_default_env"):
        get_settings.cache_clear()
        yield None
        get_settings.cache_clear()
        return
    db_path = tmp_path_factory.mktemp("db") / "tubely_test.db"
    staging_root = tmp_path / "staging"
    storage_root = tmp_path / "assets"

    monkeypatch.setenv("TUBELY_ENV", "test")
    monkeypatch.setenv("TUBELY_LOG_LEVEL", "debug")
    monkeypatch.setenv("TUBELY_DB_URL", f"sqlite+aiosqlite:///{db_path}")
    monkeypatch.setenv("TUBELY_STAGING_ROOT", str(staging_root))
    monkeypatch.setenv("TUBELY_STORAGE_BACKEND", "local")
    monkeypatch.setenv("TUBELY_LOCAL_STORAGE_BASE_PATH", str(storage_root))
    monkeypatch.setenv("TUBELY_STORAGE_PUBLIC_BASE_URL", PUBLIC_STORAGE_URL)
    monkeypatch.setenv("TUBELY_PUBLIC_BASE_URL", "http://testserver")
    monkeypatch.setenv("TUBELY_JWT_SECRET", JWT_SECRET)
    monkeypatch.setenv("TUBELY_JWT_ISSUER", JWT_ISSUER)
    monkeypatch.setenv("TUBELY_JWT_AUDIENCE", JWT_AUDIENCE)

    get_settings.cache_clear()
    settings = get_settings()
    engine = create_engine(settings)

    asyncio.run(create_schema(engine))

    yield SimpleNamespace(staging_root=staging_root, storage_root=storage_root, settings=settings)

    async def _teardown() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()

    asyncio.run(_teardown())
    get_settings.cache_clear()


def staged_files(root: Path) -> list[Path]:
    if not root.exists():
        return []
    return [path for path in root.rglob("*") if path.is_file()]


@dataclass
class FakeRemuxer:
    """Copies input to output, standing in for ``ffmpeg -movflags faststart``."""

    error: Exception | None = None
    calls: list[tuple[Path, Path]] = field(default_factory=list)

    def remux(self, input_path: Path, output_path: Path) -> Path:
        self.calls.append((Path(input_path), Path(output_path)))
        if self.error is not None:
            Path(output_path).write_bytes(b"partial")
            raise self.error
        shutil.copyfile(input_path, output_path)
        return Path(output_path)


@dataclass
class FakeProber:
    geometry: Geometry = field(default_factory=lambda: Geometry(1920, 1080))
    error: Exception | None = None
    calls: list[Path] = field(default_factory=list)

    def probe(self, path: Path) -> Geometry:
        self.calls.append(Path(path))
        if self.error is not None:
            raise self.error
        return self.geometry


class RecordingStorage(ObjectStorage):
    def __init__(self, *, fail: bool = False):
        self.fail = fail
        self.objects: dict[str, tuple[bytes, str]] = {}

    def put_file(self, key: str, path: Path, *, content_type: str) -> None:
        if self.fail:
            raise StorageBackendError("simulated backend outage")
        self.objects[key] = (Path(path).read_bytes(), content_type)

    def public_url(self, key: str) -> str:
        return f"{PUBLIC_STORAGE_URL}/{key}"


@pytest.fixture()
def fake_remuxer() -> FakeRemuxer:
    return FakeRemuxer()


@pytest.fixture()
def fake_prober() -> FakeProber:
    return FakeProber()


@pytest.fixture()
def app(configure_environment, fake_remuxer, fake_prober):
    application = create_app()
    application.dependency_overrides[deps.get_remuxer] = lambda: fake_remuxer
    application.dependency_overrides[deps.get_prober] = lambda: fake_prober
    return application


@pytest.fixture()
def client(app):
    with TestClient(app) as client:
        yield client


def build_token(user_id: str, *, scopes: list[str] | None = None) -> str:
    payload: dict[str, object] = {"sub": user_id, "iss": JWT_ISSUER, "aud": JWT_AUDIENCE}
    if scopes:
        payload["scopes"] = scopes
    return jwt.encode(payload, JWT_SECRET, algorithm="HS256")


@pytest.fixture()
def owner_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {build_token('user-owner')}"}


@pytest.fixture()
def other_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {build_token('user-other')}"}


@pytest.fixture()
def admin_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {build_token('user-admin', scopes=['admin'])}"}


@pytest.fixture()
def video_id(client, owner_headers) -> str:
    resp = client.post("/v1/videos", json={"title": "Boots at the beach"}, headers=owner_headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]


@pytest.fixture()
def recording_storage() -> RecordingStorage:
    return RecordingStorage()


@pytest.fixture()
def failing_storage() -> RecordingStorage:
    return RecordingStorage(fail=True)


@pytest.fixture()
def list_staged(configure_environment):
    return lambda: staged_files(configure_environment.staging_root)
