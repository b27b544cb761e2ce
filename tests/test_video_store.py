from __future__ import annotations

import asyncio

from tubely.core.db import create_engine, create_session_factory
from tubely.db.videos import SqlVideoStore


def _with_store(settings, scenario):
    async def runner():
        engine = create_engine(settings)
        try:
            async with create_session_factory(engine)() as session:
                return await scenario(SqlVideoStore(session))
        finally:
            await engine.dispose()

    return asyncio.run(runner())


def test_set_video_url_touches_only_that_column(configure_environment):
    async def scenario(store: SqlVideoStore):
        video = await store.create(user_id="user-1", title="Boots", description="beach")
        await store.set_thumbnail_url(video.id, "http://testserver/v1/thumbnails/x")
        updated = await store.set_video_url(video.id, "https://bucket/landscape/a.mp4")
        return updated

    updated = _with_store(configure_environment.settings, scenario)

    assert updated.video_url == "https://bucket/landscape/a.mp4"
    assert updated.thumbnail_url == "http://testserver/v1/thumbnails/x"
    assert updated.title == "Boots"
    assert updated.description == "beach"


def test_set_video_url_on_missing_record_returns_none(configure_environment):
    async def scenario(store: SqlVideoStore):
        return await store.set_video_url("missing", "https://bucket/other/a.mp4")

    assert _with_store(configure_environment.settings, scenario) is None


def test_list_for_user_filters_by_owner(configure_environment):
    async def scenario(store: SqlVideoStore):
        await store.create(user_id="user-1", title="One")
        await store.create(user_id="user-2", title="Two")
        return [video.title for video in await store.list_for_user("user-1")]

    assert _with_store(configure_environment.settings, scenario) == ["One"]
