from types import SimpleNamespace

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine

from request_ingestor import db_connector
from request_ingestor.config import Settings
from request_ingestor.db_connector import DatabaseSession


@pytest.mark.asyncio
async def test_open_connects_and_dispose_releases(settings):
    db = DatabaseSession(settings)

    engine = await db.open()

    assert db.engine is engine
    assert await db.open() is engine
    await db.dispose()
    with pytest.raises(RuntimeError, match="call open"):
        db.engine


@pytest.mark.asyncio
async def test_open_gives_up_after_connect_timeout(unreachable_url, monkeypatch):
    created, disposed = [], []
    original_create = DatabaseSession._create_engine
    original_dispose = AsyncEngine.dispose

    def tracking_create(self):
        engine = original_create(self)
        created.append(engine)
        return engine

    async def tracking_dispose(self, close=True):
        disposed.append(self)
        await original_dispose(self, close)

    monkeypatch.setattr(DatabaseSession, "_create_engine", tracking_create)
    monkeypatch.setattr(AsyncEngine, "dispose", tracking_dispose)
    db = DatabaseSession(Settings(database_url=unreachable_url, connect_timeout=0))

    with pytest.raises(RuntimeError, match="Database connection timed out"):
        await db.open()

    assert len(created) == 1
    assert len(disposed) == 1
    assert disposed[0] is created[0]
    with pytest.raises(RuntimeError, match="call open"):
        db.engine


@pytest.mark.asyncio
async def test_open_retries_with_backoff_until_deadline(unreachable_url, monkeypatch):
    clock = iter([100.0, 101.0, 103.0, 106.0])
    sleeps = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    monkeypatch.setattr(
        db_connector, "time", SimpleNamespace(time=lambda: next(clock))
    )
    monkeypatch.setattr(db_connector, "asyncio", SimpleNamespace(sleep=fake_sleep))
    db = DatabaseSession(Settings(database_url=unreachable_url, connect_timeout=5))

    with pytest.raises(RuntimeError, match="Database connection timed out"):
        await db.open()

    assert sleeps == [2, 4]
