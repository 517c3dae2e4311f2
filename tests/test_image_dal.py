import asyncio

import pytest

from dal.image_dal import ImageDAL
from models.image_record import BoundingBox, DetectedRegion, ImageRecord
from utils import database_init
from utils.database_init import AsyncDatabaseInitializer


def make_record():
    return ImageRecord.build(
        original_url="https://cdn.example/original.png",
        original_bytes=b"x" * 200,
        original_format="png",
        compressed_url="https://cdn.example/compressed.jpg",
        compressed_bytes=b"y" * 50,
        regions=[
            DetectedRegion(type="face", bbox=BoundingBox(x=1, y=2, width=3, height=4), confidence=0.9, description="a"),
            DetectedRegion(type="text", bbox=BoundingBox(x=5, y=6, width=7, height=8)),
        ],
    )


def test_create_and_fetch_round_trip(tmp_path):
    async def scenario():
        db = AsyncDatabaseInitializer(tmp_path / "db", attempts=1, delay_seconds=0)
        dal = ImageDAL(db)
        try:
            stored = await dal.create_image(make_record())
            fetched = await dal.get_image_by_id(stored.id)
            missing = await dal.get_image_by_id("does-not-exist")
            count = await dal.count_images()
        finally:
            await db.close()
        return stored, fetched, missing, count

    stored, fetched, missing, count = asyncio.run(scenario())

    assert stored.id
    assert fetched == stored
    assert fetched.compression_ratio == 0.25
    assert [region.type for region in fetched.detected_regions] == ["face", "text"]
    assert missing is None
    assert count == 1


def test_connect_retries_then_succeeds(tmp_path, monkeypatch):
    real_connect = database_init.aiosqlite.connect
    attempts = []
    sleeps = []

    def flaky_connect(path):
        attempts.append(path)
        if len(attempts) < 3:
            raise OSError("database is starting up")
        return real_connect(path)

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    monkeypatch.setattr(database_init.aiosqlite, "connect", flaky_connect)
    monkeypatch.setattr(database_init.asyncio, "sleep", fake_sleep)

    async def scenario():
        db = AsyncDatabaseInitializer(tmp_path / "db", attempts=5, delay_seconds=5.0)
        await db.connect()
        connected = db.is_connected
        await db.close()
        return connected

    assert asyncio.run(scenario()) is True
    assert len(attempts) == 3
    assert sleeps == [5.0, 5.0]


def test_connect_gives_up_after_configured_attempts(tmp_path, monkeypatch):
    attempts = []

    def broken_connect(path):
        attempts.append(path)
        raise OSError("unreachable")

    async def fake_sleep(seconds):
        return None

    monkeypatch.setattr(database_init.aiosqlite, "connect", broken_connect)
    monkeypatch.setattr(database_init.asyncio, "sleep", fake_sleep)

    db = AsyncDatabaseInitializer(tmp_path / "db", attempts=5, delay_seconds=5.0)
    with pytest.raises(RuntimeError):
        asyncio.run(db.connect())
    assert len(attempts) == 5


def test_database_dir_pointing_to_file_is_rejected(tmp_path):
    target = tmp_path / "not-a-dir"
    target.write_text("x")

    with pytest.raises(RuntimeError):
        AsyncDatabaseInitializer(target)
