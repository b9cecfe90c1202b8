"""Tests for the SQLAlchemy record store, run against SQLite."""
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from headshot_intake.core.database import Base
from headshot_intake.models.imageRecord import ImageStatus
from headshot_intake.services.records import SqlAlchemyRecordStore


@pytest_asyncio.fixture
async def store(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'images.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    sessions = async_sessionmaker(engine, expire_on_commit=False)
    async with sessions() as session:
        yield SqlAlchemyRecordStore(session)
    await engine.dispose()


async def add(store, key, user_id="user-1", status=ImageStatus.ACCEPTED, minute=0, similarity_hash=None):
    return await store.create(
        user_id=user_id,
        original_name=f"{key}.png",
        file_name=f"{key}.png",
        file_size=1,
        file_type="image/png",
        storage_key=key,
        access_url=key,
        status=status.value,
        similarity_hash=similarity_hash,
        created_at=datetime(2026, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=minute),
    )


@pytest.mark.asyncio
async def test_create_defaults_to_processing(store):
    record = await store.create(
        user_id="user-1",
        original_name="a.png",
        file_name="a.png",
        file_size=5,
        file_type="image/png",
        storage_key="temp-1",
        access_url="temp-1",
    )
    assert record.id
    assert record.status == ImageStatus.PROCESSING.value
    assert record.created_at is not None


@pytest.mark.asyncio
async def test_update_and_get(store):
    record = await add(store, "k1", status=ImageStatus.PROCESSING)
    await store.update(record.id, status=ImageStatus.REJECTED.value, rejection_reason="nope", width=10, height=20)

    fetched = await store.get(record.id)
    assert fetched.status == ImageStatus.REJECTED.value
    assert fetched.rejection_reason == "nope"
    assert (fetched.width, fetched.height) == (10, 20)


@pytest.mark.asyncio
async def test_update_missing_raises(store):
    with pytest.raises(LookupError):
        await store.update("missing", status=ImageStatus.ACCEPTED.value)


@pytest.mark.asyncio
async def test_list_newest_first_with_paging(store):
    for minute in range(5):
        await add(store, f"k{minute}", minute=minute)
    await add(store, "other", user_id="user-2")
    await add(store, "rej", status=ImageStatus.REJECTED, minute=10)

    page = await store.list_for_user("user-1", ImageStatus.ACCEPTED, skip=1, limit=2)

    assert [r.storage_key for r in page] == ["k3", "k2"]
    assert await store.count_for_user("user-1", ImageStatus.ACCEPTED) == 5
    assert await store.count_for_user("user-1", None) == 6


@pytest.mark.asyncio
async def test_accepted_hashes(store):
    accepted = await add(store, "k1", similarity_hash="a" * 32)
    await add(store, "k2", status=ImageStatus.REJECTED, similarity_hash="b" * 32)
    await add(store, "k3", user_id="user-2", similarity_hash="c" * 32)

    assert await store.accepted_hashes("user-1") == [(accepted.id, "a" * 32)]


@pytest.mark.asyncio
async def test_delete(store):
    record = await add(store, "k1")
    await store.delete(record.id)
    assert await store.get(record.id) is None
