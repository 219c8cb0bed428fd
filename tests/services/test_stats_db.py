import asyncio

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from src.crud import CreateData
from src.domain.stats_document import INITIAL_VERSION
from src.exceptions import ConflictError, MalformedDocumentError
from src.models.schemas import UserStats
from src.services.stats_db import SqlAlchemyStatsGateway
from src.services.stats_service import apply_stats
from src.stats_sync_manager import StatsSyncManager


@pytest.fixture
async def gateway(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'stats.sqlite3'}")
    await CreateData.create_table(engine)
    Session = async_sessionmaker(class_=AsyncSession, expire_on_commit=False, bind=engine)
    yield SqlAlchemyStatsGateway(Session)
    await engine.dispose()


async def test_load_missing_row(gateway) -> None:
    versioned = await gateway.load("alice")
    assert versioned.stats == {}
    assert versioned.version == INITIAL_VERSION


async def test_insert_then_conditional_update(gateway) -> None:
    v1 = await gateway.compare_and_store(
        "alice", INITIAL_VERSION, {"health": {"2024-01-01": {"weight": 150, "fasting": True}}}
    )
    v2 = await gateway.compare_and_store(
        "alice", v1, {"health": {"2024-01-01": {"weight": 152, "fasting": True}}}
    )
    assert (v1, v2) == (1, 2)
    loaded = await gateway.load("alice")
    assert loaded.version == 2
    assert loaded.stats == {"health": {"2024-01-01": {"weight": 152, "fasting": True}}}


async def test_stale_update_conflicts(gateway) -> None:
    await gateway.compare_and_store("alice", INITIAL_VERSION, {"a": {}})
    await gateway.compare_and_store("alice", 1, {"b": {}})
    with pytest.raises(ConflictError) as exc_info:
        await gateway.compare_and_store("alice", 1, {"c": {}})
    assert exc_info.value.actual_version == 2
    assert (await gateway.load("alice")).stats == {"b": {}}


async def test_duplicate_first_insert_conflicts(gateway) -> None:
    await gateway.compare_and_store("alice", INITIAL_VERSION, {"a": {}})
    with pytest.raises(ConflictError):
        await gateway.compare_and_store("alice", INITIAL_VERSION, {"b": {}})


async def test_create_is_idempotent_and_delete_leaves_tombstone(gateway) -> None:
    assert (await gateway.create("alice")).version == 1
    await gateway.compare_and_store("alice", 1, {"health": {"2024-01-01": {"w": 1}}})
    assert (await gateway.create("alice")).stats == {"health": {"2024-01-01": {"w": 1}}}
    assert await gateway.delete("alice") is True
    assert await gateway.delete("alice") is False
    deleted = await gateway.load("alice")
    assert deleted.stats == {}
    assert deleted.version == 3


async def test_malformed_stored_row_is_rejected(gateway) -> None:
    async with gateway.Session() as session:
        async with session.begin():
            session.add(UserStats(user_id="alice", stats={"health": [1, 2]}, version=1))
    with pytest.raises(MalformedDocumentError):
        await gateway.load("alice")


async def test_concurrent_patches_through_database(gateway) -> None:
    manager = StatsSyncManager(gateway, retry_ceiling=10, retry_backoff=0.001)
    await asyncio.gather(
        apply_stats(manager, "alice", {"health": {"date": "2024-01-01", "weight": 150}}),
        apply_stats(manager, "alice", {"health": {"date": "2024-01-01", "steps": 8000}}),
        apply_stats(manager, "alice", {"sleep": {"date": "2024-01-01", "hours": 7}}),
    )
    loaded = await gateway.load("alice")
    assert loaded.stats == {
        "health": {"2024-01-01": {"weight": 150, "steps": 8000}},
        "sleep": {"2024-01-01": {"hours": 7}},
    }
    assert loaded.version == 3


async def test_writer_loaded_before_delete_cannot_commit_after_it(gateway) -> None:
    await gateway.compare_and_store("alice", INITIAL_VERSION, {"a": {"2024-01-01": {"w": 1}}})
    stale = await gateway.load("alice")

    assert await gateway.delete("alice") is True
    fresh = await gateway.load("alice")
    assert fresh.version == stale.version + 1
    await gateway.compare_and_store("alice", fresh.version, {"b": {"2024-01-02": {"w": 2}}})

    with pytest.raises(ConflictError):
        await gateway.compare_and_store("alice", stale.version, {"a": {"2024-01-01": {"w": 9}}})
    with pytest.raises(ConflictError):
        await gateway.compare_and_store("alice", INITIAL_VERSION, {"c": {}})
    assert (await gateway.load("alice")).stats == {"b": {"2024-01-02": {"w": 2}}}
    # a revived document can be deleted again
    assert await gateway.delete("alice") is True
