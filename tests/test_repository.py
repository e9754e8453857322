"""Tests for the repository adapters."""

import dataclasses
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from daycounter.db.migrations import run_migrations
from daycounter.db.models import RecurringRule, create_event, create_reminder, create_task
from daycounter.db.repository import MemoryEventRepository, SqliteEventRepository
from daycounter.utils.errors import StorageError

UTC = ZoneInfo("UTC")
NOW = datetime(2026, 3, 15, 12, 0, tzinfo=UTC)


@pytest.fixture(params=["memory", "sqlite"])
async def repo(request, tmp_path):
    """Each test runs against both adapters."""
    if request.param == "memory":
        yield MemoryEventRepository()
        return

    db_path = tmp_path / "events.db"
    await run_migrations(db_path)
    sqlite_repo = SqliteEventRepository(db_path)
    await sqlite_repo.connect()
    yield sqlite_repo
    await sqlite_repo.close()


def _event(title: str, days: int = 1, **fields):
    return create_event(title, NOW + timedelta(days=days), now=NOW, **fields)


@pytest.mark.asyncio
async def test_save_appends_in_insertion_order(repo):
    first = _event("First", days=5)
    second = _event("Second", days=1)

    await repo.save(first)
    await repo.save(second)

    assert [e.id for e in await repo.fetch()] == [first.id, second.id]


@pytest.mark.asyncio
async def test_save_replaces_existing(repo):
    """save() of a known id replaces the whole record in place."""
    event = _event(
        "Exam",
        tasks=[create_task("Revise")],
        reminders=[create_reminder(-60)],
        recurring=RecurringRule("weekly"),
    )
    other = _event("Other")
    await repo.save(event)
    await repo.save(other)

    replaced = dataclasses.replace(event, title="Exam (moved)", tasks=[], recurring=None)
    await repo.save(replaced)

    fetched = await repo.fetch()
    assert [e.id for e in fetched] == [event.id, other.id]
    assert fetched[0] == replaced
    assert fetched[0].tasks == []
    assert fetched[0].recurring is None


@pytest.mark.asyncio
async def test_fetch_round_trips_every_field(repo):
    event = _event(
        "Hackathon",
        description="48h",
        start_at=NOW - timedelta(days=2),
        timezone="Europe/Berlin",
        recurring=RecurringRule("monthly", until=NOW + timedelta(days=365)),
        tasks=[create_task("Team", date="Fri")],
        reminders=[create_reminder(-1440, "09:00")],
        icon="💻",
        category="hackathon",
        is_archived=True,
        notify_daily_summary=False,
    )
    await repo.save(event)

    assert await repo.fetch() == [event]


@pytest.mark.asyncio
async def test_delete(repo):
    keep = _event("Keep")
    drop = _event("Drop")
    await repo.save(keep)
    await repo.save(drop)

    await repo.delete(drop.id)
    assert [e.id for e in await repo.fetch()] == [keep.id]

    # Unknown id is a no-op
    await repo.delete("missing")
    assert [e.id for e in await repo.fetch()] == [keep.id]


@pytest.mark.asyncio
async def test_clear(repo):
    await repo.save(_event("One"))
    await repo.save(_event("Two"))

    await repo.clear()
    assert await repo.fetch() == []


@pytest.mark.asyncio
async def test_settings(repo):
    assert await repo.get_setting("dailySummaryTime") is None

    await repo.set_setting("dailySummaryTime", "08:30")
    await repo.set_setting("dailySummaryTime", "07:15")

    assert await repo.get_setting("dailySummaryTime") == "07:15"


@pytest.mark.asyncio
async def test_memory_repository_stores_copies():
    repo = MemoryEventRepository()
    event = _event("Exam")
    await repo.save(event)

    event.title = "Changed behind its back"
    fetched = await repo.fetch()
    fetched[0].tasks.append(create_task("Also behind its back"))

    [stored] = await repo.fetch()
    assert stored.title == "Exam"
    assert stored.tasks == []


@pytest.mark.asyncio
async def test_sqlite_persists_across_connections(tmp_path):
    db_path = tmp_path / "events.db"
    await run_migrations(db_path)
    event = _event("Exam")

    repo = SqliteEventRepository(db_path)
    await repo.connect()
    await repo.save(event)
    await repo.set_setting("notifyChatId", "42")
    await repo.close()

    # Migrations are idempotent
    await run_migrations(db_path)

    reopened = SqliteEventRepository(db_path)
    await reopened.connect()
    try:
        assert await reopened.fetch() == [event]
        assert await reopened.get_setting("notifyChatId") == "42"
    finally:
        await reopened.close()


@pytest.mark.asyncio
async def test_sqlite_not_connected_raises_storage_error(tmp_path):
    repo = SqliteEventRepository(tmp_path / "events.db")

    with pytest.raises(StorageError):
        await repo.fetch()
    with pytest.raises(StorageError):
        await repo.save(_event("Exam"))


@pytest.mark.asyncio
async def test_sqlite_without_schema_raises_storage_error(tmp_path):
    repo = SqliteEventRepository(tmp_path / "empty.db")
    await repo.connect()
    try:
        with pytest.raises(StorageError):
            await repo.fetch()
    finally:
        await repo.close()
