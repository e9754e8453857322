"""Tests for command and callback handlers."""

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock
from zoneinfo import ZoneInfo

import pytest

from daycounter.backup.ics_codec import export_to_ics
from daycounter.bot.callbacks import callback_router
from daycounter.bot.handlers import add_command, import_document, summary_command
from daycounter.config import Config
from daycounter.db.models import create_event
from daycounter.db.repository import MemoryEventRepository
from daycounter.engine.store import EventStore

UTC = ZoneInfo("UTC")
NOW = datetime(2026, 3, 15, 12, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def utc_config(monkeypatch):
    monkeypatch.setattr(Config, "TIMEZONE", "UTC")


@pytest.fixture
def store():
    return EventStore(MemoryEventRepository())


def _message_update():
    update = MagicMock()
    update.message.reply_html = AsyncMock()
    update.message.reply_text = AsyncMock()
    return update


def _context(store, args=()):
    context = MagicMock()
    context.args = list(args)
    context.bot_data = {"store": store}
    return context


def _document_update(file_name: str, payload: bytes):
    update = _message_update()
    file = MagicMock()
    file.download_as_bytearray = AsyncMock(return_value=bytearray(payload))
    update.message.document.file_name = file_name
    update.message.document.get_file = AsyncMock(return_value=file)
    return update


def _callback_update(data: str):
    update = MagicMock()
    update.callback_query.data = data
    update.callback_query.answer = AsyncMock()
    update.callback_query.message.edit_text = AsyncMock()
    return update


async def _seed(store, *titles):
    events = [
        create_event(title, datetime(2030, 1, 1, tzinfo=UTC), now=NOW) for title in titles
    ]
    for event in events:
        await store.add(event)
    return events


@pytest.mark.asyncio
async def test_add_with_category(store):
    """#tags pick the category and color and are removed from the title."""
    update = _message_update()
    context = _context(store, "Final exam #exam | 2030-12-14 09:00".split())

    await add_command(update, context)

    [event] = store.events
    assert event.title == "Final exam"
    assert event.category == "exam"
    assert event.color == "#EF4444"
    assert event.target_at == datetime(2030, 12, 14, 9, 0, tzinfo=UTC)
    reply = update.message.reply_html.call_args.args[0]
    assert reply.startswith("✓ Countdown created")


@pytest.mark.asyncio
async def test_add_with_start(store):
    update = _message_update()
    context = _context(store, "Trip | 2030-08-01 | 2030-06-01".split())

    await add_command(update, context)

    [event] = store.events
    assert event.start_at == datetime(2030, 6, 1, tzinfo=UTC)


@pytest.mark.asyncio
async def test_add_without_separator_shows_usage(store):
    update = _message_update()

    await add_command(update, _context(store, ["Final", "exam", "tomorrow"]))

    assert store.events == []
    assert "Usage" in update.message.reply_html.call_args.args[0]


@pytest.mark.asyncio
async def test_add_rejects_long_title(store):
    update = _message_update()

    await add_command(update, _context(store, ["x" * 201, "|", "2030-12-14"]))

    assert store.events == []
    update.message.reply_text.assert_awaited_once_with("Title is too long (max 200 characters).")


@pytest.mark.asyncio
async def test_add_rejects_unparseable_date(store):
    update = _message_update()

    await add_command(update, _context(store, ["Exam", "|", "someday", "soon"]))

    assert store.events == []
    assert update.message.reply_text.call_args.args[0].startswith("Could not create event")


@pytest.mark.asyncio
async def test_summary_rejects_invalid_time(store):
    update = _message_update()
    await summary_command(update, _context(store, ["25:00"]))

    update.message.reply_text.assert_awaited_once()
    assert "Invalid time format" in update.message.reply_text.call_args.args[0]
    assert await store.daily_summary_time() == store.default_summary_time


@pytest.mark.asyncio
async def test_summary_persists_time(store):
    update = _message_update()
    await summary_command(update, _context(store, ["07:30"]))

    assert await store.daily_summary_time() == "07:30"
    assert "07:30" in update.message.reply_html.call_args.args[0]


@pytest.mark.asyncio
async def test_import_bad_json_replies_with_error(store):
    update = _document_update("backup.json", b"[{not json")

    await import_document(update, _context(store))

    assert store.events == []
    reply = update.message.reply_text.call_args.args[0]
    assert reply.startswith("❌ Failed to import events.")


@pytest.mark.asyncio
async def test_import_ics_document(store):
    events = [
        create_event("Exam", datetime(2030, 4, 14, 9, 0, tzinfo=UTC), now=NOW),
        create_event("Launch", datetime(2030, 6, 1, tzinfo=UTC), now=NOW),
    ]
    update = _document_update("Calendar.ICS", export_to_ics(events).encode("utf-8"))

    await import_document(update, _context(store))

    assert sorted(e.title for e in store.events) == ["Exam", "Launch"]
    update.message.reply_html.assert_awaited_once_with("✓ Successfully imported <b>2</b> events")


@pytest.mark.asyncio
async def test_import_other_file_types_are_refused(store):
    update = _document_update("notes.txt", b"hello")

    await import_document(update, _context(store))

    update.message.document.get_file.assert_not_awaited()
    assert ".json" in update.message.reply_text.call_args.args[0]


@pytest.mark.asyncio
async def test_archive_callback(store):
    [event] = await _seed(store, "Exam")
    update = _callback_update(f"archive:{event.id}")

    await callback_router(update, _context(store))

    assert store.get(event.id).is_archived is True
    update.callback_query.answer.assert_awaited_once_with("📦 Archived")


@pytest.mark.asyncio
async def test_delete_callback(store):
    exam, launch = await _seed(store, "Exam", "Launch")
    update = _callback_update(f"delete:{exam.id}")

    await callback_router(update, _context(store))

    assert [e.id for e in store.events] == [launch.id]
    update.callback_query.answer.assert_awaited_once_with("Deleted")


@pytest.mark.asyncio
async def test_delete_callback_unknown_event(store):
    await _seed(store, "Exam")
    update = _callback_update("delete:missing")

    await callback_router(update, _context(store))

    assert len(store.events) == 1
    update.callback_query.answer.assert_awaited_once_with("Event not found.")


@pytest.mark.asyncio
async def test_clear_callbacks(store):
    await _seed(store, "Exam", "Launch")

    cancel = _callback_update("cancel:clear")
    await callback_router(cancel, _context(store))
    assert len(store.events) == 2
    cancel.callback_query.message.edit_text.assert_awaited_once_with("Nothing was deleted.")

    confirm = _callback_update("confirm:clear")
    await callback_router(confirm, _context(store))
    assert store.events == []
    confirm.callback_query.message.edit_text.assert_awaited_once_with("🗑 All events deleted.")
