"""Tests for the Telegram front end helpers."""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock
from zoneinfo import ZoneInfo

import pytest
from telegram.error import Forbidden, NetworkError

from daycounter.bot.formatters import (
    display_timezone,
    event_handle,
    format_event,
    format_event_list,
    progress_bar,
)
from daycounter.bot.handlers import parse_offset
from daycounter.bot.keyboards import (
    confirm_cancel_keyboard,
    event_actions_keyboard,
    reminder_presets_keyboard,
)
from daycounter.bot.notifier import TelegramNotifier
from daycounter.db.models import RecurringRule, create_event, create_reminder, create_task
from daycounter.utils.error_handler import describe_error
from daycounter.utils.errors import FormatError, PermissionDeniedError, StorageError

UTC = ZoneInfo("UTC")
NOW = datetime(2026, 3, 15, 12, 0, tzinfo=UTC)


def test_parse_offset():
    """Units count before the target unless prefixed with +."""
    assert parse_offset("1d") == -1440
    assert parse_offset("2h") == -120
    assert parse_offset("1w") == -10080
    assert parse_offset("+2h") == 120
    assert parse_offset("-90") == -90
    assert parse_offset("30") == 30
    assert parse_offset(" 15M ") == -15

    for bad in ("", "soon", "1y", "h2"):
        with pytest.raises(ValueError):
            parse_offset(bad)


def test_progress_bar():
    assert progress_bar(0.0) == "░░░░░░░░░░ 0%"
    assert progress_bar(0.3) == "▓▓▓░░░░░░░ 30%"
    assert progress_bar(1.0) == "▓▓▓▓▓▓▓▓▓▓ 100%"


def test_display_timezone():
    event = create_event("Exam", NOW + timedelta(days=1), now=NOW)
    assert display_timezone(event, "UTC") == "UTC"

    event.timezone = "Asia/Tokyo"
    assert display_timezone(event, "UTC") == "Asia/Tokyo"

    event.timezone = "Mars/Olympus_Mons"
    assert display_timezone(event, "UTC") == "UTC"


def test_format_event():
    event = create_event(
        "Exam <finals>",
        NOW + timedelta(days=2, hours=3),
        now=NOW - timedelta(days=1),
        category="exam",
        tasks=[create_task("Revise"), create_task("Sleep")],
        reminders=[create_reminder(-60), create_reminder(-4320)],
    )
    event.tasks[0].done = True

    text = format_event(event, "UTC", NOW)

    assert "📝 <b>Exam &lt;finals&gt;</b>" in text
    assert f"<code>{event_handle(event)}</code>" in text
    assert "2d 3h remaining" in text
    assert "Tasks (1/2)" in text
    assert "1. ✅ Revise" in text
    assert "2. ⬜ Sleep" in text
    assert "🔔 1 hour before (Mar 17 14:00)" in text
    assert "🔔 3 days before (sent)" in text
    assert "Archived" not in text


def test_format_event_recurring_overdue_shows_next():
    event = create_event(
        "Review",
        datetime(2026, 3, 1, 9, 0, tzinfo=UTC),
        now=datetime(2026, 2, 1, tzinfo=UTC),
        recurring=RecurringRule("weekly"),
    )

    # Mar 15 09:00 has already passed at NOW
    text = format_event(event, "UTC", NOW)
    assert "🔁 Repeats weekly (next: Mar 22, 2026)" in text


def test_format_event_list():
    assert format_event_list([], "UTC", "Events", NOW) == "No events yet. Add one with /add."

    events = [
        create_event("A", NOW + timedelta(days=1), now=NOW),
        create_event("B", NOW + timedelta(days=2), now=NOW),
    ]
    text = format_event_list(events, "UTC", "Events", NOW)
    assert text.startswith("<b>Events (2)</b>")
    assert "<b>A</b>" in text and "<b>B</b>" in text


def test_keyboards():
    event = create_event("Exam", NOW + timedelta(days=1), now=NOW, id="e1")

    [[archive, delete]] = event_actions_keyboard(event).inline_keyboard
    assert archive.callback_data == "archive:e1"
    assert delete.callback_data == "delete:e1"

    event.is_archived = True
    [[restore, _]] = event_actions_keyboard(event).inline_keyboard
    assert restore.callback_data == "unarchive:e1"

    [[confirm, cancel]] = confirm_cancel_keyboard("clear").inline_keyboard
    assert (confirm.callback_data, cancel.callback_data) == ("confirm:clear", "cancel:clear")

    rows = reminder_presets_keyboard(event).inline_keyboard
    assert [[b.callback_data for b in row] for row in rows] == [
        ["remind:e1:-60", "remind:e1:-1440"],
        ["remind:e1:-4320", "remind:e1:-10080"],
    ]
    assert rows[0][0].text == "1 hour before"


def test_describe_error():
    assert "Nothing was changed" in describe_error(StorageError("disk full"))
    assert "bad header" in describe_error(FormatError("bad header"))
    assert "/start" in describe_error(PermissionDeniedError("blocked"))
    assert "Something went wrong" in describe_error(RuntimeError("boom"))
    assert "timed out" in describe_error(RuntimeError("Timeout while sending"))


@pytest.mark.asyncio
async def test_notifier_sends_escaped_html():
    bot = MagicMock()
    bot.send_message = AsyncMock()
    notifier = TelegramNotifier(bot, 42)

    await notifier.notify("DayCounter Reminder", "Exam <room 2> - 1h 0m remaining")

    kwargs = bot.send_message.await_args.kwargs
    assert kwargs["chat_id"] == 42
    assert "Exam &lt;room 2&gt;" in kwargs["text"]


@pytest.mark.asyncio
async def test_notifier_without_chat_is_denied():
    notifier = TelegramNotifier(MagicMock(), None)
    assert not notifier.granted

    with pytest.raises(PermissionDeniedError):
        await notifier.notify("Title", "Message")


@pytest.mark.asyncio
async def test_notifier_blocked_revokes_permission():
    bot = MagicMock()
    bot.send_message = AsyncMock(side_effect=Forbidden("bot was blocked by the user"))
    notifier = TelegramNotifier(bot, 42)

    with pytest.raises(PermissionDeniedError):
        await notifier.notify("Title", "Message")
    assert notifier.chat_id is None
    assert not notifier.granted


@pytest.mark.asyncio
async def test_notifier_network_error_is_logged_only():
    bot = MagicMock()
    bot.send_message = AsyncMock(side_effect=NetworkError("connection reset"))
    notifier = TelegramNotifier(bot, 42)

    await notifier.notify("Title", "Message")
    assert notifier.granted
