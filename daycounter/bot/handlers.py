"""Command handlers."""

import dataclasses
import io
import logging
import re
from html import escape

from telegram import Update
from telegram.ext import ContextTypes

from daycounter.backup.ics_codec import export_to_ics, parse_ics
from daycounter.backup.json_codec import export_to_json, import_from_json
from daycounter.bot.formatters import (
    format_event,
    format_event_list,
    format_help_message,
    format_welcome_message,
)
from daycounter.bot.keyboards import (
    confirm_cancel_keyboard,
    event_actions_keyboard,
    reminder_presets_keyboard,
)
from daycounter.bot.notifier import TelegramNotifier
from daycounter.config import Config
from daycounter.db.models import Event, RecurringRule, create_event
from daycounter.db.repository import SettingsRepository
from daycounter.engine.countdown import get_upcoming_events
from daycounter.engine.scheduler import ReminderScheduler
from daycounter.engine.store import EventStore
from daycounter.utils.constants import (
    CATEGORIES,
    CATEGORY_COLORS,
    MAX_TITLE_LENGTH,
    RECURRING_FREQUENCIES,
    SETTING_CHAT_ID,
)
from daycounter.utils.errors import FormatError
from daycounter.utils.time_utils import format_offset, now_utc, parse_user_datetime

logger = logging.getLogger(__name__)

_OFFSET_RE = re.compile(r"^([+-]?)(\d+)([mhdw]?)$")
_UNIT_MINUTES = {"m": 1, "h": 60, "d": 1440, "w": 10080}


def parse_offset(text: str) -> int:
    """Parse a reminder offset typed by the user.

    With a unit (m/h/d/w) the offset is before the target unless prefixed
    with "+". Without a unit it is signed minutes.

    Examples:
        "1d" -> -1440
        "+2h" -> 120
        "-90" -> -90

    Raises:
        ValueError: if the text is not an offset
    """
    match = _OFFSET_RE.match(text.strip().lower())
    if not match:
        raise ValueError(f"Invalid offset: {text}")

    sign, amount, unit = match.groups()
    minutes = int(amount) * _UNIT_MINUTES.get(unit or "m", 1)

    if unit:
        return minutes if sign == "+" else -minutes
    return -minutes if sign == "-" else minutes


def _store(context: ContextTypes.DEFAULT_TYPE) -> EventStore:
    return context.bot_data["store"]


async def _find_event(update: Update, context: ContextTypes.DEFAULT_TYPE) -> Event | None:
    """Resolve the first command argument to an event, replying if it can't."""
    if not context.args:
        await update.message.reply_text("Please give an event ID (see /list).")
        return None

    event = _store(context).find(context.args[0])
    if event is None:
        await update.message.reply_text("Event not found.")
    return event


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start command - register this chat for notifications."""
    if not update.effective_chat or not update.message:
        return

    store = _store(context)
    notifier: TelegramNotifier = context.bot_data["notifier"]
    scheduler: ReminderScheduler = context.bot_data["scheduler"]

    chat_id = update.effective_chat.id
    if notifier.chat_id != chat_id:
        notifier.chat_id = chat_id
        if isinstance(store.repo, SettingsRepository):
            await store.repo.set_setting(SETTING_CHAT_ID, str(chat_id))
        logger.info(f"Notifications registered for chat {chat_id}")

    # Permission just became available: arm everything
    await scheduler.resync_all(store.events)
    await scheduler.schedule_daily_summary(await store.daily_summary_time())

    await update.message.reply_html(format_welcome_message())


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help command."""
    if not update.message:
        return

    await update.message.reply_html(format_help_message())


async def add_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /add <title> | <target> [| <start>] command."""
    if not update.message:
        return

    parts = [part.strip() for part in " ".join(context.args or []).split("|")]
    if len(parts) < 2 or not parts[0] or not parts[1]:
        await update.message.reply_html(
            "Usage: <code>/add Final exam #exam | 2026-12-14 09:00</code>\n"
            "Optional start: <code>/add Trip | 2026-08-01 | 2026-06-01</code>"
        )
        return

    # Pull #category tags out of the title
    category = None
    title_words = []
    for word in parts[0].split():
        tag = word.lstrip("#").lower()
        if word.startswith("#") and tag in CATEGORIES:
            category = tag
        else:
            title_words.append(word)
    title = " ".join(title_words)
    if len(title) > MAX_TITLE_LENGTH:
        await update.message.reply_text(f"Title is too long (max {MAX_TITLE_LENGTH} characters).")
        return

    now = now_utc()
    try:
        target_at = parse_user_datetime(parts[1], Config.TIMEZONE, now)
        start_at = None
        if len(parts) > 2 and parts[2]:
            start_at = parse_user_datetime(parts[2], Config.TIMEZONE, now)
        event = create_event(
            title,
            target_at,
            now=now,
            start_at=start_at,
            category=category,
            color=CATEGORY_COLORS.get(category or "default", CATEGORY_COLORS["default"]),
        )
    except ValueError as e:
        await update.message.reply_text(f"Could not create event: {e}")
        return

    await _store(context).add(event)

    await update.message.reply_html(
        "✓ Countdown created\n\n" + format_event(event, Config.TIMEZONE, now),
        reply_markup=event_actions_keyboard(event),
    )


async def list_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /list command - show all active countdowns, soonest first."""
    if not update.message:
        return

    events = [e for e in _store(context).events if not e.is_archived]
    events.sort(key=lambda e: e.target_at)
    await update.message.reply_html(format_event_list(events, Config.TIMEZONE, "Your Countdowns"))


async def upcoming_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /upcoming [n] command."""
    if not update.message:
        return

    limit = Config.UPCOMING_LIMIT
    if context.args:
        try:
            limit = max(1, int(context.args[0]))
        except ValueError:
            await update.message.reply_text("Usage: /upcoming [number]")
            return

    upcoming = get_upcoming_events(_store(context).events, limit)
    if not upcoming:
        await update.message.reply_text("Nothing upcoming. Add a countdown with /add.")
        return

    await update.message.reply_html(format_event_list(upcoming, Config.TIMEZONE, "Upcoming"))


async def show_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /show <id> command."""
    if not update.message:
        return

    event = await _find_event(update, context)
    if event is None:
        return

    await update.message.reply_html(
        format_event(event, Config.TIMEZONE), reply_markup=event_actions_keyboard(event)
    )


async def task_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /task <id> <text> command."""
    if not update.message:
        return

    if not context.args or len(context.args) < 2:
        await update.message.reply_text("Usage: /task <event_id> <text>")
        return

    event = await _find_event(update, context)
    if event is None:
        return

    text = " ".join(context.args[1:])
    event = await _store(context).add_task(event.id, text)
    await update.message.reply_html(
        f"✓ Task added to <b>{escape(event.title)}</b>\n\n" + format_event(event, Config.TIMEZONE)
    )


async def toggle_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /toggle <id> <n> command."""
    if not update.message:
        return

    if not context.args or len(context.args) != 2:
        await update.message.reply_text("Usage: /toggle <event_id> <task_number>")
        return

    event = await _find_event(update, context)
    if event is None:
        return

    try:
        index = int(context.args[1]) - 1
        event = await _store(context).toggle_task(event.id, index)
    except (ValueError, IndexError):
        await update.message.reply_text("Invalid task number.")
        return

    await update.message.reply_html(format_event(event, Config.TIMEZONE))


async def remind_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /remind <id> <offset> command."""
    if not update.message:
        return

    if not context.args or len(context.args) > 2:
        await update.message.reply_html(
            "Usage: <code>/remind &lt;event_id&gt; 1d</code>\n"
            "Offsets: <code>30m</code>, <code>1h</code>, <code>1d</code>, <code>1w</code> before; "
            "<code>+1h</code> after; <code>-90</code> minutes"
        )
        return

    event = await _find_event(update, context)
    if event is None:
        return

    if len(context.args) == 1:
        await update.message.reply_html(
            f"When should I remind you about <b>{escape(event.title)}</b>?",
            reply_markup=reminder_presets_keyboard(event),
        )
        return

    try:
        offset = parse_offset(context.args[1])
    except ValueError as e:
        await update.message.reply_text(str(e))
        return

    store = _store(context)
    event = await store.add_reminder(event.id, offset)

    scheduler: ReminderScheduler = context.bot_data["scheduler"]
    note = ""
    if not await scheduler.alarms.get_permission_status():
        note = "\n\n⚠️ Notifications are off. Send /start to enable them."

    await update.message.reply_html(
        f"🔔 Reminder set {format_offset(offset)} <b>{escape(event.title)}</b>{note}"
    )


async def repeat_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /repeat <id> <daily|weekly|monthly|off> [until] command."""
    if not update.message:
        return

    if not context.args or len(context.args) < 2:
        await update.message.reply_html(
            "Usage: <code>/repeat &lt;event_id&gt; weekly [2026-12-31]</code>\n"
            f"Frequencies: {', '.join(RECURRING_FREQUENCIES)}, or <code>off</code>"
        )
        return

    event = await _find_event(update, context)
    if event is None:
        return

    frequency = context.args[1].lower()
    if frequency == "off":
        recurring = None
    elif frequency in RECURRING_FREQUENCIES:
        until = None
        if len(context.args) > 2:
            try:
                until = parse_user_datetime(" ".join(context.args[2:]), Config.TIMEZONE)
            except ValueError as e:
                await update.message.reply_text(f"Invalid end date: {e}")
                return
        recurring = RecurringRule(frequency=frequency, until=until)  # type: ignore[arg-type]
    else:
        await update.message.reply_text(
            f"Unknown frequency. Use one of: {', '.join(RECURRING_FREQUENCIES)}, off"
        )
        return

    event = await _store(context).update(dataclasses.replace(event, recurring=recurring))
    await update.message.reply_html(format_event(event, Config.TIMEZONE))


async def archive_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /archive <id> command."""
    if not update.message:
        return

    event = await _find_event(update, context)
    if event is None:
        return

    await _store(context).archive(event.id)
    await update.message.reply_html(f"📦 Archived: <b>{escape(event.title)}</b>")


async def delete_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /delete <id> command."""
    if not update.message:
        return

    event = await _find_event(update, context)
    if event is None:
        return

    await _store(context).delete(event.id)
    await update.message.reply_html(f"🗑 Deleted: <b>{escape(event.title)}</b>")


async def summary_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /summary [HH:MM] command."""
    if not update.message:
        return

    store = _store(context)

    if not context.args:
        current = await store.daily_summary_time()
        await update.message.reply_html(
            f"<b>Daily summary time:</b> {current} ({Config.TIMEZONE})\n\n"
            "To change: <code>/summary 08:30</code>"
        )
        return

    try:
        await store.set_daily_summary_time(context.args[0])
    except ValueError:
        await update.message.reply_text(
            "Invalid time format. Use HH:MM (24-hour format)\n\nExample: /summary 08:30"
        )
        return

    await update.message.reply_html(f"✓ Daily summary will arrive at <b>{context.args[0]}</b>")


async def export_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /export command - send a JSON backup."""
    if not update.message:
        return

    data = export_to_json(_store(context).events).encode("utf-8")
    filename = f"daycounter-events-{now_utc().strftime('%Y-%m-%d')}.json"
    await update.message.reply_document(document=io.BytesIO(data), filename=filename)


async def export_ics_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /exportics command - send an iCalendar file."""
    if not update.message:
        return

    data = export_to_ics(_store(context).events).encode("utf-8")
    filename = f"daycounter-events-{now_utc().strftime('%Y-%m-%d')}.ics"
    await update.message.reply_document(document=io.BytesIO(data), filename=filename)


async def import_document(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle an uploaded .json / .ics file - import its events."""
    if not update.message or not update.message.document:
        return

    document = update.message.document
    filename = (document.file_name or "").lower()
    if not filename.endswith((".json", ".ics")):
        await update.message.reply_text("Send a .json backup or an .ics calendar to import.")
        return

    file = await document.get_file()
    payload = await file.download_as_bytearray()

    try:
        text = bytes(payload).decode("utf-8-sig")
        if filename.endswith(".ics"):
            events = parse_ics(text)
        else:
            events = import_from_json(text)
    except (FormatError, UnicodeDecodeError) as e:
        logger.info(f"Rejected import {filename}: {e}")
        await update.message.reply_text(
            f"❌ Failed to import events. Please check the file format.\n\n{e}"
        )
        return

    count = await _store(context).import_events(events)
    await update.message.reply_html(f"✓ Successfully imported <b>{count}</b> events")


async def clear_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /clear command - ask for confirmation."""
    if not update.message:
        return

    count = len(_store(context).events)
    await update.message.reply_html(
        f"⚠️ Delete all <b>{count}</b> events? This cannot be undone.",
        reply_markup=confirm_cancel_keyboard("clear"),
    )
