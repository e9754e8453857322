"""Callback query handlers for inline buttons."""

import logging
from html import escape

from telegram import Update
from telegram.ext import ContextTypes

from daycounter.bot.formatters import format_event
from daycounter.bot.keyboards import event_actions_keyboard
from daycounter.config import Config
from daycounter.engine.store import EventStore
from daycounter.utils.time_utils import format_offset

logger = logging.getLogger(__name__)


async def handle_archive_callback(
    update: Update, context: ContextTypes.DEFAULT_TYPE, event_id: str, archived: bool
) -> None:
    """Handle 'Archive' / 'Restore' button press."""
    query = update.callback_query
    store: EventStore = context.bot_data["store"]

    event = await store.archive(event_id, archived)
    if event is None:
        await query.answer("Event not found.")
        return

    if query.message:
        await query.message.edit_text(
            format_event(event, Config.TIMEZONE),
            parse_mode="HTML",
            reply_markup=event_actions_keyboard(event),
        )
    await query.answer("📦 Archived" if archived else "♻ Restored")


async def handle_delete_callback(
    update: Update, context: ContextTypes.DEFAULT_TYPE, event_id: str
) -> None:
    """Handle 'Delete' button press."""
    query = update.callback_query
    store: EventStore = context.bot_data["store"]

    event = store.get(event_id)
    if event is None:
        await query.answer("Event not found.")
        return

    await store.delete(event_id)

    if query.message:
        await query.message.edit_text(
            f"🗑 Deleted: <s>{escape(event.title)}</s>", parse_mode="HTML"
        )
    await query.answer("Deleted")


async def handle_remind_callback(
    update: Update, context: ContextTypes.DEFAULT_TYPE, argument: str
) -> None:
    """Handle a reminder preset button press."""
    query = update.callback_query
    store: EventStore = context.bot_data["store"]

    event_id, _, offset = argument.rpartition(":")
    try:
        offset_minutes = int(offset)
    except ValueError:
        await query.answer("Invalid reminder.")
        return

    event = await store.add_reminder(event_id, offset_minutes)
    if event is None:
        await query.answer("Event not found.")
        return

    if query.message:
        await query.message.edit_text(
            format_event(event, Config.TIMEZONE),
            parse_mode="HTML",
            reply_markup=event_actions_keyboard(event),
        )
    await query.answer(f"🔔 {format_offset(offset_minutes)}")


async def handle_clear_callback(
    update: Update, context: ContextTypes.DEFAULT_TYPE, confirmed: bool
) -> None:
    """Handle the /clear confirmation buttons."""
    query = update.callback_query

    if not confirmed:
        if query.message:
            await query.message.edit_text("Nothing was deleted.")
        await query.answer("Cancelled")
        return

    store: EventStore = context.bot_data["store"]
    await store.clear()

    if query.message:
        await query.message.edit_text("🗑 All events deleted.")
    await query.answer("Cleared")


async def callback_router(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Route callback queries to the appropriate handler."""
    query = update.callback_query
    if not query or not query.data:
        return

    action, _, argument = query.data.partition(":")

    if action == "archive":
        await handle_archive_callback(update, context, argument, archived=True)
    elif action == "unarchive":
        await handle_archive_callback(update, context, argument, archived=False)
    elif action == "delete":
        await handle_delete_callback(update, context, argument)
    elif action == "remind":
        await handle_remind_callback(update, context, argument)
    elif action in ("confirm", "cancel") and argument == "clear":
        await handle_clear_callback(update, context, confirmed=action == "confirm")
    else:
        logger.warning(f"Unknown callback data: {query.data}")
        await query.answer()
