"""Main entry point for the DayCounter bot."""

import logging
import sys

from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    MessageHandler,
    filters,
)

from daycounter.bot.callbacks import callback_router
from daycounter.bot.handlers import (
    add_command,
    archive_command,
    clear_command,
    delete_command,
    export_command,
    export_ics_command,
    help_command,
    import_document,
    list_command,
    remind_command,
    repeat_command,
    show_command,
    start_command,
    summary_command,
    task_command,
    toggle_command,
    upcoming_command,
)
from daycounter.bot.notifier import TelegramAlarmService, TelegramNotifier
from daycounter.config import Config
from daycounter.db.migrations import run_migrations
from daycounter.db.repository import SqliteEventRepository
from daycounter.engine.alarms import AlarmPayload
from daycounter.engine.notify_engine import handle_alarm, startup_recovery
from daycounter.engine.scheduler import ReminderScheduler
from daycounter.engine.store import EventStore
from daycounter.utils.constants import SETTING_CHAT_ID
from daycounter.utils.error_handler import error_handler

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
    stream=sys.stdout,
)

logger = logging.getLogger(__name__)


async def post_init(application: Application) -> None:
    """Initialize bot resources after application is created."""
    # Initialize database
    await run_migrations(Config.DATABASE_PATH)

    repo = SqliteEventRepository(Config.DATABASE_PATH)
    await repo.connect()

    # Chat registered by /start wins over the configured one
    stored_chat = await repo.get_setting(SETTING_CHAT_ID)
    chat_id = stored_chat or Config.TELEGRAM_CHAT_ID
    notifier = TelegramNotifier(application.bot, int(chat_id) if chat_id else None)

    async def on_alarm(payload: AlarmPayload) -> None:
        await handle_alarm(payload, application.bot_data["store"], notifier, Config.TIMEZONE)

    if application.job_queue is None:
        raise RuntimeError("JobQueue unavailable: install python-telegram-bot[job-queue]")

    alarms = TelegramAlarmService(application.job_queue, on_alarm, notifier)
    scheduler = ReminderScheduler(alarms, Config.TIMEZONE)
    store = EventStore(repo, scheduler, default_summary_time=Config.DAILY_SUMMARY_TIME)

    application.bot_data["repo"] = repo
    application.bot_data["notifier"] = notifier
    application.bot_data["scheduler"] = scheduler
    application.bot_data["store"] = store

    # Timers do not survive restarts
    await startup_recovery(store, scheduler)

    logger.info("DayCounter initialized successfully")


async def post_shutdown(application: Application) -> None:
    """Cleanup resources on shutdown."""
    repo: SqliteEventRepository | None = application.bot_data.get("repo")
    if repo:
        await repo.close()

    logger.info("DayCounter shut down")


def main() -> None:
    """Start the bot."""
    # Validate configuration
    try:
        Config.validate()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    # Create application
    application = (
        Application.builder()
        .token(Config.TELEGRAM_BOT_TOKEN)
        .post_init(post_init)
        .post_shutdown(post_shutdown)
        .build()
    )

    # Register handlers

    # Commands
    application.add_handler(CommandHandler("start", start_command))
    application.add_handler(CommandHandler("help", help_command))
    application.add_handler(CommandHandler("add", add_command))
    application.add_handler(CommandHandler("list", list_command))
    application.add_handler(CommandHandler("upcoming", upcoming_command))
    application.add_handler(CommandHandler("show", show_command))
    application.add_handler(CommandHandler("task", task_command))
    application.add_handler(CommandHandler("toggle", toggle_command))
    application.add_handler(CommandHandler("remind", remind_command))
    application.add_handler(CommandHandler("repeat", repeat_command))
    application.add_handler(CommandHandler("archive", archive_command))
    application.add_handler(CommandHandler("delete", delete_command))
    application.add_handler(CommandHandler("clear", clear_command))

    # Settings and data
    application.add_handler(CommandHandler("summary", summary_command))
    application.add_handler(CommandHandler("export", export_command))
    application.add_handler(CommandHandler("exportics", export_ics_command))
    application.add_handler(MessageHandler(filters.Document.ALL, import_document))

    # Callback queries (buttons)
    application.add_handler(CallbackQueryHandler(callback_router))

    # Error handler
    application.add_error_handler(error_handler)

    # Start the bot
    logger.info("Starting DayCounter bot...")
    application.run_polling(allowed_updates=["message", "callback_query"])


if __name__ == "__main__":
    main()
