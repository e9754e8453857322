"""Global error handler for the bot."""

import logging
import traceback

from telegram import Update
from telegram.ext import ContextTypes

from daycounter.utils.errors import FormatError, PermissionDeniedError, StorageError

logger = logging.getLogger(__name__)


def describe_error(error: BaseException | None) -> str:
    """User-facing text for an error raised while handling an update."""
    if isinstance(error, StorageError):
        return (
            "💾 Could not read or write your events.\n\n"
            "Nothing was changed. Please try again."
        )
    if isinstance(error, FormatError):
        return f"❌ That file could not be imported.\n\n{error}"
    if isinstance(error, PermissionDeniedError):
        return "🔕 Notifications are off for this chat. Send /start to enable them."

    error_message = (
        "😅 Oops! Something went wrong.\n\n"
        "The error has been logged. Please try again or use /help for assistance."
    )

    if "Timeout" in str(error):
        error_message = "⏱️ Request timed out.\n\nPlease try again in a moment."
    elif "Network" in str(error):
        error_message = "🌐 Network error.\n\nPlease check your connection and try again."

    return error_message


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle errors in the bot."""
    error = context.error

    if isinstance(error, (StorageError, FormatError, PermissionDeniedError)):
        logger.warning(f"Recoverable error while handling an update: {error}")
    else:
        logger.error("Exception while handling an update:", exc_info=error)
        if error is not None:
            tb_string = "".join(
                traceback.format_exception(None, error, error.__traceback__)
            )
            logger.error(f"Traceback:\n{tb_string}")

    # Try to notify the user
    if isinstance(update, Update) and update.effective_message:
        try:
            await update.effective_message.reply_text(describe_error(error))
        except Exception as e:
            logger.error(f"Failed to send error message to user: {e}")
