"""Inline keyboard builders."""

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from daycounter.db.models import Event
from daycounter.utils.constants import REMINDER_PRESETS


def event_actions_keyboard(event: Event) -> InlineKeyboardMarkup:
    """Keyboard for the event detail view: Archive/Restore, Delete."""
    if event.is_archived:
        archive_button = InlineKeyboardButton("♻ Restore", callback_data=f"unarchive:{event.id}")
    else:
        archive_button = InlineKeyboardButton("📦 Archive", callback_data=f"archive:{event.id}")

    return InlineKeyboardMarkup(
        [
            [
                archive_button,
                InlineKeyboardButton("🗑 Delete", callback_data=f"delete:{event.id}"),
            ]
        ]
    )


def confirm_cancel_keyboard(action: str) -> InlineKeyboardMarkup:
    """Keyboard for confirmations: Confirm, Cancel."""
    return InlineKeyboardMarkup(
        [
            [
                InlineKeyboardButton("✓ Confirm", callback_data=f"confirm:{action}"),
                InlineKeyboardButton("✗ Cancel", callback_data=f"cancel:{action}"),
            ]
        ]
    )


def reminder_presets_keyboard(event: Event) -> InlineKeyboardMarkup:
    """Keyboard offering the standard reminder offsets, two per row."""
    buttons = [
        InlineKeyboardButton(
            preset.label, callback_data=f"remind:{event.id}:{preset.offset_minutes}"
        )
        for preset in REMINDER_PRESETS
    ]
    return InlineKeyboardMarkup([buttons[i : i + 2] for i in range(0, len(buttons), 2)])
