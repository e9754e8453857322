"""Constants and default values."""

from dataclasses import dataclass


@dataclass
class ReminderPreset:
    """A reminder offset offered to users when adding reminders."""

    label: str
    offset_minutes: int  # Negative = before target


# Category -> icon lookup (fixed table, "default" is the fallback)
EVENT_ICONS = {
    "exam": "📝",
    "hackathon": "💻",
    "assignment": "📋",
    "deadline": "⏰",
    "personal": "👤",
    "work": "💼",
    "default": "📅",
}

# Category -> color lookup
CATEGORY_COLORS = {
    "exam": "#EF4444",  # Red
    "hackathon": "#8B5CF6",  # Purple
    "assignment": "#F59E0B",  # Amber
    "deadline": "#10B981",  # Emerald
    "personal": "#06B6D4",  # Cyan
    "work": "#6366F1",  # Indigo
    "default": "#3B82F6",  # Blue
}

CATEGORIES = ["exam", "hackathon", "assignment", "deadline", "personal", "work"]

DEFAULT_COLOR = "#3B82F6"

REMINDER_PRESETS = [
    ReminderPreset("1 hour before", -60),
    ReminderPreset("1 day before", -1440),
    ReminderPreset("3 days before", -4320),
    ReminderPreset("1 week before", -10080),
]

RECURRING_FREQUENCIES = ("daily", "weekly", "monthly")

# Daily summary
DEFAULT_DAILY_SUMMARY_TIME = "09:00"
DAILY_SUMMARY_UPCOMING_LIMIT = 3

# Settings keys
SETTING_DAILY_SUMMARY_TIME = "dailySummaryTime"
SETTING_CHAT_ID = "notifyChatId"

# Alarm keys
DAILY_SUMMARY_ALARM = "daily-summary"
REMINDER_ALARM_PREFIX = "reminder"

# iCalendar
ICS_PRODID = "-//DayCounter//Event Tracker//EN"
ICS_UID_DOMAIN = "daycounter.app"
ICS_DATE_FORMAT = "%Y%m%dT%H%M%SZ"

# Notification titles
REMINDER_TITLE = "DayCounter Reminder"
DAILY_SUMMARY_TITLE = "DayCounter Daily Summary"

# Limits
MAX_TITLE_LENGTH = 200
HANDLE_LENGTH = 8

# Default timezone
DEFAULT_TIMEZONE = "UTC"
