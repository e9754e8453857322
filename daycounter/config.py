"""Configuration management from environment variables."""

import os
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from daycounter.utils.time_utils import parse_time_of_day

# Load .env file if it exists
load_dotenv()


class Config:
    """Application configuration loaded from environment variables."""

    # Telegram
    TELEGRAM_BOT_TOKEN: str = os.getenv("TELEGRAM_BOT_TOKEN", "")
    TELEGRAM_CHAT_ID: str = os.getenv("TELEGRAM_CHAT_ID", "")  # Optional preset notify chat

    # Database
    DATABASE_PATH: Path = Path(os.getenv("DATABASE_PATH", "./data/daycounter.db"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Calendar-day and time-of-day computations
    TIMEZONE: str = os.getenv("TIMEZONE", "UTC")

    # Used until the user picks a time with /summary
    DAILY_SUMMARY_TIME: str = os.getenv("DAILY_SUMMARY_TIME", "09:00")

    UPCOMING_LIMIT: int = int(os.getenv("UPCOMING_LIMIT", "3"))

    @classmethod
    def validate(cls) -> None:
        """Validate required configuration."""
        if not cls.TELEGRAM_BOT_TOKEN:
            raise ValueError("TELEGRAM_BOT_TOKEN environment variable is required")

        if cls.TELEGRAM_CHAT_ID and not cls.TELEGRAM_CHAT_ID.lstrip("-").isdigit():
            raise ValueError("TELEGRAM_CHAT_ID must be a numeric chat id")

        try:
            ZoneInfo(cls.TIMEZONE)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown TIMEZONE: {cls.TIMEZONE}") from e

        # Raises ValueError with a readable message
        parse_time_of_day(cls.DAILY_SUMMARY_TIME)

        # Ensure database directory exists
        cls.DATABASE_PATH.parent.mkdir(parents=True, exist_ok=True)
