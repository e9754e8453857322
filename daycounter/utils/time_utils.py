"""Time and timezone utilities."""

import re
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from dateutil import parser as date_parser

UTC = ZoneInfo("UTC")

_TIME_OF_DAY_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def now_utc() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(UTC)


def to_utc(dt: datetime, tz: str) -> datetime:
    """Convert a timezone-aware datetime to UTC."""
    if dt.tzinfo is None:
        # Assume it's in the given timezone
        dt = dt.replace(tzinfo=ZoneInfo(tz))
    return dt.astimezone(UTC)


def from_utc(dt: datetime, tz: str) -> datetime:
    """Convert a UTC datetime to the given timezone."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(ZoneInfo(tz))


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Naive values are assumed to be UTC.

    Raises:
        ValueError: if the string is not ISO-8601
    """
    if isinstance(value, datetime):
        return to_utc(value, "UTC")
    if not isinstance(value, str):
        raise ValueError(f"Not a timestamp: {value!r}")
    return to_utc(date_parser.isoparse(value), "UTC")


def format_timestamp(dt: datetime) -> str:
    """Format an instant as ISO-8601 UTC with a Z suffix.

    Milliseconds are always written; microseconds only when present so
    that parse_timestamp(format_timestamp(dt)) == dt.
    """
    dt = to_utc(dt, "UTC")
    timespec = "milliseconds" if dt.microsecond % 1000 == 0 else "microseconds"
    return dt.isoformat(timespec=timespec).replace("+00:00", "Z")


def parse_user_datetime(text: str, tz: str, now: datetime | None = None) -> datetime:
    """Parse free-form date text typed by a user.

    Missing components default to midnight of the current local day.

    Args:
        text: Something like "2026-12-24 18:00" or "Dec 24 6pm"
        tz: Timezone the text is expressed in (unless it carries an offset)
        now: Current time (UTC)

    Returns:
        The instant in UTC

    Raises:
        ValueError: if dateutil cannot make sense of the text
    """
    if now is None:
        now = now_utc()

    local_midnight = from_utc(now, tz).replace(
        hour=0, minute=0, second=0, microsecond=0, tzinfo=None
    )
    try:
        parsed = date_parser.parse(text, default=local_midnight)
    except OverflowError as e:
        raise ValueError(f"Date out of range: {text}") from e
    return to_utc(parsed, tz)


def parse_time_of_day(value: str) -> time:
    """Parse a strict 24-hour "HH:MM" string.

    Raises:
        ValueError: if the value is not HH:MM
    """
    match = _TIME_OF_DAY_RE.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValueError(f"Invalid time of day {value!r}, expected HH:MM (24-hour)")
    return time(int(match.group(1)), int(match.group(2)))


def next_time_of_day(now: datetime, time_of_day: str, tz: str) -> datetime:
    """Get the next future occurrence of a wall-clock time.

    Args:
        now: The current datetime (UTC)
        time_of_day: Time in HH:MM format
        tz: Timezone the wall-clock time is expressed in

    Returns:
        Today's occurrence if it is still ahead, otherwise tomorrow's (UTC)
    """
    local_now = from_utc(now, tz)
    wall_time = parse_time_of_day(time_of_day)

    candidate = datetime.combine(local_now.date(), wall_time, tzinfo=ZoneInfo(tz))

    # Already passed (or exactly now): use tomorrow
    if candidate <= local_now:
        tomorrow = local_now.date() + timedelta(days=1)
        candidate = datetime.combine(tomorrow, wall_time, tzinfo=ZoneInfo(tz))

    return to_utc(candidate, tz)


def local_date(dt: datetime, tz: str) -> date:
    """Calendar date of an instant in the given timezone."""
    return from_utc(dt, tz).date()


def format_duration(minutes: int) -> str:
    """Format minutes into a human-readable duration.

    Examples:
        15 -> "15 minutes"
        60 -> "1 hour"
        90 -> "1.5 hours"
        1440 -> "1 day"
    """
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes != 1 else ''}"
    elif minutes < 1440:
        hours = minutes / 60
        if hours == int(hours):
            return f"{int(hours)} hour{'s' if hours != 1 else ''}"
        return f"{hours:.1f} hours"
    else:
        days = minutes / 1440
        if days == int(days):
            return f"{int(days)} day{'s' if days != 1 else ''}"
        return f"{days:.1f} days"


def format_offset(offset_minutes: int) -> str:
    """Describe a reminder offset relative to the target.

    Examples:
        -60 -> "1 hour before"
        0 -> "at target time"
        30 -> "30 minutes after"
    """
    if offset_minutes == 0:
        return "at target time"
    direction = "before" if offset_minutes < 0 else "after"
    return f"{format_duration(abs(offset_minutes))} {direction}"
