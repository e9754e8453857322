"""Countdown computation and event views."""

import math
from datetime import datetime
from typing import Iterable, List

from daycounter.db.models import Countdown, Event
from daycounter.utils.constants import DEFAULT_TIMEZONE
from daycounter.utils.time_utils import local_date, now_utc


def calculate_countdown(
    target_at: datetime,
    start_at: datetime | None = None,
    now: datetime | None = None,
) -> Countdown:
    """Compute the time remaining until target_at.

    Evaluated against `now` at call time; callers recompute on every tick.

    Args:
        target_at: Countdown target (UTC)
        start_at: Instant progress is measured from. Without it the
            effective start is `now`, so progress is 0.
        now: Current time (UTC), defaults to the current instant

    Returns:
        Countdown with the magnitude of the remaining (or overdue) time
        broken into days/hours/minutes/seconds
    """
    if now is None:
        now = now_utc()

    start = start_at if start_at is not None else now

    remaining = (target_at - now).total_seconds()
    total_duration = (target_at - start).total_seconds()

    total_seconds = math.floor(abs(remaining))

    if total_duration > 0:
        progress = (total_duration - remaining) / total_duration
        progress = max(0.0, min(1.0, progress))
    else:
        progress = 0.0

    return Countdown(
        days=total_seconds // 86400,
        hours=total_seconds % 86400 // 3600,
        minutes=total_seconds % 3600 // 60,
        seconds=total_seconds % 60,
        total_seconds=total_seconds,
        is_overdue=remaining < 0,
        progress=progress,
    )


def countdown_for_event(event: Event, now: datetime | None = None) -> Countdown:
    """Countdown for an event, measuring progress from start_at or created_at."""
    return calculate_countdown(event.target_at, event.effective_start, now)


def format_time_remaining(countdown: Countdown) -> str:
    """Render a countdown for humans.

    Examples:
        "Overdue by 2d 3h 5m"
        "12d 4h remaining"
        "3h 20m remaining"
        "4m 10s remaining"
    """
    if countdown.is_overdue:
        return f"Overdue by {countdown.days}d {countdown.hours}h {countdown.minutes}m"
    if countdown.days > 0:
        return f"{countdown.days}d {countdown.hours}h remaining"
    elif countdown.hours > 0:
        return f"{countdown.hours}h {countdown.minutes}m remaining"
    else:
        return f"{countdown.minutes}m {countdown.seconds}s remaining"


def get_upcoming_events(
    events: Iterable[Event], limit: int = 3, now: datetime | None = None
) -> List[Event]:
    """Non-archived events with a future target, soonest first.

    Events sharing a target keep their input order.
    """
    if now is None:
        now = now_utc()

    upcoming = [e for e in events if not e.is_archived and e.target_at > now]
    upcoming = sorted(upcoming, key=lambda e: e.target_at)
    return upcoming[: max(limit, 0)]


def get_todays_events(
    events: Iterable[Event],
    now: datetime | None = None,
    tz: str = DEFAULT_TIMEZONE,
) -> List[Event]:
    """Events whose target falls on the current calendar day in tz."""
    if now is None:
        now = now_utc()

    today = local_date(now, tz)
    return [e for e in events if local_date(e.target_at, tz) == today]
