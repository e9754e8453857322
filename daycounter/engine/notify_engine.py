"""Notify engine - turns fired alarms into notifications."""

import logging
from datetime import datetime
from typing import Iterable, Tuple

from daycounter.db.models import Event
from daycounter.engine.alarms import AlarmPayload, Notifier
from daycounter.engine.countdown import (
    countdown_for_event,
    format_time_remaining,
    get_todays_events,
    get_upcoming_events,
)
from daycounter.engine.scheduler import ReminderScheduler
from daycounter.engine.store import EventStore
from daycounter.utils.constants import (
    DAILY_SUMMARY_TITLE,
    DAILY_SUMMARY_UPCOMING_LIMIT,
    DEFAULT_TIMEZONE,
    REMINDER_TITLE,
)
from daycounter.utils.errors import DayCounterError
from daycounter.utils.time_utils import now_utc

logger = logging.getLogger(__name__)


def compose_reminder_message(event: Event, now: datetime | None = None) -> Tuple[str, str]:
    """Title and body of a reminder notification."""
    countdown = countdown_for_event(event, now)
    return REMINDER_TITLE, f"{event.title} - {format_time_remaining(countdown)}"


def build_daily_summary(
    events: Iterable[Event],
    now: datetime | None = None,
    tz: str = DEFAULT_TIMEZONE,
) -> str | None:
    """Compose the daily summary text.

    Only non-archived events that opted into the summary are considered.

    Returns:
        The message, or None when nothing is due today or upcoming
    """
    if now is None:
        now = now_utc()

    eligible = [e for e in events if not e.is_archived and e.notify_daily_summary]
    today = get_todays_events(eligible, now, tz)
    upcoming = get_upcoming_events(eligible, DAILY_SUMMARY_UPCOMING_LIMIT, now)

    if not today and not upcoming:
        return None

    lines = []
    if today:
        lines.append(f"Today: {len(today)} event{'s' if len(today) > 1 else ''}")
    if upcoming:
        lines.append(f"Upcoming: {', '.join(e.title for e in upcoming)}")
    return "\n".join(lines)


async def handle_alarm(
    payload: AlarmPayload,
    store: EventStore,
    notifier: Notifier,
    tz: str = DEFAULT_TIMEZONE,
    now: datetime | None = None,
) -> bool:
    """Deliver the notification for a fired alarm.

    Failures are logged and swallowed so a bad alarm never takes down
    the job queue.

    Returns:
        True if a notification was sent
    """
    if now is None:
        now = now_utc()

    alarm_type = payload.get("type")

    try:
        if alarm_type == "reminder":
            return await _handle_reminder(payload, store, notifier, now)
        elif alarm_type == "daily-summary":
            return await _handle_daily_summary(store, notifier, tz, now)
        else:
            logger.warning(f"Ignoring alarm with unknown type: {payload}")
            return False

    except DayCounterError as e:
        logger.error(f"Could not deliver {alarm_type} alarm: {e}")
        return False


async def _handle_reminder(
    payload: AlarmPayload, store: EventStore, notifier: Notifier, now: datetime
) -> bool:
    event = store.get(payload.get("eventId", ""))
    if event is None:
        logger.warning(f"Reminder fired for unknown event {payload.get('eventId')}")
        return False
    if event.is_archived:
        logger.info(f"Reminder fired for archived event {event.id}, skipping")
        return False

    title, message = compose_reminder_message(event, now)
    await notifier.notify(title, message)
    logger.info(f"Sent reminder {payload.get('reminderId')} for event {event.id}")
    return True


async def _handle_daily_summary(
    store: EventStore, notifier: Notifier, tz: str, now: datetime
) -> bool:
    events = await store.load()
    message = build_daily_summary(events, now, tz)
    if message is None:
        logger.info("Daily summary: nothing to report")
        return False

    await notifier.notify(DAILY_SUMMARY_TITLE, message)
    logger.info("Sent daily summary")
    return True


async def startup_recovery(
    store: EventStore, scheduler: ReminderScheduler, now: datetime | None = None
) -> None:
    """Recovery on startup: timers do not survive a restart.

    Reloads the collection, re-registers every pending reminder and the
    daily summary.
    """
    if now is None:
        now = now_utc()

    events = await store.load()
    await scheduler.resync_all(events, now)
    summary_time = await store.daily_summary_time()
    await scheduler.schedule_daily_summary(summary_time, now)
    logger.info(f"Startup recovery complete ({len(events)} events)")
