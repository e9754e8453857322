"""Reminder scheduling on top of an AlarmService."""

import logging
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Set, Tuple

from daycounter.db.models import Event, Reminder
from daycounter.engine.alarms import AlarmService
from daycounter.utils.constants import (
    DAILY_SUMMARY_ALARM,
    DEFAULT_TIMEZONE,
    REMINDER_ALARM_PREFIX,
)
from daycounter.utils.errors import PermissionDeniedError
from daycounter.utils.time_utils import next_time_of_day, now_utc, parse_time_of_day

logger = logging.getLogger(__name__)


def compute_fire_time(target_at: datetime, offset_minutes: int) -> datetime:
    """Absolute fire time of a reminder."""
    return target_at + timedelta(minutes=offset_minutes)


def reminder_key(event_id: str, reminder_id: str) -> str:
    """Alarm key for one reminder of one event."""
    return f"{REMINDER_ALARM_PREFIX}-{event_id}-{reminder_id}"


def pending_reminders(
    event: Event, now: datetime | None = None
) -> List[Tuple[Reminder, datetime]]:
    """Reminders of an event whose fire time is still ahead, with that time."""
    if now is None:
        now = now_utc()

    pending = []
    for reminder in event.reminders:
        fire_at = compute_fire_time(event.target_at, reminder.offset_minutes_from_target)
        if fire_at > now:
            pending.append((reminder, fire_at))
    return pending


class ReminderScheduler:
    """Keeps the alarm service in step with the events' reminder lists.

    Every sync cancels all alarms previously registered for the event
    before registering the current ones, so edits never leave stale or
    duplicate alarms behind.
    """

    def __init__(self, alarms: AlarmService, tz: str = DEFAULT_TIMEZONE):
        self.alarms = alarms
        self.tz = tz
        self._keys: Dict[str, Set[str]] = {}

    async def request_permission(self) -> bool:
        """Ask the alarm service for notification permission."""
        granted = await self.alarms.request_permission()
        if not granted:
            logger.info("Notification permission denied")
        return granted

    def keys_for_event(self, event_id: str) -> Set[str]:
        """Alarm keys currently registered for an event."""
        return set(self._keys.get(event_id, set()))

    async def sync_event(self, event: Event, now: datetime | None = None) -> int:
        """Cancel and re-register every reminder alarm of an event.

        Reminders whose fire time has passed are skipped. Archived events
        end up with no alarms.

        Returns:
            Number of alarms registered
        """
        if now is None:
            now = now_utc()

        await self.cancel_event(event.id)

        if event.is_archived:
            return 0

        pending = pending_reminders(event, now)
        if not pending:
            return 0

        if not await self.alarms.get_permission_status():
            logger.info(f"Notifications not permitted, skipping reminders for {event.id}")
            return 0

        keys = self._keys.setdefault(event.id, set())
        try:
            for reminder, fire_at in pending:
                key = reminder_key(event.id, reminder.id)
                if key in keys:
                    logger.warning(
                        f"Event {event.id} repeats reminder id {reminder.id}, "
                        "only the last one is scheduled"
                    )
                await self.alarms.schedule_one_shot(
                    key,
                    fire_at,
                    {"type": "reminder", "eventId": event.id, "reminderId": reminder.id},
                )
                keys.add(key)
        except PermissionDeniedError as e:
            logger.info(f"Reminder scheduling for {event.id} stopped: {e}")

        logger.debug(f"Scheduled {len(keys)} reminder(s) for event {event.id}")
        return len(keys)

    async def cancel_event(self, event_id: str) -> int:
        """Cancel every reminder alarm of an event.

        Returns:
            Number of alarms cancelled
        """
        keys = self._keys.pop(event_id, set())
        for key in keys:
            await self.alarms.cancel(key)
        return len(keys)

    async def cancel_all_reminders(self) -> None:
        """Cancel every reminder alarm, leaving the daily summary alone."""
        for event_id in list(self._keys):
            await self.cancel_event(event_id)

    async def resync_all(self, events: Iterable[Event], now: datetime | None = None) -> int:
        """Sync every event. Returns the total number of alarms registered."""
        if now is None:
            now = now_utc()

        total = 0
        for event in events:
            total += await self.sync_event(event, now)
        logger.info(f"Resynced reminders: {total} alarm(s) pending")
        return total

    async def schedule_daily_summary(
        self, time_of_day: str, now: datetime | None = None
    ) -> datetime | None:
        """(Re)schedule the daily summary singleton.

        Args:
            time_of_day: HH:MM (24-hour) in the scheduler's timezone
            now: Current time (UTC)

        Returns:
            First fire time (UTC), or None if notifications are not permitted

        Raises:
            ValueError: if time_of_day is not HH:MM
        """
        if now is None:
            now = now_utc()

        parse_time_of_day(time_of_day)
        await self.alarms.cancel(DAILY_SUMMARY_ALARM)

        if not await self.alarms.get_permission_status():
            logger.info("Notifications not permitted, daily summary not scheduled")
            return None

        first = next_time_of_day(now, time_of_day, self.tz)
        try:
            await self.alarms.schedule_repeating(
                DAILY_SUMMARY_ALARM,
                first,
                timedelta(days=1),
                {"type": "daily-summary"},
            )
        except PermissionDeniedError as e:
            logger.info(f"Daily summary not scheduled: {e}")
            return None

        logger.info(f"Daily summary scheduled for {time_of_day} ({self.tz}), first at {first}")
        return first
