"""Application state: the event collection as seen by the front end."""

import dataclasses
import logging
from typing import Iterable, List

from daycounter.db.models import Event, create_reminder, create_task
from daycounter.db.repository import EventRepository, SettingsRepository
from daycounter.engine.scheduler import ReminderScheduler
from daycounter.utils.constants import (
    DEFAULT_DAILY_SUMMARY_TIME,
    SETTING_DAILY_SUMMARY_TIME,
)
from daycounter.utils.time_utils import parse_time_of_day

logger = logging.getLogger(__name__)


class EventStore:
    """In-memory view of the collection backed by a repository.

    Every mutation goes to the repository first and the collection is then
    re-read from it. If the repository raises, the in-memory collection is
    left as it was and the error propagates.
    """

    def __init__(
        self,
        repo: EventRepository,
        scheduler: ReminderScheduler | None = None,
        default_summary_time: str = DEFAULT_DAILY_SUMMARY_TIME,
    ):
        self.repo = repo
        self.scheduler = scheduler
        self.default_summary_time = default_summary_time
        self._events: List[Event] = []

    @property
    def events(self) -> List[Event]:
        """Snapshot of the collection."""
        return list(self._events)

    async def load(self) -> List[Event]:
        """Reload the collection from the repository."""
        self._events = await self.repo.fetch()
        return self.events

    def get(self, event_id: str) -> Event | None:
        """Get an event by exact id."""
        for event in self._events:
            if event.id == event_id:
                return event
        return None

    def find(self, handle: str) -> Event | None:
        """Get an event by id or unique id prefix."""
        handle = handle.strip()
        if not handle:
            return None

        exact = self.get(handle)
        if exact:
            return exact

        matches = [e for e in self._events if e.id.startswith(handle)]
        return matches[0] if len(matches) == 1 else None

    # Mutations

    async def add(self, event: Event) -> Event:
        """Persist a new event and schedule its reminders."""
        await self.repo.save(event)
        await self.load()
        await self._sync(event)
        logger.info(f"Added event {event.id} ({event.title})")
        return event

    async def update(self, event: Event) -> Event:
        """Persist a changed event (full replacement) and reschedule its reminders."""
        await self.repo.save(event)
        await self.load()
        await self._sync(event)
        return event

    async def delete(self, event_id: str) -> None:
        """Delete an event and cancel its reminders."""
        await self.repo.delete(event_id)
        await self.load()
        if self.scheduler:
            await self.scheduler.cancel_event(event_id)
        logger.info(f"Deleted event {event_id}")

    async def clear(self) -> None:
        """Delete every event and cancel all reminders."""
        await self.repo.clear()
        self._events = []
        if self.scheduler:
            await self.scheduler.cancel_all_reminders()

    async def import_events(self, events: Iterable[Event]) -> int:
        """Save a batch of imported events (upsert by id).

        Returns:
            Number of events saved
        """
        imported = list(events)
        for event in imported:
            await self.repo.save(event)
        await self.load()
        for event in imported:
            await self._sync(event)
        logger.info(f"Imported {len(imported)} event(s)")
        return len(imported)

    async def archive(self, event_id: str, archived: bool = True) -> Event | None:
        """Archive (or restore) an event."""
        event = self.get(event_id)
        if event is None:
            return None
        return await self.update(dataclasses.replace(event, is_archived=archived))

    async def add_task(self, event_id: str, text: str, date: str = "") -> Event | None:
        """Append a checklist item to an event."""
        event = self.get(event_id)
        if event is None:
            return None
        tasks = [*event.tasks, create_task(text, date)]
        return await self.update(dataclasses.replace(event, tasks=tasks))

    async def toggle_task(self, event_id: str, index: int) -> Event | None:
        """Flip the done flag of the index-th task (0-based).

        Raises:
            IndexError: if the event has no such task
        """
        event = self.get(event_id)
        if event is None:
            return None
        if not 0 <= index < len(event.tasks):
            raise IndexError(f"Event {event_id} has no task #{index + 1}")

        tasks = list(event.tasks)
        tasks[index] = dataclasses.replace(tasks[index], done=not tasks[index].done)
        return await self.update(dataclasses.replace(event, tasks=tasks))

    async def add_reminder(
        self, event_id: str, offset_minutes: int, time_of_day: str | None = None
    ) -> Event | None:
        """Add a reminder to an event and reschedule."""
        event = self.get(event_id)
        if event is None:
            return None
        reminders = [*event.reminders, create_reminder(offset_minutes, time_of_day)]
        return await self.update(dataclasses.replace(event, reminders=reminders))

    # Settings

    async def daily_summary_time(self) -> str:
        """Persisted daily summary time, or the default."""
        if isinstance(self.repo, SettingsRepository):
            value = await self.repo.get_setting(SETTING_DAILY_SUMMARY_TIME)
            if value:
                return value
        return self.default_summary_time

    async def set_daily_summary_time(self, value: str) -> None:
        """Persist a new daily summary time and reschedule the summary.

        Raises:
            ValueError: if value is not HH:MM
        """
        parse_time_of_day(value)
        if isinstance(self.repo, SettingsRepository):
            await self.repo.set_setting(SETTING_DAILY_SUMMARY_TIME, value)
        if self.scheduler:
            await self.scheduler.schedule_daily_summary(value)

    async def _sync(self, event: Event) -> None:
        if self.scheduler:
            await self.scheduler.sync_event(event)
