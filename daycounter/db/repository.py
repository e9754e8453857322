"""Event repository contract and storage adapters."""

import copy
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List

import aiosqlite

from daycounter.db.models import Event, RecurringRule, Reminder, Task
from daycounter.utils.errors import StorageError
from daycounter.utils.time_utils import format_timestamp, parse_timestamp

logger = logging.getLogger(__name__)


class EventRepository(ABC):
    """Storage-agnostic persistence for the event collection.

    save() is an upsert by id: an existing event is replaced wholesale,
    a new one is appended. delete() of an unknown id is a no-op.
    No concurrency control: callers use one repository at a time.
    """

    @abstractmethod
    async def save(self, event: Event) -> None:
        """Insert or replace an event."""

    @abstractmethod
    async def fetch(self) -> List[Event]:
        """Return the full collection."""

    @abstractmethod
    async def delete(self, event_id: str) -> None:
        """Remove an event by id."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove every event."""


class SettingsRepository(ABC):
    """Key/value store for user preferences."""

    @abstractmethod
    async def get_setting(self, key: str) -> str | None:
        """Get a stored value, or None."""

    @abstractmethod
    async def set_setting(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""


class MemoryEventRepository(EventRepository, SettingsRepository):
    """In-process adapter. Stores copies so callers cannot mutate it behind its back."""

    def __init__(self) -> None:
        self._events: List[Event] = []
        self._settings: dict[str, str] = {}

    async def save(self, event: Event) -> None:
        stored = copy.deepcopy(event)
        for i, existing in enumerate(self._events):
            if existing.id == event.id:
                self._events[i] = stored
                return
        self._events.append(stored)

    async def fetch(self) -> List[Event]:
        return copy.deepcopy(self._events)

    async def delete(self, event_id: str) -> None:
        self._events = [e for e in self._events if e.id != event_id]

    async def clear(self) -> None:
        self._events = []

    async def get_setting(self, key: str) -> str | None:
        return self._settings.get(key)

    async def set_setting(self, key: str, value: str) -> None:
        self._settings[key] = value


class SqliteEventRepository(EventRepository, SettingsRepository):
    """SQLite adapter. Every aiosqlite failure surfaces as StorageError."""

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._db: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Open database connection."""
        try:
            self._db = await aiosqlite.connect(self.db_path)
        except aiosqlite.Error as e:
            raise StorageError(f"Could not open database at {self.db_path}: {e}") from e
        self._db.row_factory = aiosqlite.Row
        logger.info(f"Connected to database at {self.db_path}")

    async def close(self) -> None:
        """Close database connection."""
        if self._db:
            await self._db.close()
            self._db = None
            logger.info("Database connection closed")

    @property
    def db(self) -> aiosqlite.Connection:
        """Get the database connection."""
        if self._db is None:
            raise StorageError("Database not connected")
        return self._db

    # Event operations

    async def save(self, event: Event) -> None:
        """Insert an event, or replace every column of the existing one."""
        try:
            await self.db.execute(
                """
                INSERT INTO events (
                    id, title, description, created_at, start_at, target_at,
                    timezone, recurring, tasks, reminders, color, icon, category,
                    is_archived, notify_daily_summary
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    title = excluded.title,
                    description = excluded.description,
                    created_at = excluded.created_at,
                    start_at = excluded.start_at,
                    target_at = excluded.target_at,
                    timezone = excluded.timezone,
                    recurring = excluded.recurring,
                    tasks = excluded.tasks,
                    reminders = excluded.reminders,
                    color = excluded.color,
                    icon = excluded.icon,
                    category = excluded.category,
                    is_archived = excluded.is_archived,
                    notify_daily_summary = excluded.notify_daily_summary
                """,
                (
                    event.id,
                    event.title,
                    event.description,
                    format_timestamp(event.created_at),
                    format_timestamp(event.start_at) if event.start_at else None,
                    format_timestamp(event.target_at),
                    event.timezone,
                    json.dumps(event.recurring.to_dict()) if event.recurring else None,
                    json.dumps([task.to_dict() for task in event.tasks]),
                    json.dumps([reminder.to_dict() for reminder in event.reminders]),
                    event.color,
                    event.icon,
                    event.category,
                    1 if event.is_archived else 0,
                    1 if event.notify_daily_summary else 0,
                ),
            )
            await self.db.commit()
        except aiosqlite.Error as e:
            raise StorageError(f"Failed to save event {event.id}: {e}") from e

    async def fetch(self) -> List[Event]:
        """Get all events in insertion order."""
        try:
            async with self.db.execute("SELECT * FROM events ORDER BY rowid") as cursor:
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise StorageError(f"Failed to fetch events: {e}") from e
        return [self._row_to_event(row) for row in rows]

    async def delete(self, event_id: str) -> None:
        """Delete an event."""
        try:
            await self.db.execute("DELETE FROM events WHERE id = ?", (event_id,))
            await self.db.commit()
        except aiosqlite.Error as e:
            raise StorageError(f"Failed to delete event {event_id}: {e}") from e

    async def clear(self) -> None:
        """Delete every event."""
        try:
            await self.db.execute("DELETE FROM events")
            await self.db.commit()
        except aiosqlite.Error as e:
            raise StorageError(f"Failed to clear events: {e}") from e
        logger.info("All events cleared")

    # Settings operations

    async def get_setting(self, key: str) -> str | None:
        """Get a setting value."""
        try:
            async with self.db.execute(
                "SELECT value FROM settings WHERE key = ?", (key,)
            ) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StorageError(f"Failed to read setting {key}: {e}") from e
        return row["value"] if row else None

    async def set_setting(self, key: str, value: str) -> None:
        """Store a setting value."""
        try:
            await self.db.execute(
                "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
                (key, value),
            )
            await self.db.commit()
        except aiosqlite.Error as e:
            raise StorageError(f"Failed to write setting {key}: {e}") from e

    # Helper methods

    def _row_to_event(self, row: aiosqlite.Row) -> Event:
        """Convert a database row to an Event object."""
        return Event(
            id=row["id"],
            title=row["title"],
            description=row["description"],
            created_at=parse_timestamp(row["created_at"]),
            start_at=parse_timestamp(row["start_at"]) if row["start_at"] else None,
            target_at=parse_timestamp(row["target_at"]),
            timezone=row["timezone"],
            recurring=RecurringRule.from_dict(json.loads(row["recurring"]))
            if row["recurring"]
            else None,
            tasks=[Task.from_dict(t) for t in json.loads(row["tasks"])],
            reminders=[Reminder.from_dict(r) for r in json.loads(row["reminders"])],
            color=row["color"],
            icon=row["icon"],
            category=row["category"],
            is_archived=bool(row["is_archived"]),
            notify_daily_summary=bool(row["notify_daily_summary"]),
        )
