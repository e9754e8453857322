"""Data models."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from daycounter.utils.constants import DEFAULT_COLOR, EVENT_ICONS, RECURRING_FREQUENCIES
from daycounter.utils.time_utils import format_timestamp, now_utc, parse_timestamp

Frequency = Literal["daily", "weekly", "monthly"]


def generate_id() -> str:
    """Opaque unique identifier for events, tasks and reminders."""
    return str(uuid.uuid4())


@dataclass
class Task:
    """Checklist item attached to an event."""

    id: str
    text: str
    done: bool = False
    date: str = ""  # Free-form date string chosen by the user

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "text": self.text, "done": self.done, "date": self.date}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        return cls(
            id=str(data.get("id") or generate_id()),
            text=str(data.get("text") or ""),
            done=bool(data.get("done", False)),
            date=str(data.get("date") or ""),
        )


@dataclass
class Reminder:
    """A notification relative to the event target."""

    id: str
    offset_minutes_from_target: int  # Negative = before target
    time_of_day: str | None = None  # HH:MM, informational

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "offsetMinutesFromTarget": self.offset_minutes_from_target,
        }
        if self.time_of_day is not None:
            data["timeOfDay"] = self.time_of_day
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Reminder":
        return cls(
            id=str(data.get("id") or generate_id()),
            offset_minutes_from_target=int(data.get("offsetMinutesFromTarget", 0)),
            time_of_day=data.get("timeOfDay"),
        )


@dataclass
class RecurringRule:
    """Recurrence annotation. Stored, never expanded by the core."""

    frequency: Frequency
    until: datetime | None = None  # UTC

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"frequency": self.frequency}
        if self.until is not None:
            data["until"] = format_timestamp(self.until)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RecurringRule":
        # Older exports used "freq"
        frequency = data.get("frequency", data.get("freq", "daily"))
        until = data.get("until")
        return cls(
            frequency=frequency,
            until=parse_timestamp(until) if until else None,
        )


@dataclass
class Event:
    """A countdown target."""

    id: str
    title: str
    created_at: datetime  # UTC
    target_at: datetime  # UTC
    description: str = ""
    start_at: datetime | None = None  # UTC, progress starts here (else created_at)
    timezone: str | None = None  # Display only
    recurring: RecurringRule | None = None
    tasks: list[Task] = field(default_factory=list)
    reminders: list[Reminder] = field(default_factory=list)
    color: str = DEFAULT_COLOR
    icon: str | None = None
    category: str | None = None
    is_archived: bool = False
    notify_daily_summary: bool = True

    @property
    def effective_start(self) -> datetime:
        """Instant progress is measured from."""
        return self.start_at if self.start_at is not None else self.created_at

    @property
    def display_icon(self) -> str:
        """Explicit icon, else the category icon, else the default icon."""
        if self.icon:
            return self.icon
        return EVENT_ICONS.get(self.category or "default", EVENT_ICONS["default"])

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the portable camelCase field names."""
        data: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "createdAt": format_timestamp(self.created_at),
        }
        if self.start_at is not None:
            data["startAt"] = format_timestamp(self.start_at)
        data["targetAt"] = format_timestamp(self.target_at)
        if self.timezone is not None:
            data["timezone"] = self.timezone
        if self.recurring is not None:
            data["recurring"] = self.recurring.to_dict()
        data["tasks"] = [task.to_dict() for task in self.tasks]
        data["reminders"] = [reminder.to_dict() for reminder in self.reminders]
        data["color"] = self.color
        if self.icon is not None:
            data["icon"] = self.icon
        if self.category is not None:
            data["category"] = self.category
        data["isArchived"] = self.is_archived
        data["notifyDailySummary"] = self.notify_daily_summary
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Event":
        """Build an event from its serialized form.

        Only targetAt is mandatory; every other field falls back to the
        factory default.

        Raises:
            ValueError: if data is not a mapping or targetAt is missing/invalid
        """
        if not isinstance(data, dict):
            raise ValueError(f"Event record must be an object, got {type(data).__name__}")
        if not data.get("targetAt"):
            raise ValueError(f"Event {data.get('id', '?')} has no targetAt")

        created_raw = data.get("createdAt")
        start_raw = data.get("startAt")
        recurring_raw = data.get("recurring")
        tasks_raw = data.get("tasks") or []
        reminders_raw = data.get("reminders") or []

        return cls(
            id=str(data.get("id") or generate_id()),
            title=str(data.get("title") or ""),
            description=data.get("description") or "",
            created_at=parse_timestamp(created_raw) if created_raw else now_utc(),
            start_at=parse_timestamp(start_raw) if start_raw else None,
            target_at=parse_timestamp(data["targetAt"]),
            timezone=data.get("timezone"),
            recurring=_recurring_from_dict(recurring_raw),
            tasks=[Task.from_dict(t) for t in tasks_raw if isinstance(t, dict)],
            reminders=[Reminder.from_dict(r) for r in reminders_raw if isinstance(r, dict)],
            color=data.get("color") or DEFAULT_COLOR,
            icon=data.get("icon"),
            category=data.get("category"),
            is_archived=bool(data.get("isArchived", False)),
            notify_daily_summary=bool(data.get("notifyDailySummary", True)),
        )


def _recurring_from_dict(data: Any) -> RecurringRule | None:
    """Recurring rule of a serialized event; unknown frequencies are dropped."""
    if not isinstance(data, dict):
        return None
    rule = RecurringRule.from_dict(data)
    if rule.frequency not in RECURRING_FREQUENCIES:
        return None
    return rule


@dataclass(frozen=True)
class Countdown:
    """Time remaining until an event target. Derived, never persisted."""

    days: int
    hours: int
    minutes: int
    seconds: int
    total_seconds: int
    is_overdue: bool
    progress: float  # 0-1


def create_event(
    title: str,
    target_at: datetime,
    now: datetime | None = None,
    **fields: Any,
) -> Event:
    """Create a new event with defaults filled in.

    Args:
        title: Display title, must not be blank
        target_at: Instant the countdown counts down to
        now: Creation time (UTC), defaults to the current instant
        **fields: Any other Event field (description, start_at, reminders, ...)

    Raises:
        ValueError: if the title is blank
    """
    if not title or not title.strip():
        raise ValueError("Event title must not be empty")

    created_at = now if now is not None else now_utc()
    fields.setdefault("id", generate_id())
    return Event(
        title=title.strip(),
        created_at=parse_timestamp(created_at),
        target_at=parse_timestamp(target_at),
        **fields,
    )


def create_task(text: str, date: str = "") -> Task:
    """Create an open checklist item."""
    return Task(id=generate_id(), text=text, done=False, date=date)


def create_reminder(offset_minutes: int, time_of_day: str | None = None) -> Reminder:
    """Create a reminder offset_minutes relative to the target."""
    return Reminder(
        id=generate_id(),
        offset_minutes_from_target=offset_minutes,
        time_of_day=time_of_day,
    )
