"""Alarm and notification service boundaries."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List

from daycounter.utils.errors import PermissionDeniedError

logger = logging.getLogger(__name__)

AlarmPayload = Dict[str, Any]


class AlarmService(ABC):
    """Registers timers that fire later and hand their payload back.

    Scheduling under an existing key replaces that alarm. Cancelling an
    unknown key is a no-op.
    """

    @abstractmethod
    async def schedule_one_shot(
        self, key: str, when: datetime, payload: AlarmPayload
    ) -> None:
        """Fire once at `when`."""

    @abstractmethod
    async def schedule_repeating(
        self, key: str, first: datetime, interval: timedelta, payload: AlarmPayload
    ) -> None:
        """Fire at `first`, then every `interval`."""

    @abstractmethod
    async def cancel(self, key: str) -> None:
        """Cancel the alarm registered under key, if any."""

    @abstractmethod
    async def cancel_all(self) -> None:
        """Cancel every alarm."""

    @abstractmethod
    async def request_permission(self) -> bool:
        """Ask for permission to notify. Returns whether it was granted."""

    @abstractmethod
    async def get_permission_status(self) -> bool:
        """Whether notifications are currently permitted."""

    @abstractmethod
    def scheduled_keys(self) -> List[str]:
        """Keys of the alarms currently pending."""


class Notifier(ABC):
    """Delivers a notification to the user."""

    @abstractmethod
    async def notify(self, title: str, message: str) -> None:
        """Send a notification.

        Raises:
            PermissionDeniedError: if the user can no longer be notified
        """


@dataclass
class ScheduledAlarm:
    """A pending alarm held by InMemoryAlarmService."""

    key: str
    when: datetime  # UTC
    payload: AlarmPayload
    interval: timedelta | None = None


class InMemoryAlarmService(AlarmService):
    """Alarm service that only records what was scheduled.

    Alarms are fired explicitly through fire_due(), which makes it usable
    from tests and from hosts that run their own clock.
    """

    def __init__(self, granted: bool = True) -> None:
        self.granted = granted
        self.alarms: Dict[str, ScheduledAlarm] = {}

    async def schedule_one_shot(
        self, key: str, when: datetime, payload: AlarmPayload
    ) -> None:
        if not self.granted:
            raise PermissionDeniedError("Notifications are not permitted")
        self.alarms[key] = ScheduledAlarm(key=key, when=when, payload=payload)

    async def schedule_repeating(
        self, key: str, first: datetime, interval: timedelta, payload: AlarmPayload
    ) -> None:
        if not self.granted:
            raise PermissionDeniedError("Notifications are not permitted")
        self.alarms[key] = ScheduledAlarm(
            key=key, when=first, payload=payload, interval=interval
        )

    async def cancel(self, key: str) -> None:
        self.alarms.pop(key, None)

    async def cancel_all(self) -> None:
        self.alarms.clear()

    async def request_permission(self) -> bool:
        return self.granted

    async def get_permission_status(self) -> bool:
        return self.granted

    def scheduled_keys(self) -> List[str]:
        return list(self.alarms)

    def fire_due(self, now: datetime) -> List[AlarmPayload]:
        """Pop every alarm due at `now` and return their payloads.

        Repeating alarms are re-armed one interval later.
        """
        fired = []
        for key, alarm in sorted(self.alarms.items(), key=lambda item: item[1].when):
            if alarm.when > now:
                continue
            fired.append(alarm.payload)
            if alarm.interval is not None:
                while alarm.when <= now:
                    alarm.when += alarm.interval
            else:
                del self.alarms[key]
        return fired
