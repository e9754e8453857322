"""Minimal iCalendar (RFC 5545) export and import."""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List
from zoneinfo import ZoneInfo

from daycounter.db.models import Event, create_event
from daycounter.engine.recurrence import from_rrule, to_rrule
from daycounter.utils.constants import ICS_DATE_FORMAT, ICS_PRODID, ICS_UID_DOMAIN
from daycounter.utils.errors import FormatError
from daycounter.utils.time_utils import now_utc

logger = logging.getLogger(__name__)

CRLF = "\r\n"


def format_ics_date(dt: datetime) -> str:
    """Format an instant as YYYYMMDDTHHMMSSZ."""
    return dt.astimezone(ZoneInfo("UTC")).strftime(ICS_DATE_FORMAT)


def parse_ics_date(value: str, now: datetime | None = None) -> datetime:
    """Parse YYYYMMDDTHHMMSSZ.

    Any other shape (floating times, TZID-local times, all-day dates)
    falls back to `now`. This is lossy on purpose.
    """
    if len(value) == 16:
        try:
            return datetime.strptime(value, ICS_DATE_FORMAT).replace(tzinfo=ZoneInfo("UTC"))
        except ValueError:
            pass
    logger.debug(f"Unsupported ICS date {value!r}, using current time")
    return now if now is not None else now_utc()


def escape_text(value: str) -> str:
    """Escape a TEXT value."""
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def unescape_text(value: str) -> str:
    """Undo escape_text."""
    out = []
    chars = iter(value)
    for char in chars:
        if char != "\\":
            out.append(char)
            continue
        nxt = next(chars, "")
        if nxt in ("n", "N"):
            out.append("\n")
        else:
            out.append(nxt)
    return "".join(out)


def export_to_ics(events: Iterable[Event]) -> str:
    """Render events as a VCALENDAR document.

    DTSTART is the event's start (or creation time), DTEND its target.
    """
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{ICS_PRODID}",
    ]

    for event in events:
        lines.append("BEGIN:VEVENT")
        lines.append(f"UID:{event.id}@{ICS_UID_DOMAIN}")
        lines.append(f"DTSTART:{format_ics_date(event.effective_start)}")
        lines.append(f"DTEND:{format_ics_date(event.target_at)}")
        lines.append(f"SUMMARY:{escape_text(event.title)}")
        if event.description:
            lines.append(f"DESCRIPTION:{escape_text(event.description)}")
        if event.recurring is not None:
            try:
                lines.append(f"RRULE:{to_rrule(event.recurring)}")
            except ValueError as e:
                logger.debug(f"Skipping RRULE for event {event.id}: {e}")
        lines.append("END:VEVENT")

    lines.append("END:VCALENDAR")
    return CRLF.join(lines) + CRLF


def parse_ics(text: str, now: datetime | None = None) -> List[Event]:
    """Parse VEVENT blocks back into events.

    A block becomes an event only if it had both a SUMMARY and a DTEND;
    anything else is dropped silently.

    Args:
        text: ICS document
        now: Fallback for unsupported dates and creation time of the events

    Raises:
        FormatError: if a VEVENT block is still open at the end of the input
    """
    if now is None:
        now = now_utc()

    events: List[Event] = []
    current: Dict[str, Any] | None = None

    for line in _unfold(text):
        trimmed = line.strip()
        if not trimmed:
            continue

        if trimmed == "BEGIN:VEVENT":
            current = {}
            continue

        if trimmed == "END:VEVENT":
            if current is not None:
                event = _build_event(current, now)
                if event is not None:
                    events.append(event)
            current = None
            continue

        if current is None:
            continue

        name, sep, value = trimmed.partition(":")
        if not sep:
            continue
        name = name.split(";", 1)[0].upper()

        if name == "UID":
            uid = value.strip()
            suffix = f"@{ICS_UID_DOMAIN}"
            current["id"] = uid[: -len(suffix)] if uid.endswith(suffix) else uid
        elif name == "SUMMARY":
            current["title"] = unescape_text(value)
        elif name == "DESCRIPTION":
            current["description"] = unescape_text(value)
        elif name == "DTSTART":
            current["start_at"] = parse_ics_date(value, now)
        elif name == "DTEND":
            current["target_at"] = parse_ics_date(value, now)
        elif name == "RRULE":
            current["recurring"] = from_rrule(value)

    if current is not None:
        raise FormatError("Truncated ICS: VEVENT block was never closed")

    logger.info(f"Parsed {len(events)} event(s) from ICS")
    return events


def _unfold(text: str) -> List[str]:
    """Join folded lines: a line starting with a space or tab continues the previous one."""
    lines: List[str] = []
    for line in text.splitlines():
        if line[:1] in (" ", "\t") and lines:
            lines[-1] += line[1:]
        else:
            lines.append(line)
    return lines


def _build_event(fields: Dict[str, Any], now: datetime) -> Event | None:
    title = fields.pop("title", "")
    target_at = fields.pop("target_at", None)
    if not title.strip() or target_at is None:
        return None

    if not fields.get("id"):
        fields.pop("id", None)
    return create_event(title, target_at, now=now, **fields)
