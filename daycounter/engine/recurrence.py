"""RRULE mapping for recurring events."""

from datetime import datetime
from zoneinfo import ZoneInfo

from dateutil.rrule import DAILY, MONTHLY, WEEKLY, rrule, rrulestr

from daycounter.db.models import Event, RecurringRule
from daycounter.utils.constants import ICS_DATE_FORMAT

_FREQ_TO_RRULE = {
    "daily": "DAILY",
    "weekly": "WEEKLY",
    "monthly": "MONTHLY",
}

_RRULE_TO_FREQ = {value: key for key, value in _FREQ_TO_RRULE.items()}

_DATEUTIL_FREQ = {
    "daily": DAILY,
    "weekly": WEEKLY,
    "monthly": MONTHLY,
}


def to_rrule(rule: RecurringRule) -> str:
    """Build an RRULE value from a recurring rule.

    Examples:
        daily -> "FREQ=DAILY"
        weekly until 2026-12-31 -> "FREQ=WEEKLY;UNTIL=20261231T000000Z"
    """
    freq = _FREQ_TO_RRULE.get(rule.frequency)
    if freq is None:
        raise ValueError(f"Unsupported frequency: {rule.frequency}")

    value = f"FREQ={freq}"
    if rule.until is not None:
        until = rule.until.astimezone(ZoneInfo("UTC"))
        value += f";UNTIL={until.strftime(ICS_DATE_FORMAT)}"
    return value


def from_rrule(rrule_str: str) -> RecurringRule | None:
    """Map an RRULE value back to a recurring rule.

    Returns:
        RecurringRule, or None if the rule is not a plain daily/weekly/monthly one
    """
    # Let dateutil reject garbage before picking the parts we understand
    try:
        rrulestr(rrule_str, dtstart=datetime(2000, 1, 1, tzinfo=ZoneInfo("UTC")))
    except (ValueError, TypeError):
        return None

    parts = {}
    for chunk in rrule_str.strip().split(";"):
        key, _, value = chunk.partition("=")
        parts[key.strip().upper()] = value.strip()

    frequency = _RRULE_TO_FREQ.get(parts.get("FREQ", "").upper())
    if frequency is None:
        return None

    until = None
    if "UNTIL" in parts:
        try:
            until = datetime.strptime(parts["UNTIL"], ICS_DATE_FORMAT).replace(
                tzinfo=ZoneInfo("UTC")
            )
        except ValueError:
            until = None

    return RecurringRule(frequency=frequency, until=until)  # type: ignore[arg-type]


def get_next_occurrence(event: Event, after: datetime) -> datetime | None:
    """Get the first occurrence of a recurring event strictly after `after`.

    The event's target is the first occurrence.

    Returns:
        Next occurrence (UTC), or None if the event does not recur or the
        rule has ended
    """
    if event.recurring is None:
        return None

    freq = _DATEUTIL_FREQ.get(event.recurring.frequency)
    if freq is None:
        return None

    if event.target_at > after:
        return event.target_at

    rule = rrule(
        freq,
        dtstart=event.target_at,
        until=event.recurring.until,
    )
    return rule.after(after)
