"""Tests for iCalendar export and import."""

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from daycounter.backup.ics_codec import (
    escape_text,
    export_to_ics,
    parse_ics,
    parse_ics_date,
    unescape_text,
)
from daycounter.backup.json_codec import import_from_json
from daycounter.db.models import RecurringRule, create_event
from daycounter.utils.errors import FormatError

UTC = ZoneInfo("UTC")
NOW = datetime(2026, 3, 15, 12, 0, tzinfo=UTC)


def test_export_layout():
    event = create_event(
        "Exam", datetime(2026, 4, 14, 9, 0, tzinfo=UTC), now=NOW, id="abc"
    )
    text = export_to_ics([event])

    assert text.startswith("BEGIN:VCALENDAR\r\nVERSION:2.0\r\nPRODID:-//DayCounter//Event Tracker//EN\r\n")
    assert text.endswith("END:VCALENDAR\r\n")
    assert "UID:abc@daycounter.app\r\n" in text
    # No start_at: DTSTART is the creation time
    assert "DTSTART:20260315T120000Z\r\n" in text
    assert "DTEND:20260414T090000Z\r\n" in text
    assert "SUMMARY:Exam\r\n" in text
    assert "DESCRIPTION" not in text
    assert "RRULE" not in text


def test_round_trip():
    """Ids, titles, targets and starts survive export and import."""
    events = [
        create_event(
            "Exam",
            datetime(2026, 4, 14, 9, 0, tzinfo=UTC),
            now=NOW,
            description="Bring ID",
        ),
        create_event(
            "Launch",
            datetime(2026, 6, 1, 17, 30, tzinfo=UTC),
            now=NOW,
            start_at=datetime(2026, 3, 1, tzinfo=UTC),
        ),
    ]

    parsed = parse_ics(export_to_ics(events), now=NOW)

    assert [e.id for e in parsed] == [e.id for e in events]
    assert [e.title for e in parsed] == ["Exam", "Launch"]
    assert [e.target_at for e in parsed] == [e.target_at for e in events]
    assert [e.effective_start for e in parsed] == [e.effective_start for e in events]
    assert parsed[0].description == "Bring ID"


def test_text_escaping_round_trip():
    title = "Lunch; with, Bob \\ friends"
    description = "Line one\nLine two"
    event = create_event(title, NOW + timedelta(days=1), now=NOW, description=description)

    text = export_to_ics([event])
    assert "SUMMARY:Lunch\\; with\\, Bob \\\\ friends\r\n" in text
    assert "DESCRIPTION:Line one\\nLine two\r\n" in text

    [parsed] = parse_ics(text, now=NOW)
    assert parsed.title == title
    assert parsed.description == description


def test_escape_helpers():
    assert escape_text("a,b;c") == "a\\,b\\;c"
    assert unescape_text("a\\,b\\;c\\Nd") == "a,b;c\nd"


def test_recurring_round_trip():
    event = create_event(
        "Standup",
        datetime(2026, 3, 16, 9, 0, tzinfo=UTC),
        now=NOW,
        recurring=RecurringRule("weekly", until=datetime(2026, 12, 31, tzinfo=UTC)),
    )
    text = export_to_ics([event])
    assert "RRULE:FREQ=WEEKLY;UNTIL=20261231T000000Z\r\n" in text

    [parsed] = parse_ics(text, now=NOW)
    assert parsed.recurring == event.recurring


def test_incomplete_blocks_are_dropped():
    """Blocks without a SUMMARY or a DTEND never become events."""
    text = "\n".join(
        [
            "BEGIN:VCALENDAR",
            "BEGIN:VEVENT",
            "SUMMARY:No end",
            "DTSTART:20260401T090000Z",
            "END:VEVENT",
            "BEGIN:VEVENT",
            "DTEND:20260401T090000Z",
            "END:VEVENT",
            "BEGIN:VEVENT",
            "SUMMARY:Complete",
            "DTEND:20260401T090000Z",
            "END:VEVENT",
            "END:VCALENDAR",
        ]
    )

    [event] = parse_ics(text, now=NOW)
    assert event.title == "Complete"
    # No UID: a fresh id is generated
    assert len(event.id) == 36
    assert event.created_at == NOW


def test_parameters_and_foreign_uid():
    text = "\r\n".join(
        [
            "BEGIN:VCALENDAR",
            "BEGIN:VEVENT",
            "UID:1234@example.com",
            "SUMMARY;LANGUAGE=en:Dentist",
            "DTEND;VALUE=DATE-TIME:20260401T090000Z",
            "END:VEVENT",
            "END:VCALENDAR",
        ]
    )

    [event] = parse_ics(text, now=NOW)
    assert event.id == "1234@example.com"
    assert event.title == "Dentist"
    assert event.target_at == datetime(2026, 4, 1, 9, 0, tzinfo=UTC)


def test_unsupported_dates_fall_back_to_now():
    assert parse_ics_date("20260401", NOW) == NOW
    assert parse_ics_date("20260401T090000", NOW) == NOW
    assert parse_ics_date("2026040XT090000Z", NOW) == NOW
    assert parse_ics_date("20260401T090000Z", NOW) == datetime(2026, 4, 1, 9, 0, tzinfo=UTC)


def test_unclosed_vevent_raises():
    text = "BEGIN:VCALENDAR\r\nBEGIN:VEVENT\r\nSUMMARY:Cut off\r\nDTEND:20260401T090000Z\r\n"

    with pytest.raises(FormatError):
        parse_ics(text, now=NOW)


def test_empty_calendar():
    assert parse_ics(export_to_ics([]), now=NOW) == []


def test_export_skips_unmappable_recurrence():
    """An imported rule with an unknown frequency never breaks the export."""
    imported = import_from_json(
        '[{"id": "a", "title": "Anniversary", "targetAt": "2027-01-01T00:00:00Z",'
        ' "recurring": {"frequency": "yearly"}}]'
    )
    text = export_to_ics(imported)
    assert "UID:a@daycounter.app\r\n" in text
    assert "RRULE" not in text

    # Built in code, bypassing import
    event = create_event(
        "Anniversary",
        datetime(2027, 1, 1, tzinfo=UTC),
        now=NOW,
        recurring=RecurringRule("yearly"),  # type: ignore[arg-type]
    )
    text = export_to_ics([event])
    assert "SUMMARY:Anniversary\r\n" in text
    assert "RRULE" not in text


def test_folded_lines_are_joined():
    text = "\r\n".join(
        [
            "BEGIN:VCALENDAR",
            "BEGIN:VEVENT",
            "SUMMARY:Quarterly plan",
            " ning review",
            "DESCRIPTION:Agenda: budget\\, hiring",
            "\t and roadmap",
            "DTEND:20260401T090000Z",
            "END:VEVENT",
            "END:VCALENDAR",
        ]
    )

    [event] = parse_ics(text, now=NOW)
    assert event.title == "Quarterly planning review"
    assert event.description == "Agenda: budget, hiring and roadmap"
    assert event.target_at == datetime(2026, 4, 1, 9, 0, tzinfo=UTC)
