"""Message text formatters."""

from datetime import datetime
from html import escape
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from daycounter.db.models import Event
from daycounter.engine.countdown import countdown_for_event, format_time_remaining
from daycounter.engine.recurrence import get_next_occurrence
from daycounter.engine.scheduler import compute_fire_time
from daycounter.utils.constants import HANDLE_LENGTH
from daycounter.utils.time_utils import format_offset, from_utc, now_utc


def event_handle(event: Event) -> str:
    """Short id shown to users and accepted by commands."""
    return event.id[:HANDLE_LENGTH]


def display_timezone(event: Event, tz: str) -> str:
    """The event's own timezone when it is a valid IANA name, else tz."""
    if event.timezone:
        try:
            ZoneInfo(event.timezone)
            return event.timezone
        except (ZoneInfoNotFoundError, ValueError):
            pass
    return tz


def progress_bar(progress: float, width: int = 10) -> str:
    """Text progress bar, e.g. "▓▓▓░░░░░░░ 30%"."""
    filled = round(progress * width)
    return f"{'▓' * filled}{'░' * (width - filled)} {round(progress * 100)}%"


def format_event_line(event: Event, tz: str, now: datetime | None = None) -> str:
    """One-entry summary used in lists."""
    if now is None:
        now = now_utc()

    countdown = countdown_for_event(event, now)
    target_local = from_utc(event.target_at, display_timezone(event, tz))
    return (
        f"{event.display_icon} <b>{escape(event.title)}</b> <code>{event_handle(event)}</code>\n"
        f"   {target_local.strftime('%b %d, %Y %H:%M')} · {format_time_remaining(countdown)}\n"
        f"   {progress_bar(countdown.progress)}"
    )


def format_event_list(
    events: list[Event], tz: str, heading: str, now: datetime | None = None
) -> str:
    """Format a list of events."""
    if not events:
        return "No events yet. Add one with /add."

    lines = [f"<b>{heading} ({len(events)})</b>"]
    lines.extend(format_event_line(event, tz, now) for event in events)
    return "\n\n".join(lines)


def format_event(event: Event, tz: str, now: datetime | None = None) -> str:
    """Format an event's detail view."""
    if now is None:
        now = now_utc()

    display_tz = display_timezone(event, tz)
    countdown = countdown_for_event(event, now)
    lines = [f"{event.display_icon} <b>{escape(event.title)}</b> (ID: <code>{event_handle(event)}</code>)"]

    if event.description:
        lines.append(f"<i>{escape(event.description)}</i>")

    target_local = from_utc(event.target_at, display_tz)
    lines.append(f"\n🎯 Target: {target_local.strftime('%b %d, %Y at %H:%M')} ({display_tz})")
    start_local = from_utc(event.effective_start, display_tz)
    lines.append(f"🏁 Started: {start_local.strftime('%b %d, %Y at %H:%M')}")
    lines.append(f"⏳ {format_time_remaining(countdown)}")
    lines.append(progress_bar(countdown.progress))

    if event.category:
        lines.append(f"🏷 Category: {escape(event.category)}")

    if event.recurring:
        recurring = f"🔁 Repeats {event.recurring.frequency}"
        if event.recurring.until:
            until_local = from_utc(event.recurring.until, display_tz)
            recurring += f" until {until_local.strftime('%b %d, %Y')}"
        next_occurrence = get_next_occurrence(event, now)
        if countdown.is_overdue and next_occurrence:
            next_local = from_utc(next_occurrence, display_tz)
            recurring += f" (next: {next_local.strftime('%b %d, %Y')})"
        lines.append(recurring)

    if event.tasks:
        done = sum(1 for task in event.tasks if task.done)
        lines.append(f"\n<b>Tasks ({done}/{len(event.tasks)})</b>")
        for i, task in enumerate(event.tasks, start=1):
            mark = "✅" if task.done else "⬜"
            date = f" ({escape(task.date)})" if task.date else ""
            lines.append(f"{i}. {mark} {escape(task.text)}{date}")

    if event.reminders:
        lines.append("\n<b>Reminders</b>")
        for reminder in event.reminders:
            fire_at = compute_fire_time(event.target_at, reminder.offset_minutes_from_target)
            fire_local = from_utc(fire_at, display_tz)
            status = "sent" if fire_at <= now else fire_local.strftime("%b %d %H:%M")
            lines.append(f"🔔 {format_offset(reminder.offset_minutes_from_target)} ({status})")

    if event.is_archived:
        lines.append("\n📦 Archived")

    return "\n".join(lines)


def format_welcome_message() -> str:
    """Format the welcome message for /start."""
    return """
<b>Welcome to DayCounter!</b> 📅

I count down to your exams, deadlines and big days, and remind you before they arrive.

<b>Quick Start:</b>
• /add Final exam | 2026-12-14 09:00 - Create a countdown
• /list - See all your countdowns
• /help - Full command list

Notifications are on for this chat.
""".strip()


def format_help_message() -> str:
    """Format the help message."""
    return """
<b>DayCounter Commands 📅</b>

<b>Countdowns:</b>
/add &lt;title&gt; | &lt;target&gt; [| &lt;start&gt;] - Create a countdown
   Add <code>#exam</code>, <code>#work</code>... to the title to set a category
/list - All active countdowns
/upcoming [n] - The next n countdowns
/show &lt;id&gt; - Details, tasks and reminders
/archive &lt;id&gt; - Hide a countdown without deleting it
/delete &lt;id&gt; - Delete a countdown

<b>Tasks & Reminders:</b>
/task &lt;id&gt; &lt;text&gt; - Add a checklist item
/toggle &lt;id&gt; &lt;n&gt; - Tick / untick task n
/remind &lt;id&gt; [&lt;offset&gt;] - e.g. <code>1h</code>, <code>1d</code>, <code>1w</code> before, <code>-90</code> minutes, <code>+30</code> after; no offset shows presets
/repeat &lt;id&gt; daily|weekly|monthly|off [until] - Make a countdown recur

<b>Settings & Data:</b>
/summary [HH:MM] - Daily summary time
/export - JSON backup
/exportics - iCalendar export
Send a .json or .ics file to import it
/clear - Delete everything
""".strip()
