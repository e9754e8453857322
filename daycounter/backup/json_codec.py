"""JSON backup format: a pretty-printed array of events."""

import json
from typing import Iterable, List

from daycounter.db.models import Event
from daycounter.utils.errors import FormatError


def export_to_json(events: Iterable[Event]) -> str:
    """Serialize events as a JSON array (2-space indent)."""
    return json.dumps([event.to_dict() for event in events], indent=2, ensure_ascii=False)


def import_from_json(text: str) -> List[Event]:
    """Parse a JSON backup.

    Records are converted without field-by-field validation; only a
    missing or unparseable targetAt rejects a record.

    Raises:
        FormatError: if the text is not JSON, is not an array, or holds a
            record that cannot become an Event
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise FormatError(f"Invalid JSON format: {e}") from e

    if not isinstance(data, list):
        raise FormatError(f"Expected a JSON array of events, got {type(data).__name__}")

    events = []
    for index, item in enumerate(data):
        try:
            events.append(Event.from_dict(item))
        except (ValueError, TypeError) as e:
            raise FormatError(f"Item {index}: {e}") from e
    return events
