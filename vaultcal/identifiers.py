"""
Deterministic event identifiers.

An event id is "<calendar id>::<key>". The key comes from where the event is
stored (a note path, a path and line number, or a remote UID plus the date of
an overridden instance), never from its title or time, so editing an event
keeps its id while moving it to another store changes it.
"""

import hashlib
from typing import Optional

from .event_record import EventRecord, Location, to_raw


SEPARATOR = "::"

# Calendar id prefix for heading-scoped daily note calendars
DAILY_NOTE_PREFIX = "dailynote:"


def daily_note_calendar_id(heading: str) -> str:
    return f"{DAILY_NOTE_PREFIX}{heading}"


def is_valid_calendar_id(calendar_id: str) -> bool:
    """Calendar ids must be non-empty and must not contain the separator."""
    return bool(calendar_id) and SEPARATOR not in calendar_id


def _remote_key(record: EventRecord) -> str:
    uid = record.uid
    if not uid:
        # Feeds without UIDs are rare; fall back to a stable digest of the event
        digest = hashlib.md5(repr(sorted(to_raw(record).items())).encode()).hexdigest()[:12]
        uid = f"nouid-{digest}"
    if record.override_date is not None:
        return f"{uid}{SEPARATOR}{record.override_date.isoformat()}"
    return uid


def make_event_id(calendar_id: str, record: EventRecord, location: Optional[Location]) -> str:
    """
    Build the identifier of an event.

    Args:
        calendar_id: Identifier of the owning calendar
        record: The event (only uid and override_date are used)
        location: Where the event is stored, None for remote events

    Returns:
        The event identifier.
    """
    if location is not None:
        key = location.key()
        if record.override_date is not None:
            key = f"{key}{SEPARATOR}{record.override_date.isoformat()}"
    else:
        key = _remote_key(record)
    return f"{calendar_id}{SEPARATOR}{key}"


def calendar_id_of(event_id: str) -> str:
    """Return the calendar id an event id was built from."""
    calendar_id, sep, _ = event_id.partition(SEPARATOR)
    if not sep:
        raise ValueError(f"Not an event id: {event_id!r}")
    return calendar_id

