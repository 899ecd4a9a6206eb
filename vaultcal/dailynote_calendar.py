"""
Calendar stored as list items under a heading of daily notes.

Daily notes live in one folder and are named YYYY-MM-DD.md. Events are
located by note path and line number, so adding or removing an item moves
the items below it; the cache re-reads the note after every mutation.
"""

import sys
from datetime import date, datetime
from typing import Optional

from . import dailynote_format
from .calendar_base import CalendarKind, EditableCalendar, EventResponse
from .event_record import Classification, EventRecord, Location, SingleTiming
from .exceptions import ValidationError, WriteConflictError
from .identifiers import daily_note_calendar_id
from .vault import VaultIO, normalize_path


def _debug_print(msg: str) -> None:
    timestamp = datetime.now().strftime("%H:%M:%S")
    print(f"[{timestamp}] DAILYNOTE: {msg}", file=sys.stderr)


class DailyNoteCalendar(EditableCalendar):
    """Editable calendar scoped to one heading of every daily note."""

    kind = CalendarKind.DAILYNOTE
    shifts_locations = True

    def __init__(
        self,
        vault: VaultIO,
        color: str,
        heading: str,
        category: Optional[list[Classification]] = None,
        folder: str = "",
    ):
        super().__init__(color, category)
        self._vault = vault
        self._heading = dailynote_format.normalize_heading(heading)
        self._folder = normalize_path(folder)

    @property
    def identifier(self) -> str:
        return daily_note_calendar_id(self._heading)

    @property
    def name(self) -> str:
        return f"Daily note under \"{self._heading}\""

    @property
    def heading(self) -> str:
        return self._heading

    def note_path(self, day: date) -> str:
        name = f"{day.isoformat()}.md"
        return f"{self._folder}/{name}" if self._folder else name

    def note_date(self, path: str) -> Optional[date]:
        """Return the date of a daily note path, or None if the path is not a daily note."""
        path = normalize_path(path)
        folder, _, name = path.rpartition("/")
        if folder != self._folder or not name.endswith(".md"):
            return None
        try:
            return date.fromisoformat(name[:-3])
        except ValueError:
            return None

    def contains_path(self, path: str) -> bool:
        return self.note_date(path) is not None

    def _events_in_text(self, text: str, note_date: date) -> list[tuple[EventRecord, int]]:
        return dailynote_format.events_in_note(
            text, self._heading, note_date, self._category, self._color
        )

    async def get_events_in_file(self, path: str) -> list[EventResponse]:
        path = normalize_path(path)
        note_date = self.note_date(path)
        if note_date is None:
            return []
        try:
            text = await self._vault.read(path)
        except FileNotFoundError:
            return []
        except UnicodeDecodeError as e:
            _debug_print(f"WARNING: Skipping {path}: not valid UTF-8 ({e.reason})")
            return []
        return [
            (record, Location(path, line_no))
            for record, line_no in self._events_in_text(text, note_date)
        ]

    async def list_events(self) -> list[EventResponse]:
        events = []
        for path in await self._vault.list_files(self._folder):
            if self.contains_path(path):
                events.extend(await self.get_events_in_file(path))
        return events

    def _check_single(self, event: EventRecord) -> SingleTiming:
        if not isinstance(event.timing, SingleTiming):
            raise ValidationError("Daily note calendars only hold single events")
        return event.timing

    async def _append(self, event: EventRecord) -> Location:
        timing = self._check_single(event)
        path = self.note_path(timing.date)
        item = dailynote_format.serialize_list_item(event)
        try:
            text = await self._vault.read(path)
        except FileNotFoundError:
            new_text, line_no = dailynote_format.append_to_section("", self._heading, item)
            await self._vault.create(path, new_text)
        else:
            new_text, line_no = dailynote_format.append_to_section(text, self._heading, item)
            await self._vault.write(path, new_text)
        return Location(path, line_no)

    async def create_event(self, event: EventRecord) -> Location:
        location = await self._append(event)
        _debug_print(f"Created event at {location.key()}")
        return location

    async def _check_current(self, location: Location, expected: EventRecord) -> str:
        note_date = self.note_date(location.path)
        try:
            text = await self._vault.read(location.path)
        except (FileNotFoundError, UnicodeDecodeError):
            raise WriteConflictError(location.path, location.line)
        current = dict((line_no, record) for record, line_no in self._events_in_text(text, note_date))
        if current.get(location.line) != expected:
            raise WriteConflictError(location.path, location.line)
        return text

    async def update_event(self, location: Location, expected: EventRecord, event: EventRecord) -> Location:
        timing = self._check_single(event)
        text = await self._check_current(location, expected)

        if self.note_path(timing.date) == location.path:
            item = dailynote_format.serialize_list_item(event)
            await self._vault.write(location.path, dailynote_format.replace_line(text, location.line, item))
            _debug_print(f"Updated event at {location.key()}")
            return location

        # Date changed: move the item to the other note
        await self._vault.write(location.path, dailynote_format.remove_line(text, location.line))
        new_location = await self._append(event)
        _debug_print(f"Moved event from {location.key()} to {new_location.key()}")
        return new_location

    async def delete_event(self, location: Location, expected: EventRecord) -> None:
        text = await self._check_current(location, expected)
        await self._vault.write(location.path, dailynote_format.remove_line(text, location.line))
        _debug_print(f"Deleted event at {location.key()}")
