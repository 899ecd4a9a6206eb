"""
Calendar stored as one note per event inside a vault directory.

Every markdown note below the directory whose frontmatter describes a valid
event is one event. Notes are named after the event's date; the name is kept
when the event is edited so that its identifier does not change.
"""

import sys
from datetime import datetime
from typing import Optional

from . import frontmatter
from .calendar_base import CalendarKind, EditableCalendar, EventResponse
from .event_record import Classification, EventRecord, Location, SingleTiming
from .exceptions import ValidationError, WriteConflictError
from .vault import VaultIO, normalize_path


def _debug_print(msg: str) -> None:
    timestamp = datetime.now().strftime("%H:%M:%S")
    print(f"[{timestamp}] LOCAL: {msg}", file=sys.stderr)


NOTE_SUFFIX = ".md"


class LocalCalendar(EditableCalendar):
    """Editable calendar with one frontmatter note per event."""

    kind = CalendarKind.LOCAL

    def __init__(
        self,
        vault: VaultIO,
        color: str,
        directory: str,
        category: Optional[list[Classification]] = None,
    ):
        super().__init__(color, category)
        self._vault = vault
        self._directory = normalize_path(directory)

    @property
    def identifier(self) -> str:
        return self._directory

    @property
    def name(self) -> str:
        return self._directory

    @property
    def directory(self) -> str:
        return self._directory

    def contains_path(self, path: str) -> bool:
        path = normalize_path(path)
        if not path.endswith(NOTE_SUFFIX):
            return False
        if not self._directory:
            return True
        return path.startswith(self._directory + "/")

    async def _read_event(self, path: str) -> Optional[tuple[EventRecord, str]]:
        """Read a note, returning its event and full text, or None if it holds no event."""
        try:
            text = await self._vault.read(path)
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            _debug_print(f"WARNING: Skipping {path}: not valid UTF-8 ({e.reason})")
            return None
        try:
            return frontmatter.parse(text), text
        except ValidationError as e:
            _debug_print(f"Skipping {path}: {e}")
            return None

    async def get_events_in_file(self, path: str) -> list[EventResponse]:
        path = normalize_path(path)
        if not self.contains_path(path):
            return []
        result = await self._read_event(path)
        if result is None:
            return []
        return [(result[0], Location(path))]

    async def list_events(self) -> list[EventResponse]:
        events = []
        for path in await self._vault.list_files(self._directory):
            if not self.contains_path(path):
                continue
            events.extend(await self.get_events_in_file(path))
        return events

    def _base_name(self, event: EventRecord) -> str:
        timing = event.timing
        if isinstance(timing, SingleTiming):
            return timing.date.isoformat()
        return f"{timing.start_recur.isoformat()}-recurring"

    async def _free_path(self, event: EventRecord) -> str:
        base = self._base_name(event)
        prefix = f"{self._directory}/" if self._directory else ""
        path = f"{prefix}{base}{NOTE_SUFFIX}"
        counter = 2
        while await self._vault.exists(path):
            path = f"{prefix}{base}-{counter}{NOTE_SUFFIX}"
            counter += 1
        return path

    async def create_event(self, event: EventRecord) -> Location:
        path = await self._free_path(event)
        await self._vault.create(path, frontmatter.serialize(event))
        _debug_print(f"Created {path}")
        return Location(path)

    async def _check_current(self, location: Location, expected: EventRecord) -> str:
        result = await self._read_event(location.path)
        if result is None or result[0] != expected:
            raise WriteConflictError(location.path)
        return result[1]

    async def update_event(self, location: Location, expected: EventRecord, event: EventRecord) -> Location:
        text = await self._check_current(location, expected)
        await self._vault.write(location.path, frontmatter.replace_frontmatter(text, event))
        _debug_print(f"Updated {location.path}")
        return location

    async def delete_event(self, location: Location, expected: EventRecord) -> None:
        await self._check_current(location, expected)
        await self._vault.delete(location.path)
        _debug_print(f"Deleted {location.path}")
