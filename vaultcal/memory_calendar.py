"""
In-memory calendar for the FOR_TEST_ONLY source type.

Behaves like an editable calendar whose "notes" are entries of a dict, so
cache behaviour can be exercised without a vault or a network.
"""

from typing import Optional

from .calendar_base import CalendarKind, EditableCalendar, EventResponse
from .event_record import Classification, EventRecord, Location
from .exceptions import WriteConflictError


class MemoryCalendar(EditableCalendar):
    """Editable calendar keeping one event per path in a dict."""

    kind = CalendarKind.TEST

    def __init__(
        self,
        identifier: str,
        events: Optional[dict[str, EventRecord]] = None,
        color: str = "#000000",
        category: Optional[list[Classification]] = None,
    ):
        super().__init__(color, category)
        self._identifier = identifier
        self.files: dict[str, EventRecord] = dict(events or {})
        self._counter = 0

    @property
    def identifier(self) -> str:
        return self._identifier

    @property
    def name(self) -> str:
        return self._identifier

    def contains_path(self, path: str) -> bool:
        return path.startswith(self._identifier + "/")

    async def list_events(self) -> list[EventResponse]:
        return [(event, Location(path)) for path, event in self.files.items()]

    async def get_events_in_file(self, path: str) -> list[EventResponse]:
        if path not in self.files:
            return []
        return [(self.files[path], Location(path))]

    async def create_event(self, event: EventRecord) -> Location:
        self._counter += 1
        path = f"{self._identifier}/event-{self._counter}.md"
        while path in self.files:
            self._counter += 1
            path = f"{self._identifier}/event-{self._counter}.md"
        self.files[path] = event
        return Location(path)

    def _check_current(self, location: Location, expected: EventRecord) -> None:
        if self.files.get(location.path) != expected:
            raise WriteConflictError(location.path)

    async def update_event(self, location: Location, expected: EventRecord, event: EventRecord) -> Location:
        self._check_current(location, expected)
        self.files[location.path] = event
        return location

    async def delete_event(self, location: Location, expected: EventRecord) -> None:
        self._check_current(location, expected)
        del self.files[location.path]
