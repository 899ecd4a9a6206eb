"""
Calendar capability interface.

A Calendar is one configured source of events. Editable calendars are
backed by notes in the vault and can be written to; remote calendars are
fetched over the network and only support a wholesale revalidate().
"""

import sys
from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Optional

from .event_record import Classification, EventRecord, Location


def _debug_print(msg: str) -> None:
    timestamp = datetime.now().strftime("%H:%M:%S")
    print(f"[{timestamp}] CALENDAR: {msg}", file=sys.stderr)


class CalendarKind(Enum):
    """The closed set of calendar variants."""
    LOCAL = "local"
    DAILYNOTE = "dailynote"
    ICAL = "ical"
    CALDAV = "caldav"
    TEST = "FOR_TEST_ONLY"


class RevalidateStatus(Enum):
    """Outcome of revalidating one remote calendar."""
    OK = "ok"
    NOT_FOUND = "not_found"   # collection gone server-side, previous events kept
    FAILED = "failed"         # fetch or parse error, previous events kept
    SKIPPED = "skipped"       # revalidated recently or already in flight
    STALE = "stale"           # calendar was dropped by a reset while fetching


# An event plus where it is stored (None for remote calendars)
EventResponse = tuple[EventRecord, Optional[Location]]


class Calendar(ABC):
    """Base class for every calendar source."""

    kind: CalendarKind

    def __init__(self, color: str, category: Optional[list[Classification]] = None):
        self._color = color
        self._category = list(category or [])

    @property
    @abstractmethod
    def identifier(self) -> str:
        """Stable id, unique across all configured sources."""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    def color(self) -> str:
        """Default display color."""
        return self._color

    @property
    def category(self) -> list[Classification]:
        """Classifications of this source; the first one is its default."""
        return list(self._category)

    @property
    def editable(self) -> bool:
        return False

    @abstractmethod
    async def list_events(self) -> list[EventResponse]:
        """Return every event of this calendar with its location."""
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(identifier={self.identifier!r})"


class EditableCalendar(Calendar):
    """
    Calendar backed by notes in the vault.

    Mutations are read-modify-write cycles on a single note. update_event and
    delete_event re-read the event first and raise WriteConflictError when it
    no longer matches what the caller last saw.
    """

    # True if a mutation can move the location of other events (line numbers)
    shifts_locations: bool = False

    @property
    def editable(self) -> bool:
        return True

    @abstractmethod
    def contains_path(self, path: str) -> bool:
        """True if a note at this path can hold events of this calendar."""
        pass

    @abstractmethod
    async def get_events_in_file(self, path: str) -> list[EventResponse]:
        """Return the events stored in one note (empty if it has none or is gone)."""
        pass

    @abstractmethod
    async def create_event(self, event: EventRecord) -> Location:
        pass

    @abstractmethod
    async def update_event(self, location: Location, expected: EventRecord, event: EventRecord) -> Location:
        pass

    @abstractmethod
    async def delete_event(self, location: Location, expected: EventRecord) -> None:
        pass


class RemoteCalendar(Calendar):
    """
    Read-only calendar fetched over the network.

    list_events() answers from the last successful fetch. revalidate() fetches
    and parses a new event list and swaps it in only when both succeeded.
    """

    def __init__(self, color: str, category: Optional[list[Classification]] = None):
        super().__init__(color, category)
        self._events: list[EventRecord] = []
        self._last_success: Optional[datetime] = None
        self._last_error: Optional[str] = None

    @abstractmethod
    async def fetch_events(self) -> Optional[list[EventRecord]]:
        """
        Fetch and parse the full event list.

        Returns:
            The events, or None if the source no longer exists.

        Raises:
            Any exception on fetch or parse failure.
        """
        pass

    async def revalidate(self) -> RevalidateStatus:
        """Refetch the events, keeping the previous list on any failure. Never raises."""
        try:
            events = await self.fetch_events()
        except Exception as e:
            self._last_error = f"{type(e).__name__}: {e}"
            _debug_print(f"{self.identifier}: revalidate failed (keeping cached events): {self._last_error}")
            return RevalidateStatus.FAILED

        if events is None:
            _debug_print(f"{self.identifier}: calendar not found on server (keeping cached events)")
            return RevalidateStatus.NOT_FOUND

        self._events = list(events)
        self._last_success = datetime.now()
        self._last_error = None
        _debug_print(f"{self.identifier}: revalidated, {len(self._events)} events")
        return RevalidateStatus.OK

    async def list_events(self) -> list[EventResponse]:
        return [(event, None) for event in self._events]

    @property
    def last_success(self) -> Optional[datetime]:
        return self._last_success

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error
