"""
Remote calendar backed by a CalDAV collection.
"""

from typing import Callable, Optional

from .caldav_client import CalDAVClient
from .calendar_base import CalendarKind, RemoteCalendar
from .event_record import Classification, EventRecord
from .ics_parser import events_from_ics
from .network_worker import NetworkWorker


class CalDAVCalendar(RemoteCalendar):
    """
    Read-only view of one calendar collection on a CalDAV server.

    revalidate() connects, discovers the account's collections, picks the
    configured one and flat-maps its objects into events. A collection that
    is gone server-side leaves the cached events untouched.
    """

    kind = CalendarKind.CALDAV

    def __init__(
        self,
        worker: NetworkWorker,
        color: str,
        name: str,
        username: str,
        password: str,
        server_url: str,
        calendar_url: str,
        category: Optional[list[Classification]] = None,
        client_factory: Optional[Callable[[str, str, str], CalDAVClient]] = None,
    ):
        super().__init__(color, category)
        self._worker = worker
        self._name = name
        self._username = username
        self._password = password
        self.server_url = server_url
        self.calendar_url = calendar_url
        self._client_factory = client_factory or CalDAVClient

    @property
    def identifier(self) -> str:
        return self.calendar_url

    @property
    def name(self) -> str:
        return self._name

    def _fetch(self) -> Optional[list[str]]:
        client = self._client_factory(self.server_url, self._username, self._password)
        return client.fetch_event_data(self.calendar_url)

    async def fetch_events(self) -> Optional[list[EventRecord]]:
        payloads = await self._worker.run(self._fetch)
        if payloads is None:
            return None
        events = []
        for payload in payloads:
            events.extend(events_from_ics(payload))
        return events
