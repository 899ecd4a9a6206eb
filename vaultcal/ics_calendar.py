"""
Remote calendar backed by an ICS feed.
"""

from typing import Callable, Optional

from .calendar_base import CalendarKind, RemoteCalendar
from .event_record import Classification, EventRecord
from .ics_parser import events_from_ics
from .ics_subscription import ICSSubscription
from .network_worker import NetworkWorker


class ICSCalendar(RemoteCalendar):
    """
    Read-only calendar fetched from an ICS URL.

    revalidate() performs one GET of the feed, then parses it; the raw text
    of the last successful fetch is kept.
    """

    kind = CalendarKind.ICAL

    def __init__(
        self,
        worker: NetworkWorker,
        color: str,
        url: str,
        category: Optional[list[Classification]] = None,
        timeout: float = 30,
        fetcher: Optional[Callable[[str], str]] = None,
    ):
        """
        Args:
            worker: Runs the blocking fetch off the event loop
            color: Default display color
            url: Feed URL; webcal: is rewritten to https:
            category: Classifications of this source
            timeout: Request timeout in seconds
            fetcher: Replaces the HTTP fetch, called with the feed URL
        """
        super().__init__(color, category)
        self._worker = worker
        self._subscription = ICSSubscription(url, timeout=timeout)
        self._fetcher = fetcher
        self._response: Optional[str] = None

    @property
    def url(self) -> str:
        return self._subscription.url

    @property
    def identifier(self) -> str:
        return self.url

    @property
    def name(self) -> str:
        return self.url

    @property
    def raw_data(self) -> Optional[str]:
        """VCALENDAR text of the last successful revalidation."""
        return self._response

    def _fetch(self) -> str:
        if self._fetcher is not None:
            return self._fetcher(self.url)
        return self._subscription.fetch()

    async def fetch_events(self) -> Optional[list[EventRecord]]:
        text = await self._worker.run(self._fetch)
        events = events_from_ics(text)
        self._response = text
        return events
