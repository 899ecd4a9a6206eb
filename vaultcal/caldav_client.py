"""
CalDAV client for read-only calendar collections.

Discovers the collections of an account and lists the calendar objects of
one of them. Blocking; run it through a NetworkWorker from async code.
"""

from typing import Optional

import caldav

from .exceptions import FetchError


def same_collection(a: str, b: str) -> bool:
    """Compare two collection URLs, ignoring a trailing slash."""
    return a.rstrip('/') == b.rstrip('/')


class CalDAVClient:
    """Client for listing events from a CalDAV server."""

    def __init__(self, url: str, username: str, password: str):
        """
        Initialize the CalDAV client.

        Args:
            url: Server URL used for principal discovery
            username: Account name
            password: Account password or app token
        """
        self.url = url
        self.username = username
        self.password = password

        self._client: Optional[caldav.DAVClient] = None
        self._principal: Optional[caldav.Principal] = None

    def connect(self) -> None:
        """
        Establish connection to the CalDAV server.

        Raises:
            FetchError: if the server cannot be reached or rejects the credentials.
        """
        try:
            self._client = caldav.DAVClient(
                url=self.url,
                username=self.username,
                password=self.password
            )
            self._principal = self._client.principal()
        except Exception as e:
            self._client = None
            self._principal = None
            raise FetchError(f"Failed to connect to CalDAV server: {e}", {"url": self.url})

    def calendars(self) -> list:
        """List the calendar collections of the account."""
        if self._principal is None:
            self.connect()
        try:
            return list(self._principal.calendars())
        except Exception as e:
            raise FetchError(f"Failed to list calendars: {e}", {"url": self.url})

    def find_calendar(self, calendar_url: str):
        """Return the collection with the given URL, or None if the account has none."""
        for calendar in self.calendars():
            if same_collection(str(calendar.url), calendar_url):
                return calendar
        return None

    def fetch_event_data(self, calendar_url: str) -> Optional[list[str]]:
        """
        Fetch the iCalendar text of every event in a collection.

        Args:
            calendar_url: URL of the calendar collection

        Returns:
            One VCALENDAR text per calendar object that carries data, or None
            if the collection does not exist on the server.

        Raises:
            FetchError: on connection, authentication or listing failures.
        """
        calendar = self.find_calendar(calendar_url)
        if calendar is None:
            return None

        try:
            objects = calendar.events()
        except Exception as e:
            raise FetchError(f"Failed to list calendar objects: {e}", {"url": calendar_url})

        payloads = []
        for obj in objects:
            data = obj.data
            if not data:
                continue
            if isinstance(data, bytes):
                data = data.decode('utf-8', errors='replace')
            payloads.append(data)
        return payloads
