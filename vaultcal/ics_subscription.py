"""
ICS Subscription handler for read-only calendar feeds.

Just fetches raw VCALENDAR text. Parsing into EventRecords is done by the
ICS calendar once a fetch succeeded.
"""

import requests

from .exceptions import FetchError


WEBCAL = "webcal"

USER_AGENT = "vaultcal/0.1"


def normalize_feed_url(url: str) -> str:
    """Rewrite a webcal: URL to the equivalent https: URL."""
    url = url.strip()
    if url.lower().startswith(WEBCAL):
        return "https" + url[len(WEBCAL):]
    return url


class ICSSubscription:
    """
    Fetcher for one ICS feed.

    Blocking; run it through a NetworkWorker from async code.
    """

    def __init__(self, url: str, timeout: float = 30):
        """
        Initialize an ICS subscription.

        Args:
            url: URL to fetch the ICS file from (webcal: is rewritten to https:)
            timeout: Request timeout in seconds
        """
        self.url = normalize_feed_url(url)
        self.timeout = timeout

    def fetch(self) -> str:
        """
        Fetch the ICS file from the URL.

        Returns:
            The raw VCALENDAR text.

        Raises:
            FetchError: on network errors and non-2xx responses.
        """
        try:
            response = requests.get(
                self.url,
                timeout=self.timeout,
                headers={
                    'User-Agent': USER_AGENT,
                    'Accept': 'text/calendar'
                }
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise FetchError(f"Network error: {e}", {"url": self.url})

        # Feeds often omit the charset; iCalendar is UTF-8
        response.encoding = 'utf-8'
        return response.text
