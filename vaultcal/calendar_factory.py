"""
Builds Calendar instances from persisted source configurations.

The factory is a plain mapping from type tag to constructor so the event
cache never depends on which concrete calendars exist. Tests register an
in-memory calendar under the FOR_TEST_ONLY tag.
"""

import sys
from datetime import datetime
from typing import Callable, Optional

from .caldav_calendar import CalDAVCalendar
from .calendar_base import Calendar
from .config import (
    CalDAVCalendarInfo,
    CalendarInfo,
    Config,
    DailyNoteCalendarInfo,
    ICalCalendarInfo,
    LocalCalendarInfo,
)
from .dailynote_calendar import DailyNoteCalendar
from .exceptions import ConfigurationError
from .ics_calendar import ICSCalendar
from .local_calendar import LocalCalendar
from .network_worker import NetworkWorker
from .vault import VaultIO


def _debug_print(msg: str) -> None:
    timestamp = datetime.now().strftime("%H:%M:%S")
    print(f"[{timestamp}] FACTORY: {msg}", file=sys.stderr)


CalendarConstructor = Callable[[CalendarInfo], Optional[Calendar]]


class CalendarFactory:
    """Maps a configuration's type tag to the constructor of its calendar."""

    def __init__(self, constructors: dict[str, CalendarConstructor]):
        self._constructors = dict(constructors)

    def register(self, tag: str, constructor: CalendarConstructor) -> None:
        self._constructors[tag] = constructor

    def build(self, info: CalendarInfo) -> Optional[Calendar]:
        """
        Build the calendar for one configuration.

        Returns:
            The calendar, or None if the tag is unknown or the constructor
            rejects the configuration (ConfigurationError or ValueError).
            Never raises for bad configurations.
        """
        tag = getattr(info, "type", None)
        constructor = self._constructors.get(tag)
        if constructor is None:
            _debug_print(f"WARNING: No calendar type registered for {tag!r}")
            return None
        try:
            calendar = constructor(info)
        except (ConfigurationError, ValueError) as e:
            _debug_print(f"WARNING: Could not build {tag} calendar: {e}")
            return None
        if calendar is None:
            _debug_print(f"WARNING: {tag} constructor rejected {info!r}")
        return calendar


def default_factory(vault: VaultIO, worker: NetworkWorker, settings: Config) -> CalendarFactory:
    """
    Factory wiring the production calendar variants.

    Args:
        vault: File capability for the editable calendars
        worker: Thread pool for the remote calendars
        settings: Application settings (daily note folder, timeouts, password program)
    """

    def build_local(info: CalendarInfo) -> Optional[Calendar]:
        if not isinstance(info, LocalCalendarInfo):
            return None
        return LocalCalendar(vault, info.color, info.directory, info.category)

    def build_dailynote(info: CalendarInfo) -> Optional[Calendar]:
        if not isinstance(info, DailyNoteCalendarInfo):
            return None
        return DailyNoteCalendar(vault, info.color, info.heading, info.category, folder=settings.daily_note_folder)

    def build_ical(info: CalendarInfo) -> Optional[Calendar]:
        if not isinstance(info, ICalCalendarInfo):
            return None
        return ICSCalendar(worker, info.color, info.url, info.category, timeout=settings.network_timeout)

    def build_caldav(info: CalendarInfo) -> Optional[Calendar]:
        if not isinstance(info, CalDAVCalendarInfo):
            return None
        return CalDAVCalendar(
            worker,
            info.color,
            info.name,
            info.username,
            info.get_password(settings.password_program),
            info.home_url,
            info.url,
            info.category,
        )

    return CalendarFactory({
        LocalCalendarInfo.type: build_local,
        DailyNoteCalendarInfo.type: build_dailynote,
        ICalCalendarInfo.type: build_ical,
        CalDAVCalendarInfo.type: build_caldav,
    })
