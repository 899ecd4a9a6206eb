"""
vaultcal Module

This module aggregates calendar events from a notes vault and from remote
calendars into one in-memory index:
- Event model and validation (event_record.py)
- Calendar sources: local notes, daily notes, ICS feeds, CalDAV (*_calendar.py)
- Configuration parsing (config.py) and calendar factory (calendar_factory.py)
- Event cache with incremental updates (event_cache.py)
- File notification adapter (change_adapter.py)
"""

from .config import Config
from .calendar_base import Calendar, CalendarKind, EditableCalendar, RemoteCalendar, RevalidateStatus
from .calendar_factory import CalendarFactory, default_factory
from .event_cache import CachedEvent, CacheUpdate, EventCache
from .event_record import Classification, EventRecord, Location, RecurringTiming, SingleTiming, validate
from .change_adapter import VaultChangeAdapter
from .network_worker import NetworkWorker
from .vault import LocalVault, VaultIO

__all__ = [
    'Config',
    'Calendar',
    'CalendarKind',
    'EditableCalendar',
    'RemoteCalendar',
    'RevalidateStatus',
    'CalendarFactory',
    'default_factory',
    'CachedEvent',
    'CacheUpdate',
    'EventCache',
    'Classification',
    'EventRecord',
    'Location',
    'RecurringTiming',
    'SingleTiming',
    'validate',
    'VaultChangeAdapter',
    'NetworkWorker',
    'LocalVault',
    'VaultIO',
]
