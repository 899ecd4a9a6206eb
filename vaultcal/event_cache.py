"""
Event cache: the single in-memory view over every configured calendar.

The cache owns the calendars built from the configuration and an index of
their events keyed by event identifier. It never rebuilds the whole index
for a small change:

- remote calendars replace only their own slice when a revalidation lands,
- a file notification re-reads only that note and diffs only the events
  rooted there (found through a reverse index path -> event ids),
- create/update/delete go through the owning calendar first and patch the
  index from the location it returns.

All index mutations run on the event loop between suspension points. A
result that arrives after reset() started a new configuration generation is
dropped.
"""

import asyncio
import sys
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Optional, Union

from . import recurrence
from .calendar_base import (
    Calendar,
    EditableCalendar,
    EventResponse,
    RemoteCalendar,
    RevalidateStatus,
)
from .calendar_factory import CalendarFactory
from .config import CalendarInfo
from .event_record import EventRecord, Location, validate
from .exceptions import (
    CalendarNotEditableError,
    ConfigurationError,
    EventNotFoundError,
    VaultCalError,
)
from .identifiers import is_valid_calendar_id, make_event_id
from .vault import normalize_path


def _debug_print(msg: str) -> None:
    timestamp = datetime.now().strftime("%H:%M:%S")
    print(f"[{timestamp}] CACHE: {msg}", file=sys.stderr)


@dataclass
class CachedEvent:
    """One index entry."""
    event_id: str
    event: EventRecord
    calendar_id: str
    location: Optional[Location]
    # Cache-local state keyed by identifier (e.g. UI selection), kept across updates
    meta: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CacheUpdate:
    """Identifiers removed from and added to (or replaced in) the index by one operation."""
    removed: tuple[str, ...] = ()
    added: tuple[str, ...] = ()

    def __bool__(self) -> bool:
        return bool(self.removed or self.added)


UpdateListener = Callable[[CacheUpdate], None]


class EventCache:
    """
    Owns the active calendars and the unified event index.

    Usage:
        cache = EventCache(factory)
        cache.reset(config.calendars)
        await cache.populate()
        await cache.revalidate_remote_calendars(force=True)
    """

    def __init__(
        self,
        factory: CalendarFactory,
        revalidate_interval: float = 900,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            factory: Builds calendars from their configurations
            revalidate_interval: Seconds during which an unforced revalidation
                of a calendar is skipped after its last success
            clock: Monotonic time source in seconds
        """
        self._factory = factory
        self._revalidate_interval = revalidate_interval
        self._clock = clock

        self._generation = 0
        self._calendars: dict[str, Calendar] = {}
        self._index: dict[str, CachedEvent] = {}
        # calendar id -> ordered event ids (dict used as an ordered set)
        self._by_calendar: dict[str, dict[str, None]] = {}
        # note path -> event ids located in it
        self._by_path: dict[str, set[str]] = {}

        self._last_revalidated: dict[str, float] = {}
        self._in_flight: set[Calendar] = set()
        self._path_locks: dict[str, asyncio.Lock] = {}
        # Bumped by delete_events_at_path so that a file_updated already
        # reading that path does not re-add what was just deleted
        self._path_epochs: dict[str, int] = {}
        self._listeners: list[UpdateListener] = []

    # ==================== Listeners ====================

    def add_update_listener(self, listener: UpdateListener) -> None:
        self._listeners.append(listener)

    def remove_update_listener(self, listener: UpdateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, update: CacheUpdate) -> None:
        if not update:
            return
        for listener in list(self._listeners):
            listener(update)

    # ==================== Index primitives ====================

    def _insert(self, entry: CachedEvent) -> bool:
        """Insert or replace an entry; refuses ids owned by another calendar."""
        existing = self._index.get(entry.event_id)
        if existing is not None:
            if existing.calendar_id != entry.calendar_id:
                _debug_print(
                    f"WARNING: Skipping {entry.event_id}: identifier already belongs to "
                    f"calendar {existing.calendar_id}"
                )
                return False
            self._unlink_path(existing)

        self._index[entry.event_id] = entry
        self._by_calendar.setdefault(entry.calendar_id, {})[entry.event_id] = None
        if entry.location is not None:
            self._by_path.setdefault(entry.location.path, set()).add(entry.event_id)
        return True

    def _remove(self, event_id: str) -> Optional[CachedEvent]:
        entry = self._index.pop(event_id, None)
        if entry is None:
            return None
        ids = self._by_calendar.get(entry.calendar_id)
        if ids is not None:
            ids.pop(event_id, None)
        self._unlink_path(entry)
        return entry

    def _unlink_path(self, entry: CachedEvent) -> None:
        if entry.location is None:
            return
        bucket = self._by_path.get(entry.location.path)
        if bucket is None:
            return
        bucket.discard(entry.event_id)
        if not bucket:
            del self._by_path[entry.location.path]

    def _reconcile(
        self,
        calendar_id: str,
        old_ids: Iterable[str],
        responses: list[EventResponse],
    ) -> tuple[list[str], list[str], list[str]]:
        """
        Replace the entries old_ids of one calendar by the given events.

        Entries whose event and location are unchanged are kept as they are;
        replaced entries keep their meta.

        Returns:
            (removed ids, added or replaced ids, accepted ids in response order)
        """
        fresh: dict[str, EventResponse] = {}
        for record, location in responses:
            event_id = make_event_id(calendar_id, record, location)
            if event_id in fresh:
                _debug_print(f"WARNING: Skipping duplicate event {event_id}")
                continue
            fresh[event_id] = (record, location)

        removed = []
        for event_id in old_ids:
            if event_id not in fresh:
                self._remove(event_id)
                removed.append(event_id)

        added = []
        accepted = []
        for event_id, (record, location) in fresh.items():
            existing = self._index.get(event_id)
            if existing is not None and existing.calendar_id == calendar_id:
                if existing.event == record and existing.location == location:
                    accepted.append(event_id)
                    continue
                meta = existing.meta
            else:
                meta = {}
            if self._insert(CachedEvent(event_id, record, calendar_id, location, meta)):
                accepted.append(event_id)
                added.append(event_id)
        return removed, added, accepted

    def _replace_calendar(self, calendar_id: str, responses: list[EventResponse]) -> CacheUpdate:
        old_ids = list(self._by_calendar.get(calendar_id, {}))
        removed, added, accepted = self._reconcile(calendar_id, old_ids, responses)
        self._by_calendar[calendar_id] = dict.fromkeys(accepted)
        return CacheUpdate(tuple(removed), tuple(added))

    def _is_current(self, calendar: Calendar, generation: int) -> bool:
        return generation == self._generation and self._calendars.get(calendar.identifier) is calendar

    # ==================== Configuration ====================

    def reset(self, configs: Iterable[CalendarInfo]) -> None:
        """
        Drop every calendar and index entry and build the calendars anew.

        Configurations that fail to build, or that would produce a calendar
        identifier already taken, are skipped with a warning. No events are
        loaded; call populate() afterwards.
        """
        removed = tuple(self._index)
        self._generation += 1
        self._calendars = {}
        self._index = {}
        self._by_calendar = {}
        self._by_path = {}
        self._last_revalidated = {}
        self._in_flight = set()
        self._path_locks = {}
        self._path_epochs = {}

        for info in configs:
            calendar = self._factory.build(info)
            if calendar is None:
                continue
            calendar_id = calendar.identifier
            if not is_valid_calendar_id(calendar_id):
                _debug_print(f"WARNING: Skipping calendar with invalid identifier {calendar_id!r}")
                continue
            if calendar_id in self._calendars:
                _debug_print(f"WARNING: Skipping duplicate calendar {calendar_id}")
                continue
            self._calendars[calendar_id] = calendar
            self._by_calendar[calendar_id] = {}

        _debug_print(f"Reset: {len(self._calendars)} calendars (generation {self._generation})")
        self._notify(CacheUpdate(removed=removed))

    @property
    def calendars(self) -> list[Calendar]:
        return list(self._calendars.values())

    def get_calendar(self, calendar_id: str) -> Optional[Calendar]:
        return self._calendars.get(calendar_id)

    # ==================== Loading ====================

    async def _load_all(self) -> None:
        generation = self._generation
        for calendar in list(self._calendars.values()):
            try:
                responses = await calendar.list_events()
            except (OSError, VaultCalError) as e:
                _debug_print(f"ERROR: Could not list events of {calendar.identifier} (keeping cached events): {e}")
                continue
            if not self._is_current(calendar, generation):
                _debug_print("Configuration changed while loading, dropping result")
                return
            update = self._replace_calendar(calendar.identifier, responses)
            self._notify(update)

    async def populate(self) -> None:
        """
        Load every calendar's current events into the index.

        Remote calendars contribute what their last revalidation fetched
        (nothing before the first one). Calling it again replaces each
        calendar's slice, so repeated calls leave the index unchanged.
        """
        await self._load_all()
        _debug_print(f"Populated {len(self._index)} events")

    async def resync(self) -> None:
        """Re-derive the index from every calendar's events without refetching remote data."""
        await self._load_all()
        _debug_print(f"Resynced {len(self._index)} events")

    # ==================== Remote revalidation ====================

    async def _revalidate_one(self, calendar: RemoteCalendar, generation: int) -> RevalidateStatus:
        self._in_flight.add(calendar)
        try:
            status = await calendar.revalidate()
            responses = await calendar.list_events() if status is RevalidateStatus.OK else []
        finally:
            self._in_flight.discard(calendar)

        if not self._is_current(calendar, generation):
            _debug_print(f"Ignoring stale revalidation of {calendar.identifier}")
            return RevalidateStatus.STALE
        if status is RevalidateStatus.OK:
            self._last_revalidated[calendar.identifier] = self._clock()
            self._notify(self._replace_calendar(calendar.identifier, responses))
        return status

    async def revalidate_remote_calendars(self, force: bool = False) -> dict[str, RevalidateStatus]:
        """
        Refetch every remote calendar concurrently.

        Args:
            force: Refetch even calendars revalidated within the revalidate interval

        Returns:
            Per calendar identifier, the outcome of its revalidation. A failure
            of one calendar leaves its cached events and every other calendar
            untouched. Calendars already being revalidated are SKIPPED.
        """
        generation = self._generation
        now = self._clock()
        results: dict[str, RevalidateStatus] = {}
        targets: list[RemoteCalendar] = []

        for calendar in self._calendars.values():
            if not isinstance(calendar, RemoteCalendar):
                continue
            last = self._last_revalidated.get(calendar.identifier)
            if calendar in self._in_flight:
                results[calendar.identifier] = RevalidateStatus.SKIPPED
            elif not force and last is not None and now - last < self._revalidate_interval:
                results[calendar.identifier] = RevalidateStatus.SKIPPED
            else:
                targets.append(calendar)

        statuses = await asyncio.gather(*(self._revalidate_one(c, generation) for c in targets))
        for calendar, status in zip(targets, statuses):
            results[calendar.identifier] = status
        return results

    # ==================== File notifications ====================

    def _path_epoch(self, path: str) -> int:
        """Sum of the deletion epochs of a path and its parent folders."""
        total = self._path_epochs.get(path, 0)
        parent = path
        while "/" in parent:
            parent = parent.rsplit("/", 1)[0]
            total += self._path_epochs.get(parent, 0)
        return total

    async def file_updated(self, path: str) -> CacheUpdate:
        """
        Re-read one note and patch the entries located in it.

        Only entries whose location is this path change. Notifications for the
        same path are applied one after another in arrival order.
        """
        path = normalize_path(path)
        lock = self._path_locks.setdefault(path, asyncio.Lock())
        async with lock:
            generation = self._generation
            epoch = self._path_epoch(path)
            reads: list[tuple[EditableCalendar, list[EventResponse]]] = []
            for calendar in list(self._calendars.values()):
                if not isinstance(calendar, EditableCalendar) or not calendar.contains_path(path):
                    continue
                try:
                    responses = await calendar.get_events_in_file(path)
                except (OSError, VaultCalError) as e:
                    _debug_print(f"ERROR: Could not read {path} for {calendar.identifier}: {e}")
                    continue
                reads.append((calendar, [r for r in responses if r[1] is not None and r[1].path == path]))

            if generation != self._generation or epoch != self._path_epoch(path):
                _debug_print(f"Dropping stale update of {path}")
                return CacheUpdate()

            removed: list[str] = []
            added: list[str] = []
            for calendar, responses in reads:
                if self._calendars.get(calendar.identifier) is not calendar:
                    continue
                old_ids = [
                    event_id for event_id in self._by_path.get(path, set())
                    if self._index[event_id].calendar_id == calendar.identifier
                ]
                r, a, _ = self._reconcile(calendar.identifier, old_ids, responses)
                removed.extend(r)
                added.extend(a)

        update = CacheUpdate(tuple(removed), tuple(added))
        if update:
            _debug_print(f"{path}: {len(removed)} removed, {len(added)} added or changed")
        self._notify(update)
        return update

    def delete_events_at_path(self, path: str) -> CacheUpdate:
        """Remove every entry located in the note at path, or anywhere below the folder at path."""
        path = normalize_path(path)
        affected = [p for p in self._by_path if p == path or p.startswith(path + "/")]
        removed = []
        for bucket_path in affected:
            for event_id in list(self._by_path.get(bucket_path, ())):
                self._remove(event_id)
                removed.append(event_id)
            self._by_path.pop(bucket_path, None)
            self._path_epochs[bucket_path] = self._path_epochs.get(bucket_path, 0) + 1
        if path not in affected:
            self._path_epochs[path] = self._path_epochs.get(path, 0) + 1

        update = CacheUpdate(removed=tuple(removed))
        self._notify(update)
        return update

    # ==================== Reading ====================

    def get_all_events(self) -> dict[str, list[CachedEvent]]:
        """Snapshot of every calendar's events, in calendar configuration order."""
        return {
            calendar_id: [self._index[event_id] for event_id in self._by_calendar.get(calendar_id, {})]
            for calendar_id in self._calendars
        }

    def get_cached_event(self, event_id: str) -> Optional[CachedEvent]:
        return self._index.get(event_id)

    def get_event_by_id(self, event_id: str) -> Optional[EventRecord]:
        entry = self._index.get(event_id)
        return entry.event if entry is not None else None

    def get_location(self, event_id: str) -> Optional[Location]:
        entry = self._index.get(event_id)
        return entry.location if entry is not None else None

    def __len__(self) -> int:
        return len(self._index)

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._index

    def events_between(self, start: datetime, end: datetime) -> list[tuple[CachedEvent, datetime, datetime]]:
        """
        Expand every cached event into its occurrences overlapping [start, end).

        Returns:
            (entry, occurrence start, occurrence end) tuples sorted by start.
        """
        result = []
        for entry in self._index.values():
            try:
                spans = recurrence.occurrences(entry.event, start, end)
            except ValueError as e:
                _debug_print(f"WARNING: Cannot expand {entry.event_id}: {e}")
                continue
            result.extend((entry, span_start, span_end) for span_start, span_end in spans)
        result.sort(key=lambda item: (item[1], item[2], item[0].event_id))
        return result

    def events_at(self, moment: datetime) -> list[CachedEvent]:
        """Events with an occurrence in progress at moment."""
        return [
            entry for entry, span_start, span_end in self.events_between(moment, moment + timedelta(seconds=1))
            if span_start <= moment < span_end
        ]

    # ==================== Mutations ====================

    def _editable(self, calendar_id: str) -> EditableCalendar:
        calendar = self._calendars.get(calendar_id)
        if calendar is None:
            raise ConfigurationError(f"Unknown calendar: {calendar_id}")
        if not isinstance(calendar, EditableCalendar):
            raise CalendarNotEditableError(calendar_id)
        return calendar

    def _entry(self, event_id: str) -> CachedEvent:
        entry = self._index.get(event_id)
        if entry is None:
            raise EventNotFoundError(event_id)
        return entry

    async def create_event(self, calendar_id: str, record: EventRecord) -> str:
        """
        Create an event in an editable calendar.

        Returns:
            The identifier of the new event.

        Raises:
            CalendarNotEditableError: if the calendar is remote
            ValidationError: if the event is invalid or the calendar cannot hold it
        """
        calendar = self._editable(calendar_id)
        record = validate(record)
        generation = self._generation

        location = await calendar.create_event(record)
        event_id = make_event_id(calendar_id, record, location)
        if not self._is_current(calendar, generation):
            return event_id

        if calendar.shifts_locations:
            await self.file_updated(location.path)
        elif self._insert(CachedEvent(event_id, record, calendar_id, location)):
            self._notify(CacheUpdate(added=(event_id,)))
        return event_id

    async def update_event(self, event_id: str, patch: Union[EventRecord, dict[str, Any]]) -> str:
        """
        Update an event of an editable calendar.

        Args:
            event_id: Identifier of the event
            patch: The new event, or a dict of EventRecord fields to change

        Returns:
            The identifier of the event after the update. It changes only when
            the event moved (e.g. a daily note item moved to another day).

        Raises:
            EventNotFoundError, CalendarNotEditableError, ValidationError,
            WriteConflictError: the index is left untouched.
        """
        entry = self._entry(event_id)
        calendar = self._editable(entry.calendar_id)
        if isinstance(patch, dict):
            record = entry.event.with_changes(**patch)
        else:
            record = validate(patch)
        generation = self._generation

        location = await calendar.update_event(entry.location, entry.event, record)
        new_id = make_event_id(entry.calendar_id, record, location)
        if not self._is_current(calendar, generation):
            return new_id

        if calendar.shifts_locations:
            await self.file_updated(entry.location.path)
            if location.path != entry.location.path:
                await self.file_updated(location.path)
            new_entry = self._index.get(new_id)
            if new_entry is not None and new_entry is not entry:
                new_entry.meta.update(entry.meta)
            return new_id

        removed: tuple[str, ...] = ()
        if new_id != event_id:
            self._remove(event_id)
            removed = (event_id,)
        if self._insert(CachedEvent(new_id, record, entry.calendar_id, location, entry.meta)):
            self._notify(CacheUpdate(removed=removed, added=(new_id,)))
        else:
            self._notify(CacheUpdate(removed=removed))
        return new_id

    async def delete_event(self, event_id: str) -> None:
        """
        Delete an event of an editable calendar.

        Raises:
            EventNotFoundError, CalendarNotEditableError, WriteConflictError:
            the index is left untouched.
        """
        entry = self._entry(event_id)
        calendar = self._editable(entry.calendar_id)
        generation = self._generation

        await calendar.delete_event(entry.location, entry.event)
        if not self._is_current(calendar, generation):
            return

        if calendar.shifts_locations:
            await self.file_updated(entry.location.path)
        elif self._remove(event_id) is not None:
            self._notify(CacheUpdate(removed=(event_id,)))
