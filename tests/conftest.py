"""Pytest configuration and shared fixtures."""

import asyncio
from pathlib import Path

import pytest

from vaultcal.calendar_factory import default_factory
from vaultcal.config import Config, TestCalendarInfo
from vaultcal.event_cache import EventCache
from vaultcal.ics_calendar import ICSCalendar
from vaultcal.memory_calendar import MemoryCalendar
from vaultcal.network_worker import NetworkWorker
from vaultcal.timezone_utils import set_timezone
from vaultcal.vault import VaultIO, normalize_path


class MemoryVault(VaultIO):
    """Vault kept in a dict of path -> text."""

    def __init__(self, files=None):
        self.files = {normalize_path(p): t for p, t in (files or {}).items()}
        # Per-call delays for read(), consumed in order
        self.read_delays = []

    async def read(self, path):
        path = normalize_path(path)
        if path not in self.files:
            raise FileNotFoundError(path)
        text = self.files[path]
        delay = self.read_delays.pop(0) if self.read_delays else 0
        await asyncio.sleep(delay)
        return text

    async def write(self, path, text):
        self.files[normalize_path(path)] = text

    async def create(self, path, text):
        path = normalize_path(path)
        if path in self.files:
            raise FileExistsError(path)
        self.files[path] = text

    async def delete(self, path):
        path = normalize_path(path)
        if path not in self.files:
            raise FileNotFoundError(path)
        del self.files[path]

    async def exists(self, path):
        return normalize_path(path) in self.files

    async def list_files(self, directory):
        directory = normalize_path(directory)
        prefix = f"{directory}/" if directory else ""
        return sorted(p for p in self.files if p.startswith(prefix))


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def make_fetcher(feeds):
    """Fetcher serving feed texts from a dict; Exception values are raised."""
    def fetch(url):
        result = feeds[url]
        if isinstance(result, Exception):
            raise result
        return result
    return fetch


@pytest.fixture(autouse=True)
def utc_timezone():
    """Run every test with UTC as the local timezone."""
    set_timezone("UTC")
    yield
    set_timezone("UTC")


@pytest.fixture
def vault():
    return MemoryVault()


@pytest.fixture
def worker():
    network_worker = NetworkWorker(max_workers=2)
    yield network_worker
    network_worker.shutdown(wait=True)


@pytest.fixture
def feeds():
    """Feed URL -> VCALENDAR text (or an exception to raise)."""
    return {}


@pytest.fixture
def memory_calendars():
    """Calendar id -> MemoryCalendar built for FOR_TEST_ONLY configurations."""
    return {}


@pytest.fixture
def settings():
    return Config(vault=Path("vault"), daily_note_folder="Daily")


@pytest.fixture
def factory(vault, worker, feeds, memory_calendars, settings):
    calendar_factory = default_factory(vault, worker, settings)
    calendar_factory.register(
        "ical",
        lambda info: ICSCalendar(worker, info.color, info.url, info.category, fetcher=make_fetcher(feeds)),
    )

    def build_memory(info):
        if info.id not in memory_calendars:
            memory_calendars[info.id] = MemoryCalendar(info.id, color=info.color, category=info.category)
        return memory_calendars[info.id]

    calendar_factory.register(TestCalendarInfo.type, build_memory)
    return calendar_factory


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(factory, clock):
    return EventCache(factory, revalidate_interval=900, clock=clock)
