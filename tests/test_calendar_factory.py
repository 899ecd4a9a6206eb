"""Tests for building calendars from their configurations."""

from datetime import date
from pathlib import Path

from vaultcal.caldav_calendar import CalDAVCalendar
from vaultcal.calendar_base import CalendarKind
from vaultcal.calendar_factory import CalendarFactory, default_factory
from vaultcal.config import (
    CalDAVCalendarInfo,
    CalendarInfo,
    Config,
    DailyNoteCalendarInfo,
    ICalCalendarInfo,
    LocalCalendarInfo,
    TestCalendarInfo,
)
from vaultcal.dailynote_calendar import DailyNoteCalendar
from vaultcal.event_record import Classification
from vaultcal.ics_calendar import ICSCalendar
from vaultcal.local_calendar import LocalCalendar
from vaultcal.memory_calendar import MemoryCalendar


class MislabelledInfo(ICalCalendarInfo):
    """An ICS configuration carrying the local tag."""
    type = "local"


def production_factory(vault, worker, **settings):
    return default_factory(vault, worker, Config(vault=Path("vault"), **settings))


def test_builds_every_production_variant(vault, worker):
    factory = production_factory(vault, worker, daily_note_folder="Daily")
    work = [Classification("Work", "#00ff00")]

    local = factory.build(LocalCalendarInfo(directory="Events/", color="#ff0000", category=work))
    assert isinstance(local, LocalCalendar)
    assert local.identifier == "Events"
    assert local.kind is CalendarKind.LOCAL
    assert local.color == "#ff0000"
    assert local.category == work
    assert local.editable

    daily = factory.build(DailyNoteCalendarInfo(heading="Schedule"))
    assert isinstance(daily, DailyNoteCalendar)
    assert daily.identifier == "dailynote:Schedule"
    assert daily.note_path(date(2024, 1, 10)) == "Daily/2024-01-10.md"

    feed = factory.build(ICalCalendarInfo(url="webcal://example.com/feed.ics"))
    assert isinstance(feed, ICSCalendar)
    assert feed.identifier == "https://example.com/feed.ics"
    assert not feed.editable

    dav = factory.build(CalDAVCalendarInfo(
        name="Work", url="https://dav.example.com/cal/", home_url="https://dav.example.com/",
        username="me", password="pw",
    ))
    assert isinstance(dav, CalDAVCalendar)
    assert dav.identifier == "https://dav.example.com/cal/"
    assert dav.name == "Work"
    assert dav.kind is CalendarKind.CALDAV


def test_test_only_tag_is_not_built_in_production(vault, worker):
    assert production_factory(vault, worker).build(TestCalendarInfo(id="t")) is None


def test_unknown_tag_yields_none(vault, worker):
    class UnknownInfo(CalendarInfo):
        type = "outlook"

    assert production_factory(vault, worker).build(UnknownInfo()) is None


def test_mismatched_tag_yields_none(vault, worker):
    assert production_factory(vault, worker).build(MislabelledInfo(url="https://example.com/a.ics")) is None


def test_constructor_configuration_error_yields_none(vault, worker):
    factory = production_factory(vault, worker, password_program="/nonexistent/password-program")
    info = CalDAVCalendarInfo(
        name="Work", url="https://dav.example.com/cal/", home_url="https://dav.example.com/",
        username="me", password_key="dav/me",
    )
    assert factory.build(info) is None


def test_registered_test_calendar():
    factory = CalendarFactory({
        TestCalendarInfo.type: lambda info: MemoryCalendar(info.id, color=info.color),
    })
    calendar = factory.build(TestCalendarInfo(id="scratch", color="#abcdef"))
    assert isinstance(calendar, MemoryCalendar)
    assert calendar.kind is CalendarKind.TEST
    assert calendar.identifier == "scratch"
    assert calendar.color == "#abcdef"


def test_paths_outside_the_vault_yield_none(vault, worker):
    assert production_factory(vault, worker).build(LocalCalendarInfo(directory="../escape")) is None

    factory = production_factory(vault, worker, daily_note_folder="../Daily")
    assert factory.build(DailyNoteCalendarInfo(heading="Schedule")) is None
