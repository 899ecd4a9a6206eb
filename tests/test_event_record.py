"""Tests for the event record model and its validation."""

from datetime import date, time

import pytest

from vaultcal.event_record import (
    Classification,
    EventRecord,
    Location,
    RecurringTiming,
    SingleTiming,
    to_raw,
    validate,
)
from vaultcal.exceptions import ValidationError


def test_validate_single_event():
    """A dated event with times becomes a SingleTiming record."""
    record = validate({
        "title": "Standup",
        "date": "2024-01-10",
        "startTime": "09:00",
        "endTime": "09:15",
    })
    assert record.title == "Standup"
    assert record.timing == SingleTiming(
        date=date(2024, 1, 10), start_time=time(9, 0), end_time=time(9, 15)
    )
    assert not record.is_recurring
    assert record.all_day is False
    assert record.start_time == time(9, 0)
    assert record.end_time == time(9, 15)


def test_validate_accepts_yaml_types():
    """Dates loaded as date objects and times loaded as sexagesimal ints are accepted."""
    record = validate({"title": "Review", "date": date(2024, 1, 10), "startTime": 630, "endTime": 660})
    assert record.timing.date == date(2024, 1, 10)
    assert record.start_time == time(10, 30)
    assert record.end_time == time(11, 0)


def test_validate_recurring_event():
    """Weekday letters, skip dates and the recurrence range are parsed."""
    record = validate({
        "title": "Gym",
        "daysOfWeek": ["M", "W", "F"],
        "startRecur": "2024-01-01",
        "endRecur": "2024-03-01",
        "skipDates": ["2024-01-15"],
        "startTime": "18:00",
    })
    assert record.is_recurring
    assert record.timing == RecurringTiming(
        start_recur=date(2024, 1, 1),
        end_recur=date(2024, 3, 1),
        days_of_week=(0, 2, 4),
        skip_dates=(date(2024, 1, 15),),
        start_time=time(18, 0),
    )


def test_validate_recurring_with_rrule():
    record = validate({"title": "Rent", "startRecur": "2024-01-01", "rrule": "FREQ=MONTHLY;BYMONTHDAY=1"})
    assert record.timing.rrule == "FREQ=MONTHLY;BYMONTHDAY=1"
    assert record.timing.days_of_week == ()


def test_validate_all_day_and_categories():
    record = validate({
        "title": "Offsite",
        "date": "2024-01-10",
        "endDate": "2024-01-12",
        "allDay": True,
        "category": [{"name": "Work", "color": "#ff0000"}],
    })
    assert record.all_day
    assert record.timing.end_date == date(2024, 1, 12)
    assert record.category == (Classification("Work", "#ff0000"),)


def test_end_date_equal_to_date_is_dropped():
    record = validate({"title": "X", "date": "2024-01-10", "endDate": "2024-01-10"})
    assert record.timing.end_date is None


def test_multi_day_event_may_end_before_its_start_time():
    """Start < end only applies when the event stays on one day."""
    record = validate({
        "title": "Night shift",
        "date": "2024-01-10",
        "endDate": "2024-01-11",
        "startTime": "22:00",
        "endTime": "06:00",
    })
    assert record.end_time == time(6, 0)


@pytest.mark.parametrize("raw", [
    "not a mapping",
    {"date": "2024-01-10"},
    {"title": "   ", "date": "2024-01-10"},
    {"title": "X"},
    {"title": "X", "date": "2024-13-01"},
    {"title": "X", "date": "2024-01-10", "daysOfWeek": ["M"]},
    {"title": "X", "date": "2024-01-10", "rrule": "FREQ=DAILY"},
    {"title": "X", "date": "2024-01-10", "allDay": True, "startTime": "09:00"},
    {"title": "X", "date": "2024-01-10", "startTime": "10:00", "endTime": "09:00"},
    {"title": "X", "date": "2024-01-10", "startTime": "10:00", "endTime": "10:00"},
    {"title": "X", "date": "2024-01-10", "endTime": "10:00"},
    {"title": "X", "date": "2024-01-10", "endDate": "2024-01-09"},
    {"title": "X", "date": "2024-01-10", "startTime": "25:00"},
    {"title": "X", "date": "2024-01-10", "allDay": "yes"},
    {"title": "X", "startRecur": "2024-01-01"},
    {"title": "X", "daysOfWeek": ["M"]},
    {"title": "X", "daysOfWeek": ["Q"], "startRecur": "2024-01-01"},
    {"title": "X", "daysOfWeek": ["M"], "startRecur": "2024-02-01", "endRecur": "2024-01-01"},
    {"title": "X", "type": "weekly", "date": "2024-01-10"},
    {"title": "X", "date": "2024-01-10", "category": [{"name": "Work"}]},
])
def test_validate_rejects_invalid_events(raw):
    with pytest.raises(ValidationError):
        validate(raw)


def test_to_raw_is_inverse_of_validate():
    single = EventRecord(
        title="Standup",
        timing=SingleTiming(date(2024, 1, 10), start_time=time(9, 0), end_time=time(9, 15)),
        category=(Classification("Work", "#00ff00"),),
    )
    recurring = EventRecord(
        title="Gym",
        timing=RecurringTiming(
            start_recur=date(2024, 1, 1),
            days_of_week=(1, 3),
            skip_dates=(date(2024, 1, 4),),
        ),
        all_day=True,
        uid="gym@example.com",
    )
    assert validate(to_raw(single)) == single
    assert validate(to_raw(recurring)) == recurring
    assert to_raw(recurring)["daysOfWeek"] == ["T", "R"]


def test_with_changes_validates():
    record = validate({"title": "Standup", "date": "2024-01-10", "startTime": "09:00"})
    renamed = record.with_changes(title="Daily Standup")
    assert renamed.title == "Daily Standup"
    assert renamed.timing == record.timing
    with pytest.raises(ValidationError):
        record.with_changes(all_day=True)


def test_location_key_and_containment():
    note = Location("Events/2024-01-10.md")
    item = Location("Daily/2024-01-10.md", 3)
    assert note.key() == "Events/2024-01-10.md"
    assert item.key() == "Daily/2024-01-10.md::3"
    assert note.is_under("Events")
    assert note.is_under("Events/")
    assert note.is_under("Events/2024-01-10.md")
    assert not note.is_under("Event")
    assert not item.is_under("Events")
