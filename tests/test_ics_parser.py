"""Tests for flat-mapping iCalendar data to event records."""

from datetime import date, time

import pytest

from vaultcal.event_record import RecurringTiming, SingleTiming
from vaultcal.ics_parser import events_from_ics
from vaultcal.timezone_utils import set_timezone

from ics_samples import TWO_EVENT_FEED, vcalendar, vevent


def test_weekly_and_single_events():
    recurring, single = events_from_ics(TWO_EVENT_FEED)

    assert recurring.title == "Team sync"
    assert recurring.uid == "weekly-1@example.com"
    assert recurring.timing == RecurringTiming(
        start_recur=date(2024, 1, 8),
        days_of_week=(0, 2),
        start_time=time(10, 0),
        end_time=time(11, 0),
    )

    assert single.title == "Dentist"
    assert single.timing == SingleTiming(date(2024, 1, 10), start_time=time(14, 0), end_time=time(15, 0))
    assert single.override_date is None


def test_times_are_converted_to_local_timezone():
    set_timezone("Europe/Berlin")
    (record,) = events_from_ics(vcalendar(vevent(
        "tz@example.com", "Call", "DTSTART:20240110T090000Z", "DTEND:20240110T093000Z",
    )))
    assert record.start_time == time(10, 0)
    assert record.end_time == time(10, 30)


def test_all_day_end_is_exclusive():
    one_day, three_days = events_from_ics(vcalendar(
        vevent("a@example.com", "Holiday", "DTSTART;VALUE=DATE:20240110", "DTEND;VALUE=DATE:20240111"),
        vevent("b@example.com", "Trip", "DTSTART;VALUE=DATE:20240110", "DTEND;VALUE=DATE:20240113"),
    ))
    assert one_day.all_day
    assert one_day.timing == SingleTiming(date(2024, 1, 10))
    assert three_days.timing == SingleTiming(date(2024, 1, 10), end_date=date(2024, 1, 12))


def test_exdate_and_until():
    (record,) = events_from_ics(vcalendar(vevent(
        "c@example.com", "Lecture",
        "DTSTART:20240108T100000Z",
        "DTEND:20240108T113000Z",
        "RRULE:FREQ=WEEKLY;BYDAY=MO;UNTIL=20240301T000000Z",
        "EXDATE:20240115T100000Z",
    )))
    assert record.timing.days_of_week == (0,)
    assert record.timing.end_recur == date(2024, 3, 1)
    assert record.timing.skip_dates == (date(2024, 1, 15),)


@pytest.mark.parametrize("rule", [
    "FREQ=MONTHLY;BYMONTHDAY=15",
    "FREQ=WEEKLY;INTERVAL=2;BYDAY=TU",
    "FREQ=WEEKLY;BYDAY=MO;COUNT=5",
    "FREQ=DAILY",
])
def test_other_rules_are_kept_verbatim(rule):
    (record,) = events_from_ics(vcalendar(vevent(
        "d@example.com", "Other", "DTSTART:20240115T090000Z", f"RRULE:{rule}",
    )))
    assert record.is_recurring
    assert record.timing.days_of_week == ()
    assert record.timing.rrule.startswith("FREQ=")
    for part in rule.split(";"):
        assert part in record.timing.rrule


def test_recurrence_override_and_rdate():
    records = events_from_ics(vcalendar(
        vevent(
            "e@example.com", "Standup",
            "DTSTART:20240108T090000Z",
            "DTEND:20240108T091500Z",
            "RRULE:FREQ=WEEKLY;BYDAY=MO",
            "RDATE:20240120T090000Z",
        ),
        vevent(
            "e@example.com", "Standup (moved)",
            "RECURRENCE-ID:20240115T090000Z",
            "DTSTART:20240116T090000Z",
            "DTEND:20240116T091500Z",
        ),
    ))
    assert len(records) == 3
    master, extra, moved = records
    assert master.is_recurring
    assert extra.override_date == date(2024, 1, 20)
    assert extra.timing == SingleTiming(date(2024, 1, 20), start_time=time(9, 0), end_time=time(9, 15))
    assert moved.override_date == date(2024, 1, 15)
    assert moved.timing.date == date(2024, 1, 16)


def test_event_without_start_is_skipped():
    assert events_from_ics(vcalendar(vevent("f@example.com", "No start"))) == []


def test_invalid_text_raises():
    with pytest.raises(ValueError):
        events_from_ics("not a calendar")
