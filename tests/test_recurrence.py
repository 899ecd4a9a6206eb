"""Tests for occurrence expansion."""

from datetime import date, datetime, time

from vaultcal.event_record import EventRecord, RecurringTiming, SingleTiming
from vaultcal.recurrence import occurrences


JAN_8 = datetime(2024, 1, 8)
JAN_22 = datetime(2024, 1, 22)


def weekly(**timing):
    defaults = dict(start_recur=date(2024, 1, 8), days_of_week=(0, 2), start_time=time(10, 0), end_time=time(11, 0))
    defaults.update(timing)
    return EventRecord(title="Team sync", timing=RecurringTiming(**defaults))


def test_single_event_inside_and_outside_window():
    record = EventRecord(
        title="Standup",
        timing=SingleTiming(date(2024, 1, 10), start_time=time(9, 0), end_time=time(9, 15)),
    )
    assert occurrences(record, JAN_8, JAN_22) == [(datetime(2024, 1, 10, 9, 0), datetime(2024, 1, 10, 9, 15))]
    assert occurrences(record, datetime(2024, 1, 11), JAN_22) == []


def test_all_day_event_spans_whole_days():
    record = EventRecord(
        title="Trip",
        timing=SingleTiming(date(2024, 1, 10), end_date=date(2024, 1, 12)),
        all_day=True,
    )
    assert occurrences(record, JAN_8, JAN_22) == [(datetime(2024, 1, 10), datetime(2024, 1, 13))]


def test_weekly_event():
    starts = [span[0] for span in occurrences(weekly(), JAN_8, JAN_22)]
    assert starts == [
        datetime(2024, 1, 8, 10, 0),
        datetime(2024, 1, 10, 10, 0),
        datetime(2024, 1, 15, 10, 0),
        datetime(2024, 1, 17, 10, 0),
    ]


def test_weekly_event_with_skip_dates_and_end():
    skipped = occurrences(weekly(skip_dates=(date(2024, 1, 10),)), JAN_8, JAN_22)
    assert [span[0].date() for span in skipped] == [date(2024, 1, 8), date(2024, 1, 15), date(2024, 1, 17)]

    ended = occurrences(weekly(end_recur=date(2024, 1, 12)), JAN_8, JAN_22)
    assert [span[0].date() for span in ended] == [date(2024, 1, 8), date(2024, 1, 10)]


def test_start_day_outside_days_of_week_is_not_an_occurrence():
    record = weekly(start_recur=date(2024, 1, 9), days_of_week=(0,))
    assert [span[0].date() for span in occurrences(record, JAN_8, JAN_22)] == [date(2024, 1, 15)]


def test_rrule_event():
    record = EventRecord(
        title="Rent",
        timing=RecurringTiming(
            start_recur=date(2024, 1, 15),
            rrule="FREQ=MONTHLY;BYMONTHDAY=15",
            start_time=time(9, 0),
            end_time=time(10, 0),
        ),
    )
    spans = occurrences(record, datetime(2024, 1, 1), datetime(2024, 4, 1))
    assert spans == [
        (datetime(2024, 1, 15, 9, 0), datetime(2024, 1, 15, 10, 0)),
        (datetime(2024, 2, 15, 9, 0), datetime(2024, 2, 15, 10, 0)),
        (datetime(2024, 3, 15, 9, 0), datetime(2024, 3, 15, 10, 0)),
    ]
