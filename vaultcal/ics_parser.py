"""
Turn iCalendar text into EventRecords.

Each VEVENT is flat-mapped to zero, one or more records:

- no DTSTART: nothing
- RECURRENCE-ID: one single record for the overridden instance
- RRULE: one recurring record (weekly BYDAY rules become days_of_week,
  anything else is kept as an RRULE string), plus one single record per RDATE
- otherwise: one single record
"""

from datetime import date, datetime, time, timedelta
from typing import Iterator, Optional

from icalendar import Calendar as ICalCalendar, Event as ICalEvent

from .event_record import EventRecord, RecurringTiming, SingleTiming
from .timezone_utils import to_local_naive


ICAL_WEEKDAYS = ["MO", "TU", "WE", "TH", "FR", "SA", "SU"]


def _to_local(value) -> date:
    """Normalize a DTSTART/DTEND value to a date or a naive local datetime."""
    if isinstance(value, datetime):
        return to_local_naive(value)
    return value


def _prop_dt(component: ICalEvent, name: str):
    prop = component.get(name)
    if prop is None:
        return None
    return _to_local(prop.dt)


def _date_of(value) -> date:
    return value.date() if isinstance(value, datetime) else value


def _time_of(value) -> Optional[time]:
    if isinstance(value, datetime):
        return value.time().replace(second=0, microsecond=0)
    return None


def _list_dates(component: ICalEvent, name: str) -> list[date]:
    """Collect the dates of a multi-valued date property such as EXDATE or RDATE."""
    prop = component.get(name)
    if prop is None:
        return []
    props = prop if isinstance(prop, list) else [prop]
    dates = []
    for item in props:
        for entry in getattr(item, "dts", []):
            value = entry.dt
            if isinstance(value, tuple):
                # RDATE periods are (start, end) pairs
                value = value[0]
            dates.append(_date_of(_to_local(value)))
    return dates


def _end_of(component: ICalEvent, start):
    end = _prop_dt(component, "DTEND")
    if end is None:
        duration = component.get("DURATION")
        if duration is not None:
            end = start + duration.dt
    return end


def _single_timing(start, end) -> SingleTiming:
    all_day = not isinstance(start, datetime)
    start_date = _date_of(start)
    if end is None:
        return SingleTiming(date=start_date, start_time=_time_of(start))

    if all_day:
        # DTEND of all-day events is exclusive
        last_day = _date_of(end) - timedelta(days=1)
        end_date = last_day if last_day > start_date else None
        return SingleTiming(date=start_date, end_date=end_date)

    end_date = _date_of(end) if _date_of(end) != start_date else None
    end_time = _time_of(end)
    start_time = _time_of(start)
    if end_date is None and end_time is not None and start_time is not None and not start_time < end_time:
        end_time = None
    return SingleTiming(
        date=start_date,
        end_date=end_date,
        start_time=start_time,
        end_time=end_time,
    )


def _recurring_timing(component: ICalEvent, start, end) -> RecurringTiming:
    rrule = component.get("RRULE")
    if isinstance(rrule, list):
        rrule = rrule[0]
    freq = rrule.get("FREQ", [None])[0]
    byday = rrule.get("BYDAY", [])
    interval = rrule.get("INTERVAL", [1])[0]
    simple_weekly = (
        freq == "WEEKLY"
        and interval in (1, None)
        and byday
        and not rrule.get("COUNT")
        and all(str(day).upper() in ICAL_WEEKDAYS for day in byday)
    )

    end_recur = None
    until = rrule.get("UNTIL", [None])[0]
    if until is not None:
        end_recur = _date_of(_to_local(until))

    start_time = _time_of(start)
    end_time = _time_of(end) if end is not None and _date_of(end) == _date_of(start) else None
    if start_time is not None and end_time is not None and not start_time < end_time:
        end_time = None

    if simple_weekly:
        days = tuple(sorted({ICAL_WEEKDAYS.index(str(day).upper()) for day in byday}))
        rule_text = None
    else:
        days = ()
        rule_text = rrule.to_ical().decode("utf-8")

    return RecurringTiming(
        start_recur=_date_of(start),
        end_recur=end_recur,
        days_of_week=days,
        skip_dates=tuple(sorted(set(_list_dates(component, "EXDATE")))),
        start_time=start_time,
        end_time=end_time,
        rrule=rule_text,
    )


def records_from_vevent(component: ICalEvent) -> Iterator[EventRecord]:
    """Yield the records described by a single VEVENT."""
    start = _prop_dt(component, "DTSTART")
    if start is None:
        return

    end = _end_of(component, start)
    all_day = not isinstance(start, datetime)
    title = str(component.get("SUMMARY") or "").strip() or "(untitled)"
    uid = str(component.get("UID")) if component.get("UID") else None

    recurrence_id = _prop_dt(component, "RECURRENCE-ID")
    if recurrence_id is not None:
        yield EventRecord(
            title=title,
            timing=_single_timing(start, end),
            all_day=all_day,
            uid=uid,
            override_date=_date_of(recurrence_id),
        )
        return

    if component.get("RRULE") is None:
        yield EventRecord(title=title, timing=_single_timing(start, end), all_day=all_day, uid=uid)
        return

    yield EventRecord(
        title=title,
        timing=_recurring_timing(component, start, end),
        all_day=all_day,
        uid=uid,
    )
    duration = (end - start) if end is not None else None
    for extra in _list_dates(component, "RDATE"):
        extra_start = datetime.combine(extra, start.time()) if isinstance(start, datetime) else extra
        extra_end = extra_start + duration if duration is not None else None
        yield EventRecord(
            title=title,
            timing=_single_timing(extra_start, extra_end),
            all_day=all_day,
            uid=uid,
            override_date=extra,
        )


def events_from_ics(text: str) -> list[EventRecord]:
    """
    Parse a VCALENDAR document into EventRecords.

    Raises:
        ValueError: if the text is not valid iCalendar data.
    """
    calendar = ICalCalendar.from_ical(text)
    records = []
    for component in calendar.walk("VEVENT"):
        records.extend(records_from_vevent(component))
    return records

