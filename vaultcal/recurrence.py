"""
Occurrence expansion for EventRecords.

Recurring records are rendered back into a VEVENT and expanded with
recurring_ical_events, the same library the remote feeds are written for.
All datetimes here are naive local wall-clock times.
"""

from datetime import date, datetime, time, timedelta
from typing import Optional

from icalendar import Calendar as ICalCalendar, Event as ICalEvent, vRecur
from recurring_ical_events import of as recurring_events_of

from .event_record import EventRecord, RecurringTiming, SingleTiming


ICAL_WEEKDAYS = ["MO", "TU", "WE", "TH", "FR", "SA", "SU"]


def _combine(day: date, at: Optional[time]):
    if at is None:
        return day
    return datetime.combine(day, at)


def _as_datetime(value) -> datetime:
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    return datetime.combine(value, time.min)


def _single_span(record: EventRecord) -> tuple[datetime, datetime]:
    timing = record.timing
    last_day = timing.end_date or timing.date
    if record.all_day or timing.start_time is None:
        return datetime.combine(timing.date, time.min), datetime.combine(last_day + timedelta(days=1), time.min)
    start = datetime.combine(timing.date, timing.start_time)
    if timing.end_time is None:
        return start, start + timedelta(hours=1)
    return start, datetime.combine(last_day, timing.end_time)


def to_vevent(record: EventRecord) -> ICalEvent:
    """Build the VEVENT that describes a recurring record."""
    timing = record.timing
    if not isinstance(timing, RecurringTiming):
        raise ValueError("Only recurring events can be expanded")

    start_time = None if record.all_day else timing.start_time
    event = ICalEvent()
    event.add("uid", record.uid or "vaultcal-expansion")
    event.add("summary", record.title)
    event.add("dtstart", _combine(timing.start_recur, start_time))
    if start_time is not None and timing.end_time is not None:
        event.add("dtend", datetime.combine(timing.start_recur, timing.end_time))

    if timing.rrule is not None:
        rule = vRecur.from_ical(timing.rrule)
    else:
        rule = vRecur({"FREQ": "WEEKLY", "BYDAY": [ICAL_WEEKDAYS[d] for d in timing.days_of_week]})
        if timing.end_recur is not None:
            rule["UNTIL"] = _combine(timing.end_recur, time.max.replace(microsecond=0) if start_time else None)
    event.add("rrule", rule)

    for skipped in timing.skip_dates:
        event.add("exdate", _combine(skipped, start_time))
    return event


def occurrences(record: EventRecord, start: datetime, end: datetime) -> list[tuple[datetime, datetime]]:
    """
    List the (start, end) spans of an event that overlap [start, end).

    Args:
        record: The event to expand
        start: Start of the window (naive local time)
        end: End of the window (naive local time)

    Returns:
        Spans sorted by start time.
    """
    if isinstance(record.timing, SingleTiming):
        span_start, span_end = _single_span(record)
        if span_start < end and span_end > start:
            return [(span_start, span_end)]
        return []

    timing = record.timing
    vcal = ICalCalendar()
    vcal.add("prodid", "-//vaultcal//expansion//")
    vcal.add("version", "2.0")
    vcal.add_component(to_vevent(record))

    spans = []
    for instance in recurring_events_of(vcal).between(start, end):
        instance_start = _as_datetime(instance.get("DTSTART").dt)
        if timing.days_of_week and instance_start.weekday() not in timing.days_of_week:
            # DTSTART always counts as an occurrence in iCalendar, but not here
            continue
        if timing.end_recur is not None and instance_start.date() > timing.end_recur:
            continue
        dtend = instance.get("DTEND")
        if dtend is not None:
            instance_end = _as_datetime(dtend.dt)
        elif isinstance(instance.get("DTSTART").dt, datetime):
            instance_end = instance_start + timedelta(hours=1)
        else:
            instance_end = instance_start + timedelta(days=1)
        spans.append((instance_start, instance_end))
    spans.sort()
    return spans
