"""
Normalized event representation shared by every calendar backend.

An EventRecord carries only what the UI needs to draw an event. Where the
event lives (its Location) and which calendar it belongs to are tracked next
to it by the calendars and the event cache, never inside it.

The raw form (see validate() and to_raw()) is the dict stored in note
frontmatter. Keys are camelCase so that notes stay readable by other tools.
"""

from dataclasses import dataclass, replace
from datetime import date, datetime, time
from typing import Any, Optional, Union

from .exceptions import ValidationError


# Weekday letters used in note frontmatter, indexed by date.weekday()
WEEKDAY_LETTERS = "MTWRFSU"


@dataclass(frozen=True)
class Classification:
    """A named, colored tag used to group events in the UI."""
    name: str
    color: str


@dataclass(frozen=True)
class SingleTiming:
    """Timing of an event that happens once."""
    date: date
    end_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None


@dataclass(frozen=True)
class RecurringTiming:
    """
    Timing of a repeating event.

    Weekly rules are kept as days_of_week (0 = Monday). Anything else coming
    from a remote feed is kept verbatim as an RRULE string.
    """
    start_recur: date
    end_recur: Optional[date] = None
    days_of_week: tuple[int, ...] = ()
    skip_dates: tuple[date, ...] = ()
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    rrule: Optional[str] = None


Timing = Union[SingleTiming, RecurringTiming]


@dataclass(frozen=True)
class EventRecord:
    """A calendar event, independent of where it is stored."""
    title: str
    timing: Timing
    all_day: bool = False
    category: tuple[Classification, ...] = ()
    # Remote events only: the iCalendar UID and, for overridden instances,
    # the date of the instance being overridden.
    uid: Optional[str] = None
    override_date: Optional[date] = None

    @property
    def is_recurring(self) -> bool:
        return isinstance(self.timing, RecurringTiming)

    @property
    def start_time(self) -> Optional[time]:
        return self.timing.start_time

    @property
    def end_time(self) -> Optional[time]:
        return self.timing.end_time

    def with_changes(self, **changes: Any) -> 'EventRecord':
        """
        Return a copy with the given fields replaced.

        The copy goes through the same checks as validate().
        """
        updated = replace(self, **changes)
        return validate(to_raw(updated))


@dataclass(frozen=True)
class Location:
    """Where an event is stored inside an editable calendar."""
    path: str
    line: Optional[int] = None

    def key(self) -> str:
        if self.line is None:
            return self.path
        return f"{self.path}::{self.line}"

    def is_under(self, path: str) -> bool:
        """True if this location is the given file or lies inside the given folder."""
        prefix = path.rstrip("/")
        return self.path == prefix or self.path.startswith(prefix + "/")


# ==================== Raw value coercion ====================

def _parse_date(value: Any, key: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            pass
    raise ValidationError(f"Invalid date for '{key}'", {key: value})


def _parse_time(value: Any, key: str) -> time:
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    if isinstance(value, bool):
        raise ValidationError(f"Invalid time for '{key}'", {key: value})
    if isinstance(value, int):
        # YAML 1.1 reads an unquoted 10:30 as the sexagesimal integer 630
        hours, minutes = divmod(value, 60)
        if 0 <= hours < 24:
            return time(hours, minutes)
    if isinstance(value, str):
        text = value.strip()
        for fmt in ("%H:%M", "%H:%M:%S", "%I:%M %p", "%I:%M%p"):
            try:
                return datetime.strptime(text, fmt).time().replace(second=0)
            except ValueError:
                continue
    raise ValidationError(f"Invalid time for '{key}'", {key: value})


def _parse_optional_date(raw: dict, key: str) -> Optional[date]:
    value = raw.get(key)
    if value is None or value == "":
        return None
    return _parse_date(value, key)


def _parse_optional_time(raw: dict, key: str) -> Optional[time]:
    value = raw.get(key)
    if value is None or value == "":
        return None
    return _parse_time(value, key)


def _parse_days_of_week(value: Any) -> tuple[int, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = [c for c in value if not c.isspace() and c != ","]
    if not isinstance(value, (list, tuple)):
        raise ValidationError("daysOfWeek must be a list", {"daysOfWeek": value})
    days = set()
    for item in value:
        if isinstance(item, int) and not isinstance(item, bool) and 0 <= item <= 6:
            days.add(item)
        elif isinstance(item, str) and len(item) == 1 and item.upper() in WEEKDAY_LETTERS:
            days.add(WEEKDAY_LETTERS.index(item.upper()))
        else:
            raise ValidationError("Invalid day of week", {"daysOfWeek": value})
    return tuple(sorted(days))


def _parse_category(value: Any) -> tuple[Classification, ...]:
    if value is None:
        return ()
    if not isinstance(value, (list, tuple)):
        raise ValidationError("category must be a list", {"category": value})
    result = []
    for item in value:
        if isinstance(item, Classification):
            result.append(item)
            continue
        if not isinstance(item, dict):
            raise ValidationError("Invalid category entry", {"category": item})
        name = item.get("name")
        color = item.get("color")
        if not isinstance(name, str) or not isinstance(color, str):
            raise ValidationError("Category needs a name and a color", {"category": item})
        result.append(Classification(name=name, color=color))
    return tuple(result)


def _check_times(start: Optional[time], end: Optional[time], all_day: bool, same_day: bool) -> None:
    if all_day:
        if start is not None or end is not None:
            raise ValidationError("All-day events cannot have start or end times")
        return
    if end is not None and start is None:
        raise ValidationError("An end time requires a start time")
    if same_day and start is not None and end is not None and not start < end:
        raise ValidationError(
            "Start time must precede end time",
            {"startTime": start.strftime("%H:%M"), "endTime": end.strftime("%H:%M")}
        )


# ==================== Public API ====================

def validate(raw: Any) -> EventRecord:
    """
    Build an EventRecord from its raw dict form.

    Args:
        raw: Mapping as found in note frontmatter.

    Returns:
        The validated EventRecord.

    Raises:
        ValidationError: if the data is malformed or breaks an invariant.
    """
    if isinstance(raw, EventRecord):
        raw = to_raw(raw)
    if not isinstance(raw, dict):
        raise ValidationError("Event data must be a mapping", {"raw": raw})

    title = raw.get("title")
    if not isinstance(title, str) or not title.strip():
        raise ValidationError("Event needs a title", {"title": title})

    all_day = raw.get("allDay", False)
    if not isinstance(all_day, bool):
        raise ValidationError("allDay must be true or false", {"allDay": all_day})

    has_single = raw.get("date") is not None
    has_recurring = any(raw.get(k) is not None for k in ("daysOfWeek", "startRecur", "rrule"))
    kind = raw.get("type")
    if has_single and has_recurring:
        raise ValidationError("An event cannot have both a date and a recurrence rule")
    if kind is None:
        kind = "recurring" if has_recurring else "single"

    start_time = _parse_optional_time(raw, "startTime")
    end_time = _parse_optional_time(raw, "endTime")

    if kind == "single":
        if has_recurring:
            raise ValidationError("Single events cannot carry recurrence fields")
        if not has_single:
            raise ValidationError("Single events need a date")
        start_date = _parse_date(raw["date"], "date")
        end_date = _parse_optional_date(raw, "endDate")
        if end_date is not None and end_date < start_date:
            raise ValidationError("endDate is before date", {"date": raw["date"], "endDate": raw["endDate"]})
        if end_date == start_date:
            end_date = None
        _check_times(start_time, end_time, all_day, same_day=end_date is None)
        timing: Timing = SingleTiming(
            date=start_date,
            end_date=end_date,
            start_time=start_time,
            end_time=end_time,
        )
    elif kind == "recurring":
        if has_single:
            raise ValidationError("Recurring events cannot carry a single date")
        if raw.get("startRecur") is None:
            raise ValidationError("Recurring events need startRecur")
        start_recur = _parse_date(raw["startRecur"], "startRecur")
        end_recur = _parse_optional_date(raw, "endRecur")
        if end_recur is not None and end_recur < start_recur:
            raise ValidationError("endRecur is before startRecur")
        days = _parse_days_of_week(raw.get("daysOfWeek"))
        rrule = raw.get("rrule")
        if rrule is not None and (not isinstance(rrule, str) or not rrule.strip()):
            raise ValidationError("rrule must be a non-empty string", {"rrule": rrule})
        if not days and rrule is None:
            raise ValidationError("Recurring events need daysOfWeek or an rrule")
        skip_dates = tuple(sorted({_parse_date(d, "skipDates") for d in raw.get("skipDates") or ()}))
        _check_times(start_time, end_time, all_day, same_day=True)
        timing = RecurringTiming(
            start_recur=start_recur,
            end_recur=end_recur,
            days_of_week=days,
            skip_dates=skip_dates,
            start_time=start_time,
            end_time=end_time,
            rrule=rrule.strip() if rrule else None,
        )
    else:
        raise ValidationError("Unknown event type", {"type": kind})

    uid = raw.get("uid")
    if uid is not None and not isinstance(uid, str):
        uid = str(uid)

    return EventRecord(
        title=title.strip(),
        timing=timing,
        all_day=all_day,
        category=_parse_category(raw.get("category")),
        uid=uid,
        override_date=_parse_optional_date(raw, "overrideDate"),
    )


def to_raw(record: EventRecord) -> dict:
    """Convert an EventRecord to its raw dict form (inverse of validate)."""
    raw: dict[str, Any] = {"title": record.title}
    timing = record.timing
    if isinstance(timing, SingleTiming):
        raw["type"] = "single"
        raw["date"] = timing.date.isoformat()
        if timing.end_date is not None:
            raw["endDate"] = timing.end_date.isoformat()
    else:
        raw["type"] = "recurring"
        if timing.days_of_week:
            raw["daysOfWeek"] = [WEEKDAY_LETTERS[d] for d in timing.days_of_week]
        if timing.rrule is not None:
            raw["rrule"] = timing.rrule
        raw["startRecur"] = timing.start_recur.isoformat()
        if timing.end_recur is not None:
            raw["endRecur"] = timing.end_recur.isoformat()
        if timing.skip_dates:
            raw["skipDates"] = [d.isoformat() for d in timing.skip_dates]
    raw["allDay"] = record.all_day
    if timing.start_time is not None:
        raw["startTime"] = timing.start_time.strftime("%H:%M")
    if timing.end_time is not None:
        raw["endTime"] = timing.end_time.strftime("%H:%M")
    if record.category:
        raw["category"] = [{"name": c.name, "color": c.color} for c in record.category]
    if record.uid is not None:
        raw["uid"] = record.uid
    if record.override_date is not None:
        raw["overrideDate"] = record.override_date.isoformat()
    return raw
