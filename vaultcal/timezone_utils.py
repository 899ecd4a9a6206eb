"""
Timezone utilities for vaultcal.

Remote feeds carry timezone-aware datetimes while notes store wall-clock
dates and times. Everything is converted to the configured local timezone
before it becomes an EventRecord.
"""

from datetime import datetime
import time as _time
import pytz


# Default timezone - overridden by the [General] timezone setting
_local_timezone_name: str = "UTC"


def set_timezone(timezone_name: str) -> None:
    """Set the local timezone for the application."""
    global _local_timezone_name
    _local_timezone_name = timezone_name


def get_local_timezone():
    """
    Get the local timezone as a pytz timezone object.

    Falls back to the system offset if the configured name is unknown.
    """
    try:
        return pytz.timezone(_local_timezone_name)
    except pytz.UnknownTimeZoneError:
        try:
            return pytz.timezone(_time.tzname[0])
        except pytz.UnknownTimeZoneError:
            if _time.localtime().tm_isdst:
                offset_seconds = -_time.altzone
            else:
                offset_seconds = -_time.timezone
            return pytz.FixedOffset(offset_seconds // 60)


def to_local_naive(dt: datetime) -> datetime:
    """
    Convert an aware datetime to a naive local one.

    Naive datetimes are floating times and are returned unchanged.
    """
    if dt.tzinfo is not None:
        return dt.astimezone(get_local_timezone()).replace(tzinfo=None)
    return dt
