"""Tests for the vaultcal-sync command line."""

import tomllib
from datetime import date, time
from pathlib import Path

from vaultcal.config import CalDAVCalendarInfo, Config, ICalCalendarInfo
from vaultcal.event_record import EventRecord, RecurringTiming, SingleTiming

from vaultcal_sync import EXAMPLE_CONFIG, describe


def test_example_config_is_valid():
    """The configuration printed for a missing file can be used as is."""
    config = Config.from_dict(tomllib.loads(EXAMPLE_CONFIG))

    assert config.vault == Path("~/Notes").expanduser()
    assert config.daily_note_folder == "Daily"
    assert [info.type for info in config.calendars] == ["local", "dailynote", "ical", "caldav"]
    assert isinstance(config.calendars[2], ICalCalendarInfo)
    assert isinstance(config.calendars[3], CalDAVCalendarInfo)
    assert config.calendars[3].password_key == "nextcloud/password"


def test_describe():
    standup = EventRecord(
        title="Standup",
        timing=SingleTiming(date(2024, 1, 10), start_time=time(9, 0), end_time=time(9, 15)),
    )
    assert describe(standup) == "Standup [2024-01-10 09:00-09:15]"

    gym = EventRecord(title="Gym", timing=RecurringTiming(start_recur=date(2024, 1, 1), days_of_week=(0,)), all_day=True)
    assert describe(gym) == "Gym [from 2024-01-01 all day]"
