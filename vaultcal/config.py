"""
Configuration parser for vaultcal.

Handles TOML file parsing, the tagged calendar source configurations and
secure password retrieval via external programs.
"""

import tomllib
import subprocess
import os
import sys
from pathlib import Path
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar, Optional
from urllib.parse import urlparse

from .event_record import Classification
from .exceptions import ConfigurationError
from .identifiers import daily_note_calendar_id, is_valid_calendar_id
from .ics_subscription import normalize_feed_url
from .vault import normalize_path


def _debug_print(msg: str) -> None:
    timestamp = datetime.now().strftime("%H:%M:%S")
    print(f"[{timestamp}] CONFIG: {msg}", file=sys.stderr)


DEFAULT_COLOR = "#4285f4"  # Google Blue


# ==================== Calendar source configurations ====================

@dataclass
class CalendarInfo:
    """Persisted configuration of one calendar source."""
    type: ClassVar[str] = ""
    color: str = DEFAULT_COLOR
    category: list[Classification] = field(default_factory=list)

    def calendar_id(self) -> str:
        """Identifier the calendar built from this configuration will have."""
        raise NotImplementedError


@dataclass
class LocalCalendarInfo(CalendarInfo):
    """One note per event inside a vault directory."""
    type: ClassVar[str] = "local"
    directory: str = ""

    def calendar_id(self) -> str:
        try:
            return normalize_path(self.directory)
        except ValueError as e:
            raise ConfigurationError(str(e), {"directory": self.directory})


@dataclass
class DailyNoteCalendarInfo(CalendarInfo):
    """List items under a heading of the daily notes."""
    type: ClassVar[str] = "dailynote"
    heading: str = ""

    def calendar_id(self) -> str:
        return daily_note_calendar_id(self.heading.strip())


@dataclass
class ICalCalendarInfo(CalendarInfo):
    """Read-only ICS feed."""
    type: ClassVar[str] = "ical"
    url: str = ""

    def calendar_id(self) -> str:
        return normalize_feed_url(self.url)


@dataclass
class CalDAVCalendarInfo(CalendarInfo):
    """Read-only calendar collection on a CalDAV server."""
    type: ClassVar[str] = "caldav"
    name: str = ""
    url: str = ""          # calendar collection URL
    home_url: str = ""     # server / principal URL used to connect
    username: str = ""
    password: str = ""
    password_key: str = ""

    _resolved_password: Optional[str] = field(default=None, repr=False, compare=False)

    def calendar_id(self) -> str:
        return self.url

    def get_password(self, password_program: str) -> str:
        """
        Return the password, asking the password program if only a key is configured.

        Raises:
            ConfigurationError: if the password program fails.
        """
        if self.password or not self.password_key:
            return self.password
        if self._resolved_password is None:
            try:
                result = subprocess.run(
                    [password_program, self.password_key],
                    capture_output=True,
                    text=True,
                    timeout=30
                )
            except subprocess.TimeoutExpired:
                raise ConfigurationError(f"Password program timed out for key '{self.password_key}'")
            except FileNotFoundError:
                raise ConfigurationError(f"Password program not found: {password_program}")
            if result.returncode != 0:
                raise ConfigurationError(
                    f"Password program failed for key '{self.password_key}': {result.stderr.strip()}"
                )
            self._resolved_password = result.stdout.strip()
        return self._resolved_password


@dataclass
class TestCalendarInfo(CalendarInfo):
    """In-memory calendar, only used by tests."""
    __test__ = False  # not a pytest test class
    type: ClassVar[str] = "FOR_TEST_ONLY"
    id: str = ""

    def calendar_id(self) -> str:
        return self.id


CALENDAR_INFO_TYPES: dict[str, type[CalendarInfo]] = {
    cls.type: cls
    for cls in (LocalCalendarInfo, DailyNoteCalendarInfo, ICalCalendarInfo, CalDAVCalendarInfo, TestCalendarInfo)
}


def _require_str(raw: dict, key: str, *fallbacks: str) -> str:
    for name in (key,) + fallbacks:
        value = raw.get(name)
        if value is not None:
            if not isinstance(value, str) or not value.strip():
                raise ConfigurationError(f"'{key}' must be a non-empty string", {key: value})
            return value.strip()
    raise ConfigurationError(f"Missing '{key}'")


def _optional_str(raw: dict, key: str) -> str:
    value = raw.get(key, "")
    if not isinstance(value, str):
        raise ConfigurationError(f"'{key}' must be a string", {key: value})
    return value


def _check_url(url: str, schemes: tuple[str, ...]) -> str:
    parsed = urlparse(url)
    if parsed.scheme.lower() not in schemes or not parsed.netloc:
        raise ConfigurationError(f"Invalid URL: {url}", {"schemes": list(schemes)})
    return url


def _parse_category(value: Any) -> list[Classification]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigurationError("'category' must be a list", {"category": value})
    result = []
    for item in value:
        if not isinstance(item, dict) or not isinstance(item.get("name"), str) or not isinstance(item.get("color"), str):
            raise ConfigurationError("Category entries need a name and a color", {"category": item})
        result.append(Classification(name=item["name"], color=item["color"]))
    return result


def parse_calendar_info(raw: Any) -> CalendarInfo:
    """
    Parse one persisted calendar source.

    Args:
        raw: Mapping with a 'type' tag and the fields of that type

    Returns:
        The matching CalendarInfo.

    Raises:
        ConfigurationError: if the tag is unknown or a field is malformed.
    """
    if not isinstance(raw, dict):
        raise ConfigurationError("Calendar entry must be a table", {"entry": raw})
    tag = raw.get("type")
    if tag not in CALENDAR_INFO_TYPES:
        raise ConfigurationError(f"Unknown calendar type: {tag!r}")

    color = raw.get("color", DEFAULT_COLOR)
    if not isinstance(color, str):
        raise ConfigurationError("'color' must be a string", {"color": color})
    common = dict(color=color, category=_parse_category(raw.get("category")))

    if tag == LocalCalendarInfo.type:
        info: CalendarInfo = LocalCalendarInfo(directory=_require_str(raw, "directory"), **common)
    elif tag == DailyNoteCalendarInfo.type:
        info = DailyNoteCalendarInfo(heading=_require_str(raw, "heading"), **common)
    elif tag == ICalCalendarInfo.type:
        url = _check_url(_require_str(raw, "url"), ("http", "https", "webcal"))
        info = ICalCalendarInfo(url=url, **common)
    elif tag == CalDAVCalendarInfo.type:
        info = CalDAVCalendarInfo(
            name=_require_str(raw, "name"),
            url=_check_url(_require_str(raw, "url"), ("http", "https")),
            home_url=_check_url(_require_str(raw, "home_url", "homeUrl"), ("http", "https")),
            username=_require_str(raw, "username"),
            password=_optional_str(raw, "password"),
            password_key=_optional_str(raw, "password_key"),
            **common
        )
        if not info.password and not info.password_key:
            raise ConfigurationError("CalDAV calendars need a password or a password_key")
    else:
        info = TestCalendarInfo(id=_require_str(raw, "id"), **common)

    if not is_valid_calendar_id(info.calendar_id()):
        raise ConfigurationError(f"Invalid calendar identifier: {info.calendar_id()!r}")
    return info


def safe_parse_calendar_info(raw: Any) -> Optional[CalendarInfo]:
    """Parse one calendar source, returning None (with a warning) if it is malformed."""
    try:
        return parse_calendar_info(raw)
    except ConfigurationError as e:
        _debug_print(f"WARNING: Skipping calendar entry: {e}")
        return None


def check_unique_ids(calendars: list[CalendarInfo]) -> None:
    """Raise ConfigurationError if two sources would get the same calendar id."""
    seen: dict[str, CalendarInfo] = {}
    for info in calendars:
        calendar_id = info.calendar_id()
        if calendar_id in seen:
            raise ConfigurationError(
                f"Duplicate calendar identifier: {calendar_id}",
                {"types": [seen[calendar_id].type, info.type]}
            )
        seen[calendar_id] = info


# ==================== Application configuration ====================

@dataclass
class Config:
    """Main configuration container for vaultcal."""

    vault: Path
    timezone: str = "UTC"
    revalidate_interval: int = 900  # Seconds between unforced remote revalidations
    network_timeout: int = 30
    daily_note_folder: str = ""
    password_program: str = "/usr/bin/pass"
    calendars: list[CalendarInfo] = field(default_factory=list)

    @classmethod
    def get_default_config_path(cls) -> Path:
        """Get the default configuration file path."""
        xdg_config = os.environ.get('XDG_CONFIG_HOME', os.path.expanduser('~/.config'))
        return Path(xdg_config) / 'vaultcal' / 'vaultcal.toml'

    @classmethod
    def from_dict(cls, data: dict) -> 'Config':
        """Build the configuration from parsed TOML data."""
        general = data.get('General', {})
        if 'vault' not in general:
            raise ConfigurationError("[General] needs a 'vault' path")

        revalidate_interval = general.get('revalidate_interval', 900)
        network_timeout = general.get('network_timeout', 30)
        for key, value in (('revalidate_interval', revalidate_interval), ('network_timeout', network_timeout)):
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ConfigurationError(f"'{key}' must be a non-negative integer", {key: value})

        entries = data.get('Calendar', [])
        if not isinstance(entries, list):
            raise ConfigurationError("'Calendar' must be an array of tables ([[Calendar]])")
        calendars = []
        for entry in entries:
            info = safe_parse_calendar_info(entry)
            if info is not None:
                calendars.append(info)
        check_unique_ids(calendars)
        _debug_print(f"Loaded {len(calendars)} of {len(entries)} calendar entries")

        return cls(
            vault=Path(os.path.expanduser(str(general['vault']))),
            timezone=general.get('timezone', 'UTC'),
            revalidate_interval=revalidate_interval,
            network_timeout=network_timeout,
            daily_note_folder=general.get('daily_note_folder', ''),
            password_program=general.get('password_program', '/usr/bin/pass'),
            calendars=calendars,
        )

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> 'Config':
        """Load configuration from TOML file."""
        if config_path is None:
            config_path = cls.get_default_config_path()

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'rb') as f:
            try:
                data = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ConfigurationError(f"Invalid TOML in {config_path}: {e}")

        return cls.from_dict(data)
