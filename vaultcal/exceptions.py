"""
Error types for vaultcal.

Configuration errors skip the offending source, fetch and parse errors are
contained inside remote calendars, write conflicts are surfaced to the caller.
"""

from typing import Optional


class VaultCalError(Exception):
    """Base exception for all vaultcal errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class ConfigurationError(VaultCalError):
    """A calendar source configuration is malformed or collides with another."""


class ValidationError(VaultCalError):
    """Raw event data does not describe a valid event."""


class FetchError(VaultCalError):
    """A remote calendar could not be fetched."""


class WriteConflictError(VaultCalError):
    """The stored event changed since it was last read."""

    def __init__(self, path: str, line: Optional[int] = None):
        details = {"path": path}
        if line is not None:
            details["line"] = line
        super().__init__("Event was modified outside of the calendar", details)
        self.path = path
        self.line = line


class EventNotFoundError(VaultCalError, KeyError):
    """No event with the given identifier is in the cache."""

    def __init__(self, event_id: str):
        super().__init__(f"No event with id {event_id!r}")
        self.event_id = event_id

    def __str__(self) -> str:
        return self.message


class CalendarNotEditableError(VaultCalError):
    """A mutation was requested on a calendar that cannot be written."""

    def __init__(self, calendar_id: str):
        super().__init__(f"Calendar {calendar_id!r} is read-only")
        self.calendar_id = calendar_id
