"""Exception hierarchy shared by the calendar, climate and journal modules."""

from __future__ import annotations


class ChronicleError(Exception):
    """Base exception for chronicle operations."""
    pass


class ParseError(ChronicleError, ValueError):
    """Raised for malformed dates, dice expressions or serialized journals."""
    pass


class FieldUndefinedError(ChronicleError):
    """Raised when arithmetic needs a calendar field that is absent."""
    pass


class MissingRangeError(ChronicleError, TypeError):
    """Raised when a date operation receives something that is not a date."""
    pass


class AggregationMismatchError(ChronicleError):
    """Raised when a start fragment has no matching end fragment."""
    pass


class ClimateConfigError(ChronicleError):
    """Raised when a climate definition is inconsistent."""
    pass


class NoJournalError(ChronicleError):
    """Raised when an operation needs an existing journal and none is stored."""
    pass


class HandoutNotFoundError(ChronicleError):
    """Raised when a named handout does not exist in the store."""
    pass


class CalendarRangeError(ChronicleError, ValueError):
    """Raised when a date would have to move to before its current value."""
    pass
