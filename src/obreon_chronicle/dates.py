"""The Obreon calendar - a mixed-radix date value with wildcard fields."""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional

from .errors import CalendarRangeError, FieldUndefinedError, MissingRangeError, ParseError


FIELDS = ("year", "month", "day", "hour", "minute")

MINIMA = {"year": 1, "month": 1, "day": 1, "hour": 0, "minute": 0}
MAXIMA: dict[str, Optional[int]] = {"year": None, "month": 10, "day": 30, "hour": 23, "minute": 59}

# Year has no upper bound, so it never wraps and has no count
COUNTS = {name: MAXIMA[name] - MINIMA[name] + 1 for name in FIELDS if MAXIMA[name] is not None}


def _build_multipliers() -> dict[str, int]:
    """Minutes represented by one unit of each field."""
    table = {}
    size = 1
    for name in reversed(FIELDS):
        table[name] = size
        size *= COUNTS.get(name, 1)
    return table


MINUTES_PER_UNIT = _build_multipliers()

MONTH_NAMES = [
    "Primaluna",
    "Sequiluna",
    "Serimon",
    "Cereluna",
    "Canicula",
    "Nitimon",
    "Messiluna",
    "Casimon",
    "Oneirimon",
    "Selemon",
]

DAYS_OF_WEEK = [
    "Nildem",
    "Genedem",
    "Luctadem",
    "Obidem",
    "Ortidem",
    "Marcedem",
]

# Upper bound (exclusive) of day numbers for each phase of the moon
MOON_PHASES = [
    (3, "new"),
    (6, "waxing crescent"),
    (10, "first quarter"),
    (14, "waxing gibbous"),
    (17, "full"),
    (21, "waning gibbous"),
    (25, "third quarter"),
    (29, "waning crescent"),
]

_DATE_PATTERN = re.compile(
    r"^(?:(\d{1,4}|\*)/(\d{1,2}|\*)/(\d{1,2}|\*)(?:\s+|$))?(?:(\d{1,2}|\*):(\d\d|\*))?$"
)


def ordinal(number: int) -> str:
    """Format a day number as an English ordinal (1st, 22nd, 13th)."""
    if 10 <= number % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")
    return f"{number}{suffix}"


def _field_mapping(values: Optional[Mapping[str, Any]], extra: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(values or {})
    merged.update(extra)
    unknown = [name for name in merged if name not in FIELDS]
    if unknown:
        raise ParseError(f"Unknown date fields: {unknown}")
    return merged


def _format_part(value: Optional[int]) -> str:
    return "*" if value is None else str(value)


@dataclass(frozen=True)
class ObreonDate:
    """A point (or partial point) in Obreon time.

    Any field may be None, meaning "unconstrained". Absent fields match
    anything in comparisons but cannot be used as the base for arithmetic.
    """
    year: Optional[int] = None
    month: Optional[int] = None
    day: Optional[int] = None
    hour: Optional[int] = None
    minute: Optional[int] = None

    def __post_init__(self) -> None:
        for name in FIELDS:
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, int):
                raise ParseError(f"Field {name} must be an integer, got {value!r}")
            maximum = MAXIMA[name]
            if value < MINIMA[name] or (maximum is not None and value > maximum):
                raise ParseError(f"Field {name} value {value} is out of range")

    def __str__(self) -> str:
        return self.to_string()

    # ========== Arithmetic ==========

    def advance(self, increments: Optional[Mapping[str, int]] = None, **kwargs: int) -> ObreonDate:
        """Add signed amounts to fields, carrying into more significant fields.

        Args:
            increments: Mapping of field name to amount
            **kwargs: Same, as keyword arguments

        Returns:
            A new ObreonDate

        Raises:
            FieldUndefinedError: If an increment or carry lands on an absent field
        """
        steps = _field_mapping(increments, kwargs)
        values = {name: getattr(self, name) for name in FIELDS}
        carry = 0

        for name in reversed(FIELDS):
            delta = steps.get(name, 0) + carry
            carry = 0
            if not delta:
                continue
            value = values[name]
            if value is None:
                raise FieldUndefinedError(f"Can't advance field {name} because it has no value")
            value += delta
            maximum = MAXIMA[name]
            if maximum is not None and not MINIMA[name] <= value <= maximum:
                carry, offset = divmod(value - MINIMA[name], COUNTS[name])
                value = offset + MINIMA[name]
            values[name] = value

        return ObreonDate(**values)

    def advance_to(self, targets: Optional[Mapping[str, int]] = None, **kwargs: int) -> ObreonDate:
        """Move forward to the next moment matching the given field values.

        The most significant target field is reached by the smallest
        non-negative advance, wrapping through a full cycle if the target is
        behind the current value; less significant targets are then set.
        """
        wanted = _field_mapping(targets, kwargs)
        leading = next((name for name in FIELDS if name in wanted), None)
        if leading is None:
            return self

        current = getattr(self, leading)
        if current is None:
            raise FieldUndefinedError(f"Can't advance field {leading} because it has no value")

        maximum = MAXIMA[leading]
        value = wanted[leading] if maximum is None else min(maximum, wanted[leading])
        step = value - current
        if step < 0:
            if maximum is None:
                raise CalendarRangeError(f"Cannot advance {leading} backwards from {current} to {value}")
            step += COUNTS[leading]

        index = FIELDS.index(leading)
        remaining = {name: wanted[name] for name in FIELDS[index + 1:] if name in wanted}
        return self.advance({leading: step}).change(remaining)

    def change(self, values: Optional[Mapping[str, Optional[int]]] = None, **kwargs: Optional[int]) -> ObreonDate:
        """Return a copy with the named fields overwritten."""
        return replace(self, **_field_mapping(values, kwargs))

    def without(self, *names: str) -> ObreonDate:
        """Return a copy with the named fields made absent."""
        return self.change({name: None for name in names})

    # ========== Comparison ==========

    def compare(self, other: ObreonDate, unit: str = "minute") -> float:
        """Signed distance from other to self, expressed in unit.

        Fields absent on either side contribute nothing, which is what makes
        partial dates (e.g. '*/04/01') usable as recurring range bounds.
        """
        if not isinstance(other, ObreonDate):
            raise MissingRangeError(f"Cannot compare ObreonDate with {other!r}")
        if unit not in MINUTES_PER_UNIT:
            raise ParseError(f"Unknown unit: {unit}")

        total = 0
        for name in FIELDS:
            mine = getattr(self, name)
            theirs = getattr(other, name)
            if mine is not None and theirs is not None:
                total += (mine - theirs) * MINUTES_PER_UNIT[name]

        if unit == "minute":
            return total
        return total / MINUTES_PER_UNIT[unit]

    def equals(self, other: ObreonDate) -> bool:
        """True when the dates agree on every field both of them define."""
        return self.compare(other) == 0

    def between(self, start: ObreonDate, end: ObreonDate) -> bool:
        """True if self lies in [start, end), wrapping when end precedes start."""
        if not isinstance(start, ObreonDate) or not isinstance(end, ObreonDate):
            raise MissingRangeError(f"Arguments to between must be ObreonDate: {start!r} {end!r}")
        if self.compare(start) >= 0 and self.compare(end) < 0:
            return True
        return end.compare(start) < 0 and (self.compare(start) >= 0 or self.compare(end) < 0)

    def same_day(self, other: ObreonDate) -> bool:
        return abs(self.compare(other, "day")) < 1 and self.day == other.day

    def is_next_day(self, other: ObreonDate) -> bool:
        return self.start_of_day.compare(other.start_of_day, "day") == 1

    @property
    def start_of_day(self) -> ObreonDate:
        return self.change(hour=MINIMA["hour"], minute=MINIMA["minute"])

    @property
    def end_of_day(self) -> ObreonDate:
        return self.change(hour=MAXIMA["hour"], minute=MAXIMA["minute"])

    @property
    def next_day(self) -> ObreonDate:
        return self.advance(day=1)

    @property
    def date_only(self) -> ObreonDate:
        return self.without("hour", "minute")

    # ========== Derived values ==========

    @property
    def western_month(self) -> int:
        """Month number in the eleven-month western calendar."""
        if self.year is None or self.month is None:
            raise FieldUndefinedError("Can't calculate western month without year and month")
        cycle_year = self.year % 11
        return ((self.month + cycle_year * 10) % 11) or 11

    @property
    def moon_phase(self) -> str:
        if self.day is None:
            return "unknown"
        for limit, phase in MOON_PHASES:
            if self.day < limit:
                return phase
        return "new"

    @property
    def day_name(self) -> Optional[str]:
        return None if self.day is None else DAYS_OF_WEEK[self.day % len(DAYS_OF_WEEK)]

    @property
    def month_name(self) -> Optional[str]:
        return None if self.month is None else MONTH_NAMES[self.month - 1]

    # ========== Formatting ==========

    def to_date_string(self) -> str:
        return f"{_format_part(self.year)}/{_format_part(self.month)}/{_format_part(self.day)}"

    def to_time_string(self) -> str:
        minute = "*" if self.minute is None else f"{self.minute:02d}"
        return f"{_format_part(self.hour)}:{minute}"

    def to_string(self) -> str:
        return f"{self.to_date_string()} {self.to_time_string()}"

    def to_long_string(self) -> str:
        """Describe the date in words, leaving out whatever is absent.

        e.g. '14:00 on Nildem 18th of Cereluna in the year 2863 of the new era'
        """
        text = ""
        if self.hour is not None and self.minute is not None:
            text = self.to_time_string()
        if self.day is not None:
            text = f"{text} on " if text else ""
            text += f"{self.day_name} {ordinal(self.day)}"
        if self.month is not None:
            text = f"{text} of " if text else ""
            text += self.month_name
        if self.year is not None:
            text = f"{text} in the year " if text else ""
            text += f"{self.year} of the new era"
        return text

    def to_dict(self) -> dict[str, int]:
        """Present fields only; absent fields are left out."""
        return {name: getattr(self, name) for name in FIELDS if getattr(self, name) is not None}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ObreonDate:
        if not isinstance(data, Mapping):
            raise ParseError(f"Expected a mapping of date fields, got {data!r}")
        return cls(**_field_mapping(data, {}))

    @classmethod
    def from_string(cls, text: str, defaults: Optional[Mapping[str, int]] = None) -> ObreonDate:
        """Parse 'Y/M/D H:MM'; '*' or a missing segment leaves a field absent.

        Args:
            text: Date string such as '2863/05/01 12:00', '*/04/01' or '8:00'
            defaults: Values for fields the string leaves absent

        Raises:
            ParseError: If the string is malformed or a value is out of range
        """
        match = _DATE_PATTERN.match(text.strip()) if isinstance(text, str) else None
        if match is None or not text.strip():
            raise ParseError(f"Bad date string: {text!r}")

        values = {}
        for name, part in zip(FIELDS, match.groups()):
            if part is not None and part != "*":
                values[name] = int(part)
        for name, value in (defaults or {}).items():
            values.setdefault(name, value)

        try:
            return cls(**_field_mapping(values, {}))
        except ParseError as e:
            raise ParseError(f"Bad date string: {text!r} ({e})") from e


# Reference point for ordering entries whose ends may be partial
EPOCH = ObreonDate(year=1, month=1, day=1, hour=0, minute=0)
