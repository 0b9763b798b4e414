"""Plain-text handout notes: one line per journal entry.

Three line forms are understood::

    Event: 12:00-16:00: Bumbling around
    Location: Tinderspring
    Day Start: 2863/5/2: The weather is dry and the maximum temperature is 6

Lines are parsed independently, so they may appear in any order; anything
else is skipped.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .dates import ObreonDate
from .journal import Journal
from .models import JournalEntry, TravelEntry, WeatherEntry

logger = logging.getLogger(__name__)

_DATE = r"[\d*]{1,4}/[\d*]{1,2}/[\d*]{1,2}"
_MOMENT = rf"(?:{_DATE}\s+)?[\d*]{{1,2}}:(?:\d\d|\*)"

_EVENT_LINE = re.compile(rf"^Event:\s*({_MOMENT})\s*-\s*({_MOMENT}):\s?(.*)$")
_LOCATION_LINE = re.compile(r"^Location:\s?(.*)$")
_DAY_START_LINE = re.compile(rf"^Day Start:\s*(?:({_DATE}):\s?)?(.*)$")
_LINE_BREAK = re.compile(r"<br\s*/?>|\r?\n")


class NoteKind(Enum):
    EVENT = "Event"
    LOCATION = "Location"
    DAY_START = "Day Start"


@dataclass(frozen=True)
class NoteRecord:
    """One parsed notes line."""
    kind: NoteKind
    text: str
    start: Optional[ObreonDate] = None
    end: Optional[ObreonDate] = None

    def to_line(self, include_date: bool = True) -> str:
        if self.kind is NoteKind.EVENT:
            render = ObreonDate.to_string if include_date else ObreonDate.to_time_string
            return f"Event: {render(self.start)}-{render(self.end)}: {self.text}"
        if self.kind is NoteKind.DAY_START and self.start is not None:
            return f"Day Start: {self.start.to_date_string()}: {self.text}"
        return f"{self.kind.value}: {self.text}"


def _moment(text: str, day: Optional[ObreonDate]) -> ObreonDate:
    defaults = day.date_only.to_dict() if day is not None else None
    return ObreonDate.from_string(text, defaults)


def parse_line(line: str, day: Optional[ObreonDate] = None) -> Optional[NoteRecord]:
    """Parse one line, or return None if it isn't a notes line.

    Args:
        line: Text of the line
        day: Date used to complete time-only event bounds

    Raises:
        ParseError: If a recognised line holds a malformed date
    """
    line = line.strip()

    match = _EVENT_LINE.match(line)
    if match:
        start, end, text = match.groups()
        return NoteRecord(NoteKind.EVENT, text, _moment(start, day), _moment(end, day))

    match = _LOCATION_LINE.match(line)
    if match:
        return NoteRecord(NoteKind.LOCATION, match.group(1))

    match = _DAY_START_LINE.match(line)
    if match:
        date, text = match.groups()
        return NoteRecord(NoteKind.DAY_START, text, ObreonDate.from_string(date) if date else None)

    return None


def parse_notes(text: str, day: Optional[ObreonDate] = None) -> list[NoteRecord]:
    """Parse every recognised line of a notes block, in the order given."""
    records = []
    for line in _LINE_BREAK.split(text or ""):
        if not line.strip():
            continue
        record = parse_line(line, day)
        if record is None:
            logger.debug("Skipping unrecognised notes line: %r", line)
            continue
        records.append(record)
    return records


def entry_to_record(entry: JournalEntry) -> NoteRecord:
    if isinstance(entry, WeatherEntry):
        return NoteRecord(NoteKind.DAY_START, entry.describe(), entry.start.date_only)
    if isinstance(entry, TravelEntry) and entry.is_zero_length:
        return NoteRecord(NoteKind.LOCATION, entry.destination)
    return NoteRecord(NoteKind.EVENT, entry.describe(), entry.start, entry.end)


def render_notes(journal: Journal, separator: str = "\n") -> str:
    """Notes text for a journal; single-day journals show event times only."""
    include_date = not journal.is_single_day
    return separator.join(entry_to_record(entry).to_line(include_date) for entry in journal)
