"""The travel journal - entries anchored in Obreon time, split and merged by day."""

from __future__ import annotations

import json
from typing import Any, Iterable, Iterator, Mapping, Optional, Sequence

from .climate import ClimateModel, WeatherState
from .dates import EPOCH, ObreonDate, ordinal
from .errors import AggregationMismatchError, ParseError
from .models import (
    ActivityEntry,
    JournalEntry,
    Stage,
    TravelEntry,
    WeatherEntry,
    entry_from_dict,
    entry_sort_key,
)

UNKNOWN_LOCATION = "unknown"


class Journal:
    """An ordered, non-empty list of entries, kept sorted by (start, end).

    The first entry anchors where the journal starts. Entries themselves are
    immutable; splitting and aggregating always build new journals.
    """

    def __init__(self, entries: Iterable[JournalEntry]):
        self._entries: list[JournalEntry] = sorted(entries, key=entry_sort_key)
        if not self._entries:
            raise ValueError("Cannot initialise Journal with no entries")

    @classmethod
    def begin(cls, location: str, date: ObreonDate) -> Journal:
        """Start a journal at a place and time."""
        return cls([TravelEntry(date, date, destination=location)])

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Journal):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"Journal({self.date_string!r}, {len(self._entries)} entries)"

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[JournalEntry]:
        return iter(self._entries)

    @property
    def entries(self) -> tuple[JournalEntry, ...]:
        return tuple(self._entries)

    # ========== Appending ==========

    def add_entry(self, entry: JournalEntry) -> JournalEntry:
        self._entries.append(entry)
        self._entries.sort(key=entry_sort_key)
        return entry

    def _span_from_end(self, duration: Mapping[str, int]) -> tuple[ObreonDate, ObreonDate]:
        start = self.end
        end = start.advance(duration)
        if end.compare(start) < 0:
            raise ValueError(f"Duration {dict(duration)} would end before {start}")
        return start, end

    def travel(self, duration: Mapping[str, int], destination: str) -> TravelEntry:
        """Record a journey starting where the journal currently ends."""
        start, end = self._span_from_end(duration)
        return self.add_entry(TravelEntry(start, end, destination=destination))

    def activity(self, duration: Mapping[str, int], text: str) -> ActivityEntry:
        """Record an activity starting where the journal currently ends."""
        start, end = self._span_from_end(duration)
        return self.add_entry(ActivityEntry(start, end, text=text))

    def weather(self, at: ObreonDate, weather: WeatherState) -> WeatherEntry:
        return self.add_entry(WeatherEntry(at, weather=weather))

    # ========== Derived values ==========

    @property
    def start(self) -> ObreonDate:
        return self._entries[0].start

    @property
    def end(self) -> ObreonDate:
        return max(self._entries, key=lambda entry: entry.end.compare(EPOCH)).end

    @property
    def end_location(self) -> str:
        for entry in reversed(self._entries):
            if isinstance(entry, TravelEntry):
                return entry.destination
        return "Unknown"

    @property
    def latest_weather(self) -> Optional[WeatherState]:
        for entry in reversed(self._entries):
            if isinstance(entry, WeatherEntry):
                return entry.weather
        return None

    @property
    def is_single_day(self) -> bool:
        return self.start.same_day(self.end)

    @property
    def date_string(self) -> str:
        if self.is_single_day:
            return self.start.to_date_string()
        return f"{self.start.to_date_string()}-{self.end.to_date_string()}"

    @property
    def long_date_string(self) -> str:
        if self.is_single_day and self.start.day is not None and self.start.month is not None:
            return f"{self.start.day_name} {ordinal(self.start.day)} of {self.start.month_name}"
        return self.date_string

    # ========== Splitting and aggregating ==========

    def split_by_day(self) -> list[Journal]:
        """One journal per calendar day, multi-day entries cut into fragments.

        A day that doesn't open with a travel entry gets a zero-length one at
        midnight naming the previous day's end location, so every day knows
        where it starts. That entry is tagged as a middle fragment, which
        aggregate() absorbs.
        """
        fragments = sorted(
            (fragment for entry in self._entries for fragment in entry.split_by_day()),
            key=entry_sort_key,
        )

        by_day: dict[str, list[JournalEntry]] = {}
        for fragment in fragments:
            by_day.setdefault(fragment.start.to_date_string(), []).append(fragment)

        journals: list[Journal] = []
        for day_entries in by_day.values():
            first = day_entries[0]
            if not isinstance(first, TravelEntry):
                location = journals[-1].end_location if journals else UNKNOWN_LOCATION
                midnight = first.start.start_of_day
                day_entries.insert(0, TravelEntry(midnight, midnight, Stage.MIDDLE, destination=location))
            journals.append(Journal(day_entries))
        return journals

    def aggregate(self, others: Sequence[Journal] = ()) -> Journal:
        """Merge journals, stitching day fragments back into whole entries.

        Raises:
            AggregationMismatchError: If a start fragment has no later end
                fragment of the same kind
        """
        entries = sorted(
            [*self._entries, *(entry for journal in others for entry in journal._entries)],
            key=entry_sort_key,
        )

        rebuilt = []
        for index, entry in enumerate(entries):
            if entry.stage is Stage.START:
                closing = next(
                    (
                        later for later in entries[index + 1:]
                        if later.stage is Stage.END and type(later) is type(entry)
                    ),
                    None,
                )
                if closing is None:
                    raise AggregationMismatchError(
                        f"{entry.kind.value} starting {entry.start} has no matching end fragment"
                    )
                rebuilt.append(entry.fragment(entry.start, closing.end, None))
            elif entry.stage is None:
                rebuilt.append(entry)

        return Journal(rebuilt)

    @classmethod
    def aggregate_all(cls, journals: Sequence[Journal]) -> Journal:
        if not journals:
            raise ValueError("Nothing to aggregate")
        return journals[0].aggregate(journals[1:])

    # ========== Weather ==========

    def _days_after(self, since: ObreonDate) -> list[ObreonDate]:
        """Midnight of each day after since, up to and including the end day."""
        days = []
        current = since
        if current.compare(self.end) > 0:
            return days
        while not current.same_day(self.end):
            current = current.next_day.start_of_day
            days.append(current)
        return days

    def _starting_weather(self, since: ObreonDate, climate_model: ClimateModel) -> WeatherState:
        return self.latest_weather or climate_model.get_weather_for_day(since)

    def backfill_weather(self, since: ObreonDate, climate_model: ClimateModel) -> list[WeatherState]:
        """Add a weather entry at the start of every day crossed after since.

        Each day's weather is derived from the one before it, beginning with
        the journal's latest weather.
        """
        days = self._days_after(since)
        states = climate_model.weather_for_days(self._starting_weather(since, climate_model), days)
        for day, state in zip(days, states):
            self.weather(day, state)
        return states

    async def backfill_weather_async(self, since: ObreonDate, climate_model: ClimateModel) -> list[WeatherState]:
        days = self._days_after(since)
        states = await climate_model.weather_for_days_async(self._starting_weather(since, climate_model), days)
        for day, state in zip(days, states):
            self.weather(day, state)
        return states

    # ========== Serialization ==========

    def to_dict(self) -> dict[str, Any]:
        return {"entries": [entry.to_dict() for entry in self._entries]}

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], climate_model: Optional[ClimateModel] = None) -> Journal:
        """Rebuild a journal; climate_model is needed if it holds weather.

        Raises:
            ParseError: If the document is malformed or holds an unknown entry type
        """
        if not isinstance(data, Mapping) or not isinstance(data.get("entries"), list):
            raise ParseError("Journal document needs an 'entries' list")
        entries = [entry_from_dict(item, climate_model) for item in data["entries"]]
        if not entries:
            raise ParseError("Journal document has no entries")
        return cls(entries)

    @classmethod
    def from_json(cls, text: str, climate_model: Optional[ClimateModel] = None) -> Journal:
        try:
            data = json.loads(text)
        except (TypeError, json.JSONDecodeError) as e:
            raise ParseError(f"Journal is not valid JSON: {e}") from e
        return cls.from_dict(data, climate_model)
