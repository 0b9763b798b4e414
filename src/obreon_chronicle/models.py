"""Data models for journal entries."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from functools import cmp_to_key
from typing import Any, ClassVar, Mapping, Optional, Union

from .climate import ClimateModel, WeatherState
from .dates import ObreonDate
from .errors import ParseError


class EntryKind(Enum):
    """Closed set of journal entry types; the value is the JSON discriminator."""
    TRAVEL = "TravelEntry"
    ACTIVITY = "ActivityEntry"
    WEATHER = "WeatherEntry"


class Stage(Enum):
    """Which fragment of a multi-day entry this is."""
    START = "start"
    MIDDLE = "middle"
    END = "end"


# Suffixes shown after a fragment's text
STAGE_LABELS = {
    None: "",
    Stage.START: " (start)",
    Stage.MIDDLE: " (continued)",
    Stage.END: " (end)",
}


@dataclass(frozen=True)
class JournalEntry:
    """Common shape of every entry: a span of Obreon time plus a stage."""
    start: ObreonDate
    end: Optional[ObreonDate] = None
    stage: Optional[Stage] = None

    kind: ClassVar[Optional[EntryKind]] = None

    def __post_init__(self) -> None:
        if self.end is None:
            object.__setattr__(self, "end", self.start)

    @property
    def is_zero_length(self) -> bool:
        return self.start.equals(self.end)

    def fragment(self, start: ObreonDate, end: ObreonDate, stage: Optional[Stage]) -> JournalEntry:
        """Copy of this entry over a different span and stage."""
        return replace(self, start=start, end=end, stage=stage)

    def split_by_day(self) -> list[JournalEntry]:
        """Break an entry crossing midnight into start/middle/end fragments."""
        if self.start.same_day(self.end):
            return [self]

        first = self.fragment(self.start, self.start.end_of_day, Stage.START)
        last = self.fragment(self.end.start_of_day, self.end, Stage.END)
        middles = []
        day = first.end.next_day
        while not last.start.same_day(day):
            middles.append(self.fragment(day.start_of_day, day.end_of_day, Stage.MIDDLE))
            day = day.next_day
        return [first, *middles, last]

    def describe(self) -> str:
        raise NotImplementedError

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind.value,
            "start": self.start.to_dict(),
            "end": self.end.to_dict(),
            "stage": self.stage.value if self.stage else None,
        }


@dataclass(frozen=True)
class TravelEntry(JournalEntry):
    destination: str = "unknown"

    kind = EntryKind.TRAVEL

    def describe(self) -> str:
        if self.is_zero_length:
            return f"You are at {self.destination}"
        if self.stage is Stage.START:
            return f"Start of journey to {self.destination}"
        if self.stage is Stage.MIDDLE:
            return f"Journey to {self.destination}"
        if self.stage is Stage.END:
            return f"End of journey to {self.destination}"
        return f"Travelled to {self.destination}"

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["destination"] = self.destination
        return data


@dataclass(frozen=True)
class ActivityEntry(JournalEntry):
    text: str = ""

    kind = EntryKind.ACTIVITY

    def describe(self) -> str:
        return f"{self.text}{STAGE_LABELS[self.stage]}"

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["text"] = self.text
        return data


@dataclass(frozen=True)
class WeatherEntry(JournalEntry):
    """Weather observed at a single instant; always zero length."""
    weather: Optional[WeatherState] = None

    kind = EntryKind.WEATHER

    def __post_init__(self) -> None:
        object.__setattr__(self, "end", self.start)

    def describe(self) -> str:
        return self.weather.weather_text() if self.weather else "The weather is unknown"

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        del data["end"]
        data["weather"] = self.weather.to_dict() if self.weather else None
        return data


AnyEntry = Union[TravelEntry, ActivityEntry, WeatherEntry]


def compare_entries(a: JournalEntry, b: JournalEntry) -> int:
    """Order by start, then by end."""
    difference = a.start.compare(b.start) or a.end.compare(b.end)
    return (difference > 0) - (difference < 0)


entry_sort_key = cmp_to_key(compare_entries)


def entry_from_dict(data: Mapping[str, Any], climate_model: Optional[ClimateModel] = None) -> AnyEntry:
    """Rebuild an entry from its JSON form.

    Args:
        data: Serialized entry with a 'type' discriminator
        climate_model: Needed to revive weather entries

    Raises:
        ParseError: For unknown types or malformed fields
    """
    if not isinstance(data, Mapping):
        raise ParseError(f"Expected entry mapping, got {data!r}")
    try:
        kind = EntryKind(data.get("type"))
    except ValueError:
        raise ParseError(f"Unrecognised entry type {data.get('type')!r}") from None

    try:
        start = ObreonDate.from_dict(data["start"])
        end = ObreonDate.from_dict(data["end"]) if data.get("end") is not None else None
        stage = Stage(data["stage"]) if data.get("stage") else None
    except KeyError as e:
        raise ParseError(f"{kind.value} is missing {e}") from e
    except ValueError as e:
        raise ParseError(f"Bad {kind.value}: {e}") from e

    if kind is EntryKind.TRAVEL:
        return TravelEntry(start, end, stage, destination=str(data.get("destination", "unknown")))
    elif kind is EntryKind.ACTIVITY:
        return ActivityEntry(start, end, stage, text=str(data.get("text", "")))
    elif kind is EntryKind.WEATHER:
        weather_data = data.get("weather")
        weather = None
        if weather_data is not None:
            if climate_model is None:
                raise ParseError("A climate model is needed to read weather entries")
            weather = climate_model.weather_state_from_dict(weather_data)
        return WeatherEntry(start, None, stage, weather=weather)
    raise ParseError(f"Unhandled entry type {kind}")  # pragma: no cover
