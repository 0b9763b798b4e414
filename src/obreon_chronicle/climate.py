"""Climate model - a mean-reverting weather walk over named sub-models.

A climate definition declares sub-models (weather regimes with a
temperature-delta dice expression and transition targets) and seasons
(wrap-around date ranges with a base sub-model and temperature bounds).
Each day's weather is derived from the previous day's by rolling the
transition, rolling the temperature change and then pulling the result
back towards the seasonal average.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Union

from .dates import ObreonDate
from .dice import DiceExpression, DiceRoller, roll_async, roll_now
from .errors import ClimateConfigError, MissingRangeError, ParseError

logger = logging.getLogger(__name__)

BASE = "base"

# Temperature offsets by month of the western calendar
WESTERN_MONTH_TEMP_ADJUSTS = {
    1: -1,
    2: -1,
    3: 0,
    4: 0,
    5: 0,
    6: 1,
    7: 1,
    8: 0,
    9: 0,
    10: 0,
    11: -1,
}

# Fraction of the gap to the seasonal average closed each day is 1/REVERSION_DIVISOR
REVERSION_DIVISOR = 2.5


def round_half_up(value: float) -> int:
    """Round with halves going towards positive infinity."""
    return math.floor(value + 0.5)


@dataclass(frozen=True)
class SubModel:
    """A weather regime and where it can lead the next day."""
    name: str
    weather: str
    temp_delta: str
    next_default: str = BASE
    graphic: Optional[str] = None
    next_roll: Optional[str] = None
    next_specials: tuple[str, ...] = ()
    min_temp: Optional[int] = None
    max_temp: Optional[int] = None

    @classmethod
    def from_dict(cls, name: str, data: Mapping[str, Any]) -> SubModel:
        try:
            return cls(
                name=name,
                weather=data["weather"],
                temp_delta=data["temp_delta"],
                next_default=data.get("next_default", BASE),
                graphic=data.get("graphic"),
                next_roll=data.get("next_roll"),
                next_specials=tuple(data.get("next_specials", ())),
                min_temp=data.get("min_temp"),
                max_temp=data.get("max_temp"),
            )
        except KeyError as e:
            raise ClimateConfigError(f"Sub-model {name!r} is missing {e}") from e

    @property
    def targets(self) -> tuple[str, ...]:
        return (self.next_default,) + self.next_specials


@dataclass(frozen=True)
class Season:
    """A (possibly year-wrapping) date range with its own base weather."""
    name: str
    start: ObreonDate
    end: ObreonDate
    base: SubModel
    min_temp: int
    max_temp: int

    def contains(self, date: ObreonDate) -> bool:
        return date.between(self.start, self.end)


@dataclass(frozen=True)
class ClimateDefinition:
    """Campaign configuration for a climate. Never mutated after loading."""
    name: str
    sub_models: Mapping[str, SubModel] = field(default_factory=dict)
    seasons: tuple[Season, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ClimateDefinition:
        """Build and validate a definition from its TOML/JSON form.

        Raises:
            ClimateConfigError: If the definition is incomplete or a transition
                names an undeclared sub-model
        """
        if "name" not in data:
            raise ClimateConfigError("Climate definition needs a name")

        sub_models = {
            name: SubModel.from_dict(name, sub_data)
            for name, sub_data in data.get("sub_models", {}).items()
        }

        seasons = []
        for season_data in data.get("seasons", []):
            try:
                name = season_data["name"]
                base_name = f"{name.lower()}:{BASE}"
                base = SubModel.from_dict(base_name, season_data["base"])
                season = Season(
                    name=name,
                    start=ObreonDate.from_string(season_data["start"]),
                    end=ObreonDate.from_string(season_data["end"]),
                    base=base,
                    min_temp=int(season_data["min_temp"]),
                    max_temp=int(season_data["max_temp"]),
                )
            except KeyError as e:
                raise ClimateConfigError(f"Season definition is missing {e}") from e
            except ParseError as e:
                raise ClimateConfigError(f"Season definition has a bad date: {e}") from e
            sub_models[base_name] = base
            seasons.append(season)

        definition = cls(name=data["name"], sub_models=sub_models, seasons=tuple(seasons))
        definition.validate()
        return definition

    def validate(self) -> None:
        if not self.seasons:
            raise ClimateConfigError(f"Climate {self.name} declares no seasons")
        for sub_model in self.sub_models.values():
            for target in sub_model.targets:
                if target != BASE and target not in self.sub_models:
                    raise ClimateConfigError(
                        f"Sub-model {sub_model.name!r} leads to undeclared sub-model {target!r}"
                    )
            for expression in (sub_model.temp_delta, sub_model.next_roll):
                if expression is None:
                    continue
                try:
                    DiceExpression.parse(expression)
                except ParseError as e:
                    raise ClimateConfigError(f"Sub-model {sub_model.name!r}: {e}") from e


@dataclass(frozen=True)
class WeatherState:
    """One day's weather. Produced by ClimateModel, never modified."""
    climate_model: ClimateModel = field(repr=False)
    sub_model: SubModel
    temp: int
    date: Optional[ObreonDate] = None

    def weather_text(self, temp_adjust: int = 0) -> str:
        return (
            f"The weather is {self.sub_model.weather} "
            f"and the maximum temperature is {self.temp + temp_adjust}"
        )

    @property
    def graphic(self) -> Optional[str]:
        return self.sub_model.graphic

    def to_dict(self) -> dict:
        data: dict[str, Any] = {}
        if self.date is not None:
            data["date"] = self.date.to_dict()
        data["subModel"] = self.sub_model.name
        data["temp"] = self.temp
        data["climateModel"] = self.climate_model.name
        return data


class ClimateModel:
    """Weather state machine for one climate definition.

    Randomness comes only from the injected dice roller. The synchronous
    operations need a roller that answers immediately; the ``*_async``
    operations also accept rollers returning awaitables and resolve each
    roll before making the next one.
    """

    def __init__(self, definition: ClimateDefinition, dice_roller: DiceRoller):
        self.definition = definition
        self.dice_roller = dice_roller

    def __repr__(self) -> str:
        return f"ClimateModel({self.name!r})"

    @property
    def name(self) -> str:
        return self.definition.name

    # ========== Lookups ==========

    def season_for(self, date: ObreonDate) -> Season:
        if not isinstance(date, ObreonDate):
            raise MissingRangeError(f"Invalid argument {date!r} to season_for")
        for season in self.definition.seasons:
            if season.contains(date):
                return season
        raise ClimateConfigError(f"No season of {self.name} covers {date}")

    def resolve_sub_model(self, name: str, date: Optional[ObreonDate] = None) -> SubModel:
        """Look up a sub-model; bare 'base' means the base of date's season."""
        if name == BASE:
            if date is None:
                raise ClimateConfigError("A date must be supplied to resolve the bare base sub-model")
            return self.season_for(date).base
        try:
            return self.definition.sub_models[name]
        except KeyError:
            raise ClimateConfigError(f"Unknown sub-model {name!r} in climate {self.name}") from None

    def average_temp_for(self, sub_model: SubModel, date: ObreonDate) -> int:
        season = self.season_for(date)
        adjust = WESTERN_MONTH_TEMP_ADJUSTS[date.western_month]
        high = sub_model.max_temp if sub_model.max_temp is not None else season.max_temp
        low = sub_model.min_temp if sub_model.min_temp is not None else season.min_temp
        return round_half_up((high + low) / 2 + adjust)

    # ========== Transitions ==========

    def get_weather_for_day(self, date: ObreonDate) -> WeatherState:
        """Starting weather for a date: its season's base at the average temperature."""
        base = self.season_for(date).base
        return WeatherState(self, base, self.average_temp_for(base, date), date.date_only)

    def _choose_next(self, sub_model: SubModel, roll: Optional[int], date: ObreonDate) -> SubModel:
        chosen = sub_model.next_default
        if roll is not None and 1 <= roll <= len(sub_model.next_specials):
            chosen = sub_model.next_specials[roll - 1]
        return self.resolve_sub_model(chosen, date)

    def _settle(self, previous: WeatherState, sub_model: SubModel, delta: int, date: ObreonDate) -> WeatherState:
        raw = previous.temp + delta
        average = self.average_temp_for(sub_model, date)
        bias = round_half_up((average - raw) / REVERSION_DIVISOR)
        state = WeatherState(self, sub_model, raw + bias, date.date_only)
        logger.debug(
            "Weather for %s: %s -> %s, raw %d, average %d, final %d",
            date.to_date_string(), previous.sub_model.name, sub_model.name, raw, average, state.temp,
        )
        return state

    def get_next_day_weather(self, previous: WeatherState, new_date: ObreonDate) -> WeatherState:
        """Derive new_date's weather from the previous day's."""
        roll = None
        if previous.sub_model.next_roll:
            roll = roll_now(self.dice_roller, previous.sub_model.next_roll)
        sub_model = self._choose_next(previous.sub_model, roll, new_date)
        delta = roll_now(self.dice_roller, sub_model.temp_delta)
        return self._settle(previous, sub_model, delta, new_date)

    async def get_next_day_weather_async(self, previous: WeatherState, new_date: ObreonDate) -> WeatherState:
        roll = None
        if previous.sub_model.next_roll:
            roll = await roll_async(self.dice_roller, previous.sub_model.next_roll)
        sub_model = self._choose_next(previous.sub_model, roll, new_date)
        delta = await roll_async(self.dice_roller, sub_model.temp_delta)
        return self._settle(previous, sub_model, delta, new_date)

    def weather_for_days(self, previous: WeatherState, dates: Iterable[ObreonDate]) -> list[WeatherState]:
        """Fold day by day over dates, each state seeding the next."""
        states = []
        for date in dates:
            previous = self.get_next_day_weather(previous, date)
            states.append(previous)
        return states

    async def weather_for_days_async(self, previous: WeatherState, dates: Iterable[ObreonDate]) -> list[WeatherState]:
        states = []
        for date in dates:
            previous = await self.get_next_day_weather_async(previous, date)
            states.append(previous)
        return states

    # ========== Serialization ==========

    def weather_state_from_dict(self, data: Mapping[str, Any]) -> WeatherState:
        """Rebuild a WeatherState from its serialized form.

        Raises:
            ParseError: If the data is incomplete, names another climate or an
                unknown sub-model
        """
        if not isinstance(data, Mapping):
            raise ParseError(f"Expected weather mapping, got {data!r}")
        climate_name = data.get("climateModel")
        if climate_name is not None and climate_name != self.name:
            raise ParseError(f"Weather belongs to climate {climate_name!r}, not {self.name!r}")

        try:
            date = ObreonDate.from_dict(data["date"]) if data.get("date") is not None else None
            sub_model: Union[str, SubModel] = data["subModel"]
            if isinstance(sub_model, str):
                sub_model = self.resolve_sub_model(sub_model, date)
            temp = int(data["temp"])
        except KeyError as e:
            raise ParseError(f"Weather state is missing {e}") from e
        except (ClimateConfigError, TypeError, ValueError) as e:
            raise ParseError(f"Bad weather state {dict(data)!r}: {e}") from e

        return WeatherState(self, sub_model, temp, date)
