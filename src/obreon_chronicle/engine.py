"""Campaign engine - keeps the party's journal handouts up to date."""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Optional, Sequence, Union

from .climate import ClimateModel
from .config import CampaignConfig, load_climate_definition
from .dates import EPOCH, FIELDS, ObreonDate
from .dice import RandomDiceRoller
from .errors import NoJournalError, ParseError
from .journal import Journal
from .notes import render_notes
from .store import Handout, HandoutStore

logger = logging.getLogger(__name__)

JOURNAL_PREFIX = "Journal:"

# Handout notes are shown as markup by the table, so lines break with <br>
NOTES_SEPARATOR = "<br>"

DurationSpec = Union[Mapping[str, int], Sequence[Mapping[str, int]]]


class ChronicleEngine:
    """Journal operations over a handout store and a climate model."""

    def __init__(
        self,
        config: CampaignConfig,
        climate_model: Optional[ClimateModel] = None,
        store: Optional[HandoutStore] = None,
    ):
        self.config = config
        if climate_model is None:
            definition = load_climate_definition(config)
            climate_model = ClimateModel(definition, RandomDiceRoller(config.dice_seed))
        self.climate_model = climate_model
        self.store = store or HandoutStore(config.get_handouts_path(), config.lock_timeout)

    # ========== Parsing user input ==========

    def parse_date(self, text: Union[str, ObreonDate]) -> ObreonDate:
        """Parse a date typed by a player, filling gaps from the configured defaults."""
        if isinstance(text, ObreonDate):
            return text
        return ObreonDate.from_string(text, self.config.date_defaults)

    def parse_duration(self, duration: DurationSpec) -> dict[str, int]:
        """Normalise a duration such as {"hour": 4} or [{"day": 1}, {"hour": 2}].

        Raises:
            ParseError: On unknown field names or non-integer amounts
        """
        parts = [duration] if isinstance(duration, Mapping) else list(duration)
        merged: dict[str, int] = {}
        for part in parts:
            if not isinstance(part, Mapping):
                raise ParseError(f"Bad duration component: {part!r}")
            for name, amount in part.items():
                if name not in FIELDS:
                    raise ParseError(f"Unknown duration field {name!r}; expected one of {', '.join(FIELDS)}")
                if not isinstance(amount, int) or isinstance(amount, bool):
                    raise ParseError(f"Duration {name} must be a whole number, got {amount!r}")
                merged[name] = merged.get(name, 0) + amount

        if not merged:
            raise ParseError("Duration is empty")
        return merged

    # ========== Handouts ==========

    def load_journal(self, handout: Handout) -> Journal:
        if not handout.gmnotes:
            raise ParseError(f"Handout {handout.name} holds no journal data")
        return Journal.from_json(handout.gmnotes, self.climate_model)

    def save_journal(self, journal: Journal, handout: Optional[Handout] = None) -> Handout:
        """Write a journal to its handout, creating the handout if needed.

        The handout is renamed to match the journal's current dates.
        """
        if "pre_save" in self.config.hooks:
            journal = self.config.hooks["pre_save"](journal)

        values = {
            "name": f"{JOURNAL_PREFIX}{journal.date_string}",
            "notes": render_notes(journal, NOTES_SEPARATOR),
            "gmnotes": journal.to_json(),
        }
        if handout is None:
            handout = self.store.create(**values)
        else:
            handout = self.store.set(handout, **values)
        logger.info("Saved %s with %d entries", handout.name, len(journal))

        if "post_save" in self.config.hooks:
            self.config.hooks["post_save"](handout)
        return handout

    def list_journals(self) -> list[tuple[Handout, Journal]]:
        """Every stored journal, earliest start first."""
        pairs = [(handout, self.load_journal(handout)) for handout in self.store.journal_handouts()]
        return sorted(pairs, key=lambda pair: pair[1].start.compare(EPOCH))

    def latest_journal(self) -> tuple[Handout, Journal]:
        """The stored journal with the greatest start.

        Raises:
            NoJournalError: If no journal handout exists
        """
        pairs = self.list_journals()
        if not pairs:
            raise NoJournalError("No journal handouts found; start a journal first")
        return pairs[-1]

    def read_journal(self, name: str) -> tuple[Journal, str]:
        """A named journal handout's journal and its notes text."""
        handout = self.store.find_by_name(name)
        return self.load_journal(handout), handout.notes

    # ========== Journal operations ==========

    def start_journal(
        self,
        location: Optional[str] = None,
        date: Union[str, ObreonDate, None] = None,
    ) -> tuple[Handout, Journal]:
        """Start a new journal.

        With a location and date, the journal starts there with that day's
        base weather. With neither, it picks up where the latest journal ends.

        Raises:
            ValueError: If only one of location and date is given
            NoJournalError: If continuing and there is no journal to continue
        """
        if (location is None) != (date is None):
            raise ValueError("start_journal needs both location and date, or neither")

        if location is not None:
            start = self.parse_date(date)
            journal = Journal.begin(location, start)
            journal.weather(start, self.climate_model.get_weather_for_day(start))
        else:
            _, previous = self.latest_journal()
            start = previous.end
            journal = Journal.begin(previous.end_location, start)
            weather = previous.latest_weather or self.climate_model.get_weather_for_day(start)
            journal.weather(start, weather)

        logger.info("Starting journal at %s on %s", journal.end_location, start)
        return self.save_journal(journal), journal

    def _add_to_journal(self, update: Callable[[Journal], Any]) -> tuple[Handout, Journal]:
        handout, journal = self.latest_journal()
        since = journal.end
        update(journal)
        states = journal.backfill_weather(since, self.climate_model)
        if states:
            logger.info("Rolled weather for %d new day(s)", len(states))
        return self.save_journal(journal, handout), journal

    def record_activity(self, duration: DurationSpec, text: str) -> tuple[Handout, Journal]:
        """Extend the latest journal with an activity lasting duration."""
        increments = self.parse_duration(duration)
        return self._add_to_journal(lambda journal: journal.activity(increments, text))

    def travel(self, duration: DurationSpec, destination: str) -> tuple[Handout, Journal]:
        """Extend the latest journal with a journey to destination."""
        increments = self.parse_duration(duration)
        return self._add_to_journal(lambda journal: journal.travel(increments, destination))

    def split_latest_by_day(self) -> list[Handout]:
        """Replace the latest journal's handout with one handout per day."""
        handout, journal = self.latest_journal()
        days = journal.split_by_day()
        if len(days) == 1:
            return [handout]

        created: list[Handout] = []
        try:
            for day in days:
                created.append(self.save_journal(day))
        except Exception:
            for partial in created:
                self.store.remove(partial)
            raise
        self.store.remove(handout)
        logger.info("Split %s into %d handouts", handout.name, len(created))
        return created

    def merge_journals(self, names: Sequence[str]) -> tuple[Handout, Journal]:
        """Aggregate the named journal handouts back into one.

        Raises:
            HandoutNotFoundError: If a name doesn't match a handout
            AggregationMismatchError: If the day fragments don't pair up
        """
        if not names:
            raise ValueError("merge_journals needs at least one handout name")
        names = list(dict.fromkeys(names))
        handouts = [self.store.find_by_name(name) for name in names]
        merged = Journal.aggregate_all([self.load_journal(handout) for handout in handouts])

        saved = self.save_journal(merged)
        for handout in handouts:
            self.store.remove(handout)
        logger.info("Merged %d handouts into %s", len(handouts), saved.name)
        return saved, merged

    # ========== Messages ==========

    def message_of_the_day(self, player_name: str) -> str:
        """Greeting for a player joining the session."""
        _, journal = self.latest_journal()
        end = journal.end
        lines = [
            f"Welcome {player_name}!",
            f"It's {end.to_long_string()}. "
            f"The moon is {end.moon_phase}. "
            f"You are at {journal.end_location}.",
        ]
        weather = journal.latest_weather
        if weather is not None:
            lines[-1] += f" {weather.weather_text()}."
        return "\n".join(lines)
