"""Shared pytest fixtures for obreon-chronicle tests."""

import tempfile
from collections import defaultdict, deque
from pathlib import Path

import pytest

from obreon_chronicle.climate import ClimateDefinition, ClimateModel
from obreon_chronicle.config import CampaignConfig
from obreon_chronicle.engine import ChronicleEngine


# Two seasons, so expected temperatures can be worked out by hand:
# in 2863 (year % 11 == 3) months 1-2 and 6-8 have no western-month
# adjustment, months 3-5 are -1 and months 9-10 are +1.
TEST_CLIMATE = {
    "name": "TestClimate",
    "seasons": [
        {
            "name": "Hiems",
            "start": "*/9/1",
            "end": "*/3/1",
            "min_temp": -2,
            "max_temp": 8,
            "base": {
                "weather": "dry",
                "graphic": "sun",
                "temp_delta": "1d6-3",
                "next_roll": "1d18",
                "next_specials": ["icy", "snowy", "overcast"],
            },
        },
        {
            "name": "Aestas",
            "start": "*/3/1",
            "end": "*/9/1",
            "min_temp": 16,
            "max_temp": 28,
            "base": {
                "weather": "largely clear",
                "graphic": "sun",
                "temp_delta": "1d6-3",
            },
        },
    ],
    "sub_models": {
        "icy": {
            "weather": "crisp and icy",
            "temp_delta": "0-1d6-2",
        },
        "snowy": {
            "weather": "overcast and snowing",
            "temp_delta": "1d4-2",
            "min_temp": -10,
            "max_temp": 0,
            "next_roll": "1d10",
            "next_specials": ["snowy", "snowy", "icy", "icy", "overcast", "blizzard"],
        },
        "blizzard": {
            "weather": "BLIZZARD!",
            "temp_delta": "0-1d6-4",
            "min_temp": -15,
            "max_temp": -5,
            "next_default": "snowy",
        },
        "overcast": {
            "weather": "overcast",
            "temp_delta": "1d4-3",
        },
    },
}


class ScriptedRoller:
    """Dice roller answering each expression from a queue of canned results.

    Expressions with no queued result fall back to ``default`` if one is
    set; otherwise the roll fails, so tests notice unexpected rolls.
    """

    def __init__(self, results=None, default=None):
        self.results = defaultdict(deque)
        for expression, values in (results or {}).items():
            self.results[expression].extend(values)
        self.default = default
        self.calls = []

    def queue(self, expression, *values):
        self.results[expression].extend(values)

    def roll(self, expression):
        self.calls.append(expression)
        if self.results[expression]:
            return self.results[expression].popleft()
        if self.default is not None:
            return self.default
        raise AssertionError(f"Unexpected roll: {expression}")


class AsyncScriptedRoller(ScriptedRoller):
    """ScriptedRoller whose answers arrive as coroutines."""

    def roll(self, expression):
        value = super().roll(expression)

        async def answer():
            return value

        return answer()


@pytest.fixture
def temp_project():
    """Create a temporary campaign directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def climate_definition():
    return ClimateDefinition.from_dict(TEST_CLIMATE)


@pytest.fixture
def roller():
    """Roller that answers 0 to anything not explicitly queued."""
    return ScriptedRoller(default=0)


@pytest.fixture
def climate_model(climate_definition, roller):
    return ClimateModel(climate_definition, roller)


@pytest.fixture
def config(temp_project):
    """Create a test configuration."""
    return CampaignConfig(
        campaign_name="test-campaign",
        project_root=temp_project,
        climate=TEST_CLIMATE,
    )


@pytest.fixture
def engine(config, climate_model):
    """Create a test engine with a scripted climate."""
    return ChronicleEngine(config, climate_model=climate_model)
