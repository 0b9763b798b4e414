"""Dice expressions and the roll capability consumed by the climate model.

The climate model never generates randomness itself. Anything with a
``roll(expression)`` method returning an int, or an awaitable resolving to
one, can drive it - a seeded local roller for tests and offline play, or a
remote chat roll answered asynchronously.
"""

from __future__ import annotations

import inspect
import logging
import random
import re
from dataclasses import dataclass
from typing import Awaitable, Optional, Protocol, Union

from .errors import ParseError

logger = logging.getLogger(__name__)

RollResult = Union[int, Awaitable[int]]

_EXPRESSION_PATTERN = re.compile(r"^\s*(0-)?(\d+)d(\d+)\s*(?:([+-])\s*(\d+))?\s*$")


class DiceRoller(Protocol):
    """Capability for rolling dice expressions such as '1d6-2' or '0-1d6-2'."""

    def roll(self, expression: str) -> RollResult:
        ...


@dataclass(frozen=True)
class DiceExpression:
    """A parsed '<count>d<size>' expression with optional negation and modifier."""
    count: int
    size: int
    modifier: int = 0
    negate: bool = False

    @classmethod
    def parse(cls, expression: str) -> DiceExpression:
        """Parse an expression.

        Grammar: optional leading '0-' (negate the dice total), then
        '<count>d<size>', then an optional '+K' or '-K'.

        Raises:
            ParseError: If the expression doesn't fit the grammar
        """
        match = _EXPRESSION_PATTERN.match(expression or "")
        if match is None:
            raise ParseError(f"Bad dice expression: {expression!r}")
        negate, count, size, sign, amount = match.groups()
        if int(size) < 1:
            raise ParseError(f"Bad dice expression: {expression!r} (die size must be positive)")
        modifier = int(amount) if amount else 0
        if sign == "-":
            modifier = -modifier
        return cls(count=int(count), size=int(size), modifier=modifier, negate=bool(negate))

    @property
    def minimum(self) -> int:
        low, high = self.count, self.count * self.size
        return (-high if self.negate else low) + self.modifier

    @property
    def maximum(self) -> int:
        low, high = self.count, self.count * self.size
        return (-low if self.negate else high) + self.modifier

    def evaluate(self, rolls: list[int]) -> int:
        """Total for the given individual die results."""
        total = sum(rolls)
        return (-total if self.negate else total) + self.modifier

    def __str__(self) -> str:
        text = f"{'0-' if self.negate else ''}{self.count}d{self.size}"
        if self.modifier > 0:
            text += f"+{self.modifier}"
        elif self.modifier < 0:
            text += f"-{abs(self.modifier)}"
        return text


@dataclass
class RollRecord:
    """One roll made by a RandomDiceRoller."""
    expression: str
    rolls: list[int]
    total: int


class RandomDiceRoller:
    """Synchronous roller backed by its own random.Random instance.

    Pass a seed for reproducible weather runs. Every roll is kept in
    ``history`` so a session's weather can be audited afterwards.
    """

    def __init__(self, seed: Optional[int] = None):
        self._random = random.Random(seed)
        self.history: list[RollRecord] = []

    def roll(self, expression: str) -> int:
        parsed = DiceExpression.parse(expression)
        rolls = [self._random.randint(1, parsed.size) for _ in range(parsed.count)]
        total = parsed.evaluate(rolls)
        self.history.append(RollRecord(expression=expression, rolls=rolls, total=total))
        logger.debug("Rolled %s: %s = %d", expression, rolls, total)
        return total


def roll_now(roller: DiceRoller, expression: str) -> int:
    """Roll with a roller that must answer synchronously."""
    result = roller.roll(expression)
    if inspect.isawaitable(result):
        close = getattr(result, "close", None)
        if close is not None:
            close()
        raise TypeError(
            f"Dice roller answered {expression!r} asynchronously; use the async weather operations"
        )
    return int(result)


async def roll_async(roller: DiceRoller, expression: str) -> int:
    """Roll with any roller, awaiting the answer if it is deferred."""
    result = roller.roll(expression)
    if inspect.isawaitable(result):
        result = await result
    return int(result)
