"""Dice rolling for game-master and player rolls.

Notation is deliberately narrow: ``<count>d<sides>[+|-<modifier>]``
("1d20", "2d6+3", "1d20-1"). The string is validated against that
grammar first and the validated expression is then rolled with the d20
library, so the model cannot smuggle in keep/drop or arithmetic
expressions the rest of the game does not understand.
"""

from __future__ import annotations

import random
import re
from dataclasses import dataclass
from typing import Any

import d20

from dnd_chat.core.exceptions import InvalidNotationError
from dnd_chat.core.logging import get_logger


logger = get_logger(__name__)

NOTATION_PATTERN = re.compile(r"^(\d+)d(\d+)([+-]\d+)?$")

MAX_DICE_COUNT = 100
MAX_DIE_SIDES = 1000


@dataclass(frozen=True)
class DiceNotation:
    """A validated dice notation.

    Attributes:
        count: Number of dice to roll.
        sides: Faces per die.
        modifier: Flat modifier added to the sum.
    """

    count: int
    sides: int
    modifier: int = 0

    @property
    def expression(self) -> str:
        """Canonical form, e.g. ``2d6+3``."""
        if self.modifier:
            return f"{self.count}d{self.sides}{self.modifier:+d}"
        return f"{self.count}d{self.sides}"


@dataclass(frozen=True)
class RollResult:
    """Outcome of a single roll.

    Attributes:
        notation: Canonical notation that was rolled.
        rolls: Individual die results, in roll order.
        modifier: Flat modifier applied.
        total: Sum of rolls plus modifier.
    """

    notation: str
    rolls: list[int]
    modifier: int
    total: int

    @property
    def details(self) -> str:
        """Human-readable breakdown, e.g. ``2d6+3 (4, 5) = 12``."""
        dice = ", ".join(str(value) for value in self.rolls)
        return f"{self.notation} ({dice}) = {self.total}"


def parse_notation(notation: str) -> DiceNotation:
    """Validate a dice notation string.

    Surrounding and internal whitespace is ignored and the ``d`` is case
    insensitive.

    Args:
        notation: Notation such as ``"1d20+5"``.

    Returns:
        The parsed notation.

    Raises:
        InvalidNotationError: If the string does not match the grammar or
            asks for zero or an absurd number of dice or faces.
    """
    if not isinstance(notation, str) or not notation.strip():
        raise InvalidNotationError("Empty dice notation", expression=str(notation))

    compact = re.sub(r"\s+", "", notation).lower()
    match = NOTATION_PATTERN.match(compact)
    if match is None:
        raise InvalidNotationError(
            f"Invalid dice notation: {notation!r}",
            expression=notation,
        )

    count = int(match.group(1))
    sides = int(match.group(2))
    modifier = int(match.group(3)) if match.group(3) else 0

    if count < 1 or sides < 1:
        raise InvalidNotationError(
            "Dice count and sides must be positive",
            expression=notation,
        )
    if count > MAX_DICE_COUNT or sides > MAX_DIE_SIDES:
        raise InvalidNotationError(
            f"Refusing to roll more than {MAX_DICE_COUNT} dice "
            f"or dice with more than {MAX_DIE_SIDES} sides",
            expression=notation,
        )

    return DiceNotation(count=count, sides=sides, modifier=modifier)


class DiceRoller:
    """Rolls validated dice notation with the d20 library.

    Example:
        >>> roller = DiceRoller(seed=7)
        >>> result = roller.roll("2d6+3")
        >>> len(result.rolls)
        2
    """

    def __init__(self, *, seed: int | None = None) -> None:
        """Initialize the dice roller.

        Args:
            seed: Optional random seed for reproducible rolls. d20 draws
                from the ``random`` module, so the seed is applied there.
        """
        self._seed = seed
        if seed is not None:
            random.seed(seed)
        logger.debug("DiceRoller initialized", seed=seed)

    @property
    def seed(self) -> int | None:
        return self._seed

    def roll(self, notation: str) -> RollResult:
        """Roll dice according to the given notation.

        Args:
            notation: Dice notation (e.g., '1d20+5', '2d6').

        Returns:
            RollResult with the individual dice and the total.

        Raises:
            InvalidNotationError: If the notation is invalid.
        """
        parsed = parse_notation(notation)
        result = d20.roll(parsed.expression)
        rolls = self._extract_dice_values(result.expr)

        roll_result = RollResult(
            notation=parsed.expression,
            rolls=rolls,
            modifier=parsed.modifier,
            total=sum(rolls) + parsed.modifier,
        )

        logger.info(
            "Dice rolled",
            notation=roll_result.notation,
            rolls=roll_result.rolls,
            total=roll_result.total,
        )
        return roll_result

    def _extract_dice_values(self, expr: Any) -> list[int]:
        """Collect the kept die values from a d20 expression tree."""
        values: list[int] = []

        def traverse(node: Any) -> None:
            if isinstance(node, d20.Dice):
                for die in node.values:
                    if getattr(die, "kept", True):
                        values.append(int(die.number))
            elif hasattr(node, "children"):
                for child in node.children:
                    traverse(child)

        traverse(expr)
        return values


# Module-level convenience roller
_default_roller: DiceRoller | None = None


def roll(notation: str) -> RollResult:
    """Convenience function to roll dice.

    Args:
        notation: Dice notation (e.g., '1d20+5').

    Returns:
        RollResult containing roll results.
    """
    global _default_roller  # noqa: PLW0603
    if _default_roller is None:
        _default_roller = DiceRoller()
    return _default_roller.roll(notation)


__all__ = [
    "NOTATION_PATTERN",
    "MAX_DICE_COUNT",
    "MAX_DIE_SIDES",
    "DiceNotation",
    "RollResult",
    "parse_notation",
    "DiceRoller",
    "roll",
]
