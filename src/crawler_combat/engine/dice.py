"""Random source for every roll the engine makes.

All randomness goes through one Dice instance so a session can be seeded or
scripted as a whole.
"""

import random
from collections.abc import Sequence
from typing import TypeVar

from .types import DiceSpec

T = TypeVar("T")


class Dice:
    """Dice roller backed by random.Random."""

    def __init__(self, seed: int | None = None, rng: random.Random | None = None) -> None:
        self.rng = rng or random.Random(seed)

    def die(self, sides: int) -> int:
        """Roll a single die with 1..sides."""
        return self.rng.randint(1, sides)

    def dice(self, count: int, sides: int) -> int:
        """Roll count dice and sum them."""
        return sum(self.die(sides) for _ in range(count))

    def roll(self, spec: DiceSpec) -> int:
        """Roll a dice expression."""
        return self.dice(spec.count, spec.sides) + spec.bonus

    def integer(self, low: int, high: int) -> int:
        """Uniform integer in [low, high]."""
        return self.rng.randint(low, high)

    def percent(self, chance: float) -> bool:
        """True with the given percentage chance (0-100)."""
        return self.rng.random() * 100 < chance

    def choice(self, items: Sequence[T]) -> T:
        """Pick one element uniformly."""
        return self.rng.choice(items)
