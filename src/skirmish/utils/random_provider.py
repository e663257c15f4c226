from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Optional, Sequence, TypeVar

T = TypeVar("T")


@dataclass
class RandomProvider:
    """
    Deterministic-friendly RNG wrapper around random.Random.

    Every roll made by the combat engine goes through an injected provider so a
    fixed seed reproduces a whole fight. Avoids Python's global RNG state.
    """

    seed: Optional[int] = None

    def __post_init__(self) -> None:
        self._rng = random.Random(self.seed)

    def random(self) -> float:
        """Return the next random float in the range [0.0, 1.0)."""
        return self._rng.random()

    def uniform(self, a: float, b: float) -> float:
        """Return a random float N such that a <= N <= b."""
        return self._rng.uniform(a, b)

    def randint(self, a: int, b: int) -> int:
        """Return a random integer N such that a <= N <= b."""
        return self._rng.randint(a, b)

    def roll(self, sides: int) -> int:
        """Roll a single die with the given number of sides (1..sides)."""
        if sides < 1:
            raise ValueError("A die needs at least one side")
        return self._rng.randint(1, sides)

    def choice(self, seq: Sequence[T]) -> T:
        """Choose a random element from a non-empty sequence."""
        if not seq:
            raise IndexError("Cannot choose from an empty sequence")
        return seq[self._rng.randrange(len(seq))]
