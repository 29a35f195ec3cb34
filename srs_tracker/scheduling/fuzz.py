"""
Interval fuzz sources.

The scheduler never touches an ambient random generator; it asks a
FuzzSource for an integer offset so tests can pin the result.
"""

from __future__ import annotations

import random
from typing import Protocol


class FuzzSource(Protocol):
    """Returns a uniformly distributed integer in [-spread, +spread]."""

    def offset(self, spread: int) -> int: ...


class RandomFuzz:
    """Default fuzz source backed by a private random.Random instance."""

    def __init__(self, seed: int | None = None, rng: random.Random | None = None):
        self._rng = rng or random.Random(seed)

    def offset(self, spread: int) -> int:
        if spread <= 0:
            return 0
        return self._rng.randint(-spread, spread)


class NoFuzz:
    """Deterministic source that never perturbs an interval."""

    def offset(self, spread: int) -> int:
        return 0


class FixedFuzz:
    """Always picks the same offset, clipped to the allowed spread."""

    def __init__(self, value: int):
        self.value = value

    def offset(self, spread: int) -> int:
        return max(-spread, min(spread, self.value))
