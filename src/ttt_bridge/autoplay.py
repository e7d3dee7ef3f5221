"""Autoplay move generation.

MoveGenerator deals out the nine board cells in a shuffled order, one per
call, and reshuffles once the pool runs dry. It knows nothing about which
cells are already taken on the shared board.
"""

from __future__ import annotations

import logging
import random
import time

from ttt_bridge.models import GRID_SIZE
from ttt_bridge.protocol import format_move

logger = logging.getLogger(__name__)


def canonical_moves() -> list[str]:
    """All nine 1-indexed ``row,col`` moves in row-major order."""
    return [
        format_move(row, col)
        for row in range(1, GRID_SIZE + 1)
        for col in range(1, GRID_SIZE + 1)
    ]


def shuffle_in_place(items: list[str], rng: random.Random) -> None:
    """Fisher-Yates shuffle from the last index down to 1."""
    for i in range(len(items) - 1, 0, -1):
        j = rng.randint(0, i)
        items[i], items[j] = items[j], items[i]


class MoveGenerator:
    """Produces random autoplay moves from a shuffled pool.

    The RNG is an isolated random.Random, seeded once per autoplay session by
    activate(); it never touches the global random state.
    """

    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(seed)
        self._pool: list[str] = []
        self._cursor = 0
        self.seed = seed
        self.regenerations = 0

    @property
    def pool(self) -> list[str]:
        """Copy of the current pool order."""
        return list(self._pool)

    @property
    def remaining(self) -> int:
        """Moves left before the next reshuffle."""
        return max(0, len(self._pool) - self._cursor)

    def activate(self, seed: int | None = None) -> None:
        """Start a new autoplay session.

        Args:
            seed: RNG seed; defaults to the current time in nanoseconds
        """
        self.seed = seed if seed is not None else time.time_ns()
        self._rng = random.Random(self.seed)
        self.regenerations = 0
        self.generate()

    def generate(self) -> list[str]:
        """Build a freshly shuffled pool and rewind the cursor."""
        pool = canonical_moves()
        shuffle_in_place(pool, self._rng)
        self._pool = pool
        self._cursor = 0
        logger.debug("Generated move pool: %s", pool)
        return list(pool)

    def next_move(self) -> str:
        """Return the next move, reshuffling first if the pool is used up."""
        if self._cursor >= len(self._pool):
            self.generate()
            self.regenerations += 1
        move = self._pool[self._cursor]
        self._cursor += 1
        return move
