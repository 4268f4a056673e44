from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from flagiq.core.catalog import Flag

logger = logging.getLogger(__name__)

TOTAL_LEVELS = 30
BATCH = 5
POOL_SIZE = 20
NEAREST_LIMIT = 120
MIN_CANDIDATES = 40
QUESTION_COUNT = 10


@dataclass(frozen=True)
class LevelDefinition:
    id: int
    pool: Tuple[Flag, ...]
    question_count: int = QUESTION_COUNT
    label: str = field(default="")

    def display_label(self) -> str:
        return self.label or str(self.id)


def target_difficulty(level_id: int, total: int = TOTAL_LEVELS) -> float:
    """Eased cubic ramp from 1.0 (level 1) to 9.5 (last level)."""
    t = (level_id - 1) / (total - 1)
    return 1 + t * t * t * 8.5


def min_difficulty(level_id: int) -> float:
    if level_id <= 5:
        return 1
    if level_id <= 10:
        return 2
    if level_id <= 15:
        return 3
    if level_id <= 20:
        return 4
    if level_id <= 25:
        return 5
    return 6


def difficulty_cap(level_id: int) -> float:
    if level_id <= 3:
        return 2.5
    if level_id <= 5:
        return 3.5
    if level_id <= 10:
        return 5.0
    if level_id <= 15:
        return 6.5
    if level_id <= 20:
        return 7.5
    if level_id <= 25:
        return 8.5
    return 9.5


def _sample(rng: random.Random, flags: Sequence[Flag], n: int) -> List[Flag]:
    return rng.sample(list(flags), min(n, len(flags)))


def build_level_pool(
    level_id: int,
    by_difficulty: Sequence[Flag],
    rng: random.Random,
) -> List[Flag]:
    """Pick up to POOL_SIZE flags near the level's target difficulty.

    Never fails: when the difficulty band is too narrow the whole catalog is
    used, and an empty draw falls back to a plain sample of everything.
    """
    low = min_difficulty(level_id)
    cap = difficulty_cap(level_id)
    target = target_difficulty(level_id)

    candidates = [f for f in by_difficulty if low <= f.difficulty <= cap]
    if len(candidates) < MIN_CANDIDATES:
        logger.debug(
            "Level %d: only %d flags in [%s, %s], using full catalog",
            level_id, len(candidates), low, cap,
        )
        candidates = list(by_difficulty)

    nearest = sorted(candidates, key=lambda f: abs(f.difficulty - target))[:NEAREST_LIMIT]

    pool = _sample(rng, nearest, POOL_SIZE)
    if len(pool) < POOL_SIZE:
        taken = {f.code for f in pool}
        remain = [f for f in candidates if f.code not in taken]
        pool.extend(_sample(rng, remain, POOL_SIZE - len(pool)))
    if not pool:
        pool = _sample(rng, by_difficulty, POOL_SIZE)
    return pool


def build_levels(flags: Iterable[Flag], rng: Optional[random.Random] = None) -> List[LevelDefinition]:
    """Partition the catalog into TOTAL_LEVELS pools along the difficulty curve."""
    rng = rng or random.Random()
    by_difficulty = sorted(flags, key=lambda f: f.difficulty)
    if not by_difficulty:
        logger.warning("Building levels from an empty flag catalog")

    levels: List[LevelDefinition] = []
    for level_id in range(1, TOTAL_LEVELS + 1):
        pool = build_level_pool(level_id, by_difficulty, rng)
        levels.append(LevelDefinition(id=level_id, pool=tuple(pool), question_count=QUESTION_COUNT))
    return levels


class LevelBook:
    """Lookup over a built list of levels."""

    def __init__(self, levels: Sequence[LevelDefinition]) -> None:
        self._levels = list(levels)
        self._by_id = {level.id: level for level in self._levels}

    def all(self) -> List[LevelDefinition]:
        return list(self._levels)

    def get(self, level_id: int) -> LevelDefinition:
        """Return the level, or the first level for an unknown id."""
        level = self._by_id.get(level_id)
        if level is not None:
            return level
        if not self._levels:
            raise KeyError(level_id)
        return self._levels[0]

    def __len__(self) -> int:
        return len(self._levels)
