from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

from flagiq.core.levels import BATCH, TOTAL_LEVELS
from flagiq.core.modes import MAX_STARS, GameMode

UNLOCK_THRESHOLD = 0.8
# total stars required to open the batch ending at each level id
BLOCK_REQUIRE = {5: 0, 10: 12, 15: 24, 20: 36, 25: 48, 30: 60}


@dataclass(frozen=True)
class StarsNeeded:
    need: int
    block_start: int
    block_end: int


@dataclass(frozen=True)
class ModeStats:
    """Summary shown on a mode's home-screen card."""

    level: int
    stars: int


def sum_stars(stars_by_level: Mapping[int, int]) -> int:
    return sum(int(v or 0) for v in stars_by_level.values())


def compute_unlocked_levels(stars_by_level: Mapping[int, int]) -> int:
    """Number of unlocked levels, recomputed from scratch from the star map.

    Every level starts locked except the first batch. Another batch opens
    whenever the total stars reach 80% of the stars available in the levels
    already open.
    """
    unlocked = BATCH
    have = sum_stars(stars_by_level)
    while unlocked < TOTAL_LEVELS:
        max_possible = unlocked * MAX_STARS
        ratio = have / max_possible if max_possible > 0 else 0
        if ratio < UNLOCK_THRESHOLD:
            break
        unlocked = min(unlocked + BATCH, TOTAL_LEVELS)
    return unlocked


def stars_needed_for_level_id(level_id: int, stars_by_level: Mapping[int, int]) -> StarsNeeded:
    block_end = min(math.ceil(level_id / BATCH) * BATCH, TOTAL_LEVELS)
    required = BLOCK_REQUIRE.get(block_end, 0)
    return StarsNeeded(
        need=max(0, required - sum_stars(stars_by_level)),
        block_start=block_end - (BATCH - 1),
        block_end=block_end,
    )


def last_completed_level(stars_by_level: Mapping[int, int]) -> int:
    last = 0
    for level_id in range(1, TOTAL_LEVELS + 1):
        if stars_by_level.get(level_id, 0) > 0:
            last = level_id
    return last or 1


def merge_stars(a: Mapping[int, int], b: Mapping[int, int]) -> Dict[int, int]:
    """Key-wise maximum of two star maps. Never lowers a rating."""
    merged = dict(a)
    for level_id, stars in b.items():
        merged[level_id] = max(merged.get(level_id, 0), stars)
    return merged


def validate_level_stars(level_id: object, stars: object) -> tuple[int, int]:
    try:
        level = float(level_id)  # type: ignore[arg-type]
        value = float(stars)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise ValueError(f"level and stars must be numbers, got {level_id!r} / {stars!r}") from None
    if not math.isfinite(level) or level <= 0 or level != int(level):
        raise ValueError(f"level number must be a positive integer, got {level_id!r}")
    if not math.isfinite(value) or value < 0:
        raise ValueError(f"stars must be a finite number >= 0, got {stars!r}")
    return int(level), min(MAX_STARS, int(value))


@dataclass(frozen=True)
class ProgressRecord:
    """Best-ever stars and unlock state for one mode."""

    stars_by_level: Dict[int, int] = field(default_factory=dict)
    unlocked_until: int = BATCH

    def effective_unlocked(self) -> int:
        return max(self.unlocked_until, compute_unlocked_levels(self.stars_by_level))

    def total_stars(self) -> int:
        return sum_stars(self.stars_by_level)

    def stars_for(self, level_id: int) -> int:
        return self.stars_by_level.get(level_id, 0)

    def is_unlocked(self, level_id: int) -> bool:
        return level_id <= self.effective_unlocked()

    def with_level_stars(self, level_id: int, stars: int) -> "ProgressRecord":
        level, value = validate_level_stars(level_id, stars)
        updated = dict(self.stars_by_level)
        updated[level] = max(updated.get(level, 0), value)
        return ProgressRecord(
            stars_by_level=updated,
            unlocked_until=max(self.unlocked_until, compute_unlocked_levels(updated)),
        )

    def merged(self, other: "ProgressRecord") -> "ProgressRecord":
        stars = merge_stars(self.stars_by_level, other.stars_by_level)
        return ProgressRecord(
            stars_by_level=stars,
            unlocked_until=max(self.unlocked_until, other.unlocked_until, compute_unlocked_levels(stars)),
        )

    def stats(self) -> ModeStats:
        return mode_stats(self)

    def to_dict(self) -> dict:
        return {
            "starsByLevel": {str(k): v for k, v in sorted(self.stars_by_level.items())},
            "unlockedUntil": self.unlocked_until,
        }


@dataclass(frozen=True)
class PlayerProgress:
    """All progress for one identity: both level ladders plus local packs."""

    classic: ProgressRecord = field(default_factory=ProgressRecord)
    timetrial: ProgressRecord = field(default_factory=ProgressRecord)
    local_packs: Dict[str, Dict[int, int]] = field(default_factory=dict)

    def for_mode(self, mode: GameMode) -> ProgressRecord:
        if mode is GameMode.CLASSIC:
            return self.classic
        if mode is GameMode.TIME_TRIAL:
            return self.timetrial
        if mode is GameMode.LOCAL:
            raise ValueError("Local pack progress is per pack; use pack_stars()")
        raise AssertionError(mode)

    def pack_stars(self, pack_id: str) -> Dict[int, int]:
        return dict(self.local_packs.get(pack_id, {}))

    def with_level_stars(
        self,
        mode: GameMode,
        level_id: int,
        stars: int,
        pack_id: Optional[str] = None,
    ) -> "PlayerProgress":
        if mode is GameMode.CLASSIC:
            return PlayerProgress(self.classic.with_level_stars(level_id, stars), self.timetrial, self.local_packs)
        if mode is GameMode.TIME_TRIAL:
            return PlayerProgress(self.classic, self.timetrial.with_level_stars(level_id, stars), self.local_packs)
        if mode is GameMode.LOCAL:
            if not pack_id:
                raise ValueError("pack_id is required for local pack progress")
            level, value = validate_level_stars(level_id, stars)
            packs = {k: dict(v) for k, v in self.local_packs.items()}
            pack = packs.setdefault(pack_id, {})
            pack[level] = max(pack.get(level, 0), value)
            return PlayerProgress(self.classic, self.timetrial, packs)
        raise AssertionError(mode)

    def merged(self, other: "PlayerProgress") -> "PlayerProgress":
        packs = {k: dict(v) for k, v in self.local_packs.items()}
        for pack_id, stars in other.local_packs.items():
            packs[pack_id] = merge_stars(packs.get(pack_id, {}), stars)
        return PlayerProgress(
            classic=self.classic.merged(other.classic),
            timetrial=self.timetrial.merged(other.timetrial),
            local_packs=packs,
        )

    def completed_levels(self) -> int:
        """Distinct levels with at least one star, across every mode and pack."""
        count = sum(1 for v in self.classic.stars_by_level.values() if v > 0)
        count += sum(1 for v in self.timetrial.stars_by_level.values() if v > 0)
        for stars in self.local_packs.values():
            count += sum(1 for v in stars.values() if v > 0)
        return count

    def to_dict(self) -> dict:
        return {
            "classic": self.classic.to_dict(),
            "timetrial": self.timetrial.to_dict(),
            "localFlags": {
                "packs": {
                    pack_id: {"starsByLevel": {str(k): v for k, v in sorted(stars.items())}}
                    for pack_id, stars in sorted(self.local_packs.items())
                }
            },
        }


def mode_stats(record: ProgressRecord) -> ModeStats:
    """Home-screen card numbers: last starred level and total stars, or zeros."""
    total = record.total_stars()
    if total == 0:
        return ModeStats(level=0, stars=0)
    return ModeStats(level=last_completed_level(record.stars_by_level), stars=total)
