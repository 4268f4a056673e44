"""Data models used by the UI."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from flagiq.core.levels import LevelDefinition
from flagiq.core.progress import ProgressRecord, StarsNeeded, stars_needed_for_level_id


@dataclass
class LevelTile:
    """UI state for one tile of the level map: stars, lock status, and selection."""

    level: LevelDefinition
    unlocked: bool
    stars: int
    is_current: bool = False
    stars_needed: Optional[StarsNeeded] = None


def build_level_tiles(levels: List[LevelDefinition], record: ProgressRecord) -> List[LevelTile]:
    """Tiles for the level map; the current tile is the first unlocked one without stars."""
    unlocked_until = record.effective_unlocked()
    tiles: List[LevelTile] = []
    current_set = False
    for level in levels:
        unlocked = level.id <= unlocked_until
        stars = record.stars_for(level.id)
        is_current = unlocked and stars == 0 and not current_set
        current_set = current_set or is_current
        tiles.append(
            LevelTile(
                level=level,
                unlocked=unlocked,
                stars=stars,
                is_current=is_current,
                stars_needed=None if unlocked else stars_needed_for_level_id(level.id, record.stars_by_level),
            )
        )
    return tiles


def pack_level_tiles(levels: List[LevelDefinition], stars_by_level: dict) -> List[LevelTile]:
    """Local pack tiles: always open, current is the first without stars."""
    tiles: List[LevelTile] = []
    current_set = False
    for level in levels:
        stars = int(stars_by_level.get(level.id, 0))
        is_current = stars == 0 and not current_set
        current_set = current_set or is_current
        tiles.append(LevelTile(level=level, unlocked=True, stars=stars, is_current=is_current))
    return tiles
