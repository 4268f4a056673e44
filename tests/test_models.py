"""Tests for flagiq.ui.models – level map tiles."""

from __future__ import annotations

from flagiq.core.levels import LevelDefinition
from flagiq.core.progress import ProgressRecord
from flagiq.ui.models import LevelTile, build_level_tiles, pack_level_tiles

LEVELS = [LevelDefinition(id=i, pool=()) for i in range(1, 11)]


class TestLevelTile:
    def test_defaults(self):
        tile = LevelTile(level=LEVELS[0], unlocked=True, stars=0)
        assert tile.is_current is False
        assert tile.stars_needed is None


class TestBuildLevelTiles:
    def test_fresh_player(self):
        tiles = build_level_tiles(LEVELS, ProgressRecord())
        assert [t.unlocked for t in tiles] == [True] * 5 + [False] * 5
        assert [t.is_current for t in tiles].index(True) == 0

    def test_current_is_first_unstarred(self):
        tiles = build_level_tiles(LEVELS, ProgressRecord({1: 3, 2: 2}))
        assert [t.level.id for t in tiles if t.is_current] == [3]
        assert tiles[0].stars == 3

    def test_locked_tiles_explain_requirement(self):
        tiles = build_level_tiles(LEVELS, ProgressRecord({1: 3, 2: 2}))
        needed = tiles[5].stars_needed
        assert (needed.need, needed.block_start, needed.block_end) == (7, 6, 10)
        assert tiles[4].stars_needed is None

    def test_all_starred_has_no_current(self):
        record = ProgressRecord({i: 3 for i in range(1, 11)})
        assert not any(t.is_current for t in build_level_tiles(LEVELS, record))


class TestPackLevelTiles:
    def test_always_unlocked(self):
        tiles = pack_level_tiles(LEVELS, {1: 1})
        assert all(t.unlocked for t in tiles)
        assert [t.level.id for t in tiles if t.is_current] == [2]
