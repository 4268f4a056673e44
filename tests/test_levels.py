"""Tests for flagiq.core.levels – difficulty curve and level pools."""

from __future__ import annotations

import random
from statistics import mean

import pytest

from flagiq.core.catalog import Flag
from flagiq.core.levels import (
    POOL_SIZE,
    TOTAL_LEVELS,
    LevelBook,
    LevelDefinition,
    build_levels,
    difficulty_cap,
    min_difficulty,
    target_difficulty,
)


def _spread_flags(n: int) -> list:
    """``n`` flags with difficulties spread evenly over 1..10."""
    return [Flag(f"f{i:03d}", f"Flag {i}", 1 + 9 * i / (n - 1)) for i in range(n)]


# ---------------------------------------------------------------------------
# Difficulty curve
# ---------------------------------------------------------------------------

class TestCurve:
    def test_endpoints(self):
        assert target_difficulty(1) == pytest.approx(1.0)
        assert target_difficulty(TOTAL_LEVELS) == pytest.approx(9.5)

    def test_curve_is_increasing(self):
        values = [target_difficulty(i) for i in range(1, TOTAL_LEVELS + 1)]
        assert values == sorted(values)

    @pytest.mark.parametrize(
        "level_id, low, cap",
        [(1, 1, 2.5), (4, 1, 3.5), (10, 2, 5.0), (15, 3, 6.5), (20, 4, 7.5), (25, 5, 8.5), (30, 6, 9.5)],
    )
    def test_band(self, level_id, low, cap):
        assert min_difficulty(level_id) == low
        assert difficulty_cap(level_id) == cap


# ---------------------------------------------------------------------------
# build_levels
# ---------------------------------------------------------------------------

class TestBuildLevels:
    def test_large_catalog(self):
        levels = build_levels(_spread_flags(300), random.Random(7))
        assert len(levels) == TOTAL_LEVELS
        for level in levels:
            assert 1 <= len(level.pool) <= POOL_SIZE
            assert len({f.code for f in level.pool}) == len(level.pool)
            assert level.question_count == 10

    def test_difficulty_rises(self):
        levels = build_levels(_spread_flags(300), random.Random(7))
        first = mean(f.difficulty for f in levels[0].pool)
        last = mean(f.difficulty for f in levels[-1].pool)
        assert first < last

    def test_small_catalog_uses_everything(self):
        flags = _spread_flags(5)
        levels = build_levels(flags, random.Random(1))
        for level in levels:
            assert {f.code for f in level.pool} == {f.code for f in flags}

    def test_empty_catalog(self):
        levels = build_levels([], random.Random(1))
        assert len(levels) == TOTAL_LEVELS
        assert all(level.pool == () for level in levels)

    def test_seeded_builds_match(self):
        flags = _spread_flags(120)
        a = build_levels(flags, random.Random(3))
        b = build_levels(flags, random.Random(3))
        assert a == b


# ---------------------------------------------------------------------------
# LevelDefinition / LevelBook
# ---------------------------------------------------------------------------

class TestLevelBook:
    def test_get_known(self):
        levels = build_levels(_spread_flags(50), random.Random(2))
        book = LevelBook(levels)
        assert book.get(12).id == 12
        assert len(book) == TOTAL_LEVELS

    def test_unknown_falls_back_to_first(self):
        book = LevelBook(build_levels(_spread_flags(50), random.Random(2)))
        assert book.get(99).id == 1

    def test_empty_book_raises(self):
        with pytest.raises(KeyError):
            LevelBook([]).get(1)

    def test_display_label(self):
        assert LevelDefinition(id=4, pool=()).display_label() == "4"
        assert LevelDefinition(id=4, pool=(), label="Bern 4").display_label() == "Bern 4"
