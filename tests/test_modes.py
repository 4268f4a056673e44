"""Tests for flagiq.core.modes – mode parsing and star formulas."""

from __future__ import annotations

import pytest

from flagiq.core.modes import GameMode, score_stars


class TestParse:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("classic", GameMode.CLASSIC),
            ("timetrial", GameMode.TIME_TRIAL),
            ("timeTrial", GameMode.TIME_TRIAL),
            ("time trial", GameMode.TIME_TRIAL),
            (" Time_Trial ", GameMode.TIME_TRIAL),
            ("local", GameMode.LOCAL),
            ("localFlags", GameMode.LOCAL),
            ("local flags", GameMode.LOCAL),
        ],
    )
    def test_aliases(self, raw, expected):
        assert GameMode.parse(raw) is expected

    def test_enum_passes_through(self):
        assert GameMode.parse(GameMode.LOCAL) is GameMode.LOCAL

    @pytest.mark.parametrize("raw", ["", None, "arcade"])
    def test_unknown(self, raw):
        with pytest.raises(ValueError):
            GameMode.parse(raw)


class TestVariantData:
    def test_only_time_trial_is_timed(self):
        assert [m for m in GameMode if m.is_timed] == [GameMode.TIME_TRIAL]

    def test_progress_keys(self):
        assert GameMode.CLASSIC.progress_key == "classic"
        assert GameMode.TIME_TRIAL.progress_key == "timetrial"
        assert GameMode.LOCAL.progress_key == "localFlags"

    def test_every_mode_awards_coins(self):
        assert all(m.awards_coins for m in GameMode)

    def test_local_packs_skip_unlocks(self):
        assert GameMode.CLASSIC.uses_level_unlocks
        assert not GameMode.LOCAL.uses_level_unlocks


class TestStars:
    @pytest.mark.parametrize("mistakes, stars", [(0, 3), (1, 2), (2, 1), (3, 0)])
    def test_classic(self, mistakes, stars):
        assert GameMode.CLASSIC.stars_for(mistakes) == stars
        assert GameMode.LOCAL.stars_for(mistakes) == stars

    @pytest.mark.parametrize(
        "score, mistakes, stars",
        [(8200, 0, 3), (8200, 2, 1), (5000, 0, 1), (6000, 0, 2), (9999, 1, 2)],
    )
    def test_time_trial(self, score, mistakes, stars):
        assert GameMode.TIME_TRIAL.stars_for(mistakes, score) == stars

    def test_score_thresholds(self):
        assert score_stars(8000) == 3
        assert score_stars(7999) == 2
        assert score_stars(0) == 1
