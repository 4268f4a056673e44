"""Game modes and the rules that differ between them."""

from __future__ import annotations

from enum import Enum

MAX_STARS = 3
STAR3_SCORE = 8000
STAR2_SCORE = 6000

_ALIASES = {
    "classic": "classic",
    "timetrial": "timetrial",
    "time trial": "timetrial",
    "time_trial": "timetrial",
    "local": "local",
    "localflags": "local",
    "local flags": "local",
}


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


class GameMode(Enum):
    CLASSIC = "classic"
    TIME_TRIAL = "timetrial"
    LOCAL = "local"

    @classmethod
    def parse(cls, raw: "str | GameMode") -> "GameMode":
        """Accept the enum itself or any stored spelling ("timeTrial", "localFlags", ...)."""
        if isinstance(raw, GameMode):
            return raw
        key = _ALIASES.get(str(raw or "").strip().lower())
        if key is None:
            raise ValueError(f"Invalid mode: {raw!r}")
        return cls(key)

    @property
    def is_timed(self) -> bool:
        if self is GameMode.TIME_TRIAL:
            return True
        if self in (GameMode.CLASSIC, GameMode.LOCAL):
            return False
        raise AssertionError(self)

    @property
    def progress_key(self) -> str:
        """Key of this mode inside the stored progress document."""
        if self is GameMode.CLASSIC:
            return "classic"
        if self is GameMode.TIME_TRIAL:
            return "timetrial"
        if self is GameMode.LOCAL:
            return "localFlags"
        raise AssertionError(self)

    @property
    def awards_coins(self) -> bool:
        if self in (GameMode.CLASSIC, GameMode.TIME_TRIAL, GameMode.LOCAL):
            return True
        raise AssertionError(self)

    @property
    def uses_level_unlocks(self) -> bool:
        """Local packs are always fully open; the main ladders unlock in batches."""
        if self in (GameMode.CLASSIC, GameMode.TIME_TRIAL):
            return True
        if self is GameMode.LOCAL:
            return False
        raise AssertionError(self)

    def stars_for(self, mistakes: int, score: int = 0) -> int:
        """Stars earned by a completed run."""
        by_mistakes = clamp(MAX_STARS - mistakes, 0, MAX_STARS)
        if self in (GameMode.CLASSIC, GameMode.LOCAL):
            return by_mistakes
        if self is GameMode.TIME_TRIAL:
            return min(score_stars(score), by_mistakes)
        raise AssertionError(self)


def score_stars(score: int) -> int:
    if score >= STAR3_SCORE:
        return 3
    if score >= STAR2_SCORE:
        return 2
    return 1
