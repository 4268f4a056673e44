"""Tests for flagiq.core.schema – loaders for every stored record shape."""

from __future__ import annotations

import json

from flagiq.core.hearts import HeartsState
from flagiq.core.inventory import DEFAULT_HINTS, HintInventory
from flagiq.core.schema import (
    HINTS_V1,
    HINTS_V2,
    dump_hearts,
    format_timestamp,
    load_hearts,
    load_hints,
    load_progress,
    parse_timestamp,
)

T0 = 1_700_000_000.0
T0_ISO = "2023-11-14T22:13:20+00:00"


# ---------------------------------------------------------------------------
# load_progress
# ---------------------------------------------------------------------------

class TestLoadProgress:
    def test_empty(self):
        progress = load_progress(None)
        assert progress.classic.stars_by_level == {}
        assert progress.classic.unlocked_until == 5

    def test_json_string(self):
        raw = json.dumps({"classic": {"starsByLevel": {"1": 3, "2": 1}, "unlockedUntil": 10}})
        progress = load_progress(raw)
        assert progress.classic.stars_by_level == {1: 3, 2: 1}
        assert progress.classic.unlocked_until == 10

    def test_broken_json(self):
        assert load_progress("{not json").classic.stars_by_level == {}

    def test_legacy_mode_keys(self):
        progress = load_progress({"timeTrial": {"starsByLevel": {"4": 2}}})
        assert progress.timetrial.stars_for(4) == 2

    def test_local_packs(self):
        progress = load_progress({"localFlags": {"packs": {"ch": {"starsByLevel": {"3": 1}}}}})
        assert progress.pack_stars("ch") == {3: 1}

    def test_junk_entries_skipped(self):
        raw = {
            "classic": {"starsByLevel": {"abc": 3, "0": 2, "2": "x", "3": 9, "4": -2}},
            "arcade": {"starsByLevel": {"1": 3}},
        }
        progress = load_progress(raw)
        assert progress.classic.stars_by_level == {3: 3, 4: 0}

    def test_bad_unlocked_falls_back(self):
        assert load_progress({"classic": {"unlockedUntil": "soon"}}).classic.unlocked_until == 5


# ---------------------------------------------------------------------------
# load_hints
# ---------------------------------------------------------------------------

class TestLoadHints:
    def test_current_shape(self):
        hints, version = load_hints({"remove2": 4, "autoPass": 0, "pause": 7})
        assert version == HINTS_V2
        assert hints == HintInventory(remove2=4, auto_pass=0, pause=7)

    def test_legacy_shape(self):
        hints, version = load_hints({"Remove Two": 5, "InstantCorrect": 2, "Extra Time": 0})
        assert version == HINTS_V1
        assert hints == HintInventory(remove2=5, auto_pass=2, pause=0)

    def test_legacy_key_wins_over_current(self):
        hints, version = load_hints({"remove2": 1, "Remove Two": 4})
        assert version == HINTS_V1
        assert hints.remove2 == 4

    def test_missing_keys_use_defaults(self):
        hints, _ = load_hints({"pause": 9})
        assert hints == HintInventory(remove2=3, auto_pass=1, pause=9)

    def test_negative_floored(self):
        hints, _ = load_hints({"remove2": -3})
        assert hints.remove2 == 0

    def test_nested_inventory(self):
        hints, version = load_hints({"hints": {"remove2": 8}, "skins": ["gold"]})
        assert version == HINTS_V2
        assert hints.remove2 == 8

    def test_json_string(self):
        hints, _ = load_hints('{"Extra Time": 6}')
        assert hints.pause == 6

    def test_garbage(self):
        assert load_hints("nope") == (DEFAULT_HINTS, HINTS_V2)
        assert load_hints(None) == (DEFAULT_HINTS, HINTS_V2)


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------

class TestTimestamps:
    def test_seconds(self):
        assert parse_timestamp(T0) == T0

    def test_milliseconds(self):
        assert parse_timestamp(T0 * 1000) == T0

    def test_numeric_string(self):
        assert parse_timestamp("1700000000000") == T0

    def test_iso(self):
        assert parse_timestamp("2023-11-14T22:13:20Z") == T0
        assert parse_timestamp(T0_ISO) == T0

    def test_invalid(self):
        assert parse_timestamp(None) is None
        assert parse_timestamp(True) is None
        assert parse_timestamp("yesterday") is None
        assert parse_timestamp(float("nan")) is None

    def test_format(self):
        assert format_timestamp(T0) == T0_ISO
        assert format_timestamp(None) is None


# ---------------------------------------------------------------------------
# Hearts
# ---------------------------------------------------------------------------

class TestLoadHearts:
    def test_default(self):
        assert load_hearts(None) == HeartsState()

    def test_camel_case_shape(self):
        state = load_hearts({"current": 2, "max": 5, "lastRegenAt": T0 * 1000})
        assert state == HeartsState(current=2, max=5, last_regen_at=T0)

    def test_record_shape(self):
        state = load_hearts({"hearts_current": 1, "hearts_max": 5, "hearts_last_regen_at": T0_ISO})
        assert state == HeartsState(current=1, last_regen_at=T0)

    def test_oldest_shape_is_clamped(self):
        state = load_hearts({"count": 9, "countMax": 5, "lastTick": T0})
        assert state.current == 5

    def test_bad_max(self):
        assert load_hearts({"hearts": 2, "maxHearts": 0}).max == 5

    def test_dump_round_trip(self):
        state = HeartsState(current=3, last_regen_at=T0)
        assert dump_hearts(state) == {
            "hearts_current": 3,
            "hearts_max": 5,
            "hearts_last_regen_at": T0_ISO,
        }
        assert load_hearts(dump_hearts(state)) == state
