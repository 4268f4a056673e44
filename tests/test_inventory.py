"""Tests for flagiq.core.inventory – hint counts and coin clamping."""

from __future__ import annotations

import math

import pytest

from flagiq.core.inventory import DEFAULT_HINTS, HintInventory, HintKind, clamp_coins


class TestHintInventory:
    def test_defaults(self):
        assert DEFAULT_HINTS.to_dict() == {"remove2": 3, "autoPass": 1, "pause": 2}

    def test_consumed_floors_at_zero(self):
        empty = HintInventory(remove2=0, auto_pass=0, pause=0)
        assert empty.consumed(HintKind.PAUSE).pause == 0
        assert DEFAULT_HINTS.consumed(HintKind.AUTO_PASS).auto_pass == 0

    def test_added_accepts_wire_and_field_names(self):
        hints = DEFAULT_HINTS.added(autoPass=2, remove2=1).added(auto_pass=1)
        assert hints.auto_pass == 4
        assert hints.remove2 == 4

    def test_added_rejects_negative(self):
        with pytest.raises(ValueError):
            DEFAULT_HINTS.added(pause=-1)

    def test_added_rejects_unknown(self):
        with pytest.raises(ValueError):
            DEFAULT_HINTS.added(skip=1)

    def test_merged_is_per_key_max(self):
        a = HintInventory(remove2=5, auto_pass=0, pause=1)
        b = HintInventory(remove2=1, auto_pass=2, pause=1)
        assert a.merged(b) == HintInventory(remove2=5, auto_pass=2, pause=1)
        assert a.merged(b) == b.merged(a)


class TestClampCoins:
    @pytest.mark.parametrize(
        "raw, expected",
        [(120, 120), ("75", 75), (12.9, 12), (-5, 0), (None, 0), ("lots", 0), (math.nan, 0), (math.inf, 0)],
    )
    def test_values(self, raw, expected):
        assert clamp_coins(raw) == expected
