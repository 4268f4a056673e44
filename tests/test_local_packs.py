"""Tests for flagiq.core.local_packs – subdivision packs and their levels."""

from __future__ import annotations

from collections import Counter
from pathlib import Path

import pytest

from flagiq.core.catalog import Flag
from flagiq.core.local_packs import (
    ALL_PACK_ID,
    LEVEL_SIZE,
    LocalPack,
    LocalPackRepository,
    build_pack_levels,
    pack_progress,
    plan_pack_levels,
)


def _flags(n: int, prefix: str = "xx") -> tuple:
    return tuple(Flag(f"{prefix}_{i:02d}", f"Region {i}", 5.0) for i in range(n))


# ---------------------------------------------------------------------------
# Bundled packs
# ---------------------------------------------------------------------------

class TestRepository:
    def test_all_pack_first(self):
        repo = LocalPackRepository()
        packs = repo.all()
        assert packs[0].pack_id == ALL_PACK_ID
        assert repo.default().pack_id == ALL_PACK_ID
        assert len(packs[0].flags) == sum(len(p.flags) for p in packs[1:])

    def test_pack_flags(self):
        swiss = LocalPackRepository().get("ch")
        assert len(swiss.flags) == 26
        bern = next(f for f in swiss.flags if f.name == "Bern")
        assert bern.code == "ch_be"
        assert bern.image_url() == "/local-flags/ch/be.svg"
        assert bern.region == "Switzerland"

    def test_unknown_pack(self):
        with pytest.raises(KeyError):
            LocalPackRepository().get("fr")

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            LocalPackRepository(tmp_path / "packs.yaml")

    def test_bad_document(self, tmp_path: Path):
        path = tmp_path / "packs.yaml"
        path.write_text("- just a list\n", encoding="utf-8")
        with pytest.raises(ValueError):
            LocalPackRepository(path)

    def test_empty_pack(self, tmp_path: Path):
        path = tmp_path / "packs.yaml"
        path.write_text("packs:\n  - {id: it, title: Italy, flags: []}\n", encoding="utf-8")
        with pytest.raises(ValueError, match="no flags"):
            LocalPackRepository(path)

    def test_bad_flag_entry(self, tmp_path: Path):
        path = tmp_path / "packs.yaml"
        path.write_text("packs:\n  - {id: it, title: Italy, flags: [lazio]}\n", encoding="utf-8")
        with pytest.raises(ValueError):
            LocalPackRepository(path)

    def test_unlock_tier(self, tmp_path: Path):
        path = tmp_path / "packs.yaml"
        path.write_text(
            "packs:\n"
            "  - {id: it, title: Italy, flags: [[laz, Lazio]]}\n"
            "  - {id: fr, title: France, unlock_tier: 2, flags: [[idf, Ile-de-France]]}\n",
            encoding="utf-8",
        )
        repo = LocalPackRepository(path)
        assert repo.get("it").unlocked
        assert not repo.get("fr").unlocked


# ---------------------------------------------------------------------------
# Level planning
# ---------------------------------------------------------------------------

class TestPlanLevels:
    def test_level_count(self):
        assert len(plan_pack_levels(_flags(26))) == 18
        assert len(plan_pack_levels(_flags(50))) == 30
        assert len(plan_pack_levels(_flags(8))) == 10

    def test_levels_have_distinct_flags(self):
        for codes in plan_pack_levels(_flags(26)):
            assert len(codes) == LEVEL_SIZE
            assert len(set(codes)) == LEVEL_SIZE

    def test_small_pack_levels_use_every_flag(self):
        flags = _flags(5)
        for codes in plan_pack_levels(flags):
            assert sorted(codes) == sorted(f.code for f in flags)

    def test_usage_is_spread(self):
        plan = plan_pack_levels(_flags(26))
        usage = Counter(code for codes in plan for code in codes)
        assert len(usage) == 26
        assert max(usage.values()) - min(usage.values()) <= 1

    def test_deterministic(self):
        flags = _flags(17)
        assert plan_pack_levels(flags) == plan_pack_levels(tuple(reversed(flags)))

    def test_empty(self):
        assert plan_pack_levels(()) == []


# ---------------------------------------------------------------------------
# Pack levels and progress
# ---------------------------------------------------------------------------

class TestPackLevels:
    def test_build(self):
        pack = LocalPack("xx", "Test", _flags(12))
        levels = build_pack_levels(pack)
        assert [lvl.id for lvl in levels] == list(range(1, len(levels) + 1))
        assert levels[0].display_label() == "1"
        assert all(len(lvl.pool) == LEVEL_SIZE for lvl in levels)

    def test_progress(self):
        pack = LocalPack("xx", "Test", _flags(12))
        progress = pack_progress(pack, {1: 3, 2: 1, 4: 0})
        assert progress.completed_levels == 2
        assert progress.stars_earned == 4
        assert progress.total_levels == 12
        assert progress.max_stars == 36
