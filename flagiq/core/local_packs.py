from __future__ import annotations

import logging
import math
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import yaml

from flagiq.core.catalog import Flag
from flagiq.core.levels import LevelDefinition

logger = logging.getLogger(__name__)

LEVEL_SIZE = 10
RECENT_WINDOW_SIZE = 30
MIN_PACK_LEVELS = 10
LEVELS_PER_BLOCK = 6
ALL_PACK_ID = "ALL"
LOCAL_FLAG_DIFFICULTY = 5.0


@dataclass(frozen=True)
class LocalPack:
    pack_id: str
    title: str
    flags: Tuple[Flag, ...]
    country_code: Optional[str] = None
    type: str = "country"
    unlock_tier: int = 1

    @property
    def unlocked(self) -> bool:
        return self.unlock_tier <= 1


@dataclass(frozen=True)
class PackProgress:
    completed_levels: int
    total_levels: int
    stars_earned: int
    max_stars: int


def plan_pack_levels(flags: Sequence[Flag], per_level: int = LEVEL_SIZE) -> List[List[str]]:
    """Spread a pack's flags over its levels, least-used first.

    A flag appears at most once per level and is kept out of the next
    RECENT_WINDOW_SIZE picks when there is anything else to choose from.
    Ties break on code so the plan is the same on every device.
    """
    if not flags:
        return []
    levels_count = max(MIN_PACK_LEVELS, math.ceil(len(flags) / per_level) * LEVELS_PER_BLOCK)

    usage: Dict[str, int] = {f.code: 0 for f in flags}
    recent: deque = deque(maxlen=RECENT_WINDOW_SIZE)
    plan: List[List[str]] = []

    for _ in range(levels_count):
        used_in_level = set()
        codes: List[str] = []
        while len(codes) < per_level:
            candidates = [f for f in flags if f.code not in used_in_level]
            fresh = [f for f in candidates if f.code not in recent]
            pool = fresh or candidates
            if not pool:
                break
            fewest = min(usage[f.code] for f in pool)
            chosen = min((f for f in pool if usage[f.code] == fewest), key=lambda f: f.code)
            codes.append(chosen.code)
            used_in_level.add(chosen.code)
            usage[chosen.code] += 1
            recent.append(chosen.code)
        plan.append(codes)
    return plan


def build_pack_levels(pack: LocalPack) -> List[LevelDefinition]:
    by_code = {f.code: f for f in pack.flags}
    levels = []
    for number, codes in enumerate(plan_pack_levels(pack.flags), start=1):
        pool = tuple(by_code[c] for c in codes if c in by_code)
        levels.append(LevelDefinition(id=number, pool=pool, question_count=LEVEL_SIZE, label=str(number)))
    return levels


def pack_progress(pack: LocalPack, stars_by_level: Mapping[int, int]) -> PackProgress:
    levels = build_pack_levels(pack)
    stars = [int(stars_by_level.get(level.id, 0)) for level in levels]
    return PackProgress(
        completed_levels=sum(1 for s in stars if s > 0),
        total_levels=len(levels),
        stars_earned=sum(stars),
        max_stars=len(levels) * 3,
    )


class LocalPackRepository:
    """Subdivision flag packs loaded from data/local_packs.yaml."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = path or Path(__file__).resolve().parent.parent / "data" / "local_packs.yaml"
        self._packs = self._load_packs()

    def all(self) -> List[LocalPack]:
        return list(self._packs.values())

    def get(self, pack_id: str) -> LocalPack:
        return self._packs[pack_id]

    def default(self) -> LocalPack:
        return next(iter(self._packs.values()))

    def _load_packs(self) -> Dict[str, LocalPack]:
        if not self._path.exists():
            raise FileNotFoundError(f"Local packs file not found: {self._path}")
        raw = yaml.safe_load(self._path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict) or not isinstance(raw.get("packs"), list):
            raise ValueError(f"{self._path.name}: expected a 'packs' list")

        country_packs: List[LocalPack] = []
        for index, entry in enumerate(raw["packs"]):
            where = f"{self._path.name}: pack {index}"
            if not isinstance(entry, dict) or not entry.get("id"):
                raise ValueError(f"{where}: missing 'id'")
            pack_id = str(entry["id"]).lower()
            flags = []
            for item in entry.get("flags") or []:
                if not isinstance(item, list) or len(item) < 2:
                    raise ValueError(f"{where}: flag entries must be [code, name]")
                sub_code, name = str(item[0]).lower(), str(item[1])
                flags.append(
                    Flag(
                        code=f"{pack_id}_{sub_code}",
                        name=name,
                        difficulty=LOCAL_FLAG_DIFFICULTY,
                        region=entry.get("title"),
                        image=f"/local-flags/{pack_id}/{sub_code}.svg",
                    )
                )
            if not flags:
                raise ValueError(f"{where}: pack '{pack_id}' has no flags")
            country_packs.append(
                LocalPack(
                    pack_id=pack_id,
                    title=str(entry.get("title") or pack_id.upper()),
                    flags=tuple(flags),
                    country_code=entry.get("country"),
                    unlock_tier=int(entry.get("unlock_tier", 1)),
                )
            )

        all_flags = tuple(f for pack in country_packs for f in pack.flags)
        packs = {ALL_PACK_ID: LocalPack(ALL_PACK_ID, "All Local Flags", all_flags, type="all")}
        for pack in country_packs:
            packs[pack.pack_id] = pack
        logger.info("Loaded %d local packs (%d flags)", len(country_packs), len(all_flags))
        return packs
