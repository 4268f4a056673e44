"""Loaders that turn stored records (any historical shape) into current types.

Each loader is a pure function: it never touches storage and never raises on
bad data, it falls back to defaults instead.
"""

from __future__ import annotations

import json
import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from flagiq.core.hearts import MAX_HEARTS, HeartsState
from flagiq.core.inventory import DEFAULT_HINTS, HintInventory, HintKind
from flagiq.core.levels import BATCH
from flagiq.core.modes import GameMode
from flagiq.core.progress import PlayerProgress, ProgressRecord

logger = logging.getLogger(__name__)

HINTS_V1 = 1  # {"Remove Two": n, "InstantCorrect": n, "Extra Time": n}
HINTS_V2 = 2  # {"remove2": n, "autoPass": n, "pause": n}

LEGACY_HINT_KEYS = {
    "Remove Two": HintKind.REMOVE2,
    "InstantCorrect": HintKind.AUTO_PASS,
    "Extra Time": HintKind.PAUSE,
}

# anything above this is a millisecond timestamp
_MS_THRESHOLD = 1e11


def _parse_json(raw: Any) -> Any:
    if isinstance(raw, (str, bytes)):
        try:
            return json.loads(raw)
        except ValueError:
            logger.debug("Ignoring unparseable record: %r", raw[:80])
            return None
    return raw


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return int(number)


# -- progress ---------------------------------------------------------------


def _load_stars(raw: Any) -> Dict[int, int]:
    stars: Dict[int, int] = {}
    if not isinstance(raw, dict):
        return stars
    for key, value in raw.items():
        level = _as_int(key)
        count = _as_int(value)
        if level is None or level <= 0 or count is None:
            continue
        stars[level] = max(0, min(3, count))
    return stars


def _load_record(raw: Any) -> ProgressRecord:
    if not isinstance(raw, dict):
        return ProgressRecord()
    unlocked = _as_int(raw.get("unlockedUntil"))
    return ProgressRecord(
        stars_by_level=_load_stars(raw.get("starsByLevel")),
        unlocked_until=unlocked if unlocked is not None and unlocked >= 0 else BATCH,
    )


def load_progress(raw: Any) -> PlayerProgress:
    """Read a progress document (dict or JSON string) keyed by mode."""
    parsed = _parse_json(raw)
    if not isinstance(parsed, dict):
        return PlayerProgress()

    classic = ProgressRecord()
    timetrial = ProgressRecord()
    packs: Dict[str, Dict[int, int]] = {}
    for raw_mode, value in parsed.items():
        try:
            mode = GameMode.parse(raw_mode)
        except ValueError:
            logger.debug("Skipping unknown progress mode %r", raw_mode)
            continue
        if not isinstance(value, dict):
            continue
        if mode is GameMode.CLASSIC:
            classic = _load_record(value)
        elif mode is GameMode.TIME_TRIAL:
            timetrial = _load_record(value)
        elif mode is GameMode.LOCAL:
            for pack_id, pack in (value.get("packs") or {}).items():
                if isinstance(pack, dict):
                    packs[str(pack_id)] = _load_stars(pack.get("starsByLevel"))
        else:
            raise AssertionError(mode)
    return PlayerProgress(classic=classic, timetrial=timetrial, local_packs=packs)


# -- hints ------------------------------------------------------------------


def detect_hints_version(raw: Dict[str, Any]) -> int:
    """Any legacy key marks the record as v1, even next to current keys."""
    if any(key in raw for key in LEGACY_HINT_KEYS):
        return HINTS_V1
    return HINTS_V2


def migrate_hints_v1(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Rename legacy hint keys; other keys are kept as they are."""
    migrated: Dict[str, Any] = {}
    for key, value in raw.items():
        kind = LEGACY_HINT_KEYS.get(key)
        if kind is None:
            migrated.setdefault(key, value)
        else:
            migrated[kind.value] = value
    return migrated


def load_hints(raw: Any) -> Tuple[HintInventory, int]:
    """Return the hint inventory in the current shape and the version read."""
    parsed = _parse_json(raw)
    if not isinstance(parsed, dict):
        return DEFAULT_HINTS, HINTS_V2

    # the remote record nests hints inside an inventory document
    if isinstance(parsed.get("hints"), dict):
        legacy = {k: v for k, v in parsed.items() if k in LEGACY_HINT_KEYS}
        parsed = {**parsed["hints"], **legacy}

    version = detect_hints_version(parsed)
    if version == HINTS_V1:
        parsed = migrate_hints_v1(parsed)

    counts = {}
    for kind, default in (
        (HintKind.REMOVE2, DEFAULT_HINTS.remove2),
        (HintKind.AUTO_PASS, DEFAULT_HINTS.auto_pass),
        (HintKind.PAUSE, DEFAULT_HINTS.pause),
    ):
        value = _as_int(parsed.get(kind.value))
        counts[kind] = default if value is None else max(0, value)
    return (
        HintInventory(
            remove2=counts[HintKind.REMOVE2],
            auto_pass=counts[HintKind.AUTO_PASS],
            pause=counts[HintKind.PAUSE],
        ),
        version,
    )


# -- hearts -----------------------------------------------------------------


def parse_timestamp(value: Any) -> Optional[float]:
    """Unix seconds from seconds, milliseconds or an ISO-8601 string."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        try:
            number = float(text)
        except ValueError:
            try:
                parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            except ValueError:
                return None
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed.timestamp()
    if not math.isfinite(number):
        return None
    return number / 1000.0 if number > _MS_THRESHOLD else number


def format_timestamp(value: Optional[float]) -> Optional[str]:
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc).isoformat()


def _first(raw: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def load_hearts(raw: Any) -> HeartsState:
    parsed = _parse_json(raw)
    base = parsed if isinstance(parsed, dict) else {}

    max_hearts = _as_int(_first(base, "max", "hearts_max", "maxHearts", "countMax"))
    if max_hearts is None or max_hearts <= 0:
        max_hearts = MAX_HEARTS

    current = _as_int(_first(base, "current", "hearts_current", "count", "hearts"))
    if current is None:
        current = max_hearts
    current = max(0, min(max_hearts, current))

    last = parse_timestamp(_first(base, "lastRegenAt", "hearts_last_regen_at", "lastTick"))
    return HeartsState(current=current, max=max_hearts, last_regen_at=last)


def dump_hearts(state: HeartsState) -> Dict[str, Any]:
    """Wire shape shared by the local cache and the remote record."""
    return {
        "hearts_current": state.current,
        "hearts_max": state.max,
        "hearts_last_regen_at": format_timestamp(state.last_regen_at),
    }
