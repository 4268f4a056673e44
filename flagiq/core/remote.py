"""Remote per-user record: the async interface the game consumes, plus an
in-memory backend used offline and in tests."""

from __future__ import annotations

import copy
import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Tuple

from flagiq.core.inventory import DEFAULT_HINTS
from flagiq.core.schema import format_timestamp, load_progress

logger = logging.getLogger(__name__)

# columns a plain patch may never overwrite
PROTECTED_FIELDS = ("progress", "user_id")


class RemoteStoreError(Exception):
    """The remote record could not be read or written."""


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    name: str
    score: int
    user_id: Optional[str]


class RemoteStore(Protocol):
    async def ensure(self, user_id: str) -> None: ...

    async def read(self, user_id: str) -> Dict[str, Any]: ...

    async def patch(self, user_id: str, fields: Dict[str, Any]) -> Dict[str, Any]: ...

    async def replace_progress(self, user_id: str, progress: Dict[str, Any]) -> Dict[str, Any]: ...


class ResultsStore(Protocol):
    async def submit_time_trial_result(self, user_id: str, level_id: int, score: int) -> None: ...

    async def fetch_leaderboard(self, limit: int = 100) -> List[LeaderboardEntry]: ...


class PurchaseLog(Protocol):
    async def log_purchase(
        self,
        user_id: str,
        product_id: str,
        coins_granted: int,
        hearts_refill: bool,
        platform: str,
    ) -> None: ...


class PlayerBackend(RemoteStore, ResultsStore, Protocol):
    """One backend serving the player record and the time trial results."""


def safe_patch(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in fields.items() if k not in PROTECTED_FIELDS}


def default_record(user_id: str) -> Dict[str, Any]:
    return {
        "user_id": user_id,
        "coins": 0,
        "progress": load_progress(None).to_dict(),
        "preferred_language": None,
        "last_spin_at": None,
        "inventory": {"hints": DEFAULT_HINTS.to_dict()},
        "hearts_current": None,
        "hearts_max": None,
        "hearts_last_regen_at": None,
    }


class InMemoryRemoteStore:
    """Dict-backed implementation of RemoteStore, ResultsStore and PurchaseLog.

    Set ``online = False`` to make every call fail the way a dropped network
    connection would.
    """

    def __init__(self, clock=time.time) -> None:
        self._clock = clock
        self._records: Dict[str, Dict[str, Any]] = {}
        self._scores: Dict[Tuple[str, int], Dict[str, Any]] = {}
        self.purchases: List[Dict[str, Any]] = []
        self.online = True
        self.calls: List[str] = []

    def _check(self, op: str) -> None:
        self.calls.append(op)
        if not self.online:
            raise RemoteStoreError(f"{op}: remote store unavailable")

    def _now(self) -> Optional[str]:
        return format_timestamp(self._clock())

    def _record(self, user_id: str) -> Dict[str, Any]:
        record = self._records.get(user_id)
        if record is None:
            raise RemoteStoreError(f"No player state for user {user_id!r}")
        return record

    async def ensure(self, user_id: str) -> None:
        self._check("ensure")
        if user_id not in self._records:
            record = default_record(user_id)
            record["updated_at"] = self._now()
            self._records[user_id] = record
            logger.debug("Created player record for %s", user_id)

    async def read(self, user_id: str) -> Dict[str, Any]:
        self._check("read")
        record = copy.deepcopy(self._record(user_id))
        record["progress"] = load_progress(record.get("progress")).to_dict()
        return record

    async def patch(self, user_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        self._check("patch")
        record = self._record(user_id)
        record.update(copy.deepcopy(safe_patch(fields)))
        record["updated_at"] = self._now()
        return copy.deepcopy(record)

    async def replace_progress(self, user_id: str, progress: Dict[str, Any]) -> Dict[str, Any]:
        self._check("replace_progress")
        record = self._record(user_id)
        record["progress"] = load_progress(progress).to_dict()
        record["updated_at"] = self._now()
        return copy.deepcopy(record)

    async def submit_time_trial_result(self, user_id: str, level_id: int, score: int) -> None:
        self._check("submit_time_trial_result")
        if not math.isfinite(float(level_id)) or not math.isfinite(float(score)):
            raise ValueError(f"Invalid time trial payload: level={level_id!r} score={score!r}")
        key = (user_id, int(level_id))
        now = self._now()
        row = self._scores.get(key)
        if row is None:
            row = {"best_score": 0, "plays_count": 0, "created_at": now}
            self._scores[key] = row
        row["best_score"] = max(int(row["best_score"]), int(score))
        row["plays_count"] = int(row["plays_count"]) + 1
        row["updated_at"] = now

    def score_row(self, user_id: str, level_id: int) -> Optional[Dict[str, Any]]:
        row = self._scores.get((user_id, level_id))
        return dict(row) if row is not None else None

    async def fetch_leaderboard(self, limit: int = 100) -> List[LeaderboardEntry]:
        self._check("fetch_leaderboard")
        totals: Dict[str, int] = {}
        for (user_id, _level_id), row in self._scores.items():
            totals[user_id] = totals.get(user_id, 0) + int(row["best_score"])
        ranked = sorted(totals.items(), key=lambda item: (-item[1], item[0]))[:limit]
        entries = []
        for index, (user_id, total) in enumerate(ranked):
            record = self._records.get(user_id, {})
            name = record.get("display_name") or record.get("username") or "Anonymous"
            entries.append(LeaderboardEntry(rank=index + 1, name=name, score=total, user_id=user_id))
        return entries

    async def log_purchase(
        self,
        user_id: str,
        product_id: str,
        coins_granted: int,
        hearts_refill: bool,
        platform: str,
    ) -> None:
        self._check("log_purchase")
        self.purchases.append(
            {
                "user_id": user_id,
                "product_id": product_id,
                "coins_granted": int(coins_granted),
                "hearts_refill": bool(hearts_refill),
                "platform": platform,
                "created_at": self._now(),
            }
        )
