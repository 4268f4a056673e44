from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Optional

from flagiq.core.hearts import (
    HeartsState,
    add_heart,
    apply_regen,
    lose_heart,
    merge_hearts,
    refill,
)
from flagiq.core.inventory import DEFAULT_HINTS, HintInventory, HintKind, clamp_coins
from flagiq.core.modes import GameMode
from flagiq.core.progress import PlayerProgress, ProgressRecord
from flagiq.core.remote import RemoteStore, RemoteStoreError
from flagiq.core.schema import (
    HINTS_V1,
    LEGACY_HINT_KEYS as LEGACY_HINT_NAMES,
    dump_hearts,
    format_timestamp,
    load_hearts,
    load_hints,
    load_progress,
    parse_timestamp,
)
from flagiq.core.storage import LEGACY_HINT_KEYS, LocalCache, user_key

logger = logging.getLogger(__name__)

HEART_COIN_COST = 50


class PlayerStateReconciler:
    """Keeps one identity's progress, coins, hints and hearts in step between
    the device cache and the remote record.

    Every merge takes the maximum (stars, unlocks, coins, hints, hearts), so
    replaying a snapshot never changes state and a stale side never drags the
    other one backwards. Remote writes only start after a successful
    :meth:`sync`; before that the remote copy is unknown and overwriting it
    could lose progress. Remote failures are logged and never raised.
    """

    def __init__(
        self,
        identity: str,
        cache: LocalCache,
        remote: Optional[RemoteStore] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not identity:
            raise ValueError("identity must be a non-empty string")
        self._identity = identity
        self._cache = cache
        self._remote = remote
        self._clock = clock
        self._synced = False
        self._remote_inventory: Dict[str, Any] = {}
        self._last_spin_at: Optional[float] = None
        self.load()

    # -- state --------------------------------------------------------------

    @property
    def identity(self) -> str:
        return self._identity

    @property
    def remote(self) -> Optional[RemoteStore]:
        return self._remote

    @property
    def synced(self) -> bool:
        """True once the remote record has been read and merged."""
        return self._synced

    @property
    def progress(self) -> PlayerProgress:
        return self._progress

    def mode_progress(self, mode: GameMode) -> ProgressRecord:
        return self._progress.for_mode(GameMode.parse(mode))

    @property
    def coins(self) -> int:
        return self._coins

    @property
    def hints(self) -> HintInventory:
        return self._hints

    @property
    def language(self) -> Optional[str]:
        return self._language

    @property
    def last_spin_at(self) -> Optional[float]:
        return self._last_spin_at

    def hearts(self, now: Optional[float] = None) -> HeartsState:
        """Current hearts, with any regeneration since the last read applied."""
        now = self._clock() if now is None else now
        result = apply_regen(self._hearts, now)
        changed = dump_hearts(result.state) != dump_hearts(self._hearts)
        self._hearts = result.state
        if changed:
            self._cache.set(self._key("hearts"), dump_hearts(self._hearts))
        return self._hearts

    def _key(self, suffix: str) -> str:
        return user_key(self._identity, suffix)

    # -- local cache --------------------------------------------------------

    def load(self) -> None:
        """(Re)read everything from the local cache, falling back to defaults."""
        self._progress = load_progress(self._cache.get(self._key("progress")))
        self._coins = clamp_coins(self._cache.get(self._key("coins"), 0))
        self._hints = self._load_hints()
        self._hearts = load_hearts(self._cache.get(self._key("hearts")))
        self._language = self._cache.language()

    def _load_hints(self) -> HintInventory:
        key = self._key("hints")
        if key in self._cache:
            hints, version = load_hints(self._cache.get(key))
            if version == HINTS_V1:
                self._cache.set(key, hints.to_dict())
            return hints

        # first run for this identity: pick up hints saved before per-user keys
        for legacy_key in LEGACY_HINT_KEYS:
            raw = self._cache.get(legacy_key)
            if raw is not None:
                hints, _ = load_hints(raw)
                self._cache.set(key, hints.to_dict())
                logger.info("Migrated hints from %s for %s", legacy_key, self._identity)
                return hints
        return DEFAULT_HINTS

    def _store_progress(self, progress: PlayerProgress) -> None:
        self._progress = progress
        self._cache.set(self._key("progress"), progress.to_dict())

    def _store_coins(self, coins: int) -> None:
        self._coins = clamp_coins(coins)
        self._cache.set(self._key("coins"), self._coins)

    def _store_hints(self, hints: HintInventory) -> None:
        self._hints = hints
        self._cache.set(self._key("hints"), hints.to_dict())

    def _store_hearts(self, hearts: HeartsState) -> None:
        self._hearts = hearts
        self._cache.set(self._key("hearts"), dump_hearts(hearts))

    # -- remote -------------------------------------------------------------

    async def sync(self) -> bool:
        """Fold the remote record into local state and push back the merge."""
        if self._remote is None:
            return False
        try:
            await self._remote.ensure(self._identity)
            record = await self._remote.read(self._identity)
        except RemoteStoreError as e:
            logger.warning("Could not load remote state for %s: %s", self._identity, e)
            return False

        remote_progress = load_progress(record.get("progress"))
        progress = self._progress.merged(remote_progress)
        self._store_progress(progress)

        coins = max(self._coins, clamp_coins(record.get("coins")))
        self._store_coins(coins)

        inventory = record.get("inventory")
        hints = self._hints
        if isinstance(inventory, dict):
            self._remote_inventory = {k: v for k, v in inventory.items() if k not in LEGACY_HINT_NAMES}
            if isinstance(inventory.get("hints"), dict) or any(k in inventory for k in LEGACY_HINT_NAMES):
                remote_hints, _ = load_hints(inventory)
                hints = hints.merged(remote_hints)
        self._store_hints(hints)

        now = self._clock()
        local_hearts = apply_regen(self._hearts, now).state
        if record.get("hearts_current") is not None:
            remote_hearts = apply_regen(load_hearts(record), now).state
            self._store_hearts(merge_hearts(local_hearts, remote_hearts))
        else:
            self._store_hearts(local_hearts)

        remote_language = record.get("preferred_language")
        if isinstance(remote_language, str) and remote_language:
            self._language = remote_language
            self._cache.set_language(remote_language)

        self._last_spin_at = parse_timestamp(record.get("last_spin_at"))
        self._synced = True
        logger.info("Synced player state for %s", self._identity)

        if progress.to_dict() != remote_progress.to_dict():
            await self._push_progress()
        patch: Dict[str, Any] = {}
        if coins != clamp_coins(record.get("coins")):
            patch["coins"] = coins
        if self._inventory_payload() != inventory:
            patch["inventory"] = self._inventory_payload()
        hearts_payload = dump_hearts(self._hearts)
        if any(record.get(k) != v for k, v in hearts_payload.items()):
            patch.update(hearts_payload)
        if self._language and self._language != remote_language:
            patch["preferred_language"] = self._language
        if patch:
            await self._push(patch)
        return True

    def _inventory_payload(self) -> Dict[str, Any]:
        return {**self._remote_inventory, "hints": self._hints.to_dict()}

    async def _push(self, fields: Dict[str, Any]) -> bool:
        if self._remote is None or not self._synced:
            return False
        try:
            await self._remote.patch(self._identity, fields)
        except RemoteStoreError as e:
            logger.warning("Remote update of %s failed for %s: %s", sorted(fields), self._identity, e)
            return False
        return True

    async def _push_progress(self) -> bool:
        if self._remote is None or not self._synced:
            return False
        try:
            await self._remote.replace_progress(self._identity, self._progress.to_dict())
        except RemoteStoreError as e:
            logger.warning("Remote progress update failed for %s: %s", self._identity, e)
            return False
        return True

    # -- progress -----------------------------------------------------------

    async def record_level_result(
        self,
        mode: GameMode,
        level_id: int,
        stars: int,
        pack_id: Optional[str] = None,
    ) -> PlayerProgress:
        """Keep the best-ever stars for a level and recompute unlocks."""
        mode = GameMode.parse(mode)
        progress = self._progress.with_level_stars(mode, level_id, stars, pack_id=pack_id)
        if progress != self._progress:
            self._store_progress(progress)
            await self._push_progress()
        return self._progress

    # -- coins --------------------------------------------------------------

    async def add_coins(self, delta: int) -> int:
        """Apply a coin delta to the balance (floored at 0) and persist it."""
        self._store_coins(self._coins + int(delta))
        await self._push({"coins": self._coins})
        return self._coins

    async def spend_coins(self, amount: int) -> bool:
        if amount < 0:
            raise ValueError(f"Cannot spend a negative amount of coins: {amount}")
        if self._coins < amount:
            return False
        await self.add_coins(-amount)
        return True

    # -- hints --------------------------------------------------------------

    async def consume_hint(self, kind: HintKind) -> bool:
        if self._hints.count(kind) <= 0:
            return False
        self._store_hints(self._hints.consumed(kind))
        await self._push({"inventory": self._inventory_payload()})
        return True

    async def add_hints(self, **counts: int) -> HintInventory:
        self._store_hints(self._hints.added(**counts))
        await self._push({"inventory": self._inventory_payload()})
        return self._hints

    # -- hearts -------------------------------------------------------------

    async def lose_heart(self) -> HeartsState:
        now = self._clock()
        self._store_hearts(lose_heart(self.hearts(now), now))
        await self._push(dump_hearts(self._hearts))
        return self._hearts

    async def refill_hearts(self) -> HeartsState:
        self._store_hearts(refill(self.hearts()))
        await self._push(dump_hearts(self._hearts))
        return self._hearts

    async def buy_heart_with_coins(self, cost: int = HEART_COIN_COST) -> bool:
        hearts = self.hearts()
        if hearts.full or self._coins < cost:
            return False
        await self.spend_coins(cost)
        self._store_hearts(add_heart(hearts))
        await self._push(dump_hearts(self._hearts))
        return True

    # -- misc ---------------------------------------------------------------

    async def set_preferred_language(self, code: str) -> str:
        normalized = str(code or "").strip().lower()
        if not normalized:
            raise ValueError("language code must be a non-empty string")
        self._language = normalized
        self._cache.set_language(normalized)
        await self._push({"preferred_language": normalized})
        return normalized

    async def mark_spin_claimed(self, at: float) -> bool:
        """Record a daily spin claim. Requires the remote record."""
        if self._remote is None or not self._synced:
            return False
        if not await self._push({"last_spin_at": format_timestamp(at)}):
            return False
        self._last_spin_at = at
        return True

    async def refresh_last_spin_at(self) -> Optional[float]:
        """Re-read the spin cooldown from the remote record."""
        if self._remote is None:
            raise RemoteStoreError("no remote store configured")
        record = await self._remote.read(self._identity)
        self._last_spin_at = parse_timestamp(record.get("last_spin_at"))
        return self._last_spin_at
