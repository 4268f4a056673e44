from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional

from flagiq.core.reconciler import PlayerStateReconciler
from flagiq.core.remote import PurchaseLog, RemoteStoreError

logger = logging.getLogger(__name__)

DAILY_SPIN_COOLDOWN_SECONDS = 24 * 60 * 60
WEB_PLATFORM = "web"


@dataclass(frozen=True)
class Product:
    """A real-money product: a coin pack or a hearts refill."""

    id: str
    type: str
    label: str
    price_label: str
    coins: int = 0
    hearts_refill: bool = False


SHOP_PRODUCTS: List[Product] = [
    Product("coins_250", "coins", "250 coins", "€0.99", coins=250),
    Product("coins_600", "coins", "600 coins", "€1.99", coins=600),
    Product("coins_1500", "coins", "1,500 coins", "€3.99", coins=1500),
    Product("coins_5000", "coins", "5,000 coins", "€9.99", coins=5000),
    Product("hearts_refill", "hearts", "Refill hearts", "€0.99", hearts_refill=True),
]


def get_product(product_id: str) -> Optional[Product]:
    for product in SHOP_PRODUCTS:
        if product.id == product_id:
            return product
    return None


@dataclass(frozen=True)
class BoosterItem:
    """A hint bundle bought with coins."""

    id: str
    cost: int
    hints: Dict[str, int] = field(default_factory=dict)
    label: str = ""


BOOSTER_ITEMS: List[BoosterItem] = [
    BoosterItem("remove2_1", 80, {"remove2": 1}, "Remove 2 (x1)"),
    BoosterItem("pause_1", 90, {"pause": 1}, "Pause timer (x1)"),
    BoosterItem("autoPass_1", 120, {"autoPass": 1}, "Auto pass (x1)"),
    BoosterItem("bundle_all", 250, {"remove2": 1, "autoPass": 1, "pause": 1}, "Triple pack (1 of each)"),
]


@dataclass
class PurchaseResult:
    success: bool
    error: Optional[str] = None
    coins_granted: int = 0
    hearts_refilled: bool = False


RewardHandler = Callable[[Product], Awaitable[PurchaseResult]]


def reward_handler_for(reconciler: PlayerStateReconciler) -> RewardHandler:
    """Reward handler that credits coins / refills hearts on ``reconciler``."""

    async def apply_reward(product: Product) -> PurchaseResult:
        coins_granted = 0
        if product.coins > 0:
            coins_granted = product.coins
            await reconciler.add_coins(coins_granted)
        if product.hearts_refill:
            await reconciler.refill_hearts()
        return PurchaseResult(True, coins_granted=coins_granted, hearts_refilled=product.hearts_refill)

    return apply_reward


class Store:
    """Purchase entry point. Native payment bridging lives outside this module;
    a purchase here is the part after payment: one reward, one log entry."""

    def __init__(
        self,
        reconciler: PlayerStateReconciler,
        purchase_log: Optional[PurchaseLog] = None,
        platform: str = WEB_PLATFORM,
    ) -> None:
        self._reconciler = reconciler
        self._purchase_log = purchase_log
        self._platform = platform
        self._reward_handler: Optional[RewardHandler] = None

    def register_reward_handler(self, handler: Optional[RewardHandler]) -> None:
        self._reward_handler = handler

    async def purchase(self, product_id: str) -> PurchaseResult:
        product = get_product(product_id)
        if product is None:
            return PurchaseResult(False, error="Unknown product")
        if self._platform != WEB_PLATFORM:
            return PurchaseResult(False, error="Purchases coming soon")
        if self._reward_handler is None:
            return PurchaseResult(False, error="Purchase system not ready")

        result = await self._reward_handler(product)
        if not result.success:
            return PurchaseResult(False, error=result.error or "Purchase failed")

        await self._log(product, result)
        logger.info("Purchased %s for %s", product.id, self._reconciler.identity)
        return PurchaseResult(
            True,
            coins_granted=result.coins_granted,
            hearts_refilled=result.hearts_refilled,
        )

    async def _log(self, product: Product, result: PurchaseResult) -> None:
        if self._purchase_log is None:
            return
        try:
            await self._purchase_log.log_purchase(
                self._reconciler.identity,
                product.id,
                result.coins_granted,
                result.hearts_refilled or product.hearts_refill,
                self._platform,
            )
        except RemoteStoreError as e:
            logger.warning("Failed to persist purchase of %s: %s", product.id, e)

    async def buy_booster(self, item_id: str) -> PurchaseResult:
        item = next((b for b in BOOSTER_ITEMS if b.id == item_id), None)
        if item is None:
            return PurchaseResult(False, error="Unknown booster")
        if not await self._reconciler.spend_coins(item.cost):
            return PurchaseResult(False, error="Not enough coins for that.")
        await self._reconciler.add_hints(**item.hints)
        return PurchaseResult(True)

    async def buy_heart(self) -> PurchaseResult:
        if self._reconciler.hearts().full:
            return PurchaseResult(False, error="Hearts are already full")
        if not await self._reconciler.buy_heart_with_coins():
            return PurchaseResult(False, error="Not enough coins for that.")
        return PurchaseResult(True)


@dataclass(frozen=True)
class SpinReward:
    id: str
    label: str
    weight: int
    hints: Dict[str, int]


SPIN_REWARDS: List[SpinReward] = [
    SpinReward("all", "All 3 hints", 5, {"remove2": 1, "autoPass": 1, "pause": 1}),
    SpinReward("remove2", "Remove 2", 35, {"remove2": 1}),
    SpinReward("autoPass", "Auto pass", 30, {"autoPass": 1}),
    SpinReward("pause", "Pause timer", 30, {"pause": 1}),
]


@dataclass
class SpinResult:
    success: bool
    reward: Optional[SpinReward] = None
    reason: Optional[str] = None
    remaining_seconds: float = 0.0


def remaining_spin_cooldown(last_claimed_at: Optional[float], now: float) -> float:
    if last_claimed_at is None:
        return 0.0
    elapsed = now - last_claimed_at
    if elapsed < 0:
        return float(DAILY_SPIN_COOLDOWN_SECONDS)
    return max(DAILY_SPIN_COOLDOWN_SECONDS - elapsed, 0.0)


class DailySpin:
    """Once every 24 hours, a weighted random hint reward.

    The cooldown lives in the remote record, so claiming needs a connection.
    """

    def __init__(
        self,
        reconciler: PlayerStateReconciler,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._reconciler = reconciler
        self._rng = rng or random.Random()
        self._clock = clock

    def pick_reward(self) -> SpinReward:
        return self._rng.choices(SPIN_REWARDS, weights=[r.weight for r in SPIN_REWARDS], k=1)[0]

    def remaining_seconds(self) -> float:
        return remaining_spin_cooldown(self._reconciler.last_spin_at, self._clock())

    async def claim(self) -> SpinResult:
        if not self._reconciler.synced:
            return SpinResult(False, reason="offline")
        try:
            last = await self._reconciler.refresh_last_spin_at()
        except RemoteStoreError as e:
            logger.error("Failed to read daily spin cooldown: %s", e)
            return SpinResult(False, reason="error")

        now = self._clock()
        remaining = remaining_spin_cooldown(last, now)
        if remaining > 0:
            return SpinResult(False, reason="cooldown", remaining_seconds=remaining)

        if not await self._reconciler.mark_spin_claimed(now):
            return SpinResult(False, reason="error")

        reward = self.pick_reward()
        await self._reconciler.add_hints(**reward.hints)
        logger.info("Daily spin for %s: %s", self._reconciler.identity, reward.id)
        return SpinResult(True, reward=reward)
