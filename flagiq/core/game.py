from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from flagiq.core.catalog import FlagCatalog
from flagiq.core.inventory import HintKind
from flagiq.core.levels import LevelBook, LevelDefinition, build_levels
from flagiq.core.local_packs import LocalPack, LocalPackRepository, build_pack_levels
from flagiq.core.modes import GameMode
from flagiq.core.progress import StarsNeeded, stars_needed_for_level_id
from flagiq.core.reconciler import PlayerStateReconciler
from flagiq.core.remote import LeaderboardEntry, RemoteStoreError, ResultsStore
from flagiq.core.session import AnswerResult, RunOutcome, RunSession

logger = logging.getLogger(__name__)


@dataclass
class SettleReport:
    """What a finished (or abandoned) run changed in the player's state."""

    heart_lost: bool = False
    coins_awarded: int = 0
    stars_recorded: int = 0
    result_submitted: Optional[int] = None


@dataclass
class HintOutcome:
    """A hint that was spent and applied to the current question."""

    kind: HintKind
    removed: List[str] = field(default_factory=list)
    answer: Optional[AnswerResult] = None


class GameService:
    """Per-identity entry point that wires runs to persistence.

    One run at a time. The RunSession only queues its side effects; they
    are applied here, in :meth:`settle`, once the run has ended.
    """

    def __init__(
        self,
        reconciler: PlayerStateReconciler,
        catalog: FlagCatalog,
        local_packs: Optional[LocalPackRepository] = None,
        results: Optional[ResultsStore] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._reconciler = reconciler
        self._catalog = catalog
        self._rng = rng or random.Random()
        self._levels = LevelBook(build_levels(catalog.all(), self._rng))
        self._local_packs = local_packs
        self._pack_levels: Dict[str, LevelBook] = {}
        self._results = results
        self._session: Optional[RunSession] = None
        self._pack_id: Optional[str] = None
        self._settled = True

    @property
    def reconciler(self) -> PlayerStateReconciler:
        return self._reconciler

    @property
    def levels(self) -> LevelBook:
        return self._levels

    @property
    def session(self) -> Optional[RunSession]:
        return self._session

    @property
    def pack_id(self) -> Optional[str]:
        return self._pack_id

    # -- level lookup -------------------------------------------------------

    def local_pack(self, pack_id: str) -> LocalPack:
        if self._local_packs is None:
            raise ValueError("No local packs are configured")
        try:
            return self._local_packs.get(pack_id)
        except KeyError:
            raise ValueError(f"Unknown local pack: {pack_id!r}") from None

    def pack_levels(self, pack_id: str) -> LevelBook:
        book = self._pack_levels.get(pack_id)
        if book is None:
            book = LevelBook(build_pack_levels(self.local_pack(pack_id)))
            self._pack_levels[pack_id] = book
        return book

    def _level_for(self, level_id: int, mode: GameMode, pack_id: Optional[str]) -> LevelDefinition:
        if mode is GameMode.LOCAL:
            if not pack_id:
                raise ValueError("pack_id is required for local pack runs")
            return self.pack_levels(pack_id).get(level_id)
        return self._levels.get(level_id)

    def stored_stars(self, level_id: int, mode: GameMode, pack_id: Optional[str] = None) -> int:
        if mode is GameMode.LOCAL:
            return self._reconciler.progress.pack_stars(pack_id or "").get(level_id, 0)
        return self._reconciler.mode_progress(mode).stars_for(level_id)

    def is_unlocked(self, level_id: int, mode: GameMode, pack_id: Optional[str] = None) -> bool:
        mode = GameMode.parse(mode)
        if not mode.uses_level_unlocks:
            return self.local_pack(pack_id or "").unlocked
        return self._reconciler.mode_progress(mode).is_unlocked(level_id)

    def stars_needed(self, level_id: int, mode: GameMode) -> Optional[StarsNeeded]:
        """Star requirement of a ladder level. None for local packs, which are always open."""
        mode = GameMode.parse(mode)
        if not mode.uses_level_unlocks:
            return None
        record = self._reconciler.mode_progress(mode)
        return stars_needed_for_level_id(level_id, record.stars_by_level)

    # -- runs ---------------------------------------------------------------

    def start_run(self, level_id: int, mode: GameMode, pack_id: Optional[str] = None) -> Optional[RunSession]:
        """Open a run on a level. Returns None when the player may not play it.

        The previous run must be settled (or ended) first so its heart,
        coins, stars and score reach the player's state.
        """
        mode = GameMode.parse(mode)
        if self._session is not None and self._session.is_playing():
            raise RuntimeError("A run is already in progress; end it first")
        if self._session is not None and not self._settled:
            raise RuntimeError("The last run has not been settled yet")
        if self._reconciler.hearts().current <= 0:
            logger.info("No hearts left for %s, not starting level %s", self._reconciler.identity, level_id)
            return None
        if not self.is_unlocked(level_id, mode, pack_id):
            logger.info("Level %s (%s) is locked for %s", level_id, mode.value, self._reconciler.identity)
            return None

        level = self._level_for(level_id, mode, pack_id)
        self._pack_id = pack_id if mode is GameMode.LOCAL else None
        self._session = RunSession(
            level,
            mode,
            stored_stars=self.stored_stars(level.id, mode, pack_id),
            rng=self._rng,
        )
        self._settled = False
        return self._session

    def _require_session(self) -> RunSession:
        if self._session is None:
            raise RuntimeError("No run in progress")
        return self._session

    def submit_answer(self, answer: str) -> Optional[AnswerResult]:
        return self._require_session().submit_answer(answer)

    def tick(self, elapsed_ms: int) -> bool:
        return self._require_session().tick(elapsed_ms)

    async def use_hint(self, kind: HintKind) -> Optional[HintOutcome]:
        """Spend one hint of ``kind`` on the current question.

        Returns None when nothing was spent. An auto-pass outcome carries the
        answer result so the caller can lock input or end the run.
        """
        session = self._require_session()
        if not session.can_use_hint(kind):
            return None
        if not await self._reconciler.consume_hint(kind):
            return None
        outcome = HintOutcome(kind)
        if kind is HintKind.REMOVE2:
            outcome.removed = session.apply_remove2()
        elif kind is HintKind.AUTO_PASS:
            outcome.answer = session.apply_auto_pass()
        elif kind is HintKind.PAUSE:
            session.apply_pause()
        else:
            raise AssertionError(kind)
        return outcome

    async def settle(self) -> SettleReport:
        """Apply whatever the current run has queued: heart, coins, stars, score."""
        session = self._require_session()
        report = SettleReport()

        if session.take_life_loss():
            await self._reconciler.lose_heart()
            report.heart_lost = True

        coins = session.take_coin_reward()
        if coins:
            await self._reconciler.add_coins(coins)
            report.coins_awarded = coins

        if session.outcome is RunOutcome.COMPLETED and session.stars > 0:
            await self._reconciler.record_level_result(
                session.mode, session.level_id, session.stars, pack_id=self._pack_id,
            )
            report.stars_recorded = session.stars

        score = session.take_timed_result()
        if score is not None:
            report.result_submitted = await self._submit_time_trial(session.level_id, score)
        if not session.is_playing():
            self._settled = True
        return report

    async def _submit_time_trial(self, level_id: int, score: int) -> Optional[int]:
        if self._results is None:
            return None
        try:
            await self._results.submit_time_trial_result(self._reconciler.identity, level_id, score)
        except (RemoteStoreError, ValueError) as e:
            logger.warning("Failed to submit time trial result for level %s: %s", level_id, e)
            return None
        return score

    async def end_session(self) -> SettleReport:
        """Leave the game screen: abandon a run still in play, then settle."""
        session = self._require_session()
        session.abandon()
        report = await self.settle()
        self._session = None
        self._pack_id = None
        return report

    async def retry(self) -> Optional[RunSession]:
        """Play the same level again with fresh questions."""
        session = self._require_session()
        if session.is_playing():
            session.abandon()
        await self.settle()
        if self._reconciler.hearts().current <= 0:
            logger.info("No hearts left for %s, retry refused", self._reconciler.identity)
            return None
        session.reset()
        self._settled = False
        return session

    def next_level_id(self) -> Optional[int]:
        """Id of the level after the current one, if it exists and is unlocked."""
        session = self._require_session()
        mode = session.mode
        book = self.pack_levels(self._pack_id or "") if mode is GameMode.LOCAL else self._levels
        next_id = session.level_id + 1
        if next_id > len(book) or not self.is_unlocked(next_id, mode, self._pack_id):
            return None
        return next_id

    async def leaderboard(self, limit: int = 100) -> List[LeaderboardEntry]:
        if self._results is None:
            return []
        try:
            return await self._results.fetch_leaderboard(limit)
        except RemoteStoreError as e:
            logger.warning("Failed to load leaderboard: %s", e)
            return []
