"""Qt driver for a run: the time trial countdown and the post-answer input lock."""

from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import QObject, QTimer, Signal

from flagiq.core.game import HintOutcome
from flagiq.core.inventory import HintKind
from flagiq.core.session import TICK_MS, AnswerResult, RunSession

logger = logging.getLogger(__name__)


class RunController(QObject):
    """Owns the timers of one RunSession.

    The countdown timer runs only while the session is playing and not
    paused. Every timer is stopped as soon as the run ends or the
    controller is torn down, so nothing touches the session afterwards.
    """

    time_changed = Signal(int)
    question_changed = Signal(int)
    answered = Signal(bool)
    finished = Signal(str)

    def __init__(self, session: RunSession, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._session = session
        self._done = False

        self._tick_timer = QTimer(self)
        self._tick_timer.setInterval(TICK_MS)
        self._tick_timer.timeout.connect(self.tick)

        self._lock_timer = QTimer(self)
        self._lock_timer.setSingleShot(True)
        self._lock_timer.timeout.connect(self.release_input)

        self._pause_timer = QTimer(self)
        self._pause_timer.setSingleShot(True)
        self._pause_timer.timeout.connect(self.resume)

    @property
    def session(self) -> RunSession:
        return self._session

    def is_ticking(self) -> bool:
        return self._tick_timer.isActive()

    def is_input_locked(self) -> bool:
        return self._lock_timer.isActive()

    def is_paused(self) -> bool:
        return self._pause_timer.isActive()

    def start(self) -> None:
        self._done = False
        self.question_changed.emit(self._session.index)
        self._sync_countdown()

    def restart(self) -> None:
        """Pick up a session that was reset for a retry."""
        self._stop_timers()
        self.start()

    def answer(self, option: str) -> Optional[AnswerResult]:
        if self._done:
            return None
        result = self._session.submit_answer(option)
        if result is not None:
            self.handle_result(result)
        return result

    def handle_result(self, result: AnswerResult) -> None:
        """React to an accepted answer, typed or applied by the auto-pass hint."""
        self.answered.emit(result.correct)
        if not self._session.is_playing():
            self._finish()
            return
        if result.lock_ms:
            self._lock_timer.start(result.lock_ms)
        if result.correct:
            self.question_changed.emit(self._session.index)
            self.time_changed.emit(self._session.remaining_ms)

    def handle_hint(self, outcome: Optional[HintOutcome]) -> None:
        """Pick up a hint the game service has just applied to the session."""
        if outcome is None or self._done:
            return
        if outcome.answer is not None:
            self.handle_result(outcome.answer)
        elif outcome.kind is HintKind.PAUSE:
            self.start_pause_window()

    def release_input(self) -> None:
        self._session.release_input()

    def tick(self) -> None:
        if self._done:
            return
        timed_out = self._session.tick(TICK_MS)
        self.time_changed.emit(self._session.remaining_ms)
        if timed_out:
            self._finish()

    def start_pause_window(self) -> None:
        """Hold the countdown after the pause hint has been applied to the session."""
        if self._done or not self._session.paused:
            return
        self._tick_timer.stop()
        self._pause_timer.start(self._session.pause_left_ms)

    def resume(self) -> None:
        self._session.resume()
        self._sync_countdown()

    def teardown(self) -> bool:
        """Stop every timer and abandon the run. Returns True if a heart is lost."""
        self._stop_timers()
        self._done = True
        return self._session.abandon()

    def _sync_countdown(self) -> None:
        if self._session.timer_running():
            if not self._tick_timer.isActive():
                self._tick_timer.start()
        else:
            self._tick_timer.stop()

    def _stop_timers(self) -> None:
        self._tick_timer.stop()
        self._lock_timer.stop()
        self._pause_timer.stop()

    def _finish(self) -> None:
        self._stop_timers()
        self._done = True
        logger.debug("Run on level %s ended: %s", self._session.level_id, self._session.outcome.value)
        self.finished.emit(self._session.outcome.value)
