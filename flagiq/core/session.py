from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from flagiq.core.inventory import HintKind
from flagiq.core.levels import LevelDefinition
from flagiq.core.modes import GameMode, clamp
from flagiq.core.questions import Question, build_questions

logger = logging.getLogger(__name__)

MAX_MISTAKES = 3
TIMED_MS_PER_QUESTION = 10_000
TICK_MS = 120
MAX_POINTS_PER_QUESTION = 1000
PAUSE_HINT_MS = 1500
WRONG_ANSWER_LOCK_MS = 120
CORRECT_ANSWER_LOCK_MS = 150
FIRST_CLEAR_REWARD = 100
REMOVE2_COUNT = 2


class RunOutcome(Enum):
    PLAYING = "playing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class AnswerResult:
    """Result of a single answer submission."""

    correct: bool
    outcome: RunOutcome
    points: int = 0
    stars: int = 0
    lock_ms: int = 0


class RunSession:
    """One play-through of a level, from entry to completion, failure or exit.

    Rules:
      * Three wrong answers fail the run.
      * In time trial each question has a 10 s countdown; a correct answer
        scores ``floor(remaining / 10 s * 1000)`` points and running out of
        time fails the run.
      * A failed or abandoned run costs exactly one heart, whatever happens.
      * The first run of a level that earns any stars pays a 100 coin reward.

    Side effects (hearts, coins, result submission) are not performed here.
    They are queued and handed out once through the ``take_*`` methods so the
    caller can persist them.
    """

    def __init__(
        self,
        level: LevelDefinition,
        mode: GameMode,
        stored_stars: int = 0,
        rng: Optional[random.Random] = None,
        question_count: Optional[int] = None,
    ) -> None:
        self._level = level
        self._mode = GameMode.parse(mode)
        self._rng = rng or random.Random()
        self._question_count = question_count
        self._stored_stars = max(0, int(stored_stars))
        # pending side effects survive reset() until taken
        self._pending_life_loss = False
        self._pending_coins = 0
        self._pending_result: Optional[int] = None
        self._start_run()

    def _start_run(self) -> None:
        self._questions: List[Question] = build_questions(self._level, self._question_count, self._rng)
        self._index = 0
        self._mistakes = 0
        self._outcome = RunOutcome.PLAYING
        self._stars = 0
        self._score = 0
        self._remaining_ms = TIMED_MS_PER_QUESTION
        self._paused = False
        self._pause_left_ms = 0
        self._selected: Optional[str] = None
        self._wrong_answers: List[str] = []
        self._locked = False
        self._interacted = False
        self._closed = False
        self._life_lost = False
        self._result_queued = False
        if not self._questions:
            logger.warning("Level %s has no questions to play", self._level.id)

    # -- properties ---------------------------------------------------------

    @property
    def level(self) -> LevelDefinition:
        return self._level

    @property
    def level_id(self) -> int:
        return self._level.id

    @property
    def mode(self) -> GameMode:
        return self._mode

    @property
    def questions(self) -> List[Question]:
        return list(self._questions)

    @property
    def index(self) -> int:
        """Index of the current question (0-based)."""
        return self._index

    @property
    def total_questions(self) -> int:
        return len(self._questions)

    @property
    def mistakes(self) -> int:
        return self._mistakes

    @property
    def outcome(self) -> RunOutcome:
        return self._outcome

    @property
    def stars(self) -> int:
        """Stars earned by this run (0 until completed)."""
        return self._stars

    @property
    def stored_stars(self) -> int:
        """Best-ever stars for this level before the current run."""
        return self._stored_stars

    @property
    def best_stars(self) -> int:
        return max(self._stored_stars, self._stars)

    @property
    def score(self) -> int:
        return self._score

    @property
    def remaining_ms(self) -> int:
        return self._remaining_ms

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def pause_left_ms(self) -> int:
        """How much longer the countdown stays held by the pause hint."""
        return self._pause_left_ms if self._paused else 0

    @property
    def input_locked(self) -> bool:
        return self._locked

    @property
    def selected_answer(self) -> Optional[str]:
        return self._selected

    @property
    def wrong_answers(self) -> List[str]:
        """Options greyed out on the current question."""
        return list(self._wrong_answers)

    @property
    def started(self) -> bool:
        return (
            self._index > 0
            or self._mistakes > 0
            or self._selected is not None
            or bool(self._wrong_answers)
            or self._interacted
        )

    @property
    def closed(self) -> bool:
        return self._closed

    def is_playing(self) -> bool:
        return self._outcome is RunOutcome.PLAYING and not self._closed

    def timer_running(self) -> bool:
        """True while the time trial countdown should be ticking."""
        return self._mode.is_timed and self.is_playing() and not self._paused

    def current_question(self) -> Optional[Question]:
        if self._index >= len(self._questions):
            return None
        return self._questions[self._index]

    def progress_fraction(self) -> float:
        """Fill of the top progress bar: questions done, or time used in time trial."""
        if self._mode.is_timed:
            return clamp_fraction(1 - self._remaining_ms / TIMED_MS_PER_QUESTION)
        if self._outcome is RunOutcome.COMPLETED:
            return 1.0
        if not self._questions:
            return 0.0
        return self._index / len(self._questions)

    # -- answering ----------------------------------------------------------

    def submit_answer(self, answer: str, from_hint: bool = False) -> Optional[AnswerResult]:
        """Answer the current question. Returns None when input is not accepted."""
        question = self.current_question()
        if question is None or not self.is_playing():
            return None
        if self._locked and not from_hint:
            return None
        if answer not in question.options:
            raise ValueError(f"{answer!r} is not an option for the current question")
        if answer in self._wrong_answers:
            return None

        self._selected = answer
        self._interacted = True

        if question.is_correct(answer):
            return self._on_correct()
        return self._on_wrong(answer)

    def _on_correct(self) -> AnswerResult:
        points = 0
        if self._mode.is_timed:
            points = self._remaining_ms * MAX_POINTS_PER_QUESTION // TIMED_MS_PER_QUESTION
            self._score += points

        if self._index + 1 >= len(self._questions):
            self._complete()
            return AnswerResult(True, self._outcome, points=points, stars=self._stars)

        self._index += 1
        self._remaining_ms = TIMED_MS_PER_QUESTION
        self._wrong_answers = []
        self._locked = True
        return AnswerResult(True, self._outcome, points=points, lock_ms=CORRECT_ANSWER_LOCK_MS)

    def _on_wrong(self, answer: str) -> AnswerResult:
        self._mistakes += 1
        self._wrong_answers.append(answer)
        if self._mistakes >= MAX_MISTAKES:
            self._fail()
            return AnswerResult(False, self._outcome)
        self._locked = True
        return AnswerResult(False, self._outcome, lock_ms=WRONG_ANSWER_LOCK_MS)

    def release_input(self) -> None:
        """End the post-answer highlight and accept input again."""
        self._locked = False
        if self.is_playing():
            self._selected = None

    # -- countdown ----------------------------------------------------------

    def tick(self, elapsed_ms: int = TICK_MS) -> bool:
        """Advance the time trial countdown. Returns True if the run timed out.

        While paused, elapsed time first uses up the pause window; whatever
        is left over once it runs out goes to the countdown.
        """
        if not (self._mode.is_timed and self.is_playing()):
            return False
        if self._paused:
            self._pause_left_ms -= elapsed_ms
            if self._pause_left_ms > 0:
                return False
            elapsed_ms = -self._pause_left_ms
            self.resume()
        self._remaining_ms -= elapsed_ms
        if self._remaining_ms > 0:
            return False
        self._remaining_ms = 0
        self._mistakes = clamp(self._mistakes + 1, 0, MAX_MISTAKES)
        logger.debug("Level %s timed out on question %d", self.level_id, self._index + 1)
        self._fail()
        return True

    def pause(self) -> bool:
        """Hold the countdown for PAUSE_HINT_MS of ticks."""
        if not self.timer_running():
            return False
        self._paused = True
        self._pause_left_ms = PAUSE_HINT_MS
        return True

    def resume(self) -> None:
        self._paused = False
        self._pause_left_ms = 0

    # -- hints --------------------------------------------------------------

    def can_use_hint(self, kind: HintKind) -> bool:
        question = self.current_question()
        if question is None or not self.is_playing():
            return False
        if kind is HintKind.REMOVE2:
            return bool(self._removable_options(question))
        if kind is HintKind.AUTO_PASS:
            return True
        if kind is HintKind.PAUSE:
            return self.timer_running()
        raise AssertionError(kind)

    def apply_remove2(self) -> List[str]:
        """Grey out up to two wrong options. Returns the options removed."""
        question = self.current_question()
        if question is None or not self.is_playing():
            return []
        removed = self._removable_options(question)[:REMOVE2_COUNT]
        self._wrong_answers.extend(removed)
        if removed:
            self._interacted = True
        return removed

    def apply_auto_pass(self) -> Optional[AnswerResult]:
        question = self.current_question()
        if question is None:
            return None
        return self.submit_answer(question.answer, from_hint=True)

    def apply_pause(self) -> bool:
        if self.pause():
            self._interacted = True
            return True
        return False

    def _removable_options(self, question: Question) -> List[str]:
        return [o for o in question.options if o != question.answer and o not in self._wrong_answers]

    # -- terminal transitions -----------------------------------------------

    def _complete(self) -> None:
        self._outcome = RunOutcome.COMPLETED
        self._stars = self._mode.stars_for(self._mistakes, self._score)
        self._locked = False
        self._paused = False
        if self._mode.awards_coins and self._stored_stars == 0 and self._stars > 0:
            self._pending_coins += FIRST_CLEAR_REWARD
        self._queue_timed_result(self._score)
        logger.info(
            "Level %s (%s) completed: %d stars, %d mistakes, score %d",
            self.level_id, self._mode.value, self._stars, self._mistakes, self._score,
        )

    def _fail(self) -> None:
        self._outcome = RunOutcome.FAILED
        self._locked = False
        self._paused = False
        self.lose_life_once()
        self._queue_timed_result(0)
        logger.info("Level %s (%s) failed", self.level_id, self._mode.value)

    def _queue_timed_result(self, score: int) -> None:
        if not self._mode.is_timed or self._result_queued:
            return
        self._result_queued = True
        self._pending_result = score

    def lose_life_once(self) -> bool:
        """Queue one heart loss for this run. Later calls do nothing."""
        if self._life_lost:
            return False
        self._life_lost = True
        self._pending_life_loss = True
        return True

    def abandon(self) -> bool:
        """Tear the run down. Returns True if this costs a heart."""
        if self._closed:
            return False
        was_playing = self._outcome is RunOutcome.PLAYING
        self._closed = True
        self._paused = False
        if not (was_playing and self.started):
            return False
        self._queue_timed_result(0)
        lost = self.lose_life_once()
        if lost:
            logger.info("Level %s abandoned mid-run", self.level_id)
        return lost

    def reset(self) -> None:
        """Start the level over with fresh questions (retry)."""
        if self.is_playing():
            self.abandon()
        self._stored_stars = self.best_stars
        self._start_run()

    # -- side effects -------------------------------------------------------

    def take_life_loss(self) -> bool:
        lost, self._pending_life_loss = self._pending_life_loss, False
        return lost

    def take_coin_reward(self) -> int:
        coins, self._pending_coins = self._pending_coins, 0
        return coins

    def take_timed_result(self) -> Optional[int]:
        """Score to submit for this time trial run, handed out once."""
        result, self._pending_result = self._pending_result, None
        return result


def clamp_fraction(value: float) -> float:
    return max(0.0, min(1.0, value))
