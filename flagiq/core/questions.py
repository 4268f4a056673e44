from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import List, Optional, Tuple

from flagiq.core.catalog import Flag
from flagiq.core.levels import LevelDefinition

OPTION_COUNT = 4
DISTRACTOR_COUNT = OPTION_COUNT - 1
TOP_SIMILAR = 8


@dataclass(frozen=True)
class Question:
    correct: Flag
    options: Tuple[str, ...]

    @property
    def answer(self) -> str:
        return self.correct.name

    def is_correct(self, option: str) -> bool:
        return option == self.correct.name


def color_overlap_score(a: Flag, b: Flag) -> int:
    if not a.colors or not b.colors:
        return 0
    shared = len(a.colors & b.colors)
    if shared >= 2:
        return 3
    if shared == 1:
        return 1
    return 0


def flag_similarity(a: Optional[Flag], b: Optional[Flag]) -> float:
    """How plausible ``b`` is as a wrong answer for ``a``. Same flag is -inf."""
    if a is None or b is None or a.code == b.code:
        return -math.inf

    score = 0.0
    if a.region and b.region and a.region == b.region:
        score += 2
    score += color_overlap_score(a, b)
    if abs(a.difficulty - b.difficulty) <= 1:
        score += 1
    return score


def pick_distractors(correct: Flag, others: List[Flag], rng: random.Random) -> List[Flag]:
    scored = sorted(others, key=lambda f: flag_similarity(correct, f), reverse=True)
    similar = [f for f in scored if flag_similarity(correct, f) > 0]

    if len(similar) >= DISTRACTOR_COUNT:
        top = similar[:TOP_SIMILAR]
        rng.shuffle(top)
        return top[:DISTRACTOR_COUNT]

    taken = {f.code for f in similar}
    remaining = [f for f in others if f.code not in taken]
    rng.shuffle(remaining)
    return (similar + remaining)[:DISTRACTOR_COUNT]


def build_question(correct: Flag, others: List[Flag], rng: random.Random) -> Question:
    wrongs = pick_distractors(correct, others, rng)

    names: List[str] = []
    seen = set()
    for name in [correct.name] + [w.name for w in wrongs]:
        if name not in seen:
            seen.add(name)
            names.append(name)

    # duplicates were dropped; top up from the rest of the pool
    for extra in others:
        if len(names) >= OPTION_COUNT:
            break
        if extra.name not in seen:
            seen.add(extra.name)
            names.append(extra.name)

    rng.shuffle(names)
    return Question(correct=correct, options=tuple(names))


def build_questions(
    level: Optional[LevelDefinition],
    count: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> List[Question]:
    """Build ``count`` multiple-choice questions from the level's pool.

    Correct flags cycle through a shuffled copy of the pool so every member
    shows up about equally often across a run.
    """
    if level is None or not level.pool:
        return []
    rng = rng or random.Random()
    count = level.question_count if count is None else count

    pool = list(level.pool)
    rng.shuffle(pool)

    questions: List[Question] = []
    for i in range(count):
        correct = pool[i % len(pool)]
        others = [f for f in pool if f.code != correct.code]
        questions.append(build_question(correct, others, rng))
    return questions
