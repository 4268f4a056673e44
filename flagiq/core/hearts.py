"""Hearts (lives) and their lazy regeneration.

Nothing ticks in the background: every read recomputes how many hearts have
come back since ``last_regen_at``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

MAX_HEARTS = 5
REGEN_SECONDS = 10 * 60


@dataclass(frozen=True)
class HeartsState:
    current: int = MAX_HEARTS
    max: int = MAX_HEARTS
    last_regen_at: Optional[float] = None
    next_refresh_at: Optional[float] = None

    @property
    def full(self) -> bool:
        return self.current >= self.max

    def seconds_until_next(self, now: float) -> Optional[float]:
        if self.full or self.next_refresh_at is None:
            return None
        return max(0.0, self.next_refresh_at - now)


@dataclass(frozen=True)
class RegenResult:
    state: HeartsState
    added: int


def apply_regen(state: HeartsState, now: float) -> RegenResult:
    """Return ``state`` with every heart earned up to ``now`` added back."""
    if state.full:
        return RegenResult(replace(state, current=state.max, last_regen_at=None, next_refresh_at=None), 0)
    if state.last_regen_at is None:
        return RegenResult(replace(state, next_refresh_at=None), 0)

    elapsed = max(0.0, now - state.last_regen_at)
    add = int(elapsed // REGEN_SECONDS)

    if add <= 0:
        remainder = REGEN_SECONDS - (elapsed % REGEN_SECONDS) or REGEN_SECONDS
        return RegenResult(replace(state, next_refresh_at=now + remainder), 0)

    current = min(state.max, state.current + add)
    if current >= state.max:
        return RegenResult(HeartsState(current=current, max=state.max), current - state.current)

    last = state.last_regen_at + add * REGEN_SECONDS
    return RegenResult(
        HeartsState(current=current, max=state.max, last_regen_at=last, next_refresh_at=last + REGEN_SECONDS),
        current - state.current,
    )


def lose_heart(state: HeartsState, now: float) -> HeartsState:
    """One heart gone; the regen clock starts if it was not already running."""
    current = max(0, state.current - 1)
    if current < state.max and state.last_regen_at is None:
        return replace(state, current=current, last_regen_at=now, next_refresh_at=now + REGEN_SECONDS)
    return replace(state, current=current)


def add_heart(state: HeartsState) -> HeartsState:
    current = min(state.max, state.current + 1)
    if current >= state.max:
        return replace(state, current=current, last_regen_at=None, next_refresh_at=None)
    return replace(state, current=current)


def refill(state: HeartsState) -> HeartsState:
    return HeartsState(current=state.max, max=state.max)


def merge_hearts(a: HeartsState, b: HeartsState) -> HeartsState:
    """Keep whichever side has more hearts; ties keep the older regen clock."""
    if a.current != b.current:
        return a if a.current > b.current else b
    if a.last_regen_at is None:
        return b if b.last_regen_at is not None and not a.full else a
    if b.last_regen_at is None:
        return a
    return a if a.last_regen_at <= b.last_regen_at else b
