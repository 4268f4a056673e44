from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict


class HintKind(Enum):
    REMOVE2 = "remove2"
    AUTO_PASS = "autoPass"
    PAUSE = "pause"


@dataclass(frozen=True)
class HintInventory:
    """Booster counts. Never negative."""

    remove2: int = 3
    auto_pass: int = 1
    pause: int = 2

    def count(self, kind: HintKind) -> int:
        return getattr(self, _FIELDS[kind])

    def consumed(self, kind: HintKind) -> "HintInventory":
        """Return a copy with one ``kind`` used, floored at zero."""
        return replace(self, **{_FIELDS[kind]: max(0, self.count(kind) - 1)})

    def added(self, **counts: int) -> "HintInventory":
        """Return a copy with ``counts`` (wire names or field names) added."""
        changes = {}
        for key, amount in counts.items():
            field_name = _field_for(key)
            if amount < 0:
                raise ValueError(f"Hint amount must be >= 0, got {amount} for {key}")
            changes[field_name] = getattr(self, field_name) + int(amount)
        return replace(self, **changes)

    def merged(self, other: "HintInventory") -> "HintInventory":
        return HintInventory(
            remove2=max(self.remove2, other.remove2),
            auto_pass=max(self.auto_pass, other.auto_pass),
            pause=max(self.pause, other.pause),
        )

    def to_dict(self) -> Dict[str, int]:
        return {
            HintKind.REMOVE2.value: self.remove2,
            HintKind.AUTO_PASS.value: self.auto_pass,
            HintKind.PAUSE.value: self.pause,
        }


_FIELDS = {
    HintKind.REMOVE2: "remove2",
    HintKind.AUTO_PASS: "auto_pass",
    HintKind.PAUSE: "pause",
}


def _field_for(key: str) -> str:
    if key in _FIELDS.values():
        return key
    try:
        return _FIELDS[HintKind(key)]
    except ValueError:
        raise ValueError(f"Unknown hint kind: {key!r}") from None


DEFAULT_HINTS = HintInventory()


def clamp_coins(value: object) -> int:
    """Coin balances are whole and never negative; junk reads as 0."""
    try:
        coins = int(float(value))  # type: ignore[arg-type]
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(0, coins)
