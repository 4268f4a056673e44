from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional

import yaml

logger = logging.getLogger(__name__)

MIN_DIFFICULTY = 1.0
MAX_DIFFICULTY = 10.0

# flagcdn has no entry for some legacy codes/names; map them to the real asset.
_CODE_FALLBACK = {"nir": "gb-nir"}
_NAME_FALLBACK = {
    "england": "gb-eng",
    "scotland": "gb-sct",
    "wles": "gb-wls",
    "wales": "gb-wls",
    "northern ireland": "gb-nir",
    "isle of man": "im",
    "greenland": "gl",
    "puerto rico": "pr",
    "hong kong": "hk",
    "macau": "mo",
    "faroe islands": "fo",
    "bermuda": "bm",
    "curaçao": "cw",
    "aruba": "aw",
    "cayman islands": "ky",
    "guernsey": "gg",
    "jersey": "je",
    "gibraltar": "gi",
    "french polynesia": "pf",
    "new caledonia": "nc",
}


@dataclass(frozen=True)
class Flag:
    code: str
    name: str
    difficulty: float
    region: Optional[str] = None
    colors: Optional[FrozenSet[str]] = None
    image: Optional[str] = None

    def image_url(self, width: int = 256) -> str:
        """Return the explicit image, or the flagcdn PNG for this flag's code."""
        if self.image:
            return self.image
        code = self.code.lower()
        if code in _CODE_FALLBACK:
            code = _CODE_FALLBACK[code]
        elif self.name.lower() in _NAME_FALLBACK:
            code = _NAME_FALLBACK[self.name.lower()]
        return f"https://flagcdn.com/w{width}/{code}.png"


class FlagCatalog:
    """All playable flags, keyed by code. Loaded once from data/flags.yaml."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = path or Path(__file__).resolve().parent.parent / "data" / "flags.yaml"
        self._flags = self._load_flags()

    @classmethod
    def from_flags(cls, flags: Iterable[Flag]) -> "FlagCatalog":
        catalog = cls.__new__(cls)
        catalog._path = None
        catalog._flags = {}
        for flag in flags:
            if flag.code in catalog._flags:
                raise ValueError(f"Duplicate flag code: {flag.code}")
            catalog._flags[flag.code] = flag
        return catalog

    def all(self) -> List[Flag]:
        return list(self._flags.values())

    def get(self, code: str) -> Flag:
        return self._flags[code.lower()]

    def __len__(self) -> int:
        return len(self._flags)

    def __contains__(self, code: object) -> bool:
        return isinstance(code, str) and code.lower() in self._flags

    def __iter__(self) -> Iterator[Flag]:
        return iter(self._flags.values())

    def _load_flags(self) -> Dict[str, Flag]:
        if not self._path.exists():
            raise FileNotFoundError(f"Flag catalog not found: {self._path}")

        raw = yaml.safe_load(self._path.read_text(encoding="utf-8"))
        if not raw or not isinstance(raw, list):
            raise ValueError(f"{self._path.name}: expected a YAML list of flags")

        flags: Dict[str, Flag] = {}
        for index, entry in enumerate(raw):
            flag = parse_flag(entry, where=f"{self._path.name}[{index}]")
            if flag.code in flags:
                raise ValueError(f"{self._path.name}[{index}]: duplicate code '{flag.code}'")
            flags[flag.code] = flag

        logger.info("Loaded %d flags from %s", len(flags), self._path)
        return flags


def parse_flag(entry: object, where: str = "flag") -> Flag:
    """Build a Flag from one YAML mapping, raising ValueError on bad data."""
    if not isinstance(entry, dict):
        raise ValueError(f"{where}: expected a mapping")
    code = entry.get("code")
    name = entry.get("name")
    if not code or not isinstance(code, str):
        raise ValueError(f"{where}: missing or invalid 'code'")
    if not name or not isinstance(name, str):
        raise ValueError(f"{where}: missing or invalid 'name'")
    difficulty = entry.get("difficulty")
    if isinstance(difficulty, bool) or not isinstance(difficulty, (int, float)):
        raise ValueError(f"{where}: missing or invalid 'difficulty'")
    region = entry.get("region")
    colors = entry.get("colors")
    if colors is not None and not isinstance(colors, list):
        raise ValueError(f"{where}: 'colors' must be a list")
    return Flag(
        code=code.strip().lower(),
        name=name.strip(),
        difficulty=max(MIN_DIFFICULTY, min(MAX_DIFFICULTY, float(difficulty))),
        region=str(region).strip() if region else None,
        colors=frozenset(str(c).strip().lower() for c in colors) if colors else None,
        image=entry.get("image") or None,
    )
