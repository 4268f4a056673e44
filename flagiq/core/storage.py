from __future__ import annotations

import json
import logging
import uuid
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

DEVICE_ID_KEY = "playerId"
LANGUAGE_KEY = "flagLang"
LEGACY_LANGUAGE_KEYS = ("flagiq:lang",)
LEGACY_HINT_KEYS = ("flag_hints", "hints")


def user_key(identity: str, suffix: str) -> str:
    """Per-identity cache key, e.g. ``flagiq:u:alice:progress``."""
    return f"flagiq:u:{identity}:{suffix}"


def hint_seen_key(identity: Optional[str]) -> str:
    return f"hasSeenHintInfo_{identity or 'default'}"


class LocalCache:
    """Device-local key/value store. Persists to disk across app restarts.

    File: ~/.flagiq/cache.json. Values are JSON-serialisable. A missing or
    corrupt file reads as an empty cache; write failures are logged and the
    in-memory value is kept.
    """

    def __init__(self, file_path: Optional[Path] = None) -> None:
        self._file_path = file_path or Path.home() / ".flagiq" / "cache.json"
        self._values = self._load()
        self._device_id: Optional[str] = None

    @property
    def file_path(self) -> Path:
        return self._file_path

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def __contains__(self, key: str) -> bool:
        return key in self._values

    def set(self, key: str, value: Any) -> None:
        try:
            json.dumps(value)
        except (TypeError, ValueError) as e:
            logger.warning("Not caching %s, value is not JSON-serialisable: %s", key, e)
            return
        self._values[key] = value
        self._save()

    def remove(self, key: str) -> None:
        if self._values.pop(key, None) is not None:
            self._save()

    def device_id(self) -> str:
        """Anonymous id for this device, created on first use and cached."""
        if self._device_id is None:
            stored = self._values.get(DEVICE_ID_KEY)
            if not isinstance(stored, str) or not stored:
                stored = str(uuid.uuid4())
                self.set(DEVICE_ID_KEY, stored)
            self._device_id = stored
        return self._device_id

    def language(self) -> Optional[str]:
        for key in (LANGUAGE_KEY,) + LEGACY_LANGUAGE_KEYS:
            value = self._values.get(key)
            if isinstance(value, str) and value:
                return value
        return None

    def set_language(self, code: str) -> None:
        self.set(LANGUAGE_KEY, code)
        for key in LEGACY_LANGUAGE_KEYS:
            self.remove(key)

    def has_seen_hint_info(self, identity: Optional[str]) -> bool:
        return bool(self._values.get(hint_seen_key(identity)))

    def mark_hint_info_seen(self, identity: Optional[str]) -> None:
        self.set(hint_seen_key(identity), "1")

    def _load(self) -> Dict[str, Any]:
        if not self._file_path.exists():
            return {}
        try:
            payload = json.loads(self._file_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Could not load cache from %s: %s", self._file_path, e)
            return {}
        if not isinstance(payload, dict):
            logger.warning("Ignoring cache at %s: expected an object", self._file_path)
            return {}
        return payload

    def _save(self) -> None:
        try:
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_path.write_text(json.dumps(self._values, indent=2), encoding="utf-8")
        except OSError as e:
            logger.warning("Could not save cache to %s: %s", self._file_path, e)
