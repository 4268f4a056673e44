from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

SETTINGS_ENV_VAR = "FLAGIQ_SETTINGS"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def default_storage_dir() -> Path:
    return Path.home() / ".flagiq"


@dataclass(frozen=True)
class Settings:
    storage_dir: Path
    log_level: str = "INFO"
    language: str = "en"
    catalog_path: Optional[Path] = None

    @property
    def cache_path(self) -> Path:
        return self.storage_dir / "cache.json"


def settings_path() -> Path:
    override = os.environ.get(SETTINGS_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return default_storage_dir() / "settings.yaml"


def load_settings(path: Optional[Path] = None) -> Settings:
    """Read settings from YAML. A missing file gives the defaults.

    Unknown keys are logged and ignored; values of the wrong type raise
    ValueError.
    """
    path = path or settings_path()
    if not path.exists():
        logger.debug("No settings file at %s, using defaults", path)
        return Settings(storage_dir=default_storage_dir())

    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError(f"{path.name}: expected a mapping of settings")

    known = {f.name for f in fields(Settings)}
    for key in sorted(set(raw) - known):
        logger.warning("Ignoring unknown setting %r in %s", key, path)

    values: Dict[str, Any] = {"storage_dir": default_storage_dir()}
    for key in ("storage_dir", "catalog_path"):
        if raw.get(key) is not None:
            if not isinstance(raw[key], str):
                raise ValueError(f"{path.name}: '{key}' must be a path string")
            values[key] = Path(raw[key]).expanduser()

    if "log_level" in raw:
        level = raw["log_level"]
        if not isinstance(level, str) or level.upper() not in LOG_LEVELS:
            raise ValueError(f"{path.name}: 'log_level' must be one of {', '.join(LOG_LEVELS)}")
        values["log_level"] = level.upper()

    if "language" in raw:
        language = raw["language"]
        if not isinstance(language, str) or not language.strip():
            raise ValueError(f"{path.name}: 'language' must be a non-empty string")
        values["language"] = language.strip().lower()

    return Settings(**values)
