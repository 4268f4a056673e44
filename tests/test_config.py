"""Tests for flagiq.core.config – YAML settings."""

from __future__ import annotations

from pathlib import Path

import pytest

from flagiq.core.config import SETTINGS_ENV_VAR, Settings, load_settings, settings_path


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "settings.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadSettings:
    def test_missing_file_gives_defaults(self, tmp_path: Path):
        settings = load_settings(tmp_path / "absent.yaml")
        assert settings == Settings(storage_dir=Path.home() / ".flagiq")
        assert settings.log_level == "INFO"
        assert settings.language == "en"
        assert settings.catalog_path is None

    def test_empty_file(self, tmp_path: Path):
        assert load_settings(_write(tmp_path, "")).language == "en"

    def test_full_file(self, tmp_path: Path):
        path = _write(
            tmp_path,
            f"storage_dir: {tmp_path / 'data'}\n"
            "log_level: debug\n"
            "language: TA\n"
            f"catalog_path: {tmp_path / 'flags.yaml'}\n",
        )
        settings = load_settings(path)
        assert settings.storage_dir == tmp_path / "data"
        assert settings.cache_path == tmp_path / "data" / "cache.json"
        assert settings.log_level == "DEBUG"
        assert settings.language == "ta"
        assert settings.catalog_path == tmp_path / "flags.yaml"

    def test_unknown_keys_warned(self, tmp_path: Path, caplog):
        settings = load_settings(_write(tmp_path, "theme: dark\nlanguage: de\n"))
        assert settings.language == "de"
        assert "theme" in caplog.text

    def test_not_a_mapping(self, tmp_path: Path):
        with pytest.raises(ValueError):
            load_settings(_write(tmp_path, "- a\n- b\n"))

    @pytest.mark.parametrize(
        "text",
        ["log_level: loud\n", "log_level: 10\n", "language: ''\n", "storage_dir: 42\n", "catalog_path: [a]\n"],
    )
    def test_bad_values(self, tmp_path: Path, text: str):
        with pytest.raises(ValueError):
            load_settings(_write(tmp_path, text))


class TestSettingsPath:
    def test_env_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        path = _write(tmp_path, "language: fr\n")
        monkeypatch.setenv(SETTINGS_ENV_VAR, str(path))
        assert settings_path() == path
        assert load_settings().language == "fr"

    def test_default_location(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv(SETTINGS_ENV_VAR, raising=False)
        assert settings_path() == Path.home() / ".flagiq" / "settings.yaml"
