"""Tests for flagiq.core.storage – the device-local JSON cache."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from flagiq.core.storage import DEVICE_ID_KEY, LANGUAGE_KEY, LocalCache, hint_seen_key, user_key


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def cache_file(tmp_path: Path) -> Path:
    """Cache path inside tmp_path so tests don't touch ~/.flagiq."""
    return tmp_path / "nested" / "cache.json"


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------

class TestKeys:
    def test_user_key(self):
        assert user_key("alice", "coins") == "flagiq:u:alice:coins"

    def test_hint_seen_key(self):
        assert hint_seen_key("alice") == "hasSeenHintInfo_alice"
        assert hint_seen_key(None) == "hasSeenHintInfo_default"


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

class TestLocalCache:
    def test_missing_file_is_empty(self, cache_file: Path):
        cache = LocalCache(cache_file)
        assert cache.get("anything") is None
        assert cache.get("anything", 3) == 3

    def test_values_survive_reload(self, cache_file: Path):
        LocalCache(cache_file).set("flagiq:u:a:coins", 40)
        assert LocalCache(cache_file).get("flagiq:u:a:coins") == 40

    def test_creates_parent_directory(self, cache_file: Path):
        LocalCache(cache_file).set("k", "v")
        assert json.loads(cache_file.read_text(encoding="utf-8")) == {"k": "v"}

    def test_corrupt_file_is_empty(self, cache_file: Path):
        cache_file.parent.mkdir(parents=True)
        cache_file.write_text("{broken", encoding="utf-8")
        cache = LocalCache(cache_file)
        assert cache.get("k") is None
        cache.set("k", 1)
        assert LocalCache(cache_file).get("k") == 1

    def test_non_object_file_is_empty(self, cache_file: Path):
        cache_file.parent.mkdir(parents=True)
        cache_file.write_text("[1, 2]", encoding="utf-8")
        assert "0" not in LocalCache(cache_file)

    def test_unserialisable_value_not_stored(self, cache_file: Path):
        cache = LocalCache(cache_file)
        cache.set("bad", {1, 2})
        assert "bad" not in cache

    def test_remove(self, cache_file: Path):
        cache = LocalCache(cache_file)
        cache.set("k", 1)
        cache.remove("k")
        cache.remove("never-there")
        assert "k" not in LocalCache(cache_file)


# ---------------------------------------------------------------------------
# Device id, language, hint info
# ---------------------------------------------------------------------------

class TestDeviceState:
    def test_device_id_created_once(self, cache_file: Path):
        cache = LocalCache(cache_file)
        first = cache.device_id()
        assert first
        assert cache.device_id() == first
        assert LocalCache(cache_file).device_id() == first
        assert cache.get(DEVICE_ID_KEY) == first

    def test_device_id_reads_existing(self, cache_file: Path):
        LocalCache(cache_file).set(DEVICE_ID_KEY, "device-1")
        assert LocalCache(cache_file).device_id() == "device-1"

    def test_language_default(self, cache_file: Path):
        assert LocalCache(cache_file).language() is None

    def test_legacy_language_key(self, cache_file: Path):
        cache = LocalCache(cache_file)
        cache.set("flagiq:lang", "fr")
        assert cache.language() == "fr"

    def test_set_language_drops_legacy(self, cache_file: Path):
        cache = LocalCache(cache_file)
        cache.set("flagiq:lang", "fr")
        cache.set_language("de")
        assert cache.language() == "de"
        assert cache.get(LANGUAGE_KEY) == "de"
        assert "flagiq:lang" not in cache

    def test_hint_info_per_identity(self, cache_file: Path):
        cache = LocalCache(cache_file)
        assert not cache.has_seen_hint_info("alice")
        cache.mark_hint_info_seen("alice")
        assert cache.has_seen_hint_info("alice")
        assert not cache.has_seen_hint_info("bob")
