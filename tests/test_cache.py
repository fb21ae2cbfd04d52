"""
Tests for cache backends and the settings cache wrapper.
"""

from unittest.mock import MagicMock, patch

import pytest

from settingstore.config import Settings
from settingstore.models import SettingAction
from settingstore.services.cache import (
    MISSING,
    MemoryCacheStore,
    RedisCacheStore,
    SettingsCache,
    create_cache_store,
)
from settingstore.services.store import SettingChange


class TestMemoryCacheStore:
    """Test the in-process backend."""

    def test_get_missing(self, cache_store):
        assert cache_store.get("nope") is MISSING
        assert not cache_store.has("nope")

    def test_set_get_delete(self, cache_store):
        cache_store.set("a", [1, 2])
        assert cache_store.get("a") == [1, 2]
        cache_store.delete("a")
        assert cache_store.get("a") is MISSING

    def test_mutating_returned_value_leaves_cache_intact(self, cache_store):
        """Test that the cache hands out copies of structured values."""
        cache_store.set("tags", ["a"])
        cache_store.get("tags").append("mutated")
        assert cache_store.get("tags") == ["a"]

    def test_mutating_stored_value_leaves_cache_intact(self, cache_store):
        original = {"theme": "dark"}
        cache_store.set("prefs", original)
        original["theme"] = "light"
        assert cache_store.get("prefs") == {"theme": "dark"}

    def test_falsy_values_are_cached(self, cache_store):
        """Test that False/None/0 are distinguishable from a miss."""
        cache_store.set("flag", False)
        assert cache_store.has("flag")
        assert cache_store.get("flag") is False

    def test_entry_expires(self):
        """Test that entries disappear after their TTL."""
        with patch("settingstore.services.cache.time") as fake_time:
            fake_time.monotonic.return_value = 100.0
            store = MemoryCacheStore()
            store.set("a", "x", ttl=10)
            fake_time.monotonic.return_value = 105.0
            assert store.get("a") == "x"
            fake_time.monotonic.return_value = 111.0
            assert store.get("a") is MISSING

    def test_clear_prefix(self, cache_store):
        cache_store.set("settings:a", 1)
        cache_store.set("settings:exists:a", True)
        cache_store.set("other:a", 1)
        assert cache_store.clear_prefix("settings:") == 2
        assert cache_store.get("other:a") == 1


class TestRedisCacheStore:
    """Test the Redis backend against a mocked client."""

    def test_get_decodes_json(self):
        client = MagicMock()
        client.get.return_value = b'{"a": 1}'
        assert RedisCacheStore(client).get("k") == {"a": 1}

    def test_get_missing(self):
        client = MagicMock()
        client.get.return_value = None
        assert RedisCacheStore(client).get("k") is MISSING

    def test_set_uses_ttl(self):
        client = MagicMock()
        RedisCacheStore(client).set("k", [1], ttl=60)
        client.set.assert_called_once_with("k", "[1]", ex=60)

    def test_clear_prefix_scans(self):
        client = MagicMock()
        client.scan_iter.return_value = ["settings:a", "settings:b"]
        client.delete.return_value = 1
        assert RedisCacheStore(client).clear_prefix("settings:") == 2
        client.scan_iter.assert_called_once_with(match="settings:*")


class TestCreateCacheStore:
    """Test backend selection."""

    def test_memory(self):
        assert isinstance(create_cache_store(Settings(_env_file=None)), MemoryCacheStore)

    def test_redis(self):
        config = Settings(_env_file=None, cache_driver="Redis", redis_url="redis://cache:6379/1")
        with patch("settingstore.services.cache.Redis") as redis_cls:
            store = create_cache_store(config)
        assert isinstance(store, RedisCacheStore)
        redis_cls.from_url.assert_called_once_with("redis://cache:6379/1")

    def test_unknown_driver(self):
        with pytest.raises(ValueError, match="Unsupported cache driver"):
            create_cache_store(Settings(_env_file=None, cache_driver="memcached"))


class TestSettingsCache:
    """Test the cache-aside wrapper."""

    def test_keys(self, cache):
        assert cache.value_key("site.name") == "settings:site.name"
        assert cache.exists_key("site.name") == "settings:exists:site.name"

    def test_read_loads_once(self, cache):
        loader = MagicMock(return_value="v")
        assert cache.read("k", loader) == "v"
        assert cache.read("k", loader) == "v"
        loader.assert_called_once()

    def test_missing_is_not_cached(self, cache, cache_store):
        loader = MagicMock(return_value=MISSING)
        assert cache.read("k", loader) is MISSING
        assert cache.read("k", loader) is MISSING
        assert loader.call_count == 2
        assert cache_store.get("settings:k") is MISSING

    def test_on_change_drops_both_entries(self, cache, cache_store):
        cache.read("k", lambda: 1)
        cache.exists("k", lambda: True)
        cache.on_change(
            SettingChange("k", SettingAction.updated, "1", "2", "int", "int")
        )
        assert cache_store.get("settings:k") is MISSING
        assert cache_store.get("settings:exists:k") is MISSING

    def test_flush_all_is_prefix_scoped(self, cache, cache_store):
        cache_store.set("foreign", 1)
        cache.read("k", lambda: 1)
        cache.flush_all()
        assert cache_store.get("settings:k") is MISSING
        assert cache_store.get("foreign") == 1

    def test_disabled_cache_always_loads(self, cache_store):
        cache = SettingsCache(cache_store, enabled=False)
        loader = MagicMock(return_value="v")
        cache.read("k", loader)
        cache.read("k", loader)
        assert loader.call_count == 2
        assert cache_store.get("settings:k") is MISSING
