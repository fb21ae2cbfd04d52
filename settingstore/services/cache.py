"""
Read-through cache for global settings.

Two entries exist per setting key: the decoded value
(``{prefix}:{key}``) and the existence flag (``{prefix}:exists:{key}``).
Both are dropped after every write or delete of that key. The TTL is
only a safety net; correctness comes from invalidation on write.

Backends:
- memory: process-wide dictionary with expiry timestamps
- redis: shared Redis instance, JSON-encoded values
"""

import copy
import json
import logging
import threading
import time
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Callable

from redis import Redis

from settingstore.config import Settings, get_settings

if TYPE_CHECKING:
    from settingstore.services.store import SettingChange

logger = logging.getLogger(__name__)


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


# Loader result for "nothing stored"; never written to the cache.
MISSING: Any = _Missing()


class CacheStore:
    """Minimal key/value store interface the settings cache needs."""

    def get(self, key: str) -> Any:
        """Return the cached value or MISSING."""
        raise NotImplementedError

    def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def has(self, key: str) -> bool:
        return self.get(key) is not MISSING

    def clear_prefix(self, prefix: str) -> int:
        """Remove every entry whose key starts with ``prefix``."""
        raise NotImplementedError


class MemoryCacheStore(CacheStore):
    """In-process cache with per-entry expiry.

    Values are copied in and out so callers never share the cached object.
    """

    def __init__(self):
        self._entries: dict[str, tuple[float | None, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return MISSING
            expires_at, value = entry
            if expires_at is not None and expires_at <= time.monotonic():
                del self._entries[key]
                return MISSING
            return copy.deepcopy(value)

    def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        expires_at = time.monotonic() + ttl if ttl else None
        with self._lock:
            self._entries[key] = (expires_at, copy.deepcopy(value))

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear_prefix(self, prefix: str) -> int:
        with self._lock:
            doomed = [k for k in self._entries if k.startswith(prefix)]
            for k in doomed:
                del self._entries[k]
        return len(doomed)


class RedisCacheStore(CacheStore):
    """Redis-backed cache shared by every process using the same instance."""

    def __init__(self, client: Redis):
        self.redis = client

    @classmethod
    def from_url(cls, url: str) -> "RedisCacheStore":
        return cls(Redis.from_url(url))

    def get(self, key: str) -> Any:
        raw = self.redis.get(key)
        if raw is None:
            return MISSING
        return json.loads(raw)

    def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        self.redis.set(key, json.dumps(value), ex=ttl or None)

    def delete(self, key: str) -> None:
        self.redis.delete(key)

    def has(self, key: str) -> bool:
        return bool(self.redis.exists(key))

    def clear_prefix(self, prefix: str) -> int:
        removed = 0
        for key in self.redis.scan_iter(match=f"{prefix}*"):
            removed += self.redis.delete(key)
        return removed


def create_cache_store(config: Settings) -> CacheStore:
    """Build the backend named by ``cache_driver``."""
    if config.cache_driver == "redis":
        return RedisCacheStore.from_url(config.redis_url)
    if config.cache_driver != "memory":
        raise ValueError(f"Unsupported cache driver: {config.cache_driver}")
    return MemoryCacheStore()


@lru_cache
def get_cache_store() -> CacheStore:
    """
    Get the process-wide cache backend.

    Reads and invalidations must hit the same instance, so every manager
    shares this one.
    """
    return create_cache_store(get_settings())


class SettingsCache:
    """
    Cache-aside wrapper used by the settings manager.

    When disabled, reads go straight to the loader and invalidation
    and flushing do nothing.
    """

    def __init__(
        self,
        store: CacheStore,
        prefix: str = "settings",
        ttl: int = 3600,
        enabled: bool = True,
    ):
        self.store = store
        self.prefix = prefix
        self.ttl = ttl
        self.enabled = enabled

    @classmethod
    def from_config(cls, config: Settings, store: CacheStore | None = None) -> "SettingsCache":
        if store is None and config.cache_enabled:
            store = get_cache_store()
        return cls(
            store=store or MemoryCacheStore(),
            prefix=config.cache_prefix,
            ttl=config.cache_ttl,
            enabled=config.cache_enabled,
        )

    def value_key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    def exists_key(self, key: str) -> str:
        return f"{self.prefix}:exists:{key}"

    def _remember(self, cache_key: str, loader: Callable[[], Any]) -> Any:
        if not self.enabled:
            return loader()
        cached = self.store.get(cache_key)
        if cached is not MISSING:
            return cached
        value = loader()
        if value is not MISSING:
            self.store.set(cache_key, value, self.ttl)
        return value

    def read(self, key: str, loader: Callable[[], Any]) -> Any:
        """
        Cached value for ``key``, loading and storing it on a miss.

        A loader returning MISSING is passed through without being cached.
        """
        return self._remember(self.value_key(key), loader)

    def exists(self, key: str, loader: Callable[[], bool]) -> bool:
        """Cached existence flag for ``key``."""
        return self._remember(self.exists_key(key), loader)

    def invalidate(self, key: str) -> None:
        if self.enabled:
            self.store.delete(self.value_key(key))

    def invalidate_existence(self, key: str) -> None:
        if self.enabled:
            self.store.delete(self.exists_key(key))

    def flush_all(self) -> None:
        """Drop every cached setting under this prefix."""
        if not self.enabled:
            return
        removed = self.store.clear_prefix(f"{self.prefix}:")
        logger.info(f"Flushed {removed} cached settings entries")

    def on_change(self, change: "SettingChange") -> None:
        """Store listener: drop both entries for the changed key."""
        self.invalidate(change.key)
        self.invalidate_existence(change.key)
