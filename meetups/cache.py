"""
Cache - Advisory caching with pluggable backends.

Provides:
- MemoryCache: Fast in-memory cache with LRU eviction and per-entry TTL
- DiskCache: Persistent disk cache with per-entry TTL
- TieredCache: Memory -> Disk fallback
- Cache: JSON facade that never lets a cache failure reach the caller
"""

import hashlib
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class CacheError(Exception):
    """A cache backend could not be reached or returned corrupted data."""


@dataclass
class CacheEntry:
    key: str
    value: Any
    created_at: datetime
    expires_at: datetime | None

    def expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now


class CacheBackend(ABC):
    """Abstract base class for cache backends.

    `get` returns None on a miss and raises CacheError on failure, so callers
    can tell hit, miss and error apart.
    """

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Get a value from cache."""
        pass

    @abstractmethod
    def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Set a value in cache with optional TTL in seconds."""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete a value from cache."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Clear all values from cache."""
        pass


class MemoryCache(CacheBackend):
    """Fast in-memory cache with LRU eviction."""

    def __init__(self, max_size: int = 512, clock: Clock = datetime.now):
        self.max_size = max_size
        self.clock = clock
        self._cache: dict[str, CacheEntry] = {}
        self._access_order: list[str] = []  # Track access order for LRU

    def get(self, key: str) -> Any | None:
        entry = self.get_entry(key)
        return entry.value if entry else None

    def get_entry(self, key: str) -> CacheEntry | None:
        if key not in self._cache:
            return None

        entry = self._cache[key]
        if entry.expired(self.clock()):
            self.delete(key)
            return None

        # Move to end for LRU
        if key in self._access_order:
            self._access_order.remove(key)
        self._access_order.append(key)

        return entry

    def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        while len(self._cache) >= self.max_size and key not in self._cache:
            self._evict_oldest()

        now = self.clock()
        expires_at = now + timedelta(seconds=ttl) if ttl else None

        self._cache[key] = CacheEntry(
            key=key,
            value=value,
            created_at=now,
            expires_at=expires_at
        )

        if key in self._access_order:
            self._access_order.remove(key)
        self._access_order.append(key)

    def delete(self, key: str) -> None:
        self._cache.pop(key, None)
        if key in self._access_order:
            self._access_order.remove(key)

    def clear(self) -> None:
        self._cache.clear()
        self._access_order.clear()

    def _evict_oldest(self):
        """Evict least recently used entry."""
        if self._access_order:
            oldest_key = self._access_order.pop(0)
            self._cache.pop(oldest_key, None)

    @property
    def size(self) -> int:
        return len(self._cache)


class DiskCache(CacheBackend):
    """Persistent disk cache, one JSON file per key."""

    def __init__(self, cache_dir: Path, clock: Clock = datetime.now):
        self.cache_dir = cache_dir
        self.clock = clock
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def _key_to_path(self, key: str) -> Path:
        """Convert cache key to file path."""
        hashed = hashlib.sha256(key.encode()).hexdigest()[:16]
        return self.cache_dir / f"{hashed}.json"

    def get(self, key: str) -> Any | None:
        entry = self.get_entry(key)
        return entry.value if entry else None

    def get_entry(self, key: str) -> CacheEntry | None:
        path = self._key_to_path(key)
        if not path.exists():
            return None

        try:
            data = json.loads(path.read_text())
        except OSError as e:
            raise CacheError(f"read {path.name}: {e}") from e
        except json.JSONDecodeError as e:
            path.unlink(missing_ok=True)
            raise CacheError(f"corrupted entry {path.name}: {e}") from e

        # Hash collision
        if data.get("key") != key:
            return None

        try:
            expires = data.get("expires_at")
            entry = CacheEntry(
                key=key,
                value=data["value"],
                created_at=datetime.fromisoformat(data["created_at"]),
                expires_at=datetime.fromisoformat(expires) if expires else None,
            )
        except (KeyError, ValueError) as e:
            path.unlink(missing_ok=True)
            raise CacheError(f"corrupted entry {path.name}: {e}") from e

        if entry.expired(self.clock()):
            path.unlink(missing_ok=True)
            return None

        return entry

    def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        path = self._key_to_path(key)
        now = self.clock()
        data = {
            "key": key,
            "value": value,
            "created_at": now.isoformat(),
            "expires_at": (now + timedelta(seconds=ttl)).isoformat() if ttl else None,
        }

        try:
            path.write_text(json.dumps(data))
        except (TypeError, OSError) as e:
            raise CacheError(f"write {path.name}: {e}") from e

    def delete(self, key: str) -> None:
        path = self._key_to_path(key)
        path.unlink(missing_ok=True)

    def clear(self) -> None:
        """Clear all cached files."""
        for file in self.cache_dir.glob("*.json"):
            file.unlink(missing_ok=True)

    def cleanup_expired(self) -> int:
        """Remove expired cache entries. Returns count of removed entries."""
        removed = 0
        now = self.clock()
        for file in self.cache_dir.glob("*.json"):
            try:
                data = json.loads(file.read_text())
                expires = data.get("expires_at")
                if expires and datetime.fromisoformat(expires) <= now:
                    file.unlink()
                    removed += 1
            except (json.JSONDecodeError, ValueError):
                file.unlink(missing_ok=True)
                removed += 1
        return removed


class TieredCache(CacheBackend):
    """Two-tier cache: memory (fast) -> disk (persistent)."""

    def __init__(
        self,
        cache_dir: Path,
        memory_size: int = 512,
        clock: Clock = datetime.now,
    ):
        self.clock = clock
        self.memory = MemoryCache(max_size=memory_size, clock=clock)
        self.disk = DiskCache(cache_dir, clock=clock)

    def get(self, key: str) -> Any | None:
        if (value := self.memory.get(key)) is not None:
            return value

        entry = self.disk.get_entry(key)
        if entry is None:
            return None

        # Promote to memory with whatever lifetime the disk entry has left
        ttl = None
        if entry.expires_at is not None:
            ttl = max(1, int((entry.expires_at - self.clock()).total_seconds()))
        self.memory.set(key, entry.value, ttl)
        return entry.value

    def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        self.memory.set(key, value, ttl)
        self.disk.set(key, value, ttl)

    def delete(self, key: str) -> None:
        self.memory.delete(key)
        self.disk.delete(key)

    def clear(self) -> None:
        self.memory.clear()
        self.disk.clear()

    def cleanup_expired(self) -> int:
        """Remove expired disk cache entries."""
        return self.disk.cleanup_expired()


class Cache:
    """
    JSON facade over a cache backend.

    Values are stored JSON-encoded. Backend and decoding failures are logged
    and reported as a miss on `get` and as False on `set`; they never raise.
    """

    def __init__(self, backend: CacheBackend):
        self.backend = backend

    def get(self, key: str) -> tuple[Any, bool]:
        """Return (value, found)."""
        try:
            raw = self.backend.get(key)
        except CacheError as e:
            logger.error(f"cache get {key!r}: {e}")
            return None, False

        if raw is None:
            return None, False

        try:
            return json.loads(raw), True
        except (TypeError, json.JSONDecodeError) as e:
            logger.error(f"cache get {key!r}: decode: {e}")
            return None, False

    def set(self, key: str, value: Any, ttl: int | timedelta | None = None) -> bool:
        """Store value under key for ttl (seconds or timedelta). Returns success."""
        if isinstance(ttl, timedelta):
            ttl = int(ttl.total_seconds())

        try:
            raw = json.dumps(value)
        except (TypeError, ValueError) as e:
            logger.error(f"cache set {key!r}: encode: {e}")
            return False

        try:
            self.backend.set(key, raw, ttl)
        except CacheError as e:
            logger.error(f"cache set {key!r}: {e}")
            return False
        return True

    def delete(self, key: str) -> None:
        try:
            self.backend.delete(key)
        except CacheError as e:
            logger.error(f"cache delete {key!r}: {e}")


def create_cache(cache_dir: str | Path, memory_size: int = 512) -> Cache:
    """Factory function to create a Cache over a TieredCache."""
    return Cache(TieredCache(cache_dir=Path(cache_dir), memory_size=memory_size))
