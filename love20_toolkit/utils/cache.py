"""
TTL (Time-To-Live) persistent caching utilities.

This module provides:
1. A KeyValueStore interface with a file-backed and an in-memory implementation
2. TTLCacheStore, a namespaced TTL layer on top of any KeyValueStore

Default TTL is 1 hour (3600 seconds). File-backed entries are stored in the
.cache directory (override with LOVE20_CACHE_DIR), one file per key, named by
the sha256 of the key.

Expiry is lazy: an expired entry is deleted when it is read. The cache fails
open: storage or serialization errors are logged and treated as a miss, they
never reach the caller.
"""

import hashlib
import json
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from love20_toolkit.shared.constants import CacheConstants
from love20_toolkit.shared.exceptions import CacheCorruptionException
from love20_toolkit.shared.logging import get_logger

logger = get_logger(__name__)


class KeyValueStore(ABC):
    """Synchronous string key -> string value storage."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def remove_item(self, key: str) -> None:
        ...

    @abstractmethod
    def keys(self) -> List[str]:
        ...

    def clear(self) -> None:
        for key in self.keys():
            self.remove_item(key)


class MemoryKeyValueStore(KeyValueStore):
    """Dict-backed store for tests and short-lived processes."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data.keys())

    def clear(self) -> None:
        self._data.clear()


class FileKeyValueStore(KeyValueStore):
    """One file per key under a cache directory."""

    SUFFIX = ".cache"

    def __init__(self, cache_dir: Union[str, Path, None] = None):
        self.cache_dir = Path(cache_dir or CacheConstants.get_cache_dir())
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def _get_cache_path(self, key: str) -> Path:
        """Get the file path for a cache key."""
        safe_key = hashlib.sha256(key.encode()).hexdigest()
        return self.cache_dir / f"{safe_key}{self.SUFFIX}"

    def get_item(self, key: str) -> Optional[str]:
        cache_path = self._get_cache_path(key)
        if not cache_path.exists():
            return None
        with open(cache_path, "r", encoding="utf-8") as f:
            record = json.load(f)
        # sha256 collisions aside, a mismatch means a foreign file
        if record.get("key") != key:
            return None
        return record.get("value")

    def set_item(self, key: str, value: str) -> None:
        cache_path = self._get_cache_path(key)
        tmp_path = cache_path.with_suffix(".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump({"key": key, "value": value}, f)
        tmp_path.replace(cache_path)

    def remove_item(self, key: str) -> None:
        cache_path = self._get_cache_path(key)
        if cache_path.exists():
            cache_path.unlink()

    def keys(self) -> List[str]:
        found = []
        for cache_file in self.cache_dir.glob(f"*{self.SUFFIX}"):
            try:
                with open(cache_file, "r", encoding="utf-8") as f:
                    record = json.load(f)
            except (OSError, ValueError):
                continue
            if isinstance(record, dict) and "key" in record:
                found.append(record["key"])
        return found


@dataclass(frozen=True)
class CacheEntry:
    """A decoded cache entry and its write time."""

    key: str
    value: Any
    timestamp: float


class TTLCacheStore:
    """
    Namespaced TTL cache over a KeyValueStore.

    Stored value format (JSON): {"data": <value>, "timestamp": <seconds>}.
    An entry written at t is absent for any read at now with now - t > ttl.
    """

    def __init__(
        self,
        store: KeyValueStore,
        namespace: str,
        ttl: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.namespace = namespace
        self.ttl = CacheConstants.get_ttl() if ttl is None else ttl
        self.clock = clock

    def _full_key(self, key: str) -> str:
        return f"{self.namespace}{key}"

    def _decode(self, full_key: str, raw: str) -> CacheEntry:
        try:
            payload = json.loads(raw)
            return CacheEntry(
                key=full_key,
                value=payload["data"],
                timestamp=float(payload["timestamp"]),
            )
        except (ValueError, KeyError, TypeError) as e:
            raise CacheCorruptionException(
                f"Unreadable cache entry {full_key}: {e}"
            ) from e

    def is_expired(self, entry: CacheEntry) -> bool:
        return self.clock() - entry.timestamp > self.ttl

    def get(self, key: str) -> Optional[CacheEntry]:
        """Get a live entry, or None on miss, expiry, or corruption."""
        full_key = self._full_key(key)
        try:
            raw = self.store.get_item(full_key)
            if raw is None:
                return None
            entry = self._decode(full_key, raw)
        except CacheCorruptionException as e:
            logger.warning(f"{e.message}; dropping it")
            self._safe_remove(full_key)
            return None
        except Exception as e:
            logger.warning(f"Cache read failed for {full_key}: {e}")
            return None

        if self.is_expired(entry):
            logger.debug(f"Cache entry {full_key} expired")
            self._safe_remove(full_key)
            return None
        return entry

    def set(self, key: str, value: Any) -> None:
        """Write value with the current timestamp."""
        full_key = self._full_key(key)
        try:
            raw = json.dumps({"data": value, "timestamp": self.clock()})
            self.store.set_item(full_key, raw)
        except Exception as e:
            logger.warning(f"Cache write failed for {full_key}: {e}")

    def remove(self, key: str) -> None:
        self._safe_remove(self._full_key(key))

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def clear(self) -> None:
        """Remove every entry of this namespace."""
        try:
            keys = self.store.keys()
        except Exception as e:
            logger.warning(f"Cache clear failed for {self.namespace}: {e}")
            return
        for full_key in keys:
            if full_key.startswith(self.namespace):
                self._safe_remove(full_key)

    def _safe_remove(self, full_key: str) -> None:
        try:
            self.store.remove_item(full_key)
        except Exception as e:
            logger.warning(f"Cache remove failed for {full_key}: {e}")
