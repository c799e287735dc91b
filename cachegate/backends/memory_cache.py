"""In-process array backend with LRU eviction."""

import sys
import threading
from collections import OrderedDict
from datetime import datetime
from typing import Any, Dict, Optional

from .base import CacheBackend, CacheEntry


class MemoryCacheBackend(CacheBackend):
    """Entries live in this process only and are lost when it exits.

    At most ``max_size`` entries are kept; saving past that evicts the least
    recently used one.
    """

    name = "array"

    def __init__(self, max_size: int = 1000, name: Optional[str] = None):
        super().__init__(name)
        self.max_size = max_size
        self.cache: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.RLock()

    def _live_entry(self, key: str) -> Optional[CacheEntry]:
        entry = self.cache.get(key)
        if entry is not None and entry.is_expired():
            self.cache.pop(key)
            return None
        return entry

    def fetch(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._live_entry(key)
            if entry is None:
                self._record_miss()
                return None

            self.cache.move_to_end(key)
            entry.touch()
            self._record_hit()
            return entry.data

    def contains(self, key: str) -> bool:
        with self._lock:
            return self._live_entry(key) is not None

    def save(self, key: str, value: Any, ttl_seconds: float = 0) -> bool:
        entry = CacheEntry(key=key, data=value, timestamp=datetime.now(), ttl_seconds=ttl_seconds)
        with self._lock:
            self.cache[key] = entry
            self.cache.move_to_end(key)
            # evict from the LRU end
            while len(self.cache) > self.max_size:
                self.cache.popitem(last=False)
        return True

    def delete(self, key: str) -> bool:
        with self._lock:
            return self.cache.pop(key, None) is not None

    def delete_all(self) -> bool:
        with self._lock:
            self.cache.clear()
        return True

    def cleanup_expired(self) -> int:
        with self._lock:
            stale = [key for key, entry in self.cache.items() if entry.is_expired()]
            for key in stale:
                self.cache.pop(key)
        return len(stale)

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            stats = self._base_stats()
            stats.size = len(self.cache)
            if self.cache:
                timestamps = [entry.timestamp for entry in self.cache.values()]
                stats.oldest_entry = min(timestamps)
                stats.newest_entry = max(timestamps)
                stats.memory_usage = self.get_memory_usage()

            summary = stats.to_dict()
        summary.update(backend=self.name, max_size=self.max_size, eviction_policy="LRU")
        return summary

    def close(self) -> None:
        self.delete_all()

    def get_memory_usage(self) -> int:
        """Rough size in bytes of the stored values and their entries."""
        with self._lock:
            return sum(sys.getsizeof(e) + sys.getsizeof(e.data) for e in self.cache.values())
