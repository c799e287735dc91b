"""Capability contract shared by every cache backend."""

import math
import pickle
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional, Tuple, Type

from cachegate.errors import BackendOperationError
from cachegate.utils.logger import log_warning

# Raised by clients that pickle values themselves
SERIALIZATION_ERRORS: Tuple[Type[BaseException], ...] = (pickle.PickleError, TypeError, AttributeError)


@dataclass
class CacheEntry:
    """A cache entry with metadata."""

    key: str
    data: Any
    timestamp: datetime
    ttl_seconds: float = 0
    access_count: int = 0

    def is_expired(self) -> bool:
        """Check if the cache entry has expired."""
        if self.ttl_seconds <= 0:  # 0 or negative never expires
            return False
        return datetime.now() - self.timestamp > timedelta(seconds=self.ttl_seconds)

    def touch(self) -> None:
        """Record a hit. The timestamp is left alone so the TTL is not extended."""
        self.access_count += 1


class CacheBackend(ABC):
    """Abstract base class for cache backends.

    The facade only ever calls the methods declared here, so any class that
    implements them can be handed to ``Cache.set_driver``.
    """

    name = "backend"

    def __init__(self, name: Optional[str] = None):
        if name is not None:
            self.name = name
        self.hits = 0
        self.misses = 0
        self.errors = 0

    @abstractmethod
    def fetch(self, key: str) -> Optional[Any]:
        """Return the live value stored under ``key``, or None."""

    @abstractmethod
    def contains(self, key: str) -> bool:
        """Return True if an unexpired entry exists for ``key``."""

    @abstractmethod
    def save(self, key: str, value: Any, ttl_seconds: float = 0) -> bool:
        """Store ``value`` under ``key``. ``ttl_seconds <= 0`` never expires."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete ``key``."""

    @abstractmethod
    def delete_all(self) -> bool:
        """Drop every entry owned by this backend."""

    @abstractmethod
    def get_stats(self) -> Optional[Dict[str, Any]]:
        """Backend-reported statistics, or None if unsupported."""

    def cleanup_expired(self) -> int:
        """Remove expired entries and return count removed."""
        return 0

    def close(self) -> None:
        """Release resources held by the backend."""

    # Counters

    def _record_hit(self) -> None:
        self.hits += 1

    def _record_miss(self) -> None:
        self.misses += 1

    def _record_error(self) -> None:
        self.errors += 1

    def get_hit_rate(self) -> float:
        """Hit percentage over all fetches so far."""
        return self._base_stats().hit_rate

    def _base_stats(self) -> "CacheStats":
        return CacheStats(hits=self.hits, misses=self.misses, errors=self.errors)


@dataclass
class CacheStats:
    """Counters and sizes reported by a backend's ``get_stats``."""

    hits: int = 0
    misses: int = 0
    errors: int = 0
    size: int = 0
    memory_usage: int = 0
    oldest_entry: Optional[datetime] = None
    newest_entry: Optional[datetime] = None

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits * 100 / total if total else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "errors": self.errors,
            "hit_rate_percent": self.hit_rate,
            "size": self.size,
            "memory_usage_bytes": self.memory_usage,
            "oldest_entry": self.oldest_entry.isoformat() if self.oldest_entry else None,
            "newest_entry": self.newest_entry.isoformat() if self.newest_entry else None,
        }


class ClientCacheBackend(CacheBackend):
    """Backend that delegates storage to a third-party client object.

    The client may be None when its library is not installed. Construction
    still succeeds and every operation then reports a miss or ``False``.
    """

    # Exception types raised by the wrapped client library
    client_errors: Tuple[Type[BaseException], ...] = ()

    def __init__(self, client: Any = None, key_prefix: str = "", name: Optional[str] = None):
        super().__init__(name)
        self.client = client
        self.key_prefix = key_prefix

    def _make_key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    def _require_client(self) -> Any:
        if self.client is None:
            raise BackendOperationError(
                f"No client configured for the {self.name} driver",
                details={"backend": self.name},
            )
        return self.client

    def _call(self, operation: str, func: Callable[[Any], Any], default: Any) -> Any:
        """Run ``func(client)`` and turn client failures into ``default``."""
        try:
            return func(self._require_client())
        except (BackendOperationError, OSError) + self.client_errors as e:
            self._record_error()
            log_warning(
                "Cache backend operation failed",
                backend=self.name,
                operation=operation,
                error=str(e),
            )
            return default

    def fetch(self, key: str) -> Optional[Any]:
        value = self._call("fetch", lambda client: self._fetch(client, self._make_key(key)), None)
        if value is None:
            self._record_miss()
        else:
            self._record_hit()
        return value

    def contains(self, key: str) -> bool:
        return bool(self._call("contains", lambda client: self._contains(client, self._make_key(key)), False))

    def save(self, key: str, value: Any, ttl_seconds: float = 0) -> bool:
        return bool(self._call("save", lambda client: self._save(client, self._make_key(key), value, ttl_seconds), False))

    def delete(self, key: str) -> bool:
        return bool(self._call("delete", lambda client: self._delete(client, self._make_key(key)), False))

    def delete_all(self) -> bool:
        return bool(self._call("delete_all", self._delete_all, False))

    def get_stats(self) -> Optional[Dict[str, Any]]:
        server_stats = self._call("get_stats", self._server_stats, None)
        if server_stats is None:
            return None
        return {
            **self._base_stats().to_dict(),
            "backend": self.name,
            "key_prefix": self.key_prefix,
            **server_stats,
        }

    # Client hooks implemented by each driver

    @abstractmethod
    def _fetch(self, client: Any, key: str) -> Optional[Any]:
        ...

    @abstractmethod
    def _contains(self, client: Any, key: str) -> bool:
        ...

    @abstractmethod
    def _save(self, client: Any, key: str, value: Any, ttl_seconds: float) -> bool:
        ...

    @abstractmethod
    def _delete(self, client: Any, key: str) -> bool:
        ...

    @abstractmethod
    def _delete_all(self, client: Any) -> bool:
        ...

    @abstractmethod
    def _server_stats(self, client: Any) -> Dict[str, Any]:
        ...


def ttl_to_whole_seconds(ttl_seconds: float) -> int:
    """Round a TTL up to whole seconds; 0 means no expiry."""
    if ttl_seconds <= 0:
        return 0
    return max(1, int(math.ceil(ttl_seconds)))
