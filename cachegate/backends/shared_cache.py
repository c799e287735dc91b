"""Host-local shared cache backend.

Serves the ``apcu`` driver: a store shared by every process on the machine.
Storage is delegated to :mod:`diskcache`, which keeps entries in a SQLite
index plus memory-mapped files under one directory.
"""

import sqlite3
from typing import Any, Dict, Optional

from .base import SERIALIZATION_ERRORS, ClientCacheBackend

try:
    import diskcache
    from diskcache.core import ENOVAL
    DISKCACHE_AVAILABLE = True
except ImportError:
    diskcache = None
    ENOVAL = None
    DISKCACHE_AVAILABLE = False


def open_shared_store(directory: str) -> Optional[Any]:
    """Open the diskcache store at ``directory``, or None without diskcache."""
    if not DISKCACHE_AVAILABLE:
        return None
    return diskcache.Cache(directory, statistics=True)


class SharedCacheBackend(ClientCacheBackend):
    """Cache backend on top of a ``diskcache.Cache``."""

    name = "apcu"
    client_errors = (sqlite3.Error,) + ((diskcache.Timeout,) if DISKCACHE_AVAILABLE else ()) + SERIALIZATION_ERRORS

    def _fetch(self, client: Any, key: str) -> Optional[Any]:
        value = client.get(key, default=ENOVAL)
        return None if value is ENOVAL else value

    def _contains(self, client: Any, key: str) -> bool:
        return key in client

    def _save(self, client: Any, key: str, value: Any, ttl_seconds: float) -> bool:
        expire = ttl_seconds if ttl_seconds > 0 else None
        return bool(client.set(key, value, expire=expire))

    def _delete(self, client: Any, key: str) -> bool:
        return bool(client.delete(key))

    def _delete_all(self, client: Any) -> bool:
        if self.key_prefix:
            for key in list(client.iterkeys()):
                if isinstance(key, str) and key.startswith(self.key_prefix):
                    client.delete(key)
        else:
            client.clear()
        return True

    def _server_stats(self, client: Any) -> Dict[str, Any]:
        hits, misses = client.stats(enable=True, reset=False)
        return {
            "size": len(client),
            "memory_usage_bytes": client.volume(),
            "store_hits": hits,
            "store_misses": misses,
            "directory": client.directory,
        }

    def cleanup_expired(self) -> int:
        return int(self._call("cleanup_expired", lambda client: client.expire(), 0))

    def close(self) -> None:
        if self.client is not None:
            self.client.close()
