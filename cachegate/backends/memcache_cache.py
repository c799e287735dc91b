"""Memcached-backed cache backends.

``memcached`` wraps a :mod:`pylibmc` client (libmemcached binding) and
``memcache`` wraps a pure-Python :mod:`pymemcache` client. Both pickle values
through their client and rely on the server for expiration.
"""

from typing import Any, Dict, List, Optional, Tuple

from .base import SERIALIZATION_ERRORS, ClientCacheBackend, ttl_to_whole_seconds

try:
    import pylibmc
    PYLIBMC_AVAILABLE = True
except ImportError:
    pylibmc = None
    PYLIBMC_AVAILABLE = False

try:
    from pymemcache import serde
    from pymemcache.client.base import Client as PymemcacheClient
    from pymemcache.exceptions import MemcacheError
    PYMEMCACHE_AVAILABLE = True
except ImportError:
    serde = None
    PymemcacheClient = None
    MemcacheError = None
    PYMEMCACHE_AVAILABLE = False


def create_pylibmc_client(servers: Optional[List[str]] = None) -> Optional[Any]:
    """Build a pylibmc client; an empty server list gives a bare client."""
    if not PYLIBMC_AVAILABLE:
        return None
    return pylibmc.Client(list(servers or []), binary=True)


def create_pymemcache_client(host: str = "localhost", port: int = 11211) -> Optional[Any]:
    """Build a pymemcache client for ``host:port``. Connects lazily."""
    if not PYMEMCACHE_AVAILABLE:
        return None
    return PymemcacheClient(
        (host, port),
        serde=serde.pickle_serde,
        default_noreply=False,
    )


def _decode_stats(raw: Dict[Any, Any]) -> Dict[str, Any]:
    decoded = {}
    for key, value in raw.items():
        if isinstance(key, bytes):
            key = key.decode("utf-8", "replace")
        if isinstance(value, bytes):
            value = value.decode("utf-8", "replace")
        decoded[key] = value
    return decoded


def _summarize(server_stats: Dict[str, Any]) -> Dict[str, Any]:
    """Pick the counters that are comparable across memcached servers."""
    return {
        "server_hits": server_stats.get("get_hits"),
        "server_misses": server_stats.get("get_misses"),
        "uptime_seconds": server_stats.get("uptime"),
        "memory_usage_bytes": server_stats.get("bytes"),
        "memory_available_bytes": server_stats.get("limit_maxbytes"),
    }


class MemcachedCacheBackend(ClientCacheBackend):
    """Cache backend on a ``pylibmc.Client``."""

    name = "memcached"
    client_errors = ((pylibmc.Error,) if PYLIBMC_AVAILABLE else ()) + SERIALIZATION_ERRORS

    def _fetch(self, client: Any, key: str) -> Optional[Any]:
        return client.get(key)

    def _contains(self, client: Any, key: str) -> bool:
        return client.get(key) is not None

    def _save(self, client: Any, key: str, value: Any, ttl_seconds: float) -> bool:
        return bool(client.set(key, value, time=ttl_to_whole_seconds(ttl_seconds)))

    def _delete(self, client: Any, key: str) -> bool:
        return bool(client.delete(key))

    def _delete_all(self, client: Any) -> bool:
        client.flush_all()
        return True

    def _server_stats(self, client: Any) -> Dict[str, Any]:
        servers: List[Tuple[Any, Dict[Any, Any]]] = client.get_stats()
        if not servers:
            return {"servers": {}}
        per_server = {
            (name.decode() if isinstance(name, bytes) else str(name)): _decode_stats(raw)
            for name, raw in servers
        }
        first = next(iter(per_server.values()))
        return {**_summarize(first), "servers": per_server}


class MemcacheCacheBackend(ClientCacheBackend):
    """Cache backend on a ``pymemcache`` client."""

    name = "memcache"
    client_errors = ((MemcacheError,) if PYMEMCACHE_AVAILABLE else ()) + SERIALIZATION_ERRORS

    def _fetch(self, client: Any, key: str) -> Optional[Any]:
        return client.get(key)

    def _contains(self, client: Any, key: str) -> bool:
        return client.get(key) is not None

    def _save(self, client: Any, key: str, value: Any, ttl_seconds: float) -> bool:
        return bool(client.set(key, value, expire=ttl_to_whole_seconds(ttl_seconds)))

    def _delete(self, client: Any, key: str) -> bool:
        return bool(client.delete(key, noreply=False))

    def _delete_all(self, client: Any) -> bool:
        return bool(client.flush_all(noreply=False))

    def _server_stats(self, client: Any) -> Dict[str, Any]:
        server_stats = _decode_stats(client.stats())
        return {**_summarize(server_stats), "server": server_stats}

    def close(self) -> None:
        if self.client is not None:
            self.client.close()
