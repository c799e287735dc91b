"""Redis-based cache backends."""

import pickle
from typing import Any, Dict, Optional

from .base import SERIALIZATION_ERRORS, ClientCacheBackend

try:
    import redis
    REDIS_AVAILABLE = True
except ImportError:
    redis = None
    REDIS_AVAILABLE = False


def create_redis_client(url: Optional[str] = None) -> Optional[Any]:
    """Build a redis client.

    Without ``url`` this is the bare default client (localhost:6379, db 0);
    otherwise the client is configured from the URL. Connections are opened
    lazily on the first command.
    """
    if not REDIS_AVAILABLE:
        return None
    if url:
        return redis.Redis.from_url(url, decode_responses=False)
    return redis.Redis()


class RedisCacheBackend(ClientCacheBackend):
    """Redis-based cache backend for distributed caching."""

    name = "redis"
    client_errors = ((redis.RedisError,) if REDIS_AVAILABLE else ()) + SERIALIZATION_ERRORS

    def _fetch(self, client: Any, key: str) -> Optional[Any]:
        payload = client.get(key)
        if payload is None:
            return None
        return pickle.loads(payload)  # nosec B301

    def _contains(self, client: Any, key: str) -> bool:
        return client.exists(key) > 0

    def _save(self, client: Any, key: str, value: Any, ttl_seconds: float) -> bool:
        payload = pickle.dumps(value)
        if ttl_seconds > 0:
            return bool(client.set(key, payload, px=max(1, int(ttl_seconds * 1000))))
        return bool(client.set(key, payload))

    def _delete(self, client: Any, key: str) -> bool:
        return client.delete(key) > 0

    def _delete_all(self, client: Any) -> bool:
        """Delete every key under our prefix, or flush the db without one."""
        if not self.key_prefix:
            return bool(client.flushdb())

        batch = []
        for key in client.scan_iter(match=f"{self.key_prefix}*", count=100):
            batch.append(key)
            if len(batch) >= 100:
                client.delete(*batch)
                batch = []
        if batch:
            client.delete(*batch)
        return True

    def _server_stats(self, client: Any) -> Dict[str, Any]:
        info = client.info()
        return {
            "server_hits": info.get("keyspace_hits"),
            "server_misses": info.get("keyspace_misses"),
            "uptime_seconds": info.get("uptime_in_seconds"),
            "memory_usage_bytes": info.get("used_memory"),
            "memory_available_bytes": info.get("maxmemory"),
            "redis_version": info.get("redis_version"),
        }

    def close(self) -> None:
        if self.client is not None:
            self.client.close()


class PredisCacheBackend(RedisCacheBackend):
    """Redis backend whose client is configured from a connection URL."""

    name = "predis"
