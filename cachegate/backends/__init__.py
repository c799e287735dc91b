"""Cache backends behind the facade's capability contract.

- filesystem / phpfile: one file per entry under the cache directory
- array: in-process LRU dictionary
- void: stores nothing
- apcu: host-local store shared between processes (diskcache)
- memcached / memcache: memcached servers through pylibmc / pymemcache
- redis / predis: redis servers through redis-py
"""

from .base import CacheBackend, CacheEntry, CacheStats, ClientCacheBackend
from .file_cache import FileCacheBackend, JsonFileCacheBackend
from .memcache_cache import MemcacheCacheBackend, MemcachedCacheBackend
from .memory_cache import MemoryCacheBackend
from .redis_cache import PredisCacheBackend, RedisCacheBackend
from .shared_cache import SharedCacheBackend
from .void_cache import VoidCacheBackend

__all__ = [
    "CacheBackend",
    "CacheEntry",
    "CacheStats",
    "ClientCacheBackend",
    "FileCacheBackend",
    "JsonFileCacheBackend",
    "MemcacheCacheBackend",
    "MemcachedCacheBackend",
    "MemoryCacheBackend",
    "PredisCacheBackend",
    "RedisCacheBackend",
    "SharedCacheBackend",
    "VoidCacheBackend",
]
