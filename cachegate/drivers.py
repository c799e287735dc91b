"""Driver registry, availability probing and driver construction."""

import importlib.util
from enum import Enum
from typing import Dict, Iterable, Optional, Type

from cachegate.backends import (
    CacheBackend,
    FileCacheBackend,
    JsonFileCacheBackend,
    MemcacheCacheBackend,
    MemcachedCacheBackend,
    MemoryCacheBackend,
    PredisCacheBackend,
    RedisCacheBackend,
    SharedCacheBackend,
    VoidCacheBackend,
)
from cachegate.backends.memcache_cache import create_pylibmc_client, create_pymemcache_client
from cachegate.backends.redis_cache import create_redis_client
from cachegate.backends.shared_cache import open_shared_store
from cachegate.config import CacheSettings
from cachegate.errors import UnknownDriverError
from cachegate.utils.logger import log_error, log_info, log_warning


class DriverName(str, Enum):
    """Cache driver names."""

    FILESYSTEM = "filesystem"
    PHPFILE = "phpfile"
    APCU = "apcu"
    ARRAY = "array"
    VOID = "void"
    MEMCACHED = "memcached"
    MEMCACHE = "memcache"
    REDIS = "redis"
    PREDIS = "predis"


DEFAULT_DRIVER = DriverName.FILESYSTEM.value

DRIVERS: Dict[str, Type[CacheBackend]] = {
    DriverName.FILESYSTEM.value: FileCacheBackend,
    DriverName.PHPFILE.value: JsonFileCacheBackend,
    DriverName.APCU.value: SharedCacheBackend,
    DriverName.MEMCACHED.value: MemcachedCacheBackend,
    DriverName.MEMCACHE.value: MemcacheCacheBackend,
    DriverName.ARRAY.value: MemoryCacheBackend,
    DriverName.VOID.value: VoidCacheBackend,
    DriverName.REDIS.value: RedisCacheBackend,
    DriverName.PREDIS.value: PredisCacheBackend,
}

# Drivers that need an optional client library, keyed to its import name
REQUIRED_MODULES: Dict[str, str] = {
    DriverName.APCU.value: "diskcache",
    DriverName.MEMCACHED.value: "pylibmc",
    DriverName.MEMCACHE.value: "pymemcache",
    DriverName.REDIS.value: "redis",
    DriverName.PREDIS.value: "redis",
}


def list_known() -> Dict[str, Type[CacheBackend]]:
    """Return every registered driver name and its backend class."""
    return dict(DRIVERS)


class AvailabilityProber:
    """Reports whether a driver's client library is importable.

    ``missing`` forces modules to be reported as absent, which lets tests
    exercise the unavailable paths without touching the interpreter.
    """

    def __init__(self, missing: Iterable[str] = ()):
        self.missing = set(missing)

    def module_loaded(self, module: str) -> bool:
        if module in self.missing:
            return False
        return importlib.util.find_spec(module) is not None

    def is_available(self, name: str) -> bool:
        if name not in DRIVERS:
            return False
        module = REQUIRED_MODULES.get(name)
        if module is None:
            return True
        return self.module_loaded(module)


class DriverFactory:
    """Builds configured backend instances from driver names."""

    def __init__(
        self,
        cache_dir: str,
        settings: Optional[CacheSettings] = None,
        prober: Optional[AvailabilityProber] = None,
    ):
        self.cache_dir = cache_dir
        # defaults only; CACHE_* variables apply through Cache.from_settings
        self.settings = settings or CacheSettings.model_construct(dir=cache_dir)
        self.prober = prober or AvailabilityProber()

    def create(self, name: Optional[str]) -> CacheBackend:
        """Create the backend for ``name``.

        Raises:
            UnknownDriverError: If the name is not registered or the backend
                cannot be constructed
        """
        name = DEFAULT_DRIVER if not name else str(getattr(name, "value", name))

        if name not in DRIVERS:
            log_error("Unknown cache driver", driver=name, supported=list(DRIVERS))
            raise UnknownDriverError(name, details={"supported": list(DRIVERS)})

        try:
            backend = self._build(name)
        except UnknownDriverError:
            raise
        except Exception as e:
            log_error("Failed to create cache driver", driver=name, error=str(e))
            raise UnknownDriverError(name, details={"error": str(e)}) from e

        log_info("Cache driver created", driver=name, backend=type(backend).__name__)
        return backend

    def _client_or_none(self, name: str, build):
        """Build a network client, or None when its library is missing."""
        if not self.prober.is_available(name):
            log_warning(
                "Client library missing, driver will report misses",
                driver=name,
                module=REQUIRED_MODULES.get(name),
            )
            return None
        return build()

    def _build(self, name: str) -> CacheBackend:
        settings = self.settings
        prefix = settings.key_prefix

        if name == DriverName.FILESYSTEM.value:
            return FileCacheBackend(cache_dir=self.cache_dir)

        elif name == DriverName.PHPFILE.value:
            return JsonFileCacheBackend(cache_dir=self.cache_dir)

        elif name == DriverName.ARRAY.value:
            return MemoryCacheBackend(max_size=settings.max_memory_size)

        elif name == DriverName.VOID.value:
            return VoidCacheBackend()

        elif name == DriverName.APCU.value:
            client = self._client_or_none(name, lambda: open_shared_store(settings.shared_dir))
            return SharedCacheBackend(client=client, key_prefix=prefix)

        elif name == DriverName.MEMCACHED.value:
            client = self._client_or_none(
                name, lambda: create_pylibmc_client(settings.get_memcached_servers())
            )
            return MemcachedCacheBackend(client=client, key_prefix=prefix)

        elif name == DriverName.MEMCACHE.value:
            client = self._client_or_none(
                name, lambda: create_pymemcache_client(settings.memcache_host, settings.memcache_port)
            )
            return MemcacheCacheBackend(client=client, key_prefix=prefix)

        elif name == DriverName.REDIS.value:
            client = self._client_or_none(name, create_redis_client)
            return RedisCacheBackend(client=client, key_prefix=prefix)

        elif name == DriverName.PREDIS.value:
            client = self._client_or_none(name, lambda: create_redis_client(settings.redis_url))
            return PredisCacheBackend(client=client, key_prefix=prefix)

        raise UnknownDriverError(name)
