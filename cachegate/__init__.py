"""Pluggable cache facade.

A single ``Cache`` object selects one of several drivers:
- filesystem / phpfile: persistent files under the cache directory
- array: in-process memory
- apcu: host-local store shared between processes
- memcached / memcache / redis / predis: network cache servers
- void: stores nothing

and adds an enable switch, TTLs in minutes and a full clear on top.
"""

from .backends import CacheBackend
from .cache import ROUTE_CACHE_KEY, Cache
from .config import CacheSettings, get_settings, reload_settings
from .drivers import DEFAULT_DRIVER, AvailabilityProber, DriverFactory, DriverName, list_known
from .errors import BackendOperationError, CacheGateError, UnknownDriverError

__all__ = [
    "AvailabilityProber",
    "BackendOperationError",
    "Cache",
    "CacheBackend",
    "CacheGateError",
    "CacheSettings",
    "DEFAULT_DRIVER",
    "DriverFactory",
    "DriverName",
    "ROUTE_CACHE_KEY",
    "UnknownDriverError",
    "get_settings",
    "list_known",
    "reload_settings",
]
