"""Cache facade.

``Cache`` owns one active backend and adds the policy every driver shares:
an enable switch, a default TTL given in minutes, and a full ``clear()`` that
also drops the route cache and the cache directory.
"""

from pathlib import Path
from typing import Any, Dict, Optional, Type, Union

from cachegate.backends import CacheBackend
from cachegate.config import CacheSettings, get_settings
from cachegate.drivers import AvailabilityProber, DriverFactory, list_known
from cachegate.utils import files
from cachegate.utils.logger import log_info, log_warning

ROUTE_CACHE_KEY = "routes.list"


class Cache:
    """Facade over the selected cache driver."""

    def __init__(
        self,
        cache_dir: Union[str, Path],
        driver_name: Optional[str] = None,
        enabled: bool = False,
        default_ttl_minutes: int = 7,
        route_cache_file: Optional[Union[str, Path]] = None,
        prober: Optional[AvailabilityProber] = None,
        settings: Optional[CacheSettings] = None,
    ):
        self._enabled = enabled
        self._default_ttl = default_ttl_minutes
        self._cache_dir = str(cache_dir)
        self._route_cache_file = str(route_cache_file) if route_cache_file else None
        self.prober = prober or AvailabilityProber()
        self.factory = DriverFactory(self._cache_dir, settings=settings, prober=self.prober)
        self._driver = self.create_driver(driver_name)

    @classmethod
    def from_settings(cls, settings: Optional[CacheSettings] = None, **kwargs) -> "Cache":
        """Build a facade from ``CacheSettings`` (the global settings by default)."""
        settings = settings or get_settings()
        return cls(
            cache_dir=settings.dir,
            driver_name=settings.driver,
            enabled=settings.enabled,
            default_ttl_minutes=settings.ttl_minutes,
            route_cache_file=settings.route_file,
            settings=settings,
            **kwargs,
        )

    # Drivers

    def get_supported_drivers(self) -> Dict[str, Type[CacheBackend]]:
        """Registered drivers whose client library is currently available."""
        return {
            name: backend_class
            for name, backend_class in list_known().items()
            if self.is_available(name)
        }

    def is_available(self, driver_name: str) -> bool:
        return self.prober.is_available(driver_name)

    def create_driver(self, name: Optional[str]) -> CacheBackend:
        """Build a backend by name without installing it.

        Raises:
            UnknownDriverError: If the driver name is not valid
        """
        return self.factory.create(name)

    def get_driver(self) -> CacheBackend:
        return self._driver

    def get_driver_name(self) -> Optional[str]:
        """Name of the active driver, or None for a custom backend."""
        driver_class = type(self._driver)
        for name, backend_class in self.get_supported_drivers().items():
            if backend_class is driver_class:
                return name
        return None

    def set_driver(self, driver: Union[CacheBackend, str]) -> None:
        """Replace the active backend with an instance or a driver name.

        Raises:
            UnknownDriverError: If a driver name is given and cannot be built
        """
        if isinstance(driver, CacheBackend):
            new_driver = driver
        else:
            new_driver = self.create_driver(driver)

        old_driver = self._driver
        self._driver = new_driver
        if old_driver is not None and old_driver is not new_driver:
            old_driver.close()

        log_info(
            "Cache driver changed",
            old=type(old_driver).__name__ if old_driver is not None else None,
            new=type(new_driver).__name__,
        )

    # Settings

    def get_cache_dir(self) -> str:
        return self._cache_dir

    def set_status(self, enabled: bool) -> None:
        """Enable (True) or disable (False) cache reads and writes."""
        if enabled != self._enabled:
            log_info("Cache status changed", enabled=enabled)
        self._enabled = enabled

    def get_status(self) -> bool:
        return self._enabled

    def is_disabled(self) -> bool:
        return not self._enabled

    def get_default_ttl(self) -> int:
        """Default TTL in minutes."""
        return self._default_ttl

    def set_default_ttl(self, minutes: int) -> None:
        if minutes < 0:
            raise ValueError("Default TTL must not be negative")
        self._default_ttl = minutes

    def get_route_cache_file(self) -> Optional[str]:
        return self._route_cache_file

    def set_route_cache_file(self, path: Optional[Union[str, Path]]) -> None:
        self._route_cache_file = str(path) if path else None

    # Data operations

    def fetch(self, id: str) -> Optional[Any]:
        """Read an item. Returns None when disabled or missing."""
        if not self._enabled:
            return None
        return self._driver.fetch(id)

    def has(self, id: str) -> bool:
        """Return True if a live entry exists for ``id``."""
        if not self._enabled:
            return False
        return self._driver.contains(id)

    def save(self, id: str, data: Any, ttl_minutes: Optional[int] = None) -> bool:
        """Save an item for ``ttl_minutes`` (the default TTL when omitted)."""
        if not self._enabled:
            return False

        ttl_minutes = self._default_ttl if ttl_minutes is None else ttl_minutes
        return self._driver.save(id, data, ttl_minutes * 60)

    def delete(self, id: str) -> bool:
        """Delete an item. Deleting a missing item succeeds."""
        if not self._enabled:
            return False

        if self._driver.contains(id):
            return self._driver.delete(id)

        return True

    def get_stats(self) -> Optional[Dict[str, Any]]:
        if not self._enabled:
            return None
        return self._driver.get_stats()

    # Route cache

    def has_route_cache(self) -> bool:
        return files.file_exists(self._route_cache_file)

    def clear_route_cache(self) -> bool:
        """Drop the routes entry and delete the route cache file."""
        self._driver.delete(ROUTE_CACHE_KEY)

        if self.has_route_cache():
            return files.delete_file(self._route_cache_file)

        return True

    def clear(self) -> bool:
        """Delete every cache item, the route cache and the cache directory.

        Runs whether or not the cache is enabled. Returns whether the cache
        directory is gone afterwards.
        """
        if not self._driver.delete_all():
            log_warning("Cache driver failed to delete all entries", driver=self.get_driver_name())

        self.clear_route_cache()

        removed = files.delete_directory(self._cache_dir)
        log_info("Cache cleared", cache_dir=self._cache_dir, directory_removed=removed)
        return removed

    def __repr__(self) -> str:
        return (
            f"Cache(driver={self.get_driver_name()!r}, enabled={self._enabled}, "
            f"cache_dir={self._cache_dir!r})"
        )

