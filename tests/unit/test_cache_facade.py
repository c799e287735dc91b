"""Unit tests for the Cache facade."""

import threading
from datetime import timedelta
from unittest.mock import Mock

import pytest

from cachegate.backends import CacheBackend, FileCacheBackend, MemoryCacheBackend, RedisCacheBackend
from cachegate.cache import ROUTE_CACHE_KEY, Cache
from cachegate.config import CacheSettings
from cachegate.errors import UnknownDriverError

pytestmark = [pytest.mark.unit, pytest.mark.facade]


@pytest.fixture
def cache(cache_dir, settings, prober):
    """Enabled facade on the array driver."""
    return Cache(cache_dir, driver_name="array", enabled=True, prober=prober, settings=settings)


@pytest.fixture
def file_cache(cache_dir, settings, prober, tmp_path):
    """Enabled facade on the filesystem driver with a route cache file."""
    return Cache(
        cache_dir,
        enabled=True,
        route_cache_file=tmp_path / "routes.php",
        prober=prober,
        settings=settings,
    )


class TestConstruction:
    """Test facade construction and settings accessors."""

    def test_defaults(self, cache_dir, prober):
        cache = Cache(cache_dir, prober=prober)

        assert isinstance(cache.get_driver(), FileCacheBackend)
        assert cache.get_driver_name() == "filesystem"
        assert cache.get_status() is False
        assert cache.is_disabled() is True
        assert cache.get_default_ttl() == 7
        assert cache.get_cache_dir() == str(cache_dir)
        assert cache.get_route_cache_file() is None

    def test_empty_driver_name_uses_default(self, cache_dir, prober):
        assert Cache(cache_dir, driver_name="", prober=prober).get_driver_name() == "filesystem"

    def test_unknown_driver_raises(self, cache_dir, prober):
        with pytest.raises(UnknownDriverError) as exc_info:
            Cache(cache_dir, driver_name="bogus", prober=prober)

        assert exc_info.value.driver == "bogus"
        assert "array" in exc_info.value.details["supported"]

    def test_from_settings(self, tmp_path):
        settings = CacheSettings(
            dir=str(tmp_path / "c"),
            driver="array",
            enabled=True,
            ttl_minutes=3,
            route_file=str(tmp_path / "routes.php"),
        )
        cache = Cache.from_settings(settings)

        assert cache.get_driver_name() == "array"
        assert cache.get_status() is True
        assert cache.get_default_ttl() == 3
        assert cache.get_route_cache_file() == str(tmp_path / "routes.php")

    def test_from_global_settings(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CACHE_DIR", str(tmp_path / "env-cache"))
        monkeypatch.setenv("CACHE_DRIVER", "void")
        monkeypatch.setenv("CACHE_ENABLED", "true")

        cache = Cache.from_settings()

        assert cache.get_driver_name() == "void"
        assert cache.get_cache_dir() == str(tmp_path / "env-cache")
        assert cache.get_status() is True

    def test_status_toggle(self, cache):
        cache.set_status(False)
        assert cache.is_disabled()
        cache.set_status(True)
        assert cache.get_status()

    def test_default_ttl_must_not_be_negative(self, cache):
        cache.set_default_ttl(15)
        assert cache.get_default_ttl() == 15
        with pytest.raises(ValueError):
            cache.set_default_ttl(-1)


class TestDisabledCache:
    """A disabled cache never reads or writes through the driver."""

    @pytest.fixture
    def disabled(self, cache):
        cache.get_driver().save("present", "value", 0)
        cache.set_status(False)
        return cache

    def test_fetch_returns_none(self, disabled):
        assert disabled.fetch("present") is None
        assert disabled.fetch("absent") is None

    def test_has_returns_false(self, disabled):
        assert disabled.has("present") is False

    def test_save_returns_false(self, disabled):
        assert disabled.save("new", "value") is False
        assert not disabled.get_driver().contains("new")

    def test_delete_returns_false(self, disabled):
        assert disabled.delete("present") is False
        assert disabled.delete("absent") is False
        assert disabled.get_driver().contains("present")

    def test_stats_are_none(self, disabled):
        assert disabled.get_stats() is None

    def test_driver_untouched(self, cache_dir, prober):
        driver = Mock(spec=CacheBackend)
        cache = Cache(cache_dir, driver_name="void", prober=prober)
        cache.set_driver(driver)

        cache.fetch("k")
        cache.has("k")
        cache.save("k", "v")
        cache.delete("k")
        cache.get_stats()

        driver.fetch.assert_not_called()
        driver.contains.assert_not_called()
        driver.save.assert_not_called()
        driver.delete.assert_not_called()
        driver.get_stats.assert_not_called()


class TestEnabledCache:
    """Read/write behaviour when the cache is enabled."""

    def test_round_trip(self, cache):
        assert cache.save("user:1", {"name": "Ada"})
        assert cache.has("user:1")
        assert cache.fetch("user:1") == {"name": "Ada"}

    def test_entry_expires_after_ttl(self, cache):
        cache.save("user:1", "Ada", ttl_minutes=1)
        entry = cache.get_driver().cache["user:1"]
        entry.timestamp -= timedelta(minutes=1, seconds=1)

        assert cache.fetch("user:1") is None
        assert not cache.has("user:1")

    def test_entry_alive_before_ttl(self, cache):
        cache.save("user:1", "Ada", ttl_minutes=1)
        entry = cache.get_driver().cache["user:1"]
        entry.timestamp -= timedelta(seconds=59)

        assert cache.fetch("user:1") == "Ada"

    def test_explicit_ttl_converted_to_seconds(self, cache, recording_backend):
        cache.set_driver(recording_backend)
        cache.save("id", "v", ttl_minutes=2)
        assert recording_backend.saved_ttls["id"] == 120

    def test_default_ttl_used_when_omitted(self, cache, recording_backend):
        cache.set_driver(recording_backend)
        cache.save("id", "v")
        assert recording_backend.saved_ttls["id"] == 7 * 60

    def test_zero_ttl_passed_through(self, cache, recording_backend):
        cache.set_driver(recording_backend)
        cache.save("id", "v", ttl_minutes=0)
        assert recording_backend.saved_ttls["id"] == 0

    def test_save_reports_backend_result(self, cache):
        driver = Mock(spec=CacheBackend)
        driver.save.return_value = False
        cache.set_driver(driver)

        assert cache.save("id", "v", ttl_minutes=2) is False
        driver.save.assert_called_once_with("id", "v", 120)

    def test_delete_existing(self, cache):
        cache.save("id", "v")
        assert cache.delete("id") is True
        assert cache.fetch("id") is None

    def test_delete_missing_is_success(self, cache):
        assert cache.delete("never-saved") is True

    def test_delete_reports_backend_failure(self, cache):
        driver = Mock(spec=CacheBackend)
        driver.contains.return_value = True
        driver.delete.return_value = False
        cache.set_driver(driver)

        assert cache.delete("id") is False

    def test_stats(self, cache):
        cache.save("id", "v")
        cache.fetch("id")
        stats = cache.get_stats()
        assert stats["size"] == 1
        assert stats["hits"] == 1

    def test_backend_failure_is_a_miss(self, cache):
        client = Mock()
        client.get.side_effect = OSError("connection refused")
        client.set.side_effect = OSError("connection refused")
        cache.set_driver(RedisCacheBackend(client=client))

        assert cache.fetch("id") is None
        assert cache.save("id", "v") is False


class TestDriverSelection:
    """Test set_driver / get_driver_name / get_supported_drivers."""

    def test_set_driver_by_name(self, cache_dir, prober):
        cache = Cache(cache_dir, prober=prober)
        cache.set_driver("array")

        assert isinstance(cache.get_driver(), MemoryCacheBackend)
        assert cache.get_driver_name() == "array"

    def test_set_driver_with_custom_handle(self, cache, recording_backend):
        cache.set_driver(recording_backend)

        assert cache.get_driver() is recording_backend
        assert cache.get_driver_name() is None

    def test_set_driver_with_registered_class_instance(self, cache):
        cache.set_driver(MemoryCacheBackend(max_size=5))
        assert cache.get_driver_name() == "array"

    def test_set_driver_closes_previous(self, cache, recording_backend):
        cache.set_driver(recording_backend)
        cache.set_driver("void")
        assert recording_backend.closed

    def test_set_unknown_driver_keeps_current(self, cache):
        current = cache.get_driver()
        with pytest.raises(UnknownDriverError):
            cache.set_driver("bogus")
        assert cache.get_driver() is current

    def test_subclass_of_registered_driver_has_no_name(self, cache):
        class CustomMemory(MemoryCacheBackend):
            pass

        cache.set_driver(CustomMemory())
        assert cache.get_driver_name() is None

    def test_supported_drivers_respect_prober(self, cache_dir, make_prober):
        cache = Cache(cache_dir, prober=make_prober(missing={"redis", "pylibmc"}))
        supported = cache.get_supported_drivers()

        assert "redis" not in supported
        assert "predis" not in supported
        assert "memcached" not in supported
        assert supported["array"] is MemoryCacheBackend
        assert set(supported) == {"filesystem", "phpfile", "apcu", "array", "void", "memcache"}
        assert cache.is_available("memcache")
        assert not cache.is_available("redis")

    def test_explicit_driver_wins_over_bad_environment(self, cache_dir, prober, monkeypatch):
        monkeypatch.setenv("CACHE_DRIVER", "bogus")
        cache = Cache(cache_dir, driver_name="array", enabled=True, prober=prober)

        assert cache.get_driver_name() == "array"
        assert cache.save("id", "v")

    def test_unpicklable_value_on_shared_driver(self, cache_dir, settings, prober):
        cache = Cache(cache_dir, driver_name="apcu", enabled=True, prober=prober, settings=settings)
        try:
            assert cache.save("lock", threading.Lock()) is False
            assert cache.fetch("lock") is None
        finally:
            cache.get_driver().close()

    def test_driver_name_none_when_library_missing(self, cache_dir, make_prober):
        cache = Cache(cache_dir, driver_name="redis", prober=make_prober(missing={"redis"}))
        assert isinstance(cache.get_driver(), RedisCacheBackend)
        assert cache.get_driver_name() is None

    def test_missing_client_defers_failure(self, cache_dir, make_prober):
        cache = Cache(cache_dir, driver_name="redis", enabled=True, prober=make_prober(missing={"redis"}))

        assert cache.save("id", "v") is False
        assert cache.fetch("id") is None
        assert cache.has("id") is False

    def test_create_driver_does_not_install(self, cache):
        driver = cache.create_driver("void")
        assert cache.get_driver() is not driver
        assert cache.get_driver_name() == "array"


class TestClear:
    """Test clear() and the route cache."""

    def _write_route_file(self, cache):
        path = cache.get_route_cache_file()
        with open(path, "w") as f:
            f.write("routes")
        return path

    def test_has_route_cache(self, file_cache):
        assert not file_cache.has_route_cache()
        self._write_route_file(file_cache)
        assert file_cache.has_route_cache()

    def test_has_route_cache_without_file_configured(self, cache):
        assert cache.has_route_cache() is False

    def test_clear_removes_everything(self, file_cache, cache_dir):
        file_cache.save("a", 1)
        file_cache.save("b", 2)
        file_cache.save(ROUTE_CACHE_KEY, ["/home"])
        self._write_route_file(file_cache)

        assert file_cache.clear() is True

        assert not file_cache.has("a")
        assert not file_cache.has("b")
        assert not file_cache.has(ROUTE_CACHE_KEY)
        assert not file_cache.has_route_cache()
        assert not cache_dir.exists()

    def test_cache_usable_after_clear(self, file_cache):
        file_cache.save("a", 1)
        file_cache.clear()

        assert file_cache.save("a", 2)
        assert file_cache.fetch("a") == 2

    def test_clear_ignores_status(self, file_cache, cache_dir):
        file_cache.save("a", 1)
        self._write_route_file(file_cache)
        file_cache.set_status(False)

        assert file_cache.clear() is True

        file_cache.set_status(True)
        assert not file_cache.has("a")
        assert not file_cache.has_route_cache()
        assert not cache_dir.exists()

    def test_clear_empties_memory_driver(self, cache, cache_dir):
        cache.save("a", 1)
        assert cache.clear() is True
        assert not cache.has("a")
        assert cache.get_stats()["size"] == 0

    def test_clear_returns_directory_result(self, cache, cache_dir, monkeypatch):
        monkeypatch.setattr("cachegate.utils.files.delete_directory", lambda path: False)
        assert cache.clear() is False

    def test_clear_route_cache_only(self, file_cache, cache_dir):
        file_cache.save("a", 1)
        file_cache.save(ROUTE_CACHE_KEY, ["/home"])
        self._write_route_file(file_cache)

        assert file_cache.clear_route_cache() is True

        assert file_cache.has("a")
        assert not file_cache.has(ROUTE_CACHE_KEY)
        assert not file_cache.has_route_cache()
        assert cache_dir.exists()

    def test_set_route_cache_file(self, cache, tmp_path):
        route_file = tmp_path / "other-routes.php"
        route_file.write_text("routes")

        cache.set_route_cache_file(route_file)
        assert cache.has_route_cache()

        cache.set_route_cache_file(None)
        assert cache.get_route_cache_file() is None
        assert not cache.has_route_cache()
