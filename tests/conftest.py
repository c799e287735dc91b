"""Pytest configuration and fixtures for cachegate tests."""

import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import pytest

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import cachegate.config as config_module  # noqa: E402
from cachegate.backends import CacheBackend  # noqa: E402
from cachegate.config import CacheSettings  # noqa: E402
from cachegate.drivers import AvailabilityProber  # noqa: E402


@pytest.fixture(autouse=True)
def clean_env():
    """Strip CACHE_* variables and reset the global settings around each test."""
    original_env = os.environ.copy()
    for key in list(os.environ):
        if key.upper().startswith("CACHE_"):
            del os.environ[key]
    config_module._settings = None

    yield

    os.environ.clear()
    os.environ.update(original_env)
    config_module._settings = None


@pytest.fixture
def cache_dir(tmp_path):
    """Cache directory that does not exist yet."""
    return tmp_path / "cache"


@pytest.fixture
def settings(tmp_path, cache_dir):
    """Settings with every on-disk location inside tmp_path."""
    return CacheSettings(
        dir=str(cache_dir),
        shared_dir=str(tmp_path / "shared"),
        max_memory_size=50,
    )


@pytest.fixture
def prober():
    """Prober that reports every client library as installed."""
    return StubProber()


class StubProber(AvailabilityProber):
    """Prober with a fixed answer per module instead of inspecting sys.path."""

    def __init__(self, missing=()):
        super().__init__(missing)

    def module_loaded(self, module: str) -> bool:
        return module not in self.missing


class RecordingBackend(CacheBackend):
    """Custom backend that is not part of the driver registry."""

    name = "recording"

    def __init__(self):
        super().__init__()
        self.items: Dict[str, Any] = {}
        self.saved_ttls: Dict[str, float] = {}
        self.closed = False

    def fetch(self, key: str) -> Optional[Any]:
        return self.items.get(key)

    def contains(self, key: str) -> bool:
        return key in self.items

    def save(self, key: str, value: Any, ttl_seconds: float = 0) -> bool:
        self.items[key] = value
        self.saved_ttls[key] = ttl_seconds
        return True

    def delete(self, key: str) -> bool:
        return self.items.pop(key, None) is not None

    def delete_all(self) -> bool:
        self.items.clear()
        return True

    def get_stats(self) -> Optional[Dict[str, Any]]:
        return {"size": len(self.items)}

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def recording_backend():
    return RecordingBackend()


@pytest.fixture
def make_prober():
    """Build a prober that reports the given modules as missing."""
    return StubProber
