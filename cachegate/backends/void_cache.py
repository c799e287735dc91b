"""No-op backend: accepts every write and never returns anything."""

from typing import Any, Dict, Optional

from .base import CacheBackend


class VoidCacheBackend(CacheBackend):
    """Cache backend that stores nothing."""

    name = "void"

    def fetch(self, key: str) -> Optional[Any]:
        self._record_miss()
        return None

    def contains(self, key: str) -> bool:
        return False

    def save(self, key: str, value: Any, ttl_seconds: float = 0) -> bool:
        return True

    def delete(self, key: str) -> bool:
        return True

    def delete_all(self) -> bool:
        return True

    def get_stats(self) -> Optional[Dict[str, Any]]:
        return None
