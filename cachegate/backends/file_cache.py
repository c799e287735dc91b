"""File-based persistent cache backends.

``FileCacheBackend`` pickles each value into its own file under the cache
directory. ``JsonFileCacheBackend`` stores JSON instead, so entries stay
human readable at the cost of only accepting JSON-compatible values. Both keep
a ``metadata.json`` index with save time, TTL and size per key.
"""

import hashlib
import json
import pickle
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from cachegate.utils.logger import log_warning
from .base import CacheBackend

_LOAD_ERRORS = (OSError, EOFError, KeyError, TypeError, ValueError, pickle.UnpicklingError)
_DUMP_ERRORS = (OSError, TypeError, ValueError, AttributeError, pickle.PicklingError)

INDEX_FILE = "metadata.json"


class FileCacheBackend(CacheBackend):
    """One file per entry, plus an index that survives restarts.

    The cache directory is created on the first write, so a backend can be
    pointed at a directory that ``Cache.clear()`` has just removed.
    """

    name = "filesystem"
    suffix = ".pkl"

    def __init__(self, cache_dir: str, name: Optional[str] = None):
        super().__init__(name)
        self.cache_dir = Path(cache_dir)
        self.metadata_file = self.cache_dir / INDEX_FILE
        self._lock = threading.RLock()
        self.metadata: Dict[str, Dict[str, Any]] = self._read_index()

    def _serialize(self, value: Any) -> bytes:
        return pickle.dumps(value)

    def _deserialize(self, payload: bytes) -> Any:
        return pickle.loads(payload)  # nosec B301

    # Index

    def _read_index(self) -> Dict[str, Dict[str, Any]]:
        try:
            index = json.loads(self.metadata_file.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            log_warning("Ignoring unreadable cache metadata", path=str(self.metadata_file), error=str(e))
            return {}
        return index if isinstance(index, dict) else {}

    def _write_index(self) -> None:
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.metadata_file.write_text(json.dumps(self.metadata, indent=2, default=str), encoding="utf-8")

    def _entry_path(self, key: str) -> Path:
        digest = hashlib.md5(key.encode(), usedforsecurity=False).hexdigest()
        return self.cache_dir / f"cache_{digest}{self.suffix}"

    def _sync(self) -> None:
        """Pick up entries written by other instances sharing the directory."""
        self.metadata = self._read_index()

    def _expired(self, meta: Dict[str, Any]) -> bool:
        ttl = meta.get("ttl_seconds", 0)
        if ttl <= 0:
            return False
        saved_at = datetime.fromisoformat(meta.get("timestamp", "1970-01-01"))
        return (datetime.now() - saved_at).total_seconds() > ttl

    def _live_meta(self, key: str) -> Optional[Dict[str, Any]]:
        """Index record for a live entry, or None.

        Expired entries are removed. Unindexed keys are only reported as
        missing; their files may belong to a write this instance has not seen.
        """
        meta = self.metadata.get(key)
        if meta is not None and self._expired(meta):
            self._forget(key)
            return None
        return meta

    def _forget(self, key: str) -> bool:
        """Drop the entry file and index record. Returns True if either existed."""
        path = self._entry_path(key)
        had_file = path.exists()
        if had_file:
            path.unlink()

        had_meta = self.metadata.pop(key, None) is not None
        if had_meta:
            self._write_index()
        return had_file or had_meta

    # Contract

    def fetch(self, key: str) -> Optional[Any]:
        with self._lock:
            try:
                self._sync()
                path = self._entry_path(key)
                meta = self._live_meta(key)
                if meta is None or not path.exists():
                    self._record_miss()
                    return None
                value = self._deserialize(path.read_bytes())
            except _LOAD_ERRORS as e:
                self._record_error()
                log_warning("File cache read failed", backend=self.name, key=key[:50], error=str(e))
                return None

            meta["access_count"] = meta.get("access_count", 0) + 1
            try:
                self._write_index()
            except OSError as e:
                log_warning("File cache index update failed", backend=self.name, error=str(e))
            self._record_hit()
            return value

    def contains(self, key: str) -> bool:
        with self._lock:
            try:
                self._sync()
                return self._live_meta(key) is not None and self._entry_path(key).exists()
            except (OSError, ValueError):
                self._record_error()
                return False

    def save(self, key: str, value: Any, ttl_seconds: float = 0) -> bool:
        with self._lock:
            path = self._entry_path(key)
            try:
                # serialize before touching disk so a bad value keeps the old file
                payload = self._serialize(value)
                self.cache_dir.mkdir(parents=True, exist_ok=True)
                path.write_bytes(payload)
                self._sync()
                self.metadata[key] = {
                    "timestamp": datetime.now().isoformat(),
                    "ttl_seconds": ttl_seconds,
                    "access_count": 0,
                    "size_bytes": len(payload),
                }
                self._write_index()
            except _DUMP_ERRORS as e:
                self._record_error()
                log_warning("File cache write failed", backend=self.name, key=key[:50], error=str(e))
                return False
            return True

    def delete(self, key: str) -> bool:
        with self._lock:
            try:
                self._sync()
                self._forget(key)
            except OSError as e:
                self._record_error()
                log_warning("File cache delete failed", backend=self.name, key=key[:50], error=str(e))
                return False
            return True

    def delete_all(self) -> bool:
        """Remove every entry file and the index."""
        with self._lock:
            try:
                if self.cache_dir.is_dir():
                    for path in self.cache_dir.glob(f"cache_*{self.suffix}"):
                        path.unlink()
                self.metadata_file.unlink(missing_ok=True)
            except OSError as e:
                self._record_error()
                log_warning("File cache clear failed", backend=self.name, error=str(e))
                return False
            finally:
                self.metadata = {}
            return True

    def cleanup_expired(self) -> int:
        with self._lock:
            self._sync()
            stale = [key for key, meta in list(self.metadata.items()) if self._expired(meta)]
            for key in stale:
                self._forget(key)
        return len(stale)

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            self._sync()
            stats = self._base_stats()
            stats.size = len(self.metadata)
            saved = [
                datetime.fromisoformat(meta["timestamp"])
                for meta in self.metadata.values()
                if "timestamp" in meta
            ]
            if saved:
                stats.oldest_entry, stats.newest_entry = min(saved), max(saved)
            stats.memory_usage = self.get_disk_usage()

            summary = stats.to_dict()
            summary.update(
                backend=self.name,
                cache_dir=str(self.cache_dir),
                disk_usage_bytes=stats.memory_usage,
            )
            return summary

    def get_disk_usage(self) -> int:
        """Bytes used by entry files according to the index."""
        return sum(meta.get("size_bytes", 0) for meta in self.metadata.values())


class JsonFileCacheBackend(FileCacheBackend):
    """File cache that stores values as JSON documents."""

    name = "phpfile"
    suffix = ".json"

    def _serialize(self, value: Any) -> bytes:
        return json.dumps({"value": value}).encode("utf-8")

    def _deserialize(self, payload: bytes) -> Any:
        return json.loads(payload.decode("utf-8"))["value"]
