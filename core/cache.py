"""
Simple in-memory caching of detection results, keyed by a project fingerprint.
"""
import hashlib
from typing import Any, Iterable, Optional
from dataclasses import dataclass
from datetime import datetime, timedelta

from models.framework import FrameworkRule
from scan.project_index import ProjectIndex


@dataclass
class CacheEntry:
    """A single cache entry with expiration."""
    value: Any
    expires_at: datetime


class ResultCache:
    """
    Simple in-memory cache for detection results.

    Entries are keyed by `fingerprint()`, so any change to the indexed tree
    or the rule table produces a new key and a fresh detection.
    """

    def __init__(self, default_ttl_seconds: int = 86400):
        """
        Initialize the cache.

        Args:
            default_ttl_seconds: Default time-to-live in seconds (default: 24 hours)
        """
        self._cache: dict[str, CacheEntry] = {}
        self.default_ttl = default_ttl_seconds

    def get(self, key: str) -> Optional[Any]:
        """
        Get a value from the cache.

        Args:
            key: The cache key

        Returns:
            The cached value or None if not found or expired
        """
        entry = self._cache.get(key)
        if entry is None:
            return None

        if datetime.now() > entry.expires_at:
            del self._cache[key]
            return None

        return entry.value

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl
        expires_at = datetime.now() + timedelta(seconds=ttl)
        self._cache[key] = CacheEntry(value=value, expires_at=expires_at)

    def invalidate(self, key: str) -> None:
        """Remove a specific key from the cache."""
        self._cache.pop(key, None)

    def clear(self) -> None:
        self._cache.clear()

    def size(self) -> int:
        return len(self._cache)


def fingerprint(index: ProjectIndex, rules: Iterable[FrameworkRule], extra: str = "") -> str:
    """SHA-256 over the project root, every indexed file's path/size/mtime and the rule table."""
    digest = hashlib.sha256()
    digest.update(index.root.encode("utf-8"))
    for indexed in index.iter_files():
        digest.update(f"{indexed.path}\0{indexed.size}\0{indexed.mtime_ns}\n".encode("utf-8"))
    for rule in rules:
        digest.update(repr(rule).encode("utf-8"))
    digest.update(extra.encode("utf-8"))
    return digest.hexdigest()


# Global cache instance
_global_cache = ResultCache()


def get_cache() -> ResultCache:
    """Get the global cache instance."""
    return _global_cache
