"""Permission cache service with TTL support.

Provides in-memory caching of each user's effective permissions with a
configurable TTL. Thread-safe implementation for concurrent access.
"""

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

UNIVERSE_KEY = "__universe__"


@dataclass
class CacheEntry:
    """Cache entry with TTL support.

    Attributes:
        value: The cached value.
        expires_at: Monotonic timestamp when this entry expires.
    """

    value: Any
    expires_at: float


class PermissionCache:
    """Thread-safe TTL-based cache for effective permissions.

    Cache keys are formatted as ``{user_id}:{scope}``. The permission universe
    used for owners is stored under a single shared key.
    """

    def __init__(self, ttl_seconds: int = 300, clock: Callable[[], float] = time.monotonic):
        """Initialize the cache.

        Args:
            ttl_seconds: Time-to-live for cache entries in seconds (default: 5 minutes).
            clock: Time source, replaceable in tests.
        """
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._cache: dict[str, CacheEntry] = {}
        self._lock = threading.RLock()

    def _make_key(self, user_id: int | str, scope: str) -> str:
        return f"{user_id}:{scope}"

    def _get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None

            if self._clock() > entry.expires_at:
                del self._cache[key]
                return None

            return entry.value

    def _set(self, key: str, value: Any) -> None:
        expires_at = self._clock() + self.ttl_seconds
        with self._lock:
            self._cache[key] = CacheEntry(value=value, expires_at=expires_at)

    def get(self, user_id: int | str, scope: str = "permissions") -> Any | None:
        """Get a cached value for a user.

        Args:
            user_id: User ID.
            scope: What was cached (default: effective permissions).

        Returns:
            Cached value if found and not expired, None otherwise.
        """
        return self._get(self._make_key(user_id, scope))

    def set(self, user_id: int | str, value: Any, scope: str = "permissions") -> None:
        """Store a value for a user.

        Args:
            user_id: User ID.
            value: Value to cache.
            scope: What is being cached.
        """
        self._set(self._make_key(user_id, scope), value)

    def get_universe(self) -> Any | None:
        """Get the cached list of every registered permission."""
        return self._get(UNIVERSE_KEY)

    def set_universe(self, value: Any) -> None:
        """Cache the list of every registered permission."""
        self._set(UNIVERSE_KEY, value)

    def invalidate_user(self, user_id: int | str) -> None:
        """Invalidate all cache entries for a user.

        Args:
            user_id: User ID to invalidate.
        """
        prefix = f"{user_id}:"
        with self._lock:
            for key in [k for k in self._cache if k.startswith(prefix)]:
                del self._cache[key]

    def invalidate_all(self) -> None:
        """Clear entire cache."""
        with self._lock:
            self._cache.clear()

    def cleanup_expired(self) -> int:
        """Remove all expired entries from cache.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._cache.items() if now > entry.expires_at]
            for key in expired:
                del self._cache[key]
            return len(expired)

    def size(self) -> int:
        """Get current cache size."""
        with self._lock:
            return len(self._cache)
