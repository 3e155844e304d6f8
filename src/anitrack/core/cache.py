"""
Short-lived, process-local cache of provider summaries.

Never persisted and safe to clear at any time; every reader must cope with
a miss.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import Any

DEFAULT_TTL_SECONDS = 3600


class MetadataCache:
    """Key -> value cache with per-entry expiry."""

    def __init__(
        self,
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize cache.

        Args:
            ttl: Default lifetime of an entry in seconds
            clock: Monotonic time source (injectable for tests)
        """
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None if absent or expired."""
        key = str(key)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def put(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store a value for ttl seconds (default: the cache ttl)."""
        lifetime = self.ttl if ttl is None else ttl
        with self._lock:
            self._entries[str(key)] = (self._clock() + lifetime, value)

    def invalidate(self, key: str) -> bool:
        """Drop one entry. Returns True if it was present."""
        with self._lock:
            return self._entries.pop(str(key), None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        now = self._clock()
        with self._lock:
            return sum(1 for expires_at, _ in self._entries.values() if expires_at > now)

    def __contains__(self, key: object) -> bool:
        return self.get(str(key)) is not None
