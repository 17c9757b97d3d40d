"""Process-local LRU cache with per-entry expiry.

The cache is a pure performance optimisation: nothing in it is a source of
truth and it is lost on restart.  Instances are constructed explicitly (at
app startup, or per test) and passed to whatever needs them.
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Optional


@dataclass
class CacheEntry:
    value: Any
    expires_at: float


class ResultCache:
    """Thread-safe LRU cache whose entries each carry their own TTL.

    Args:
        capacity: Maximum number of live entries.  Inserting a new key at
            capacity evicts the least-recently-used one.
        default_ttl: Seconds an entry lives when :meth:`set` gets no ``ttl``.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        capacity: int = 100,
        default_ttl: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------
    def get(self, key: str) -> Optional[Any]:
        """Return the live value for *key*, or ``None``.  Refreshes recency."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store *value* under *key* for *ttl* seconds.

        A ``ttl`` of zero or less removes the key instead of storing it.
        """
        lifetime = self.default_ttl if ttl is None else ttl
        with self._lock:
            if lifetime <= 0:
                self._entries.pop(key, None)
                return
            now = self._clock()
            if key in self._entries:
                self._entries.move_to_end(key)
            else:
                self._evict_for_insert(now)
            self._entries[key] = CacheEntry(value=value, expires_at=now + lifetime)

    def delete(self, key: str) -> bool:
        """Remove *key*; return whether it was present."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def purge_expired(self) -> int:
        """Physically drop expired entries and return how many were removed."""
        with self._lock:
            return self._purge_locked(self._clock())

    def stats(self) -> dict[str, int]:
        with self._lock:
            self._purge_locked(self._clock())
            return {"size": len(self._entries), "capacity": self.capacity}

    # ------------------------------------------------------------------
    # Dunder helpers
    # ------------------------------------------------------------------
    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and entry.expires_at > self._clock()

    def __len__(self) -> int:
        return self.stats()["size"]

    # ------------------------------------------------------------------
    # Internals (caller holds the lock)
    # ------------------------------------------------------------------
    def _purge_locked(self, now: float) -> int:
        expired = [k for k, e in self._entries.items() if e.expires_at <= now]
        for k in expired:
            del self._entries[k]
        return len(expired)

    def _evict_for_insert(self, now: float) -> None:
        if len(self._entries) < self.capacity:
            return
        # Expired entries go first so they never cost a live one its slot.
        self._purge_locked(now)
        while len(self._entries) >= self.capacity:
            self._entries.popitem(last=False)
