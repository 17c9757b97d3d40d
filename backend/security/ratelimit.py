"""Fixed-window request counter keyed by client."""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional


@dataclass
class _Window:
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after: int  # whole seconds until the window resets


class RateLimiter:
    """Count hits per key inside fixed windows.

    One instance is created at app startup and shared by every request; all
    access goes through a single lock.  Windows that have reset are swept out
    of the map at most once per window length, from inside :meth:`hit`.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._next_sweep: Optional[float] = None
        self._lock = threading.Lock()

    def hit(self, key: str, limit: int, window: float) -> RateLimitDecision:
        """Record one request for *key* and report whether it is allowed."""
        now = self._clock()
        with self._lock:
            if self._next_sweep is None or now >= self._next_sweep:
                self._drop_stale(now)
                self._next_sweep = now + window
            state = self._windows.get(key)
            if state is None or state.reset_at <= now:
                state = _Window(count=0, reset_at=now + window)
                self._windows[key] = state
            state.count += 1
            retry_after = max(1, math.ceil(state.reset_at - now))
            return RateLimitDecision(
                allowed=state.count <= limit,
                remaining=max(limit - state.count, 0),
                retry_after=retry_after,
            )

    def _drop_stale(self, now: float) -> int:
        stale = [k for k, w in self._windows.items() if w.reset_at <= now]
        for k in stale:
            del self._windows[k]
        return len(stale)

    def purge_expired(self) -> int:
        """Forget windows that have already reset; return how many were dropped."""
        now = self._clock()
        with self._lock:
            return self._drop_stale(now)

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()
            self._next_sweep = None
