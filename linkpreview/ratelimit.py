"""Per-client request quotas.

All limiters share a common interface: ``consume(key) -> bool``.  The API
keeps one instance on ``app.state.rate_limiter`` so a shared store (Redis,
memcached) can replace the in-process default without touching the router.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections import deque
from threading import Lock
from typing import Callable


class RateLimiter(ABC):
    """Abstract base class for a rate limiter keyed by client identity."""

    @abstractmethod
    def consume(self, key: str) -> bool:
        """Spend one unit of *key*'s quota.  Return ``False`` if none is left."""


class InMemoryRateLimiter(RateLimiter):
    """Sliding-window log limiter held in process memory.

    Each key keeps the timestamps of its accepted requests; timestamps older
    than *window* seconds are pruned on every call.  Rejected requests are
    not recorded, so a key regains capacity as soon as its oldest accepted
    request leaves the window.  Keys with no hit inside the window are
    dropped by a sweep that runs at most once per window.
    """

    def __init__(
        self,
        points: int,
        window: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.points = points
        self.window = window
        self._clock = clock
        self._hits: dict[str, deque[float]] = {}
        self._lock = Lock()
        self._next_sweep = clock() + window

    def consume(self, key: str) -> bool:
        now = self._clock()
        cutoff = now - self.window
        with self._lock:
            if now >= self._next_sweep:
                self._sweep(cutoff)
                self._next_sweep = now + self.window

            hits = self._hits.setdefault(key, deque())
            while hits and hits[0] <= cutoff:
                hits.popleft()
            if len(hits) >= self.points:
                return False
            hits.append(now)
            return True

    def _sweep(self, cutoff: float) -> None:
        # Caller holds the lock.
        idle = [key for key, hits in self._hits.items() if not hits or hits[-1] <= cutoff]
        for key in idle:
            del self._hits[key]

    def __len__(self) -> int:
        """Number of identities currently tracked."""
        with self._lock:
            return len(self._hits)

    def reset(self) -> None:
        """Forget every key's history."""
        with self._lock:
            self._hits.clear()
