import asyncio
import time
from collections import deque
from typing import Deque, Dict
from backend.rate_limiting.base import RateLimitDecision, RateLimiter


class InMemoryRateLimiter(RateLimiter):
    """
    Per-process rolling window limiter.
    Keeps request timestamps per key , state resets with the process.
    """

    name = "memory"

    def __init__(self, clock=time.monotonic, wall_clock=time.time):
        self._hits: Dict[str, Deque[float]] = {}
        self._windows: Dict[str, int] = {}
        self._lock = asyncio.Lock()
        self._clock = clock
        self._wall_clock = wall_clock

    async def allow(self, key: str, limit: int, window: int) -> RateLimitDecision:
        async with self._lock:
            now = self._clock()
            hits = self._hits.setdefault(key, deque())
            self._windows[key] = window
            while hits and hits[0] <= now - window:
                hits.popleft()

            if len(hits) >= limit:
                reset_in = hits[0] + window - now
                return RateLimitDecision(False, 0, int(self._wall_clock() + max(reset_in, 0)) + 1)

            hits.append(now)
            reset_in = hits[0] + window - now
            return RateLimitDecision(True, max(0, limit - len(hits)), int(self._wall_clock() + reset_in))

    async def sweep(self) -> int:
        async with self._lock:
            now = self._clock()
            stale = [k for k, hits in self._hits.items()
                     if not hits or hits[-1] <= now - self._windows.get(k, 60)]
            for k in stale:
                self._hits.pop(k, None)
                self._windows.pop(k, None)
            return len(stale)

    def tracked_keys(self) -> int:
        return len(self._hits)
