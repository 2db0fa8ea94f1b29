from abc import ABC, abstractmethod
from typing import NamedTuple


class RateLimitDecision(NamedTuple):
    allowed: bool
    remaining: int
    reset: int      # unix seconds when the window frees up


class RateLimiter(ABC):
    """Backend agnostic limiter , call sites only ever see ``allow``."""

    name: str = "base"

    @abstractmethod
    async def allow(self, key: str, limit: int, window: int) -> RateLimitDecision:
        ...

    async def sweep(self) -> int:
        """Evict stale state , returns how many keys were dropped."""
        return 0

    async def close(self) -> None:
        return None
