import asyncio
import time
from typing import Optional
import redis.asyncio as redis
from backend.rate_limiting.base import RateLimitDecision, RateLimiter
from backend.rate_limiting.constants import FAIL_OPEN, REDIS_TIMEOUT_SECONDS, USE_IN_MEMORY_FALLBACK
from backend.rate_limiting.in_memory import InMemoryRateLimiter
from backend.rate_limiting.lua_scripts import LUA_FIXED_WINDOW_INCR_AND_PEXPIRE
from backend.middlewares.constants import logger


class RedisRateLimiter(RateLimiter):
    """Fixed window counter shared by every app instance through redis."""

    name = "redis"

    def __init__(self, client: redis.Redis, fallback: Optional[RateLimiter] = None):
        self._client = client
        self._script_sha: Optional[str] = None
        self._script_lock = asyncio.Lock()
        self._fallback = fallback or (InMemoryRateLimiter() if USE_IN_MEMORY_FALLBACK else None)

    @classmethod
    def from_settings(cls, settings) -> "RedisRateLimiter":
        client = redis.Redis(host=settings.REDIS_HOST, port=settings.REDIS_PORT, db=settings.REDIS_DB,
                             socket_timeout=REDIS_TIMEOUT_SECONDS, decode_responses=False)
        return cls(client)

    async def _ensure_lua_loaded(self) -> Optional[str]:
        # loaded once lazily , EVAL is used if loading fails
        if self._script_sha:
            return self._script_sha
        async with self._script_lock:
            if self._script_sha:
                return self._script_sha
            try:
                self._script_sha = await self._client.script_load(LUA_FIXED_WINDOW_INCR_AND_PEXPIRE)
            except redis.RedisError:
                self._script_sha = None
            return self._script_sha

    async def allow(self, key: str, limit: int, window: int) -> RateLimitDecision:
        pexpire_ms = int(window * 1000)
        try:
            sha = await self._ensure_lua_loaded()
            if sha:
                res = await self._client.evalsha(sha, 1, key, pexpire_ms)
            else:
                res = await self._client.eval(LUA_FIXED_WINDOW_INCR_AND_PEXPIRE, 1, key, pexpire_ms)
        except (redis.RedisError, OSError) as e:
            logger.warning("rate_limit.redis_unavailable", extra={"error": str(e)})
            if self._fallback is not None:
                return await self._fallback.allow(key, limit, window)
            now = int(time.time())
            if FAIL_OPEN:
                return RateLimitDecision(True, max(0, limit - 1), now + window)
            return RateLimitDecision(False, 0, now + window)

        now = int(time.time())
        if not res or len(res) < 2:
            return RateLimitDecision(True, max(0, limit - 1), now + window)

        count = int(res[0])
        ttl_ms = int(res[1])
        reset_ts = now + (ttl_ms // 1000) if ttl_ms > 0 else now + window
        allowed = count <= limit
        remaining = max(0, limit - count) if allowed else 0
        return RateLimitDecision(allowed, remaining, reset_ts)

    async def sweep(self) -> int:
        # redis expires keys on its own , only the local fallback needs sweeping
        if self._fallback is not None:
            return await self._fallback.sweep()
        return 0

    async def close(self) -> None:
        await self._client.aclose()
