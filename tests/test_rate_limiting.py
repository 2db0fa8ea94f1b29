import pytest
import redis.asyncio as redis
from fastapi import Depends, FastAPI
from httpx import ASGITransport, AsyncClient
from backend.middlewares.rate_limit_middleware import RateLimitMiddleware
from backend.rate_limiting.dependencies import rate_limit_dependency
from backend.rate_limiting.in_memory import InMemoryRateLimiter
from backend.rate_limiting.redis_backend import RedisRateLimiter


class FakeClock:
    def __init__(self, start=1000.0):
        self.value = start

    def __call__(self):
        return self.value


@pytest.mark.asyncio
async def test_rolling_window_allows_up_to_the_limit():
    clock = FakeClock()
    limiter = InMemoryRateLimiter(clock=clock, wall_clock=clock)

    decisions = [await limiter.allow("k", 3, 60) for _ in range(4)]
    assert [d.allowed for d in decisions] == [True, True, True, False]
    assert decisions[2].remaining == 0

    clock.value += 61
    assert (await limiter.allow("k", 3, 60)).allowed


@pytest.mark.asyncio
async def test_keys_are_limited_independently():
    limiter = InMemoryRateLimiter()
    assert (await limiter.allow("a", 1, 60)).allowed
    assert not (await limiter.allow("a", 1, 60)).allowed
    assert (await limiter.allow("b", 1, 60)).allowed


@pytest.mark.asyncio
async def test_sweep_drops_idle_keys():
    clock = FakeClock()
    limiter = InMemoryRateLimiter(clock=clock, wall_clock=clock)
    await limiter.allow("idle", 5, 10)
    clock.value += 5
    await limiter.allow("busy", 5, 10)

    clock.value += 6
    assert await limiter.sweep() == 1
    assert limiter.tracked_keys() == 1


class BrokenRedis:
    async def script_load(self, script):
        raise redis.ConnectionError("down")

    async def eval(self, *args):
        raise redis.ConnectionError("down")

    async def aclose(self):
        return None


@pytest.mark.asyncio
async def test_redis_outage_falls_back_to_local_counting():
    limiter = RedisRateLimiter(BrokenRedis(), fallback=InMemoryRateLimiter())
    assert (await limiter.allow("k", 1, 60)).allowed
    assert not (await limiter.allow("k", 1, 60)).allowed
    await limiter.close()


class ScriptedRedis:
    def __init__(self):
        self.counts = {}

    async def script_load(self, script):
        return "sha1"

    async def evalsha(self, sha, numkeys, key, pexpire_ms):
        self.counts[key] = self.counts.get(key, 0) + 1
        return [self.counts[key], pexpire_ms]


@pytest.mark.asyncio
async def test_redis_counter_decisions():
    limiter = RedisRateLimiter(ScriptedRedis())
    first = await limiter.allow("k", 2, 60)
    second = await limiter.allow("k", 2, 60)
    third = await limiter.allow("k", 2, 60)
    assert (first.allowed, first.remaining) == (True, 1)
    assert (second.allowed, second.remaining) == (True, 0)
    assert not third.allowed


def _limited_app(limit):
    app = FastAPI()
    app.state.rate_limiter = InMemoryRateLimiter()
    app.add_middleware(RateLimitMiddleware, limit=limit, window=60, exempt_paths=("/health",))

    @app.get("/ping")
    async def ping():
        return {"pong": True}

    @app.get("/health")
    async def health():
        return {"ok": True}

    @app.get("/login", dependencies=[Depends(rate_limit_dependency(limit=1, window=60, scope="auth"))])
    async def login():
        return {"ok": True}

    return app


@pytest.mark.asyncio
async def test_middleware_returns_429_with_headers():
    app = _limited_app(limit=2)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        first = await ac.get("/ping")
        await ac.get("/ping")
        blocked = await ac.get("/ping")
        health = await ac.get("/health")

    assert first.headers["X-RateLimit-Limit"] == "2"
    assert first.headers["X-RateLimit-Remaining"] == "1"
    assert blocked.status_code == 429
    assert blocked.json()["error"]["code"] == "RATE_LIMITED"
    assert "Retry-After" in blocked.headers
    assert health.status_code == 200


@pytest.mark.asyncio
async def test_route_dependency_limits_per_scope():
    app = _limited_app(limit=100)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        assert (await ac.get("/login")).status_code == 200
        assert (await ac.get("/login")).status_code == 429
        assert (await ac.get("/ping")).status_code == 200


@pytest.mark.asyncio
async def test_clients_behind_a_proxy_are_keyed_by_forwarded_address():
    app = _limited_app(limit=1)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        assert (await ac.get("/ping", headers={"X-Forwarded-For": "10.0.0.1"})).status_code == 200
        assert (await ac.get("/ping", headers={"X-Forwarded-For": "10.0.0.2, 172.16.0.1"})).status_code == 200
        assert (await ac.get("/ping", headers={"X-Forwarded-For": "10.0.0.1"})).status_code == 429
