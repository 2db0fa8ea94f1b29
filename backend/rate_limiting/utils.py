from fastapi import Request
from backend.config.settings import Settings
from backend.rate_limiting.base import RateLimiter
from backend.rate_limiting.constants import RATE_LIMIT_PREFIX


def client_address(request: Request) -> str:
    """
    Client ip , first hop of X-Forwarded-For when behind a proxy.
    """
    xff = request.headers.get("X-Forwarded-For")
    if xff:
        client_host = xff.split(",")[0].strip()
    else:
        client_host = request.client.host if request.client else "unknown"
    return client_host or "unknown"


def rate_limit_key(scope: str, request: Request) -> str:
    return f"{RATE_LIMIT_PREFIX}:{scope}:{client_address(request)}"


def build_rate_limiter(settings: Settings) -> RateLimiter:
    if settings.RATE_LIMIT_BACKEND == "redis":
        from backend.rate_limiting.redis_backend import RedisRateLimiter
        return RedisRateLimiter.from_settings(settings)
    from backend.rate_limiting.in_memory import InMemoryRateLimiter
    return InMemoryRateLimiter()
