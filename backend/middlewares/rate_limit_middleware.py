import time
from fastapi import Request, status
from starlette.middleware.base import BaseHTTPMiddleware
from backend.common.constants import request_id_ctx
from backend.common.utils import build_error, json_error
from backend.rate_limiting.constants import DEFAULT_LIMIT, DEFAULT_WINDOW
from backend.rate_limiting.utils import rate_limit_key
from backend.middlewares.constants import logger


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Global per-client limit , backend comes from ``app.state.rate_limiter``."""

    def __init__(self, app, limit: int = DEFAULT_LIMIT, window: int = DEFAULT_WINDOW, exempt_paths=()):
        super().__init__(app)
        self.limit = limit
        self.window = window
        self.exempt_paths = tuple(exempt_paths)

    async def dispatch(self, request: Request, call_next):
        limiter = getattr(request.app.state, "rate_limiter", None)
        if limiter is None or any(request.url.path.startswith(p) for p in self.exempt_paths):
            return await call_next(request)

        key = rate_limit_key("api", request)
        allowed, remaining, reset = await limiter.allow(key, self.limit, self.window)

        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(remaining),
            "X-RateLimit-Reset": str(reset),
        }
        if not allowed:
            retry_after = max(0, reset - int(time.time()))
            headers["Retry-After"] = str(retry_after)
            logger.warning("rate_limit.exceeded", extra={"key": key, "path": request.url.path})
            payload = build_error(code="RATE_LIMITED", details={"message": "Rate limit exceeded. Please try again later."},
                                  request_id=request_id_ctx.get())
            return json_error(payload, status_code=status.HTTP_429_TOO_MANY_REQUESTS, headers=headers)

        response = await call_next(request)
        response.headers.update(headers)
        return response
