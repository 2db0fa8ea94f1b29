import time
from fastapi import HTTPException, Request,status
from backend.rate_limiting.constants import AUTH_LIMIT, DEFAULT_WINDOW
from backend.rate_limiting.utils import rate_limit_key


def rate_limit_dependency(limit: int = AUTH_LIMIT, window: int = DEFAULT_WINDOW, scope: str = "route"):
    """Per-router limit on top of the global one , shares the app's limiter backend."""
    async def _dep(request: Request):
        limiter = getattr(request.app.state, "rate_limiter", None)
        if limiter is None:
            return
        decision = await limiter.allow(rate_limit_key(scope, request), limit, window)
        if not decision.allowed:
            retry_after = max(0, decision.reset - int(time.time()))
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests",
                headers={"Retry-After": str(retry_after)}
        )
    return _dep


auth_rate_limit = rate_limit_dependency(scope="auth")
