from typing import Iterable, Optional
from fastapi import HTTPException, Request, status
from starlette.middleware.base import BaseHTTPMiddleware
from backend.auth.dependencies import Authentication
from backend.auth.repository import user_by_id
from backend.common.utils import build_error, json_error
from backend.common.constants import request_id_ctx
from backend.middlewares.constants import logger


def _matches(path: str, prefixes: Iterable[str]) -> bool:
    return any(path.startswith(p) for p in prefixes)


class AuthenticationMiddleware(BaseHTTPMiddleware):
    """
    ``paths`` skip authentication entirely.
    ``maybe_auth_paths`` authenticate when a bearer token is sent and let anonymous callers through.
    Everything else requires a valid token.
    """

    def __init__(self, app, *, session_maker, paths: Iterable[str], maybe_auth_paths: Optional[Iterable[str]] = None):
        super().__init__(app)
        self.session_maker = session_maker
        self.paths = tuple(paths)
        self.maybe_auth_paths = tuple(maybe_auth_paths or ())

    def _reject(self, reason: str, status_code: int = status.HTTP_401_UNAUTHORIZED):
        payload = build_error(code="INVALID_AUTH", details={"message": reason}, request_id=request_id_ctx.get())
        return json_error(payload, status_code=status_code)

    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        if request.method == "OPTIONS" or _matches(path, self.paths):
            return await call_next(request)

        optional = _matches(path, self.maybe_auth_paths)
        if optional and not request.headers.get("Authorization"):
            return await call_next(request)

        try:
            auth_token = await Authentication(auto_error=True)(request)
        except HTTPException as e:
            logger.warning("auth.middleware.failed", extra={
                "reason": e.detail,
                "path": path,
                "method": request.method
            })
            return self._reject("Missing or Invalid Auth Headers")

        user_id = auth_token.get("user_id")
        async with self.session_maker() as session:
            user = await user_by_id(session, user_id)

        if user is None:
            logger.warning("auth.middleware.user_not_found", extra={
                "user_id": user_id,
                "path": path
            })
            return self._reject("User unidentified and not authorized")

        request.state.user_id = user.id
        request.state.user_role = user.role
        request.state.user_email = user.email
        request.state.user_public_id = str(user.public_id)

        logger.debug("auth.middleware.success", extra={
            "user_id": user.id,
            "path": path
        })

        return await call_next(request)
