from typing import Optional
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from backend.auth.utils import decode_token
from backend.schema.full_schema import UserRole


class Authentication(HTTPBearer):
    """Bearer token extraction + verification , returns the decoded claims."""

    def __init__(self, auto_error: bool = True):
        super().__init__(auto_error=auto_error)

    async def __call__(self, request: Request) -> Optional[dict]:
        auth_creds: Optional[HTTPAuthorizationCredentials] = await super().__call__(request)
        if auth_creds is None:
            return None

        decoded_token = decode_token(auth_creds.credentials)
        if not decoded_token or "user_id" not in decoded_token:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token provided.")

        return decoded_token


def current_user_id(request: Request) -> int:
    user_id = getattr(request.state, "user_id", None)
    if user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return user_id


def optional_user_id(request: Request) -> Optional[int]:
    return getattr(request.state, "user_id", None)


def require_admin(request: Request, user_id: int = Depends(current_user_id)) -> int:
    if getattr(request.state, "user_role", None) != UserRole.ADMIN.value:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user_id


def is_admin(request: Request) -> bool:
    return getattr(request.state, "user_role", None) == UserRole.ADMIN.value
