from datetime import datetime, timedelta, timezone
import secrets
from typing import Optional
from passlib.context import CryptContext
from jose import jwt, JWTError
from backend.config.settings import config_settings

JWT_SECRET = config_settings.JWT_SECRET
JWT_ALGO = config_settings.JWT_ALGO
JWT_ISSUER = config_settings.JWT_ISSUER
ACCESS_TOKEN_EXPIRE_DAYS = int(config_settings.ACCESS_TOKEN_EXPIRE_DAYS)

pwd_context = CryptContext(schemes=[config_settings.PASS_HASH_SCHEME], deprecated="auto")

def hash_password(plain_password: str) -> str:
    return pwd_context.hash(plain_password)

def verify_password(plain_password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    return pwd_context.verify(plain_password, password_hash)


def create_access_token(user_id: int, user_public_id, email: str, role: str,
                        expires_days: int = ACCESS_TOKEN_EXPIRE_DAYS) -> str:
    now = datetime.now(timezone.utc)
    expiry = now + timedelta(days=expires_days)

    payload = {
        "sub": str(user_public_id),
        "user_id": user_id,
        "email": email,
        "role": role,
        "iss": JWT_ISSUER,
        "iat": int(now.timestamp()),
        "exp": int(expiry.timestamp()),
        "jti": secrets.token_hex(16),
    }
    return jwt.encode(claims=payload, key=JWT_SECRET, algorithm=JWT_ALGO)


def decode_token(token: str) -> Optional[dict]:
    """To verify the signature , expiration and issuer of a token"""
    try:
        return jwt.decode(
            token,
            key=JWT_SECRET,
            algorithms=[JWT_ALGO],
            issuer=JWT_ISSUER,
        )
    except JWTError:
        return None
