from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from backend.auth.constants import INVALID_CREDENTIALS, logger
from backend.auth.models import LoginIn, RegisterIn
from backend.auth.repository import email_taken, user_by_email, user_by_id
from backend.auth.utils import create_access_token, hash_password, verify_password
from backend.common.validation import check, normalize_email_address, validate_name, validate_password, validate_phone
from backend.config.settings import config_settings
from backend.schema.full_schema import Users


def serialize_user(user: Users) -> dict:
    return {
        "id": user.id,
        "public_id": str(user.public_id),
        "name": user.name,
        "email": user.email,
        "phone": user.phone,
        "role": user.role,
    }


def issue_token(user: Users) -> str:
    return create_access_token(user.id, user.public_id, user.email, user.role)


async def register_user(session, payload: RegisterIn) -> Users:
    email = check(normalize_email_address, payload.email)
    check(validate_name, payload.name.strip())
    check(validate_password, payload.password)
    check(validate_phone, payload.phone)

    if await email_taken(session, email):
        logger.warning("register.duplicate_email", extra={"email": email})
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    user = Users(
        email=email,
        name=payload.name.strip(),
        phone=payload.phone or None,
        password_hash=hash_password(payload.password),
        role=config_settings.DEFAULT_ROLE,
        provider=config_settings.SELF_PROVIDER,
    )
    session.add(user)
    try:
        await session.commit()
    except IntegrityError:
        # lost a race with a concurrent registration for the same email
        await session.rollback()
        logger.warning("register.integrity_error", extra={"email": email})
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    await session.refresh(user)
    logger.info("user.created", extra={"user_id": user.id, "email": email})
    return user


async def authenticate_user(session, payload: LoginIn) -> Users:
    try:
        email = normalize_email_address(payload.email)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_CREDENTIALS)

    user = await user_by_email(session, email)
    if user is None or not verify_password(payload.password, user.password_hash):
        logger.warning("login.failed", extra={"email": email})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_CREDENTIALS)
    return user


async def refresh_for_user(session, user_id: int) -> str:
    user = await user_by_id(session, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return issue_token(user)
