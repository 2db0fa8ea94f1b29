from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import  AsyncSession
from backend.auth.dependencies import current_user_id
from backend.auth.models import LoginIn, RegisterIn
from backend.auth.services import authenticate_user, issue_token, refresh_for_user, register_user, serialize_user
from backend.common.utils import success_response
from backend.db.dependencies import get_session
from backend.rate_limiting.dependencies import auth_rate_limit
from backend.auth.constants import logger

auth_router = APIRouter(dependencies=[Depends(auth_rate_limit)])


@auth_router.post("/register")
async def register(payload: RegisterIn, session: AsyncSession = Depends(get_session)):

    logger.info("register.attempt", extra={"email": payload.email})

    user = await register_user(session, payload)
    token = issue_token(user)

    logger.info("register.success", extra={"user_id": user.id})
    return success_response({"user": serialize_user(user), "token": token}, status_code=status.HTTP_201_CREATED)


@auth_router.post("/login")
async def login(payload: LoginIn, session: AsyncSession = Depends(get_session)):

    logger.info("login.attempt", extra={"email": payload.email})

    user = await authenticate_user(session, payload)
    token = issue_token(user)

    logger.info("login.success", extra={"user_id": user.id})
    return success_response({"user": serialize_user(user), "token": token})


# tokens are stateless , the client drops its copy
@auth_router.post("/logout")
async def logout():
    return success_response({"message": "Logged out successfully"})


@auth_router.post("/refresh")
async def refresh(user_id: int = Depends(current_user_id), session: AsyncSession = Depends(get_session)):

    token = await refresh_for_user(session, user_id)

    logger.info("refresh.success", extra={"user_id": user_id})
    return success_response({"token": token})
