from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from backend.auth.dependencies import current_user_id
from backend.common.utils import paginate, success_response
from backend.db.dependencies import get_session
from backend.notifications.models import PreferencesIn
from backend.notifications.repository import notifications_for_user
from backend.notifications.services import (get_or_create_preferences, mark_read, serialize_notification,
                                            serialize_preferences, update_preferences)

notifications_router = APIRouter()


@notifications_router.get("")
async def list_notifications(page: int = Query(1), limit: int = Query(20),
                             user_id: int = Depends(current_user_id), session: AsyncSession = Depends(get_session)):
    page, limit = paginate(page, limit)
    rows = await notifications_for_user(session, user_id, (page - 1) * limit, limit)
    return success_response({"notifications": [serialize_notification(n) for n in rows], "page": page, "limit": limit})


@notifications_router.get("/preferences")
async def get_preferences(user_id: int = Depends(current_user_id), session: AsyncSession = Depends(get_session)):
    prefs = await get_or_create_preferences(session, user_id)
    return success_response(serialize_preferences(prefs))


@notifications_router.put("/preferences")
async def put_preferences(payload: PreferencesIn, user_id: int = Depends(current_user_id),
                          session: AsyncSession = Depends(get_session)):
    prefs = await update_preferences(session, user_id, payload)
    return success_response(serialize_preferences(prefs))


@notifications_router.put("/{notification_id}/read")
async def read_notification(notification_id: int, user_id: int = Depends(current_user_id),
                            session: AsyncSession = Depends(get_session)):
    notification = await mark_read(session, notification_id, user_id)
    return success_response(serialize_notification(notification))
