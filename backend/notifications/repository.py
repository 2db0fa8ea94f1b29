from typing import Optional
from sqlalchemy import select
from backend.schema.full_schema import Notification, NotificationPreference


async def preferences_for_user(session, user_id: int) -> Optional[NotificationPreference]:
    stmt = select(NotificationPreference).where(NotificationPreference.user_id == user_id)
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def notifications_for_user(session, user_id: int, offset: int, limit: int):
    stmt = (select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset(offset).limit(limit))
    res = await session.execute(stmt)
    return res.scalars().all()


async def notification_for_user(session, notification_id: int, user_id: int) -> Optional[Notification]:
    stmt = select(Notification).where(Notification.id == notification_id, Notification.user_id == user_id)
    res = await session.execute(stmt)
    return res.scalar_one_or_none()
