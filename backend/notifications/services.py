from typing import Optional
from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from backend.common.utils import now
from backend.notifications.constants import IN_APP_CHANNEL, ORDER_STATUS_MESSAGES, PREFERENCE_FIELDS, logger
from backend.notifications.models import PreferencesIn
from backend.notifications.repository import notification_for_user, preferences_for_user
from backend.realtime.hub import Hub
from backend.schema.full_schema import Notification, NotificationPreference, Orders


def serialize_notification(n: Notification) -> dict:
    return {
        "id": n.id,
        "type": n.type,
        "channel": n.channel,
        "title": n.title,
        "message": n.message,
        "data": n.data,
        "status": n.status,
        "read_at": n.read_at,
        "created_at": n.created_at,
    }


def serialize_preferences(prefs: NotificationPreference) -> dict:
    data = {field: getattr(prefs, field) for field in PREFERENCE_FIELDS}
    data["user_id"] = prefs.user_id
    return data


async def get_or_create_preferences(session, user_id: int) -> NotificationPreference:
    prefs = await preferences_for_user(session, user_id)
    if prefs is not None:
        return prefs

    prefs = NotificationPreference(user_id=user_id)
    session.add(prefs)
    try:
        await session.commit()
    except IntegrityError:
        # created concurrently by another request
        await session.rollback()
        prefs = await preferences_for_user(session, user_id)
        if prefs is None:
            raise
        return prefs
    await session.refresh(prefs)
    return prefs


async def update_preferences(session, user_id: int, payload: PreferencesIn) -> NotificationPreference:
    prefs = await get_or_create_preferences(session, user_id)
    for field, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(prefs, field, value)
    prefs.updated_at = now()
    session.add(prefs)
    await session.commit()
    await session.refresh(prefs)
    return prefs


async def mark_read(session, notification_id: int, user_id: int) -> Notification:
    notification = await notification_for_user(session, notification_id, user_id)
    if notification is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    if notification.read_at is None:
        notification.read_at = now()
        notification.status = "read"
        session.add(notification)
        await session.commit()
        await session.refresh(notification)
    return notification


async def notify_order_status(session, hub: Optional[Hub], order: Orders) -> Optional[Notification]:
    """
    Record an in-app notification for the order owner and push it to their live sockets.
    Guest orders and users who opted out get nothing.

    The row is written on its own session bound to the caller's engine. The order change is already
    committed by then, a failed insert is logged and leaves the caller's session and objects untouched.
    """
    if order.user_id is None:
        return None

    user_id, order_id, order_status = order.user_id, order.id, order.status
    flag, title = ORDER_STATUS_MESSAGES.get(order_status, ("order_status", "Order updated"))

    async with AsyncSession(bind=session.bind, expire_on_commit=False) as own:
        try:
            prefs = await preferences_for_user(own, user_id)
            if prefs is not None and not getattr(prefs, flag, True):
                logger.debug("notification.skipped.preference", extra={"user_id": user_id, "flag": flag})
                return None

            notification = Notification(
                user_id=user_id,
                type=f"order_{order_status}",
                channel=IN_APP_CHANNEL,
                title=title,
                message=f"Order #{order_id} is now {order_status.replace('_', ' ')}",
                data={"order_id": order_id, "status": order_status},
                status="sent",
                sent_at=now(),
            )
            own.add(notification)
            await own.commit()
            await own.refresh(notification)
        except SQLAlchemyError:
            await own.rollback()
            logger.exception("notification.order_status.failed", extra={
                "user_id": user_id, "order_id": order_id, "status": order_status})
            return None

    if hub is not None:
        delivered = await hub.send_to_user(user_id, {
            "type": "notification",
            "data": serialize_notification(notification),
        })
        logger.info("notification.order_status.sent", extra={
            "user_id": user_id, "order_id": order_id, "status": order_status, "sockets": delivered})
    return notification
