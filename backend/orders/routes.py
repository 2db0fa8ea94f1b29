from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from backend.auth.dependencies import current_user_id, is_admin, optional_user_id
from backend.common.utils import paginate, success_response
from backend.common.validation import check, validate_order_status, validate_payment_status
from backend.db.dependencies import get_session
from backend.orders.constants import ORDER_CREATED, logger
from backend.orders.models import OrderCreateIn, OrderStatusIn, ShipOrderIn
from backend.orders.repository import orders_for_user, search_orders
from backend.orders.sagas import cancel_order, cancellation_result, generate_shipping_label
from backend.orders.services import create_order, load_order, serialize_order, tracking_info, update_order_status
from backend.payments.dependencies import get_payment_gateway
from backend.payments.gateway import PaymentGateway
from backend.realtime.dependencies import get_hub
from backend.realtime.hub import Hub
from backend.schema.full_schema import OrderStatus
from backend.shipping.dependencies import get_shipping_gateway
from backend.shipping.gateway import ShippingGateway

orders_router = APIRouter()
orders_admin_router = APIRouter()


@orders_router.post("")
async def place_order(payload: OrderCreateIn, user_id: Optional[int] = Depends(optional_user_id),
                      session: AsyncSession = Depends(get_session)):

    logger.info("order.create.attempt", extra={"user_id": user_id, "items": len(payload.items)})

    order = await create_order(session, payload, user_id)
    data = {
        "order_id": order.id,
        "status": order.status,
        "total_amount": order.total_amount,
        "discount_amount": order.discount_amount,
        "message": ORDER_CREATED,
    }
    return success_response(data, status_code=status.HTTP_201_CREATED)


@orders_router.get("")
async def my_orders(status_filter: Optional[str] = Query(None, alias="status"),
                    user_id: int = Depends(current_user_id), session: AsyncSession = Depends(get_session)):
    if status_filter:
        check(validate_order_status, status_filter)
    orders = await orders_for_user(session, user_id, status_filter)
    return success_response({"orders": [serialize_order(o) for o in orders]})


@orders_router.get("/{order_id}")
async def get_order(order_id: int, request: Request, user_id: int = Depends(current_user_id),
                    session: AsyncSession = Depends(get_session)):
    order = await load_order(session, order_id, user_id, is_admin(request))
    return success_response(serialize_order(order))


@orders_router.post("/{order_id}/cancel")
async def cancel(order_id: int, request: Request, user_id: int = Depends(current_user_id),
                 session: AsyncSession = Depends(get_session),
                 payments: PaymentGateway = Depends(get_payment_gateway),
                 shipping: ShippingGateway = Depends(get_shipping_gateway),
                 hub: Hub = Depends(get_hub)):

    order, already = await cancel_order(session, order_id, user_id, is_admin(request), payments, shipping, hub)
    return success_response(cancellation_result(order, already))


@orders_router.get("/{order_id}/tracking")
async def order_tracking(order_id: int, request: Request, user_id: int = Depends(current_user_id),
                         session: AsyncSession = Depends(get_session),
                         shipping: ShippingGateway = Depends(get_shipping_gateway)):
    order = await load_order(session, order_id, user_id, is_admin(request))
    return success_response(await tracking_info(order, shipping))


# admin

@orders_admin_router.get("")
async def all_orders(status_filter: Optional[str] = Query(None, alias="status"),
                     payment_status: Optional[str] = Query(None), search: Optional[str] = Query(None),
                     date_from: Optional[datetime] = Query(None, alias="from"),
                     date_to: Optional[datetime] = Query(None, alias="to"),
                     page: int = Query(1), limit: int = Query(20),
                     session: AsyncSession = Depends(get_session)):
    if status_filter:
        check(validate_order_status, status_filter)
    if payment_status:
        check(validate_payment_status, payment_status)
    page, limit = paginate(page, limit)
    orders = await search_orders(session, status_filter, payment_status, search, date_from, date_to,
                                 offset=(page - 1) * limit, limit=limit)
    return success_response({"orders": [serialize_order(o) for o in orders], "page": page, "limit": limit})


@orders_admin_router.put("/{order_id}/status")
async def set_order_status(order_id: int, payload: OrderStatusIn, request: Request,
                           session: AsyncSession = Depends(get_session),
                           payments: PaymentGateway = Depends(get_payment_gateway),
                           shipping: ShippingGateway = Depends(get_shipping_gateway),
                           hub: Hub = Depends(get_hub)):

    if payload.status == OrderStatus.CANCELLED.value:
        order, _ = await cancel_order(session, order_id, request.state.user_id, True, payments, shipping, hub)
    else:
        order = await update_order_status(session, order_id, payload.status, hub)
    return success_response({"order_id": order.id, "status": order.status})


@orders_admin_router.post("/{order_id}/ship")
async def ship_order(order_id: int, payload: ShipOrderIn, session: AsyncSession = Depends(get_session),
                     shipping: ShippingGateway = Depends(get_shipping_gateway), hub: Hub = Depends(get_hub)):
    result = await generate_shipping_label(session, order_id, payload.courier_id, shipping, hub)
    return success_response(result)
