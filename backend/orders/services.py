from datetime import timedelta
from typing import Optional
from fastapi import HTTPException, status
from backend.common.utils import now
from backend.common.validation import (check, sanitize_string, validate_address, validate_order_status,
                                       validate_phone, validate_postal_code, validate_quantity)
from backend.coupons.services import apply_coupon
from backend.notifications.services import notify_order_status
from backend.orders.constants import ORDER_NOT_FOUND, TOTAL_TOLERANCE, logger
from backend.orders.models import OrderCreateIn
from backend.orders.repository import lock_products, order_with_items
from backend.orders.utils import compute_expected_total, compute_subtotal, round_money, totals_match
from backend.schema.full_schema import OrderItem, Orders, OrderStatus, PaymentStatus


def serialize_item(item: OrderItem) -> dict:
    product = item.product
    return {
        "id": item.id,
        "product_id": item.product_id,
        "product_name": product.name if product is not None else None,
        "quantity": item.quantity,
        "price": item.price,
        "color": item.color,
        "size": item.size,
    }


def serialize_order(order: Orders, include_items: bool = True) -> dict:
    data = {
        "id": order.id,
        "user_id": order.user_id,
        "status": order.status,
        "payment_status": order.payment_status,
        "total_amount": order.total_amount,
        "discount_amount": order.discount_amount,
        "shipping_cost": order.shipping_cost,
        "tax_amount": order.tax_amount,
        "currency": order.currency,
        "coupon_code": order.coupon_code,
        "notes": order.notes,
        "shipping": {
            "name": order.shipping_name,
            "email": order.shipping_email,
            "phone": order.shipping_phone,
            "address": order.shipping_address,
            "city": order.shipping_city,
            "state": order.shipping_state,
            "country": order.shipping_country,
            "zip": order.shipping_zip,
        },
        "shipping_provider": order.shipping_provider,
        "tracking_number": order.tracking_number,
        "shipping_label_url": order.shipping_label_url,
        "estimated_delivery": order.estimated_delivery,
        "shipped_at": order.shipped_at,
        "delivered_at": order.delivered_at,
        "razorpay_order_id": order.razorpay_order_id,
        "created_at": order.created_at,
    }
    if include_items:
        data["items"] = [serialize_item(i) for i in order.items]
    return data


def ensure_order_access(order: Optional[Orders], user_id: Optional[int], admin: bool = False) -> Orders:
    """Owners and admins see an order , everyone else gets a 404."""
    if order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=ORDER_NOT_FOUND)
    if admin:
        return order
    if order.user_id is None or order.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=ORDER_NOT_FOUND)
    return order


async def load_order(session, order_id: int, user_id: Optional[int], admin: bool = False) -> Orders:
    order = await order_with_items(session, order_id)
    return ensure_order_access(order, user_id, admin)


def _validate_order_input(payload: OrderCreateIn) -> None:
    if not payload.items:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="order must contain at least one item")
    for item in payload.items:
        check(validate_quantity, item.quantity)
    if not payload.shipping_name.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="shipping name is required")
    if not payload.shipping_phone.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="shipping phone is required")
    check(validate_phone, payload.shipping_phone.strip())
    check(validate_address, payload.shipping_address, payload.shipping_city, payload.shipping_state, payload.shipping_country)
    check(validate_postal_code, payload.shipping_zip)
    if payload.shipping_cost < 0 or payload.tax_amount < 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="shipping cost and tax cannot be negative")


async def create_order(session, payload: OrderCreateIn, user_id: Optional[int]) -> Orders:
    """
    Place an order in one transaction.

    Stock is checked and decremented under row locks , the total is recomputed
    from catalogue prices and the coupon , and any failure rolls back every write.
    """
    _validate_order_input(payload)

    try:
        products = await lock_products(session, (i.product_id for i in payload.items))

        # the same product may appear on several lines (different colors or sizes)
        requested = {}
        for item in payload.items:
            product = products.get(item.product_id)
            if product is None or not product.is_active:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                                    detail=f"Product {item.product_id} not found")
            requested[item.product_id] = requested.get(item.product_id, 0) + item.quantity
            if product.stock < requested[item.product_id]:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={
                    "message": "Insufficient stock",
                    "product_id": item.product_id,
                    "product": product.name,
                    "available": product.stock,
                    "requested": requested[item.product_id],
                })

        subtotal = compute_subtotal((products[i.product_id].price, i.quantity) for i in payload.items)
        coupon, discount = await apply_coupon(session, payload.coupon_code, subtotal)
        shipping_cost = round_money(payload.shipping_cost)
        tax_amount = round_money(payload.tax_amount)
        expected_total = compute_expected_total(subtotal, discount, shipping_cost, tax_amount)

        if not totals_match(payload.total_amount, expected_total, TOTAL_TOLERANCE):
            logger.warning("order.create.total_mismatch", extra={
                "user_id": user_id, "client_total": payload.total_amount, "expected_total": expected_total})
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={
                "message": "Order total mismatch",
                "expected_total": expected_total,
                "submitted_total": payload.total_amount,
            })

        for product_id, qty in requested.items():
            products[product_id].stock -= qty
            products[product_id].updated_at = now()
            session.add(products[product_id])

        order = Orders(
            user_id=user_id,
            status=OrderStatus.PENDING_PAYMENT.value,
            payment_status=PaymentStatus.PENDING.value,
            total_amount=expected_total,
            discount_amount=discount,
            shipping_cost=shipping_cost,
            tax_amount=tax_amount,
            coupon_code=coupon.code if coupon is not None else None,
            notes=sanitize_string(payload.notes, 2000) or None,
            shipping_name=sanitize_string(payload.shipping_name, 128),
            shipping_email=sanitize_string(payload.shipping_email, 255) or None,
            shipping_phone=payload.shipping_phone.strip(),
            shipping_address=sanitize_string(payload.shipping_address, 500),
            shipping_city=sanitize_string(payload.shipping_city, 100),
            shipping_state=sanitize_string(payload.shipping_state, 100),
            shipping_country=sanitize_string(payload.shipping_country, 100),
            shipping_zip=payload.shipping_zip.strip(),
        )
        session.add(order)
        await session.flush()

        for item in payload.items:
            session.add(OrderItem(
                order_id=order.id,
                product_id=item.product_id,
                quantity=item.quantity,
                # price snapshot from the catalogue , never from the client
                price=products[item.product_id].price,
                color=item.color,
                size=item.size,
            ))

        await session.commit()
    except Exception:
        await session.rollback()
        raise

    logger.info("order.create.success", extra={
        "order_id": order.id, "user_id": user_id, "total": expected_total, "items": len(payload.items)})
    return order


def _apply_status(order: Orders, new_status: str) -> None:
    order.status = new_status
    stamp = now()
    if new_status == OrderStatus.SHIPPED.value:
        order.shipped_at = stamp
    elif new_status == OrderStatus.DELIVERED.value:
        order.delivered_at = stamp
    order.updated_at = stamp


async def update_order_status(session, order_id: int, new_status: str, hub=None) -> Orders:
    """Admin status change , callers route ``cancelled`` through the cancellation saga instead."""
    check(validate_order_status, new_status)

    order = await order_with_items(session, order_id)
    if order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=ORDER_NOT_FOUND)

    previous = order.status
    _apply_status(order, new_status)
    session.add(order)
    await session.commit()

    logger.info("order.status.updated", extra={"order_id": order.id, "from": previous, "to": new_status})
    if previous != new_status:
        await notify_order_status(session, hub, order)
    return order


async def tracking_info(order: Orders, shipping_gateway) -> dict:
    info = {
        "order_id": order.id,
        "status": order.status,
        "tracking_number": order.tracking_number,
        "shipping_provider": order.shipping_provider,
        "estimated_delivery": order.estimated_delivery,
        "shipped_at": order.shipped_at,
        "delivered_at": order.delivered_at,
    }
    if order.tracking_number and shipping_gateway is not None and shipping_gateway.configured:
        try:
            info["live_tracking"] = await shipping_gateway.track(order.tracking_number)
        except HTTPException as e:
            # live tracking is optional , the stored fields are still returned
            logger.warning("order.tracking.live_failed", extra={"order_id": order.id, "error": e.detail})
    return info


def estimated_delivery_from_now(days: int):
    return now() + timedelta(days=days)
