"""Multi-step order workflows that talk to external providers.

Each step commits its own progress marker on the order row , a retried run
picks up after the last committed step instead of repeating provider calls
that already succeeded.
"""
from typing import Optional, Sequence
from fastapi import HTTPException, status
from backend.common.utils import now
from backend.config.settings import config_settings
from backend.notifications.services import notify_order_status
from backend.orders.constants import ORDER_CANCELLED, ORDER_NOT_FOUND, UNCANCELLABLE_STATUSES, logger
from backend.orders.repository import order_with_items, restore_stock
from backend.orders.services import ensure_order_access, estimated_delivery_from_now
from backend.payments.constants import CANCEL_REFUND_REASON, PROVIDER as PAYMENT_PROVIDER
from backend.payments.gateway import PaymentGateway
from backend.payments.repository import record_transaction
from backend.realtime.hub import Hub
from backend.schema.full_schema import (CancellationStep, FulfillmentStep, Orders, OrderStatus, PaymentStatus,
                                        TransactionStatus)
from backend.shipping.constants import (DEFAULT_DIMENSIONS_CM, DEFAULT_WEIGHT_KG, ESTIMATED_DELIVERY_DAYS,
                                        PROVIDER as SHIPPING_PROVIDER, SHIPPING_UNAVAILABLE, TRACKING_URL)
from backend.shipping.gateway import ShippingGateway
from backend.shipping.utils import extract_awb, extract_label_url, extract_shipment_id

CANCELLATION_STEPS: Sequence[str] = (
    CancellationStep.STARTED.value,
    CancellationStep.REFUND_ISSUED.value,
    CancellationStep.SHIPMENT_CANCELLED.value,
    CancellationStep.COMPLETED.value,
)

FULFILLMENT_STEPS: Sequence[str] = (
    FulfillmentStep.SHIPMENT_CREATED.value,
    FulfillmentStep.AWB_ASSIGNED.value,
    FulfillmentStep.COMPLETED.value,
)


def step_reached(current: Optional[str], step: str, steps: Sequence[str]) -> bool:
    if current is None:
        return False
    return steps.index(current) >= steps.index(step)


async def _commit_step(session, order: Orders, field: str, step: str) -> None:
    setattr(order, field, step)
    order.updated_at = now()
    session.add(order)
    await session.commit()
    logger.info("order.saga.step", extra={"order_id": order.id, "saga": field, "step": step})


# cancellation

def cancellation_result(order: Orders, already: bool = False) -> dict:
    return {
        "order_id": order.id,
        "status": order.status,
        "payment_status": order.payment_status,
        "message": "Order already cancelled" if already else ORDER_CANCELLED,
    }


async def cancel_order(session, order_id: int, user_id: Optional[int], admin: bool,
                       payments: PaymentGateway, shipping: ShippingGateway, hub: Optional[Hub] = None):
    """
    Cancel an order: refund , cancel the carrier shipment , restore stock.
    Returns ``(order, already_cancelled)``. Stock is restored exactly once
    however many times this runs.
    """
    order = ensure_order_access(await order_with_items(session, order_id), user_id, admin)

    if order.cancellation_step == CancellationStep.COMPLETED.value:
        logger.info("order.cancel.already_completed", extra={"order_id": order.id})
        return order, True

    if order.status in UNCANCELLABLE_STATUSES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot cancel shipped or delivered order")

    logger.info("order.cancel.attempt", extra={"order_id": order.id, "resume_from": order.cancellation_step})

    if order.cancellation_step is None:
        await _commit_step(session, order, "cancellation_step", CancellationStep.STARTED.value)

    if not step_reached(order.cancellation_step, CancellationStep.REFUND_ISSUED.value, CANCELLATION_STEPS):
        if order.payment_status == PaymentStatus.PAID.value and order.razorpay_payment_id:
            # raises 503 without a configured gateway , the saga stays at "started" and can be retried
            refund = await payments.refund(
                order.razorpay_payment_id,
                amount=order.total_amount,
                notes={"order_id": order.id, "reason": CANCEL_REFUND_REASON},
            )
            order.payment_status = PaymentStatus.REFUNDED.value
            record_transaction(
                session,
                order_id=order.id,
                provider=PAYMENT_PROVIDER,
                amount=order.total_amount,
                currency=order.currency,
                status=TransactionStatus.REFUNDED.value,
                transaction_id=order.razorpay_payment_id,
                order_id_ext=order.razorpay_order_id,
                extra_data={"reason": CANCEL_REFUND_REASON, "refund_id": (refund or {}).get("id")},
            )
            logger.info("order.cancel.refunded", extra={"order_id": order.id, "amount": order.total_amount})
        await _commit_step(session, order, "cancellation_step", CancellationStep.REFUND_ISSUED.value)

    if not step_reached(order.cancellation_step, CancellationStep.SHIPMENT_CANCELLED.value, CANCELLATION_STEPS):
        carrier_ids = [order.carrier_order_id] if order.carrier_order_id else []
        if (order.tracking_number or carrier_ids) and shipping.configured:
            try:
                await shipping.cancel_orders(carrier_ids or [order.id])
            except HTTPException as e:
                # best effort , a failed carrier cancel does not block the cancellation
                logger.warning("order.cancel.shipment_cancel_failed", extra={"order_id": order.id, "error": e.detail})
        await _commit_step(session, order, "cancellation_step", CancellationStep.SHIPMENT_CANCELLED.value)

    # stock restore , status and the final marker commit together
    try:
        locked = await order_with_items(session, order.id, for_update=True)
        if locked.cancellation_step != CancellationStep.COMPLETED.value:
            await restore_stock(session, locked.items)
            locked.status = OrderStatus.CANCELLED.value
            locked.cancellation_step = CancellationStep.COMPLETED.value
            locked.updated_at = now()
            session.add(locked)
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    logger.info("order.cancel.success", extra={"order_id": locked.id})
    await notify_order_status(session, hub, locked)
    return locked, False


# shipping label

def label_result(order: Orders) -> dict:
    return {
        "awb_number": order.tracking_number,
        "shipment_id": order.shipment_id,
        "tracking_url": TRACKING_URL.format(awb=order.tracking_number),
        "label_url": order.shipping_label_url,
        "order_status": order.status,
    }


def build_shipment_request(order: Orders) -> dict:
    return {
        "order_id": f"ORD{order.id}",
        "order_date": order.created_at.strftime("%Y-%m-%d"),
        "pickup_location": config_settings.SHIPROCKET_PICKUP_LOCATION,
        "channel_id": "",
        "comment": order.notes or "",
        "billing_customer_name": order.shipping_name,
        "billing_last_name": "",
        "billing_address": order.shipping_address,
        "billing_address_2": "",
        "billing_city": order.shipping_city,
        "billing_pincode": order.shipping_zip,
        "billing_state": order.shipping_state,
        "billing_country": order.shipping_country,
        "billing_email": order.shipping_email or "",
        "billing_phone": order.shipping_phone,
        "shipping_is_billing": True,
        "order_items": [
            {
                "name": item.product.name if item.product is not None else f"Product {item.product_id}",
                "sku": f"SKU{item.product_id}",
                "units": item.quantity,
                "selling_price": item.price,
                "discount": 0,
                "tax": 0,
            }
            for item in order.items
        ],
        "payment_method": "Prepaid",
        "shipping_charges": order.shipping_cost,
        "giftwrap_charges": 0,
        "transaction_charges": 0,
        "total_discount": order.discount_amount,
        "sub_total": round(order.total_amount - order.shipping_cost + order.discount_amount, 2),
        "weight": DEFAULT_WEIGHT_KG,
        **DEFAULT_DIMENSIONS_CM,
    }


async def generate_shipping_label(session, order_id: int, courier_id: int,
                                  shipping: ShippingGateway, hub: Optional[Hub] = None) -> dict:
    """Create the carrier shipment , assign an AWB and fetch the label for a paid order."""
    if not shipping.configured:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=SHIPPING_UNAVAILABLE)

    order = await order_with_items(session, order_id)
    if order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=ORDER_NOT_FOUND)

    if order.fulfillment_step == FulfillmentStep.COMPLETED.value:
        return label_result(order)

    if order.payment_status != PaymentStatus.PAID.value:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                            detail="Order must be paid before generating shipping label")

    logger.info("order.label.attempt", extra={"order_id": order.id, "resume_from": order.fulfillment_step})

    if not step_reached(order.fulfillment_step, FulfillmentStep.SHIPMENT_CREATED.value, FULFILLMENT_STEPS):
        result = await shipping.create_order(build_shipment_request(order))
        shipment_id = extract_shipment_id(result)
        if not shipment_id:
            logger.error("order.label.no_shipment_id", extra={"order_id": order.id})
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to get shipment ID")
        order.shipment_id = shipment_id
        carrier_order_id = result.get("order_id")
        if isinstance(carrier_order_id, int):
            order.carrier_order_id = carrier_order_id
        await _commit_step(session, order, "fulfillment_step", FulfillmentStep.SHIPMENT_CREATED.value)

    if not step_reached(order.fulfillment_step, FulfillmentStep.AWB_ASSIGNED.value, FULFILLMENT_STEPS):
        awb_result = await shipping.assign_awb(order.shipment_id, courier_id)
        awb = extract_awb(awb_result)
        if not awb:
            logger.error("order.label.no_awb", extra={"order_id": order.id, "shipment_id": order.shipment_id})
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to assign AWB")
        order.tracking_number = awb
        order.shipping_provider = SHIPPING_PROVIDER
        order.status = OrderStatus.PROCESSING.value
        order.estimated_delivery = estimated_delivery_from_now(ESTIMATED_DELIVERY_DAYS)
        await _commit_step(session, order, "fulfillment_step", FulfillmentStep.AWB_ASSIGNED.value)
        await notify_order_status(session, hub, order)

    try:
        label = await shipping.generate_label([order.shipment_id])
        order.shipping_label_url = extract_label_url(label)
    except HTTPException as e:
        # the AWB is what ships the parcel , the label can be regenerated from the carrier panel
        logger.warning("order.label.generate_failed", extra={"order_id": order.id, "error": e.detail})
    await _commit_step(session, order, "fulfillment_step", FulfillmentStep.COMPLETED.value)

    logger.info("order.label.success", extra={"order_id": order.id, "awb": order.tracking_number})
    return label_result(order)
