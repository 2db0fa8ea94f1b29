from typing import Optional
from fastapi import HTTPException, status
from sqlalchemy import select
from backend.common.utils import now
from backend.notifications.services import notify_order_status
from backend.orders.repository import order_by_gateway_order_id, order_with_items
from backend.orders.services import ensure_order_access
from backend.payments.constants import LATE_PAYMENT_REFUND_REASON, PROVIDER, logger
from backend.payments.gateway import PaymentGateway, generate_receipt_id, to_paise
from backend.payments.models import RefundIn, VerifyPaymentIn
from backend.payments.repository import record_transaction, transactions_for_order
from backend.realtime.hub import Hub
from backend.schema.full_schema import Orders, OrderStatus, PaymentStatus, TransactionStatus

CLOSED_STATUSES = frozenset((OrderStatus.CANCELLED.value, OrderStatus.REFUNDED.value))
SETTLED_PAYMENT_STATUSES = frozenset((PaymentStatus.PAID.value, PaymentStatus.REFUNDED.value))


async def create_payment_intent(session, gateway: PaymentGateway, order_id: int,
                                user_id: Optional[int], admin: bool) -> dict:
    order = await order_with_items(session, order_id)
    if order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    # guest orders can be paid by whoever holds the order id
    if order.user_id is not None:
        ensure_order_access(order, user_id, admin)

    if order.payment_status == PaymentStatus.PAID.value:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Order already paid")
    if order.status in CLOSED_STATUSES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Order is {order.status}")

    receipt = generate_receipt_id()
    gateway_order = await gateway.create_order(order.total_amount, order.currency, receipt,
                                               notes={"order_id": str(order.id)})
    gateway_order_id = gateway_order.get("id")
    if not gateway_order_id:
        logger.error("payment.intent.no_order_id", extra={"order_id": order.id})
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Payment provider returned no order id")

    order.razorpay_order_id = gateway_order_id
    order.payment_method = PROVIDER
    order.updated_at = now()
    session.add(order)
    await session.commit()

    logger.info("payment.intent.created", extra={
        "order_id": order.id, "gateway_order_id": gateway_order_id, "amount": order.total_amount})

    prefill = {"name": order.shipping_name, "email": order.shipping_email or "", "contact": order.shipping_phone}
    return {
        "order_id": order.id,
        "razorpay_order_id": gateway_order_id,
        "amount": to_paise(order.total_amount),
        "currency": order.currency,
        "receipt": receipt,
        "checkout": gateway.checkout_options(gateway_order_id, order.total_amount, order.currency,
                                             f"Order #{order.id}", prefill),
    }


def _closed(order: Orders) -> bool:
    return order.status in CLOSED_STATUSES or order.cancellation_step is not None


def _has_transaction(txs, payment_id: str, tx_status: str) -> bool:
    return any(t.transaction_id == payment_id and t.status == tx_status for t in txs)


async def _record_extra_payment(session, order: Orders, payment_id: str, amount: float, source: str) -> None:
    """A second payment on an already paid order is logged once , the stored payment ids stay untouched."""
    txs = await transactions_for_order(session, order.id)
    if _has_transaction(txs, payment_id, TransactionStatus.SUCCESS.value):
        return
    record_transaction(
        session,
        order_id=order.id,
        provider=PROVIDER,
        amount=amount,
        currency=order.currency,
        status=TransactionStatus.SUCCESS.value,
        transaction_id=payment_id,
        order_id_ext=order.razorpay_order_id,
        extra_data={"source": source, "duplicate_of": order.razorpay_payment_id},
    )
    await session.commit()
    logger.warning("payment.duplicate.recorded", extra={
        "order_id": order.id, "payment_id": payment_id, "kept_payment_id": order.razorpay_payment_id})


async def _refund_late_payment(session, gateway: PaymentGateway, order: Orders, payment_id: str,
                               amount: float, source: str) -> None:
    """
    A payment landing on a cancelled order is recorded and refunded in full , the order stays closed.
    The payment row commits before the refund call so a failed refund is retried on the next callback.
    """
    txs = await transactions_for_order(session, order.id)
    if _has_transaction(txs, payment_id, TransactionStatus.REFUNDED.value):
        return

    if not _has_transaction(txs, payment_id, TransactionStatus.SUCCESS.value):
        record_transaction(
            session,
            order_id=order.id,
            provider=PROVIDER,
            amount=amount,
            currency=order.currency,
            status=TransactionStatus.SUCCESS.value,
            transaction_id=payment_id,
            order_id_ext=order.razorpay_order_id,
            extra_data={"source": source, "late": True},
        )
        await session.commit()
    logger.warning("payment.late.received", extra={"order_id": order.id, "payment_id": payment_id, "source": source})

    refund = await gateway.refund(payment_id, None, {"order_id": order.id, "reason": LATE_PAYMENT_REFUND_REASON})

    record_transaction(
        session,
        order_id=order.id,
        provider=PROVIDER,
        amount=amount,
        currency=order.currency,
        status=TransactionStatus.REFUNDED.value,
        transaction_id=payment_id,
        order_id_ext=order.razorpay_order_id,
        extra_data={"reason": LATE_PAYMENT_REFUND_REASON, "refund_id": (refund or {}).get("id")},
    )
    order.payment_status = PaymentStatus.REFUNDED.value
    order.updated_at = now()
    session.add(order)
    await session.commit()
    logger.info("payment.late.refunded", extra={"order_id": order.id, "payment_id": payment_id})


async def verify_payment(session, gateway: PaymentGateway, payload: VerifyPaymentIn, hub: Optional[Hub] = None) -> dict:
    """Confirm a checkout callback. A bad signature changes nothing."""
    if not gateway.verify_payment_signature(payload.razorpay_order_id, payload.razorpay_payment_id,
                                            payload.razorpay_signature):
        logger.warning("payment.verify.invalid_signature", extra={
            "order_id": payload.order_id, "gateway_order_id": payload.razorpay_order_id})
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid payment signature")

    order = await order_with_items(session, payload.order_id)
    if order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    if order.razorpay_order_id and order.razorpay_order_id != payload.razorpay_order_id:
        logger.warning("payment.verify.order_mismatch", extra={"order_id": order.id})
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Payment does not belong to this order")

    payment_id = payload.razorpay_payment_id

    # repeated callbacks for the stored payment are no-ops
    if order.razorpay_payment_id == payment_id and order.payment_status in SETTLED_PAYMENT_STATUSES:
        return {"success": True, "order_id": order.id, "payment_id": payment_id, "status": order.status}

    if _closed(order):
        await _refund_late_payment(session, gateway, order, payment_id, order.total_amount, "checkout")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail={
            "message": "Order is cancelled , the payment has been refunded",
            "order_id": order.id, "payment_id": payment_id})

    if order.payment_status in SETTLED_PAYMENT_STATUSES:
        await _record_extra_payment(session, order, payment_id, order.total_amount, "checkout")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail={
            "message": "Order already paid with another payment",
            "order_id": order.id, "payment_id": payment_id})

    order.payment_status = PaymentStatus.PAID.value
    order.status = OrderStatus.PAID.value
    order.razorpay_order_id = payload.razorpay_order_id
    order.razorpay_payment_id = payment_id
    order.razorpay_signature = payload.razorpay_signature
    order.updated_at = now()
    session.add(order)
    record_transaction(
        session,
        order_id=order.id,
        provider=PROVIDER,
        amount=order.total_amount,
        currency=order.currency,
        status=TransactionStatus.SUCCESS.value,
        transaction_id=payment_id,
        order_id_ext=payload.razorpay_order_id,
        signature=payload.razorpay_signature,
    )
    await session.commit()

    logger.info("payment.verify.success", extra={"order_id": order.id, "payment_id": payment_id})
    await notify_order_status(session, hub, order)
    return {"success": True, "order_id": order.id, "payment_id": payment_id, "status": OrderStatus.PAID.value}


async def refund_payment(session, gateway: PaymentGateway, payload: RefundIn) -> dict:
    notes = {"reason": payload.reason or ""}
    refund = await gateway.refund(payload.payment_id, payload.amount, notes)

    stmt = select(Orders).where(Orders.razorpay_payment_id == payload.payment_id)
    order = (await session.execute(stmt)).scalars().first()
    if order is not None:
        amount = payload.amount if payload.amount is not None else order.total_amount
        record_transaction(
            session,
            order_id=order.id,
            provider=PROVIDER,
            amount=amount,
            currency=order.currency,
            status=TransactionStatus.REFUNDED.value,
            transaction_id=payload.payment_id,
            order_id_ext=order.razorpay_order_id,
            extra_data={"reason": payload.reason, "refund_id": (refund or {}).get("id")},
        )
        if amount >= order.total_amount:
            order.payment_status = PaymentStatus.REFUNDED.value
            order.updated_at = now()
            session.add(order)
        await session.commit()

    logger.info("payment.refund.success", extra={
        "payment_id": payload.payment_id, "amount": payload.amount, "order_id": order.id if order else None})
    return refund


async def apply_webhook_event(session, event: dict, gateway: PaymentGateway, hub: Optional[Hub] = None) -> str:
    """Apply a verified gateway event , returns a short note for the acknowledgement log."""
    event_type = event.get("event")
    if event_type not in ("payment.captured", "payment.failed"):
        return "ignored"

    payment = ((event.get("payload") or {}).get("payment") or {}).get("entity") or {}
    gateway_order_id = payment.get("order_id")
    if not gateway_order_id:
        return "no order id"

    order = await order_by_gateway_order_id(session, gateway_order_id)
    if order is None:
        logger.warning("payment.webhook.order_not_found", extra={"gateway_order_id": gateway_order_id})
        return "order not found"

    amount = order.total_amount
    if isinstance(payment.get("amount"), (int, float)):
        amount = payment["amount"] / 100
    payment_id = payment.get("id")

    if event_type == "payment.captured":
        if order.payment_status in SETTLED_PAYMENT_STATUSES:
            if payment_id and order.razorpay_payment_id and payment_id != order.razorpay_payment_id:
                await _record_extra_payment(session, order, payment_id, amount, "webhook")
            return "already applied"
        if _closed(order):
            if payment_id:
                await _refund_late_payment(session, gateway, order, payment_id, amount, "webhook")
            return "refunded after cancellation"
        order.payment_status = PaymentStatus.PAID.value
        order.status = OrderStatus.PAID.value
        order.razorpay_payment_id = order.razorpay_payment_id or payment_id
        tx_status, failure_reason = TransactionStatus.SUCCESS.value, None
    else:
        if order.payment_status in SETTLED_PAYMENT_STATUSES:
            # a failed retry never downgrades a paid order
            return "already paid"
        if _closed(order):
            return "order closed"
        order.payment_status = PaymentStatus.FAILED.value
        order.status = OrderStatus.PAYMENT_FAILED.value
        tx_status, failure_reason = TransactionStatus.FAILED.value, payment.get("error_description")

    order.updated_at = now()
    session.add(order)
    record_transaction(
        session,
        order_id=order.id,
        provider=PROVIDER,
        amount=amount,
        currency=payment.get("currency") or order.currency,
        status=tx_status,
        transaction_id=payment_id,
        order_id_ext=gateway_order_id,
        failure_reason=failure_reason,
        extra_data={"event": event_type},
    )
    await session.commit()

    logger.info("payment.webhook.applied", extra={"order_id": order.id, "event": event_type})
    await notify_order_status(session, hub, order)
    return event_type
