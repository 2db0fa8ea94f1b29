import json
import pytest
from sqlalchemy import select
from backend.db.connection import async_session
from backend.payments.gateway import hmac_sha256_hex
from backend.schema.full_schema import Orders, PaymentTransaction
from tests.conftest import (RAZORPAY_KEY_SECRET, RAZORPAY_WEBHOOK_SECRET, create_product, order_payload,
                            url_prefix)


async def _place_order(ac, headers=None, price=1200.0):
    pid = await create_product(price=price, stock=5)
    resp = await ac.post(f"{url_prefix}/orders", json=order_payload([{"product_id": pid, "quantity": 1}], price),
                         headers=headers or {})
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]["order_id"]


def _checkout_signature(gateway_order_id, payment_id):
    return hmac_sha256_hex(RAZORPAY_KEY_SECRET, f"{gateway_order_id}|{payment_id}".encode())


async def _load_order(order_id):
    async with async_session() as session:
        return await session.get(Orders, order_id)


async def _transactions(order_id):
    async with async_session() as session:
        stmt = select(PaymentTransaction).where(PaymentTransaction.order_id == order_id).order_by(PaymentTransaction.id)
        return (await session.execute(stmt)).scalars().all()


@pytest.mark.asyncio
async def test_create_intent_without_credentials_is_unavailable(ac_client, user_headers):
    order_id = await _place_order(ac_client, user_headers)
    resp = await ac_client.post(f"{url_prefix}/payments/create-intent", json={"order_id": order_id}, headers=user_headers)
    assert resp.status_code == 503


@pytest.mark.asyncio
async def test_create_intent_stores_gateway_order(ac_client, user_headers, razorpay_gateway, razorpay_log):
    order_id = await _place_order(ac_client, user_headers, price=1200.0)

    resp = await ac_client.post(f"{url_prefix}/payments/create-intent", json={"order_id": order_id}, headers=user_headers)
    assert resp.status_code == 200, resp.text

    data = resp.json()["data"]
    assert data["razorpay_order_id"] == "order_rzp_1"
    assert data["amount"] == 120000
    assert data["receipt"].startswith("RCP")
    assert data["checkout"]["key"] == razorpay_gateway.key_id

    _, path, body = razorpay_log.calls[0]
    assert path.endswith("/orders")
    assert body["amount"] == 120000
    assert (await _load_order(order_id)).razorpay_order_id == "order_rzp_1"


@pytest.mark.asyncio
async def test_verify_rejects_bad_signature_and_changes_nothing(ac_client, user_headers, razorpay_gateway):
    order_id = await _place_order(ac_client, user_headers)
    await ac_client.post(f"{url_prefix}/payments/create-intent", json={"order_id": order_id}, headers=user_headers)

    payload = {"order_id": order_id, "razorpay_order_id": "order_rzp_1",
               "razorpay_payment_id": "pay_1", "razorpay_signature": "deadbeef"}
    resp = await ac_client.post(f"{url_prefix}/payments/verify", json=payload)

    assert resp.status_code == 400
    assert resp.json()["error"]["details"]["message"] == "Invalid payment signature"
    order = await _load_order(order_id)
    assert order.payment_status == "pending"
    assert order.razorpay_payment_id is None
    assert await _transactions(order_id) == []


@pytest.mark.asyncio
async def test_verify_marks_order_paid_once(ac_client, user_headers, razorpay_gateway):
    order_id = await _place_order(ac_client, user_headers)
    await ac_client.post(f"{url_prefix}/payments/create-intent", json={"order_id": order_id}, headers=user_headers)

    payload = {"order_id": order_id, "razorpay_order_id": "order_rzp_1", "razorpay_payment_id": "pay_1",
               "razorpay_signature": _checkout_signature("order_rzp_1", "pay_1")}
    first = await ac_client.post(f"{url_prefix}/payments/verify", json=payload)
    second = await ac_client.post(f"{url_prefix}/payments/verify", json=payload)

    assert first.status_code == 200, first.text
    assert second.status_code == 200
    order = await _load_order(order_id)
    assert order.status == "paid"
    assert order.payment_status == "paid"
    assert order.razorpay_payment_id == "pay_1"
    assert [t.status for t in await _transactions(order_id)] == ["success"]

    again = await ac_client.post(f"{url_prefix}/payments/create-intent", json={"order_id": order_id},
                                 headers=user_headers)
    assert again.status_code == 400


@pytest.mark.asyncio
async def test_verify_refuses_a_payment_for_another_gateway_order(ac_client, user_headers, razorpay_gateway):
    order_id = await _place_order(ac_client, user_headers)
    await ac_client.post(f"{url_prefix}/payments/create-intent", json={"order_id": order_id}, headers=user_headers)

    payload = {"order_id": order_id, "razorpay_order_id": "order_other", "razorpay_payment_id": "pay_9",
               "razorpay_signature": _checkout_signature("order_other", "pay_9")}
    resp = await ac_client.post(f"{url_prefix}/payments/verify", json=payload)
    assert resp.status_code == 400
    assert (await _load_order(order_id)).payment_status == "pending"


def _webhook_event(event, gateway_order_id, payment_id="pay_wh", amount=120000):
    return {"event": event, "payload": {"payment": {"entity": {
        "id": payment_id, "order_id": gateway_order_id, "amount": amount, "currency": "INR",
        "error_description": "card declined" if event == "payment.failed" else None}}}}


async def _post_webhook(ac, event, secret=RAZORPAY_WEBHOOK_SECRET):
    body = json.dumps(event).encode()
    headers = {"X-Razorpay-Signature": hmac_sha256_hex(secret, body), "Content-Type": "application/json"}
    return await ac.post(f"{url_prefix}/webhooks/razorpay", content=body, headers=headers)


@pytest.mark.asyncio
async def test_webhook_requires_a_valid_signature(ac_client, razorpay_gateway):
    body = json.dumps(_webhook_event("payment.captured", "order_rzp_1")).encode()

    missing = await ac_client.post(f"{url_prefix}/webhooks/razorpay", content=body)
    assert missing.status_code == 400
    assert missing.json()["error"]["details"]["message"] == "Missing signature"

    forged = await _post_webhook(ac_client, _webhook_event("payment.captured", "order_rzp_1"), secret="wrong")
    assert forged.status_code == 400
    assert forged.json()["error"]["details"]["message"] == "Invalid webhook signature"


@pytest.mark.asyncio
async def test_captured_webhook_pays_and_failed_never_downgrades(ac_client, user_headers, razorpay_gateway):
    order_id = await _place_order(ac_client, user_headers)
    await ac_client.post(f"{url_prefix}/payments/create-intent", json={"order_id": order_id}, headers=user_headers)

    captured = await _post_webhook(ac_client, _webhook_event("payment.captured", "order_rzp_1"))
    assert captured.status_code == 200
    assert captured.json() == {"status": "received"}
    assert (await _load_order(order_id)).payment_status == "paid"

    failed = await _post_webhook(ac_client, _webhook_event("payment.failed", "order_rzp_1", payment_id="pay_retry"))
    assert failed.status_code == 200
    order = await _load_order(order_id)
    assert order.payment_status == "paid"
    assert order.status == "paid"


@pytest.mark.asyncio
async def test_failed_webhook_marks_pending_order_failed(ac_client, user_headers, razorpay_gateway):
    order_id = await _place_order(ac_client, user_headers)
    await ac_client.post(f"{url_prefix}/payments/create-intent", json={"order_id": order_id}, headers=user_headers)

    await _post_webhook(ac_client, _webhook_event("payment.failed", "order_rzp_1"))

    order = await _load_order(order_id)
    assert order.payment_status == "failed"
    assert order.status == "payment_failed"
    txs = await _transactions(order_id)
    assert [t.failure_reason for t in txs] == ["card declined"]


@pytest.mark.asyncio
async def test_shiprocket_webhook_is_acknowledged(ac_client):
    resp = await ac_client.post(f"{url_prefix}/webhooks/shiprocket", json={"awb": "AWB1", "current_status": "DELIVERED"})
    assert resp.status_code == 200
    assert resp.json() == {"status": "received"}


async def _cancelled_order_with_intent(ac, headers):
    order_id = await _place_order(ac, headers)
    await ac.post(f"{url_prefix}/payments/create-intent", json={"order_id": order_id}, headers=headers)
    cancel = await ac.post(f"{url_prefix}/orders/{order_id}/cancel", headers=headers)
    assert cancel.status_code == 200, cancel.text
    return order_id


@pytest.mark.asyncio
async def test_checkout_on_a_cancelled_order_is_refunded(ac_client, user_headers, razorpay_gateway, razorpay_log):
    order_id = await _cancelled_order_with_intent(ac_client, user_headers)

    payload = {"order_id": order_id, "razorpay_order_id": "order_rzp_1", "razorpay_payment_id": "pay_1",
               "razorpay_signature": _checkout_signature("order_rzp_1", "pay_1")}
    first = await ac_client.post(f"{url_prefix}/payments/verify", json=payload)
    second = await ac_client.post(f"{url_prefix}/payments/verify", json=payload)

    assert first.status_code == 409
    assert first.json()["error"]["details"]["payment_id"] == "pay_1"
    assert second.status_code == 409
    assert razorpay_log.count("/payments/pay_1/refund") == 1

    order = await _load_order(order_id)
    assert order.status == "cancelled"
    assert order.payment_status == "refunded"
    txs = await _transactions(order_id)
    assert [(t.transaction_id, t.status) for t in txs] == [("pay_1", "success"), ("pay_1", "refunded")]

    again = await ac_client.post(f"{url_prefix}/orders/{order_id}/cancel", headers=user_headers)
    assert again.json()["data"]["message"] == "Order already cancelled"


@pytest.mark.asyncio
async def test_captured_webhook_on_a_cancelled_order_is_refunded(ac_client, user_headers, razorpay_gateway,
                                                                razorpay_log):
    order_id = await _cancelled_order_with_intent(ac_client, user_headers)

    event = _webhook_event("payment.captured", "order_rzp_1", payment_id="pay_late")
    first = await _post_webhook(ac_client, event)
    second = await _post_webhook(ac_client, event)

    assert first.status_code == 200
    assert second.status_code == 200
    assert razorpay_log.count("/payments/pay_late/refund") == 1
    order = await _load_order(order_id)
    assert order.status == "cancelled"
    assert order.payment_status == "refunded"
    assert [t.status for t in await _transactions(order_id)] == ["success", "refunded"]


@pytest.mark.asyncio
async def test_failed_webhook_leaves_a_cancelled_order_alone(ac_client, user_headers, razorpay_gateway):
    order_id = await _cancelled_order_with_intent(ac_client, user_headers)

    resp = await _post_webhook(ac_client, _webhook_event("payment.failed", "order_rzp_1"))
    assert resp.status_code == 200
    order = await _load_order(order_id)
    assert order.status == "cancelled"
    assert await _transactions(order_id) == []


@pytest.mark.asyncio
async def test_second_payment_keeps_the_first_and_is_recorded(ac_client, user_headers, razorpay_gateway):
    order_id = await _place_order(ac_client, user_headers)
    await ac_client.post(f"{url_prefix}/payments/create-intent", json={"order_id": order_id}, headers=user_headers)

    def payload(payment_id):
        return {"order_id": order_id, "razorpay_order_id": "order_rzp_1", "razorpay_payment_id": payment_id,
                "razorpay_signature": _checkout_signature("order_rzp_1", payment_id)}

    assert (await ac_client.post(f"{url_prefix}/payments/verify", json=payload("pay_1"))).status_code == 200
    second = await ac_client.post(f"{url_prefix}/payments/verify", json=payload("pay_2"))
    repeat = await ac_client.post(f"{url_prefix}/payments/verify", json=payload("pay_2"))

    assert second.status_code == 409
    assert second.json()["error"]["details"]["message"] == "Order already paid with another payment"
    assert repeat.status_code == 409
    order = await _load_order(order_id)
    assert order.razorpay_payment_id == "pay_1"
    assert order.razorpay_signature == _checkout_signature("order_rzp_1", "pay_1")
    txs = await _transactions(order_id)
    assert [(t.transaction_id, t.status) for t in txs] == [("pay_1", "success"), ("pay_2", "success")]
    assert txs[1].extra_data["duplicate_of"] == "pay_1"


@pytest.mark.asyncio
async def test_unhandled_webhook_events_are_acknowledged_without_changes(ac_client, user_headers, razorpay_gateway):
    order_id = await _place_order(ac_client, user_headers)
    await ac_client.post(f"{url_prefix}/payments/create-intent", json={"order_id": order_id}, headers=user_headers)

    resp = await _post_webhook(ac_client, _webhook_event("payment.authorized", "order_rzp_1"))

    assert resp.status_code == 200
    assert resp.json() == {"status": "received"}
    order = await _load_order(order_id)
    assert order.payment_status == "pending"
    assert order.status == "pending"
    assert await _transactions(order_id) == []
