import pytest
from sqlalchemy import update
from backend.db.connection import async_session
from backend.payments.repository import transactions_for_order
from backend.schema.full_schema import Orders
from tests.conftest import create_product, order_payload, product_stock, url_prefix


async def _place_order(ac, headers, price=800.0, quantity=2, stock=5):
    pid = await create_product(price=price, stock=stock)
    payload = order_payload([{"product_id": pid, "quantity": quantity}], price * quantity)
    resp = await ac.post(f"{url_prefix}/orders", json=payload, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]["order_id"], pid


async def _set_order(order_id, **values):
    async with async_session() as session:
        await session.execute(update(Orders).where(Orders.id == order_id).values(**values))
        await session.commit()


async def _load_order(order_id):
    async with async_session() as session:
        return await session.get(Orders, order_id)


# cancellation

@pytest.mark.asyncio
async def test_cancel_restores_stock_exactly_once(ac_client, user_headers):
    order_id, pid = await _place_order(ac_client, user_headers)
    assert await product_stock(pid) == 3

    first = await ac_client.post(f"{url_prefix}/orders/{order_id}/cancel", headers=user_headers)
    second = await ac_client.post(f"{url_prefix}/orders/{order_id}/cancel", headers=user_headers)

    assert first.status_code == 200, first.text
    assert first.json()["data"]["status"] == "cancelled"
    assert second.status_code == 200
    assert second.json()["data"]["message"] == "Order already cancelled"
    assert await product_stock(pid) == 5
    assert (await _load_order(order_id)).cancellation_step == "completed"


@pytest.mark.asyncio
async def test_shipped_orders_cannot_be_cancelled(ac_client, user_headers):
    order_id, pid = await _place_order(ac_client, user_headers)
    await _set_order(order_id, status="shipped")

    resp = await ac_client.post(f"{url_prefix}/orders/{order_id}/cancel", headers=user_headers)
    assert resp.status_code == 400
    assert await product_stock(pid) == 3


@pytest.mark.asyncio
async def test_cancel_refunds_a_paid_order(ac_client, user_headers, razorpay_gateway, razorpay_log):
    order_id, pid = await _place_order(ac_client, user_headers)
    await _set_order(order_id, status="paid", payment_status="paid", razorpay_payment_id="pay_42",
                     razorpay_order_id="order_rzp_1")

    resp = await ac_client.post(f"{url_prefix}/orders/{order_id}/cancel", headers=user_headers)
    assert resp.status_code == 200, resp.text
    assert resp.json()["data"]["payment_status"] == "refunded"

    again = await ac_client.post(f"{url_prefix}/orders/{order_id}/cancel", headers=user_headers)
    assert again.status_code == 200

    assert razorpay_log.count("/payments/pay_42/refund") == 1
    _, _, body = razorpay_log.calls[0]
    assert body["amount"] == 160000
    async with async_session() as session:
        txs = await transactions_for_order(session, order_id)
    assert [t.status for t in txs] == ["refunded"]
    assert await product_stock(pid) == 5


@pytest.mark.asyncio
async def test_cancel_of_paid_order_resumes_after_gateway_becomes_available(ac_client, user_headers, razorpay_log):
    order_id, pid = await _place_order(ac_client, user_headers)
    await _set_order(order_id, status="paid", payment_status="paid", razorpay_payment_id="pay_7")

    # no payment credentials yet , the refund step cannot run
    blocked = await ac_client.post(f"{url_prefix}/orders/{order_id}/cancel", headers=user_headers)
    assert blocked.status_code == 503
    order = await _load_order(order_id)
    assert order.cancellation_step == "started"
    assert order.status == "paid"
    assert await product_stock(pid) == 3

    from tests.conftest import RAZORPAY_KEY_ID, RAZORPAY_KEY_SECRET
    import httpx
    from backend.main import app
    from backend.payments.gateway import RazorpayGateway

    def handler(request):
        razorpay_log.calls.append((request.method, request.url.path, None))
        return httpx.Response(200, json={"id": "rfnd_7"})

    app.state.payment_gateway = RazorpayGateway(RAZORPAY_KEY_ID, RAZORPAY_KEY_SECRET,
                                                transport=httpx.MockTransport(handler))

    resumed = await ac_client.post(f"{url_prefix}/orders/{order_id}/cancel", headers=user_headers)
    assert resumed.status_code == 200, resumed.text
    assert razorpay_log.count("/payments/pay_7/refund") == 1
    assert await product_stock(pid) == 5


@pytest.mark.asyncio
async def test_cancel_asks_the_carrier_to_drop_the_shipment(ac_client, user_headers, shiprocket_gateway, shiprocket_log):
    order_id, _ = await _place_order(ac_client, user_headers)
    await _set_order(order_id, carrier_order_id=5501, tracking_number="AWB1")

    resp = await ac_client.post(f"{url_prefix}/orders/{order_id}/cancel", headers=user_headers)
    assert resp.status_code == 200

    cancel_calls = [body for _, path, body in shiprocket_log.calls if path.endswith("/orders/cancel")]
    assert cancel_calls == [{"ids": [5501]}]


# shipping label

@pytest.mark.asyncio
async def test_label_requires_configured_carrier(ac_client, user_headers, admin_headers):
    order_id, _ = await _place_order(ac_client, user_headers)
    resp = await ac_client.post(f"{url_prefix}/admin/orders/{order_id}/ship", json={"courier_id": 12},
                                headers=admin_headers)
    assert resp.status_code == 503


@pytest.mark.asyncio
async def test_label_requires_a_paid_order(ac_client, user_headers, admin_headers, shiprocket_gateway, shiprocket_log):
    order_id, _ = await _place_order(ac_client, user_headers)
    resp = await ac_client.post(f"{url_prefix}/admin/orders/{order_id}/ship", json={"courier_id": 12},
                                headers=admin_headers)
    assert resp.status_code == 400
    assert shiprocket_log.calls == []


@pytest.mark.asyncio
async def test_label_saga_assigns_awb_and_is_not_repeated(ac_client, user_headers, admin_headers,
                                                          shiprocket_gateway, shiprocket_log):
    order_id, _ = await _place_order(ac_client, user_headers)
    await _set_order(order_id, status="paid", payment_status="paid")

    resp = await ac_client.post(f"{url_prefix}/admin/orders/{order_id}/ship", json={"courier_id": 12},
                                headers=admin_headers)
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["awb_number"] == "AWB123456"
    assert data["shipment_id"] == 7701
    assert data["tracking_url"] == "https://shiprocket.co/tracking/AWB123456"
    assert data["label_url"] == "https://labels.test/7701.pdf"
    assert data["order_status"] == "processing"

    order = await _load_order(order_id)
    assert order.fulfillment_step == "completed"
    assert order.carrier_order_id == 5501
    assert order.estimated_delivery is not None

    again = await ac_client.post(f"{url_prefix}/admin/orders/{order_id}/ship", json={"courier_id": 12},
                                 headers=admin_headers)
    assert again.json()["data"]["awb_number"] == "AWB123456"
    assert shiprocket_log.count("/orders/create/adhoc") == 1
    assert shiprocket_log.count("/courier/assign/awb") == 1
    # one login for the whole run
    assert shiprocket_log.count("/auth/login") == 1


@pytest.mark.asyncio
async def test_label_saga_resumes_after_a_failed_awb_step(ac_client, user_headers, admin_headers, shiprocket_log):
    import httpx
    from backend.main import app
    from backend.shipping.gateway import ShiprocketGateway

    order_id, _ = await _place_order(ac_client, user_headers)
    await _set_order(order_id, status="paid", payment_status="paid")

    awb_attempts = {"n": 0}

    def handler(request):
        path = request.url.path
        shiprocket_log.calls.append((request.method, path, None))
        if path.endswith("/auth/login"):
            return httpx.Response(200, json={"token": "t"})
        if path.endswith("/orders/create/adhoc"):
            return httpx.Response(200, json={"order_id": 88, "shipment_id": 99})
        if path.endswith("/courier/assign/awb"):
            awb_attempts["n"] += 1
            if awb_attempts["n"] == 1:
                return httpx.Response(500, json={"message": "courier busy"})
            return httpx.Response(200, json={"response": {"data": {"awb_code": "AWB-RETRY"}}})
        # label generation failing does not fail the saga
        return httpx.Response(500, json={"message": "label down"})

    app.state.shipping_gateway = ShiprocketGateway("ops@pashmiya.in", "secret", api_base="https://shiprocket.test",
                                                   transport=httpx.MockTransport(handler))

    first = await ac_client.post(f"{url_prefix}/admin/orders/{order_id}/ship", json={"courier_id": 1},
                                 headers=admin_headers)
    assert first.status_code == 502
    order = await _load_order(order_id)
    assert order.fulfillment_step == "shipment_created"
    assert order.shipment_id == 99

    second = await ac_client.post(f"{url_prefix}/admin/orders/{order_id}/ship", json={"courier_id": 1},
                                  headers=admin_headers)
    assert second.status_code == 200, second.text
    assert second.json()["data"]["awb_number"] == "AWB-RETRY"
    assert second.json()["data"]["label_url"] is None
    assert shiprocket_log.count("/orders/create/adhoc") == 1
