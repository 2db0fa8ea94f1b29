import time
import pytest
from fastapi.testclient import TestClient
from backend.main import app
from backend.realtime.hub import Hub
from tests.conftest import create_product, order_payload, url_prefix


@pytest.mark.asyncio
async def test_send_to_user_without_connections_is_a_noop():
    hub = Hub()
    assert await hub.send_to_user(42, {"type": "ping"}) == 0
    assert await hub.broadcast({"type": "ping"}) == 0


@pytest.mark.asyncio
async def test_messages_reach_only_the_target_user():
    hub = Hub()
    alice, bob, anon = hub.new_client(user_id=1), hub.new_client(user_id=2), hub.new_client()
    for c in (alice, bob, anon):
        await hub.register(c)

    assert await hub.send_to_user(1, {"n": 1}) == 1
    assert alice.queue.get_nowait() == {"n": 1}
    assert bob.queue.empty()

    assert await hub.broadcast({"n": 2}) == 3


@pytest.mark.asyncio
async def test_slow_client_is_dropped_when_its_buffer_is_full():
    hub = Hub(buffer_size=2)
    slow, fast = hub.new_client(user_id=1), hub.new_client(user_id=1)
    await hub.register(slow)
    await hub.register(fast)

    await hub.send_to_user(1, {"n": 1})
    fast.queue.get_nowait()
    await hub.send_to_user(1, {"n": 2})
    fast.queue.get_nowait()

    delivered = await hub.send_to_user(1, {"n": 3})

    assert delivered == 1
    assert slow.closed.is_set()
    assert hub.connected() == 1
    assert fast.queue.get_nowait() == {"n": 3}


@pytest.mark.asyncio
async def test_unregister_and_close_all_signal_clients():
    hub = Hub()
    a, b = hub.new_client(), hub.new_client()
    await hub.register(a)
    await hub.register(b)
    assert a.id != b.id

    await hub.unregister(a)
    assert a.closed.is_set()
    await hub.close_all()
    assert b.closed.is_set()
    assert hub.connected() == 0


@pytest.mark.asyncio
async def test_order_status_change_is_pushed_to_the_owner(ac_client, user_headers, admin_headers):
    me = await ac_client.get(f"{url_prefix}/user/me", headers=user_headers)
    user_id = me.json()["data"]["id"]

    hub = app.state.ws_hub
    client = hub.new_client(user_id=user_id)
    await hub.register(client)

    pid = await create_product(price=100.0, stock=3)
    order = await ac_client.post(f"{url_prefix}/orders", json=order_payload([{"product_id": pid, "quantity": 1}], 100.0),
                                 headers=user_headers)
    order_id = order.json()["data"]["order_id"]

    resp = await ac_client.put(f"{url_prefix}/admin/orders/{order_id}/status", json={"status": "delivered"},
                               headers=admin_headers)
    assert resp.status_code == 200

    message = client.queue.get_nowait()
    assert message["type"] == "notification"
    assert message["data"]["data"] == {"order_id": order_id, "status": "delivered"}

    listing = await ac_client.get(f"{url_prefix}/notifications", headers=user_headers)
    assert len(listing.json()["data"]["notifications"]) == 1


def test_websocket_client_receives_pushed_messages():
    with TestClient(app) as client:
        with client.websocket_connect("/ws?user_id=7") as ws:
            hub = app.state.ws_hub
            delivered = 0
            for _ in range(100):
                delivered = client.portal.call(hub.send_to_user, 7, {"type": "notification", "data": {"n": 1}})
                if delivered:
                    break
                time.sleep(0.01)

            assert delivered == 1
            assert ws.receive_json() == {"type": "notification", "data": {"n": 1}}
