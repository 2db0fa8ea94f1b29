import os
import tempfile

# settings are read at import time , the test environment must be in place first
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(tempfile.gettempdir(), 'pashmiya_test.db')}"
os.environ["PASS_HASH_SCHEME"] = "pbkdf2_sha256"
os.environ["API_RATE_LIMIT"] = "10000"
os.environ["AUTH_RATE_LIMIT"] = "1000"
os.environ["RATE_LIMIT_BACKEND"] = "memory"
os.environ["RAZORPAY_KEY_ID"] = ""
os.environ["RAZORPAY_KEY_SECRET"] = ""
os.environ["SHIPROCKET_EMAIL"] = ""
os.environ["SHIPROCKET_PASSWORD"] = ""
os.environ["ENV"] = "dev"

from dotenv import load_dotenv

load_dotenv()

import json
import pytest
import httpx
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient
from sqlalchemy import update
from sqlmodel import SQLModel
from backend.common.validation import slugify
from backend.db.connection import async_engine, async_session
from backend.main import app
from backend.payments.gateway import RazorpayGateway
from backend.schema.full_schema import Category, Product, UserRole, Users
from backend.shipping.gateway import ShiprocketGateway
import backend.schema.full_schema  # noqa: F401

url_prefix = "/api"

RAZORPAY_KEY_ID = "rzp_test_key"
RAZORPAY_KEY_SECRET = "rzp_test_secret"
RAZORPAY_WEBHOOK_SECRET = "rzp_webhook_secret"

SHIPPING_ADDRESS = {
    "shipping_name": "Aarav Shah",
    "shipping_address": "12 Residency Road",
    "shipping_city": "Srinagar",
    "shipping_state": "Jammu and Kashmir",
    "shipping_country": "India",
    "shipping_zip": "190001",
    "shipping_phone": "+919812345678",
    "shipping_email": "aarav@example.com",
}


async def _reset_schema():
    async with async_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await async_engine.dispose()


@pytest.fixture
async def ac_client():
    await _reset_schema()
    async with LifespanManager(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac


@pytest.fixture
async def db_session(ac_client):
    async with async_session() as session:
        yield session


class ProviderLog:
    """Records provider calls made through an httpx.MockTransport."""

    def __init__(self):
        self.calls = []

    def paths(self):
        return [path for _, path, _ in self.calls]

    def count(self, suffix):
        return sum(1 for path in self.paths() if path.endswith(suffix))


@pytest.fixture
def razorpay_log():
    return ProviderLog()


@pytest.fixture
def razorpay_gateway(ac_client, razorpay_log):
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        razorpay_log.calls.append((request.method, request.url.path, body))
        path = request.url.path
        if path.endswith("/orders"):
            return httpx.Response(200, json={"id": "order_rzp_1", "amount": body["amount"],
                                             "currency": body["currency"], "receipt": body["receipt"]})
        if path.endswith("/refund"):
            return httpx.Response(200, json={"id": "rfnd_1", "status": "processed"})
        if "/payments/" in path:
            return httpx.Response(200, json={"id": path.rsplit("/", 1)[-1], "status": "captured"})
        return httpx.Response(404, json={"error": "unknown"})

    gateway = RazorpayGateway(RAZORPAY_KEY_ID, RAZORPAY_KEY_SECRET, webhook_secret=RAZORPAY_WEBHOOK_SECRET,
                              api_base="https://razorpay.test/v1", transport=httpx.MockTransport(handler))
    app.state.payment_gateway = gateway
    return gateway


@pytest.fixture
def shiprocket_log():
    return ProviderLog()


@pytest.fixture
def shiprocket_gateway(ac_client, shiprocket_log):
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        shiprocket_log.calls.append((request.method, request.url.path, body))
        path = request.url.path
        if path.endswith("/auth/login"):
            return httpx.Response(200, json={"token": "sr-token"})
        if request.headers.get("Authorization") != "Bearer sr-token":
            return httpx.Response(401, json={"message": "unauthorized"})
        if path.endswith("/orders/create/adhoc"):
            return httpx.Response(200, json={"order_id": 5501, "shipment_id": 7701, "status": "NEW"})
        if path.endswith("/courier/assign/awb"):
            return httpx.Response(200, json={"response": {"data": {"awb_code": "AWB123456"}}})
        if path.endswith("/courier/generate/label"):
            return httpx.Response(200, json={"label_url": "https://labels.test/7701.pdf"})
        if path.endswith("/orders/cancel"):
            return httpx.Response(200, json={"status": 200})
        if "/courier/track/awb/" in path:
            return httpx.Response(200, json={"tracking_data": {"shipment_status": 6}})
        if path.endswith("/courier/serviceability/"):
            return httpx.Response(200, json={"status": 200, "data": {"available_courier_companies": [
                {"courier_name": "Delhivery", "rate": 95.5, "estimated_delivery_days": "4",
                 "courier_type": "surface", "courier_company_id": 12}]}})
        if path.endswith("/settings/company/pickup"):
            return httpx.Response(200, json={"data": {"shipping_address": [
                {"pickup_location": "Primary", "pin_code": "190001"}]}})
        return httpx.Response(404, json={"message": "unknown"})

    gateway = ShiprocketGateway("ops@pashmiya.in", "secret", api_base="https://shiprocket.test",
                                transport=httpx.MockTransport(handler))
    app.state.shipping_gateway = gateway
    return gateway


async def register_user(ac, email="buyer@example.com", password="StrongPass123", name="Buyer"):
    resp = await ac.post(f"{url_prefix}/auth/register", json={"name": name, "email": email, "password": password})
    assert resp.status_code == 201, resp.text
    data = resp.json()["data"]
    return data["user"], {"Authorization": f"Bearer {data['token']}"}


async def make_admin(email):
    async with async_session() as session:
        await session.execute(update(Users).where(Users.email == email).values(role=UserRole.ADMIN.value))
        await session.commit()


@pytest.fixture
async def user_headers(ac_client):
    _, headers = await register_user(ac_client)
    return headers


@pytest.fixture
async def admin_headers(ac_client):
    _, headers = await register_user(ac_client, email="admin@pashmiya.in", name="Admin")
    await make_admin("admin@pashmiya.in")
    return headers


async def create_product(name="Kani Shawl", price=1000.0, stock=10, **extra) -> int:
    async with async_session() as session:
        category = Category(name=f"{name} category", slug=f"{slugify(name)}-cat")
        session.add(category)
        await session.flush()
        product = Product(name=name, price=price, stock=stock, category_id=category.id,
                          colors=extra.pop("colors", []), sizes=extra.pop("sizes", []), **extra)
        session.add(product)
        await session.commit()
        return product.id


async def product_stock(product_id: int) -> int:
    async with async_session() as session:
        product = await session.get(Product, product_id)
        return product.stock


def order_payload(items, total, **extra):
    payload = {"items": items, "total_amount": total, **SHIPPING_ADDRESS}
    payload.update(extra)
    return payload
