"""Razorpay client and its stand-in for deployments without credentials.

Built once in the app lifespan and stored on ``app.state.payment_gateway``.
"""
import hashlib
import hmac
import random
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
import httpx
from fastapi import HTTPException, status
from backend.config.settings import Settings
from backend.payments.constants import CHECKOUT_NAME, CHECKOUT_THEME_COLOR, PAYMENT_UNAVAILABLE, PROVIDER, logger


def to_paise(amount: float) -> int:
    return int(round(amount * 100))



def generate_receipt_id() -> str:
    return f"RCP{int(time.time())}{random.randint(0, 9999)}"


def hmac_sha256_hex(secret: str, data: bytes) -> str:
    return hmac.new(secret.encode(), data, hashlib.sha256).hexdigest()


class PaymentGateway(ABC):
    configured: bool = False

    @abstractmethod
    async def create_order(self, amount: float, currency: str, receipt: str, notes: Optional[dict] = None) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def fetch_payment(self, payment_id: str) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def refund(self, payment_id: str, amount: Optional[float] = None, notes: Optional[dict] = None) -> Dict[str, Any]:
        ...

    @abstractmethod
    def verify_payment_signature(self, gateway_order_id: str, payment_id: str, signature: str) -> bool:
        ...

    @abstractmethod
    def verify_webhook_signature(self, body: bytes, signature: str) -> bool:
        ...

    @abstractmethod
    def checkout_options(self, gateway_order_id: str, amount: float, currency: str,
                         description: str, prefill: Optional[dict] = None) -> Dict[str, Any]:
        ...


class RazorpayGateway(PaymentGateway):
    configured = True

    def __init__(self, key_id: str, key_secret: str, webhook_secret: Optional[str] = None,
                 api_base: str = "https://api.razorpay.com/v1", timeout: float = 30.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.key_id = key_id
        self._key_secret = key_secret
        # webhooks fall back to the key secret when no dedicated secret is set
        self._webhook_secret = webhook_secret or key_secret
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, auth=(self.key_id, self._key_secret), transport=self._transport)

    async def _request(self, method: str, path: str, payload: Optional[dict] = None) -> Dict[str, Any]:
        url = f"{self.api_base}{path}"
        try:
            async with self._client() as client:
                resp = await client.request(method, url, json=payload)
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPStatusError as e:
            logger.error("razorpay.request.failed", extra={
                "path": path, "http_status": e.response.status_code, "body": e.response.text[:500]})
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY,
                                detail=f"Payment provider error: {e.response.status_code}")
        except httpx.HTTPError as e:
            logger.error("razorpay.request.unreachable", extra={"path": path, "error": str(e)})
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Payment provider unreachable")

    async def create_order(self, amount, currency, receipt, notes=None):
        payload = {
            "amount": to_paise(amount),
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        }
        return await self._request("POST", "/orders", payload)

    async def fetch_payment(self, payment_id):
        return await self._request("GET", f"/payments/{payment_id}")

    async def refund(self, payment_id, amount=None, notes=None):
        payload: Dict[str, Any] = {"notes": notes or {}}
        # no amount refunds the full payment
        if amount is not None:
            payload["amount"] = to_paise(amount)
        return await self._request("POST", f"/payments/{payment_id}/refund", payload)

    def verify_payment_signature(self, gateway_order_id, payment_id, signature):
        if not signature:
            return False
        expected = hmac_sha256_hex(self._key_secret, f"{gateway_order_id}|{payment_id}".encode())
        return hmac.compare_digest(expected, signature)

    def verify_webhook_signature(self, body, signature):
        if not signature:
            return False
        expected = hmac_sha256_hex(self._webhook_secret, body)
        return hmac.compare_digest(expected, signature)

    def checkout_options(self, gateway_order_id, amount, currency, description, prefill=None):
        return {
            "key": self.key_id,
            "amount": to_paise(amount),
            "currency": currency,
            "name": CHECKOUT_NAME,
            "description": description,
            "order_id": gateway_order_id,
            "prefill": prefill or {},
            "theme": {"color": CHECKOUT_THEME_COLOR},
        }


class UnconfiguredPaymentGateway(PaymentGateway):
    """Stand-in when no Razorpay keys are set , every call is a 503."""

    configured = False

    def _unavailable(self):
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=PAYMENT_UNAVAILABLE)

    async def create_order(self, amount, currency, receipt, notes=None):
        self._unavailable()

    async def fetch_payment(self, payment_id):
        self._unavailable()

    async def refund(self, payment_id, amount=None, notes=None):
        self._unavailable()

    def verify_payment_signature(self, gateway_order_id, payment_id, signature):
        self._unavailable()

    def verify_webhook_signature(self, body, signature):
        self._unavailable()

    def checkout_options(self, gateway_order_id, amount, currency, description, prefill=None):
        self._unavailable()


def build_payment_gateway(settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> PaymentGateway:
    if not settings.razorpay_configured:
        logger.warning("payments.gateway.unconfigured", extra={"provider": PROVIDER})
        return UnconfiguredPaymentGateway()
    return RazorpayGateway(
        key_id=settings.RAZORPAY_KEY_ID,
        key_secret=settings.RAZORPAY_KEY_SECRET,
        webhook_secret=settings.RAZORPAY_WEBHOOK_SECRET,
        api_base=settings.RAZORPAY_API_BASE,
        timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        transport=transport,
    )
