"""Shiprocket client and its stand-in for deployments without credentials.

Built once in the app lifespan and stored on ``app.state.shipping_gateway``.
"""
import asyncio
import copy
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
import httpx
from fastapi import HTTPException, status
from backend.config.settings import Settings
from backend.shipping.constants import DEFAULT_RATES, PROVIDER, SHIPPING_UNAVAILABLE, TOKEN_TTL_SECONDS, logger


class ShippingGateway(ABC):
    configured: bool = False

    @abstractmethod
    async def calculate_rates(self, pickup_pin: str, delivery_pin: str, weight_grams: int, cod: int = 0) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    async def create_order(self, order_data: Dict[str, Any]) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def assign_awb(self, shipment_id: int, courier_id: int) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def generate_label(self, shipment_ids: List[int]) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def track(self, awb: str) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def cancel_orders(self, ids: List[int]) -> None:
        ...

    @abstractmethod
    async def pickup_locations(self) -> List[Dict[str, Any]]:
        ...


class ShiprocketGateway(ShippingGateway):
    configured = True

    def __init__(self, email: str, password: str, api_base: str = "https://apiv2.shiprocket.in/v1/external",
                 timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None, clock=time.monotonic):
        self.email = email
        self._password = password
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._clock = clock
        self._token: Optional[str] = None
        self._token_expiry = 0.0
        self._token_lock = asyncio.Lock()

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.api_base, timeout=self.timeout, transport=self._transport)

    async def _authenticate(self) -> str:
        async with self._token_lock:
            if self._token and self._clock() < self._token_expiry:
                return self._token
            try:
                async with self._client() as client:
                    resp = await client.post("/auth/login", json={"email": self.email, "password": self._password})
                    resp.raise_for_status()
                    data = resp.json()
            except httpx.HTTPError as e:
                logger.error("shiprocket.auth.failed", extra={"error": str(e)})
                raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Shipping provider authentication failed")

            token = data.get("token")
            if not isinstance(token, str) or not token:
                logger.error("shiprocket.auth.invalid_token_response")
                raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Shipping provider authentication failed")

            self._token = token
            self._token_expiry = self._clock() + TOKEN_TTL_SECONDS
            logger.info("shiprocket.auth.success")
            return token

    async def _request(self, method: str, path: str, payload: Optional[dict] = None, params: Optional[dict] = None) -> Dict[str, Any]:
        token = await self._authenticate()
        headers = {"Authorization": f"Bearer {token}"}
        try:
            async with self._client() as client:
                resp = await client.request(method, path, json=payload, params=params, headers=headers)
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPStatusError as e:
            logger.error("shiprocket.request.failed", extra={
                "path": path, "http_status": e.response.status_code, "body": e.response.text[:500]})
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY,
                                detail=f"Shipping provider error: {e.response.status_code}")
        except httpx.HTTPError as e:
            logger.error("shiprocket.request.unreachable", extra={"path": path, "error": str(e)})
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Shipping provider unreachable")

    async def calculate_rates(self, pickup_pin, delivery_pin, weight_grams, cod=0):
        params = {
            "pickup_postcode": pickup_pin,
            "delivery_postcode": delivery_pin,
            "weight": weight_grams,
            "cod": cod,
        }
        result = await self._request("GET", "/courier/serviceability/", params=params)

        api_status = result.get("status")
        if isinstance(api_status, (int, float)) and api_status != 200 and result.get("message"):
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"API error: {result['message']}")

        data = result.get("data")
        couriers = data.get("available_courier_companies") if isinstance(data, dict) else None
        if not isinstance(couriers, list):
            return []

        return [
            {
                "courier_name": c.get("courier_name"),
                "rate": c.get("rate"),
                "currency": "INR",
                "estimated_days": c.get("estimated_delivery_days"),
                "service_type": c.get("courier_type"),
                "courier_company_id": c.get("courier_company_id"),
            }
            for c in couriers if isinstance(c, dict)
        ]

    async def create_order(self, order_data):
        return await self._request("POST", "/orders/create/adhoc", order_data)

    async def assign_awb(self, shipment_id, courier_id):
        return await self._request("POST", "/courier/assign/awb", {"shipment_id": shipment_id, "courier_id": courier_id})

    async def generate_label(self, shipment_ids):
        return await self._request("POST", "/courier/generate/label", {"shipment_id": shipment_ids})

    async def track(self, awb):
        return await self._request("GET", f"/courier/track/awb/{awb}")

    async def cancel_orders(self, ids):
        await self._request("POST", "/orders/cancel", {"ids": ids})

    async def pickup_locations(self):
        result = await self._request("GET", "/settings/company/pickup")
        data = result.get("data")
        if isinstance(data, dict):
            data = data.get("shipping_address")
        return data if isinstance(data, list) else []


class UnconfiguredShippingGateway(ShippingGateway):
    """Stand-in when no Shiprocket credentials are set , quotes flat default rates and 503s everything else."""

    configured = False

    def _unavailable(self):
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=SHIPPING_UNAVAILABLE)

    async def calculate_rates(self, pickup_pin, delivery_pin, weight_grams, cod=0):
        return copy.deepcopy(DEFAULT_RATES)

    async def create_order(self, order_data):
        self._unavailable()

    async def assign_awb(self, shipment_id, courier_id):
        self._unavailable()

    async def generate_label(self, shipment_ids):
        self._unavailable()

    async def track(self, awb):
        self._unavailable()

    async def cancel_orders(self, ids):
        self._unavailable()

    async def pickup_locations(self):
        self._unavailable()


def build_shipping_gateway(settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> ShippingGateway:
    if not settings.shiprocket_configured:
        logger.warning("shipping.gateway.unconfigured", extra={"provider": PROVIDER})
        return UnconfiguredShippingGateway()
    return ShiprocketGateway(
        email=settings.SHIPROCKET_EMAIL,
        password=settings.SHIPROCKET_PASSWORD,
        api_base=settings.SHIPROCKET_API_BASE,
        timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        transport=transport,
    )
