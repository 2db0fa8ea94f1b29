from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from backend.common.utils import success_response
from backend.shipping.constants import logger
from backend.shipping.dependencies import get_shipping_gateway
from backend.shipping.gateway import ShippingGateway
from backend.shipping.utils import weight_to_grams

shipping_router = APIRouter()


@shipping_router.get("/calculate-rates")
async def calculate_rates(pickup_pin: Optional[str] = Query(None), delivery_pin: Optional[str] = Query(None),
                          weight: Optional[str] = Query(None), cod: int = Query(0),
                          gateway: ShippingGateway = Depends(get_shipping_gateway)):

    if gateway.configured and (not pickup_pin or not delivery_pin):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Pickup and delivery PIN codes required")

    rates = await gateway.calculate_rates(pickup_pin or "", delivery_pin or "", weight_to_grams(weight), cod)

    logger.info("shipping.rates.success", extra={"count": len(rates), "configured": gateway.configured})
    return success_response({"rates": rates})


@shipping_router.get("/track/{awb}")
async def track_shipment(awb: str, gateway: ShippingGateway = Depends(get_shipping_gateway)):

    tracking = await gateway.track(awb)
    return success_response(tracking)


shipping_admin_router = APIRouter()


@shipping_admin_router.get("/pickup-locations")
async def pickup_locations(gateway: ShippingGateway = Depends(get_shipping_gateway)):

    locations = await gateway.pickup_locations()
    return success_response({"locations": locations})
