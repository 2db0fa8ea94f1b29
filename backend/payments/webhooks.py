import json
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from backend.db.dependencies import get_session
from backend.payments.constants import logger
from backend.payments.dependencies import get_payment_gateway
from backend.payments.gateway import PaymentGateway
from backend.payments.services import apply_webhook_event
from backend.realtime.dependencies import get_hub
from backend.realtime.hub import Hub
from backend.shipping.constants import logger as shipping_logger

webhooks_router = APIRouter()


def _parse_json(body: bytes) -> dict:
    try:
        payload = json.loads(body)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON payload")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON payload")
    return payload


@webhooks_router.post("/razorpay")
async def razorpay_webhook(request: Request, session: AsyncSession = Depends(get_session),
                           gateway: PaymentGateway = Depends(get_payment_gateway), hub: Hub = Depends(get_hub)):
    body = await request.body()

    signature = request.headers.get("X-Razorpay-Signature")
    if not signature:
        logger.warning("razorpay.webhook.missing_signature")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing signature")

    # signature is checked on the raw bytes before anything in the body is trusted
    if not gateway.verify_webhook_signature(body, signature):
        logger.warning("razorpay.webhook.invalid_signature")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid webhook signature")

    event = _parse_json(body)
    note = await apply_webhook_event(session, event, gateway, hub)

    logger.info("razorpay.webhook.received", extra={"event": event.get("event"), "note": note})
    return JSONResponse({"status": "received"}, status_code=status.HTTP_200_OK)


@webhooks_router.post("/shiprocket")
async def shiprocket_webhook(request: Request):
    payload = _parse_json(await request.body())

    shipping_logger.info("shiprocket.webhook.received", extra={
        "awb": payload.get("awb"), "current_status": payload.get("current_status")})
    return JSONResponse({"status": "received"}, status_code=status.HTTP_200_OK)
