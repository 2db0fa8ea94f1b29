from typing import Optional
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from backend.auth.dependencies import is_admin, optional_user_id
from backend.common.utils import success_response
from backend.db.dependencies import get_session
from backend.payments.dependencies import get_payment_gateway
from backend.payments.gateway import PaymentGateway
from backend.payments.models import CreateIntentIn, RefundIn, VerifyPaymentIn
from backend.payments.services import create_payment_intent, refund_payment, verify_payment
from backend.realtime.dependencies import get_hub
from backend.realtime.hub import Hub

payments_router = APIRouter()
payments_admin_router = APIRouter()


@payments_router.post("/create-intent")
async def create_intent(payload: CreateIntentIn, request: Request,
                        user_id: Optional[int] = Depends(optional_user_id),
                        session: AsyncSession = Depends(get_session),
                        gateway: PaymentGateway = Depends(get_payment_gateway)):
    data = await create_payment_intent(session, gateway, payload.order_id, user_id, is_admin(request))
    return success_response(data)


@payments_router.post("/verify")
async def verify(payload: VerifyPaymentIn, session: AsyncSession = Depends(get_session),
                 gateway: PaymentGateway = Depends(get_payment_gateway), hub: Hub = Depends(get_hub)):
    data = await verify_payment(session, gateway, payload, hub)
    return success_response(data)


@payments_router.get("/{payment_id}/status")
async def payment_status(payment_id: str, gateway: PaymentGateway = Depends(get_payment_gateway)):
    payment = await gateway.fetch_payment(payment_id)
    return success_response({"payment_id": payment_id, "status": payment.get("status"), "payment": payment})


@payments_admin_router.post("/refund")
async def refund(payload: RefundIn, session: AsyncSession = Depends(get_session),
                 gateway: PaymentGateway = Depends(get_payment_gateway)):
    data = await refund_payment(session, gateway, payload)
    return success_response(data)
