from fastapi import Request
from backend.payments.gateway import PaymentGateway


def get_payment_gateway(request: Request) -> PaymentGateway:
    return request.app.state.payment_gateway
