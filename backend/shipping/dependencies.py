from fastapi import Request
from backend.shipping.gateway import ShippingGateway


def get_shipping_gateway(request: Request) -> ShippingGateway:
    return request.app.state.shipping_gateway
