from backend.common.logging_setup import get_logger

logger = get_logger("pashmiya.shipping")

PROVIDER = "shiprocket"
TOKEN_TTL_SECONDS = 9 * 24 * 3600
SHIPPING_UNAVAILABLE = "Shipping service not available"
TRACKING_URL = "https://shiprocket.co/tracking/{awb}"
ESTIMATED_DELIVERY_DAYS = 7
MIN_WEIGHT_GRAMS = 500

# package defaults for every shipment
DEFAULT_DIMENSIONS_CM = {"length": 10, "breadth": 10, "height": 10}
DEFAULT_WEIGHT_KG = 0.5

DEFAULT_RATES = [
    {
        "courier_name": "Standard Shipping",
        "rate": 150,
        "currency": "INR",
        "estimated_days": 5,
        "service_type": "standard",
    },
    {
        "courier_name": "Express Shipping",
        "rate": 300,
        "currency": "INR",
        "estimated_days": 2,
        "service_type": "express",
    },
]
