from backend.common.logging_setup import get_logger

logger = get_logger("pashmiya.coupons")

INVALID_COUPON = "Invalid coupon code"
COUPON_EXPIRED = "Coupon has expired or reached usage limit"
BELOW_MINIMUM = "Order amount does not meet minimum requirement"
