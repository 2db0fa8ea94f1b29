from datetime import datetime
from typing import Optional
from backend.common.utils import as_utc, now
from backend.schema.full_schema import Coupon, DiscountType


def coupon_is_valid(coupon: Coupon, at: Optional[datetime] = None) -> bool:
    """Active , inside its validity window and under its usage limit. Never mutates."""
    if not coupon.is_active:
        return False
    at = as_utc(at) or now()
    valid_from = as_utc(coupon.valid_from)
    valid_until = as_utc(coupon.valid_until)
    if valid_from is not None and valid_from > at:
        return False
    if valid_until is not None and valid_until < at:
        return False
    if coupon.usage_limit > 0 and coupon.used_count >= coupon.usage_limit:
        return False
    return True


def meets_minimum(coupon: Coupon, amount: float) -> bool:
    if coupon.min_order_amount and coupon.min_order_amount > 0:
        return amount >= coupon.min_order_amount
    return True


def compute_discount(coupon: Coupon, amount: float) -> float:
    if coupon.discount_type == DiscountType.PERCENTAGE.value:
        discount = amount * coupon.discount_value / 100
        if coupon.max_discount_amount and coupon.max_discount_amount > 0:
            discount = min(discount, coupon.max_discount_amount)
    else:
        discount = coupon.discount_value
    # a discount never exceeds the amount it applies to
    return round(max(0.0, min(discount, amount)), 2)
