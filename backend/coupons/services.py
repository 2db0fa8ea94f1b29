from typing import Optional
from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from backend.common.utils import now
from backend.common.validation import check, validate_coupon_code
from backend.coupons.constants import BELOW_MINIMUM, COUPON_EXPIRED, INVALID_COUPON, logger
from backend.coupons.models import CouponCreateIn, CouponUpdateIn
from backend.coupons.repository import coupon_by_code, coupon_by_id
from backend.coupons.utils import compute_discount, coupon_is_valid, meets_minimum
from backend.schema.full_schema import Coupon, DiscountType


def serialize_coupon(coupon: Coupon) -> dict:
    return {
        "id": coupon.id,
        "code": coupon.code,
        "description": coupon.description,
        "discount_type": coupon.discount_type,
        "discount_value": coupon.discount_value,
        "min_order_amount": coupon.min_order_amount,
        "max_discount_amount": coupon.max_discount_amount,
        "valid_from": coupon.valid_from,
        "valid_until": coupon.valid_until,
        "usage_limit": coupon.usage_limit,
        "used_count": coupon.used_count,
        "is_active": coupon.is_active,
        "created_at": coupon.created_at,
    }


def _check_discount_type(discount_type: str):
    if discount_type not in (DiscountType.PERCENTAGE.value, DiscountType.FIXED.value):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid discount type")


async def validate_coupon(session, code: str, order_amount: float) -> dict:
    if not code:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Coupon code required")

    coupon = await coupon_by_code(session, code.strip().upper())
    if coupon is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail={"valid": False, "message": INVALID_COUPON})

    if not coupon_is_valid(coupon):
        return {"valid": False, "error": COUPON_EXPIRED}

    if order_amount > 0 and not meets_minimum(coupon, order_amount):
        return {"valid": False, "error": BELOW_MINIMUM, "min_order_amount": coupon.min_order_amount}

    return {
        "valid": True,
        "code": coupon.code,
        "discount_type": coupon.discount_type,
        "discount_value": coupon.discount_value,
        "discount_amount": compute_discount(coupon, order_amount),
    }


async def apply_coupon(session, code: Optional[str], subtotal: float) -> tuple[Optional[Coupon], float]:
    """
    Resolve a coupon for an order inside the caller's transaction.
    The row is locked and its used_count bumped , the caller commits.
    """
    if not code:
        return None, 0.0

    coupon = await coupon_by_code(session, code.strip().upper(), for_update=True)
    if coupon is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=INVALID_COUPON)
    if not coupon_is_valid(coupon):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=COUPON_EXPIRED)
    if not meets_minimum(coupon, subtotal):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                            detail={"message": BELOW_MINIMUM, "min_order_amount": coupon.min_order_amount})

    discount = compute_discount(coupon, subtotal)
    coupon.used_count += 1
    coupon.updated_at = now()
    session.add(coupon)
    return coupon, discount


async def create_coupon(session, payload: CouponCreateIn) -> Coupon:
    code = payload.code.strip()
    check(validate_coupon_code, code)
    _check_discount_type(payload.discount_type)
    if payload.discount_value <= 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="discount value must be greater than 0")

    if await coupon_by_code(session, code):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Coupon code already exists")

    coupon = Coupon(**payload.model_dump(exclude={"code"}), code=code)
    session.add(coupon)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Coupon code already exists")
    await session.refresh(coupon)
    logger.info("coupon.created", extra={"coupon_id": coupon.id, "code": code})
    return coupon


async def update_coupon(session, coupon_id: int, payload: CouponUpdateIn) -> Coupon:
    coupon = await coupon_by_id(session, coupon_id)
    if coupon is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Coupon not found")

    # code is not part of the update payload , it never changes after creation
    updates = payload.model_dump(exclude_unset=True)
    if "discount_type" in updates:
        _check_discount_type(updates["discount_type"])
    for field, value in updates.items():
        setattr(coupon, field, value)
    coupon.updated_at = now()

    session.add(coupon)
    await session.commit()
    await session.refresh(coupon)
    logger.info("coupon.updated", extra={"coupon_id": coupon.id, "fields": sorted(updates)})
    return coupon


async def delete_coupon(session, coupon_id: int) -> None:
    coupon = await coupon_by_id(session, coupon_id)
    if coupon is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Coupon not found")
    await session.delete(coupon)
    await session.commit()
    logger.info("coupon.deleted", extra={"coupon_id": coupon_id})
