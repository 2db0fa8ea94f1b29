from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from backend.common.utils import success_response
from backend.coupons.models import CouponCreateIn, CouponUpdateIn, CouponValidateIn
from backend.coupons.repository import list_coupons
from backend.coupons.services import create_coupon, delete_coupon, serialize_coupon, update_coupon, validate_coupon
from backend.db.dependencies import get_session

coupons_router = APIRouter()
coupons_admin_router = APIRouter()


@coupons_router.post("/validate")
async def validate(payload: CouponValidateIn, session: AsyncSession = Depends(get_session)):
    result = await validate_coupon(session, payload.code, payload.order_amount)
    return success_response(result)


@coupons_admin_router.get("")
async def get_coupons(session: AsyncSession = Depends(get_session)):
    coupons = await list_coupons(session)
    return success_response({"coupons": [serialize_coupon(c) for c in coupons]})


@coupons_admin_router.post("")
async def add_coupon(payload: CouponCreateIn, session: AsyncSession = Depends(get_session)):
    coupon = await create_coupon(session, payload)
    return success_response(serialize_coupon(coupon), status_code=status.HTTP_201_CREATED)


@coupons_admin_router.put("/{coupon_id}")
async def edit_coupon(coupon_id: int, payload: CouponUpdateIn, session: AsyncSession = Depends(get_session)):
    coupon = await update_coupon(session, coupon_id, payload)
    return success_response(serialize_coupon(coupon))


@coupons_admin_router.delete("/{coupon_id}")
async def remove_coupon(coupon_id: int, session: AsyncSession = Depends(get_session)):
    await delete_coupon(session, coupon_id)
    return success_response({"message": "Coupon deleted"})
