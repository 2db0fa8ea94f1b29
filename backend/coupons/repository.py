from typing import Optional
from sqlalchemy import select
from backend.schema.full_schema import Coupon


async def coupon_by_code(session, code: str, for_update: bool = False) -> Optional[Coupon]:
    stmt = select(Coupon).where(Coupon.code == code)
    if for_update:
        stmt = stmt.with_for_update()
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def coupon_by_id(session, coupon_id: int) -> Optional[Coupon]:
    return await session.get(Coupon, coupon_id)


async def list_coupons(session):
    stmt = select(Coupon).order_by(Coupon.created_at.desc(), Coupon.id.desc())
    res = await session.execute(stmt)
    return res.scalars().all()
