from typing import List, Optional
from sqlalchemy import select, update
from backend.schema.full_schema import Address


async def addresses_for_user(session, user_id: int) -> List[Address]:
    stmt = (select(Address)
            .where(Address.user_id == user_id)
            .order_by(Address.is_default.desc(), Address.created_at.desc(), Address.id.desc()))
    res = await session.execute(stmt)
    return list(res.scalars().all())


async def address_for_user(session, address_id: int, user_id: int) -> Optional[Address]:
    stmt = select(Address).where(Address.id == address_id, Address.user_id == user_id)
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def clear_default_addresses(session, user_id: int) -> None:
    stmt = (update(Address)
            .where(Address.user_id == user_id, Address.is_default.is_(True))
            .values(is_default=False)
            .execution_options(synchronize_session="fetch"))
    await session.execute(stmt)
