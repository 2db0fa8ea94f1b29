from typing import List, Optional, Tuple
from sqlalchemy import delete, select
from sqlalchemy.orm import selectinload
from backend.schema.full_schema import Product, Wishlist


async def wishlist_with_products(session, user_id: int) -> List[Tuple[Wishlist, Product]]:
    stmt = (select(Wishlist, Product)
            .join(Product, Product.id == Wishlist.product_id)
            .where(Wishlist.user_id == user_id)
            .options(selectinload(Product.category))
            .order_by(Wishlist.created_at.desc(), Wishlist.id.desc()))
    res = await session.execute(stmt)
    return list(res.all())


async def wishlist_entry(session, user_id: int, product_id: int) -> Optional[Wishlist]:
    stmt = select(Wishlist).where(Wishlist.user_id == user_id, Wishlist.product_id == product_id)
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def delete_entry(session, user_id: int, product_id: int) -> int:
    stmt = delete(Wishlist).where(Wishlist.user_id == user_id, Wishlist.product_id == product_id)
    res = await session.execute(stmt)
    return res.rowcount
