from typing import List, Optional, Tuple
from sqlalchemy import func, or_, select
from sqlalchemy.orm import selectinload
from backend.schema.full_schema import Category, Product


def _visible(stmt):
    return stmt.where(Product.deleted_at.is_(None), Product.is_active.is_(True))


async def fetch_products(session, category_id: Optional[int], featured: bool,
                         sort: str, order: str, offset: int, limit: int) -> Tuple[List[Product], int]:
    base = _visible(select(Product))
    if category_id is not None:
        base = base.where(Product.category_id == category_id)
    if featured:
        base = base.where(Product.is_featured.is_(True))

    total = (await session.execute(select(func.count()).select_from(base.subquery()))).scalar_one()

    column = getattr(Product, sort, Product.id)
    ordering = column.asc() if order == "asc" else column.desc()
    stmt = (base.options(selectinload(Product.category))
            .order_by(ordering, Product.id.desc())
            .offset(offset)
            .limit(limit))
    res = await session.execute(stmt)
    return list(res.scalars().all()), total


async def search_products(session, q: str) -> List[Product]:
    pattern = f"%{q}%"
    stmt = (_visible(select(Product))
            .where(or_(Product.name.ilike(pattern), Product.description.ilike(pattern)))
            .options(selectinload(Product.category))
            .order_by(Product.id.desc()))
    res = await session.execute(stmt)
    return list(res.scalars().all())


async def product_by_id(session, product_id: int, include_inactive: bool = False) -> Optional[Product]:
    stmt = (select(Product)
            .where(Product.id == product_id, Product.deleted_at.is_(None))
            .options(selectinload(Product.category))
            .execution_options(populate_existing=True))
    if not include_inactive:
        stmt = stmt.where(Product.is_active.is_(True))
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def filter_rows(session) -> list:
    stmt = _visible(select(Product.colors, Product.sizes, Product.price))
    res = await session.execute(stmt)
    return list(res.all())


async def category_exists(session, category_id: int) -> bool:
    res = await session.execute(select(Category.id).where(Category.id == category_id))
    return res.scalar_one_or_none() is not None
