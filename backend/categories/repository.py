from typing import List, Optional
from sqlalchemy import delete, or_, select, update
from backend.schema.full_schema import Category, Product


async def list_categories(session) -> List[Category]:
    res = await session.execute(select(Category).order_by(Category.name.asc()))
    return list(res.scalars().all())


async def category_by_id(session, category_id: int) -> Optional[Category]:
    res = await session.execute(select(Category).where(Category.id == category_id))
    return res.scalar_one_or_none()


async def name_or_slug_taken(session, name: Optional[str], slug: Optional[str], exclude_id: Optional[int] = None) -> bool:
    clauses = []
    if name:
        clauses.append(Category.name == name)
    if slug:
        clauses.append(Category.slug == slug)
    if not clauses:
        return False
    stmt = select(Category.id).where(or_(*clauses))
    if exclude_id is not None:
        stmt = stmt.where(Category.id != exclude_id)
    res = await session.execute(stmt.limit(1))
    return res.scalar_one_or_none() is not None


async def unlink_products(session, category_id: int) -> None:
    stmt = (update(Product)
            .where(Product.category_id == category_id)
            .values(category_id=None)
            .execution_options(synchronize_session="fetch"))
    await session.execute(stmt)


async def delete_category_row(session, category_id: int) -> None:
    # products are unlinked first , the row goes through core to skip loading the collection
    await session.execute(delete(Category).where(Category.id == category_id))
