from typing import List, Optional
from sqlalchemy import delete, select
from backend.schema.full_schema import Product, Review, Users


async def approved_reviews_for_product(session, product_id: int) -> list:
    stmt = (select(Review, Users.name)
            .join(Users, Users.id == Review.user_id)
            .where(Review.product_id == product_id, Review.is_approved.is_(True))
            .order_by(Review.created_at.desc(), Review.id.desc()))
    res = await session.execute(stmt)
    return list(res.all())


async def reviews_for_user(session, user_id: int) -> list:
    stmt = (select(Review, Product.name)
            .join(Product, Product.id == Review.product_id)
            .where(Review.user_id == user_id)
            .order_by(Review.created_at.desc(), Review.id.desc()))
    res = await session.execute(stmt)
    return list(res.all())


async def all_reviews(session, approved: Optional[bool]) -> List[Review]:
    stmt = select(Review)
    if approved is not None:
        stmt = stmt.where(Review.is_approved.is_(approved))
    res = await session.execute(stmt.order_by(Review.created_at.desc(), Review.id.desc()))
    return list(res.scalars().all())


async def review_by_id(session, review_id: int, user_id: Optional[int] = None) -> Optional[Review]:
    stmt = select(Review).where(Review.id == review_id)
    if user_id is not None:
        stmt = stmt.where(Review.user_id == user_id)
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def user_review_for_product(session, user_id: int, product_id: int) -> Optional[Review]:
    stmt = select(Review).where(Review.user_id == user_id, Review.product_id == product_id)
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def delete_user_review(session, review_id: int, user_id: int) -> int:
    res = await session.execute(delete(Review).where(Review.id == review_id, Review.user_id == user_id))
    return res.rowcount
