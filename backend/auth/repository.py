from typing import Optional
from sqlalchemy import select
from backend.schema.full_schema import Users


async def user_by_email(session, email: str) -> Optional[Users]:
    stmt = select(Users).where(Users.email == email, Users.deleted_at.is_(None))
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def user_by_id(session, user_id: int) -> Optional[Users]:
    stmt = select(Users).where(Users.id == user_id, Users.deleted_at.is_(None))
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def email_taken(session, email: str) -> bool:
    stmt = select(Users.id).where(Users.email == email)
    res = await session.execute(stmt)
    return res.scalar_one_or_none() is not None
