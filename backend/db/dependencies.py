from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import  AsyncSession
from backend.db.connection import async_session

async def get_session() -> AsyncGenerator[AsyncSession,None]:
    # session is closed at the end of the with block, uncommitted work is rolled back
    async with async_session() as session:
        yield session
