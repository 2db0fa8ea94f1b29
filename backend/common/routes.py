from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from backend.api import cur_version
from backend.common.logging_setup import get_logger
from backend.common.utils import success_response
from backend.db.dependencies import get_session

logger = get_logger("pashmiya.health")

home_router = APIRouter()


@home_router.get("/health")
async def health_check(session: AsyncSession = Depends(get_session)):
    try:
        await session.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.error("health.db_unreachable", extra={"error": str(e)})
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Database connection error")

    return success_response({"status": "healthy", "database": "connected", "version": cur_version})
