from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from backend.common.utils import success_response
from backend.db.dependencies import get_session
from backend.newsletter.models import SubscribeIn
from backend.newsletter.services import subscribe

newsletter_router = APIRouter()


@newsletter_router.post("/subscribe")
async def subscribe_newsletter(payload: SubscribeIn, session: AsyncSession = Depends(get_session)):
    message, status_code = await subscribe(session, payload.email)
    return success_response({"message": message}, status_code=status_code)
