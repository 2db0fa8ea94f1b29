from typing import Tuple
from fastapi import status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from backend.common.logging_setup import get_logger
from backend.common.utils import now
from backend.common.validation import check, normalize_email_address
from backend.schema.full_schema import Newsletter

logger = get_logger("pashmiya.newsletter")


async def subscribe(session, raw_email: str) -> Tuple[str, int]:
    """Returns the message and the status code , 201 only for a brand new subscriber."""
    email = check(normalize_email_address, raw_email)

    res = await session.execute(select(Newsletter).where(Newsletter.email == email))
    entry = res.scalar_one_or_none()
    if entry is not None:
        if entry.subscribed:
            return "Already subscribed", status.HTTP_200_OK
        entry.subscribed = True
        entry.updated_at = now()
        session.add(entry)
        await session.commit()
        return "Resubscribed successfully", status.HTTP_200_OK

    session.add(Newsletter(email=email, subscribed=True))
    try:
        await session.commit()
    except IntegrityError:
        # a concurrent request inserted the same address
        await session.rollback()
        return "Already subscribed", status.HTTP_200_OK

    logger.info("newsletter.subscribed", extra={"email": email})
    return "Subscribed successfully", status.HTTP_201_CREATED
