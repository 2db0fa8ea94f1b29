from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from backend.common.utils import now
from backend.common.validation import check, sanitize_string, validate_rating
from backend.products.services import get_product_or_404
from backend.reviews.constants import ALREADY_REVIEWED, REVIEW_NOT_FOUND, logger
from backend.reviews.models import ReviewCreateIn, ReviewUpdateIn
from backend.reviews.repository import review_by_id, user_review_for_product
from backend.schema.full_schema import Review


def serialize_review(review: Review, **extra) -> dict:
    data = {
        "id": review.id,
        "product_id": review.product_id,
        "user_id": review.user_id,
        "rating": review.rating,
        "title": review.title,
        "comment": review.comment,
        "is_verified": review.is_verified,
        "is_approved": review.is_approved,
        "helpful_count": review.helpful_count,
        "created_at": review.created_at,
    }
    data.update(extra)
    return data


async def create_review(session, user_id: int, payload: ReviewCreateIn) -> Review:
    check(validate_rating, payload.rating)
    await get_product_or_404(session, payload.product_id)

    if await user_review_for_product(session, user_id, payload.product_id) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=ALREADY_REVIEWED)

    review = Review(user_id=user_id, product_id=payload.product_id, rating=payload.rating,
                    title=sanitize_string(payload.title, 255) or None, comment=payload.comment)
    session.add(review)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=ALREADY_REVIEWED)

    logger.info("review.created", extra={"review_id": review.id, "product_id": payload.product_id})
    return review


async def update_review(session, user_id: int, review_id: int, payload: ReviewUpdateIn) -> Review:
    review = await review_by_id(session, review_id, user_id=user_id)
    if review is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=REVIEW_NOT_FOUND)

    # empty values leave the stored ones untouched
    if payload.rating is not None:
        check(validate_rating, payload.rating)
        review.rating = payload.rating
    if payload.title:
        review.title = sanitize_string(payload.title, 255)
    if payload.comment:
        review.comment = payload.comment
    review.updated_at = now()

    session.add(review)
    await session.commit()
    return review


async def approve_review(session, review_id: int) -> Review:
    review = await review_by_id(session, review_id)
    if review is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=REVIEW_NOT_FOUND)
    review.is_approved = True
    review.updated_at = now()
    session.add(review)
    await session.commit()
    logger.info("review.approved", extra={"review_id": review_id})
    return review
