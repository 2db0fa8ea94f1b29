from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.params import Query
from sqlalchemy.ext.asyncio import AsyncSession
from backend.auth.dependencies import current_user_id
from backend.common.utils import success_response
from backend.db.dependencies import get_session
from backend.reviews.constants import REVIEW_NOT_FOUND
from backend.reviews.models import ReviewCreateIn, ReviewUpdateIn
from backend.reviews.repository import (all_reviews, approved_reviews_for_product, delete_user_review,
                                        reviews_for_user)
from backend.reviews.services import approve_review, create_review, serialize_review, update_review

reviews_router = APIRouter()
product_reviews_router = APIRouter()
reviews_admin_router = APIRouter()


@product_reviews_router.get("/{product_id}/reviews")
async def get_product_reviews(product_id: int, session: AsyncSession = Depends(get_session)):
    rows = await approved_reviews_for_product(session, product_id)
    return success_response({"reviews": [serialize_review(r, user_name=name) for r, name in rows]})


@reviews_router.get("")
async def get_my_reviews(user_id: int = Depends(current_user_id), session: AsyncSession = Depends(get_session)):
    rows = await reviews_for_user(session, user_id)
    return success_response({"reviews": [serialize_review(r, product_name=name) for r, name in rows]})


@reviews_router.post("")
async def add_review(payload: ReviewCreateIn, user_id: int = Depends(current_user_id),
                     session: AsyncSession = Depends(get_session)):
    review = await create_review(session, user_id, payload)
    return success_response(serialize_review(review), status_code=status.HTTP_201_CREATED)


@reviews_router.put("/{review_id}")
async def edit_review(review_id: int, payload: ReviewUpdateIn, user_id: int = Depends(current_user_id),
                      session: AsyncSession = Depends(get_session)):
    review = await update_review(session, user_id, review_id, payload)
    return success_response(serialize_review(review))


@reviews_router.delete("/{review_id}")
async def remove_review(review_id: int, user_id: int = Depends(current_user_id),
                        session: AsyncSession = Depends(get_session)):
    if not await delete_user_review(session, review_id, user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=REVIEW_NOT_FOUND)
    await session.commit()
    return success_response({"message": "Review deleted"})


@reviews_admin_router.get("")
async def list_all_reviews(approved: Optional[bool] = Query(None), session: AsyncSession = Depends(get_session)):
    reviews = await all_reviews(session, approved)
    return success_response({"reviews": [serialize_review(r) for r in reviews]})


@reviews_admin_router.put("/{review_id}/approve")
async def approve(review_id: int, session: AsyncSession = Depends(get_session)):
    await approve_review(session, review_id)
    return success_response({"message": "Review approved"})
