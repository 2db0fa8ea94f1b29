from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from backend.auth.dependencies import current_user_id
from backend.common.logging_setup import get_logger
from backend.common.utils import success_response
from backend.db.dependencies import get_session
from backend.products.services import get_product_or_404, serialize_product
from backend.schema.full_schema import Wishlist
from backend.wishlist.models import WishlistAddIn
from backend.wishlist.repository import delete_entry, wishlist_entry, wishlist_with_products

logger = get_logger("pashmiya.wishlist")

wishlist_router = APIRouter()


@wishlist_router.get("")
async def get_wishlist(user_id: int = Depends(current_user_id), session: AsyncSession = Depends(get_session)):
    rows = await wishlist_with_products(session, user_id)
    items = [{"id": entry.id, "product_id": entry.product_id, "created_at": entry.created_at,
              "product": serialize_product(product)} for entry, product in rows]
    return success_response({"items": items})


@wishlist_router.post("")
async def add_to_wishlist(payload: WishlistAddIn, user_id: int = Depends(current_user_id),
                          session: AsyncSession = Depends(get_session)):
    await get_product_or_404(session, payload.product_id)

    if await wishlist_entry(session, user_id, payload.product_id) is not None:
        return success_response({"message": "Already in wishlist"})

    session.add(Wishlist(user_id=user_id, product_id=payload.product_id))
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        return success_response({"message": "Already in wishlist"})

    logger.info("wishlist.added", extra={"user_id": user_id, "product_id": payload.product_id})
    return success_response({"message": "Added to wishlist"}, status_code=status.HTTP_201_CREATED)


@wishlist_router.delete("/{product_id}")
async def remove_from_wishlist(product_id: int, user_id: int = Depends(current_user_id),
                               session: AsyncSession = Depends(get_session)):
    removed = await delete_entry(session, user_id, product_id)
    if not removed:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found in wishlist")
    await session.commit()
    return success_response({"message": "Removed from wishlist"})
