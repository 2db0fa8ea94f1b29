from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from backend.categories.models import CategoryCreateIn, CategoryUpdateIn
from backend.categories.repository import list_categories
from backend.categories.services import create_category, delete_category, serialize_category, update_category
from backend.common.utils import success_response
from backend.db.dependencies import get_session

categories_router = APIRouter()
categories_admin_router = APIRouter()


@categories_router.get("")
async def get_categories(session: AsyncSession = Depends(get_session)):
    categories = await list_categories(session)
    return success_response({"categories": [serialize_category(c) for c in categories]})


@categories_admin_router.post("")
async def add_category(payload: CategoryCreateIn, session: AsyncSession = Depends(get_session)):
    category = await create_category(session, payload)
    return success_response(serialize_category(category), status_code=status.HTTP_201_CREATED)


@categories_admin_router.put("/{category_id}")
async def edit_category(category_id: int, payload: CategoryUpdateIn, session: AsyncSession = Depends(get_session)):
    category = await update_category(session, category_id, payload)
    return success_response(serialize_category(category))


@categories_admin_router.delete("/{category_id}")
async def remove_category(category_id: int, session: AsyncSession = Depends(get_session)):
    await delete_category(session, category_id)
    return success_response({"message": "Category deleted"})
