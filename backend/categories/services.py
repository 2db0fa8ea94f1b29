from fastapi import HTTPException, status
from backend.categories.constants import CATEGORY_NOT_FOUND, logger
from backend.categories.models import CategoryCreateIn, CategoryUpdateIn
from backend.categories.repository import category_by_id, delete_category_row, name_or_slug_taken, unlink_products
from backend.common.utils import now
from backend.common.validation import check, sanitize_string, slugify, validate_name, validate_slug, validate_url
from backend.schema.full_schema import Category

DUPLICATE_CATEGORY = "Category with same name or slug already exists"


def serialize_category(category: Category) -> dict:
    return {
        "id": category.id,
        "name": category.name,
        "slug": category.slug,
        "description": category.description,
        "image": category.image,
        "is_active": category.is_active,
        "created_at": category.created_at,
    }


async def get_category_or_404(session, category_id: int) -> Category:
    category = await category_by_id(session, category_id)
    if category is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=CATEGORY_NOT_FOUND)
    return category


async def create_category(session, payload: CategoryCreateIn) -> Category:
    name = sanitize_string(payload.name, 128)
    check(validate_name, name)
    slug = payload.slug or slugify(name)
    check(validate_slug, slug)
    check(validate_url, payload.image)

    if await name_or_slug_taken(session, name, slug):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=DUPLICATE_CATEGORY)

    category = Category(name=name, slug=slug, description=payload.description,
                        image=payload.image, is_active=payload.is_active)
    session.add(category)
    await session.commit()
    logger.info("category.created", extra={"category_id": category.id, "slug": slug})
    return category


async def update_category(session, category_id: int, payload: CategoryUpdateIn) -> Category:
    category = await get_category_or_404(session, category_id)
    updates = payload.model_dump(exclude_unset=True, exclude_none=True)

    if "name" in updates:
        updates["name"] = sanitize_string(updates["name"], 128)
        check(validate_name, updates["name"])
    if "slug" in updates:
        check(validate_slug, updates["slug"])
    if "image" in updates:
        check(validate_url, updates["image"])
    if await name_or_slug_taken(session, updates.get("name"), updates.get("slug"), exclude_id=category_id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=DUPLICATE_CATEGORY)

    for field, value in updates.items():
        setattr(category, field, value)
    category.updated_at = now()
    session.add(category)
    await session.commit()
    return category


async def delete_category(session, category_id: int) -> None:
    await get_category_or_404(session, category_id)
    await unlink_products(session, category_id)
    await delete_category_row(session, category_id)
    await session.commit()
    logger.info("category.deleted", extra={"category_id": category_id})
