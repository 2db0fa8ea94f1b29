from fastapi import HTTPException, status
from backend.common.utils import now
from backend.common.validation import (check, sanitize_string, validate_price, validate_product_name,
                                       validate_stock, validate_url)
from backend.products.constants import (CATEGORY_NOT_FOUND, DEFAULT_MAX_PRICE, DEFAULT_MIN_PRICE,
                                        DESCRIPTION_MAX_LENGTH, PRODUCT_NOT_FOUND, logger)
from backend.products.models import ProductCreateIn, ProductUpdateIn
from backend.products.repository import category_exists, filter_rows, product_by_id
from backend.schema.full_schema import Product


def serialize_category_ref(category) -> dict | None:
    if category is None:
        return None
    return {"id": category.id, "name": category.name, "slug": category.slug}


def serialize_product(product: Product, with_category: bool = True) -> dict:
    data = {
        "id": product.id,
        "name": product.name,
        "description": product.description,
        "price": product.price,
        "image": product.image,
        "category_id": product.category_id,
        "colors": list(product.colors or []),
        "sizes": list(product.sizes or []),
        "stock": product.stock,
        "is_featured": product.is_featured,
        "is_active": product.is_active,
        "created_at": product.created_at,
        "updated_at": product.updated_at,
    }
    if with_category:
        data["category"] = serialize_category_ref(product.category)
    return data


async def get_product_or_404(session, product_id: int, include_inactive: bool = False) -> Product:
    product = await product_by_id(session, product_id, include_inactive=include_inactive)
    if product is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=PRODUCT_NOT_FOUND)
    return product


async def filter_options(session) -> dict:
    colors, sizes, prices = set(), set(), []
    for row_colors, row_sizes, price in await filter_rows(session):
        colors.update(row_colors or [])
        sizes.update(row_sizes or [])
        prices.append(float(price))

    return {
        "colors": sorted(colors),
        "sizes": sorted(sizes),
        "min_price": min(prices) if prices else DEFAULT_MIN_PRICE,
        "max_price": max(prices) if prices else DEFAULT_MAX_PRICE,
    }


async def _ensure_category(session, category_id: int) -> None:
    if not await category_exists(session, category_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=CATEGORY_NOT_FOUND)


async def create_product(session, payload: ProductCreateIn) -> Product:
    check(validate_product_name, payload.name)
    check(validate_price, payload.price)
    check(validate_stock, payload.stock)
    check(validate_url, payload.image)
    await _ensure_category(session, payload.category_id)

    product = Product(
        name=sanitize_string(payload.name, 255),
        description=sanitize_string(payload.description, DESCRIPTION_MAX_LENGTH),
        price=payload.price,
        image=payload.image,
        category_id=payload.category_id,
        colors=payload.colors,
        sizes=payload.sizes,
        stock=payload.stock,
        is_featured=payload.is_featured,
        is_active=payload.is_active,
    )
    session.add(product)
    await session.commit()

    logger.info("product.created", extra={"product_id": product.id, "product_name": product.name})
    return await get_product_or_404(session, product.id, include_inactive=True)


async def update_product(session, product_id: int, payload: ProductUpdateIn) -> Product:
    product = await get_product_or_404(session, product_id, include_inactive=True)
    updates = payload.model_dump(exclude_unset=True)

    if "name" in updates:
        check(validate_product_name, updates["name"])
        updates["name"] = sanitize_string(updates["name"], 255)
    if updates.get("price") is not None:
        check(validate_price, updates["price"])
    if updates.get("stock") is not None:
        check(validate_stock, updates["stock"])
    if "image" in updates:
        check(validate_url, updates["image"])
    if "description" in updates:
        updates["description"] = sanitize_string(updates["description"], DESCRIPTION_MAX_LENGTH)
    if updates.get("category_id") is not None:
        await _ensure_category(session, updates["category_id"])

    for field, value in updates.items():
        if value is None and field not in ("description", "image", "category_id"):
            continue
        setattr(product, field, value)
    product.updated_at = now()

    session.add(product)
    await session.commit()
    logger.info("product.updated", extra={"product_id": product_id, "fields": sorted(updates)})
    return await get_product_or_404(session, product_id, include_inactive=True)


async def soft_delete_product(session, product_id: int) -> None:
    product = await get_product_or_404(session, product_id, include_inactive=True)
    product.deleted_at = now()
    product.is_active = False
    session.add(product)
    await session.commit()
    logger.info("product.deleted", extra={"product_id": product_id})
