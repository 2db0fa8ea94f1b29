from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.params import Query
from sqlalchemy.ext.asyncio import AsyncSession
from backend.common.utils import paginate, success_response
from backend.common.validation import check, validate_order_direction, validate_sort_column
from backend.db.dependencies import get_session
from backend.products.constants import logger
from backend.products.models import ProductCreateIn, ProductUpdateIn
from backend.products.repository import fetch_products, search_products
from backend.products.services import (create_product, filter_options, get_product_or_404, serialize_product,
                                       soft_delete_product, update_product)

prods_public_router = APIRouter()
prods_admin_router = APIRouter()
filters_router = APIRouter()


@prods_public_router.get("")
async def get_products(
    category: Optional[int] = Query(None),
    featured: Optional[bool] = Query(None),
    sort: Optional[str] = Query(None),
    order: Optional[str] = Query(None),
    page: int = Query(1),
    limit: int = Query(20),
    session: AsyncSession = Depends(get_session)):

    sort = check(validate_sort_column, sort)
    order = check(validate_order_direction, order)
    page, limit = paginate(page, limit)

    products, total = await fetch_products(session, category, bool(featured), sort, order,
                                           (page - 1) * limit, limit)
    return success_response({
        "products": [serialize_product(p) for p in products],
        "total": total,
        "page": page,
        "limit": limit,
    })


# declared before /{product_id} so "search" never parses as an id
@prods_public_router.get("/search")
async def search(q: Optional[str] = Query(None), session: AsyncSession = Depends(get_session)):
    if not q or not q.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Search query required")
    products = await search_products(session, q.strip())
    return success_response({"products": [serialize_product(p) for p in products]})


@prods_public_router.get("/{product_id}")
async def get_product_details(product_id: int, session: AsyncSession = Depends(get_session)):
    product = await get_product_or_404(session, product_id)
    return success_response(serialize_product(product))


@filters_router.get("")
async def get_filter_options(session: AsyncSession = Depends(get_session)):
    return success_response(await filter_options(session))


@prods_admin_router.post("")
async def add_product(payload: ProductCreateIn, session: AsyncSession = Depends(get_session)):
    logger.info("product.create.attempt", extra={"product_name": payload.name})
    product = await create_product(session, payload)
    return success_response(serialize_product(product), status_code=status.HTTP_201_CREATED)


@prods_admin_router.put("/{product_id}")
async def edit_product(product_id: int, payload: ProductUpdateIn, session: AsyncSession = Depends(get_session)):
    product = await update_product(session, product_id, payload)
    return success_response(serialize_product(product))


@prods_admin_router.delete("/{product_id}")
async def remove_product(product_id: int, session: AsyncSession = Depends(get_session)):
    await soft_delete_product(session, product_id)
    return success_response({"message": "Product deleted"})
