from fastapi import HTTPException, status
from backend.catalogues.constants import CATALOGUE_NOT_FOUND, logger
from backend.catalogues.models import CatalogueCreateIn, CatalogueUpdateIn
from backend.catalogues.repository import (catalogue_by_id, delete_catalogue_row, existing_product_ids,
                                           link_products, unlink_products)
from backend.common.utils import now
from backend.common.validation import check, sanitize_string, validate_name, validate_url
from backend.products.services import serialize_product
from backend.schema.full_schema import Catalogue


def serialize_catalogue(catalogue: Catalogue) -> dict:
    return {
        "id": catalogue.id,
        "name": catalogue.name,
        "description": catalogue.description,
        "image": catalogue.image,
        "status": catalogue.status,
        "sort_order": catalogue.sort_order,
        "created_at": catalogue.created_at,
        "products": [serialize_product(p) for p in catalogue.products if p.deleted_at is None],
    }


async def get_catalogue_or_404(session, catalogue_id: int) -> Catalogue:
    catalogue = await catalogue_by_id(session, catalogue_id)
    if catalogue is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=CATALOGUE_NOT_FOUND)
    return catalogue


async def create_catalogue(session, payload: CatalogueCreateIn) -> Catalogue:
    name = sanitize_string(payload.name, 255)
    check(validate_name, name)
    check(validate_url, payload.image)

    catalogue = Catalogue(name=name, description=payload.description, image=payload.image,
                          status=payload.status, sort_order=payload.sort_order)
    session.add(catalogue)
    await session.flush()

    # unknown product ids are skipped
    product_ids = await existing_product_ids(session, payload.product_ids)
    await link_products(session, catalogue.id, product_ids)
    await session.commit()

    logger.info("catalogue.created", extra={"catalogue_id": catalogue.id, "products": len(product_ids)})
    return await get_catalogue_or_404(session, catalogue.id)


async def update_catalogue(session, catalogue_id: int, payload: CatalogueUpdateIn) -> Catalogue:
    catalogue = await get_catalogue_or_404(session, catalogue_id)
    updates = payload.model_dump(exclude_unset=True, exclude_none=True)

    if "name" in updates:
        updates["name"] = sanitize_string(updates["name"], 255)
        check(validate_name, updates["name"])
    if "image" in updates:
        check(validate_url, updates["image"])

    for field, value in updates.items():
        setattr(catalogue, field, value)
    catalogue.updated_at = now()
    session.add(catalogue)
    await session.commit()
    return await get_catalogue_or_404(session, catalogue_id)


async def delete_catalogue(session, catalogue_id: int) -> None:
    await get_catalogue_or_404(session, catalogue_id)
    await unlink_products(session, catalogue_id)
    await delete_catalogue_row(session, catalogue_id)
    await session.commit()
    logger.info("catalogue.deleted", extra={"catalogue_id": catalogue_id})


async def add_products(session, catalogue_id: int, product_ids) -> Catalogue:
    await get_catalogue_or_404(session, catalogue_id)
    await link_products(session, catalogue_id, await existing_product_ids(session, product_ids))
    await session.commit()
    return await get_catalogue_or_404(session, catalogue_id)


async def remove_products(session, catalogue_id: int, product_ids) -> Catalogue:
    await get_catalogue_or_404(session, catalogue_id)
    if product_ids:
        await unlink_products(session, catalogue_id, product_ids)
        await session.commit()
    return await get_catalogue_or_404(session, catalogue_id)
