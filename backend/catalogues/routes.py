from typing import Optional
from fastapi import APIRouter, Depends, status
from fastapi.params import Query
from sqlalchemy.ext.asyncio import AsyncSession
from backend.catalogues.models import CatalogueCreateIn, CatalogueProductsIn, CatalogueUpdateIn
from backend.catalogues.repository import list_catalogues
from backend.catalogues.services import (add_products, create_catalogue, delete_catalogue, get_catalogue_or_404,
                                         remove_products, serialize_catalogue, update_catalogue)
from backend.common.utils import success_response
from backend.db.dependencies import get_session

catalogues_router = APIRouter()
catalogues_admin_router = APIRouter()


@catalogues_router.get("")
async def get_catalogues(
    status_filter: Optional[bool] = Query(None, alias="status"),
    search: Optional[str] = Query(None),
    session: AsyncSession = Depends(get_session)):
    catalogues = await list_catalogues(session, status_filter, search)
    return success_response({"catalogues": [serialize_catalogue(c) for c in catalogues]})


@catalogues_router.get("/{catalogue_id}")
async def get_catalogue(catalogue_id: int, session: AsyncSession = Depends(get_session)):
    catalogue = await get_catalogue_or_404(session, catalogue_id)
    return success_response(serialize_catalogue(catalogue))


@catalogues_admin_router.post("")
async def add_catalogue(payload: CatalogueCreateIn, session: AsyncSession = Depends(get_session)):
    catalogue = await create_catalogue(session, payload)
    return success_response(serialize_catalogue(catalogue), status_code=status.HTTP_201_CREATED)


@catalogues_admin_router.put("/{catalogue_id}")
async def edit_catalogue(catalogue_id: int, payload: CatalogueUpdateIn, session: AsyncSession = Depends(get_session)):
    catalogue = await update_catalogue(session, catalogue_id, payload)
    return success_response(serialize_catalogue(catalogue))


@catalogues_admin_router.delete("/{catalogue_id}")
async def remove_catalogue(catalogue_id: int, session: AsyncSession = Depends(get_session)):
    await delete_catalogue(session, catalogue_id)
    return success_response({"message": "Catalogue deleted"})


@catalogues_admin_router.post("/{catalogue_id}/products")
async def add_catalogue_products(catalogue_id: int, payload: CatalogueProductsIn,
                                 session: AsyncSession = Depends(get_session)):
    catalogue = await add_products(session, catalogue_id, payload.product_ids)
    return success_response(serialize_catalogue(catalogue))


@catalogues_admin_router.delete("/{catalogue_id}/products")
async def remove_catalogue_products(catalogue_id: int, payload: CatalogueProductsIn,
                                    session: AsyncSession = Depends(get_session)):
    catalogue = await remove_products(session, catalogue_id, payload.product_ids)
    return success_response(serialize_catalogue(catalogue))
