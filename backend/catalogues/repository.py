from typing import Iterable, List, Optional
from sqlalchemy import delete, select
from sqlalchemy.orm import selectinload
from backend.schema.full_schema import Catalogue, CatalogueProduct, Product


def _with_products():
    return selectinload(Catalogue.products).selectinload(Product.category)


async def list_catalogues(session, status_filter: Optional[bool], search: Optional[str]) -> List[Catalogue]:
    stmt = select(Catalogue).options(_with_products())
    if status_filter is not None:
        stmt = stmt.where(Catalogue.status.is_(status_filter))
    if search:
        stmt = stmt.where(Catalogue.name.ilike(f"%{search}%"))
    stmt = stmt.order_by(Catalogue.sort_order.asc(), Catalogue.created_at.desc(), Catalogue.id.desc())
    res = await session.execute(stmt)
    return list(res.scalars().all())


async def catalogue_by_id(session, catalogue_id: int) -> Optional[Catalogue]:
    stmt = (select(Catalogue)
            .where(Catalogue.id == catalogue_id)
            .options(_with_products())
            .execution_options(populate_existing=True))
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def existing_product_ids(session, product_ids: Iterable[int]) -> List[int]:
    ids = sorted(set(product_ids))
    if not ids:
        return []
    stmt = select(Product.id).where(Product.id.in_(ids), Product.deleted_at.is_(None))
    res = await session.execute(stmt)
    return list(res.scalars().all())


async def linked_product_ids(session, catalogue_id: int) -> set:
    res = await session.execute(select(CatalogueProduct.product_id).where(CatalogueProduct.catalogue_id == catalogue_id))
    return set(res.scalars().all())


async def link_products(session, catalogue_id: int, product_ids: Iterable[int]) -> None:
    already = await linked_product_ids(session, catalogue_id)
    for pid in product_ids:
        if pid not in already:
            session.add(CatalogueProduct(catalogue_id=catalogue_id, product_id=pid))


async def unlink_products(session, catalogue_id: int, product_ids: Optional[Iterable[int]] = None) -> None:
    stmt = delete(CatalogueProduct).where(CatalogueProduct.catalogue_id == catalogue_id)
    if product_ids is not None:
        stmt = stmt.where(CatalogueProduct.product_id.in_(list(product_ids)))
    await session.execute(stmt)


async def delete_catalogue_row(session, catalogue_id: int) -> None:
    await session.execute(delete(Catalogue).where(Catalogue.id == catalogue_id))
