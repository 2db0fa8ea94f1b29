from datetime import datetime
from typing import Dict, Iterable, List, Optional
from sqlalchemy import String, cast, or_, select
from sqlalchemy.orm import selectinload
from backend.schema.full_schema import OrderItem, Orders, Product


def _with_items(stmt):
    return stmt.options(selectinload(Orders.items).selectinload(OrderItem.product))


async def lock_products(session, product_ids: Iterable[int]) -> Dict[int, Product]:
    """
    Lock the product rows for the rest of the transaction.
    Ids are locked in ascending order so concurrent checkouts cannot deadlock.
    """
    ids = sorted(set(product_ids))
    if not ids:
        return {}
    stmt = (select(Product)
            .where(Product.id.in_(ids), Product.deleted_at.is_(None))
            .order_by(Product.id)
            .with_for_update())
    res = await session.execute(stmt)
    return {p.id: p for p in res.scalars().all()}


async def order_with_items(session, order_id: int, for_update: bool = False) -> Optional[Orders]:
    stmt = _with_items(select(Orders).where(Orders.id == order_id))
    if for_update:
        stmt = stmt.with_for_update(of=Orders)
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def order_by_gateway_order_id(session, gateway_order_id: str) -> Optional[Orders]:
    stmt = select(Orders).where(Orders.razorpay_order_id == gateway_order_id)
    res = await session.execute(stmt)
    return res.scalars().first()


async def orders_for_user(session, user_id: int, status: Optional[str] = None) -> List[Orders]:
    stmt = _with_items(select(Orders).where(Orders.user_id == user_id))
    if status:
        stmt = stmt.where(Orders.status == status)
    stmt = stmt.order_by(Orders.created_at.desc(), Orders.id.desc())
    res = await session.execute(stmt)
    return list(res.scalars().all())


async def search_orders(session, status: Optional[str] = None, payment_status: Optional[str] = None,
                        search: Optional[str] = None, date_from: Optional[datetime] = None,
                        date_to: Optional[datetime] = None, offset: int = 0, limit: int = 20) -> List[Orders]:
    stmt = _with_items(select(Orders))
    if status:
        stmt = stmt.where(Orders.status == status)
    if payment_status:
        stmt = stmt.where(Orders.payment_status == payment_status)
    if search:
        pattern = f"%{search}%"
        stmt = stmt.where(or_(cast(Orders.id, String).ilike(pattern), Orders.shipping_name.ilike(pattern)))
    if date_from:
        stmt = stmt.where(Orders.created_at >= date_from)
    if date_to:
        stmt = stmt.where(Orders.created_at <= date_to)
    stmt = stmt.order_by(Orders.created_at.desc(), Orders.id.desc()).offset(offset).limit(limit)
    res = await session.execute(stmt)
    return list(res.scalars().all())


async def restore_stock(session, items: Iterable[OrderItem]) -> None:
    quantities: Dict[int, int] = {}
    for item in items:
        quantities[item.product_id] = quantities.get(item.product_id, 0) + item.quantity

    # soft deleted products get their stock back too
    stmt = (select(Product)
            .where(Product.id.in_(sorted(quantities)))
            .order_by(Product.id)
            .with_for_update())
    res = await session.execute(stmt)
    for product in res.scalars().all():
        product.stock += quantities[product.id]
        session.add(product)
