from typing import Any, Dict, List, Optional
from sqlalchemy import select
from backend.schema.full_schema import PaymentTransaction


def record_transaction(session, order_id: int, provider: str, amount: float, currency: str, status: str,
                       transaction_id: Optional[str] = None, order_id_ext: Optional[str] = None,
                       signature: Optional[str] = None, failure_reason: Optional[str] = None,
                       extra_data: Optional[Dict[str, Any]] = None) -> PaymentTransaction:
    """Append a row to the payment log , the caller owns the transaction."""
    tx = PaymentTransaction(
        order_id=order_id,
        provider=provider,
        amount=amount,
        currency=currency,
        status=status,
        transaction_id=transaction_id,
        order_id_ext=order_id_ext,
        signature=signature,
        failure_reason=failure_reason,
        extra_data=extra_data,
    )
    session.add(tx)
    return tx


async def transactions_for_order(session, order_id: int) -> List[PaymentTransaction]:
    stmt = select(PaymentTransaction).where(PaymentTransaction.order_id == order_id).order_by(PaymentTransaction.id)
    res = await session.execute(stmt)
    return list(res.scalars().all())
