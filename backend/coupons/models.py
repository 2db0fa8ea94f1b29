from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class CouponValidateIn(BaseModel):
    code: str
    order_amount: float = 0


class CouponCreateIn(BaseModel):
    code: str
    description: Optional[str] = None
    discount_type: str
    discount_value: float
    min_order_amount: float = 0
    max_discount_amount: float = 0
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    usage_limit: int = 0
    is_active: bool = True


class CouponUpdateIn(BaseModel):
    description: Optional[str] = None
    discount_type: Optional[str] = None
    discount_value: Optional[float] = None
    min_order_amount: Optional[float] = None
    max_discount_amount: Optional[float] = None
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    usage_limit: Optional[int] = None
    is_active: Optional[bool] = None
