from typing import List, Optional
from pydantic import BaseModel


class OrderItemIn(BaseModel):
    product_id: int
    quantity: int
    price: float = 0
    color: Optional[str] = None
    size: Optional[str] = None


class OrderCreateIn(BaseModel):
    items: List[OrderItemIn] = []
    total_amount: float
    discount_amount: float = 0
    shipping_cost: float = 0
    tax_amount: float = 0
    shipping_name: str
    shipping_address: str
    shipping_city: str
    shipping_state: str
    shipping_country: str
    shipping_zip: str
    shipping_phone: str
    shipping_email: Optional[str] = None
    coupon_code: Optional[str] = None
    notes: Optional[str] = None


class OrderStatusIn(BaseModel):
    status: str


class ShipOrderIn(BaseModel):
    courier_id: int
