from typing import Optional
from pydantic import BaseModel


class CreateIntentIn(BaseModel):
    order_id: int


class VerifyPaymentIn(BaseModel):
    order_id: int
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str


class RefundIn(BaseModel):
    payment_id: str
    amount: Optional[float] = None
    reason: Optional[str] = None
