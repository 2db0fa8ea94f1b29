from typing import Optional
from pydantic import BaseModel


class PreferencesIn(BaseModel):
    order_created: Optional[bool] = None
    order_shipped: Optional[bool] = None
    order_delivered: Optional[bool] = None
    order_status: Optional[bool] = None
    low_stock: Optional[bool] = None
    product_updates: Optional[bool] = None
    newsletter: Optional[bool] = None
    marketing: Optional[bool] = None
    email_enabled: Optional[bool] = None
    sms_enabled: Optional[bool] = None
    push_enabled: Optional[bool] = None
