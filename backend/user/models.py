from typing import Optional
from pydantic import BaseModel, Field


class ProfileUpdateIn(BaseModel):
    name: Optional[str] = Field(None, example="Aarav Shah")
    phone: Optional[str] = Field(None, example="+919812345678")


class AddressIn(BaseModel):
    type: str = "shipping"
    is_default: bool = False
    name: str
    phone: str
    address_line1: str
    address_line2: Optional[str] = None
    city: str
    state: str
    postal_code: str
    country: str = "India"
    landmark: Optional[str] = None


class AddressUpdateIn(BaseModel):
    type: Optional[str] = None
    is_default: Optional[bool] = None
    name: Optional[str] = None
    phone: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    landmark: Optional[str] = None
