from typing import  Optional
from pydantic import BaseModel, Field


class RegisterIn(BaseModel):
    name: str = Field(..., min_length=1, examples=["Full Name"])
    email: str = Field(..., examples=["user@pashmiya.in"])
    password: str = Field(..., examples=["StrongPassword"])
    phone: Optional[str] = Field(None, examples=["+919876543210"])

class LoginIn(BaseModel):
    email: str = Field(...)
    password: str = Field(...)
