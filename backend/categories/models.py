from typing import Optional
from pydantic import BaseModel, Field


class CategoryCreateIn(BaseModel):
    name: str = Field(..., example="Shawls")
    slug: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    is_active: bool = True


class CategoryUpdateIn(BaseModel):
    name: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    is_active: Optional[bool] = None
