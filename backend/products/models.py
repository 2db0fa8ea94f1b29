from typing import List, Optional
from pydantic import BaseModel, Field


class ProductCreateIn(BaseModel):
    name: str = Field(..., example="Kani Pashmina Shawl")
    price: float
    description: Optional[str] = None
    image: Optional[str] = None
    category_id: int
    colors: List[str] = Field(default_factory=list)
    sizes: List[str] = Field(default_factory=list)
    stock: int = 0
    is_featured: bool = False
    is_active: bool = True


class ProductUpdateIn(BaseModel):
    name: Optional[str] = None
    price: Optional[float] = None
    description: Optional[str] = None
    image: Optional[str] = None
    category_id: Optional[int] = None
    colors: Optional[List[str]] = None
    sizes: Optional[List[str]] = None
    stock: Optional[int] = None
    is_featured: Optional[bool] = None
    is_active: Optional[bool] = None

    model_config = {"extra": "forbid"}   # unknown fields are a 422 at pydantic level
