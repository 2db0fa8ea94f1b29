from typing import List, Optional
from pydantic import BaseModel, Field


class CatalogueCreateIn(BaseModel):
    name: str = Field(..., example="Winter Edit")
    description: Optional[str] = None
    image: Optional[str] = None
    status: bool = True
    sort_order: int = 0
    product_ids: List[int] = Field(default_factory=list)


class CatalogueUpdateIn(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    status: Optional[bool] = None
    sort_order: Optional[int] = None


class CatalogueProductsIn(BaseModel):
    product_ids: List[int]
