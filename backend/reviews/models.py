from typing import Optional
from pydantic import BaseModel


class ReviewCreateIn(BaseModel):
    product_id: int
    rating: int
    title: Optional[str] = None
    comment: Optional[str] = None


class ReviewUpdateIn(BaseModel):
    rating: Optional[int] = None
    title: Optional[str] = None
    comment: Optional[str] = None
