from pydantic import BaseModel


class WishlistAddIn(BaseModel):
    product_id: int
