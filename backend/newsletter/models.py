from pydantic import BaseModel, Field


class SubscribeIn(BaseModel):
    email: str = Field(..., example="reader@example.com")
