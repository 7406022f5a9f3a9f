from typing import Optional

from pydantic import BaseModel, Field


class ProductRead(BaseModel):
    id: int
    name: str
    value: float
    quantity: int
    min_quantity: int = Field(serialization_alias="minQuantity")
    image: Optional[str] = None

    class Config:
        from_attributes = True


class MessageResponse(BaseModel):
    message: str
