from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class ProductCreate(BaseModel):
    id: Optional[str] = Field(default=None, max_length=64)
    name: str = Field(min_length=1)
    price: Decimal = Field(ge=0, decimal_places=2)
    stock: int = Field(ge=0)


class ProductResponse(BaseModel):
    id: str
    name: str
    price: float
    stock: int
    is_active: bool

    class Config:
        from_attributes = True
