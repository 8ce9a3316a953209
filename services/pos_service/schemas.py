from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class PosSaleItem(BaseModel):
    id: str
    name: Optional[str] = None
    price: Decimal = Field(ge=0)
    quantity: int = Field(gt=0)
    total: Optional[Decimal] = None


class PosCustomer(BaseModel):
    user_id: Optional[str] = None
    is_existing_user: bool = False
    phone: Optional[str] = None
    name: Optional[str] = None


class PosSaleRequest(BaseModel):
    """Till-side figures (subtotal, tax, total) are informational; the server reprices."""

    items: List[PosSaleItem] = []
    customer: Optional[PosCustomer] = None
    subtotal: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    discount: Decimal = Field(default=Decimal("0"), ge=0)
    total: Optional[Decimal] = None
    payment_method: str = ""
    promo_code_id: Optional[str] = None


class PosSaleData(BaseModel):
    order_id: str
    order_number: str
    total: float
    payment_method: str
    timestamp: datetime


class PosSaleResponse(BaseModel):
    success: bool
    data: Optional[PosSaleData] = None
    error: Optional[str] = None
