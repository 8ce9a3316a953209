from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class PromoValidateRequest(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    subtotal: Decimal = Field(ge=0)


class PromoValidateResponse(BaseModel):
    valid: bool
    message: Optional[str] = None
    reason: Optional[str] = None
    promo_code_id: Optional[str] = None
    code: Optional[str] = None
    discount_type: Optional[str] = None
    discount_amount: float = 0.0
