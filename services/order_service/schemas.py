from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, Field

from .models import DeliveryType, OrderSource, OrderStatus, PaymentMethod


class OrderItemCreate(BaseModel):
    product_id: str
    quantity: int = Field(gt=0)
    price: Decimal = Field(ge=0) # price the customer was quoted


class OrderCreate(BaseModel):
    user_id: str
    address_id: Optional[str] = None
    items: List[OrderItemCreate] = []
    promo_code_id: Optional[str] = None
    delivery_date: Optional[date] = None
    # Kept as plain strings so bad values surface as order errors, not 422s
    delivery_type: str = Field(
        default=DeliveryType.DELIVERY.value,
        validation_alias=AliasChoices("delivery_type", "order_type"),
    )
    payment_method: str
    total: Optional[Decimal] = None


class OrderItemResponse(BaseModel):
    id: str
    product_id: str
    quantity: int
    price: float

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: str
    order_number: str
    user_id: str
    address_id: str
    delivery_type: DeliveryType
    order_source: OrderSource
    payment_method: PaymentMethod
    status: OrderStatus
    subtotal: float
    tax: float
    tax_rate: float
    convenience_charge: float
    delivery_charge: float
    discount: float
    total: float
    delivery_date: Optional[date] = None
    promo_code_id: Optional[str] = None
    promo_code_code: Optional[str] = None
    created_at: datetime
    items: List[OrderItemResponse] = []

    class Config:
        from_attributes = True


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
