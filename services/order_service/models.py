import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import relationship

from shared.config.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class DeliveryType(str, enum.Enum):
    PICKUP = "PICKUP"
    DELIVERY = "DELIVERY"


class OrderSource(str, enum.Enum):
    ONLINE = "ONLINE"
    POS = "POS"


class PaymentMethod(str, enum.Enum):
    CASH = "CASH"
    CARD = "CARD"
    ONLINE = "ONLINE"


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=_new_id)
    # Unique across deleted and live orders alike
    order_number = Column(String(5), unique=True, nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    address_id = Column(String(64), ForeignKey("addresses.id"), nullable=False)

    delivery_type = Column(Enum(DeliveryType, native_enum=False), nullable=False)
    order_source = Column(Enum(OrderSource, native_enum=False), nullable=False, default=OrderSource.ONLINE)
    payment_method = Column(Enum(PaymentMethod, native_enum=False), nullable=False)
    status = Column(Enum(OrderStatus, native_enum=False), nullable=False, default=OrderStatus.PENDING)

    # Charges are snapshotted at order time, never recomputed
    subtotal = Column(Numeric(10, 2), nullable=False)
    tax = Column(Numeric(10, 2), nullable=False, default=0)
    tax_rate = Column(Numeric(5, 2), nullable=False, default=0)
    convenience_charge = Column(Numeric(10, 2), nullable=False, default=0)
    delivery_charge = Column(Numeric(10, 2), nullable=False, default=0)
    discount = Column(Numeric(10, 2), nullable=False, default=0)
    total = Column(Numeric(10, 2), nullable=False)

    delivery_date = Column(Date, nullable=True)

    promo_code_id = Column(String(36), ForeignKey("promo_codes.id"), nullable=True)
    promo_code_code = Column(String(50), nullable=True)
    promo_discount = Column(Numeric(10, 2), nullable=True)
    promo_discount_type = Column(String(20), nullable=True)

    is_deleted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    items = relationship(
        "OrderItem",
        back_populates="order",
        lazy="selectin",
        cascade="all, delete-orphan",
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True, default=_new_id)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(String(64), ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    # Price copied at order time, decoupled from the live product price
    price = Column(Numeric(10, 2), nullable=False)

    order = relationship("Order", back_populates="items")
