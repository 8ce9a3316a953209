"""
Order pricing engine.

Pure calculations, no database access. Everything is ``Decimal``; values stay
unrounded until ``OrderTotals.rounded()`` which is what gets persisted and
shown on receipts.
"""
from dataclasses import dataclass, replace
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Mapping, Optional, Union

from services.config_service.schemas import ChargeConfig
from services.promo_service.models import DiscountType

from .models import DeliveryType, OrderSource

CENT = Decimal("0.01")
ZERO = Decimal("0")

Number = Union[Decimal, int, float, str]


def _dec(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() first so 12.99 stays 12.99 instead of its binary expansion
    return Decimal(str(value))


def to_money(value: Number) -> Decimal:
    return _dec(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True, slots=True)
class OrderCharges:
    tax: Decimal
    convenience_charge: Decimal
    delivery_charge: Decimal
    # Pre-waive values so a receipt can show "$X - WAIVED"
    original_tax: Decimal
    original_convenience_charge: Decimal
    original_delivery_charge: Decimal
    is_tax_waived: bool
    is_convenience_waived: bool
    is_delivery_waived: bool


@dataclass(frozen=True, slots=True)
class OrderTotals:
    subtotal: Decimal
    tax: Decimal
    tax_rate: Decimal
    convenience_charge: Decimal
    delivery_charge: Decimal
    applied_discount: Decimal
    final_total: Decimal
    original_tax: Decimal
    original_convenience_charge: Decimal
    original_delivery_charge: Decimal
    is_tax_waived: bool
    is_convenience_waived: bool
    is_delivery_waived: bool

    def rounded(self) -> "OrderTotals":
        """Round every component to cents and re-derive the total from them."""
        subtotal = to_money(self.subtotal)
        tax = to_money(self.tax)
        convenience = to_money(self.convenience_charge)
        delivery = to_money(self.delivery_charge)
        discount = to_money(self.applied_discount)
        return replace(
            self,
            subtotal=subtotal,
            tax=tax,
            convenience_charge=convenience,
            delivery_charge=delivery,
            applied_discount=discount,
            final_total=max(ZERO, subtotal + tax + convenience + delivery - discount),
            original_tax=to_money(self.original_tax),
            original_convenience_charge=to_money(self.original_convenience_charge),
            original_delivery_charge=to_money(self.original_delivery_charge),
        )


def calculate_subtotal(items: Iterable[Any]) -> Decimal:
    """Sum of price * quantity over line items (objects or mappings)."""
    subtotal = ZERO
    for item in items:
        if isinstance(item, Mapping):
            price, quantity = item["price"], item["quantity"]
        else:
            price, quantity = item.price, item.quantity
        subtotal += _dec(price) * int(quantity)
    return subtotal


def calculate_order_charges(
    subtotal: Number,
    charge_config: ChargeConfig,
    is_free_delivery: bool,
    delivery_type: DeliveryType,
    source: OrderSource = OrderSource.ONLINE,
) -> OrderCharges:
    subtotal = _dec(subtotal)

    original_tax = subtotal * charge_config.tax_percent.percent / 100
    tax_waived = charge_config.tax_percent.waive

    # No convenience fee for in-person transactions, whatever the waive flag says
    in_person = delivery_type == DeliveryType.PICKUP or source == OrderSource.POS
    original_convenience = charge_config.convenience_charge.amount
    convenience_waived = charge_config.convenience_charge.waive or in_person

    original_delivery = charge_config.delivery_charge.amount
    delivery_waived = (
        delivery_type == DeliveryType.PICKUP
        or is_free_delivery
        or charge_config.delivery_charge.waive
    )

    return OrderCharges(
        tax=ZERO if tax_waived else original_tax,
        convenience_charge=ZERO if convenience_waived else original_convenience,
        delivery_charge=ZERO if delivery_waived else original_delivery,
        original_tax=original_tax,
        original_convenience_charge=original_convenience,
        original_delivery_charge=original_delivery,
        is_tax_waived=tax_waived,
        is_convenience_waived=convenience_waived,
        is_delivery_waived=delivery_waived,
    )


def calculate_discount_amount(
    subtotal: Number,
    discount_type: DiscountType,
    magnitude: Number,
    max_discount: Optional[Number] = None,
) -> Decimal:
    subtotal = _dec(subtotal)
    magnitude = max(ZERO, _dec(magnitude))

    if discount_type == DiscountType.PERCENTAGE:
        discount = subtotal * magnitude / 100
    else:
        discount = magnitude

    if max_discount is not None:
        discount = min(discount, _dec(max_discount))

    # A discount can never exceed the subtotal it applies to
    return max(ZERO, min(discount, subtotal))


def calculate_order_total(
    subtotal: Number,
    charges: OrderCharges,
    discount: Number,
    tax_rate: Number,
) -> OrderTotals:
    subtotal = _dec(subtotal)
    discount = _dec(discount)
    charges_total = charges.tax + charges.convenience_charge + charges.delivery_charge

    return OrderTotals(
        subtotal=subtotal,
        tax=charges.tax,
        tax_rate=ZERO if charges.is_tax_waived else _dec(tax_rate),
        convenience_charge=charges.convenience_charge,
        delivery_charge=charges.delivery_charge,
        applied_discount=discount,
        final_total=max(ZERO, subtotal + charges_total - discount),
        original_tax=charges.original_tax,
        original_convenience_charge=charges.original_convenience_charge,
        original_delivery_charge=charges.original_delivery_charge,
        is_tax_waived=charges.is_tax_waived,
        is_convenience_waived=charges.is_convenience_waived,
        is_delivery_waived=charges.is_delivery_waived,
    )
