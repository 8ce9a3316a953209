"""
Order creation orchestrator.

One attempt walks VALIDATING_INPUT -> PRICING -> TRANSACTION_OPEN ->
STOCK_REVALIDATED -> NUMBER_ALLOCATED -> PERSISTED -> STOCK_DECREMENTED ->
PROMO_USAGE_RECORDED -> COMMITTED. Any failure ends in ABORTED and, once the
transaction is open, rolls back every write: no order row, no stock
decrement and no promo usage survive a partial failure.

Validation and pricing run before the transaction against a per-request
config snapshot. Stock, price and promo usage are checked again inside the
transaction because that is the only race-safe place to do it.
"""
import enum
import time
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Iterable, Optional, Tuple

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from services.config_service.schemas import PricingConfig
from services.config_service.service import ConfigService
from services.product_service.repository import ProductRepository
from services.promo_service.repository import PromoCodeRepository
from services.promo_service.service import PromoService, evaluate_promo
from services.user_service.models import Address
from services.user_service.service import UserService
from shared.observability import (
    ecomm_order_creation_duration_seconds,
    ecomm_order_failures_total,
    ecomm_orders_created_total,
    ecomm_promo_redemptions_total,
)

from .delivery import is_delivery_available, is_free_delivery_eligible, weekday_name
from .exceptions import (
    BusinessRuleViolation,
    ErrorKind,
    InsufficientStock,
    NotFoundError,
    OrderError,
    PersistenceFailure,
    PriceMismatch,
    ValidationError,
    describe_persistence_error,
)
from .models import (
    DeliveryType,
    Order,
    OrderItem,
    OrderSource,
    OrderStatus,
    PaymentMethod,
)
from .order_number import generate_unique_order_number
from .pricing import (
    ZERO,
    OrderTotals,
    calculate_order_charges,
    calculate_order_total,
    calculate_subtotal,
    to_money,
)
from .repository import OrderRepository
from .schemas import OrderCreate

logger = structlog.get_logger(__name__)

ONLINE_PAYMENT_METHODS = frozenset({PaymentMethod.CASH, PaymentMethod.CARD, PaymentMethod.ONLINE})
TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})


class CreationStage(str, enum.Enum):
    VALIDATING_INPUT = "VALIDATING_INPUT"
    PRICING = "PRICING"
    TRANSACTION_OPEN = "TRANSACTION_OPEN"
    STOCK_REVALIDATED = "STOCK_REVALIDATED"
    NUMBER_ALLOCATED = "NUMBER_ALLOCATED"
    PERSISTED = "PERSISTED"
    STOCK_DECREMENTED = "STOCK_DECREMENTED"
    PROMO_USAGE_RECORDED = "PROMO_USAGE_RECORDED"
    COMMITTED = "COMMITTED"
    ABORTED = "ABORTED"


@dataclass(frozen=True, slots=True)
class LineItem:
    product_id: str
    quantity: int
    price: Decimal


@dataclass(frozen=True, slots=True)
class PromoSnapshot:
    id: str
    code: str
    discount: Decimal
    discount_type: str


@dataclass(frozen=True, slots=True)
class OrderDraft:
    """Everything the transaction needs; priced and validated, not yet persisted."""

    user_id: str
    address_id: str
    items: Tuple[LineItem, ...]
    delivery_type: DeliveryType
    source: OrderSource
    payment_method: PaymentMethod
    status: OrderStatus
    totals: OrderTotals
    delivery_date: Optional[date] = None
    promo: Optional[PromoSnapshot] = None


class OrderAttempt:
    """Tracks the stage of one creation attempt for logs and metrics."""

    def __init__(self, source: OrderSource, **context):
        self.stage = CreationStage.VALIDATING_INPUT
        self.source = source
        self.log = logger.bind(source=source.value, **context)
        self._started = time.perf_counter()

    def advance(self, stage: CreationStage) -> None:
        self.stage = stage
        self.log.debug("order_stage", stage=stage.value)

    def committed(self, order: Order) -> None:
        self.advance(CreationStage.COMMITTED)
        ecomm_orders_created_total.labels(source=self.source.value).inc()
        ecomm_order_creation_duration_seconds.observe(time.perf_counter() - self._started)
        self.log.info(
            "order_committed",
            order_id=order.id,
            order_number=order.order_number,
            total=str(order.total),
        )

    def aborted(self, exc: OrderError) -> None:
        failed_at = self.stage
        self.stage = CreationStage.ABORTED
        ecomm_order_failures_total.labels(kind=exc.kind.value).inc()
        self.log.warning(
            "order_aborted",
            failed_at=failed_at.value,
            error=exc.kind.value,
            reason=exc.message,
        )


def parse_payment_method(value: Optional[str], allowed: Iterable[PaymentMethod]) -> PaymentMethod:
    try:
        method = PaymentMethod((value or "").strip().upper())
    except ValueError:
        method = None
    if method not in allowed:
        raise ValidationError(ErrorKind.INVALID_PAYMENT_METHOD, "Invalid payment method")
    return method


def parse_delivery_type(value: Optional[str]) -> DeliveryType:
    try:
        return DeliveryType((value or "").strip().upper())
    except ValueError:
        raise ValidationError(ErrorKind.INVALID_DELIVERY_TYPE, "Delivery type must be PICKUP or DELIVERY")


def require_items(items) -> None:
    if not items:
        raise ValidationError(ErrorKind.NO_ITEMS, "No items in the order")


def require_positive_total(total: Optional[Decimal], required: bool = False) -> None:
    if total is None and not required:
        return
    if total is None or not total.is_finite() or total <= 0:
        raise ValidationError(ErrorKind.INVALID_TOTAL, "Order total must be a positive number")


def _quantities(items: Iterable[LineItem]) -> Dict[str, int]:
    # Duplicate lines for one product are checked and decremented together
    totals: Dict[str, int] = OrderedDict()
    for item in items:
        totals[item.product_id] = totals.get(item.product_id, 0) + item.quantity
    return totals


class OrderService:

    # ------------------------------------------------------------------ shared core

    @staticmethod
    def price(
        items: Iterable[LineItem],
        pricing: PricingConfig,
        delivery_type: DeliveryType,
        source: OrderSource,
        discount: Decimal = ZERO,
        is_free_delivery: bool = False,
    ) -> OrderTotals:
        subtotal = calculate_subtotal(items)
        charges = calculate_order_charges(subtotal, pricing.charges, is_free_delivery, delivery_type, source)
        return calculate_order_total(subtotal, charges, discount, pricing.charges.tax_percent.percent).rounded()

    @staticmethod
    async def resolve_promo(
        db: AsyncSession,
        promo_code_id: Optional[str],
        subtotal: Decimal,
        now: Optional[datetime] = None,
    ) -> Tuple[Decimal, Optional[PromoSnapshot]]:
        if not promo_code_id:
            return ZERO, None
        validation = await PromoService.validate_promo_by_id(db, promo_code_id, subtotal, now)
        if not validation.valid:
            raise BusinessRuleViolation(ErrorKind.PROMO_INVALID_OR_EXPIRED, validation.message)
        promo = validation.promo
        snapshot = PromoSnapshot(
            id=promo.id,
            code=promo.code,
            discount=promo.discount,
            discount_type=promo.discount_type.value,
        )
        return PromoService.discount_for(promo, subtotal), snapshot

    @staticmethod
    async def place(
        db: AsyncSession,
        draft: OrderDraft,
        attempt: OrderAttempt,
        now: Optional[datetime] = None,
    ) -> Order:
        """Run the atomic write unit for a priced draft."""
        # Close the implicit read transaction left by the pre-flight queries
        if db.in_transaction():
            await db.commit()

        attempt.advance(CreationStage.TRANSACTION_OPEN)
        try:
            async with db.begin():
                names = await OrderService._revalidate_items(db, draft.items)
                attempt.advance(CreationStage.STOCK_REVALIDATED)

                order_number = await generate_unique_order_number(db)
                attempt.advance(CreationStage.NUMBER_ALLOCATED)

                order = await OrderRepository.add_order(db, OrderService._build_order(draft, order_number))
                attempt.advance(CreationStage.PERSISTED)

                for product_id, quantity in _quantities(draft.items).items():
                    if not await ProductRepository.decrement_stock(db, product_id, quantity):
                        raise InsufficientStock(names[product_id])
                attempt.advance(CreationStage.STOCK_DECREMENTED)

                if draft.promo is not None and draft.totals.applied_discount > 0:
                    await OrderService._record_promo_usage(db, draft, now)
                    attempt.advance(CreationStage.PROMO_USAGE_RECORDED)
        except SQLAlchemyError as exc:
            attempt.log.error("order_persistence_failed", stage=attempt.stage.value, exc_info=True)
            raise PersistenceFailure(describe_persistence_error(exc)) from exc

        if draft.promo is not None and draft.totals.applied_discount > 0:
            ecomm_promo_redemptions_total.inc()
        return order

    @staticmethod
    async def _revalidate_items(db: AsyncSession, items: Tuple[LineItem, ...]) -> Dict[str, str]:
        wanted = _quantities(items)
        products = await ProductRepository.lock_products(db, wanted.keys())

        for product_id, quantity in wanted.items():
            product = products.get(product_id)
            if product is None or not product.is_active or product.is_deleted:
                raise BusinessRuleViolation(
                    ErrorKind.PRODUCT_INACTIVE_OR_MISSING,
                    f"Product not found or unavailable: {product_id}",
                )
            if quantity > product.stock:
                raise InsufficientStock(product.name)

        for item in items:
            product = products[item.product_id]
            # Exact, not cent-rounded: the subtotal is built from the quoted price
            if Decimal(item.price) != Decimal(product.price):
                raise PriceMismatch(product.name)

        return {product_id: product.name for product_id, product in products.items()}

    @staticmethod
    async def _record_promo_usage(db: AsyncSession, draft: OrderDraft, now: Optional[datetime]) -> None:
        # Re-check under the transaction so concurrent orders cannot overrun the usage limit
        promo = await PromoCodeRepository.get_by_id(db, draft.promo.id, for_update=True)
        validation = evaluate_promo(promo, draft.totals.subtotal, now)
        if not validation.valid:
            raise BusinessRuleViolation(ErrorKind.PROMO_INVALID_OR_EXPIRED, validation.message)
        if not await PromoService.increment_promo_usage(db, draft.promo.id):
            raise BusinessRuleViolation(ErrorKind.PROMO_INVALID_OR_EXPIRED, "Promo code usage limit reached")

    @staticmethod
    def _build_order(draft: OrderDraft, order_number: str) -> Order:
        totals = draft.totals
        order = Order(
            order_number=order_number,
            user_id=draft.user_id,
            address_id=draft.address_id,
            delivery_type=draft.delivery_type,
            order_source=draft.source,
            payment_method=draft.payment_method,
            status=draft.status,
            subtotal=totals.subtotal,
            tax=totals.tax,
            tax_rate=totals.tax_rate,
            convenience_charge=totals.convenience_charge,
            delivery_charge=totals.delivery_charge,
            discount=totals.applied_discount,
            total=totals.final_total,
            delivery_date=draft.delivery_date,
            items=[
                OrderItem(product_id=item.product_id, quantity=item.quantity, price=to_money(item.price))
                for item in draft.items
            ],
        )
        if draft.promo is not None:
            order.promo_code_id = draft.promo.id
            order.promo_code_code = draft.promo.code
            order.promo_discount = draft.promo.discount
            order.promo_discount_type = draft.promo.discount_type
        return order

    # ------------------------------------------------------------------ online orders

    @staticmethod
    async def create_order(
        db: AsyncSession,
        data: OrderCreate,
        today: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> Order:
        attempt = OrderAttempt(OrderSource.ONLINE, user_id=data.user_id)
        try:
            draft = await OrderService._prepare_online(db, data, attempt, today or date.today(), now)
            order = await OrderService.place(db, draft, attempt, now)
        except OrderError as exc:
            attempt.aborted(exc)
            raise
        attempt.committed(order)
        return order

    @staticmethod
    async def _prepare_online(
        db: AsyncSession,
        data: OrderCreate,
        attempt: OrderAttempt,
        today: date,
        now: Optional[datetime],
    ) -> OrderDraft:
        require_items(data.items)
        payment_method = parse_payment_method(data.payment_method, ONLINE_PAYMENT_METHODS)
        require_positive_total(data.total)
        delivery_type = parse_delivery_type(data.delivery_type)

        if delivery_type == DeliveryType.DELIVERY and data.delivery_date is None:
            raise ValidationError(ErrorKind.DELIVERY_DATE_REQUIRED, "Delivery date is required for delivery orders")
        if data.delivery_date is not None and data.delivery_date < today:
            raise ValidationError(ErrorKind.INVALID_DELIVERY_DATE, "Delivery date must be today or in the future")

        await UserService.get_user(db, data.user_id)
        pricing = await ConfigService.load_pricing_config(db)
        address = await OrderService._destination(db, data, delivery_type)

        if delivery_type == DeliveryType.DELIVERY and not is_delivery_available(
            data.delivery_date, address.city, pricing.free_delivery
        ):
            raise BusinessRuleViolation(
                ErrorKind.DELIVERY_NOT_AVAILABLE,
                f"Delivery is not available to {address.city} on {weekday_name(data.delivery_date)}",
            )

        attempt.advance(CreationStage.PRICING)
        items = tuple(
            LineItem(product_id=item.product_id, quantity=item.quantity, price=item.price)
            for item in data.items
        )
        subtotal = calculate_subtotal(items)
        is_free_delivery = is_free_delivery_eligible(
            data.delivery_date, address.city, delivery_type, pricing.free_delivery
        )
        discount, promo = await OrderService.resolve_promo(db, data.promo_code_id, subtotal, now)
        totals = OrderService.price(items, pricing, delivery_type, OrderSource.ONLINE, discount, is_free_delivery)

        return OrderDraft(
            user_id=data.user_id,
            address_id=address.id,
            items=items,
            delivery_type=delivery_type,
            source=OrderSource.ONLINE,
            payment_method=payment_method,
            status=OrderStatus.PENDING,
            totals=totals,
            delivery_date=data.delivery_date,
            promo=promo,
        )

    @staticmethod
    async def _destination(db: AsyncSession, data: OrderCreate, delivery_type: DeliveryType) -> Address:
        if delivery_type == DeliveryType.PICKUP:
            return await UserService.get_pickup_location(db)
        if not data.address_id:
            raise NotFoundError(ErrorKind.ADDRESS_NOT_FOUND, "Delivery address not found")
        address = await UserService.get_address(db, data.address_id)
        if address.user_id is not None and address.user_id != data.user_id:
            raise NotFoundError(ErrorKind.ADDRESS_NOT_FOUND, "Delivery address not found")
        return address

    # ------------------------------------------------------------------ admin workflows

    @staticmethod
    async def get_order(db: AsyncSession, order_id: str) -> Order:
        order = await OrderRepository.get_order(db, order_id)
        if not order:
            raise NotFoundError(ErrorKind.ORDER_NOT_FOUND, "Order not found")
        return order

    @staticmethod
    async def update_status(db: AsyncSession, order_id: str, status: OrderStatus) -> Order:
        """Status moves freely until the order is DELIVERED or CANCELLED."""
        order = await OrderService.get_order(db, order_id)
        if order.status in TERMINAL_STATUSES and order.status != status:
            raise BusinessRuleViolation(
                ErrorKind.INVALID_STATUS_TRANSITION,
                f"Order {order.order_number} is already {order.status.value}",
            )
        # TODO: restore stock and promo usage on CANCELLED once a compensation policy is agreed
        order = await OrderRepository.update_status(db, order, status)
        logger.info("order_status_changed", order_id=order.id, status=status.value)
        return order

    @staticmethod
    async def delete_order(db: AsyncSession, order_id: str) -> Order:
        order = await OrderService.get_order(db, order_id)
        return await OrderRepository.soft_delete(db, order)

