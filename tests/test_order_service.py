"""Integration tests for online order creation against a real (sqlite) database."""
import asyncio
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from shared.config.database import AsyncSessionLocal
from services.order_service.exceptions import (
    BusinessRuleViolation,
    ErrorKind,
    NotFoundError,
    OrderError,
    ResourceExhaustion,
    ValidationError,
)
from services.order_service.models import DeliveryType, Order, OrderSource, OrderStatus
from services.order_service.repository import OrderRepository
from services.order_service.schemas import OrderCreate
from services.order_service.service import OrderService
from services.product_service.models import Product
from services.promo_service.models import PromoCode

TODAY = date(2030, 1, 1)
MONDAY = date(2030, 1, 7)
TUESDAY = date(2030, 1, 8)


def _order(**overrides) -> OrderCreate:
    fields = dict(
        user_id="user-1",
        items=[{"product_id": "P1", "quantity": 2, "price": "12.99"}],
        delivery_type="PICKUP",
        payment_method="card",
    )
    fields.update(overrides)
    return OrderCreate(**fields)


async def _stock(product_id: str) -> int:
    async with AsyncSessionLocal() as session:
        return (await session.execute(select(Product.stock).where(Product.id == product_id))).scalar_one()


async def _usage(promo_id: str) -> int:
    async with AsyncSessionLocal() as session:
        return (await session.execute(select(PromoCode.usage_count).where(PromoCode.id == promo_id))).scalar_one()


async def _order_count() -> int:
    async with AsyncSessionLocal() as session:
        return (await session.execute(select(func.count(Order.id)))).scalar_one()


async def test_pickup_order_end_to_end(db, store):
    order = await OrderService.create_order(db, _order(), today=TODAY)

    assert order.subtotal == Decimal("25.98")
    assert order.tax == Decimal("3.38")
    assert order.tax_rate == Decimal("13")
    assert order.convenience_charge == 0
    assert order.delivery_charge == 0
    assert order.total == Decimal("29.36")
    assert order.status == OrderStatus.PENDING
    assert order.order_source == OrderSource.ONLINE
    assert order.address_id == store.pickup_id
    assert len(order.order_number) == 5
    assert [(item.product_id, item.quantity) for item in order.items] == [("P1", 2)]
    assert await _stock("P1") == 8


async def test_free_delivery_day_waives_delivery_charge(db, store):
    order = await OrderService.create_order(
        db,
        _order(
            delivery_type="DELIVERY",
            address_id=store.address_id,
            delivery_date=MONDAY,
            items=[{"product_id": "P2", "quantity": 2, "price": "25.00"}],
        ),
        today=TODAY,
    )

    assert order.delivery_type == DeliveryType.DELIVERY
    assert order.delivery_charge == 0
    assert order.convenience_charge == Decimal("2.50")
    assert order.total == Decimal("50.00") + Decimal("6.50") + Decimal("2.50")


async def test_order_type_alias_is_accepted(db, store):
    data = OrderCreate(
        user_id="user-1",
        items=[{"product_id": "P1", "quantity": 1, "price": "12.99"}],
        order_type="pickup",
        payment_method="CASH",
    )
    order = await OrderService.create_order(db, data, today=TODAY)
    assert order.delivery_type == DeliveryType.PICKUP


async def test_promo_applied_once_and_usage_recorded(db, store):
    order = await OrderService.create_order(
        db,
        _order(items=[{"product_id": "P2", "quantity": 2, "price": "25.00"}], promo_code_id="promo-save10"),
        today=TODAY,
    )

    assert order.subtotal == Decimal("50.00")
    assert order.discount == Decimal("5.00")
    assert order.promo_code_code == "SAVE10"
    assert order.promo_discount_type == "PERCENTAGE"
    # 50 + 6.50 tax - 5
    assert order.total == Decimal("51.50")
    assert await _usage("promo-save10") == 1


async def test_failed_order_records_no_promo_usage_and_no_stock_change(db, store):
    data = _order(
        items=[
            {"product_id": "P2", "quantity": 1, "price": "25.00"},
            {"product_id": "LAST", "quantity": 2, "price": "10.00"},
        ],
        promo_code_id="promo-save10",
    )

    with pytest.raises(BusinessRuleViolation) as exc_info:
        await OrderService.create_order(db, data, today=TODAY)

    assert exc_info.value.kind == ErrorKind.INSUFFICIENT_STOCK
    assert exc_info.value.message == "Insufficient stock for Last Loaf"
    assert await _usage("promo-save10") == 0
    assert await _stock("P2") == 5
    assert await _stock("LAST") == 1
    assert await _order_count() == 0


async def test_concurrent_orders_for_last_unit(store):
    data = _order(items=[{"product_id": "LAST", "quantity": 1, "price": "10.00"}])

    async def attempt():
        async with AsyncSessionLocal() as session:
            return await OrderService.create_order(session, data, today=TODAY)

    results = await asyncio.gather(attempt(), attempt(), return_exceptions=True)

    placed = [result for result in results if isinstance(result, Order)]
    failed = [result for result in results if isinstance(result, OrderError)]
    assert len(placed) == 1
    assert len(failed) == 1
    assert failed[0].kind == ErrorKind.INSUFFICIENT_STOCK
    assert await _stock("LAST") == 0
    assert await _order_count() == 1


async def test_price_mismatch_aborts(db, store):
    with pytest.raises(BusinessRuleViolation) as exc_info:
        await OrderService.create_order(
            db, _order(items=[{"product_id": "P1", "quantity": 1, "price": "9.99"}]), today=TODAY
        )
    assert exc_info.value.kind == ErrorKind.PRICE_MISMATCH
    assert await _stock("P1") == 10


async def test_sub_cent_price_is_a_mismatch(db, store):
    with pytest.raises(BusinessRuleViolation) as exc_info:
        await OrderService.create_order(
            db, _order(items=[{"product_id": "P1", "quantity": 10, "price": "12.985"}]), today=TODAY
        )
    assert exc_info.value.kind == ErrorKind.PRICE_MISMATCH
    assert await _stock("P1") == 10
    assert await _order_count() == 0


async def test_trailing_zero_price_still_matches(db, store):
    order = await OrderService.create_order(
        db, _order(items=[{"product_id": "P2", "quantity": 1, "price": "25.000"}]), today=TODAY
    )
    assert order.subtotal == sum(item.price * item.quantity for item in order.items)


async def test_inactive_product_aborts(db, store):
    with pytest.raises(BusinessRuleViolation) as exc_info:
        await OrderService.create_order(
            db, _order(items=[{"product_id": "GONE", "quantity": 1, "price": "4.00"}]), today=TODAY
        )
    assert exc_info.value.kind == ErrorKind.PRODUCT_INACTIVE_OR_MISSING


async def test_duplicate_lines_are_checked_together(db, store):
    items = [
        {"product_id": "LAST", "quantity": 1, "price": "10.00"},
        {"product_id": "LAST", "quantity": 1, "price": "10.00"},
    ]
    with pytest.raises(BusinessRuleViolation) as exc_info:
        await OrderService.create_order(db, _order(items=items), today=TODAY)
    assert exc_info.value.kind == ErrorKind.INSUFFICIENT_STOCK


async def test_invalid_promo_rejects_the_order(db, store):
    with pytest.raises(BusinessRuleViolation) as exc_info:
        await OrderService.create_order(db, _order(promo_code_id="promo-min"), today=TODAY)
    assert exc_info.value.kind == ErrorKind.PROMO_INVALID_OR_EXPIRED
    assert exc_info.value.message == "Minimum order of $100.00 required"


async def test_usage_limited_promo_only_redeems_once(db, store):
    await OrderService.create_order(db, _order(promo_code_id="promo-once"), today=TODAY)

    with pytest.raises(BusinessRuleViolation) as exc_info:
        await OrderService.create_order(db, _order(promo_code_id="promo-once"), today=TODAY)

    assert exc_info.value.kind == ErrorKind.PROMO_INVALID_OR_EXPIRED
    assert await _usage("promo-once") == 1
    assert await _stock("P1") == 8


@pytest.mark.parametrize(
    "overrides, kind",
    [
        ({"items": []}, ErrorKind.NO_ITEMS),
        ({"payment_method": "bitcoin"}, ErrorKind.INVALID_PAYMENT_METHOD),
        ({"total": "0"}, ErrorKind.INVALID_TOTAL),
        ({"total": "-5"}, ErrorKind.INVALID_TOTAL),
        ({"delivery_type": "drone"}, ErrorKind.INVALID_DELIVERY_TYPE),
        ({"delivery_type": "DELIVERY", "address_id": "addr-1"}, ErrorKind.DELIVERY_DATE_REQUIRED),
        ({"delivery_date": date(2029, 12, 31)}, ErrorKind.INVALID_DELIVERY_DATE),
    ],
)
async def test_input_validation(db, store, overrides, kind):
    with pytest.raises(ValidationError) as exc_info:
        await OrderService.create_order(db, _order(**overrides), today=TODAY)
    assert exc_info.value.kind == kind
    assert exc_info.value.status_code == 400


async def test_unknown_user_and_foreign_address_are_not_found(db, store):
    with pytest.raises(NotFoundError) as exc_info:
        await OrderService.create_order(db, _order(user_id="ghost"), today=TODAY)
    assert exc_info.value.kind == ErrorKind.USER_NOT_FOUND

    with pytest.raises(NotFoundError) as exc_info:
        await OrderService.create_order(
            db,
            _order(delivery_type="DELIVERY", address_id="nowhere", delivery_date=MONDAY),
            today=TODAY,
        )
    assert exc_info.value.kind == ErrorKind.ADDRESS_NOT_FOUND


async def test_delivery_not_available_on_unserviced_day(db, store):
    with pytest.raises(BusinessRuleViolation) as exc_info:
        await OrderService.create_order(
            db,
            _order(delivery_type="DELIVERY", address_id=store.address_id, delivery_date=TUESDAY),
            today=TODAY,
        )
    assert exc_info.value.kind == ErrorKind.DELIVERY_NOT_AVAILABLE
    assert exc_info.value.message == "Delivery is not available to Toronto on Tuesday"


async def test_status_updates_stop_at_terminal_states(db, store):
    order = await OrderService.create_order(db, _order(), today=TODAY)

    updated = await OrderService.update_status(db, order.id, OrderStatus.DELIVERED)
    assert updated.status == OrderStatus.DELIVERED

    with pytest.raises(BusinessRuleViolation) as exc_info:
        await OrderService.update_status(db, order.id, OrderStatus.CANCELLED)
    assert exc_info.value.kind == ErrorKind.INVALID_STATUS_TRANSITION


async def test_soft_deleted_order_keeps_its_number(db, store):
    order = await OrderService.create_order(db, _order(), today=TODAY)
    await OrderService.delete_order(db, order.id)

    with pytest.raises(NotFoundError):
        await OrderService.get_order(db, order.id)
    assert await OrderRepository.order_number_exists(db, order.order_number)


async def test_running_out_of_order_numbers_rolls_back_everything(db, store, monkeypatch):
    async def always_taken(db, candidate):
        return True

    monkeypatch.setattr(OrderRepository, "order_number_exists", staticmethod(always_taken))

    with pytest.raises(ResourceExhaustion) as exc_info:
        await OrderService.create_order(
            db,
            _order(items=[{"product_id": "P2", "quantity": 2, "price": "25.00"}], promo_code_id="promo-save10"),
            today=TODAY,
        )

    assert exc_info.value.kind == ErrorKind.ORDER_NUMBER_EXHAUSTED
    assert await _order_count() == 0
    assert await _stock("P2") == 5
    assert await _usage("promo-save10") == 0
