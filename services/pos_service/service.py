from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from services.config_service.service import ConfigService
from services.order_service.exceptions import OrderError
from services.order_service.models import DeliveryType, OrderSource, OrderStatus, PaymentMethod
from services.order_service.pricing import ZERO, calculate_subtotal
from services.order_service.service import (
    CreationStage,
    LineItem,
    OrderAttempt,
    OrderDraft,
    OrderService,
    parse_payment_method,
    require_items,
    require_positive_total,
)
from services.user_service.service import UserService

from .schemas import PosCustomer, PosSaleData, PosSaleRequest

POS_PAYMENT_METHODS = frozenset({PaymentMethod.CASH, PaymentMethod.CARD})


class PosService:

    @staticmethod
    async def create_sale(db: AsyncSession, sale: PosSaleRequest, now: Optional[datetime] = None) -> PosSaleData:
        """
        In-store sale: always a pickup at the store location, handed over on
        the spot (DELIVERED), no convenience or delivery charge. Shares stock,
        price and promo enforcement with online orders.
        """
        attempt = OrderAttempt(OrderSource.POS)
        try:
            require_items(sale.items)
            payment_method = parse_payment_method(sale.payment_method, POS_PAYMENT_METHODS)
            require_positive_total(sale.total, required=True)

            customer = sale.customer or PosCustomer()
            user = await UserService.resolve_customer(
                db,
                user_id=customer.user_id,
                is_existing_user=customer.is_existing_user,
                phone=customer.phone,
                name=customer.name,
            )
            store = await UserService.get_pickup_location(db)
            pricing = await ConfigService.load_pricing_config(db)

            attempt.advance(CreationStage.PRICING)
            items = tuple(LineItem(product_id=item.id, quantity=item.quantity, price=item.price) for item in sale.items)
            subtotal = calculate_subtotal(items)

            promo = None
            discount = ZERO
            if sale.promo_code_id:
                discount, promo = await OrderService.resolve_promo(db, sale.promo_code_id, subtotal, now)
            elif sale.discount > 0:
                # Manual till discount, never more than the goods
                discount = min(sale.discount, subtotal)

            totals = OrderService.price(items, pricing, DeliveryType.PICKUP, OrderSource.POS, discount)
            if sale.total != totals.final_total:
                attempt.log.info("pos_total_repriced", till_total=str(sale.total), total=str(totals.final_total))

            draft = OrderDraft(
                user_id=user.id,
                address_id=store.id,
                items=items,
                delivery_type=DeliveryType.PICKUP,
                source=OrderSource.POS,
                payment_method=payment_method,
                status=OrderStatus.DELIVERED,
                totals=totals,
                promo=promo,
            )
            order = await OrderService.place(db, draft, attempt, now)
        except OrderError as exc:
            attempt.aborted(exc)
            raise
        attempt.committed(order)

        return PosSaleData(
            order_id=order.id,
            order_number=order.order_number,
            total=float(order.total),
            payment_method=payment_method.value.lower(),
            timestamp=order.created_at,
        )
