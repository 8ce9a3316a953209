from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from .models import Order, OrderStatus

class OrderRepository:
    @staticmethod
    async def add_order(db: AsyncSession, order: Order) -> Order:
        """Stage header and line items in one flush; the caller owns the transaction."""
        db.add(order)
        await db.flush()
        return order

    @staticmethod
    async def order_number_exists(db: AsyncSession, order_number: str) -> bool:
        # Deleted orders keep their numbers, so no is_deleted filter here
        result = await db.execute(select(Order.id).where(Order.order_number == order_number))
        return result.first() is not None

    @staticmethod
    async def get_order(db: AsyncSession, order_id: str) -> Optional[Order]:
        result = await db.execute(
            select(Order).where(Order.id == order_id).where(Order.is_deleted.is_(False))
        )
        return result.scalars().first()

    @staticmethod
    async def update_status(db: AsyncSession, order: Order, status: OrderStatus) -> Order:
        order.status = status
        await db.commit()
        await db.refresh(order)
        return order

    @staticmethod
    async def soft_delete(db: AsyncSession, order: Order) -> Order:
        order.is_deleted = True
        await db.commit()
        return order
