from typing import Dict, Iterable

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from .models import Product

class ProductRepository:

    @staticmethod
    async def create_product(db: AsyncSession, product: Product):
        db.add(product)
        await db.commit()
        await db.refresh(product)
        return product

    @staticmethod
    async def get_all_products(db: AsyncSession):
        result = await db.execute(
            select(Product)
            .where(Product.is_active.is_(True))
            .where(Product.is_deleted.is_(False))
            .order_by(Product.name)
        )
        return result.scalars().all()

    @staticmethod
    async def get_product_by_id(db: AsyncSession, product_id: str):
        result = await db.execute(select(Product).where(Product.id == product_id))
        return result.scalars().first()

    @staticmethod
    async def lock_products(db: AsyncSession, product_ids: Iterable[str]) -> Dict[str, Product]:
        """Fresh read of the given products inside the caller's transaction (row locks where supported)."""
        result = await db.execute(
            select(Product)
            .where(Product.id.in_(list(product_ids)))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return {product.id: product for product in result.scalars().all()}

    @staticmethod
    async def decrement_stock(db: AsyncSession, product_id: str, quantity: int) -> bool:
        """Single-statement ``stock = stock - quantity``; refuses to go below zero."""
        result = await db.execute(
            update(Product)
            .where(Product.id == product_id)
            .where(Product.stock >= quantity)
            .values(stock=Product.stock - quantity)
        )
        return result.rowcount == 1
