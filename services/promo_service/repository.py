from typing import Optional

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import PromoCode


class PromoCodeRepository:

    @staticmethod
    async def get_by_id(db: AsyncSession, promo_id: str, for_update: bool = False) -> Optional[PromoCode]:
        stmt = select(PromoCode).where(PromoCode.id == promo_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        result = await db.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def get_by_code(db: AsyncSession, code: str) -> Optional[PromoCode]:
        result = await db.execute(select(PromoCode).where(PromoCode.code == code))
        return result.scalars().first()

    @staticmethod
    async def increment_usage(db: AsyncSession, promo_id: str) -> bool:
        """Atomic ``usage_count + 1``, refused once the usage limit is reached."""
        result = await db.execute(
            update(PromoCode)
            .where(PromoCode.id == promo_id)
            .where(or_(PromoCode.usage_limit.is_(None), PromoCode.usage_count < PromoCode.usage_limit))
            .values(usage_count=PromoCode.usage_count + 1)
        )
        return result.rowcount == 1
