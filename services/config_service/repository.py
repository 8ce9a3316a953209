from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import ConfigEntry


class ConfigRepository:

    @staticmethod
    async def get_active(db: AsyncSession) -> List[ConfigEntry]:
        result = await db.execute(
            select(ConfigEntry)
            .where(ConfigEntry.is_active.is_(True))
            .where(ConfigEntry.is_deleted.is_(False))
        )
        return list(result.scalars().all())
