from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Address, User, UserRole


class UserRepository:

    @staticmethod
    async def create(db: AsyncSession, user: User) -> User:
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalars().first()

    @staticmethod
    async def find_by_phones(db: AsyncSession, phones: List[str]) -> Optional[User]:
        result = await db.execute(select(User).where(User.phone.in_(phones)))
        return result.scalars().first()

    @staticmethod
    async def get_walk_in(db: AsyncSession, sentinel_phone: str) -> Optional[User]:
        result = await db.execute(
            select(User).where(User.phone == sentinel_phone).where(User.role == UserRole.USER)
        )
        return result.scalars().first()

    @staticmethod
    async def update_phone(db: AsyncSession, user: User, phone: str) -> User:
        user.phone = phone
        await db.commit()
        return user


class AddressRepository:

    @staticmethod
    async def get_by_id(db: AsyncSession, address_id: str) -> Optional[Address]:
        result = await db.execute(
            select(Address).where(Address.id == address_id).where(Address.is_deleted.is_(False))
        )
        return result.scalars().first()
