"""
Customer resolution for walk-in (POS) sales.

Priority: an explicit existing user id, then a phone number (matched against
every format it may have been stored in), then the shared walk-in sentinel.
"""
from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from services.order_service.exceptions import (
    ConfigurationError,
    ErrorKind,
    NotFoundError,
    ValidationError,
)
from shared.config.settings import PICKUP_LOCATION_ID, WALK_IN_NAME, WALK_IN_PHONE

from .models import Address, User, UserRole
from .phone import display_phone_number, format_phone_number, get_phone_variations
from .repository import AddressRepository, UserRepository

logger = structlog.get_logger(__name__)


class UserService:

    @staticmethod
    async def get_user(db: AsyncSession, user_id: str) -> User:
        user = await UserRepository.get_by_id(db, user_id)
        if not user:
            raise NotFoundError(ErrorKind.USER_NOT_FOUND, "Customer not found")
        return user

    @staticmethod
    async def get_address(db: AsyncSession, address_id: str) -> Address:
        address = await AddressRepository.get_by_id(db, address_id)
        if not address:
            raise NotFoundError(ErrorKind.ADDRESS_NOT_FOUND, "Delivery address not found")
        return address

    @staticmethod
    async def get_pickup_location(db: AsyncSession) -> Address:
        address = await AddressRepository.get_by_id(db, PICKUP_LOCATION_ID)
        if not address:
            raise ConfigurationError(
                ErrorKind.PICKUP_LOCATION_NOT_CONFIGURED,
                "Store pickup location not configured. Please contact support.",
            )
        return address

    @staticmethod
    async def find_or_create_by_phone(db: AsyncSession, phone: str, name: Optional[str] = None) -> User:
        standardized = format_phone_number(phone)
        if not standardized:
            raise ValidationError(ErrorKind.INVALID_PHONE_NUMBER, "Invalid phone number format.")

        user = await UserRepository.find_by_phones(db, get_phone_variations(phone))
        if user is None:
            user = await UserRepository.create(
                db, User(phone=standardized, full_name=name or standardized, role=UserRole.USER)
            )
            logger.info("customer_created", user_id=user.id, phone=display_phone_number(user.phone))
        elif user.phone != standardized:
            user = await UserRepository.update_phone(db, user, standardized)
            logger.info("customer_phone_normalized", user_id=user.id)
        return user

    @staticmethod
    async def get_or_create_walk_in(db: AsyncSession) -> User:
        user = await UserRepository.get_walk_in(db, WALK_IN_PHONE)
        if user is not None:
            return user
        try:
            user = await UserRepository.create(
                db, User(phone=WALK_IN_PHONE, full_name=WALK_IN_NAME, role=UserRole.USER)
            )
            logger.info("walk_in_customer_created", user_id=user.id)
            return user
        except IntegrityError:
            # Another request created it first, or the sentinel phone is taken by a non-USER row
            await db.rollback()
        user = await UserRepository.get_walk_in(db, WALK_IN_PHONE)
        if user is None:
            raise ConfigurationError(
                ErrorKind.WALK_IN_CUSTOMER_NOT_CONFIGURED,
                "Walk-in customer user not configured. Please contact support.",
            )
        return user

    @staticmethod
    async def resolve_customer(
        db: AsyncSession,
        user_id: Optional[str] = None,
        is_existing_user: bool = False,
        phone: Optional[str] = None,
        name: Optional[str] = None,
    ) -> User:
        if user_id and is_existing_user:
            return await UserService.get_user(db, user_id)
        if phone:
            return await UserService.find_or_create_by_phone(db, phone, name)
        return await UserService.get_or_create_walk_in(db)
