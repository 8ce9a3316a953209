"""
Promotion validator.

Validation never mutates: it is safe for pre-flight checks from the cart and
is re-run inside the order transaction before usage is recorded.
"""
import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.order_service.pricing import ZERO, calculate_discount_amount, to_money

from .models import PromoCode
from .repository import PromoCodeRepository

logger = structlog.get_logger(__name__)


class PromoRejection(str, enum.Enum):
    NOT_FOUND = "NOT_FOUND"
    INACTIVE = "INACTIVE"
    EXPIRED = "EXPIRED"
    USAGE_LIMIT_REACHED = "USAGE_LIMIT_REACHED"
    MINIMUM_NOT_MET = "MINIMUM_NOT_MET"


@dataclass(frozen=True, slots=True)
class PromoValidation:
    valid: bool
    promo: Optional[PromoCode] = None
    reason: Optional[PromoRejection] = None
    message: Optional[str] = None


def _as_utc(moment: datetime) -> datetime:
    # sqlite hands back naive datetimes; everything is stored in UTC
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def _reject(reason: PromoRejection, message: str, promo: Optional[PromoCode] = None) -> PromoValidation:
    return PromoValidation(valid=False, promo=promo, reason=reason, message=message)


def evaluate_promo(promo: Optional[PromoCode], subtotal: Decimal, now: Optional[datetime] = None) -> PromoValidation:
    """Run the checks in order; the first failure decides the reason."""
    if promo is None or promo.is_deleted:
        return _reject(PromoRejection.NOT_FOUND, "Invalid promo code")
    if not promo.is_active:
        return _reject(PromoRejection.INACTIVE, "Promo code is no longer active", promo)

    now = _as_utc(now or datetime.now(timezone.utc))
    if promo.expires_at is not None and _as_utc(promo.expires_at) <= now:
        return _reject(PromoRejection.EXPIRED, "Promo code has expired", promo)

    if promo.usage_limit is not None and promo.usage_count >= promo.usage_limit:
        return _reject(PromoRejection.USAGE_LIMIT_REACHED, "Promo code usage limit reached", promo)

    if promo.min_order_amount is not None and Decimal(subtotal) < promo.min_order_amount:
        return _reject(
            PromoRejection.MINIMUM_NOT_MET,
            f"Minimum order of ${to_money(promo.min_order_amount)} required",
            promo,
        )

    return PromoValidation(valid=True, promo=promo)


class PromoService:

    @staticmethod
    async def validate_promo_by_id(
        db: AsyncSession, promo_id: str, subtotal: Decimal, now: Optional[datetime] = None
    ) -> PromoValidation:
        promo = await PromoCodeRepository.get_by_id(db, promo_id)
        return evaluate_promo(promo, subtotal, now)

    @staticmethod
    async def validate_promo_by_code(
        db: AsyncSession, code: str, subtotal: Decimal, now: Optional[datetime] = None
    ) -> PromoValidation:
        promo = await PromoCodeRepository.get_by_code(db, code.strip().upper())
        return evaluate_promo(promo, subtotal, now)

    @staticmethod
    def discount_for(promo: PromoCode, subtotal: Decimal) -> Decimal:
        return calculate_discount_amount(subtotal, promo.discount_type, promo.discount, promo.max_discount)

    @staticmethod
    async def increment_promo_usage(db: AsyncSession, promo_id: str) -> bool:
        """
        Record one usage. Not idempotent: call exactly once per committed order
        that actually received a discount. Returns False when the limit was hit.
        """
        updated = await PromoCodeRepository.increment_usage(db, promo_id)
        if not updated:
            logger.warning("promo_usage_increment_refused", promo_code_id=promo_id)
        return updated

    @staticmethod
    def preview(validation: PromoValidation, subtotal: Decimal) -> Decimal:
        if not validation.valid:
            return ZERO
        return PromoService.discount_for(validation.promo, subtotal)
