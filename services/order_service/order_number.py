"""
Short human-facing order numbers.

The existence check runs inside the transaction that creates the order; the
unique constraint on ``orders.order_number`` catches whatever slips through.
"""
import secrets
import string
from typing import Callable, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from shared.observability import ecomm_order_number_collisions_total

from .exceptions import OrderNumberExhausted
from .repository import OrderRepository

logger = structlog.get_logger(__name__)

ORDER_NUMBER_ALPHABET = string.ascii_uppercase + string.digits
ORDER_NUMBER_LENGTH = 5
MAX_ORDER_NUMBER_ATTEMPTS = 20


def draw_order_number(choice: Callable[[str], str] = secrets.choice) -> str:
    return "".join(choice(ORDER_NUMBER_ALPHABET) for _ in range(ORDER_NUMBER_LENGTH))


async def generate_unique_order_number(
    db: AsyncSession,
    choice: Optional[Callable[[str], str]] = None,
    max_attempts: int = MAX_ORDER_NUMBER_ATTEMPTS,
) -> str:
    choice = choice or secrets.choice
    for attempt in range(1, max_attempts + 1):
        candidate = draw_order_number(choice)
        if not await OrderRepository.order_number_exists(db, candidate):
            return candidate
        ecomm_order_number_collisions_total.inc()
        logger.debug("order_number_collision", attempt=attempt)

    logger.error("order_number_exhausted", attempts=max_attempts)
    raise OrderNumberExhausted(max_attempts)
