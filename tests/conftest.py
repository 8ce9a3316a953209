"""Pytest fixtures: a fresh sqlite file database per test, seeded with a small store."""
import os
import tempfile

# Must be set before anything imports shared.config
_DB_PATH = os.path.join(tempfile.gettempdir(), f"storefront_test_{os.getpid()}.db")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_PATH}"
os.environ["OTEL_TRACING_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["INTERNAL_API_KEY"] = "test-internal-key"
os.environ["LOG_LEVEL"] = "WARNING"

from dataclasses import dataclass
from decimal import Decimal

import pytest

from shared.config.database import AsyncSessionLocal, Base, engine
from shared.observability import configure_logging
from services.config_service.models import ConfigEntry
from services.order_service import models as order_models  # noqa: F401
from services.product_service.models import Product
from services.promo_service.models import DiscountType, PromoCode
from services.user_service.models import Address, User, UserRole

configure_logging("WARNING")

API_KEY_HEADERS = {"X-Internal-API-Key": "test-internal-key"}


@dataclass
class SeededStore:
    customer_id: str
    address_id: str
    pickup_id: str


@pytest.fixture
async def database():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


@pytest.fixture
async def db(database):
    async with AsyncSessionLocal() as session:
        yield session


async def add_rows(*rows):
    async with AsyncSessionLocal() as session:
        session.add_all(rows)
        await session.commit()


async def set_config(title: str, value):
    await add_rows(ConfigEntry(title=title, value=value))


@pytest.fixture
async def store(database) -> SeededStore:
    """
    Toronto store: 13% tax, $2.50 convenience, $5 delivery, free delivery to
    Toronto on Mondays and Fridays. Products P1 ($12.99 x 10), P2 ($25.00 x 5),
    LAST ($10.00 x 1) and an inactive GONE. Promo codes SAVE10, FLAT50, CAPPED,
    EXPIRED and ONCE.
    """
    customer = User(id="user-1", full_name="Jane Doe", phone="+14165550100", role=UserRole.USER)
    await add_rows(
        customer,
        Address(id="pickup-location-default", user_id=None, street="1 Store St", city="Toronto"),
        Address(id="addr-1", user_id="user-1", street="10 King St W", city="Toronto"),
        Address(id="addr-ottawa", user_id="user-1", street="5 Bank St", city="Ottawa"),
        Product(id="P1", name="Organic Apples", price=Decimal("12.99"), stock=10),
        Product(id="P2", name="Olive Oil", price=Decimal("25.00"), stock=5),
        Product(id="LAST", name="Last Loaf", price=Decimal("10.00"), stock=1),
        Product(id="GONE", name="Discontinued Jam", price=Decimal("4.00"), stock=50, is_active=False),
        PromoCode(id="promo-save10", code="SAVE10", discount_type=DiscountType.PERCENTAGE, discount=Decimal("10")),
        PromoCode(id="promo-flat50", code="FLAT50", discount_type=DiscountType.VALUE, discount=Decimal("50")),
        PromoCode(
            id="promo-capped",
            code="CAPPED",
            discount_type=DiscountType.PERCENTAGE,
            discount=Decimal("10"),
            max_discount=Decimal("5"),
        ),
        PromoCode(
            id="promo-once",
            code="ONCE",
            discount_type=DiscountType.VALUE,
            discount=Decimal("3"),
            usage_limit=1,
        ),
        PromoCode(
            id="promo-min",
            code="BIGSPEND",
            discount_type=DiscountType.VALUE,
            discount=Decimal("5"),
            min_order_amount=Decimal("100"),
        ),
    )
    await set_config("taxPercent", {"percent": 13, "waive": False})
    await set_config("convenienceCharge", {"amount": "2.50", "waive": False})
    await set_config("deliveryCharge", {"amount": 5, "waive": False})
    await set_config("freeDelivery", {"Monday": ["Toronto"], "friday": ["toronto", "Mississauga"]})
    return SeededStore(customer_id="user-1", address_id="addr-1", pickup_id="pickup-location-default")
