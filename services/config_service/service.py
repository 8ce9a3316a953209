"""
Charge configuration resolver.

Raw ``config_entries`` rows carry loosely typed JSON (numbers as strings,
missing flags, admin typos). Each recognised key has its own strict model; a
value that does not fit raises ``ConfigurationError`` instead of leaking NaN
or a silent zero into pricing.
"""
from typing import Any, Dict, Iterable, List, Mapping, Optional

import structlog
from pydantic import TypeAdapter, ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from services.order_service.exceptions import ConfigurationError

from .models import ConfigEntry
from .repository import ConfigRepository
from .schemas import (
    WEEKDAYS,
    ChargeConfig,
    FlatChargeSetting,
    FreeDeliverySchedule,
    PricingConfig,
    TaxPercentSetting,
)

logger = structlog.get_logger(__name__)

# Admin UI writes camelCase titles, the seed scripts write snake_case.
TAX_PERCENT_KEYS = ("taxPercent", "tax_percent")
CONVENIENCE_CHARGE_KEYS = ("convenienceCharge", "convenience_charge")
DELIVERY_CHARGE_KEYS = ("deliveryCharge", "delivery_charge")
FREE_DELIVERY_KEYS = ("freeDelivery", "free_delivery")

_schedule_adapter = TypeAdapter(Dict[str, List[str]])
_WEEKDAY_LOOKUP = {day.lower(): day for day in WEEKDAYS}


def _field(row: Any, name: str):
    if isinstance(row, Mapping):
        return row.get(name)
    return getattr(row, name, None)


def _find_value(rows: Iterable[Any], keys) -> Optional[Any]:
    for key in keys:
        for row in rows:
            if _field(row, "title") == key:
                return _field(row, "value")
    return None


def _parse_setting(model, key: str, raw: Any):
    if raw is None:
        return model()
    if not isinstance(raw, Mapping):
        raise ConfigurationError(message=f"Config '{key}' must be an object, got {type(raw).__name__}")
    try:
        return model.model_validate(dict(raw))
    except PydanticValidationError as exc:
        logger.error("config_parse_failed", key=key, errors=exc.errors(include_url=False))
        raise ConfigurationError(message=f"Config '{key}' is invalid") from exc


def parse_charge_config(rows: Iterable[Any]) -> ChargeConfig:
    """Build the typed charge policy. Missing entries or fields default to 0 / not waived."""
    rows = list(rows)
    return ChargeConfig(
        tax_percent=_parse_setting(TaxPercentSetting, "taxPercent", _find_value(rows, TAX_PERCENT_KEYS)),
        convenience_charge=_parse_setting(
            FlatChargeSetting, "convenienceCharge", _find_value(rows, CONVENIENCE_CHARGE_KEYS)
        ),
        delivery_charge=_parse_setting(
            FlatChargeSetting, "deliveryCharge", _find_value(rows, DELIVERY_CHARGE_KEYS)
        ),
    )


def parse_free_delivery_config(rows: Iterable[Any]) -> FreeDeliverySchedule:
    """Weekday -> cities. Weekday names are case-insensitive and canonicalised."""
    raw = _find_value(list(rows), FREE_DELIVERY_KEYS)
    if raw is None:
        return {}
    try:
        parsed = _schedule_adapter.validate_python(raw)
    except PydanticValidationError as exc:
        logger.error("config_parse_failed", key="freeDelivery", errors=exc.errors(include_url=False))
        raise ConfigurationError(message="Config 'freeDelivery' is invalid") from exc

    schedule: FreeDeliverySchedule = {}
    for day, cities in parsed.items():
        weekday = _WEEKDAY_LOOKUP.get(day.strip().lower())
        if weekday is None:
            raise ConfigurationError(message=f"Config 'freeDelivery' has unknown weekday '{day}'")
        schedule[weekday] = schedule.get(weekday, frozenset()) | frozenset(cities)
    return schedule


class ConfigService:

    @staticmethod
    async def get_all_configs(db: AsyncSession) -> List[ConfigEntry]:
        return await ConfigRepository.get_active(db)

    @staticmethod
    async def load_pricing_config(db: AsyncSession) -> PricingConfig:
        rows = await ConfigService.get_all_configs(db)
        return PricingConfig(
            charges=parse_charge_config(rows),
            free_delivery=parse_free_delivery_config(rows),
        )
