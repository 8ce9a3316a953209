from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, FrozenSet, List

from pydantic import BaseModel, Field

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

# weekday name -> cities serviced that day
FreeDeliverySchedule = Dict[str, FrozenSet[str]]


class TaxPercentSetting(BaseModel):
    percent: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    waive: bool = False

    class Config:
        extra = "forbid"
        frozen = True


class FlatChargeSetting(BaseModel):
    amount: Decimal = Field(default=Decimal("0"), ge=0)
    waive: bool = False

    class Config:
        extra = "forbid"
        frozen = True


class ChargeConfig(BaseModel):
    tax_percent: TaxPercentSetting = TaxPercentSetting()
    convenience_charge: FlatChargeSetting = FlatChargeSetting()
    delivery_charge: FlatChargeSetting = FlatChargeSetting()

    class Config:
        frozen = True


@dataclass(frozen=True, slots=True)
class PricingConfig:
    """Per-request snapshot threaded into every pricing call."""

    charges: ChargeConfig
    free_delivery: FreeDeliverySchedule


class ConfigResponse(BaseModel):
    charges: ChargeConfig
    free_delivery: Dict[str, List[str]]


class DeliveryDatesResponse(BaseModel):
    city: str
    dates: List[date]
