"""Tests for the strict charge / free-delivery config parsers."""
from decimal import Decimal

import pytest

from services.config_service.service import ConfigService, parse_charge_config, parse_free_delivery_config
from services.order_service.exceptions import ConfigurationError, ErrorKind

from conftest import set_config


def _row(title, value):
    return {"title": title, "value": value}


def test_missing_entries_default_to_zero_not_waived():
    config = parse_charge_config([])

    assert config.tax_percent.percent == 0
    assert config.convenience_charge.amount == 0
    assert config.delivery_charge.amount == 0
    assert not config.tax_percent.waive


def test_numeric_strings_and_both_key_spellings_are_accepted():
    config = parse_charge_config(
        [
            _row("tax_percent", {"percent": "13", "waive": True}),
            _row("convenienceCharge", {"amount": "2.50"}),
            _row("delivery_charge", {"amount": 5}),
        ]
    )

    assert config.tax_percent.percent == Decimal("13")
    assert config.tax_percent.waive is True
    assert config.convenience_charge.amount == Decimal("2.50")
    assert config.delivery_charge.amount == Decimal("5")


def test_parsing_is_idempotent():
    rows = [_row("taxPercent", {"percent": 13}), _row("deliveryCharge", {"amount": "4.99", "waive": False})]
    assert parse_charge_config(rows) == parse_charge_config(rows)


@pytest.mark.parametrize(
    "value",
    [
        {"percent": "thirteen"},
        {"percent": -1},
        {"percent": 13, "wiave": True},
        "13",
    ],
)
def test_bad_tax_values_are_rejected(value):
    with pytest.raises(ConfigurationError) as exc_info:
        parse_charge_config([_row("taxPercent", value)])
    assert exc_info.value.kind == ErrorKind.INVALID_CONFIGURATION


def test_free_delivery_weekdays_are_canonicalised():
    schedule = parse_free_delivery_config(
        [_row("freeDelivery", {"monday": ["Toronto"], "MONDAY": ["Ottawa"], "Friday": []})]
    )
    assert schedule == {"Monday": frozenset({"Toronto", "Ottawa"}), "Friday": frozenset()}


def test_free_delivery_rejects_unknown_weekday_and_bad_shape():
    with pytest.raises(ConfigurationError):
        parse_free_delivery_config([_row("freeDelivery", {"Funday": ["Toronto"]})])
    with pytest.raises(ConfigurationError):
        parse_free_delivery_config([_row("freeDelivery", ["Toronto"])])


async def test_load_pricing_config_reads_active_rows(db):
    await set_config("taxPercent", {"percent": 5})

    pricing = await ConfigService.load_pricing_config(db)

    assert pricing.charges.tax_percent.percent == Decimal("5")
    assert pricing.free_delivery == {}
