from __future__ import annotations

from decimal import Decimal

import pytest
from customs_core.utils.money import format_amount, format_percent, parse_amount, percent_of, to_amount


def test_to_amount_rounds_half_up() -> None:
    assert to_amount("3.465") == Decimal("3.47")
    assert to_amount(2.675) == Decimal("2.68")
    assert to_amount(10) == Decimal("10.00")


def test_parse_amount_is_lenient() -> None:
    assert parse_amount("$1,250.50") == Decimal("1250.50")
    assert parse_amount(" 45 ") == Decimal("45.00")
    assert parse_amount("abc") is None
    assert parse_amount("") is None
    assert parse_amount(None) is None
    assert parse_amount(True) is None
    assert parse_amount("nan") is None
    assert parse_amount(float("inf")) is None


def test_out_of_range_amounts() -> None:
    assert parse_amount("1e30") is None
    assert parse_amount(10**20) is None
    assert parse_amount("999999999999999.99") == Decimal("999999999999999.99")
    with pytest.raises(ValueError):
        to_amount("1e30")


def test_percent_of_rounds_each_step() -> None:
    assert percent_of(Decimal("49.50"), 7) == Decimal("3.47")
    assert percent_of(Decimal("100.00"), Decimal("260")) == Decimal("260.00")


def test_formatting() -> None:
    assert format_amount(Decimal("50000")) == "50,000.00"
    assert format_percent(Decimal("7")) == "7%"
    assert format_percent(Decimal("260.00")) == "260%"
    assert format_percent(Decimal("10.5")) == "10.5%"
