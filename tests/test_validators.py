"""Tests for CSV row validation in :mod:`etl.validators`."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from core.errors import ClientInputError
from etl.validators import parse_create_date, parse_price, parse_price_id, parse_price_row

DATE_FORMAT = "%Y-%m-%d"


@pytest.mark.parametrize(
    "value, expected",
    [("1", 1), ("42", 42), ("+7", 7), ("-3", -3), ("9223372036854775807", 2 ** 63 - 1)],
)
def test_parse_price_id_accepts_integers(value: str, expected: int) -> None:
    assert parse_price_id(value) == expected


@pytest.mark.parametrize("value", ["", "abc", "1.5", " 1", "1_000", "0x10", "9223372036854775808"])
def test_parse_price_id_rejects_malformed_values(value: str) -> None:
    with pytest.raises(ClientInputError, match="Invalid ID value"):
        parse_price_id(value)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("9.99", Decimal("9.99")),
        ("0", Decimal("0")),
        (".5", Decimal("0.5")),
        ("1e2", Decimal("100")),
        ("9.990", Decimal("9.99")),
        ("9999999999.99", Decimal("9999999999.99")),
    ],
)
def test_parse_price_accepts_decimals(value: str, expected: Decimal) -> None:
    assert parse_price(value) == expected


@pytest.mark.parametrize("value", ["abc", "", "NaN", "inf", "1,5", "1_0", "-1.00"])
def test_parse_price_rejects_malformed_or_negative_values(value: str) -> None:
    with pytest.raises(ClientInputError, match="Invalid price value"):
        parse_price(value)


def test_parse_create_date_uses_calendar_format() -> None:
    assert parse_create_date("2024-01-15", DATE_FORMAT) == date(2024, 1, 15)


@pytest.mark.parametrize("value", ["15.01.2024", "2024-02-30", "2024-01-15T00:00:00Z", ""])
def test_parse_create_date_rejects_other_formats(value: str) -> None:
    with pytest.raises(ClientInputError, match="Invalid date format"):
        parse_create_date(value, DATE_FORMAT)


def test_parse_price_row_builds_insert_mapping() -> None:
    row = parse_price_row(["1", "Widget", "Tools", "9.99", "2024-01-15"], DATE_FORMAT)

    assert row == {
        "id": 1,
        "name": "Widget",
        "category": "Tools",
        "price": Decimal("9.99"),
        "create_date": date(2024, 1, 15),
    }


@pytest.mark.parametrize(
    "row",
    [
        ["1", "Widget", "Tools", "9.99"],
        ["1", "Widget", "Tools", "9.99", "2024-01-15", "extra"],
    ],
)
def test_parse_price_row_requires_five_fields(row: list) -> None:
    with pytest.raises(ClientInputError, match="expected 5 fields"):
        parse_price_row(row, DATE_FORMAT)


@pytest.mark.parametrize("value", ["9.999", "0.004", "1e-3"])
def test_parse_price_rejects_sub_cent_precision(value: str) -> None:
    with pytest.raises(ClientInputError, match="more than two decimal places"):
        parse_price(value)


@pytest.mark.parametrize("value", ["10000000000", "1e10", "12345678901.5"])
def test_parse_price_rejects_amounts_too_large_to_store(value: str) -> None:
    with pytest.raises(ClientInputError, match="out of range"):
        parse_price(value)


@pytest.mark.parametrize(
    "row, column",
    [
        (["1", "Wid\x00get", "Tools", "9.99", "2024-01-15"], "name"),
        (["1", "Widget", "\x00", "9.99", "2024-01-15"], "category"),
    ],
)
def test_parse_price_row_rejects_nul_characters(row: list, column: str) -> None:
    with pytest.raises(ClientInputError, match=f"Invalid {column} value"):
        parse_price_row(row, DATE_FORMAT)
