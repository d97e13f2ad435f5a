"""
Tests for value coercion helpers used by the order mapper.
"""

from decimal import Decimal

import pytest

from common.validators import (
    dig,
    first_present,
    is_absent,
    parse_amount,
    parse_positive_int,
    to_number,
)


# ---------------------------------------------------------------------------
# first_present / is_absent
# ---------------------------------------------------------------------------

def test_first_present_keeps_precedence():
    assert first_present(None, "b", "c") == "b"
    assert first_present("a", "b") == "a"


def test_first_present_treats_zero_as_present():
    assert first_present(0, "5") == 0
    assert first_present("0.00", "5") == "0.00"
    assert first_present(False, True) is False


def test_first_present_skips_blank_strings():
    assert first_present("", "   ", "x") == "x"


def test_first_present_default():
    assert first_present(None, "") is None
    assert first_present(None, default=7) == 7
    assert first_present(default="EUR") == "EUR"


@pytest.mark.parametrize("value, expected", [
    (None, True), ("", True), ("  ", True),
    (0, False), ("0", False), ([], False), ({}, False),
])
def test_is_absent(value, expected):
    assert is_absent(value) is expected


# ---------------------------------------------------------------------------
# dig
# ---------------------------------------------------------------------------

def test_dig_nested_dicts():
    order = {"total_shipping_price_set": {"shop_money": {"amount": "5.00"}}}
    assert dig(order, "total_shipping_price_set", "shop_money", "amount") == "5.00"


def test_dig_list_index():
    assert dig({"shipping_lines": [{"price": "3"}]}, "shipping_lines", 0, "price") == "3"


@pytest.mark.parametrize("obj", [
    None,
    {},
    {"shipping_lines": []},
    {"shipping_lines": None},
    {"shipping_lines": "oops"},
    {"shipping_lines": [None]},
])
def test_dig_missing_path_returns_default(obj):
    assert dig(obj, "shipping_lines", 0, "price") is None
    assert dig(obj, "shipping_lines", 0, "price", default="x") == "x"


# ---------------------------------------------------------------------------
# parse_amount
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("value, expected", [
    ("59.99", Decimal("59.99")),
    (" 10 ", Decimal("10")),
    (12, Decimal("12")),
    (0.1, Decimal("0.1")),
    (Decimal("3.50"), Decimal("3.50")),
    ("-2.5", Decimal("-2.5")),
])
def test_parse_amount_valid(value, expected):
    assert parse_amount(value) == expected


@pytest.mark.parametrize("value", [None, "", "abc", "NaN", "Infinity", float("nan"), True, [], {}])
def test_parse_amount_invalid_is_zero(value):
    assert parse_amount(value) == Decimal("0")


# ---------------------------------------------------------------------------
# parse_positive_int
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("value, expected", [
    (3, 3), ("4", 4), (2.0, 2), ("5.0", 5),
    (0, 1), (-2, 1), (None, 1), ("", 1), ("x", 1), (1.5, 1), (True, 1),
])
def test_parse_positive_int(value, expected):
    assert parse_positive_int(value, default=1) == expected


# ---------------------------------------------------------------------------
# Magnitude bounds
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("value", ["1e9999999", "-1e9999999", "1e-9999999", "1E16", "1e-16"])
def test_parse_amount_out_of_range_is_zero(value):
    assert parse_amount(value) == Decimal("0")


def test_parse_amount_zero_with_extreme_exponent_is_plain_zero():
    amount = parse_amount("0E-9999999")
    assert amount == Decimal("0")
    assert amount.as_tuple().exponent == 0


def test_parse_amount_range_edges_are_kept():
    assert parse_amount("999999999999999.99") == Decimal("999999999999999.99")
    assert parse_amount("0.000000000000001") == Decimal("0.000000000000001")


def test_parse_amount_out_of_range_logs_at_debug(caplog):
    with caplog.at_level("DEBUG", logger="common.validators"):
        parse_amount("1e9999999")
    assert "out of range" in caplog.text


@pytest.mark.parametrize("amount", [Decimal("1e400"), Decimal("-1e400"), Decimal("Infinity"), Decimal("NaN")])
def test_to_number_out_of_range_is_zero(amount):
    assert to_number(amount) == 0.0


def test_to_number_plain_amount():
    assert to_number(Decimal("24.99")) == 24.99


@pytest.mark.parametrize("value, expected", [
    ("1e100000000", 1),
    ("1e10", 1),
    (10**12, 1),
    ("1000000000", 1000000000),
    ("9999999999", 9999999999),
])
def test_parse_positive_int_bounds(value, expected):
    assert parse_positive_int(value, default=1) == expected
