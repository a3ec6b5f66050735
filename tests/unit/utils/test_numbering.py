"""Tests for document numbers and tracking codes."""

from datetime import datetime

from app.utils.numbering import (
    format_load_number,
    format_order_number,
    format_sequential,
    generate_tracking_code,
    load_number_prefix,
)


def test_load_number_is_prefixed_by_year_and_month():
    now = datetime(2024, 3, 9)

    assert load_number_prefix(now) == "LD202403"
    assert format_load_number(now, 7) == "LD2024030007"


def test_order_number_uses_date_and_suffix():
    assert format_order_number(datetime(2024, 11, 2), suffix="AB12") == "ORD-20241102-AB12"


def test_order_number_generates_random_suffix():
    number = format_order_number(datetime(2024, 11, 2))

    assert number.startswith("ORD-20241102-")
    assert len(number.rsplit("-", 1)[1]) == 4


def test_sequential_numbers_are_zero_padded():
    assert format_sequential("INV", 1) == "INV-000001"
    assert format_sequential("SET", 1234567) == "SET-1234567"


def test_tracking_codes_avoid_ambiguous_characters():
    for _ in range(50):
        code = generate_tracking_code()
        assert len(code) == 10
        assert not set(code) & set("01IO")
