"""Tests for money helpers."""
from decimal import Decimal

from backend.utils.money import from_cents, percent_of_cents, quantize, split_cents, to_cents


def test_quantize_rounds_half_up():
    assert quantize("1.005") == Decimal("1.01")
    assert quantize(2) == Decimal("2.00")


def test_cents_conversion():
    assert to_cents(Decimal("12.34")) == 1234
    assert from_cents(1234) == Decimal("12.34")
    assert from_cents(0) == Decimal("0.00")


def test_percent_of_cents():
    assert percent_of_cents(10000, 10) == 1000
    assert percent_of_cents(15, 10) == 2  # 1.5 rounds up
    assert percent_of_cents(14, 10) == 1


def test_split_cents_hands_leftovers_to_first_entries():
    assert split_cents(1000, [1, 1, 1]) == [334, 333, 333]
    assert split_cents(9, [1, 1]) == [5, 4]
    assert sum(split_cents(20998, [45, 25, 15, 15])) == 20998


def test_split_cents_skips_zero_weights():
    assert split_cents(5, [0, 1, 1]) == [0, 3, 2]
    assert split_cents(0, [1, 2]) == [0, 0]
    assert split_cents(100, [0, 0]) == [0, 0]
