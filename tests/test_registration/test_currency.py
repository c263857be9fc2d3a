"""Tests for money helpers in django_eventpass.registration.currency."""

from decimal import Decimal

import pytest

from django_eventpass.registration.currency import (
    from_minor_units,
    obfuscate_key,
    parse_amount,
    to_minor_units,
)


@pytest.mark.unit
class TestToMinorUnits:
    @pytest.mark.parametrize(
        ("amount", "expected"),
        [
            (Decimal("500.00"), 50000),
            (Decimal("499.995"), 50000),
            (Decimal("499.994"), 49999),
            (Decimal("0.005"), 1),
            (Decimal("0.01"), 1),
            (Decimal("1"), 100),
            (Decimal("1234.5"), 123450),
        ],
    )
    def test_rounds_half_up(self, amount, expected):
        assert to_minor_units(amount) == expected

    def test_returns_int(self):
        assert isinstance(to_minor_units(Decimal("10.00")), int)

    def test_rejects_amount_beyond_decimal_precision(self):
        with pytest.raises(ValueError, match="too large"):
            to_minor_units(Decimal("1E+30"))


@pytest.mark.unit
class TestFromMinorUnits:
    def test_converts_paise_to_rupees(self):
        assert from_minor_units(50000) == Decimal("500.00")

    def test_keeps_two_places(self):
        assert str(from_minor_units(1)) == "0.01"


@pytest.mark.unit
class TestParseAmount:
    def test_float_keeps_its_decimal_representation(self):
        assert parse_amount(499.995) == Decimal("499.995")

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (Decimal("12.50"), Decimal("12.50")),
            (500, Decimal("500")),
            ("75.25", Decimal("75.25")),
            (" 10 ", Decimal("10")),
        ],
    )
    def test_accepts_numeric_values(self, value, expected):
        assert parse_amount(value) == expected

    @pytest.mark.parametrize("value", ["abc", "", True, None, [1], "NaN", "Infinity"])
    def test_rejects_non_numbers(self, value):
        with pytest.raises(ValueError, match="Amount must be"):
            parse_amount(value)


@pytest.mark.unit
class TestObfuscateKey:
    def test_shows_last_four_characters(self):
        assert obfuscate_key("rzp_test_abcd1234") == "****1234"

    def test_masks_short_keys_entirely(self):
        assert obfuscate_key("abc") == "****"
