"""Tests for cents parsing and formatting."""

import pytest

from wallet_ledger.domain.money import format_cents, parse_cents
from wallet_ledger.exceptions import MoneyFormatError


class TestParseCents:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("50", 5000),
            ("12.5", 1250),
            ("12.50", 1250),
            (".50", 50),
            ("0.01", 1),
            ("-50.00", -5000),
            ("100.999", 10099),
            ("  7.25 ", 725),
        ],
    )
    def test_valid_amounts(self, text, expected):
        assert parse_cents(text) == expected

    @pytest.mark.parametrize("text", ["", "abc", "1,000", "1.2.3", "-", ".", "$5"])
    def test_malformed_amounts_rejected(self, text):
        with pytest.raises(MoneyFormatError) as exc_info:
            parse_cents(text)
        assert exc_info.value.code == "MONEY_FORMAT"


class TestFormatCents:
    @pytest.mark.parametrize(
        "cents, expected",
        [(5000, "50.00"), (1, "0.01"), (0, "0.00"), (-1, "-0.01"), (123456, "1234.56")],
    )
    def test_format(self, cents, expected):
        assert format_cents(cents) == expected
