"""
Money helpers.

Amounts are integer minor units ("cents") everywhere in the ledger.  These
helpers only translate at the edges (CLI input, CSV files, display).
"""

import re

from wallet_ledger.exceptions import MoneyFormatError

_MONEY_RE = re.compile(r"^(-)?(\d*)(?:\.(\d*))?$")


def parse_cents(value: str) -> int:
    """
    Parse a decimal string into cents.

    "50" -> 5000, "12.5" -> 1250, ".50" -> 50, "-50.00" -> -5000.
    Digits beyond the second decimal place are truncated ("100.999" -> 10099).

    Raises:
        MoneyFormatError: If the string is not a plain decimal number.
    """
    text = value.strip()
    match = _MONEY_RE.match(text)
    if match is None:
        raise MoneyFormatError(value)
    sign, units, decimals = match.groups()
    if not units and not decimals:
        raise MoneyFormatError(value)

    cents = int(units or "0") * 100 + int((decimals or "")[:2].ljust(2, "0"))
    return -cents if sign else cents


def format_cents(cents: int) -> str:
    """Format cents for display: 5000 -> "50.00", -1 -> "-0.01"."""
    sign = "-" if cents < 0 else ""
    units, remainder = divmod(abs(cents), 100)
    return f"{sign}{units}.{remainder:02d}"
