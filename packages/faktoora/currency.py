"""Currency conversion helpers with EUR as the base unit.

Rates are static (units of the currency per 1 EUR). Unknown currencies pass
through unchanged instead of raising. Callers accumulate in EUR and round only
when formatting for display.
"""

from __future__ import annotations

import math
import re
from typing import NamedTuple

BASE_CURRENCY = "EUR"

# How many units of X you get for 1 EUR.
EUR_RATES: dict[str, float] = {
    "EUR": 1.0,
    "USD": 1.18,
    "BGN": 1.9558,
}

DISPLAY_CURRENCIES: tuple[str, ...] = ("EUR", "USD", "BGN")

_LEADING_NUMBER = re.compile(r"^\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


class AmountCurrency(NamedTuple):
    amount: float
    currency: str


def parse_float(value: object) -> float:
    """Parse the leading decimal number of ``value``; ``nan`` when there is none.

    Mirrors how amounts are read from statement exports: trailing text after
    the number is ignored (``"12.50 EUR"`` is ``12.5``) and anything without a
    leading number is not-a-number rather than an error.
    """

    if isinstance(value, bool):
        return math.nan
    if isinstance(value, int | float):
        return float(value)
    if not isinstance(value, str):
        return math.nan
    m = _LEADING_NUMBER.match(value)
    if m is None:
        return math.nan
    return float(m.group(0))


def to_base(amount: float, currency: str) -> float:
    """Convert ``amount`` in ``currency`` to EUR."""

    rate = EUR_RATES.get(currency)
    if rate is None:
        return amount
    return amount / rate


def from_base(amount_in_base: float, currency: str) -> float:
    """Convert a EUR amount to ``currency``."""

    rate = EUR_RATES.get(currency)
    if rate is None:
        return amount_in_base
    return amount_in_base * rate


def convert(amount: float, from_currency: str, to_currency: str) -> float:
    if from_currency == to_currency:
        return amount
    return from_base(to_base(amount, from_currency), to_currency)


def format_amount(amount: float, currency: str = BASE_CURRENCY) -> str:
    return f"{currency} {amount:.2f}"


def parse_amount_currency_pair(value: str | None) -> AmountCurrency | None:
    """Parse ``"50.80|BGN"`` into ``AmountCurrency(50.8, "BGN")``.

    Exactly two pipe-separated parts are required, the first numeric and the
    second non-empty. Any other shape yields ``None``.
    """

    if not value:
        return None
    parts = value.split("|")
    if len(parts) != 2:
        return None
    amount = parse_float(parts[0])
    currency = parts[1].strip()
    if math.isnan(amount) or not currency:
        return None
    return AmountCurrency(amount, currency)


__all__ = [
    "BASE_CURRENCY",
    "DISPLAY_CURRENCIES",
    "EUR_RATES",
    "AmountCurrency",
    "convert",
    "format_amount",
    "from_base",
    "parse_amount_currency_pair",
    "parse_float",
    "to_base",
]
