"""Score how well an invoice fits a transaction.

Used to order invoice suggestions when a user binds a transaction. The score
is ``0.7 * amount_score + 0.3 * name_score`` in ``[0, 1]``:

- amount: 1 when the amounts differ by at most 1%, 0 at 50% or more, linear in
  between; 0 when either amount is missing or zero;
- name: fuzzy token overlap between the transaction description and the
  invoice name (or file name).
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable

from .currency import parse_float
from .models import IncomingInvoice, Transaction

AMOUNT_WEIGHT = 0.7
NAME_WEIGHT = 0.3
PERFECT_MATCH_THRESHOLD = 0.01
MAX_DEVIATION_PERCENT = 50.0

_TOKEN_SPLIT = re.compile(r"[\s\-_.,]+")


def parse_invoice_amount(value: str | None) -> float | None:
    """Numeric part of an extracted amount (``"123.45|EUR"``, ``"EUR|123.45"`` or ``"123.45"``)."""

    if not value:
        return None
    parts = value.split("|")
    if len(parts) == 2:
        first, second = parse_float(parts[0]), parse_float(parts[1])
        amount = first if not math.isnan(first) else second
    else:
        amount = parse_float(value)
    return None if math.isnan(amount) else amount


def fuzzy_match(a: str, b: str) -> float:
    if not a or not b:
        return 0.0
    s1, s2 = a.lower().strip(), b.lower().strip()
    if s1 == s2:
        return 1.0
    if s1 in s2 or s2 in s1:
        return 0.8

    tokens1 = [t for t in _TOKEN_SPLIT.split(s1) if len(t) > 2]
    tokens2 = [t for t in _TOKEN_SPLIT.split(s2) if len(t) > 2]
    if not tokens1 or not tokens2:
        return 0.0

    score = 0.0
    for t1 in tokens1:
        for t2 in tokens2:
            if t1 == t2:
                score += 1
            elif t1 in t2 or t2 in t1:
                score += 0.5
    return min(1.0, score / max(len(tokens1), len(tokens2)))


def _amount_score(tx_amount: float, invoice_amount: float) -> float:
    # Transactions carry expenses as negative numbers; compare magnitudes.
    a, b = abs(tx_amount), abs(invoice_amount)
    if a == 0 or b == 0:
        return 0.0
    percent_diff = abs(a - b) / max(a, b) * 100
    if percent_diff <= PERFECT_MATCH_THRESHOLD * 100:
        return 1.0
    if percent_diff >= MAX_DEVIATION_PERCENT:
        return 0.0
    return 1 - percent_diff / MAX_DEVIATION_PERCENT


def calculate_match_score(transaction: Transaction | None, invoice: IncomingInvoice) -> float:
    if transaction is None:
        return 0.0

    amount_score = 0.0
    tx_amount = parse_float(transaction.amount) if transaction.amount else math.nan
    inv_amount = parse_invoice_amount(invoice.analysis.amount.value)
    if not math.isnan(tx_amount) and inv_amount is not None:
        amount_score = _amount_score(tx_amount, inv_amount)

    name_score = fuzzy_match(transaction.description, invoice.name or invoice.file_name)
    return amount_score * AMOUNT_WEIGHT + name_score * NAME_WEIGHT


def rank_invoices(
    transaction: Transaction, invoices: Iterable[IncomingInvoice]
) -> list[tuple[IncomingInvoice, float]]:
    """Invoices with their scores, best first (stable for equal scores)."""

    scored = [(inv, calculate_match_score(transaction, inv)) for inv in invoices]
    scored.sort(key=lambda pair: pair[1], reverse=True)
    return scored


__all__ = ["calculate_match_score", "fuzzy_match", "parse_invoice_amount", "rank_invoices"]
