"""Classify which transactions need a supporting invoice.

The predicate is evaluated per transaction with no cross-row state. Each
policy option is an independent exclusion, so the order in which they are
checked does not change the result.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Literal

from .currency import parse_float
from .models import Transaction

DEFAULT_ALLOWED_TYPES: frozenset[str] = frozenset({"CARD_PAYMENT", "MANUAL"})
EXCHANGE_TYPE = "EXCHANGE"
REVOLUT_BUSINESS_FEE = "revolut business fee"


@dataclass(frozen=True, slots=True)
class FilterPolicy:
    """Options controlling :func:`needs_invoice`.

    Attributes
    ----------
    allowed_transaction_types:
        Only these types are eligible at all.
    hide_positive_amounts:
        Exclude rows whose ``amount`` parses to a positive number (credits and
        refunds carry no invoice). Unparseable amounts are not positive.
    hide_exchange_rows:
        Exclude currency exchanges, recognised according to ``exchange_rule``.
    exchange_rule:
        ``"type"`` matches rows of type ``EXCHANGE``; ``"rate"`` matches any
        row with a non-empty ``exchange_rate``.
    hide_revolut_business_fee:
        Exclude rows whose description contains "Revolut Business Fee"
        (case-insensitive).
    """

    allowed_transaction_types: frozenset[str] = field(default=DEFAULT_ALLOWED_TYPES)
    hide_positive_amounts: bool = True
    hide_exchange_rows: bool = True
    exchange_rule: Literal["type", "rate"] = "type"
    hide_revolut_business_fee: bool = True


DEFAULT_POLICY = FilterPolicy()


def _is_exchange(tx: Transaction, rule: str) -> bool:
    if rule == "rate":
        return tx.exchange_rate.strip() != ""
    return tx.type == EXCHANGE_TYPE


def needs_invoice(transaction: Transaction, policy: FilterPolicy = DEFAULT_POLICY) -> bool:
    if transaction.type not in policy.allowed_transaction_types:
        return False

    if policy.hide_positive_amounts and transaction.amount:
        amount = parse_float(transaction.amount)
        if not math.isnan(amount) and amount > 0:
            return False

    if policy.hide_exchange_rows and _is_exchange(transaction, policy.exchange_rule):
        return False

    if (
        policy.hide_revolut_business_fee
        and REVOLUT_BUSINESS_FEE in transaction.description.lower()
    ):
        return False

    return True


def filter_needing_invoice(
    transactions: Iterable[Transaction], policy: FilterPolicy = DEFAULT_POLICY
) -> list[Transaction]:
    """Keep only the transactions that need an invoice, preserving order."""

    return [t for t in transactions if needs_invoice(t, policy)]


__all__ = [
    "DEFAULT_ALLOWED_TYPES",
    "DEFAULT_POLICY",
    "FilterPolicy",
    "filter_needing_invoice",
    "needs_invoice",
]
