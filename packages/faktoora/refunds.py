"""Refund matching for card transactions.

A ``CARD_REFUND`` is paired with the ``CARD_PAYMENT`` it reverses when both
share the absolute original amount (exact float equality on the parsed value),
the original currency and the merchant category code, and the payment happened
no later than the refund. When several payments qualify, the most recent one
before the refund wins. Refunds are processed oldest first and each payment can
be claimed by at most one refund per pass.

Everything here is a pure function of the input list; flags are recomputed on
every read and never stored.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime

from .currency import parse_float
from .models import FlaggedTransaction, RefundMatch, Transaction

PAYMENT_TYPE = "CARD_PAYMENT"
REFUND_TYPE = "CARD_REFUND"


def parse_timestamp(value: str) -> datetime | None:
    """Parse a statement timestamp; ``None`` when it is missing or malformed.

    Timezone-aware values are normalized to naive UTC so that they compare
    with naive ones.
    """

    s = value.strip()
    if not s:
        return None
    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(UTC).replace(tzinfo=None)
    return dt


def _effective_date(tx: Transaction) -> datetime | None:
    return parse_timestamp(tx.effective_date)


def _abs_amount(tx: Transaction) -> float:
    return abs(parse_float(tx.orig_amount))


def _match_pass(transactions: Sequence[Transaction]) -> list[RefundMatch]:
    refunds = [t for t in transactions if t.type == REFUND_TYPE]
    # Oldest refund first; undated refunds go last and never match anything.
    refunds.sort(key=lambda t: (_effective_date(t) is None, _effective_date(t) or datetime.min))

    payments = [t for t in transactions if t.type == PAYMENT_TYPE]
    claimed: set[int] = set()
    matches: list[RefundMatch] = []

    for refund in refunds:
        refund_date = _effective_date(refund)
        refund_amount = _abs_amount(refund)
        if refund_date is None or math.isnan(refund_amount):
            continue

        best: int | None = None
        best_date: datetime | None = None
        for pos, payment in enumerate(payments):
            if pos in claimed:
                continue
            if _abs_amount(payment) != refund_amount:
                continue
            if payment.orig_currency != refund.orig_currency or payment.mcc != refund.mcc:
                continue
            payment_date = _effective_date(payment)
            if payment_date is None or payment_date > refund_date:
                continue
            # Strictly later replaces; equal dates keep the first in input order.
            if best_date is None or payment_date > best_date:
                best, best_date = pos, payment_date

        if best is not None:
            claimed.add(best)
            matches.append(RefundMatch(expense=payments[best], refund=refund))

    return matches


def identify_refunds(transactions: Iterable[Transaction]) -> list[RefundMatch]:
    """Return payment/refund pairs in the order the refunds were processed."""

    return _match_pass(list(transactions))


def find_refunded_payment_ids(transactions: Iterable[Transaction]) -> set[str]:
    """Return the ids of ``CARD_PAYMENT`` transactions that were later refunded."""

    return {m.expense.id for m in _match_pass(list(transactions))}


def add_refund_status(transactions: Iterable[Transaction]) -> list[FlaggedTransaction]:
    """Attach the derived ``is_refunded`` flag to each transaction, keeping input order."""

    items = list(transactions)
    refunded = find_refunded_payment_ids(items)
    return [
        FlaggedTransaction(transaction=t, is_refunded=t.type == PAYMENT_TYPE and t.id in refunded)
        for t in items
    ]


__all__ = [
    "PAYMENT_TYPE",
    "REFUND_TYPE",
    "add_refund_status",
    "find_refunded_payment_ids",
    "identify_refunds",
    "parse_timestamp",
]
