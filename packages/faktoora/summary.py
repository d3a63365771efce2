"""Month summary totals in multiple display currencies.

Expenses, income and invoice totals are accumulated in EUR without rounding
and converted to each display currency independently; rounding happens only in
:func:`faktoora.currency.format_amount`.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass

from .currency import (
    DISPLAY_CURRENCIES,
    from_base,
    parse_amount_currency_pair,
    parse_float,
    to_base,
)
from .models import IncomingInvoice, Transaction

EXPENSE_TYPES: frozenset[str] = frozenset({"CARD_PAYMENT", "MANUAL"})
INCOME_TYPES: frozenset[str] = frozenset({"TRANSFER", "TOPUP"})


@dataclass(frozen=True, slots=True)
class SummaryColumn:
    label: str
    eur_amount: float
    count: int

    def in_currency(self, currency: str) -> float:
        return from_base(self.eur_amount, currency)


@dataclass(frozen=True, slots=True)
class MonthSummary:
    columns: tuple[SummaryColumn, ...]

    def columns_in(self, currency: str) -> list[tuple[str, float]]:
        return [(c.label, c.in_currency(currency)) for c in self.columns]

    def rows(
        self, currencies: Iterable[str] = DISPLAY_CURRENCIES
    ) -> list[tuple[str, list[tuple[str, float]]]]:
        return [(cur, self.columns_in(cur)) for cur in currencies]


def summarize_month(
    transactions: Iterable[Transaction], invoices: Iterable[IncomingInvoice]
) -> MonthSummary | None:
    """Aggregate expenses, income and invoice amounts; ``None`` when nothing counts.

    - Expenses: ``CARD_PAYMENT``/``MANUAL`` rows with a negative amount,
      reported as a positive magnitude.
    - Income: ``TRANSFER``/``TOPUP`` rows with a positive amount.
    - Invoices: the extracted ``amount`` value in ``"<amount>|<currency>"`` form.

    Rows with an unparseable amount or no payment currency are skipped.
    """

    expense_eur = income_eur = invoice_eur = 0.0
    expense_count = income_count = invoice_count = 0

    for t in transactions:
        amount = parse_float(t.amount)
        if math.isnan(amount) or not t.payment_currency:
            continue
        if t.type in EXPENSE_TYPES and amount < 0:
            expense_eur += to_base(amount, t.payment_currency)
            expense_count += 1
        if t.type in INCOME_TYPES and amount > 0:
            income_eur += to_base(amount, t.payment_currency)
            income_count += 1

    for inv in invoices:
        parsed = parse_amount_currency_pair(inv.analysis.amount.value)
        if parsed is not None:
            invoice_eur += to_base(parsed.amount, parsed.currency)
            invoice_count += 1

    columns: list[SummaryColumn] = []
    if expense_count:
        columns.append(SummaryColumn("Expenses", abs(expense_eur), expense_count))
    if income_count:
        columns.append(SummaryColumn("Income", income_eur, income_count))
    if invoice_count:
        columns.append(SummaryColumn("Invoices", invoice_eur, invoice_count))
    if not columns:
        return None
    return MonthSummary(tuple(columns))


__all__ = ["EXPENSE_TYPES", "INCOME_TYPES", "MonthSummary", "SummaryColumn", "summarize_month"]
