"""Data models for ``faktoora``.

Persisted shapes (transactions, invoices, statements, bindings, month records)
are pydantic models so they round-trip through the JSON columns of the record
store unchanged. Read-side views that are recomputed on every request (refund
flags, binding state) are plain frozen dataclasses and are never persisted.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal, NamedTuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

MONTH_KEY_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")

NOT_NEEDED = "NOT_NEEDED"
"""Wire value used by clients to request the "invoice not needed" marker."""


def is_valid_month_key(value: object) -> bool:
    return isinstance(value, str) and MONTH_KEY_PATTERN.match(value) is not None


# ---------------------------------------------------------------------------
# Statement transactions
# ---------------------------------------------------------------------------


class Transaction(BaseModel):
    """A single bank transaction row from a statement export.

    Every field is a string and defaults to ``""`` so downstream string
    operations never need ``None`` checks. Amounts stay as written in the
    source file; parsing happens where a numeric value is needed.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = ""
    date_started: str = ""
    date_completed: str = ""
    type: str = ""
    state: str = ""
    description: str = ""
    reference: str = ""
    payer: str = ""
    card_number: str = ""
    card_label: str = ""
    card_state: str = ""
    orig_currency: str = ""
    orig_amount: str = ""
    payment_currency: str = ""
    amount: str = ""
    total_amount: str = ""
    exchange_rate: str = ""
    fee: str = ""
    fee_currency: str = ""
    balance: str = ""
    account: str = ""
    beneficiary_account_number: str = ""
    beneficiary_sort_code: str = ""
    beneficiary_iban: str = ""
    beneficiary_bic: str = ""
    mcc: str = ""
    related_transaction_id: str = ""
    spend_program: str = ""

    @property
    def effective_date(self) -> str:
        """Completion date, falling back to the start date."""

        return self.date_completed or self.date_started


@dataclass(frozen=True, slots=True)
class FlaggedTransaction:
    """A transaction with its derived refund flag (never persisted)."""

    transaction: Transaction
    is_refunded: bool


class RefundMatch(NamedTuple):
    """A payment/refund pairing represented by full records."""

    expense: Transaction
    """The original ``CARD_PAYMENT``."""

    refund: Transaction
    """The ``CARD_REFUND`` that was matched to it."""


# ---------------------------------------------------------------------------
# Invoices and statements
# ---------------------------------------------------------------------------


class AnalysisResult(BaseModel):
    """Outcome of extracting one field from an invoice document."""

    model_config = ConfigDict(extra="forbid")

    value: str | None = None
    error: str | None = None
    last_updated: float | None = None


class InvoiceAnalysis(BaseModel):
    model_config = ConfigDict(extra="forbid")

    date: AnalysisResult = Field(default_factory=AnalysisResult)
    sender: AnalysisResult = Field(default_factory=AnalysisResult)
    parsed_text: AnalysisResult = Field(default_factory=AnalysisResult)
    amount: AnalysisResult = Field(default_factory=AnalysisResult)
    analysis_big_error: str | None = None


class IncomingInvoice(BaseModel):
    model_config = ConfigDict(extra="forbid")

    storage_id: str
    file_name: str
    name: str
    uploaded_at: float
    analysis: InvoiceAnalysis = Field(default_factory=InvoiceAnalysis)


class Statement(BaseModel):
    model_config = ConfigDict(extra="forbid")

    storage_id: str
    file_name: str
    file_type: Literal["pdf", "csv"]
    uploaded_at: float
    transactions: list[Transaction] | None = None


# ---------------------------------------------------------------------------
# Bindings
# ---------------------------------------------------------------------------


class Binding(BaseModel):
    """Persisted user decision for one transaction within a month.

    ``kind="invoice"`` carries ``invoice_storage_id``; ``kind="not_needed"``
    marks the transaction as not requiring an invoice. Absence of a binding
    means the transaction is unbound.
    """

    model_config = ConfigDict(extra="forbid")

    transaction_id: str
    kind: Literal["invoice", "not_needed"]
    invoice_storage_id: str | None = None
    bound_at: float

    @field_validator("invoice_storage_id")
    @classmethod
    def _strip_ref(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v or None


@dataclass(frozen=True, slots=True)
class Unbound:
    pass


@dataclass(frozen=True, slots=True)
class BoundTo:
    invoice_storage_id: str


@dataclass(frozen=True, slots=True)
class NotNeeded:
    pass


type BindingState = Unbound | BoundTo | NotNeeded


def binding_state(binding: Binding | None) -> BindingState:
    """Translate a persisted binding (or its absence) into the read-side variant."""

    if binding is None:
        return Unbound()
    if binding.kind == "not_needed":
        return NotNeeded()
    if binding.invoice_storage_id:
        return BoundTo(binding.invoice_storage_id)
    return Unbound()


@dataclass(frozen=True, slots=True)
class ResolvedTransaction:
    """A transaction joined with its binding state for display."""

    transaction: Transaction
    binding: BindingState
    is_refunded: bool = False
    source_file: str = ""


# ---------------------------------------------------------------------------
# Month record
# ---------------------------------------------------------------------------


class MonthRecord(BaseModel):
    """All invoices, statements and bindings for one user and calendar month."""

    model_config = ConfigDict(extra="forbid")

    user_id: str
    month_key: str
    incoming_invoices: list[IncomingInvoice] = Field(default_factory=list)
    statements: list[Statement] = Field(default_factory=list)
    bindings: list[Binding] = Field(default_factory=list)

    @field_validator("month_key")
    @classmethod
    def _month_key_format(cls, v: str) -> str:
        if not is_valid_month_key(v):
            raise ValueError("month_key must be YYYY-MM")
        return v

    def invoice_ids(self) -> set[str]:
        return {inv.storage_id for inv in self.incoming_invoices}

    def bindings_by_transaction(self) -> dict[str, Binding]:
        return {b.transaction_id: b for b in self.bindings}


# ---------------------------------------------------------------------------
# User settings
# ---------------------------------------------------------------------------


class UserSettings(BaseModel):
    """Per-user settings: the VAT id and the free-text manual transaction list.

    Manual transactions are kept as the raw text the user typed; they are
    parsed on every read so that edits never need a migration.
    """

    model_config = ConfigDict(extra="forbid")

    user_id: str
    vat_id: str | None = None
    manual_transactions: str = ""
    updated_at: float = 0.0


__all__ = [
    "MONTH_KEY_PATTERN",
    "NOT_NEEDED",
    "AnalysisResult",
    "Binding",
    "BindingState",
    "BoundTo",
    "FlaggedTransaction",
    "IncomingInvoice",
    "InvoiceAnalysis",
    "MonthRecord",
    "NotNeeded",
    "RefundMatch",
    "ResolvedTransaction",
    "Statement",
    "Transaction",
    "Unbound",
    "UserSettings",
    "binding_state",
    "is_valid_month_key",
]
