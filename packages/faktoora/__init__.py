"""Reconcile business bank statement transactions with incoming invoices."""

from .errors import (
    ApiKeyNotFoundError,
    ConfigurationError,
    FaktooraError,
    MonthNotFoundError,
    UnknownInvoiceError,
    UploadValidationError,
)
from .invoice_filter import DEFAULT_POLICY, FilterPolicy, filter_needing_invoice, needs_invoice
from .ingest import parse_manual_transactions, parse_transactions
from .models import (
    Binding,
    BoundTo,
    IncomingInvoice,
    MonthRecord,
    NotNeeded,
    Statement,
    Transaction,
    Unbound,
    UserSettings,
)
from .refunds import add_refund_status, find_refunded_payment_ids, identify_refunds

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_POLICY",
    "ApiKeyNotFoundError",
    "Binding",
    "BoundTo",
    "ConfigurationError",
    "FaktooraError",
    "FilterPolicy",
    "IncomingInvoice",
    "MonthNotFoundError",
    "MonthRecord",
    "NotNeeded",
    "Statement",
    "Transaction",
    "Unbound",
    "UnknownInvoiceError",
    "UploadValidationError",
    "UserSettings",
    "add_refund_status",
    "filter_needing_invoice",
    "find_refunded_payment_ids",
    "identify_refunds",
    "needs_invoice",
    "parse_manual_transactions",
    "parse_transactions",
]
