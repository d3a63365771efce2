"""Month lifecycle: uploads, deletions and the merged transaction view.

:class:`MonthService` owns every mutation of a month record other than the
binding operations (which live in :mod:`faktoora.bindings`). Uploads create
the month on first use; deletions never fail because of storage problems.

Binding policy on deletion
--------------------------
- ``delete_invoice`` / ``delete_all_invoices``: cascade-unbind the affected
  transactions (NOT_NEEDED markers survive).
- ``delete_statement``: bindings are kept; transaction ids are stable, so
  re-uploading the same export restores every decision.
- ``delete_all_statements``: clears all bindings of the month.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import PurePosixPath
from typing import Literal

from .bindings import BindingResolver, drop_bindings_to
from .documents import DocumentStore, safe_delete
from .errors import MonthNotFoundError, UploadValidationError
from .ingest.manual import parse_manual_transactions
from .ingest.revolut_csv import parse_transactions
from .logging_setup import get_logger
from .models import (
    IncomingInvoice,
    InvoiceAnalysis,
    MonthRecord,
    ResolvedTransaction,
    Statement,
    Transaction,
    UserSettings,
    is_valid_month_key,
)
from .refunds import find_refunded_payment_ids, parse_timestamp
from .store import RecordStore, upsert_collection_item

_logger = get_logger("faktoora.months")

MAX_INVOICE_FILE_SIZE_BYTES = 20 * 1024 * 1024
MAX_STATEMENT_FILE_SIZE_BYTES = 30 * 1024 * 1024
INVOICE_EXTENSIONS = frozenset({"pdf", "png", "jpg", "jpeg", "webp"})

MANUAL_SOURCE = "Manual"


def file_stem(file_name: str) -> str:
    """Return ``file_name`` without its last extension."""

    dot = file_name.rfind(".")
    return file_name if dot == -1 else file_name[:dot]


def file_extension(file_name: str) -> str:
    suffix = PurePosixPath(file_name).suffix
    return suffix[1:].lower() if suffix else ""


@dataclass(frozen=True, slots=True)
class InvoiceView:
    invoice: IncomingInvoice
    url: str | None


@dataclass(frozen=True, slots=True)
class StatementView:
    statement: Statement
    url: str | None


@dataclass(frozen=True, slots=True)
class MonthData:
    month_key: str
    invoices: list[InvoiceView] = field(default_factory=list)
    statements: list[StatementView] = field(default_factory=list)
    record: MonthRecord | None = None


class MonthService:
    """Uploads, deletions and read views for one user's months."""

    def __init__(
        self,
        record_store: RecordStore,
        documents: DocumentStore,
        user_id: str,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.record_store = record_store
        self.documents = documents
        self.user_id = user_id
        self._clock = clock

    # ---- validation ---------------------------------------------------------

    def _check_month_key(self, month_key: str) -> None:
        if not is_valid_month_key(month_key):
            raise UploadValidationError("monthKey must be YYYY-MM")

    def _blob_size(self, storage_id: str) -> int:
        blob = self.documents.get(storage_id)
        if blob is None:
            raise UploadValidationError("Uploaded file was not found in storage")
        return len(blob)

    def _validate_invoice(self, storage_id: str, file_name: str) -> None:
        if file_extension(file_name) not in INVOICE_EXTENSIONS:
            raise UploadValidationError("Unsupported invoice file type")
        if self._blob_size(storage_id) > MAX_INVOICE_FILE_SIZE_BYTES:
            raise UploadValidationError("Invoice file exceeds 20MB limit")

    def _validate_statement(self, storage_id: str, file_name: str, file_type: str) -> None:
        if file_type not in ("pdf", "csv"):
            raise UploadValidationError("fileType must be 'pdf' or 'csv'")
        if file_extension(file_name) != file_type:
            raise UploadValidationError(f"Statement file extension must be .{file_type}")
        if self._blob_size(storage_id) > MAX_STATEMENT_FILE_SIZE_BYTES:
            raise UploadValidationError("Statement file exceeds 30MB limit")

    # ---- uploads ------------------------------------------------------------

    def add_invoice(self, month_key: str, storage_id: str, file_name: str) -> IncomingInvoice:
        self._check_month_key(month_key)
        self._validate_invoice(storage_id, file_name)
        invoice = IncomingInvoice(
            storage_id=storage_id,
            file_name=file_name,
            name=file_stem(file_name),
            uploaded_at=self._clock(),
        )
        upsert_collection_item(
            self.record_store, self.user_id, month_key, "incoming_invoices", invoice
        )
        _logger.info("added invoice %s to %s", file_name, month_key)
        return invoice

    def add_statement(
        self,
        month_key: str,
        storage_id: str,
        file_name: str,
        file_type: Literal["pdf", "csv"],
        csv_content: str | None = None,
    ) -> Statement:
        self._check_month_key(month_key)
        self._validate_statement(storage_id, file_name, file_type)
        transactions = None
        if file_type == "csv" and csv_content:
            transactions = parse_transactions(csv_content)
        statement = Statement(
            storage_id=storage_id,
            file_name=file_name,
            file_type=file_type,
            uploaded_at=self._clock(),
            transactions=transactions,
        )
        upsert_collection_item(self.record_store, self.user_id, month_key, "statements", statement)
        _logger.info(
            "added %s statement %s to %s (%d transactions)",
            file_type,
            file_name,
            month_key,
            len(transactions or []),
        )
        return statement

    # ---- deletions ----------------------------------------------------------

    def delete_invoice(self, month_key: str, storage_id: str) -> None:
        def _apply(record: MonthRecord) -> MonthRecord:
            kept = [i for i in record.incoming_invoices if i.storage_id != storage_id]
            record = record.model_copy(update={"incoming_invoices": kept})
            return drop_bindings_to(record, [storage_id])

        if self.record_store.update(self.user_id, month_key, _apply) is not None:
            safe_delete(self.documents, storage_id)

    def delete_all_invoices(self, month_key: str) -> None:
        removed: list[str] = []

        def _apply(record: MonthRecord) -> MonthRecord:
            removed[:] = [i.storage_id for i in record.incoming_invoices]
            record = record.model_copy(update={"incoming_invoices": []})
            return drop_bindings_to(record, removed)

        if self.record_store.update(self.user_id, month_key, _apply) is not None:
            for storage_id in removed:
                safe_delete(self.documents, storage_id)

    def delete_statement(self, month_key: str, storage_id: str) -> None:
        def _apply(record: MonthRecord) -> MonthRecord:
            kept = [s for s in record.statements if s.storage_id != storage_id]
            return record.model_copy(update={"statements": kept})

        if self.record_store.update(self.user_id, month_key, _apply) is not None:
            safe_delete(self.documents, storage_id)

    def delete_all_statements(self, month_key: str) -> None:
        removed: list[str] = []

        def _apply(record: MonthRecord) -> MonthRecord:
            removed[:] = [s.storage_id for s in record.statements]
            return record.model_copy(update={"statements": [], "bindings": []})

        if self.record_store.update(self.user_id, month_key, _apply) is not None:
            for storage_id in removed:
                safe_delete(self.documents, storage_id)

    # ---- invoice edits ------------------------------------------------------

    def _update_invoice(
        self, month_key: str, storage_id: str, change: Callable[[IncomingInvoice], IncomingInvoice]
    ) -> MonthRecord | None:
        def _apply(record: MonthRecord) -> MonthRecord:
            invoices = [
                change(inv) if inv.storage_id == storage_id else inv
                for inv in record.incoming_invoices
            ]
            return record.model_copy(update={"incoming_invoices": invoices})

        return self.record_store.update(self.user_id, month_key, _apply)

    def rename_invoice(self, month_key: str, storage_id: str, name: str) -> None:
        result = self._update_invoice(
            month_key, storage_id, lambda inv: inv.model_copy(update={"name": name})
        )
        if result is None:
            raise MonthNotFoundError(self.user_id, month_key)

    def apply_analysis(self, month_key: str, storage_id: str, analysis: InvoiceAnalysis) -> None:
        """Store extraction results; a successfully extracted sender becomes the name.

        Results for months that no longer exist are dropped silently: the
        upload may have been deleted while extraction was running.
        """

        def _change(inv: IncomingInvoice) -> IncomingInvoice:
            update: dict[str, object] = {"analysis": analysis}
            if analysis.sender.value:
                update["name"] = analysis.sender.value
            return inv.model_copy(update=update)

        if self._update_invoice(month_key, storage_id, _change) is None:
            _logger.info("discarding analysis for %s: month %s is gone", storage_id, month_key)

    # ---- settings -----------------------------------------------------------

    def get_settings(self) -> UserSettings:
        return self.record_store.get_settings(self.user_id) or UserSettings(user_id=self.user_id)

    def update_settings(
        self, *, vat_id: str | None = None, manual_transactions: str | None = None
    ) -> UserSettings:
        """Change the given settings and keep the rest; an empty ``vat_id`` clears it."""

        now = self._clock()

        def _apply(settings: UserSettings) -> UserSettings:
            update: dict[str, object] = {"updated_at": now}
            if vat_id is not None:
                update["vat_id"] = vat_id.strip() or None
            if manual_transactions is not None:
                update["manual_transactions"] = manual_transactions
            return settings.model_copy(update=update)

        settings = self.record_store.update_settings(self.user_id, _apply)
        _logger.info("updated settings for user %s", self.user_id)
        return settings

    # ---- reads --------------------------------------------------------------


    def get_month_data(self, month_key: str) -> MonthData:
        """Return the month with download URLs; invoices newest first."""

        record = self.record_store.get(self.user_id, month_key)
        if record is None:
            return MonthData(month_key=month_key)
        invoices = sorted(record.incoming_invoices, key=lambda i: i.uploaded_at, reverse=True)
        return MonthData(
            month_key=month_key,
            invoices=[InvoiceView(i, self.documents.get_url(i.storage_id)) for i in invoices],
            statements=[
                StatementView(s, self.documents.get_url(s.storage_id)) for s in record.statements
            ],
            record=record,
        )

    def merged_transactions(self, month_key: str) -> list[ResolvedTransaction]:
        """Union of all CSV statement transactions with refund and binding state.

        Later statements overwrite earlier ones for the same transaction id.
        Statement transactions are ordered most recent first (undated last);
        the manual transactions from the user's settings follow in their entry
        order.
        """

        record = self.record_store.get(self.user_id, month_key)
        if record is None:
            return []

        by_id: dict[str, tuple[Transaction, str]] = {}
        for statement in record.statements:
            if statement.file_type != "csv" or not statement.transactions:
                continue
            for tx in statement.transactions:
                if tx.id:
                    by_id[tx.id] = (tx, statement.file_name)

        transactions = [tx for tx, _ in by_id.values()]
        refunded = find_refunded_payment_ids(transactions)

        def _sort_key(tx: Transaction) -> tuple[bool, float]:
            dt = parse_timestamp(tx.effective_date)
            return (dt is None, -(dt - datetime(1970, 1, 1)).total_seconds() if dt else 0.0)

        ordered = sorted(transactions, key=_sort_key)
        resolver = BindingResolver(record)
        settings = self.get_settings()
        resolved = [
            ResolvedTransaction(
                transaction=tx,
                binding=resolver.state(tx.id),
                is_refunded=tx.id in refunded,
                source_file=by_id[tx.id][1],
            )
            for tx in ordered
        ]
        resolved.extend(
            ResolvedTransaction(
                transaction=tx,
                binding=resolver.state(tx.id),
                source_file=MANUAL_SOURCE,
            )
            for tx in parse_manual_transactions(settings.manual_transactions)
        )
        return resolved


__all__ = [
    "INVOICE_EXTENSIONS",
    "MAX_INVOICE_FILE_SIZE_BYTES",
    "MAX_STATEMENT_FILE_SIZE_BYTES",
    "InvoiceView",
    "MonthData",
    "MonthService",
    "StatementView",
    "file_extension",
    "file_stem",
]
