"""Transaction–invoice binding store.

A binding records, per month and per transaction id, either the invoice that
substantiates the transaction or the decision that no invoice is needed. The
absence of a binding means "unbound". Bindings are owned by the month record
and keyed by transaction id; a later write replaces an earlier one.

Deleted invoices
----------------
Deleting an invoice cascades: every binding that references it is removed in
the same mutation (see :func:`drop_bindings_to`). As a second line, the read
path degrades any reference that no longer resolves to an invoice of the month
to :class:`~faktoora.models.Unbound`, so a stale record can never display a
link to a missing document.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable

from .errors import MonthNotFoundError, UnknownInvoiceError
from .logging_setup import get_logger
from .models import (
    Binding,
    BindingState,
    BoundTo,
    MonthRecord,
    ResolvedTransaction,
    Transaction,
    Unbound,
    binding_state,
)
from .refunds import find_refunded_payment_ids
from .store import RecordStore

_logger = get_logger("faktoora.bindings")


def _replace_binding(record: MonthRecord, transaction_id: str, new: Binding | None) -> MonthRecord:
    kept = [b for b in record.bindings if b.transaction_id != transaction_id]
    if new is not None:
        kept.append(new)
    return record.model_copy(update={"bindings": kept})


def drop_bindings_to(record: MonthRecord, storage_ids: Iterable[str]) -> MonthRecord:
    """Remove bindings that reference any of ``storage_ids``; keep NOT_NEEDED markers."""

    gone = set(storage_ids)
    kept = [
        b for b in record.bindings if not (b.kind == "invoice" and b.invoice_storage_id in gone)
    ]
    dropped = len(record.bindings) - len(kept)
    if dropped:
        _logger.info(
            "cascade-unbound %d transaction(s) in %s after invoice deletion",
            dropped,
            record.month_key,
        )
    return record.model_copy(update={"bindings": kept})


class BindingResolver:
    """Resolves binding state for many transactions of one month record.

    The binding and invoice lookups are built once, so resolving ``n``
    transactions costs ``O(n + bindings + invoices)``.
    """

    __slots__ = ("_bindings", "_invoice_ids")

    def __init__(self, record: MonthRecord | None) -> None:
        self._bindings = record.bindings_by_transaction() if record is not None else {}
        self._invoice_ids = record.invoice_ids() if record is not None else set()

    def state(self, transaction_id: str) -> BindingState:
        state = binding_state(self._bindings.get(transaction_id))
        if isinstance(state, BoundTo) and state.invoice_storage_id not in self._invoice_ids:
            return Unbound()
        return state


def resolve_state(record: MonthRecord | None, transaction_id: str) -> BindingState:
    return BindingResolver(record).state(transaction_id)


class BindingStore:
    """Binding operations for one user, persisted through a :class:`RecordStore`."""

    def __init__(
        self,
        record_store: RecordStore,
        user_id: str,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.record_store = record_store
        self.user_id = user_id
        self._clock = clock

    def _mutate(self, month_key: str, mutator) -> MonthRecord:
        result = self.record_store.update(self.user_id, month_key, mutator)
        if result is None:
            raise MonthNotFoundError(self.user_id, month_key)
        return result

    def bind(self, month_key: str, transaction_id: str, invoice_ref: str) -> MonthRecord:
        """Bind ``transaction_id`` to the invoice stored under ``invoice_ref``."""

        bound_at = self._clock()

        def _apply(record: MonthRecord) -> MonthRecord:
            if invoice_ref not in record.invoice_ids():
                raise UnknownInvoiceError(month_key, invoice_ref)
            binding = Binding(
                transaction_id=transaction_id,
                kind="invoice",
                invoice_storage_id=invoice_ref,
                bound_at=bound_at,
            )
            return _replace_binding(record, transaction_id, binding)

        _logger.debug("bind %s -> %s in %s", transaction_id, invoice_ref, month_key)
        return self._mutate(month_key, _apply)

    def mark_not_needed(self, month_key: str, transaction_id: str) -> MonthRecord:
        bound_at = self._clock()

        def _apply(record: MonthRecord) -> MonthRecord:
            binding = Binding(transaction_id=transaction_id, kind="not_needed", bound_at=bound_at)
            return _replace_binding(record, transaction_id, binding)

        _logger.debug("mark %s not needed in %s", transaction_id, month_key)
        return self._mutate(month_key, _apply)

    def unbind(self, month_key: str, transaction_id: str) -> MonthRecord:
        _logger.debug("unbind %s in %s", transaction_id, month_key)
        return self._mutate(
            month_key, lambda record: _replace_binding(record, transaction_id, None)
        )

    def state_for(self, month_key: str, transaction_id: str) -> BindingState:
        return resolve_state(self.record_store.get(self.user_id, month_key), transaction_id)

    def resolve_for_display(
        self, month_key: str, transactions: Iterable[Transaction]
    ) -> list[ResolvedTransaction]:
        """Join each transaction with its binding state and refund flag, keeping order."""

        resolver = BindingResolver(self.record_store.get(self.user_id, month_key))
        items = list(transactions)
        refunded = find_refunded_payment_ids(items)
        return [
            ResolvedTransaction(
                transaction=t,
                binding=resolver.state(t.id),
                is_refunded=t.id in refunded,
            )
            for t in items
        ]


__all__ = ["BindingResolver", "BindingStore", "drop_bindings_to", "resolve_state"]
