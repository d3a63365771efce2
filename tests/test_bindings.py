from pathlib import Path

import pytest

from faktoora.bindings import BindingResolver, BindingStore, drop_bindings_to, resolve_state
from faktoora.errors import MonthNotFoundError, UnknownInvoiceError
from faktoora.models import (
    Binding,
    BoundTo,
    IncomingInvoice,
    MonthRecord,
    NotNeeded,
    Transaction,
    Unbound,
)
from faktoora.persistence import SqlRecordStore
from faktoora.store import InMemoryRecordStore, upsert_collection_item
from tests.helpers.db import bootstrap_sqlite_db

MONTH = "2024-01"
USER = "user-1"


def _invoice(storage_id: str) -> IncomingInvoice:
    return IncomingInvoice(
        storage_id=storage_id, file_name=f"{storage_id}.pdf", name=storage_id, uploaded_at=1.0
    )


@pytest.fixture(params=["memory", "sqlite"])
def record_store(request, tmp_path: Path):
    if request.param == "memory":
        return InMemoryRecordStore()
    url = bootstrap_sqlite_db(tmp_path / "faktoora.sqlite3")
    return SqlRecordStore(database_url=url)


@pytest.fixture
def bindings(record_store) -> BindingStore:
    for ref in ("inv-1", "inv-2"):
        upsert_collection_item(record_store, USER, MONTH, "incoming_invoices", _invoice(ref))
    ticks = iter(range(100, 1000))
    return BindingStore(record_store, USER, clock=lambda: float(next(ticks)))


def test_bind_is_idempotent(bindings: BindingStore):
    bindings.bind(MONTH, "tx-1", "inv-1")
    record = bindings.bind(MONTH, "tx-1", "inv-1")

    assert [(b.transaction_id, b.invoice_storage_id) for b in record.bindings] == [
        ("tx-1", "inv-1")
    ]
    assert bindings.state_for(MONTH, "tx-1") == BoundTo("inv-1")


def test_latest_write_wins(bindings: BindingStore):
    bindings.bind(MONTH, "tx-1", "inv-1")
    bindings.bind(MONTH, "tx-1", "inv-2")
    assert bindings.state_for(MONTH, "tx-1") == BoundTo("inv-2")

    record = bindings.mark_not_needed(MONTH, "tx-1")
    assert bindings.state_for(MONTH, "tx-1") == NotNeeded()
    assert len(record.bindings) == 1
    assert record.bindings[0].kind == "not_needed"
    assert record.bindings[0].invoice_storage_id is None


def test_unbind_returns_to_unbound(bindings: BindingStore):
    bindings.bind(MONTH, "tx-1", "inv-1")
    bindings.mark_not_needed(MONTH, "tx-2")

    bindings.unbind(MONTH, "tx-1")
    bindings.unbind(MONTH, "tx-never-bound")

    assert bindings.state_for(MONTH, "tx-1") == Unbound()
    assert bindings.state_for(MONTH, "tx-2") == NotNeeded()


def test_bind_to_unknown_invoice_is_rejected(bindings: BindingStore, record_store):
    with pytest.raises(UnknownInvoiceError):
        bindings.bind(MONTH, "tx-1", "inv-missing")

    assert record_store.get(USER, MONTH).bindings == []


def test_missing_month_raises(record_store):
    store = BindingStore(record_store, USER)

    with pytest.raises(MonthNotFoundError, match="Month data not found for 2024-02"):
        store.bind("2024-02", "tx-1", "inv-1")
    with pytest.raises(MonthNotFoundError):
        store.mark_not_needed("2024-02", "tx-1")
    with pytest.raises(MonthNotFoundError):
        store.unbind("2024-02", "tx-1")
    assert record_store.get(USER, "2024-02") is None


def test_bindings_are_scoped_per_month(bindings: BindingStore, record_store):
    upsert_collection_item(record_store, USER, "2024-02", "incoming_invoices", _invoice("inv-1"))
    bindings.bind(MONTH, "tx-1", "inv-1")

    assert bindings.state_for("2024-02", "tx-1") == Unbound()
    assert bindings.state_for("2023-12", "tx-1") == Unbound()


def test_resolve_for_display_joins_state_and_refund_flag(bindings: BindingStore):
    bindings.bind(MONTH, "p1", "inv-1")
    bindings.mark_not_needed(MONTH, "r1")
    txs = [
        Transaction(id="p1", type="CARD_PAYMENT", date_completed="2024-01-01", orig_amount="-5", orig_currency="EUR"),
        Transaction(id="r1", type="CARD_REFUND", date_completed="2024-01-02", orig_amount="5", orig_currency="EUR"),
        Transaction(id="x1", type="CARD_PAYMENT", date_completed="2024-01-03", orig_amount="-9", orig_currency="EUR"),
    ]

    resolved = bindings.resolve_for_display(MONTH, txs)

    assert [(r.transaction.id, r.binding, r.is_refunded) for r in resolved] == [
        ("p1", BoundTo("inv-1"), True),
        ("r1", NotNeeded(), False),
        ("x1", Unbound(), False),
    ]


def test_drop_bindings_to_keeps_not_needed_markers():
    record = MonthRecord(
        user_id=USER,
        month_key=MONTH,
        incoming_invoices=[_invoice("inv-2")],
        bindings=[
            Binding(transaction_id="a", kind="invoice", invoice_storage_id="inv-1", bound_at=1),
            Binding(transaction_id="b", kind="invoice", invoice_storage_id="inv-2", bound_at=1),
            Binding(transaction_id="c", kind="not_needed", bound_at=1),
        ],
    )

    kept = drop_bindings_to(record, ["inv-1"])

    assert [b.transaction_id for b in kept.bindings] == ["b", "c"]


def test_dangling_reference_reads_as_unbound():
    record = MonthRecord(
        user_id=USER,
        month_key=MONTH,
        bindings=[
            Binding(transaction_id="a", kind="invoice", invoice_storage_id="gone", bound_at=1)
        ],
    )

    assert resolve_state(record, "a") == Unbound()
    assert resolve_state(None, "a") == Unbound()


def test_resolver_builds_lookups_once(monkeypatch: pytest.MonkeyPatch):
    record = MonthRecord(
        user_id=USER,
        month_key=MONTH,
        incoming_invoices=[_invoice("inv-1")],
        bindings=[
            Binding(transaction_id="a", kind="invoice", invoice_storage_id="inv-1", bound_at=1),
            Binding(transaction_id="b", kind="invoice", invoice_storage_id="gone", bound_at=1),
            Binding(transaction_id="c", kind="not_needed", bound_at=1),
        ],
    )
    calls: list[str] = []
    original = MonthRecord.bindings_by_transaction

    def _counting(self):
        calls.append(self.month_key)
        return original(self)

    monkeypatch.setattr(MonthRecord, "bindings_by_transaction", _counting)

    resolver = BindingResolver(record)
    states = [resolver.state(tx_id) for tx_id in ("a", "b", "c", "d")]

    assert states == [BoundTo("inv-1"), Unbound(), NotNeeded(), Unbound()]
    assert calls == [MONTH]
    assert BindingResolver(None).state("a") == Unbound()
