# ruff: noqa: E501
from pathlib import Path

import pytest

from faktoora.bindings import BindingStore
from faktoora.documents import InMemoryDocumentStore
from faktoora.errors import MonthNotFoundError, UploadValidationError
from faktoora.ingest.revolut_csv import COLUMN_FIELDS
from faktoora.models import AnalysisResult, BoundTo, InvoiceAnalysis, MonthRecord, NotNeeded, Unbound
from faktoora.months import MAX_INVOICE_FILE_SIZE_BYTES, MonthService, file_extension, file_stem
from faktoora.persistence import SqlRecordStore
from faktoora.store import InMemoryRecordStore
from tests.helpers.db import bootstrap_sqlite_db, count_month_rows

MONTH = "2024-01"
USER = "user-1"
HEADER = ",".join(f"col{i}" for i in range(len(COLUMN_FIELDS)))


def _csv(*rows: dict[str, str]) -> str:
    lines = [HEADER]
    for row in rows:
        lines.append(",".join(row.get(name, "") for name in COLUMN_FIELDS))
    return "\n".join(lines)


@pytest.fixture(params=["memory", "sqlite"])
def record_store(request, tmp_path: Path):
    if request.param == "memory":
        return InMemoryRecordStore()
    return SqlRecordStore(database_url=bootstrap_sqlite_db(tmp_path / "months.sqlite3"))


@pytest.fixture
def documents() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def service(record_store, documents) -> MonthService:
    ticks = iter(range(1, 1000))
    return MonthService(record_store, documents, USER, clock=lambda: float(next(ticks)))


def _upload(documents: InMemoryDocumentStore, size: int = 10) -> str:
    return documents.store(b"x" * size)


def test_file_name_helpers():
    assert file_stem("Acme invoice.final.pdf") == "Acme invoice.final"
    assert file_stem("README") == "README"
    assert file_extension("scan.JPG") == "jpg"
    assert file_extension("noext") == ""


def test_add_invoice_creates_month_and_names_from_file(service, documents, record_store):
    ref = _upload(documents)

    invoice = service.add_invoice(MONTH, ref, "acme-2024-01.pdf")

    assert invoice.name == "acme-2024-01"
    record = record_store.get(USER, MONTH)
    assert [i.storage_id for i in record.incoming_invoices] == [ref]


def test_second_upload_reuses_month_record(service, documents, record_store):
    service.add_invoice(MONTH, _upload(documents), "a.pdf")
    service.add_statement(MONTH, _upload(documents), "jan.csv", "csv", _csv({"id": "t1"}))

    record = record_store.get(USER, MONTH)
    assert len(record.incoming_invoices) == 1
    assert len(record.statements) == 1
    if isinstance(record_store, SqlRecordStore):
        assert count_month_rows(record_store.database_url) == 1


@pytest.mark.parametrize(
    ("month_key", "file_name", "message"),
    [
        ("2024-13", "a.pdf", "monthKey must be YYYY-MM"),
        ("2024-1", "a.pdf", "monthKey must be YYYY-MM"),
        (MONTH, "a.exe", "Unsupported invoice file type"),
    ],
)
def test_invoice_validation(service, documents, month_key, file_name, message):
    with pytest.raises(UploadValidationError, match=message):
        service.add_invoice(month_key, _upload(documents), file_name)


def test_invoice_blob_must_exist_and_fit(service, documents):
    with pytest.raises(UploadValidationError, match="not found"):
        service.add_invoice(MONTH, "missing", "a.pdf")
    with pytest.raises(UploadValidationError, match="20MB"):
        service.add_invoice(MONTH, _upload(documents, MAX_INVOICE_FILE_SIZE_BYTES + 1), "a.pdf")


def test_statement_extension_must_match_type(service, documents):
    with pytest.raises(UploadValidationError, match=r"\.csv"):
        service.add_statement(MONTH, _upload(documents), "jan.pdf", "csv", _csv())


def test_csv_statement_is_parsed_pdf_is_not(service, documents):
    csv_statement = service.add_statement(
        MONTH, _upload(documents), "jan.csv", "csv", _csv({"id": "t1"}, {"id": "t2"})
    )
    pdf_statement = service.add_statement(MONTH, _upload(documents), "jan.pdf", "pdf")

    assert [t.id for t in csv_statement.transactions] == ["t1", "t2"]
    assert pdf_statement.transactions is None


def test_delete_invoice_cascades_to_bindings(service, documents, record_store):
    ref_1 = _upload(documents)
    ref_2 = _upload(documents)
    service.add_invoice(MONTH, ref_1, "one.pdf")
    service.add_invoice(MONTH, ref_2, "two.pdf")
    bindings = BindingStore(record_store, USER)
    bindings.bind(MONTH, "tx-1", ref_1)
    bindings.bind(MONTH, "tx-2", ref_2)
    bindings.mark_not_needed(MONTH, "tx-3")

    service.delete_invoice(MONTH, ref_1)

    assert ref_1 not in documents
    assert bindings.state_for(MONTH, "tx-1") == Unbound()
    assert bindings.state_for(MONTH, "tx-2") == BoundTo(ref_2)
    assert [b.transaction_id for b in record_store.get(USER, MONTH).bindings] == ["tx-2", "tx-3"]


def test_delete_all_invoices_keeps_not_needed(service, documents, record_store):
    refs = [_upload(documents), _upload(documents)]
    for i, ref in enumerate(refs):
        service.add_invoice(MONTH, ref, f"{i}.pdf")
    bindings = BindingStore(record_store, USER)
    bindings.bind(MONTH, "tx-1", refs[0])
    bindings.mark_not_needed(MONTH, "tx-2")

    service.delete_all_invoices(MONTH)

    record = record_store.get(USER, MONTH)
    assert record.incoming_invoices == []
    assert all(ref not in documents for ref in refs)
    assert bindings.state_for(MONTH, "tx-2") == NotNeeded()
    assert bindings.state_for(MONTH, "tx-1") == Unbound()


def test_statement_reupload_restores_bindings(service, documents, record_store):
    ref = _upload(documents)
    service.add_invoice(MONTH, ref, "inv.pdf")
    statement_ref = _upload(documents)
    service.add_statement(MONTH, statement_ref, "jan.csv", "csv", _csv({"id": "t1"}))
    BindingStore(record_store, USER).bind(MONTH, "t1", ref)

    service.delete_statement(MONTH, statement_ref)
    assert service.merged_transactions(MONTH) == []
    service.add_statement(MONTH, _upload(documents), "jan.csv", "csv", _csv({"id": "t1"}))

    [item] = service.merged_transactions(MONTH)
    assert item.binding == BoundTo(ref)


def test_delete_all_statements_clears_bindings(service, documents, record_store):
    ref = _upload(documents)
    service.add_invoice(MONTH, ref, "inv.pdf")
    service.add_statement(MONTH, _upload(documents), "jan.csv", "csv", _csv({"id": "t1"}))
    BindingStore(record_store, USER).bind(MONTH, "t1", ref)

    service.delete_all_statements(MONTH)

    record = record_store.get(USER, MONTH)
    assert record.statements == []
    assert record.bindings == []
    assert len(record.incoming_invoices) == 1


def test_deletions_on_missing_month_are_noops(service, documents):
    ref = _upload(documents)

    service.delete_invoice("2030-01", ref)
    service.delete_all_statements("2030-01")

    assert ref in documents


def test_rename_and_analysis(service, documents):
    ref = _upload(documents)
    service.add_invoice(MONTH, ref, "scan.pdf")

    service.rename_invoice(MONTH, ref, "Office rent")
    analysis = InvoiceAnalysis(
        sender=AnalysisResult(value="Acme GmbH"),
        amount=AnalysisResult(value="120.00|EUR"),
        date=AnalysisResult(error="timeout"),
    )
    service.apply_analysis(MONTH, ref, analysis)

    [view] = service.get_month_data(MONTH).invoices
    assert view.invoice.name == "Acme GmbH"
    assert view.invoice.analysis.amount.value == "120.00|EUR"
    assert view.invoice.analysis.date.error == "timeout"
    assert view.url == f"memory://documents/{ref}"

    with pytest.raises(MonthNotFoundError):
        service.rename_invoice("2030-01", ref, "x")
    service.apply_analysis("2030-01", ref, analysis)


def test_get_month_data_orders_invoices_newest_first(service, documents):
    refs = [_upload(documents) for _ in range(3)]
    for i, ref in enumerate(refs):
        service.add_invoice(MONTH, ref, f"{i}.pdf")

    data = service.get_month_data(MONTH)

    assert [v.invoice.storage_id for v in data.invoices] == list(reversed(refs))
    assert service.get_month_data("2030-01").invoices == []


def test_merged_transactions(service, documents):
    service.add_statement(
        MONTH,
        _upload(documents),
        "a.csv",
        "csv",
        _csv(
            {"id": "t1", "date_completed": "2024-01-02", "description": "old"},
            {"id": "t2", "date_completed": "2024-01-05", "type": "CARD_PAYMENT", "orig_amount": "-7", "orig_currency": "EUR"},
            {"id": "t3"},
        ),
    )
    service.add_statement(
        MONTH,
        _upload(documents),
        "b.csv",
        "csv",
        _csv(
            {"id": "t1", "date_completed": "2024-01-02", "description": "new"},
            {"id": "t4", "date_completed": "2024-01-09", "type": "CARD_REFUND", "orig_amount": "7", "orig_currency": "EUR"},
        ),
    )

    service.update_settings(manual_transactions="Cash taxi,-12")

    items = service.merged_transactions(MONTH)

    assert [(i.transaction.id, i.source_file) for i in items] == [
        ("t4", "b.csv"),
        ("t2", "a.csv"),
        ("t1", "b.csv"),
        ("t3", "a.csv"),
        ("manual_transaction_0", "Manual"),
    ]
    assert items[2].transaction.description == "new"
    assert [i.transaction.id for i in items if i.is_refunded] == ["t2"]
    assert service.merged_transactions("2030-01") == []


def test_settings_defaults_and_partial_updates(service, record_store):
    assert service.get_settings().vat_id is None
    assert service.get_settings().manual_transactions == ""

    service.update_settings(vat_id=" BG123456789 ")
    service.update_settings(manual_transactions="Cash taxi,-12")

    settings = MonthService(record_store, InMemoryDocumentStore(), USER).get_settings()
    assert settings.vat_id == "BG123456789"
    assert settings.manual_transactions == "Cash taxi,-12"
    assert settings.updated_at > 0

    service.update_settings(vat_id="")
    assert service.get_settings().vat_id is None
    assert service.get_settings().manual_transactions == "Cash taxi,-12"
    assert record_store.get_settings("someone-else") is None


def test_manual_transactions_keep_their_bindings(service, documents, record_store):
    ref = _upload(documents)
    service.add_invoice(MONTH, ref, "taxi.pdf")
    service.update_settings(manual_transactions="Cash taxi,-12\nStamps,-3")
    BindingStore(record_store, USER).bind(MONTH, "manual_transaction_1", ref)

    items = service.merged_transactions(MONTH)

    assert [(i.transaction.id, i.binding) for i in items] == [
        ("manual_transaction_0", Unbound()),
        ("manual_transaction_1", BoundTo(ref)),
    ]


def test_merged_transactions_builds_binding_lookups_once(service, documents, monkeypatch: pytest.MonkeyPatch):
    service.add_statement(
        MONTH,
        _upload(documents),
        "a.csv",
        "csv",
        _csv(*({"id": f"t{i}", "date_completed": f"2024-01-{i + 1:02d}"} for i in range(20))),
    )
    service.update_settings(manual_transactions="Cash taxi,-12\nStamps,-3")
    calls = {"bindings": 0, "invoices": 0}
    original_bindings = MonthRecord.bindings_by_transaction
    original_invoices = MonthRecord.invoice_ids

    def _count_bindings(self):
        calls["bindings"] += 1
        return original_bindings(self)

    def _count_invoices(self):
        calls["invoices"] += 1
        return original_invoices(self)

    monkeypatch.setattr(MonthRecord, "bindings_by_transaction", _count_bindings)
    monkeypatch.setattr(MonthRecord, "invoice_ids", _count_invoices)

    items = service.merged_transactions(MONTH)

    assert len(items) == 22
    assert calls == {"bindings": 1, "invoices": 1}
