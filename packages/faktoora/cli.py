# ruff: noqa: I001
"""CLI for the ``faktoora`` package.

Command handlers (``cmd_*``) return an integer exit code and are callable
directly; the Typer app below wraps them. Environment variables are loaded
from a local ``.env`` with ``python-dotenv`` before any command runs. Business
logic lives in the library modules; this file only does I/O and rendering.

Statement commands (no database required)
-----------------------------------------
- ``parse-statement --csv-path PATH``
- ``identify-refunds --csv-path PATH``
- ``needs-invoice --csv-path PATH [--show-all]``
- ``month-summary --csv-path PATH [--invoice-amount 50.80|BGN ...]``

Month commands (``DATABASE_URL`` or ``--database-url``)
-------------------------------------------------------
- ``init-db``
- ``add-invoice``, ``add-statement`` (files are kept under ``--documents-dir``)
- ``delete-invoice``, ``delete-statement``, ``delete-all-invoices``,
  ``delete-all-statements``, ``rename-invoice``
- ``bind``, ``mark-not-needed``, ``unbind``
- ``show-month``
- ``settings`` (VAT id and manual transactions)
- ``api-key-create``, ``api-key-list``, ``api-key-revoke``
"""

from __future__ import annotations

import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table
from typer.models import OptionInfo

from .logging_setup import configure_logging, get_logger
from .models import BoundTo, NotNeeded, ResolvedTransaction, Transaction

_logger = get_logger("faktoora.cli")

console = Console()


# ---- Small module-level helpers --------------------------------------------


def _read_statement(csv_path: str) -> list[Transaction] | None:
    """Read and parse ``csv_path``; print an error and return ``None`` on I/O failure."""

    from .ingest.revolut_csv import parse_transactions

    try:
        text = Path(csv_path).read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: File not found: {csv_path}", file=sys.stderr)
        return None
    except PermissionError:
        print(f"Error: Permission denied: {csv_path}", file=sys.stderr)
        return None
    except UnicodeDecodeError as e:
        print(f"Error: '{csv_path}' is not UTF-8 text: {e}", file=sys.stderr)
        return None
    return parse_transactions(text)


def _binding_label(item: ResolvedTransaction) -> str:
    if isinstance(item.binding, BoundTo):
        return f"invoice:{item.binding.invoice_storage_id}"
    if isinstance(item.binding, NotNeeded):
        return "not needed"
    return ""


def _transactions_table(title: str, rows: list[tuple[Transaction, bool, str]]) -> Table:
    table = Table(title=title)
    table.add_column("Date")
    table.add_column("ID")
    table.add_column("Type")
    table.add_column("Description")
    table.add_column("Amount", justify="right")
    table.add_column("Refunded")
    table.add_column("Invoice")
    for tx, refunded, invoice in rows:
        table.add_row(
            tx.effective_date,
            tx.id,
            tx.type,
            tx.description,
            f"{tx.amount} {tx.payment_currency}".strip(),
            "yes" if refunded else "",
            invoice,
        )
    return table


def _read_blob(file_path: str) -> bytes | None:
    try:
        return Path(file_path).read_bytes()
    except FileNotFoundError:
        print(f"Error: File not found: {file_path}", file=sys.stderr)
    except OSError as e:
        print(f"Error: cannot read {file_path}: {e}", file=sys.stderr)
    return None


def _format_ts(value: float | None) -> str:
    if value is None:
        return ""
    return datetime.fromtimestamp(value, tz=UTC).strftime("%Y-%m-%d %H:%M")


def _record_store(database_url: str | None):
    from .config import database_url as _resolve_url
    from .persistence import SqlRecordStore

    url = _resolve_url(database_url)
    if url is None:
        raise RuntimeError("DATABASE_URL is not set; pass --database-url or set it in .env")
    return SqlRecordStore(database_url=url)


def _api_key_store(database_url: str | None):
    from .config import database_url as _resolve_url
    from .persistence import SqlApiKeyStore

    url = _resolve_url(database_url)
    if url is None:
        raise RuntimeError("DATABASE_URL is not set; pass --database-url or set it in .env")
    return SqlApiKeyStore(database_url=url)


def _month_service(user_id: str, database_url: str | None, documents_dir: str | None):
    from .config import documents_dir as _resolve_dir
    from .documents import FileDocumentStore
    from .months import MonthService

    documents = FileDocumentStore(_resolve_dir(documents_dir))
    return MonthService(_record_store(database_url), documents, user_id)


# ---- Command handlers ------------------------------------------------------


def cmd_parse_statement(csv_path: str) -> int:
    """Print the transactions parsed from a statement export."""

    transactions = _read_statement(csv_path)
    if transactions is None:
        return 1
    console.print(
        _transactions_table(
            f"{len(transactions)} transactions", [(t, False, "") for t in transactions]
        )
    )
    return 0


def cmd_identify_refunds(csv_path: str) -> int:
    """Print one ``<payment id>\\t<refund id>`` line per matched pair."""

    from .refunds import identify_refunds

    transactions = _read_statement(csv_path)
    if transactions is None:
        return 1
    for match in identify_refunds(transactions):
        print(f"{match.expense.id}\t{match.refund.id}")
    return 0


def cmd_needs_invoice(csv_path: str, *, show_all: bool = False) -> int:
    """List transactions needing an invoice (or all of them with ``show_all``)."""

    from .config import filter_policy_from_env
    from .errors import ConfigurationError
    from .invoice_filter import needs_invoice
    from .refunds import find_refunded_payment_ids

    transactions = _read_statement(csv_path)
    if transactions is None:
        return 1
    try:
        policy = filter_policy_from_env()
    except ConfigurationError as e:
        print(f"Error: invalid filter configuration: {e}", file=sys.stderr)
        return 1

    refunded = find_refunded_payment_ids(transactions)
    shown = [t for t in transactions if show_all or needs_invoice(t, policy)]
    title = f"{len(shown)} of {len(transactions)} transactions"
    if not show_all:
        title += " need an invoice"
    console.print(_transactions_table(title, [(t, t.id in refunded, "") for t in shown]))
    return 0


def cmd_month_summary(csv_path: str, *, invoice_amounts: list[str] | None = None) -> int:
    """Print expense/income/invoice totals in every display currency."""

    from .currency import format_amount
    from .models import AnalysisResult, IncomingInvoice, InvoiceAnalysis
    from .summary import summarize_month

    transactions = _read_statement(csv_path)
    if transactions is None:
        return 1
    invoices = [
        IncomingInvoice(
            storage_id=f"cli-{i}",
            file_name=f"invoice-{i}",
            name=f"invoice-{i}",
            uploaded_at=0.0,
            analysis=InvoiceAnalysis(amount=AnalysisResult(value=value)),
        )
        for i, value in enumerate(invoice_amounts or [])
    ]

    summary = summarize_month(transactions, invoices)
    if summary is None:
        print("Nothing to summarize.")
        return 0

    table = Table(title="Month summary")
    table.add_column("Currency")
    for col in summary.columns:
        table.add_column(f"{col.label} ({col.count})", justify="right")
    for currency, values in summary.rows():
        table.add_row(currency, *(format_amount(amount, currency) for _, amount in values))
    console.print(table)
    return 0


def cmd_init_db(*, database_url: str | None = None) -> int:
    from db import metadata
    from db.client import get_engine
    from .config import database_url as _resolve_url

    url = _resolve_url(database_url)
    if url is None:
        print("Error: DATABASE_URL is not set.", file=sys.stderr)
        return 1
    try:
        metadata.create_all(bind=get_engine(database_url=url))
    except Exception as e:
        print(f"Error: failed to create schema: {e}", file=sys.stderr)
        return 1
    print("Schema ready.")
    return 0


def cmd_binding(
    action: str,
    *,
    user_id: str,
    month_key: str,
    transaction_id: str,
    invoice_id: str | None = None,
    database_url: str | None = None,
) -> int:
    """Run ``bind`` / ``mark-not-needed`` / ``unbind`` against the record store."""

    from .bindings import BindingStore
    from .errors import FaktooraError

    try:
        store = BindingStore(_record_store(database_url), user_id)
        if action == "bind":
            if not invoice_id:
                print("Error: --invoice-id is required for bind.", file=sys.stderr)
                return 1
            store.bind(month_key, transaction_id, invoice_id)
        elif action == "mark-not-needed":
            store.mark_not_needed(month_key, transaction_id)
        elif action == "unbind":
            store.unbind(month_key, transaction_id)
        else:
            raise ValueError(f"unknown binding action: {action}")
    except (FaktooraError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    _logger.info("%s %s in %s for %s", action, transaction_id, month_key, user_id)
    return 0


def cmd_add_invoice(
    *,
    user_id: str,
    month_key: str,
    file_path: str,
    file_name: str | None = None,
    database_url: str | None = None,
    documents_dir: str | None = None,
) -> int:
    """Store an invoice file and add it to the month (created on first upload)."""

    from .documents import safe_delete
    from .errors import FaktooraError

    blob = _read_blob(file_path)
    if blob is None:
        return 1
    try:
        service = _month_service(user_id, database_url, documents_dir)
        ref = service.documents.store(blob)
        try:
            invoice = service.add_invoice(month_key, ref, file_name or Path(file_path).name)
        except FaktooraError:
            safe_delete(service.documents, ref)
            raise
    except (FaktooraError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"Added invoice {invoice.name} ({invoice.storage_id}) to {month_key}.")
    return 0


def cmd_add_statement(
    *,
    user_id: str,
    month_key: str,
    file_path: str,
    file_name: str | None = None,
    database_url: str | None = None,
    documents_dir: str | None = None,
) -> int:
    """Store a statement file and add it to the month; CSV exports are parsed."""

    from .documents import safe_delete
    from .errors import FaktooraError
    from .months import file_extension

    blob = _read_blob(file_path)
    if blob is None:
        return 1
    name = file_name or Path(file_path).name
    file_type = file_extension(name)
    csv_content = None
    if file_type == "csv":
        try:
            csv_content = blob.decode("utf-8")
        except UnicodeDecodeError as e:
            print(f"Error: '{file_path}' is not UTF-8 text: {e}", file=sys.stderr)
            return 1
    try:
        service = _month_service(user_id, database_url, documents_dir)
        ref = service.documents.store(blob)
        try:
            statement = service.add_statement(month_key, ref, name, file_type, csv_content)
        except FaktooraError:
            safe_delete(service.documents, ref)
            raise
    except (FaktooraError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    count = len(statement.transactions or [])
    print(
        f"Added {file_type} statement {statement.file_name} ({statement.storage_id}) "
        f"to {month_key} with {count} transactions."
    )
    return 0


def cmd_month_edit(
    action: str,
    *,
    user_id: str,
    month_key: str,
    storage_id: str | None = None,
    name: str | None = None,
    database_url: str | None = None,
    documents_dir: str | None = None,
) -> int:
    """Run one of the delete/rename commands against the month."""

    from .errors import FaktooraError

    try:
        service = _month_service(user_id, database_url, documents_dir)
        if action == "delete-invoice":
            service.delete_invoice(month_key, storage_id or "")
        elif action == "delete-statement":
            service.delete_statement(month_key, storage_id or "")
        elif action == "delete-all-invoices":
            service.delete_all_invoices(month_key)
        elif action == "delete-all-statements":
            service.delete_all_statements(month_key)
        elif action == "rename-invoice":
            service.rename_invoice(month_key, storage_id or "", name or "")
        else:
            raise ValueError(f"unknown month action: {action}")
    except (FaktooraError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    _logger.info("%s in %s for %s", action, month_key, user_id)
    print("Done.")
    return 0


def cmd_settings(
    *,
    user_id: str,
    vat_id: str | None = None,
    manual_path: str | None = None,
    database_url: str | None = None,
) -> int:
    """Show the user's settings, updating the given ones first."""

    from .documents import InMemoryDocumentStore
    from .months import MonthService

    manual_text = None
    if manual_path:
        try:
            manual_text = Path(manual_path).read_text(encoding="utf-8")
        except OSError as e:
            print(f"Error: cannot read manual transactions: {e}", file=sys.stderr)
            return 1
    try:
        service = MonthService(_record_store(database_url), InMemoryDocumentStore(), user_id)
        if vat_id is not None or manual_text is not None:
            settings = service.update_settings(vat_id=vat_id, manual_transactions=manual_text)
        else:
            settings = service.get_settings()
    except RuntimeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    lines = [ln for ln in settings.manual_transactions.splitlines() if ln.strip()]
    print(f"VAT id: {settings.vat_id or '-'}")
    print(f"Manual transaction lines: {len(lines)}")
    return 0


def cmd_show_month(
    *,
    user_id: str,
    month_key: str,
    database_url: str | None = None,
    documents_dir: str | None = None,
) -> int:
    """Print the month's invoices and its merged transactions with refund and binding state."""

    try:
        service = _month_service(user_id, database_url, documents_dir)
        data = service.get_month_data(month_key)
        items = service.merged_transactions(month_key)
    except RuntimeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if data.invoices:
        table = Table(title=f"{len(data.invoices)} invoices")
        table.add_column("Storage ID")
        table.add_column("Name")
        table.add_column("File")
        for view in data.invoices:
            table.add_row(view.invoice.storage_id, view.invoice.name, view.invoice.file_name)
        console.print(table)
    if not items:
        print(f"No transactions for {month_key}.")
        return 0
    rows = [(it.transaction, it.is_refunded, _binding_label(it)) for it in items]
    console.print(_transactions_table(month_key, rows))
    return 0


def cmd_api_key(
    action: str,
    *,
    user_id: str,
    label: str | None = None,
    key_id: str | None = None,
    database_url: str | None = None,
) -> int:
    """Issue, list or revoke headless API keys."""

    from .api_keys import create_api_key, list_api_keys, revoke_api_key
    from .errors import FaktooraError

    try:
        store = _api_key_store(database_url)
        if action == "create":
            issued = create_api_key(store, user_id, label)
            print(f"Created API key {issued.record.key_id} ({issued.record.label}).")
            print("Store it now; it will not be shown again:")
            print(issued.plaintext)
        elif action == "list":
            keys = list_api_keys(store, user_id)
            table = Table(title=f"{len(keys)} API keys")
            for column in ("ID", "Label", "Prefix", "Scopes", "Created", "Last used", "Revoked"):
                table.add_column(column)
            for key in keys:
                table.add_row(
                    key.key_id,
                    key.label,
                    key.key_prefix,
                    ",".join(key.scopes),
                    _format_ts(key.created_at),
                    _format_ts(key.last_used_at),
                    _format_ts(key.revoked_at),
                )
            console.print(table)
        elif action == "revoke":
            revoke_api_key(store, user_id, key_id or "")
            print(f"Revoked API key {key_id}.")
        else:
            raise ValueError(f"unknown api-key action: {action}")
    except (FaktooraError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


# ---- Typer-based console interface -----------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help="Reconcile bank statement transactions with invoices.",
)

# Module-level option objects keep calls out of parameter defaults (ruff B008).
CSV_PATH_OPTION: OptionInfo = typer.Option(
    ...,
    "--csv-path",
    help="Path to a statement CSV export",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports missing files itself
)
DATABASE_URL_OPTION: OptionInfo = typer.Option(
    None, "--database-url", help="Override DATABASE_URL (falls back to env var)."
)
USER_OPTION: OptionInfo = typer.Option(..., "--user-id", help="Owner of the month record.")
MONTH_OPTION: OptionInfo = typer.Option(..., "--month-key", help="Month in YYYY-MM form.")
TRANSACTION_OPTION: OptionInfo = typer.Option(..., "--transaction-id", help="Transaction id.")
DOCUMENTS_DIR_OPTION: OptionInfo = typer.Option(
    None,
    "--documents-dir",
    help="Directory for uploaded files (falls back to FAKTOORA_DOCUMENTS_DIR).",
)
FILE_OPTION: OptionInfo = typer.Option(
    ..., "--file", help="File to upload", dir_okay=False, file_okay=True, exists=False
)
FILE_NAME_OPTION: OptionInfo = typer.Option(
    None, "--file-name", help="Stored file name (defaults to the file's own name)."
)
STORAGE_ID_OPTION: OptionInfo = typer.Option(
    ..., "--storage-id", help="Storage id of the uploaded file."
)


@app.command("parse-statement")
def parse_statement_cmd(csv_path: Annotated[Path, CSV_PATH_OPTION]) -> None:
    """Parse a statement CSV and print its transactions."""

    raise typer.Exit(cmd_parse_statement(str(csv_path)))


@app.command("identify-refunds")
def identify_refunds_cmd(csv_path: Annotated[Path, CSV_PATH_OPTION]) -> None:
    """Print refunded payments paired with their refunds."""

    raise typer.Exit(cmd_identify_refunds(str(csv_path)))


@app.command("needs-invoice")
def needs_invoice_cmd(
    csv_path: Annotated[Path, CSV_PATH_OPTION],
    show_all: bool = typer.Option(False, "--show-all", help="Show every transaction."),
) -> None:
    """List the transactions that still need a supporting invoice."""

    raise typer.Exit(cmd_needs_invoice(str(csv_path), show_all=show_all))


@app.command("month-summary")
def month_summary_cmd(
    csv_path: Annotated[Path, CSV_PATH_OPTION],
    invoice_amount: list[str] | None = typer.Option(
        None, "--invoice-amount", help="Invoice amount as AMOUNT|CURRENCY (repeatable)."
    ),
) -> None:
    """Summarize expenses, income and invoices in EUR, USD and BGN."""

    raise typer.Exit(cmd_month_summary(str(csv_path), invoice_amounts=invoice_amount))


@app.command("init-db")
def init_db_cmd(database_url: str | None = DATABASE_URL_OPTION) -> None:
    """Create the record store schema."""

    raise typer.Exit(cmd_init_db(database_url=database_url))


@app.command("bind")
def bind_cmd(
    user_id: Annotated[str, USER_OPTION],
    month_key: Annotated[str, MONTH_OPTION],
    transaction_id: Annotated[str, TRANSACTION_OPTION],
    invoice_id: str = typer.Option(..., "--invoice-id", help="Storage id of the invoice."),
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Bind a transaction to an invoice of the same month."""

    raise typer.Exit(
        cmd_binding(
            "bind",
            user_id=user_id,
            month_key=month_key,
            transaction_id=transaction_id,
            invoice_id=invoice_id,
            database_url=database_url,
        )
    )


@app.command("mark-not-needed")
def mark_not_needed_cmd(
    user_id: Annotated[str, USER_OPTION],
    month_key: Annotated[str, MONTH_OPTION],
    transaction_id: Annotated[str, TRANSACTION_OPTION],
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Record that a transaction does not need an invoice."""

    raise typer.Exit(
        cmd_binding(
            "mark-not-needed",
            user_id=user_id,
            month_key=month_key,
            transaction_id=transaction_id,
            database_url=database_url,
        )
    )


@app.command("unbind")
def unbind_cmd(
    user_id: Annotated[str, USER_OPTION],
    month_key: Annotated[str, MONTH_OPTION],
    transaction_id: Annotated[str, TRANSACTION_OPTION],
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Remove a transaction's binding."""

    raise typer.Exit(
        cmd_binding(
            "unbind",
            user_id=user_id,
            month_key=month_key,
            transaction_id=transaction_id,
            database_url=database_url,
        )
    )


@app.command("add-invoice")
def add_invoice_cmd(
    user_id: Annotated[str, USER_OPTION],
    month_key: Annotated[str, MONTH_OPTION],
    file_path: Annotated[Path, FILE_OPTION],
    file_name: str | None = FILE_NAME_OPTION,
    database_url: str | None = DATABASE_URL_OPTION,
    documents_dir: str | None = DOCUMENTS_DIR_OPTION,
) -> None:
    """Upload an invoice file into a month."""

    raise typer.Exit(
        cmd_add_invoice(
            user_id=user_id,
            month_key=month_key,
            file_path=str(file_path),
            file_name=file_name,
            database_url=database_url,
            documents_dir=documents_dir,
        )
    )


@app.command("add-statement")
def add_statement_cmd(
    user_id: Annotated[str, USER_OPTION],
    month_key: Annotated[str, MONTH_OPTION],
    file_path: Annotated[Path, FILE_OPTION],
    file_name: str | None = FILE_NAME_OPTION,
    database_url: str | None = DATABASE_URL_OPTION,
    documents_dir: str | None = DOCUMENTS_DIR_OPTION,
) -> None:
    """Upload a statement (.csv or .pdf) into a month; CSV transactions are parsed."""

    raise typer.Exit(
        cmd_add_statement(
            user_id=user_id,
            month_key=month_key,
            file_path=str(file_path),
            file_name=file_name,
            database_url=database_url,
            documents_dir=documents_dir,
        )
    )


@app.command("delete-invoice")
def delete_invoice_cmd(
    user_id: Annotated[str, USER_OPTION],
    month_key: Annotated[str, MONTH_OPTION],
    storage_id: Annotated[str, STORAGE_ID_OPTION],
    database_url: str | None = DATABASE_URL_OPTION,
    documents_dir: str | None = DOCUMENTS_DIR_OPTION,
) -> None:
    """Delete an invoice and unbind the transactions bound to it."""

    raise typer.Exit(
        cmd_month_edit(
            "delete-invoice",
            user_id=user_id,
            month_key=month_key,
            storage_id=storage_id,
            database_url=database_url,
            documents_dir=documents_dir,
        )
    )


@app.command("delete-statement")
def delete_statement_cmd(
    user_id: Annotated[str, USER_OPTION],
    month_key: Annotated[str, MONTH_OPTION],
    storage_id: Annotated[str, STORAGE_ID_OPTION],
    database_url: str | None = DATABASE_URL_OPTION,
    documents_dir: str | None = DOCUMENTS_DIR_OPTION,
) -> None:
    """Delete one statement; bindings are kept."""

    raise typer.Exit(
        cmd_month_edit(
            "delete-statement",
            user_id=user_id,
            month_key=month_key,
            storage_id=storage_id,
            database_url=database_url,
            documents_dir=documents_dir,
        )
    )


@app.command("delete-all-invoices")
def delete_all_invoices_cmd(
    user_id: Annotated[str, USER_OPTION],
    month_key: Annotated[str, MONTH_OPTION],
    database_url: str | None = DATABASE_URL_OPTION,
    documents_dir: str | None = DOCUMENTS_DIR_OPTION,
) -> None:
    """Delete every invoice of a month."""

    raise typer.Exit(
        cmd_month_edit(
            "delete-all-invoices",
            user_id=user_id,
            month_key=month_key,
            database_url=database_url,
            documents_dir=documents_dir,
        )
    )


@app.command("delete-all-statements")
def delete_all_statements_cmd(
    user_id: Annotated[str, USER_OPTION],
    month_key: Annotated[str, MONTH_OPTION],
    database_url: str | None = DATABASE_URL_OPTION,
    documents_dir: str | None = DOCUMENTS_DIR_OPTION,
) -> None:
    """Delete every statement of a month and clear its bindings."""

    raise typer.Exit(
        cmd_month_edit(
            "delete-all-statements",
            user_id=user_id,
            month_key=month_key,
            database_url=database_url,
            documents_dir=documents_dir,
        )
    )


@app.command("rename-invoice")
def rename_invoice_cmd(
    user_id: Annotated[str, USER_OPTION],
    month_key: Annotated[str, MONTH_OPTION],
    storage_id: Annotated[str, STORAGE_ID_OPTION],
    name: str = typer.Option(..., "--name", help="New display name."),
    database_url: str | None = DATABASE_URL_OPTION,
    documents_dir: str | None = DOCUMENTS_DIR_OPTION,
) -> None:
    """Change an invoice's display name."""

    raise typer.Exit(
        cmd_month_edit(
            "rename-invoice",
            user_id=user_id,
            month_key=month_key,
            storage_id=storage_id,
            name=name,
            database_url=database_url,
            documents_dir=documents_dir,
        )
    )


@app.command("show-month")
def show_month_cmd(
    user_id: Annotated[str, USER_OPTION],
    month_key: Annotated[str, MONTH_OPTION],
    database_url: str | None = DATABASE_URL_OPTION,
    documents_dir: str | None = DOCUMENTS_DIR_OPTION,
) -> None:
    """Show a month's invoices and merged transactions with refund and binding state."""

    raise typer.Exit(
        cmd_show_month(
            user_id=user_id,
            month_key=month_key,
            database_url=database_url,
            documents_dir=documents_dir,
        )
    )


@app.command("settings")
def settings_cmd(
    user_id: Annotated[str, USER_OPTION],
    vat_id: str | None = typer.Option(None, "--vat-id", help="VAT id; pass '' to clear it."),
    manual_path: str | None = typer.Option(
        None, "--manual-file", help="File with manual transactions (name,amount per line)."
    ),
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Show or update the user's VAT id and manual transactions."""

    raise typer.Exit(
        cmd_settings(
            user_id=user_id, vat_id=vat_id, manual_path=manual_path, database_url=database_url
        )
    )


@app.command("api-key-create")
def api_key_create_cmd(
    user_id: Annotated[str, USER_OPTION],
    label: str | None = typer.Option(None, "--label", help="Key label (max 80 characters)."),
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Issue a headless upload API key and print it once."""

    raise typer.Exit(
        cmd_api_key("create", user_id=user_id, label=label, database_url=database_url)
    )


@app.command("api-key-list")
def api_key_list_cmd(
    user_id: Annotated[str, USER_OPTION],
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """List the user's API keys, newest first."""

    raise typer.Exit(cmd_api_key("list", user_id=user_id, database_url=database_url))


@app.command("api-key-revoke")
def api_key_revoke_cmd(
    user_id: Annotated[str, USER_OPTION],
    key_id: str = typer.Option(..., "--key-id", help="Id of the key to revoke."),
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Revoke one of the user's API keys."""

    raise typer.Exit(
        cmd_api_key("revoke", user_id=user_id, key_id=key_id, database_url=database_url)
    )


@app.callback()
def _root() -> None:
    """Load ``.env`` from the working directory and configure logging."""

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging()


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
