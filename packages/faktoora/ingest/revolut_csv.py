"""Adapter for Revolut Business-style transaction CSV exports.

CSV header (positional, 28 columns):
Date started (UTC), Date completed (UTC), ID, Type, State, Description,
Reference, Payer, Card number, Card label, Card state, Orig currency,
Orig amount, Payment currency, Amount, Total amount, Exchange rate, Fee,
Fee currency, Balance, Account, Beneficiary account number,
Beneficiary sort code or routing number, Beneficiary IBAN, Beneficiary BIC,
MCC, Related transaction id, Spend program

Fields are mapped by position, not by header name, so exports whose header
wording differs still parse as long as the column order is unchanged.

Lenient-parse contract
----------------------
- Blank lines are skipped.
- Rows with fewer fields than the header are dropped silently.
- Missing values become ``""``; no field is ever ``None``.
"""

from __future__ import annotations

from ..logging_setup import get_logger
from ..models import Transaction

_logger = get_logger("faktoora.ingest.revolut_csv")

# Transaction field for each CSV column, in file order.
COLUMN_FIELDS: tuple[str, ...] = (
    "date_started",
    "date_completed",
    "id",
    "type",
    "state",
    "description",
    "reference",
    "payer",
    "card_number",
    "card_label",
    "card_state",
    "orig_currency",
    "orig_amount",
    "payment_currency",
    "amount",
    "total_amount",
    "exchange_rate",
    "fee",
    "fee_currency",
    "balance",
    "account",
    "beneficiary_account_number",
    "beneficiary_sort_code",
    "beneficiary_iban",
    "beneficiary_bic",
    "mcc",
    "related_transaction_id",
    "spend_program",
)


def parse_csv_line(line: str, delimiter: str = ",") -> list[str]:
    """Split one CSV line into trimmed fields.

    A field wrapped in ``"`` may contain the delimiter; ``""`` inside a quoted
    field is a literal quote. An unterminated quote runs to the end of the
    line.
    """

    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0
    n = len(line)
    while i < n:
        ch = line[i]
        if ch == '"':
            if in_quotes and i + 1 < n and line[i + 1] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif ch == delimiter and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
        i += 1
    fields.append("".join(current).strip())
    return fields


def _row_to_transaction(values: list[str]) -> Transaction:
    data = {
        name: (values[pos] if pos < len(values) else "")
        for pos, name in enumerate(COLUMN_FIELDS)
    }
    return Transaction(**data)


def parse_transactions(csv_text: str) -> list[Transaction]:
    """Parse a statement export into transactions, preserving file order."""

    lines = [line.rstrip("\r") for line in csv_text.split("\n")]
    lines = [line for line in lines if line.strip()]
    if len(lines) < 2:
        return []

    header = parse_csv_line(lines[0])
    out: list[Transaction] = []
    dropped = 0
    for line in lines[1:]:
        values = parse_csv_line(line)
        if len(values) < len(header):
            dropped += 1
            continue
        out.append(_row_to_transaction(values))

    if dropped:
        _logger.debug("dropped %d short row(s) out of %d", dropped, len(lines) - 1)
    return out


__all__ = ["COLUMN_FIELDS", "parse_csv_line", "parse_transactions"]
