# ruff: noqa: E501
import textwrap

from faktoora.ingest import parse_csv_line, parse_manual_transactions, parse_transactions
from faktoora.ingest.revolut_csv import COLUMN_FIELDS

HEADER = (
    "Date started (UTC),Date completed (UTC),ID,Type,State,Description,Reference,Payer,"
    "Card number,Card label,Card state,Orig currency,Orig amount,Payment currency,Amount,"
    "Total amount,Exchange rate,Fee,Fee currency,Balance,Account,Beneficiary account number,"
    "Beneficiary sort code or routing number,Beneficiary IBAN,Beneficiary BIC,MCC,"
    "Related transaction id,Spend program"
)


def _row(*, id: str, type: str = "CARD_PAYMENT", description: str = "Shop", amount: str = "-10.00", **extra: str) -> str:
    values = {name: "" for name in COLUMN_FIELDS}
    values.update(
        id=id,
        type=type,
        description=description,
        amount=amount,
        date_started="2024-01-05 10:00:00",
        date_completed="2024-01-05 10:01:00",
        orig_currency="EUR",
        orig_amount=amount,
        payment_currency="EUR",
    )
    values.update(extra)
    return ",".join(values[name] for name in COLUMN_FIELDS)


def test_header_has_28_columns():
    assert len(parse_csv_line(HEADER)) == 28 == len(COLUMN_FIELDS)


def test_parse_maps_fields_by_position():
    csv_text = "\n".join([HEADER, _row(id="tx-1", mcc="5411"), _row(id="tx-2", type="TOPUP", amount="100")])

    rows = parse_transactions(csv_text)

    assert [r.id for r in rows] == ["tx-1", "tx-2"]
    assert rows[0].type == "CARD_PAYMENT"
    assert rows[0].amount == "-10.00"
    assert rows[0].payment_currency == "EUR"
    assert rows[0].mcc == "5411"
    assert rows[0].date_completed == "2024-01-05 10:01:00"
    assert rows[1].type == "TOPUP"
    # No field is ever None
    assert all(getattr(rows[0], name) is not None for name in COLUMN_FIELDS)


def test_quoted_field_keeps_embedded_delimiter():
    csv_text = "\n".join([HEADER, _row(id="tx-1", description='"Acme, Inc."')])

    rows = parse_transactions(csv_text)

    assert len(rows) == 1
    assert rows[0].description == "Acme, Inc."
    assert rows[0].reference == ""


def test_doubled_quote_is_literal():
    assert parse_csv_line('a,"say ""hi""",c') == ["a", 'say "hi"', "c"]


def test_fields_are_trimmed():
    assert parse_csv_line(" a , b ,c ") == ["a", "b", "c"]


def test_blank_lines_and_crlf_are_tolerated():
    csv_text = HEADER + "\r\n\r\n" + _row(id="tx-1") + "\r\n\n" + _row(id="tx-2") + "\r\n"

    rows = parse_transactions(csv_text)

    assert [r.id for r in rows] == ["tx-1", "tx-2"]
    assert rows[1].spend_program == ""


def test_short_rows_are_dropped():
    csv_text = "\n".join([HEADER, "2024-01-01,2024-01-01,short", _row(id="tx-1")])

    rows = parse_transactions(csv_text)

    assert [r.id for r in rows] == ["tx-1"]


def test_header_only_or_empty_input_yields_nothing():
    assert parse_transactions("") == []
    assert parse_transactions(HEADER) == []
    assert parse_transactions("\n\n") == []


def test_manual_transactions():
    text = textwrap.dedent(
        """
        Coffee beans, -12.50

        Taxi,-30
        , -5
        Stamps
        """
    )

    rows = parse_manual_transactions(text)

    assert [(r.id, r.description, r.amount) for r in rows] == [
        ("manual_transaction_0", "Coffee beans", "-12.50"),
        ("manual_transaction_1", "Taxi", "-30"),
        ("manual_transaction_3", "Stamps", ""),
    ]
    assert {r.type for r in rows} == {"MANUAL"}
    assert parse_manual_transactions(None) == []
