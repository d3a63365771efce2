import pytest

from faktoora.config import filter_policy_from_env
from faktoora.errors import ConfigurationError
from faktoora.invoice_filter import DEFAULT_POLICY, FilterPolicy, filter_needing_invoice, needs_invoice
from faktoora.models import Transaction


def _tx(amount: str = "-20", type: str = "CARD_PAYMENT", **kw) -> Transaction:
    return Transaction(id="t1", type=type, amount=amount, **kw)


def test_positive_amount_is_excluded_negative_included():
    assert needs_invoice(_tx("20")) is False
    assert needs_invoice(_tx("+20")) is False
    assert needs_invoice(_tx("-20")) is True


def test_positive_amount_included_when_policy_allows():
    policy = FilterPolicy(hide_positive_amounts=False)

    assert needs_invoice(_tx("20"), policy) is True


def test_unparseable_amount_is_not_positive():
    assert needs_invoice(_tx("pending")) is True
    assert needs_invoice(_tx("")) is True


def test_type_must_be_allowed():
    assert needs_invoice(_tx(type="TOPUP")) is False
    assert needs_invoice(_tx(type="MANUAL")) is True
    assert needs_invoice(_tx(type="TOPUP"), FilterPolicy(allowed_transaction_types=frozenset({"TOPUP"})))


def test_exchange_rows_by_type_or_by_rate():
    by_type = FilterPolicy(allowed_transaction_types=frozenset({"EXCHANGE", "CARD_PAYMENT"}))
    by_rate = FilterPolicy(exchange_rule="rate")

    assert needs_invoice(_tx(type="EXCHANGE"), by_type) is False
    assert needs_invoice(_tx(exchange_rate="1.08"), by_type) is True
    assert needs_invoice(_tx(exchange_rate="1.08"), by_rate) is False
    assert needs_invoice(_tx(exchange_rate=" "), by_rate) is True


def test_revolut_business_fee_is_hidden_case_insensitively():
    fee = _tx(description="REVOLUT business Fee - Grow plan")

    assert needs_invoice(fee) is False
    assert needs_invoice(fee, FilterPolicy(hide_revolut_business_fee=False)) is True


def test_filter_preserves_order():
    rows = [
        Transaction(id="a", type="CARD_PAYMENT", amount="-1"),
        Transaction(id="b", type="CARD_PAYMENT", amount="5"),
        Transaction(id="c", type="MANUAL", amount="-2"),
    ]

    assert [t.id for t in filter_needing_invoice(rows)] == ["a", "c"]


def test_policy_from_env_defaults_to_default_policy():
    assert filter_policy_from_env() == DEFAULT_POLICY


def test_policy_from_env_reads_overrides(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("FAKTOORA_ALLOWED_TYPES", "card_payment, transfer")
    monkeypatch.setenv("FAKTOORA_HIDE_POSITIVE_AMOUNTS", "no")
    monkeypatch.setenv("FAKTOORA_EXCHANGE_RULE", "rate")

    policy = filter_policy_from_env()

    assert policy.allowed_transaction_types == frozenset({"CARD_PAYMENT", "TRANSFER"})
    assert policy.hide_positive_amounts is False
    assert policy.exchange_rule == "rate"
    assert policy.hide_revolut_business_fee is True


@pytest.mark.parametrize(
    ("name", "value"),
    [("FAKTOORA_HIDE_EXCHANGE_ROWS", "maybe"), ("FAKTOORA_EXCHANGE_RULE", "mcc")],
)
def test_policy_from_env_rejects_bad_values(monkeypatch: pytest.MonkeyPatch, name, value):
    monkeypatch.setenv(name, value)

    with pytest.raises(ConfigurationError):
        filter_policy_from_env()
