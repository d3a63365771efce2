import asyncio

from faktoora.extraction import analyze_invoice


class _FakeService:
    def __init__(self, values: dict[str, str | None], failing: set[str] = frozenset()):
        self.values = values
        self.failing = failing
        self.calls: list[tuple[str, str]] = []

    async def extract(self, storage_ref: str, field: str) -> str | None:
        self.calls.append((storage_ref, field))
        await asyncio.sleep(0)
        if field in self.failing:
            raise RuntimeError(f"{field} service unavailable")
        return self.values.get(field)


def test_fields_are_extracted_independently():
    service = _FakeService({"sender": "Acme", "amount": "10|EUR"}, failing={"date"})

    analysis = asyncio.run(analyze_invoice(service, "blob-1", clock=lambda: 42.0))

    assert analysis.sender.value == "Acme"
    assert analysis.amount.value == "10|EUR"
    assert analysis.date.value is None
    assert analysis.date.error == "date service unavailable"
    assert analysis.parsed_text.error is None
    assert analysis.sender.last_updated == 42.0
    assert analysis.analysis_big_error is None
    assert sorted(f for _, f in service.calls) == ["amount", "date", "parsed_text", "sender"]


def test_all_failures_set_big_error():
    service = _FakeService({}, failing={"date", "sender", "parsed_text", "amount"})

    analysis = asyncio.run(analyze_invoice(service, "blob-1"))

    assert analysis.analysis_big_error == "All extraction calls failed"


def test_only_requested_fields_are_extracted():
    service = _FakeService({"amount": "5|USD"})

    analysis = asyncio.run(analyze_invoice(service, "blob-1", ["amount", "amount"]))

    assert service.calls == [("blob-1", "amount")]
    assert analysis.amount.value == "5|USD"
    assert analysis.sender.last_updated is None
