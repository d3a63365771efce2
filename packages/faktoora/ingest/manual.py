"""Parser for manually entered transactions.

Users can keep a free-text list of expenses that never appear on a bank
statement (cash purchases, card payments from other accounts). Each non-blank
line is ``name,amount``; the amount is optional.
"""

from __future__ import annotations

from ..models import Transaction

MANUAL_TYPE = "MANUAL"
MANUAL_ID_PREFIX = "manual_transaction_"


def parse_manual_transactions(text: str | None) -> list[Transaction]:
    """Return one ``MANUAL`` transaction per line with a non-empty name.

    Ids are derived from the line position among non-blank lines so they stay
    stable while the list is only appended to.
    """

    if not text:
        return []
    lines = [line.strip() for line in text.split("\n") if line.strip()]
    out: list[Transaction] = []
    for i, line in enumerate(lines):
        parts = [p.strip() for p in line.split(",")]
        name = parts[0] if parts else ""
        amount = parts[1] if len(parts) > 1 else ""
        if not name:
            continue
        out.append(
            Transaction(
                id=f"{MANUAL_ID_PREFIX}{i}",
                type=MANUAL_TYPE,
                description=name,
                amount=amount,
            )
        )
    return out


__all__ = ["MANUAL_ID_PREFIX", "MANUAL_TYPE", "parse_manual_transactions"]
