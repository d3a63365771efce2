"""Pytest configuration for test isolation.

The workspace packages (``packages/faktoora`` and ``libs/db/src/db``) are put
on ``sys.path`` so the suite also runs from a plain checkout. Every test starts
from a clean ``FAKTOORA_*`` environment and without a ``DATABASE_URL``, so a
developer's ``.env`` or shell settings cannot leak into filter or store
behavior.
"""

from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

_ROOT = Path(__file__).resolve().parents[1]
sys.path[:0] = [
    p
    for p in (str(_ROOT / "packages"), str(_ROOT / "libs" / "db" / "src"), str(_ROOT))
    if p not in sys.path
]

_ENV_VARS = (
    "DATABASE_URL",
    "API_KEY_PEPPER",
    "FAKTOORA_LOG_LEVEL",
    "FAKTOORA_ALLOWED_TYPES",
    "FAKTOORA_HIDE_POSITIVE_AMOUNTS",
    "FAKTOORA_HIDE_EXCHANGE_ROWS",
    "FAKTOORA_HIDE_REVOLUT_BUSINESS_FEE",
    "FAKTOORA_EXCHANGE_RULE",
    "FAKTOORA_DOCUMENTS_DIR",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _dispose_engines() -> Iterator[None]:
    """Drop cached engines so each test's temporary SQLite file is released."""

    yield
    from db.client import dispose_engines

    dispose_engines()
