"""Environment-driven settings.

Values are read from the process environment at call time. The CLI loads a
local ``.env`` (``python-dotenv``) before anything here is consulted, so the
same variables can live in the shell or in that file.

Recognised variables
--------------------
- ``DATABASE_URL``: SQLAlchemy URL of the record store.
- ``API_KEY_PEPPER``: secret used to hash headless API keys.
- ``FAKTOORA_DOCUMENTS_DIR``: directory the CLI keeps uploaded files in
  (default ``.faktoora/documents`` under the working directory).
- ``FAKTOORA_ALLOWED_TYPES``: comma-separated transaction types that may need
  an invoice (default ``CARD_PAYMENT,MANUAL``).
- ``FAKTOORA_HIDE_POSITIVE_AMOUNTS``, ``FAKTOORA_HIDE_EXCHANGE_ROWS``,
  ``FAKTOORA_HIDE_REVOLUT_BUSINESS_FEE``: booleans (``1/0``, ``true/false``,
  ``yes/no``), all default on.
- ``FAKTOORA_EXCHANGE_RULE``: ``type`` (default) or ``rate``.
"""

from __future__ import annotations

import os
from pathlib import Path

from .errors import ConfigurationError
from .invoice_filter import DEFAULT_ALLOWED_TYPES, FilterPolicy

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}

DEFAULT_DOCUMENTS_DIR = Path(".faktoora") / "documents"


def env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    v = raw.strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}")


def filter_policy_from_env() -> FilterPolicy:
    """Build the invoice-requirement policy from ``FAKTOORA_*`` variables."""

    raw_types = os.getenv("FAKTOORA_ALLOWED_TYPES")
    if raw_types is None:
        allowed = DEFAULT_ALLOWED_TYPES
    else:
        allowed = frozenset(t.strip().upper() for t in raw_types.split(",") if t.strip())

    rule = (os.getenv("FAKTOORA_EXCHANGE_RULE") or "type").strip().lower()
    if rule not in ("type", "rate"):
        raise ConfigurationError(f"FAKTOORA_EXCHANGE_RULE must be 'type' or 'rate', got {rule!r}")

    return FilterPolicy(
        allowed_transaction_types=allowed,
        hide_positive_amounts=env_flag("FAKTOORA_HIDE_POSITIVE_AMOUNTS", True),
        hide_exchange_rows=env_flag("FAKTOORA_HIDE_EXCHANGE_ROWS", True),
        exchange_rule=rule,  # type: ignore[arg-type]
        hide_revolut_business_fee=env_flag("FAKTOORA_HIDE_REVOLUT_BUSINESS_FEE", True),
    )


def api_key_pepper() -> str:
    pepper = os.getenv("API_KEY_PEPPER")
    if not pepper:
        raise ConfigurationError("API key auth is not configured (API_KEY_PEPPER is unset)")
    return pepper


def database_url(override: str | None = None) -> str | None:
    """Return the explicit override or ``DATABASE_URL``; ``None`` means in-memory."""

    return override or os.getenv("DATABASE_URL") or None


def documents_dir(override: str | None = None) -> Path:
    raw = override or os.getenv("FAKTOORA_DOCUMENTS_DIR")
    return Path(raw) if raw else Path.cwd() / DEFAULT_DOCUMENTS_DIR


__all__ = [
    "DEFAULT_DOCUMENTS_DIR",
    "api_key_pepper",
    "database_url",
    "documents_dir",
    "env_flag",
    "filter_policy_from_env",
]
