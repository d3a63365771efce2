"""Statement and manual-entry parsers producing :class:`~faktoora.models.Transaction` rows."""

from .manual import parse_manual_transactions
from .revolut_csv import parse_csv_line, parse_transactions

__all__ = ["parse_csv_line", "parse_manual_transactions", "parse_transactions"]
