"""Exception hierarchy for ``faktoora``.

The reconciliation core (parser, refund matcher, filter, currency helpers)
never raises on malformed input. These exceptions belong to the mutation
paths (uploads, bindings) and to configuration.
"""

from __future__ import annotations


class FaktooraError(Exception):
    """Base class for all package errors."""


class ConfigurationError(FaktooraError):
    """A required setting (e.g. ``API_KEY_PEPPER``) is missing or invalid."""


class UploadValidationError(FaktooraError, ValueError):
    """An uploaded invoice or statement failed validation."""


class MonthNotFoundError(FaktooraError, LookupError):
    """No month record exists for the requested ``(user_id, month_key)``."""

    def __init__(self, user_id: str, month_key: str) -> None:
        super().__init__(f"Month data not found for {month_key}")
        self.user_id = user_id
        self.month_key = month_key


class UnknownInvoiceError(FaktooraError, LookupError):
    """A binding referenced an invoice that is not part of the month."""

    def __init__(self, month_key: str, storage_id: str) -> None:
        super().__init__(f"Invoice {storage_id!r} is not part of month {month_key}")
        self.month_key = month_key
        self.storage_id = storage_id


class ApiKeyNotFoundError(FaktooraError, LookupError):
    """No API key with this id belongs to the user."""

    def __init__(self, key_id: str) -> None:
        super().__init__("API key not found")
        self.key_id = key_id


__all__ = [
    "ApiKeyNotFoundError",
    "ConfigurationError",
    "FaktooraError",
    "MonthNotFoundError",
    "UnknownInvoiceError",
    "UploadValidationError",
]
