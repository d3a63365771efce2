"""Record store abstraction for month records.

The store holds at most one :class:`~faktoora.models.MonthRecord` per
``(user_id, month_key)`` and at most one
:class:`~faktoora.models.UserSettings` per user. Two implementations exist:

- :class:`InMemoryRecordStore` (this module), used by tests and one-shot CLI
  runs without a database;
- :class:`faktoora.persistence.SqlRecordStore`, backed by SQLAlchemy.

Every mutation goes through :meth:`RecordStore.update`, which applies a
function to the current record as one atomic step. Concurrent edits to the
same month are serialized by the store, never by callers.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any, Literal, Protocol

from .models import MonthRecord, UserSettings

type Collection = Literal["incoming_invoices", "statements", "bindings"]
type Mutator = Callable[[MonthRecord], MonthRecord]
type SettingsMutator = Callable[[UserSettings], UserSettings]


class RecordStore(Protocol):
    def get(self, user_id: str, month_key: str) -> MonthRecord | None: ...

    def insert(self, record: MonthRecord) -> None: ...

    def patch(self, user_id: str, month_key: str, **fields: Any) -> MonthRecord: ...

    def update(
        self, user_id: str, month_key: str, mutator: Mutator, *, create: bool = False
    ) -> MonthRecord | None:
        """Apply ``mutator`` to the stored record atomically and persist the result.

        When no record exists, returns ``None`` without calling ``mutator``
        unless ``create`` is set, in which case an empty record is created
        first.
        """
        ...

    def get_settings(self, user_id: str) -> UserSettings | None: ...

    def update_settings(self, user_id: str, mutator: SettingsMutator) -> UserSettings:
        """Apply ``mutator`` to the user's settings atomically, creating defaults first."""
        ...


def empty_month(user_id: str, month_key: str) -> MonthRecord:
    return MonthRecord(user_id=user_id, month_key=month_key)


def upsert_collection_item(
    store: RecordStore,
    user_id: str,
    month_key: str,
    collection: Collection,
    item: Any,
) -> MonthRecord:
    """Append ``item`` to one collection of the month, creating the month if needed."""

    def _append(record: MonthRecord) -> MonthRecord:
        items = list(getattr(record, collection))
        items.append(item)
        return record.model_copy(update={collection: items})

    result = store.update(user_id, month_key, _append, create=True)
    if result is None:
        raise RuntimeError(f"record store did not create month {month_key} for {user_id}")
    return result


class InMemoryRecordStore:
    """Dict-backed record store keyed by ``(user_id, month_key)``.

    One lock guards every read-modify-write, so concurrent ``update`` calls
    from several threads apply in some serial order.
    """

    def __init__(self) -> None:
        self._records: dict[tuple[str, str], MonthRecord] = {}
        self._settings: dict[str, UserSettings] = {}
        self._lock = threading.Lock()

    def get(self, user_id: str, month_key: str) -> MonthRecord | None:
        with self._lock:
            record = self._records.get((user_id, month_key))
            return record.model_copy(deep=True) if record is not None else None

    def insert(self, record: MonthRecord) -> None:
        key = (record.user_id, record.month_key)
        with self._lock:
            if key in self._records:
                raise ValueError(f"month record already exists for {record.month_key}")
            self._records[key] = record.model_copy(deep=True)

    def patch(self, user_id: str, month_key: str, **fields: Any) -> MonthRecord:
        key = (user_id, month_key)
        with self._lock:
            current = self._records.get(key)
            if current is None:
                raise KeyError(key)
            patched = MonthRecord.model_validate({**current.model_dump(), **_dump_fields(fields)})
            self._records[key] = patched
            return patched.model_copy(deep=True)

    def update(
        self, user_id: str, month_key: str, mutator: Mutator, *, create: bool = False
    ) -> MonthRecord | None:
        key = (user_id, month_key)
        with self._lock:
            current = self._records.get(key)
            if current is None:
                if not create:
                    return None
                current = empty_month(user_id, month_key)
            updated = mutator(current.model_copy(deep=True))
            self._records[key] = updated
            return updated.model_copy(deep=True)

    def get_settings(self, user_id: str) -> UserSettings | None:
        with self._lock:
            settings = self._settings.get(user_id)
            return settings.model_copy() if settings is not None else None

    def update_settings(self, user_id: str, mutator: SettingsMutator) -> UserSettings:
        with self._lock:
            current = self._settings.get(user_id) or UserSettings(user_id=user_id)
            updated = mutator(current.model_copy())
            self._settings[user_id] = updated
            return updated.model_copy()


def _dump_fields(fields: dict[str, Any]) -> dict[str, Any]:
    """Serialize patch values so lists of models and plain dicts are both accepted."""

    out: dict[str, Any] = {}
    for name, value in fields.items():
        if isinstance(value, list):
            out[name] = [v.model_dump() if hasattr(v, "model_dump") else v for v in value]
        else:
            out[name] = value
    return out


__all__ = [
    "Collection",
    "InMemoryRecordStore",
    "Mutator",
    "RecordStore",
    "SettingsMutator",
    "empty_month",
    "upsert_collection_item",
]
